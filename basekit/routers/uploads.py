from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from basekit.core import csrf
from basekit.core.errors import ImageProcessingError, UploadError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["uploads"])


def _uploader(request: Request):
    uploader = getattr(request.app.state, "uploader", None)
    if uploader is None:
        raise RuntimeError("Upload service not configured on app.state")
    return uploader


@router.post("/upload")
def upload(
    request: Request,
    file: Optional[UploadFile] = File(None),
    csrf_token: Optional[str] = Form(None),
):
    csrf.enforce_csrf(request, csrf_token)
    if file is None:
        raise HTTPException(400, "no file")
    limit = request.app.state.settings.http.max_body_bytes
    # read one byte past the limit to detect oversize bodies without loading more
    data = file.file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(413, "file too large")
    filename = file.filename or "upload.bin"
    content_type = file.content_type or ""
    try:
        result = _uploader(request).upload(filename, content_type, data)
    except ImageProcessingError as exc:
        logger.info("Rejected image %s: %s", filename, exc)
        raise HTTPException(400, "invalid image")
    except UploadError as exc:
        logger.error("Upload of %s failed: %s", filename, exc)
        raise HTTPException(500, "save error")
    return {
        "path": f"/{result.key}",
        "original_filename": filename,
        "bytes": result.size,
        "content_type": result.content_type,
    }
