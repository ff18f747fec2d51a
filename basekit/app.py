from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from basekit.core.clock import SystemClock
from basekit.core.config import Settings
from basekit.core.cors import add_cors
from basekit.core.mailer import SmtpEmailSender
from basekit.db.port import Db
from basekit.repositories.file_storage import LocalFileStorage
from basekit.routers import csrf as csrf_router
from basekit.routers import uploads as uploads_router
from basekit.services.image_processor import PillowImageProcessor, ResizeOptions
from basekit.services.upload_service import MediaDirs, UploadService

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds the configured limit."""

    def __init__(self, app, *, max_body_bytes: int) -> None:
        super().__init__(app)
        self._max_body_bytes = max_body_bytes

    async def dispatch(self, request, call_next):
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._max_body_bytes:
            return PlainTextResponse("Payload Too Large", status_code=413)
        return await call_next(request)


async def not_found(request, exc) -> Response:
    """Unknown routes get a bare 404 with no body."""
    return Response(status_code=404)


def build_upload_service(settings: Settings) -> UploadService:
    return UploadService(
        storage=LocalFileStorage(settings.upload.root),
        images=PillowImageProcessor(),
        resize=ResizeOptions(settings.image.max_width, settings.image.max_height),
        dirs=MediaDirs(settings.upload.image_dir, settings.upload.file_dir),
        clock=SystemClock(settings.timezone),
    )


def create_app(
    settings: Settings,
    db: Optional[Db] = None,
    *,
    uploader: Optional[UploadService] = None,
    spa_html: Optional[str] = None,
) -> FastAPI:
    """Assemble the FastAPI app around explicitly constructed collaborators.

    ``db`` is the shared pool-backed handle created at startup; it is only
    stored on ``app.state`` for handlers to use.
    """
    app = FastAPI(title="basekit")
    app.state.settings = settings
    app.state.db = db
    app.state.uploader = uploader or build_upload_service(settings)
    app.state.mailer = SmtpEmailSender(settings.mail)
    app.state.spa_html = spa_html

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.http.max_body_bytes)
    add_cors(app, settings.cors)
    app.add_exception_handler(404, not_found)

    app.include_router(csrf_router.router)
    app.include_router(uploads_router.router)
    if spa_html is not None:
        app.add_api_route("/", csrf_router.spa_entry, methods=["GET"], include_in_schema=False)

    logger.info(
        "App ready: env=%s csrf_enabled=%s mail_enabled=%s",
        settings.app_env,
        settings.csrf.enabled,
        settings.mail_enabled,
    )
    return app
