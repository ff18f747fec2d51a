"""Upload use case: route images through the resizer, store everything else as-is."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional
import uuid

from basekit.core.clock import Clock, SystemClock
from basekit.repositories.file_storage import FileStorage

from .image_processor import ImageProcessor, ResizeOptions

logger = logging.getLogger(__name__)

_IMAGE_TYPES = {
    "image/jpeg": ("jpg", "image/jpeg"),
    "image/jpg": ("jpg", "image/jpeg"),
    "image/png": ("png", "image/png"),
    "image/gif": ("gif", "image/gif"),
}


@dataclass(frozen=True)
class MediaDirs:
    image_dir: str = "images"
    file_dir: str = "files"


@dataclass(frozen=True)
class UploadResult:
    key: str
    path: str
    size: int
    content_type: str


class UploadService:
    def __init__(
        self,
        storage: FileStorage,
        images: ImageProcessor,
        resize: ResizeOptions,
        dirs: MediaDirs = MediaDirs(),
        clock: Optional[Clock] = None,
    ) -> None:
        self._storage = storage
        self._images = images
        self._resize = resize
        self._dirs = dirs
        self._clock = clock or SystemClock()

    def upload(self, filename: str, content_type: str, data: bytes) -> UploadResult:
        """Store one uploaded file and describe where it went.

        Images land in ``<image_dir>/<YYYYMM>/<uuid>.<ext>`` after being fit
        into the configured bounds; other files keep their (sanitised) name
        under ``<file_dir>/``.
        """
        file_id = str(uuid.uuid4())
        if self._images.is_supported(content_type):
            ext, normalized = _IMAGE_TYPES.get(content_type.lower(), ("bin", content_type))
            resized = self._images.resize_same_format(
                data,
                normalized,
                self._resize.max_width,
                self._resize.max_height,
            )
            month = self._clock.today().strftime("%Y%m")
            key = f"{self._dirs.image_dir}/{month}/{file_id}.{ext}"
            path = self._storage.save(key, resized)
            logger.info("Stored image %s (%d -> %d bytes)", key, len(data), len(resized))
            return UploadResult(key=key, path=path, size=len(resized), content_type=normalized)

        name = (filename or "").strip().replace("/", "_").replace("\\", "_").replace("..", "_")
        if not name:
            name = f"{file_id}.bin"
        key = f"{self._dirs.file_dir}/{name}"
        path = self._storage.save(key, data)
        logger.info("Stored file %s (%d bytes)", key, len(data))
        return UploadResult(key=key, path=path, size=len(data), content_type=content_type)
