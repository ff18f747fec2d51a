"""Image resizing backed by Pillow."""
from __future__ import annotations

from dataclasses import dataclass
import io
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from basekit.core.errors import ImageProcessingError

SUPPORTED_CONTENT_TYPES = {"image/gif", "image/jpeg", "image/jpg", "image/png"}

_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/gif": "GIF",
}


@dataclass(frozen=True)
class ResizeOptions:
    max_width: int
    max_height: int


class ImageProcessor(Protocol):
    def is_supported(self, content_type: str) -> bool:
        ...

    def resize_same_format(self, data: bytes, content_type: str, max_width: int, max_height: int) -> bytes:
        ...


class PillowImageProcessor:
    """Fits images inside a bounding box and re-encodes them in their own format."""

    def is_supported(self, content_type: str) -> bool:
        return (content_type or "").lower() in SUPPORTED_CONTENT_TYPES

    def resize_same_format(self, data: bytes, content_type: str, max_width: int, max_height: int) -> bytes:
        fmt = _FORMATS.get((content_type or "").lower())
        if fmt is None:
            raise ImageProcessingError(f"unsupported content-type: {content_type}")
        try:
            with Image.open(io.BytesIO(data)) as source:
                source.load()
                img = source.copy()
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise ImageProcessingError(f"cannot decode image: {exc}") from exc

        if img.width > max_width or img.height > max_height:
            # thumbnail keeps the aspect ratio and never enlarges
            img.thumbnail((max_width, max_height), Image.Resampling.BILINEAR)

        out = io.BytesIO()
        try:
            if fmt == "JPEG":
                img.convert("RGB").save(out, format="JPEG")
            else:
                img.convert("RGBA").save(out, format=fmt)
        except (OSError, ValueError) as exc:
            raise ImageProcessingError(f"cannot encode image as {fmt}: {exc}") from exc
        return out.getvalue()
