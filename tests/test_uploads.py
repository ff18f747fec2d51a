from __future__ import annotations

from datetime import date
import io
from pathlib import Path

from PIL import Image
import pytest

from basekit.core.errors import ImageProcessingError, UploadError
from basekit.repositories.file_storage import LocalFileStorage
from basekit.services.image_processor import PillowImageProcessor, ResizeOptions
from basekit.services.upload_service import MediaDirs, UploadService


def make_image(fmt: str, size=(400, 200), mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color=(200, 30, 30) if mode == "RGB" else (200, 30, 30, 128)).save(buf, format=fmt)
    return buf.getvalue()


class FixedClock:
    def today(self) -> date:
        return date(2024, 3, 15)


@pytest.fixture()
def service(tmp_path) -> UploadService:
    return UploadService(
        storage=LocalFileStorage(tmp_path),
        images=PillowImageProcessor(),
        resize=ResizeOptions(100, 100),
        dirs=MediaDirs("images", "files"),
        clock=FixedClock(),
    )


# -------------------------- storage --------------------------
def test_local_storage_writes_below_root(tmp_path):
    storage = LocalFileStorage(tmp_path)
    path = storage.save("/a/b/c.txt", b"hello")
    assert Path(path) == (tmp_path / "a" / "b" / "c.txt").resolve()
    assert Path(path).read_bytes() == b"hello"


def test_local_storage_neutralises_parent_references(tmp_path):
    storage = LocalFileStorage(tmp_path / "root")
    path = Path(storage.save("../../escape.txt", b"x"))
    assert (tmp_path / "root").resolve() in path.parents


def test_local_storage_io_failure_is_upload_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a dir")
    with pytest.raises(UploadError):
        LocalFileStorage(blocker).save("x/y.bin", b"data")


# -------------------------- images --------------------------
@pytest.mark.parametrize("ct", ["image/png", "IMAGE/JPEG", "image/jpg", "image/gif"])
def test_supported_types(ct):
    assert PillowImageProcessor().is_supported(ct)


def test_unsupported_types():
    proc = PillowImageProcessor()
    assert not proc.is_supported("image/webp")
    assert not proc.is_supported("")
    with pytest.raises(ImageProcessingError):
        proc.resize_same_format(make_image("PNG"), "image/webp", 10, 10)


@pytest.mark.parametrize("fmt, ct", [("PNG", "image/png"), ("JPEG", "image/jpeg"), ("GIF", "image/gif")])
def test_resize_fits_bounds_and_keeps_format(fmt, ct):
    out = PillowImageProcessor().resize_same_format(make_image(fmt), ct, 100, 100)
    with Image.open(io.BytesIO(out)) as img:
        assert img.format == fmt
        assert img.size == (100, 50)


def test_small_images_are_not_enlarged():
    out = PillowImageProcessor().resize_same_format(make_image("PNG", size=(20, 10)), "image/png", 100, 100)
    with Image.open(io.BytesIO(out)) as img:
        assert img.size == (20, 10)


def test_jpeg_from_rgba_source_is_flattened():
    out = PillowImageProcessor().resize_same_format(make_image("PNG", mode="RGBA"), "image/jpeg", 50, 50)
    with Image.open(io.BytesIO(out)) as img:
        assert img.format == "JPEG"
        assert img.mode == "RGB"


def test_garbage_bytes_raise_image_error():
    with pytest.raises(ImageProcessingError):
        PillowImageProcessor().resize_same_format(b"definitely not an image", "image/png", 10, 10)


# -------------------------- service --------------------------
def test_image_upload_is_resized_and_filed_by_month(service, tmp_path):
    result = service.upload("photo.JPG", "image/jpg", make_image("JPEG"))
    assert result.key.startswith("images/202403/")
    assert result.key.endswith(".jpg")
    assert result.content_type == "image/jpeg"
    stored = Path(result.path)
    assert stored.read_bytes().__len__() == result.size
    with Image.open(stored) as img:
        assert max(img.size) <= 100


def test_plain_file_keeps_sanitised_name(service):
    result = service.upload("../etc/passwd", "text/plain", b"root:x")
    assert result.key == "files/__etc_passwd"
    assert result.size == 6
    assert result.content_type == "text/plain"
    assert Path(result.path).read_bytes() == b"root:x"


def test_blank_filename_gets_generated_name(service):
    result = service.upload("  ", "application/octet-stream", b"\x00")
    assert result.key.startswith("files/")
    assert result.key.endswith(".bin")


def test_broken_image_propagates(service):
    with pytest.raises(ImageProcessingError):
        service.upload("x.png", "image/png", b"nope")
