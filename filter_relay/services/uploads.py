import asyncio
import time
import uuid
from pathlib import Path
from typing import BinaryIO

import structlog
from PIL import Image, UnidentifiedImageError

from filter_relay.config import settings

logger = structlog.get_logger()

UPLOADS_DIR = Path(settings.uploads_path)

DEFAULT_EXT = ".png"

FORMAT_TO_MEDIA_TYPE = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


class InvalidUpload(Exception):
    pass


def detect_mime_type(image_bytes: bytes) -> str:
    fmt = _detect_image_format(image_bytes)
    return FORMAT_TO_MEDIA_TYPE.get(fmt, "image/png")


def _detect_image_format(image_bytes: bytes) -> str:
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if image_bytes[:2] == b"\xff\xd8":
        return "jpeg"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "webp"
    return "png"


def ensure_uploads_dir() -> Path:
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    return UPLOADS_DIR


def generate_upload_name(original_filename: str | None) -> str:
    ext = Path(original_filename or "").suffix or DEFAULT_EXT
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext.lower()}"


def _copy_to_disk(source: BinaryIO, dest: Path, max_bytes: int) -> int:
    written = 0
    with open(dest, "wb") as f:
        while chunk := source.read(1024 * 1024):
            written += len(chunk)
            if written > max_bytes:
                raise InvalidUpload(f"upload exceeds {max_bytes} bytes")
            f.write(chunk)
    return written


def reserve_upload_path(original_filename: str | None) -> Path:
    return ensure_uploads_dir() / generate_upload_name(original_filename)


async def write_upload(source: BinaryIO, path: Path) -> int:
    """Copy an inbound upload to ``path``; a partial file may remain on failure."""
    if hasattr(source, "seek"):
        source.seek(0)
    size = await asyncio.to_thread(_copy_to_disk, source, path, settings.max_upload_bytes)
    logger.info("upload_saved", path=str(path), size=size)
    return size


def validate_image(path: Path) -> str:
    """Check the file is a non-empty image Pillow can identify; return its mime type."""
    if not path.exists() or path.stat().st_size == 0:
        raise InvalidUpload("uploaded file is empty")
    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidUpload(f"uploaded file is not a readable image: {e}") from e
    with open(path, "rb") as f:
        return detect_mime_type(f.read(16))


def safe_delete(path: Path | None) -> bool:
    if path is None:
        return False
    try:
        if path.exists():
            path.unlink()
            logger.info("temp_file_deleted", path=str(path))
            return True
    except OSError as e:
        logger.error("temp_file_delete_failed", path=str(path), error=str(e))
    return False
