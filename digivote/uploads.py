import base64
import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 2 * 1024 * 1024

PDF_MIME = "application/pdf"
JPEG_MIMES = ("image/jpeg", "image/jpg")


class UploadError(ValueError):
    pass


def _sniff(data: bytes) -> Optional[str]:
    if data.startswith(b"%PDF-"):
        return PDF_MIME
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            fmt = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.info("Rejected upload, not a readable image: %s", e)
        return None
    return Image.MIME.get(fmt, f"image/{(fmt or '').lower()}")


def to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def read_upload(storage, limit: int = MAX_UPLOAD_BYTES, photo_only: bool = False) -> Tuple[Optional[str], Optional[str]]:
    """Validate an uploaded file and encode it as a data URL.

    ``storage`` is a werkzeug ``FileStorage`` (or anything with ``read()``).
    Returns ``(data_url, filename)``, or ``(None, None)`` when nothing was uploaded.
    ``photo_only`` restricts the accepted types to JPEG and PDF.
    Raises ``UploadError`` for anything else.
    """
    if storage is None or not getattr(storage, "filename", None):
        return None, None
    data = storage.read(limit + 1)
    if not data:
        return None, None
    if len(data) > limit:
        raise UploadError(f"File size must be less than {limit // (1024 * 1024)}MB")
    mime = _sniff(data)
    if mime is None:
        raise UploadError("Please upload an image or PDF file")
    if photo_only and mime not in JPEG_MIMES + (PDF_MIME,):
        raise UploadError("Please upload a JPG or PDF file")
    return to_data_url(data, mime), storage.filename
