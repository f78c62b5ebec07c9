import mimetypes
import secrets

from clipstore.core.exceptions import BadRequestError, UnsupportedMediaTypeError
from clipstore.media.prober import AspectRatioLabel

VIDEO_EXTENSION = ".mp4"
THUMBNAIL_TYPES = ("image/jpeg", "image/png")


def random_token() -> str:
    # 32 bytes -> 256 bits, URL-safe base64 without padding
    return secrets.token_urlsafe(32)


def media_type(content_type: str) -> str:
    """Strips parameters from a Content-Type value, e.g. ``video/mp4; codecs=...``."""
    if not content_type or not content_type.strip():
        raise BadRequestError("Missing Content-Type for the file")
    value = content_type.split(";", 1)[0].strip().lower()
    if value.count("/") != 1 or value.startswith("/") or value.endswith("/"):
        raise BadRequestError("Invalid Content-Type for the file", detail=content_type)
    return value


def video_key(label: AspectRatioLabel) -> str:
    return f"{label.value}{random_token()}{VIDEO_EXTENSION}"


def thumbnail_extension(content_type: str) -> str:
    mtype = media_type(content_type)
    if mtype not in THUMBNAIL_TYPES:
        raise UnsupportedMediaTypeError("Thumbnail must be a JPEG or PNG image", detail=mtype)

    extension = mimetypes.guess_extension(mtype)
    if not extension:
        raise UnsupportedMediaTypeError(detail=f"no registered extension for {mtype}")
    return extension


def thumbnail_filename(content_type: str) -> str:
    return f"{random_token()}{thumbnail_extension(content_type)}"
