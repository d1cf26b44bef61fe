"""Image encoding for transport to the OCR provider.

Turns uploaded or local image files into plain base64 strings (no data-URL
prefix) after checking that they really are images.
"""

import base64
import io
import mimetypes
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ocrnotes.errors import EncodingError, ValidationError
from ocrnotes.utils.logger import get_logger

logger = get_logger(__name__)

_BASE64_MARKER = "base64,"
_DATA_URL_MEDIA_TYPE = "image/jpeg"


def is_image_media_type(content_type: str | None) -> bool:
    """Return whether a declared media type denotes an image."""
    return bool(content_type) and content_type.lower().startswith("image/")


def strip_data_url_prefix(payload: str) -> str:
    """Remove a ``data:...;base64,`` prefix from a payload, if present."""
    if _BASE64_MARKER in payload:
        return payload.split(_BASE64_MARKER, 1)[1]
    return payload


def to_data_url(payload: str) -> str:
    """Wrap a base64 payload into the canonical JPEG data URL."""
    return f"data:{_DATA_URL_MEDIA_TYPE};base64,{strip_data_url_prefix(payload)}"


def encode_image(data: bytes, content_type: str | None) -> str:
    """Encode raw image bytes as base64.

    Args:
        data: File contents as uploaded.
        content_type: Media type declared for the file.

    Returns:
        Base64 string without a data-URL prefix.

    Raises:
        ValidationError: If the declared media type is not an image.
        EncodingError: If the bytes cannot be decoded as an image.
    """
    if not is_image_media_type(content_type):
        raise ValidationError("Please upload an image file", details=content_type)
    if not data:
        raise EncodingError("The uploaded file is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.warning("Rejected undecodable image: %s", exc)
        raise EncodingError("The uploaded file could not be read as an image", str(exc)) from exc

    return base64.b64encode(data).decode("ascii")


def encode_image_file(path: Path) -> str:
    """Encode a local image file as base64.

    The media type is guessed from the file extension.

    Args:
        path: Path to the image file.

    Returns:
        Base64 string without a data-URL prefix.
    """
    content_type, _ = mimetypes.guess_type(path.name)
    if not is_image_media_type(content_type):
        raise ValidationError("Please upload an image file", details=str(path))

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise EncodingError(f"Could not read {path}", str(exc)) from exc

    logger.debug("Encoding %s (%d bytes, %s)", path.name, len(data), content_type)
    return encode_image(data, content_type)
