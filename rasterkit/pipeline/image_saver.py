"""image_saver.py.

Encodes images with Pillow, to files, streams or bytes.
"""

import io
import os
import pathlib
from typing import Any, BinaryIO

from PIL import Image

from rasterkit.exceptions import ImageSaveError
from rasterkit.utils import log
from rasterkit.utils.image_types import has_alpha

LOGGER = log.get_logger(__name__)

DEFAULT_FORMAT = "PNG"

# Encoders that cannot store an alpha channel
_OPAQUE_FORMATS = {"JPEG", "BMP", "PPM"}


def format_from_path(path: str | os.PathLike[str]) -> str | None:
    """Return the Pillow format name registered for the file extension, if any."""
    extension = pathlib.Path(path).suffix.lower()
    return Image.registered_extensions().get(extension)


def is_writable_format(image_format: str | None) -> bool:
    if not image_format:
        return False
    Image.init()
    return image_format.upper() in Image.SAVE


def supported_write_formats() -> list[str]:
    Image.init()
    return sorted(Image.SAVE)


def _resolve_format(image_format: str | None, destination: str) -> str:
    if is_writable_format(image_format):
        assert image_format is not None
        return image_format.upper()
    LOGGER.warning("No writable format %r for %s, using %s", image_format, destination, DEFAULT_FORMAT)
    return DEFAULT_FORMAT


def _prepare(image: Image.Image, image_format: str) -> Image.Image:
    if image_format in _OPAQUE_FORMATS and (has_alpha(image) or image.mode not in {"L", "RGB"}):
        return image.convert("RGB")
    return image


def _encode(
    image: Image.Image, target: str | BinaryIO, image_format: str, exif: bytes | None, destination: str
) -> None:
    kwargs: dict[str, Any] = {}
    if exif:
        kwargs["exif"] = exif
    try:
        _prepare(image, image_format).save(target, format=image_format, **kwargs)
    except (OSError, ValueError, KeyError, TypeError) as e:
        LOGGER.error("Error writing %s image to %s", image_format, destination, exc_info=True)
        raise ImageSaveError(
            f"Could not save image to {destination}: {e}", destination=destination, image_format=image_format
        ) from e


def save_image(
    image: Image.Image,
    path: str | os.PathLike[str],
    image_format: str | None = None,
    exif: bytes | None = None,
) -> pathlib.Path:
    """Write ``image`` to ``path``; the format defaults to the file extension.

    Parent directories are created as needed. Unknown formats fall back to PNG.

    Raises:
        ImageSaveError: If encoding or writing fails.
    """
    destination = pathlib.Path(path)
    resolved = _resolve_format(image_format or format_from_path(destination), str(destination))
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ImageSaveError(
            f"Cannot create directory {destination.parent}: {e}", destination=str(destination), image_format=resolved
        ) from e
    _encode(image, str(destination), resolved, exif, str(destination))
    LOGGER.info("Saved %sx%s %s image to %s", image.width, image.height, resolved, destination)
    return destination


def write_image(
    image: Image.Image, stream: BinaryIO, image_format: str = DEFAULT_FORMAT, exif: bytes | None = None
) -> None:
    """Encode ``image`` into an open binary stream."""
    resolved = _resolve_format(image_format, "stream")
    _encode(image, stream, resolved, exif, "stream")


def to_bytes(image: Image.Image, image_format: str = DEFAULT_FORMAT, exif: bytes | None = None) -> bytes:
    """Encode ``image`` and return the encoded bytes."""
    buffer = io.BytesIO()
    write_image(image, buffer, image_format, exif)
    return buffer.getvalue()
