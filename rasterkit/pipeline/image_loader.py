"""image_loader.py

Decodes images with Pillow and reads the metadata the pipeline cares about
(format and EXIF orientation).
"""

import io
import os
from typing import BinaryIO, TypeAlias

from PIL import Image

from rasterkit.exceptions import ImageLoadError
from rasterkit.utils import log

from .image_processing_interfaces import ImageData
from .orientation import ORIENTATION_TAG, ExifOrientation

LOGGER = log.get_logger(__name__)

ImageSource: TypeAlias = str | os.PathLike[str] | bytes | BinaryIO


def _describe(source: ImageSource) -> str:
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    if isinstance(source, (str, os.PathLike)):
        return os.fspath(source)
    return getattr(source, "name", None) or "<stream>"


def _open(source: ImageSource) -> Image.Image:
    name = _describe(source)
    try:
        if isinstance(source, bytes):
            return Image.open(io.BytesIO(source))
        return Image.open(source)
    except FileNotFoundError as e:
        raise ImageLoadError(f"Image file not found: {name}", source=name) from e
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"Could not load image from {name}: {e}", source=name) from e


def load_image(source: ImageSource) -> Image.Image:
    """Decode an image from a path, raw bytes or a binary stream.

    Raises:
        ImageLoadError: If the source is missing or cannot be decoded.
    """
    name = _describe(source)
    image = _open(source)
    try:
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"Error reading image {name}: {e}", source=name, image_format=image.format) from e
    LOGGER.debug("Loaded %s: %sx%s %s %s", name, image.width, image.height, image.mode, image.format)
    return image


def _orientation_of(image: Image.Image) -> ExifOrientation | None:
    tag = image.getexif().get(ORIENTATION_TAG)
    if tag is None:
        return None
    return ExifOrientation.from_tag(tag)


def read_orientation(source: Image.Image | ImageSource) -> ExifOrientation:
    """Return the EXIF orientation of ``source``; TOP_LEFT when absent or unknown."""
    if isinstance(source, Image.Image):
        return _orientation_of(source) or ExifOrientation.TOP_LEFT
    with _open(source) as image:
        return _orientation_of(image) or ExifOrientation.TOP_LEFT


def load_with_metadata(source: Image.Image | ImageSource) -> ImageData:
    """Decode ``source`` and return it with its format, EXIF block and orientation."""
    if isinstance(source, Image.Image):
        image = source
        source_path = None
    else:
        image = load_image(source)
        source_path = _describe(source) if isinstance(source, (str, os.PathLike)) else None

    orientation = _orientation_of(image)
    metadata = {"mode": image.mode, "width": image.width, "height": image.height}
    if orientation is not None:
        LOGGER.debug("EXIF orientation %s", orientation.name)
    return ImageData(
        image_data=image,
        source_path=source_path,
        source_format=image.format,
        orientation=orientation,
        exif=image.info.get("exif"),
        metadata=metadata,
    )


def supported_read_formats() -> list[str]:
    Image.init()
    return sorted(Image.OPEN)
