"""Crop stage: extract a rectangular region from an image."""

from PIL import Image

from rasterkit.exceptions import ValidationError
from rasterkit.utils import log

LOGGER = log.get_logger(__name__)


def validate_crop_rect(x: int, y: int, width: int, height: int) -> None:
    """Checks that do not depend on the image: origin and size."""
    for name, value in (("x", x), ("y", y), ("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(
                f"Crop {name} must be an integer, got {value!r}",
                field="size" if name in {"width", "height"} else "origin",
                operation="crop",
            )
    if width <= 0 or height <= 0:
        raise ValidationError(
            f"Crop dimensions must be positive, got {width}x{height}", field="size", operation="crop"
        )
    if x < 0 or y < 0:
        raise ValidationError(f"Crop origin must be non-negative, got ({x}, {y})", field="origin", operation="crop")


def crop(image: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
    """Return the ``width`` x ``height`` region of ``image`` whose top-left corner is (x, y).

    Raises:
        ValidationError: If the rectangle is empty or does not lie inside the image.
    """
    validate_crop_rect(x, y, width, height)
    if x + width > image.width or y + height > image.height:
        raise ValidationError(
            f"Invalid crop area: ({x}, {y}, {width}, {height}) for image dimensions {image.width}x{image.height}",
            field="bounds",
            operation="crop",
            image_size=image.size,
        )
    LOGGER.debug("Crop %sx%s at (%s, %s) from %sx%s", width, height, x, y, image.width, image.height)
    return image.crop((x, y, x + width, y + height))
