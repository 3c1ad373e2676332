"""Resize engine: target-box arithmetic and resampling."""

from PIL import Image

from rasterkit.exceptions import ProcessingError, ValidationError
from rasterkit.utils import log
from rasterkit.utils.image_types import to_working_mode

from .image_processing_interfaces import ResizeMode, ResizeQuality
from .scratch import render_into

LOGGER = log.get_logger(__name__)


def calculate_dimensions(
    source_width: int,
    source_height: int,
    target_width: int,
    target_height: int,
    mode: ResizeMode,
) -> tuple[int, int]:
    """Compute the output size for resizing a source into a target box.

    EXACT returns the box verbatim. FIT (and AUTOMATIC) scales uniformly so the
    result fits inside the box; FILL scales uniformly so the result covers it.
    Both dimensions are clamped to at least one pixel.
    """
    if mode is ResizeMode.EXACT:
        return max(1, target_width), max(1, target_height)

    source_aspect = source_width / source_height
    target_aspect = target_width / target_height
    width_bound = source_aspect > target_aspect
    if mode is ResizeMode.FILL:
        width_bound = not width_bound

    if width_bound:
        width = target_width
        height = int(target_width / source_aspect)
    else:
        height = target_height
        width = int(target_height * source_aspect)

    return max(1, width), max(1, height)


def resize(
    image: Image.Image,
    width: int,
    height: int,
    mode: ResizeMode = ResizeMode.AUTOMATIC,
    quality: ResizeQuality = ResizeQuality.MEDIUM,
    buffer: Image.Image | None = None,
) -> Image.Image:
    """Resize ``image`` into a ``width`` x ``height`` box according to ``mode``.

    Returns ``image`` itself when nothing would change.

    Raises:
        ValidationError: If either target dimension is not positive.
        ProcessingError: If Pillow fails to resample the image.
    """
    if width <= 0 or height <= 0:
        raise ValidationError(
            f"Target dimensions must be positive, got {width}x{height}",
            field="size",
            operation="resize",
            image_size=image.size,
        )
    if image.size == (width, height):
        return image

    new_size = calculate_dimensions(image.width, image.height, width, height, mode)
    LOGGER.debug(
        "Resize %sx%s into %sx%s (%s) -> %sx%s",
        image.width,
        image.height,
        width,
        height,
        mode.name,
        new_size[0],
        new_size[1],
    )
    return scale(image, new_size[0], new_size[1], quality, buffer)


def scale(
    image: Image.Image,
    width: int,
    height: int,
    quality: ResizeQuality = ResizeQuality.MEDIUM,
    buffer: Image.Image | None = None,
) -> Image.Image:
    """Resample ``image`` to exactly ``width`` x ``height``.

    ``buffer`` is reused when its size and mode match the result.
    """
    if width <= 0 or height <= 0:
        raise ValidationError(
            f"Target dimensions must be positive, got {width}x{height}",
            field="size",
            operation="scale",
            image_size=image.size,
        )
    if image.size == (width, height):
        return image

    try:
        working = to_working_mode(image)
        rendered = working.resize((width, height), resample=quality.resample)
    except (OSError, ValueError, MemoryError) as e:
        LOGGER.error("Resampling to %sx%s failed", width, height, exc_info=True)
        raise ProcessingError(f"Resampling failed: {e}", operation="scale", image_size=image.size) from e
    return render_into(rendered, buffer)
