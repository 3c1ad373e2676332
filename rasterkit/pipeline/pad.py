"""Pad engine: grow the canvas and place the source inside it."""

from PIL import Image

from rasterkit.exceptions import ProcessingError, ValidationError
from rasterkit.utils import log
from rasterkit.utils.image_types import ColorLike, has_alpha, resolve_color, to_working_mode

from .scratch import reusable

LOGGER = log.get_logger(__name__)

# Largest canvas side accepted; mirrors signed 32-bit raster dimensions.
MAX_DIMENSION = 2**31 - 1


def validate_padding(top: int, right: int, bottom: int, left: int) -> None:
    """Reject padding values that are not non-negative integers."""
    for name, value in (("top", top), ("right", right), ("bottom", bottom), ("left", left)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Padding must be an integer, got {name}={value!r}", field=name, operation="pad")
        if value < 0:
            raise ValidationError(f"Padding must be non-negative, got {name}={value}", field=name, operation="pad")


def padded_dimensions(width: int, height: int, top: int, right: int, bottom: int, left: int) -> tuple[int, int]:
    """Return the padded canvas size, validating it stays within raster limits."""
    new_width = width + left + right
    new_height = height + top + bottom
    if new_width <= 0 or new_height <= 0:
        raise ValidationError(
            f"Padded dimensions must be positive, got {new_width}x{new_height}",
            operation="pad",
            image_size=(width, height),
        )
    if new_width > MAX_DIMENSION or new_height > MAX_DIMENSION:
        raise ValidationError(
            f"Padded dimensions {new_width}x{new_height} exceed the maximum of {MAX_DIMENSION}",
            operation="pad",
            image_size=(width, height),
        )
    return new_width, new_height


def pad(
    image: Image.Image,
    top: int,
    right: int,
    bottom: int,
    left: int,
    color: ColorLike | None = "white",
    buffer: Image.Image | None = None,
) -> Image.Image:
    """Add a border around ``image``.

    The border is filled with ``color``, or left fully transparent when
    ``color`` is None. The source is composited at (left, top) with
    source-over blending. Returns ``image`` itself when all paddings are zero.
    """
    validate_padding(top, right, bottom, left)
    if top == right == bottom == left == 0:
        return image

    new_size = padded_dimensions(image.width, image.height, top, right, bottom, left)
    try:
        working = to_working_mode(image, transparent=color is None)
        fill = resolve_color(color, working.mode)
        if reusable(buffer, new_size, working.mode):
            assert buffer is not None
            canvas = buffer
            canvas.paste(fill, (0, 0, new_size[0], new_size[1]))
        else:
            canvas = Image.new(working.mode, new_size, fill)

        if canvas.mode == "RGBA" and has_alpha(working):
            canvas.alpha_composite(working, dest=(left, top))
        else:
            canvas.paste(working, (left, top))
    except (OSError, ValueError, MemoryError) as e:
        LOGGER.error("Padding %sx%s failed", image.width, image.height, exc_info=True)
        raise ProcessingError(f"Padding failed: {e}", operation="pad", image_size=image.size) from e

    LOGGER.debug("Padded %sx%s -> %sx%s", image.width, image.height, *new_size)
    return canvas
