"""Rotate engine plus the mirror and EXIF orientation transforms.

Positive angles rotate clockwise. Quarter turns are lossless transposes; any
other angle resamples into the axis-aligned bounding box of the rotated image.
"""

import math

from PIL import Image

from rasterkit.exceptions import ProcessingError, ValidationError
from rasterkit.utils import log
from rasterkit.utils.image_types import ColorLike, resolve_color, to_working_mode

from .orientation import ExifOrientation
from .scratch import render_into

LOGGER = log.get_logger(__name__)

EPSILON = 0.001

# Pillow's transpose constants turn counter-clockwise
_QUARTER_TURNS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def normalize_angle(degrees: float) -> float:
    """Map any finite angle into [0, 360)."""
    if not math.isfinite(degrees):
        raise ValidationError(f"Rotation angle must be finite, got {degrees}", field="degrees", operation="rotate")
    normalized = degrees % 360.0
    if normalized >= 360.0 - EPSILON:
        return 0.0
    return normalized


def _quarter_turn(normalized: float) -> int | None:
    for turn in _QUARTER_TURNS:
        if abs(normalized - turn) < EPSILON:
            return turn
    return None


def rotated_dimensions(width: int, height: int, degrees: float) -> tuple[int, int]:
    """Size of the canvas that holds a ``width`` x ``height`` image rotated by ``degrees``."""
    normalized = normalize_angle(degrees)
    if normalized < EPSILON:
        return width, height
    turn = _quarter_turn(normalized)
    if turn == 180:
        return width, height
    if turn is not None:
        return height, width
    radians = math.radians(normalized)
    cos, sin = abs(math.cos(radians)), abs(math.sin(radians))
    return int(width * cos + height * sin), int(width * sin + height * cos)


def rotate(
    image: Image.Image,
    degrees: float,
    background: ColorLike | None = "white",
    buffer: Image.Image | None = None,
) -> Image.Image:
    """Rotate ``image`` clockwise by ``degrees``.

    Args:
        image: The image to rotate.
        degrees: Clockwise angle; any finite value is accepted.
        background: Fill for the uncovered corners, None for transparent.
        buffer: Optional scratch raster reused when its size and mode match.

    Returns:
        The rotated image, or ``image`` itself for a zero rotation.
    """
    normalized = normalize_angle(degrees)
    if normalized < EPSILON:
        return image

    try:
        turn = _quarter_turn(normalized)
        if turn is not None:
            rendered = to_working_mode(image).transpose(_QUARTER_TURNS[turn])
        else:
            rendered = _rotate_arbitrary(image, normalized, background)
    except (OSError, ValueError, MemoryError) as e:
        LOGGER.error("Rotation by %s degrees failed", degrees, exc_info=True)
        raise ProcessingError(f"Rotation failed: {e}", operation="rotate", image_size=image.size) from e

    LOGGER.debug("Rotated %sx%s by %.3f -> %sx%s", image.width, image.height, normalized, *rendered.size)
    return render_into(rendered, buffer)


def _rotate_arbitrary(image: Image.Image, normalized: float, background: ColorLike | None) -> Image.Image:
    working = to_working_mode(image, transparent=background is None)
    width, height = working.size
    new_width, new_height = rotated_dimensions(width, height, normalized)
    if new_width <= 0 or new_height <= 0:
        raise ValidationError(
            f"Rotation produces an empty canvas ({new_width}x{new_height})",
            operation="rotate",
            image_size=image.size,
        )

    # Inverse map: output pixel -> source pixel, about the respective centres.
    radians = math.radians(normalized)
    cos, sin = math.cos(radians), math.sin(radians)
    half_w, half_h = new_width / 2.0, new_height / 2.0
    coefficients = (
        cos,
        sin,
        width / 2.0 - cos * half_w - sin * half_h,
        -sin,
        cos,
        height / 2.0 + sin * half_w - cos * half_h,
    )
    fill = resolve_color(background, working.mode)
    return working.transform(
        (new_width, new_height),
        Image.Transform.AFFINE,
        coefficients,
        resample=Image.Resampling.BILINEAR,
        fillcolor=fill,
    )


def flip(image: Image.Image) -> Image.Image:
    """Mirror left to right."""
    return image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)


def flop(image: Image.Image) -> Image.Image:
    """Mirror top to bottom."""
    return image.transpose(Image.Transpose.FLIP_TOP_BOTTOM)


def apply_orientation(image: Image.Image, orientation: ExifOrientation) -> Image.Image:
    """Bring an image stored with ``orientation`` upright."""
    if not orientation.requires_transformation:
        return image
    result = image
    if orientation.flip_horizontal:
        result = flip(result)
    if orientation.flip_vertical:
        result = flop(result)
    if orientation.rotation:
        result = result.transpose(_QUARTER_TURNS[orientation.rotation])
    LOGGER.debug("Applied EXIF orientation %s", orientation.name)
    return result
