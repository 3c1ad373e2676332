"""Pixel filters implemented with numpy.

Every filter takes and returns a Pillow image in its working mode. Colour
filters leave the alpha channel untouched; blur softens alpha as well.
"""

import math
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeAlias

import numpy as np
from PIL import Image

from rasterkit.exceptions import ProcessingError, ValidationError
from rasterkit.utils import log
from rasterkit.utils.image_types import ensure_mode, to_working_mode

LOGGER = log.get_logger(__name__)

FloatArray: TypeAlias = np.ndarray[Any, np.dtype[np.float32]]

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)

SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float32)
SOBEL_Y = SOBEL_X.T


class FilterKind(Enum):
    """Filters available as chain steps."""

    BLUR = "blur"
    SHARPEN = "sharpen"
    GRAYSCALE = "grayscale"
    BRIGHTNESS = "brightness"
    BRIGHTNESS_OFFSET = "brightness_offset"
    CONTRAST = "contrast"
    SEPIA = "sepia"
    EDGE_DETECT = "edge_detect"
    VIGNETTE = "vignette"
    INVERT = "invert"


# --- array helpers -------------------------------------------------------


def _split(image: Image.Image) -> tuple[FloatArray, FloatArray | None]:
    array = np.asarray(image, dtype=np.float32)
    if image.mode == "L":
        return array[..., np.newaxis], None
    if image.mode == "RGBA":
        return array[..., :3], array[..., 3]
    return array, None


def _merge(color: FloatArray, alpha: FloatArray | None) -> Image.Image:
    channels = np.clip(np.rint(color), 0, 255).astype(np.uint8)
    if channels.shape[-1] == 1:
        channels = channels[..., 0]
    if alpha is not None:
        channels = np.dstack([channels, np.clip(np.rint(alpha), 0, 255).astype(np.uint8)])
    return Image.fromarray(channels)


def _convolve(array: FloatArray, kernel: FloatArray) -> FloatArray:
    """Convolve every channel of an HxWxC array, replicating edge pixels."""
    k_height, k_width = kernel.shape
    pad_y, pad_x = k_height // 2, k_width // 2
    padded = np.pad(array, ((pad_y, pad_y), (pad_x, pad_x), (0, 0)), mode="edge")
    height, width = array.shape[:2]
    result = np.zeros_like(array)
    for dy in range(k_height):
        for dx in range(k_width):
            weight = kernel[dy, dx]
            if weight:
                result += weight * padded[dy : dy + height, dx : dx + width]
    return result


def _luma(color: FloatArray) -> FloatArray:
    if color.shape[-1] == 1:
        return color[..., 0]
    return color @ LUMA_WEIGHTS


# --- filters -------------------------------------------------------------


def gaussian_kernel(radius: float) -> FloatArray:
    """1-D Gaussian weights: odd size >= 3 covering the radius, sigma = radius / 3."""
    size = max(3, int(radius * 2 + 1))
    if size % 2 == 0:
        size += 1
    sigma = radius / 3.0
    offsets = np.arange(size, dtype=np.float32) - size // 2
    weights = np.exp(-(offsets**2) / (2.0 * sigma * sigma))
    return (weights / weights.sum()).astype(np.float32)


def blur(image: Image.Image, radius: float) -> Image.Image:
    working = to_working_mode(image)
    array = np.asarray(working, dtype=np.float32)
    if array.ndim == 2:
        array = array[..., np.newaxis]
    weights = gaussian_kernel(radius)
    array = _convolve(array, weights[np.newaxis, :])
    array = _convolve(array, weights[:, np.newaxis])
    if working.mode == "RGBA":
        return _merge(array[..., :3], array[..., 3])
    return _merge(array, None)


def sharpen(image: Image.Image, strength: float = 1.0) -> Image.Image:
    """Unsharp cross kernel: edges ``-strength``, centre ``1 + 4 * strength``."""
    color, alpha = _split(to_working_mode(image))
    kernel = np.array(
        [[0, -strength, 0], [-strength, 1 + 4 * strength, -strength], [0, -strength, 0]],
        dtype=np.float32,
    )
    return _merge(_convolve(color, kernel), alpha)


def grayscale(image: Image.Image) -> Image.Image:
    color, alpha = _split(to_working_mode(image))
    luma = _luma(color)[..., np.newaxis]
    return _merge(np.repeat(luma, color.shape[-1], axis=-1), alpha)


def brightness(image: Image.Image, factor: float) -> Image.Image:
    color, alpha = _split(to_working_mode(image))
    return _merge(color * factor, alpha)


def brightness_offset(image: Image.Image, offset: float) -> Image.Image:
    color, alpha = _split(to_working_mode(image))
    return _merge(color + offset, alpha)


def contrast(image: Image.Image, factor: float) -> Image.Image:
    color, alpha = _split(to_working_mode(image))
    return _merge(color * factor + (1.0 - factor) * 128.0, alpha)


def sepia(image: Image.Image, intensity: float = 1.0) -> Image.Image:
    if intensity == 0:
        return image
    working = to_working_mode(image)
    if working.mode == "L":
        working = ensure_mode(working, "RGB")
    color, alpha = _split(working)
    toned = color @ SEPIA_MATRIX.T
    return _merge(color * (1.0 - intensity) + toned * intensity, alpha)


def edge_detect(image: Image.Image) -> Image.Image:
    """Sobel gradient magnitude of the luma, written to every colour channel."""
    color, alpha = _split(to_working_mode(image))
    luma = _luma(color)[..., np.newaxis]
    gx = _convolve(luma, SOBEL_X)[..., 0]
    gy = _convolve(luma, SOBEL_Y)[..., 0]
    magnitude = np.hypot(gx, gy)[..., np.newaxis]
    return _merge(np.repeat(magnitude, color.shape[-1], axis=-1), alpha)


def vignette(image: Image.Image, intensity: float) -> Image.Image:
    """Darken towards the corners: factor = 1 - (distance / max distance) * intensity."""
    color, alpha = _split(to_working_mode(image))
    height, width = color.shape[:2]
    center_x, center_y = width / 2.0, height / 2.0
    max_distance = math.hypot(center_x, center_y)
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    distance = np.hypot(xs - center_x, ys - center_y)
    factor = 1.0 - (distance / max_distance) * intensity
    return _merge(color * factor[..., np.newaxis], alpha)


def invert(image: Image.Image) -> Image.Image:
    color, alpha = _split(to_working_mode(image))
    return _merge(255.0 - color, alpha)


# --- dispatch ------------------------------------------------------------


def validate_filter_amount(kind: FilterKind, amount: float | None) -> None:
    """Range checks performed when a filter step is appended."""
    if amount is not None and not math.isfinite(amount):
        raise ValidationError(f"{kind.value} amount must be finite, got {amount}", field="amount", operation=kind.value)
    match kind:
        case FilterKind.BLUR:
            if amount is None or amount <= 0:
                raise ValidationError(f"Blur radius must be positive, got {amount}", field="radius", operation="blur")
        case FilterKind.SHARPEN | FilterKind.BRIGHTNESS | FilterKind.CONTRAST:
            if amount is None or amount < 0:
                raise ValidationError(
                    f"{kind.value} factor must be non-negative, got {amount}", field="amount", operation=kind.value
                )
        case FilterKind.BRIGHTNESS_OFFSET:
            if amount is None or not -255 <= amount <= 255:
                raise ValidationError(
                    f"Brightness offset must be in [-255, 255], got {amount}", field="offset", operation=kind.value
                )
        case FilterKind.SEPIA | FilterKind.VIGNETTE:
            if amount is None or not 0.0 <= amount <= 1.0:
                raise ValidationError(
                    f"{kind.value} intensity must be in [0, 1], got {amount}", field="intensity", operation=kind.value
                )
        case FilterKind.GRAYSCALE | FilterKind.EDGE_DETECT | FilterKind.INVERT:
            pass


_FILTERS: dict[FilterKind, Callable[..., Image.Image]] = {
    FilterKind.BLUR: blur,
    FilterKind.SHARPEN: sharpen,
    FilterKind.GRAYSCALE: grayscale,
    FilterKind.BRIGHTNESS: brightness,
    FilterKind.BRIGHTNESS_OFFSET: brightness_offset,
    FilterKind.CONTRAST: contrast,
    FilterKind.SEPIA: sepia,
    FilterKind.EDGE_DETECT: edge_detect,
    FilterKind.VIGNETTE: vignette,
    FilterKind.INVERT: invert,
}


def apply_filter(image: Image.Image, kind: FilterKind, amount: float | None = None) -> Image.Image:
    """Run one filter, wrapping backend failures in ProcessingError."""
    func = _FILTERS[kind]
    try:
        result = func(image) if amount is None else func(image, amount)
    except (OSError, ValueError, MemoryError) as e:
        LOGGER.error("Filter %s failed", kind.value, exc_info=True)
        raise ProcessingError(f"Filter {kind.value} failed: {e}", operation=kind.value, image_size=image.size) from e
    LOGGER.debug("Applied filter %s (%s) to %sx%s", kind.value, amount, image.width, image.height)
    return result
