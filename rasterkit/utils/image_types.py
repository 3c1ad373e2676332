"""Pixel-mode and colour helpers shared by the geometric engines.

Engines work in one of three modes: ``L``, ``RGB`` or ``RGBA``. Anything
else is normalised on entry so every stage sees a predictable layout.
"""

from typing import TypeAlias

from PIL import Image, ImageColor

from rasterkit.exceptions import ValidationError

ColorLike: TypeAlias = str | int | tuple[int, int, int] | tuple[int, int, int, int]

WORKING_MODES = ("L", "RGB", "RGBA")

_ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}
_GREY_MODES = {"1", "L", "I", "I;16", "I;16L", "I;16B", "I;16N", "F"}


def has_alpha(image: Image.Image) -> bool:
    """Return True when the image carries an alpha channel or palette transparency."""
    if image.mode in _ALPHA_MODES:
        return True
    return image.mode == "P" and "transparency" in image.info


def working_mode(image: Image.Image) -> str:
    """Pick the mode an engine should operate in for ``image``."""
    if image.mode in WORKING_MODES:
        return image.mode
    if has_alpha(image):
        return "RGBA"
    if image.mode in _GREY_MODES:
        return "L"
    return "RGB"


def ensure_mode(image: Image.Image, mode: str) -> Image.Image:
    """Convert ``image`` to ``mode`` unless it is already there."""
    if image.mode == mode:
        return image
    return image.convert(mode)


def to_working_mode(image: Image.Image, transparent: bool = False) -> Image.Image:
    """Normalise ``image`` to its working mode, promoting to alpha when a transparent fill is needed."""
    mode = working_mode(image)
    if transparent:
        mode = "RGBA"
    return ensure_mode(image, mode)


def to_rgba(color: ColorLike) -> tuple[int, int, int, int]:
    """Resolve a colour value to an RGBA tuple."""
    if isinstance(color, bool):
        raise ValidationError(f"Invalid colour: {color!r}", field="color")
    if isinstance(color, int):
        if not 0 <= color <= 255:
            raise ValidationError(f"Grey level must be in [0, 255], got {color}", field="color")
        return (color, color, color, 255)
    if isinstance(color, str):
        try:
            return ImageColor.getcolor(color, "RGBA")  # type: ignore[return-value]
        except ValueError as e:
            raise ValidationError(f"Invalid colour: {color!r}", field="color") from e
    if isinstance(color, tuple) and len(color) in {3, 4}:
        if not all(isinstance(c, int) and 0 <= c <= 255 for c in color):
            raise ValidationError(f"Colour components must be ints in [0, 255], got {color!r}", field="color")
        if len(color) == 3:
            return (color[0], color[1], color[2], 255)
        return (color[0], color[1], color[2], color[3])
    raise ValidationError(f"Invalid colour: {color!r}", field="color")


def resolve_color(color: ColorLike | None, mode: str) -> int | tuple[int, ...]:
    """Express ``color`` in ``mode``; ``None`` resolves to fully transparent black."""
    red, green, blue, alpha = (0, 0, 0, 0) if color is None else to_rgba(color)
    if mode == "RGBA":
        return (red, green, blue, alpha)
    if mode == "RGB":
        return (red, green, blue)
    if mode == "L":
        # ITU-R 601-2 luma, the weights Pillow uses for RGB -> L
        return (red * 299 + green * 587 + blue * 114) // 1000
    raise ValidationError(f"Unsupported working mode: {mode}", field="mode")
