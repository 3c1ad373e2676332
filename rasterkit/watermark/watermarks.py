"""Watermark value types.

A watermark is either a TextWatermark or an ImageWatermark. Both are frozen
dataclasses validated on construction; use ``dataclasses.replace`` (or the
``with_*`` helpers) to derive variants.
"""

import dataclasses
import math
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TypeAlias

from PIL import Image, ImageFont

from rasterkit.exceptions import ValidationError
from rasterkit.utils import config, log
from rasterkit.utils.image_types import ColorLike, to_rgba

from .position import WatermarkPosition

LOGGER = log.get_logger(__name__)

Font: TypeAlias = ImageFont.FreeTypeFont | ImageFont.ImageFont

# Font files tried when none is configured
FALLBACK_FONT_FILES = ("DejaVuSans.ttf", "Arial.ttf", "arial.ttf")


def _validate_opacity(opacity: float) -> None:
    if not (math.isfinite(opacity) and 0.0 <= opacity <= 1.0):
        raise ValidationError(f"Opacity must be in [0, 1], got {opacity}", field="opacity", operation="watermark")


def _validate_margin(margin: int) -> None:
    if margin < 0:
        raise ValidationError(f"Margin must be non-negative, got {margin}", field="margin", operation="watermark")


@lru_cache(maxsize=32)
def _load_font(path: str | None, size: int) -> Font:
    candidates = (path,) if path else FALLBACK_FONT_FILES
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            LOGGER.debug("Font %s not available", candidate)
    if path:
        LOGGER.warning("Could not load font %s, using the default font", path)
    return ImageFont.load_default(size=size)


def _configured_font_path() -> str | None:
    path = config.get_default_font_path()
    return str(path) if path else None


@dataclass(frozen=True)
class FontSpec:
    """A TrueType font file (path or name Pillow can resolve) and a pixel size."""

    path: str | None = field(default_factory=_configured_font_path)
    size: int = field(default_factory=config.get_default_font_size)

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValidationError(f"Font size must be positive, got {self.size}", field="font", operation="watermark")

    def load(self) -> Font:
        return _load_font(self.path, self.size)


@dataclass(frozen=True)
class TextShadow:
    """Drop shadow drawn under watermark text."""

    offset: tuple[int, int] = (2, 2)
    color: ColorLike = (0, 0, 0, 160)

    def __post_init__(self) -> None:
        to_rgba(self.color)


@dataclass(frozen=True)
class TextGradient:
    """Linear colour ramp used to fill watermark text."""

    start: ColorLike
    end: ColorLike
    vertical: bool = False

    def __post_init__(self) -> None:
        to_rgba(self.start)
        to_rgba(self.end)


@dataclass(frozen=True)
class TextWatermark:
    """Text overlay.

    Attributes:
        text: The string to draw; must be non-empty.
        font: Font file and size.
        color: Text colour, ignored when ``gradient`` is set.
        position: Grid cell the text box is anchored to.
        opacity: Overall opacity in [0, 1].
        margin: Distance from the canvas edge, also the background padding.
        background: Optional box colour drawn behind the text.
        shadow: Optional drop shadow.
        gradient: Optional gradient fill replacing ``color``.
    """

    text: str
    font: FontSpec = field(default_factory=FontSpec)
    color: ColorLike = "white"
    position: WatermarkPosition = WatermarkPosition.BOTTOM_RIGHT
    opacity: float = 0.7
    margin: int = 5
    background: ColorLike | None = None
    shadow: TextShadow | None = None
    gradient: TextGradient | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text:
            raise ValidationError("Watermark text must be a non-empty string", field="text", operation="watermark")
        _validate_opacity(self.opacity)
        _validate_margin(self.margin)
        to_rgba(self.color)
        if self.background is not None:
            to_rgba(self.background)

    def with_position(self, position: WatermarkPosition) -> "TextWatermark":
        return dataclasses.replace(self, position=position)

    def with_opacity(self, opacity: float) -> "TextWatermark":
        return dataclasses.replace(self, opacity=opacity)


@dataclass(frozen=True, eq=False)
class ImageWatermark:
    """Image overlay, pre-scaled by ``scale`` relative to its own size."""

    image: Image.Image
    position: WatermarkPosition = WatermarkPosition.BOTTOM_RIGHT
    opacity: float = 0.5
    scale: float = 0.25
    margin: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.image, Image.Image):
            raise ValidationError("Watermark image is required", field="image", operation="watermark")
        _validate_opacity(self.opacity)
        _validate_margin(self.margin)
        if not (math.isfinite(self.scale) and 0.0 < self.scale <= 1.0):
            raise ValidationError(f"Scale must be in (0, 1], got {self.scale}", field="scale", operation="watermark")

    @property
    def scaled_size(self) -> tuple[int, int]:
        return (
            max(1, int(self.image.width * self.scale)),
            max(1, int(self.image.height * self.scale)),
        )

    def with_position(self, position: WatermarkPosition) -> "ImageWatermark":
        return dataclasses.replace(self, position=position)

    def with_opacity(self, opacity: float) -> "ImageWatermark":
        return dataclasses.replace(self, opacity=opacity)


Watermark: TypeAlias = TextWatermark | ImageWatermark

