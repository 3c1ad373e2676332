"""Overlay compositing for text and image watermarks.

Each watermark is rendered onto a transparent RGBA layer the size of the
canvas, the layer's alpha is scaled by the watermark opacity, and the layer
is blended source-over onto the canvas in place.
"""

import math
from typing import assert_never

import numpy as np
from PIL import Image, ImageChops, ImageDraw, ImageFont

from rasterkit.exceptions import ProcessingError
from rasterkit.utils import log
from rasterkit.utils.image_types import ColorLike, to_rgba

from .position import background_rect, calculate_position, text_baseline
from .watermarks import Font, ImageWatermark, TextGradient, TextWatermark, Watermark

LOGGER = log.get_logger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def apply_watermark(canvas: Image.Image, watermark: Watermark) -> Image.Image:
    """Composite ``watermark`` onto ``canvas`` in place and return the canvas."""
    try:
        match watermark:
            case TextWatermark():
                layer = render_text_layer(canvas.size, watermark)
            case ImageWatermark():
                layer = render_image_layer(canvas.size, watermark)
            case _:
                assert_never(watermark)
        blend_layer(canvas, layer, watermark.opacity)
    except (OSError, ValueError, MemoryError) as e:
        LOGGER.error("Watermark compositing failed", exc_info=True)
        raise ProcessingError(f"Watermark compositing failed: {e}", operation="watermark", image_size=canvas.size) from e
    return canvas


def blend_layer(canvas: Image.Image, layer: Image.Image, opacity: float) -> None:
    """Blend an RGBA ``layer`` over ``canvas`` at ``opacity``, writing into ``canvas``."""
    if opacity <= 0.0:
        return
    if opacity < 1.0:
        layer.putalpha(layer.getchannel("A").point(lambda alpha: round(alpha * opacity)))
    if canvas.mode == "RGBA":
        canvas.alpha_composite(layer)
        return
    composed = Image.alpha_composite(canvas.convert("RGBA"), layer).convert(canvas.mode)
    canvas.paste(composed, (0, 0))


# --- text ----------------------------------------------------------------


def measure_text(text: str, font: Font) -> tuple[int, int, int]:
    """Return (width, height, ascent) of the text box for ``text`` in ``font``."""
    if isinstance(font, ImageFont.FreeTypeFont):
        ascent, descent = font.getmetrics()
        width = math.ceil(font.getlength(text))
    else:
        left, _top, right, bottom = font.getbbox(text)
        ascent, descent = int(bottom), 0
        width = int(right - left)
    return max(1, width), max(1, ascent + descent), ascent


def _text_mask(
    size: tuple[int, int], text: str, font: Font, left: int, top: int, ascent: int
) -> Image.Image:
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    if isinstance(font, ImageFont.FreeTypeFont):
        draw.text((left, text_baseline(top, ascent)), text, font=font, fill=255, anchor="ls")
    else:
        draw.text((left, top), text, font=font, fill=255)
    return mask


def _solid(size: tuple[int, int], color: ColorLike, mask: Image.Image) -> Image.Image:
    fill = Image.new("RGBA", size, to_rgba(color))
    fill.putalpha(ImageChops.multiply(fill.getchannel("A"), mask))
    return fill


def _gradient(
    size: tuple[int, int], gradient: TextGradient, box: tuple[int, int, int, int], mask: Image.Image
) -> Image.Image:
    x, y, width, height = box
    canvas_width, canvas_height = size
    start = np.array(to_rgba(gradient.start), dtype=np.float32)
    end = np.array(to_rgba(gradient.end), dtype=np.float32)
    if gradient.vertical:
        ramp = (np.arange(canvas_height, dtype=np.float32) - y) / max(height - 1, 1)
        ramp = np.clip(ramp, 0.0, 1.0)[:, np.newaxis, np.newaxis]
        ramp = np.broadcast_to(ramp, (canvas_height, canvas_width, 1))
    else:
        ramp = (np.arange(canvas_width, dtype=np.float32) - x) / max(width - 1, 1)
        ramp = np.clip(ramp, 0.0, 1.0)[np.newaxis, :, np.newaxis]
        ramp = np.broadcast_to(ramp, (canvas_height, canvas_width, 1))
    pixels = np.rint(start * (1.0 - ramp) + end * ramp).astype(np.uint8)
    fill = Image.fromarray(pixels)
    fill.putalpha(ImageChops.multiply(fill.getchannel("A"), mask))
    return fill


def render_text_layer(size: tuple[int, int], watermark: TextWatermark) -> Image.Image:
    """Draw background, shadow and text for ``watermark`` on a transparent layer."""
    font = watermark.font.load()
    width, height, ascent = measure_text(watermark.text, font)
    x, y = calculate_position(size[0], size[1], width, height, watermark.position, watermark.margin)
    LOGGER.debug("Text watermark %r box %sx%s at (%s, %s)", watermark.text, width, height, x, y)

    layer = Image.new("RGBA", size, TRANSPARENT)
    if watermark.background is not None:
        x0, y0, x1, y1 = background_rect(x, y, width, height, watermark.margin)
        ImageDraw.Draw(layer).rectangle((x0, y0, x1 - 1, y1 - 1), fill=to_rgba(watermark.background))

    if watermark.shadow is not None:
        dx, dy = watermark.shadow.offset
        shadow_mask = _text_mask(size, watermark.text, font, x + dx, y + dy, ascent)
        layer.alpha_composite(_solid(size, watermark.shadow.color, shadow_mask))

    mask = _text_mask(size, watermark.text, font, x, y, ascent)
    if watermark.gradient is not None:
        layer.alpha_composite(_gradient(size, watermark.gradient, (x, y, width, height), mask))
    else:
        layer.alpha_composite(_solid(size, watermark.color, mask))
    return layer


# --- image ---------------------------------------------------------------


def render_image_layer(size: tuple[int, int], watermark: ImageWatermark) -> Image.Image:
    """Place the scaled overlay image on a transparent layer."""
    overlay = watermark.image if watermark.image.mode == "RGBA" else watermark.image.convert("RGBA")
    scaled_size = watermark.scaled_size
    if overlay.size != scaled_size:
        overlay = overlay.resize(scaled_size, resample=Image.Resampling.LANCZOS)
    x, y = calculate_position(size[0], size[1], scaled_size[0], scaled_size[1], watermark.position, watermark.margin)
    LOGGER.debug("Image watermark %sx%s at (%s, %s)", scaled_size[0], scaled_size[1], x, y)

    layer = Image.new("RGBA", size, TRANSPARENT)
    layer.paste(overlay, (x, y))
    return layer
