"""Nine-cell anchor calculator for overlays."""

import math
from enum import Enum

from rasterkit.exceptions import ValidationError


class WatermarkPosition(Enum):
    """Grid cell an overlay is anchored to, as (horizontal, vertical) alignment."""

    TOP_LEFT = ("left", "top")
    TOP_CENTER = ("center", "top")
    TOP_RIGHT = ("right", "top")
    MIDDLE_LEFT = ("left", "middle")
    CENTER = ("center", "middle")
    MIDDLE_RIGHT = ("right", "middle")
    BOTTOM_LEFT = ("left", "bottom")
    BOTTOM_CENTER = ("center", "bottom")
    BOTTOM_RIGHT = ("right", "bottom")

    def __init__(self, horizontal: str, vertical: str) -> None:
        self.horizontal = horizontal
        self.vertical = vertical


def _centered(space: int) -> int:
    # int() truncates toward zero where // would floor
    return int(space / 2)


def calculate_position(
    canvas_width: int,
    canvas_height: int,
    content_width: int,
    content_height: int,
    position: WatermarkPosition,
    margin: int = 0,
) -> tuple[int, int]:
    """Top-left anchor of a ``content`` box placed at ``position`` on a canvas.

    The result may be negative when the content is larger than the canvas;
    compositing clips it.

    Raises:
        ValidationError: On non-positive dimensions or a negative margin.
    """
    if canvas_width <= 0 or canvas_height <= 0:
        raise ValidationError(
            f"Canvas dimensions must be positive, got {canvas_width}x{canvas_height}", field="canvas"
        )
    if content_width <= 0 or content_height <= 0:
        raise ValidationError(
            f"Content dimensions must be positive, got {content_width}x{content_height}", field="content"
        )
    if margin < 0:
        raise ValidationError(f"Margin must be non-negative, got {margin}", field="margin")

    match position.horizontal:
        case "left":
            x = margin
        case "center":
            x = _centered(canvas_width - content_width)
        case _:
            x = canvas_width - content_width - margin

    match position.vertical:
        case "top":
            y = margin
        case "middle":
            y = _centered(canvas_height - content_height)
        case _:
            y = canvas_height - content_height - margin

    return x, y


def text_baseline(anchor_y: int, ascent: float) -> int:
    """Baseline y for text whose box top sits at ``anchor_y``."""
    return anchor_y + math.ceil(ascent)


def background_rect(x: int, y: int, width: int, height: int, margin: int) -> tuple[int, int, int, int]:
    """Text background rectangle: the text box grown by ``margin`` on every side, as (x0, y0, x1, y1)."""
    return x - margin, y - margin, x + width + margin, y + height + margin
