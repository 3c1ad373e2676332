"""Operation chain: an ordered list of immutable steps bound to one source image.

Builder calls validate their arguments and append a step; ``build()`` folds
the steps over the source in append order. Resize mode and quality are
captured by each step when it is appended, so a later ``mode()`` call never
changes an earlier resize.
"""

import math
import pathlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Self, TypeAlias, TypeVar, assert_never

from PIL import Image

from rasterkit.exceptions import ConstructionError, ProcessingError, RasterKitError, ValidationError
from rasterkit.utils import config, log
from rasterkit.utils.image_types import ColorLike, to_rgba, to_working_mode
from rasterkit.watermark.compositor import apply_watermark
from rasterkit.watermark.position import WatermarkPosition
from rasterkit.watermark.watermarks import ImageWatermark, TextWatermark, Watermark

from . import crop as crop_engine
from . import pad as pad_engine
from . import resize as resize_engine
from . import rotate as rotate_engine
from .filters import FilterKind, apply_filter, validate_filter_amount
from .image_processing_interfaces import ImageData, ImageType, ResizeMode, ResizeQuality
from .image_saver import save_image, to_bytes, write_image
from .scratch import ScratchBuffer

LOGGER = log.get_logger(__name__)


# --- steps ---------------------------------------------------------------


@dataclass(frozen=True)
class ResizeStep:
    width: int
    height: int
    mode: ResizeMode
    quality: ResizeQuality


@dataclass(frozen=True)
class ScaleStep:
    factor: float
    quality: ResizeQuality


@dataclass(frozen=True)
class CropStep:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class RotateStep:
    degrees: float
    background: ColorLike | None


@dataclass(frozen=True)
class PadStep:
    top: int
    right: int
    bottom: int
    left: int
    color: ColorLike | None


@dataclass(frozen=True)
class FlipStep:
    horizontal: bool


@dataclass(frozen=True)
class AutoRotateStep:
    """Apply the source's EXIF orientation, once."""


@dataclass(frozen=True)
class FilterStep:
    kind: FilterKind
    amount: float | None = None


@dataclass(frozen=True)
class WatermarkStep:
    watermark: Watermark


@dataclass(frozen=True)
class FunctionStep:
    func: Callable[[ImageType], ImageType]
    name: str


Step: TypeAlias = (
    ResizeStep
    | ScaleStep
    | CropStep
    | RotateStep
    | PadStep
    | FlipStep
    | AutoRotateStep
    | FilterStep
    | WatermarkStep
    | FunctionStep
)


def _require_positive_int(value: int, field: str, operation: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer, got {value!r}", field=field, operation=operation)


E = TypeVar("E", bound=Enum)


def _resolve_choice(choice_type: type[E], value: E | str, field: str) -> E:
    """Accept an enum member, its value or its name (any case)."""
    if isinstance(value, choice_type):
        return value
    if isinstance(value, str):
        for member in choice_type:
            if value.lower() in {member.value, member.name.lower()}:
                return member
    choices = ", ".join(member.name for member in choice_type)
    raise ValidationError(f"{field} must be one of {choices}, got {value!r}", field=field, operation=field)


def _expand_padding(
    top: int, right: int | None, bottom: int | None, left: int | None
) -> tuple[int, int, int, int]:
    """CSS-style shorthand: 1, 2, 3 or 4 values."""
    if right is None:
        if bottom is not None or left is not None:
            raise ValidationError("Padding shorthand needs values in order", field="padding", operation="pad")
        return top, top, top, top
    if bottom is None:
        if left is not None:
            raise ValidationError("Padding shorthand needs values in order", field="padding", operation="pad")
        return top, right, top, right
    if left is None:
        return top, right, bottom, right
    return top, right, bottom, left


# --- builder -------------------------------------------------------------


class StepRecorder:
    """Validating builder methods shared by single-image chains and batches.

    Subclasses receive each validated step through ``_append``.
    """

    def __init__(self) -> None:
        self._steps: list[Step] = []
        self._mode = ResizeMode[config.get_default_resize_mode()]
        self._quality = ResizeQuality[config.get_default_resize_quality()]

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def current_mode(self) -> ResizeMode:
        return self._mode

    @property
    def current_quality(self) -> ResizeQuality:
        return self._quality

    def _append(self, step: Step) -> Self:
        LOGGER.debug("Append %s", step)
        self._steps.append(step)
        return self

    def extend(self, steps: Iterable[Step]) -> Self:
        """Append already validated steps, e.g. those recorded by another builder."""
        for step in steps:
            self._append(step)
        return self

    # geometry

    def mode(self, mode: ResizeMode | str) -> Self:
        """Set the resize mode used by resize steps appended after this call."""
        self._mode = _resolve_choice(ResizeMode, mode, "mode")
        return self

    def quality(self, quality: ResizeQuality | str) -> Self:
        """Set the resampling quality used by resize and scale steps appended after this call."""
        self._quality = _resolve_choice(ResizeQuality, quality, "quality")
        return self

    def resize(
        self,
        width: int,
        height: int,
        mode: ResizeMode | str | None = None,
        quality: ResizeQuality | str | None = None,
    ) -> Self:
        _require_positive_int(width, "width", "resize")
        _require_positive_int(height, "height", "resize")
        return self._append(
            ResizeStep(
                width,
                height,
                self._mode if mode is None else _resolve_choice(ResizeMode, mode, "mode"),
                self._quality if quality is None else _resolve_choice(ResizeQuality, quality, "quality"),
            )
        )

    def scale(self, factor: float) -> Self:
        if not (math.isfinite(factor) and factor > 0):
            raise ValidationError(f"Scale factor must be positive, got {factor}", field="factor", operation="scale")
        return self._append(ScaleStep(factor, self._quality))

    def crop(self, x: int, y: int, width: int, height: int) -> Self:
        crop_engine.validate_crop_rect(x, y, width, height)
        return self._append(CropStep(x, y, width, height))

    def rotate(self, degrees: float, background: ColorLike | None = "white") -> Self:
        """Rotate clockwise; ``background=None`` leaves the corners transparent."""
        rotate_engine.normalize_angle(degrees)
        if background is not None:
            to_rgba(background)
        return self._append(RotateStep(degrees, background))

    def pad(
        self,
        top: int,
        right: int | None = None,
        bottom: int | None = None,
        left: int | None = None,
        *,
        color: ColorLike | None = "white",
    ) -> Self:
        """Add a border; ``color=None`` leaves it transparent."""
        sides = _expand_padding(top, right, bottom, left)
        pad_engine.validate_padding(*sides)
        if color is not None:
            to_rgba(color)
        return self._append(PadStep(*sides, color=color))

    def flip(self) -> Self:
        """Mirror left to right."""
        return self._append(FlipStep(horizontal=True))

    def flop(self) -> Self:
        """Mirror top to bottom."""
        return self._append(FlipStep(horizontal=False))

    def auto_rotate(self) -> Self:
        """Bring the image upright according to its EXIF orientation, if it has one."""
        return self._append(AutoRotateStep())

    # overlays

    def watermark(
        self,
        watermark: Watermark | str | Image.Image,
        position: WatermarkPosition | None = None,
        opacity: float | None = None,
    ) -> Self:
        """Add a watermark. Strings become text watermarks, images become image watermarks."""
        if watermark is None:
            raise ValidationError("Watermark must not be None", field="watermark", operation="watermark")
        if isinstance(watermark, str):
            watermark = TextWatermark(watermark)
        elif isinstance(watermark, Image.Image):
            watermark = ImageWatermark(watermark)
        elif not isinstance(watermark, (TextWatermark, ImageWatermark)):
            raise ValidationError(
                f"Unsupported watermark type {type(watermark).__name__}", field="watermark", operation="watermark"
            )
        if position is not None:
            watermark = watermark.with_position(position)
        if opacity is not None:
            watermark = watermark.with_opacity(opacity)
        return self._append(WatermarkStep(watermark))

    # filters

    def _filter(self, kind: FilterKind, amount: float | None = None) -> Self:
        validate_filter_amount(kind, amount)
        return self._append(FilterStep(kind, amount))

    def blur(self, radius: float) -> Self:
        return self._filter(FilterKind.BLUR, radius)

    def sharpen(self, strength: float = 1.0) -> Self:
        return self._filter(FilterKind.SHARPEN, strength)

    def grayscale(self) -> Self:
        return self._filter(FilterKind.GRAYSCALE)

    def brightness(self, factor: float) -> Self:
        return self._filter(FilterKind.BRIGHTNESS, factor)

    def brightness_offset(self, offset: float) -> Self:
        return self._filter(FilterKind.BRIGHTNESS_OFFSET, offset)

    def contrast(self, factor: float) -> Self:
        return self._filter(FilterKind.CONTRAST, factor)

    def sepia(self, intensity: float = 1.0) -> Self:
        return self._filter(FilterKind.SEPIA, intensity)

    def edge_detect(self) -> Self:
        return self._filter(FilterKind.EDGE_DETECT)

    def vignette(self, intensity: float = 0.5) -> Self:
        return self._filter(FilterKind.VIGNETTE, intensity)

    def invert(self) -> Self:
        return self._filter(FilterKind.INVERT)

    def apply(self, func: Callable[[ImageType], ImageType], name: str | None = None) -> Self:
        """Append an arbitrary image -> image function."""
        if not callable(func):
            raise ValidationError("apply() needs a callable", field="func", operation="apply")
        return self._append(FunctionStep(func, name or getattr(func, "__name__", "function")))


class OperationChain(StepRecorder):
    """Steps to run over one source image, consumed by a single ``build()``."""

    def __init__(self, source: ImageType | ImageData | None) -> None:
        if source is None:
            raise ConstructionError("Source image must not be None", operation="load")
        image_data = source if isinstance(source, ImageData) else ImageData(image_data=source)
        if not isinstance(image_data.image_data, Image.Image):
            raise ConstructionError(f"Unsupported source type {type(image_data.image_data).__name__}", operation="load")
        super().__init__()
        self._image_data = image_data
        self._source = image_data.image_data
        self._orientation = image_data.orientation
        self._consumed = False
        self.scratch = ScratchBuffer(self._source)

    @property
    def source(self) -> ImageType:
        return self._source

    @property
    def image_data(self) -> ImageData:
        return self._image_data

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _append(self, step: Step) -> Self:
        if self._consumed:
            raise ProcessingError("Cannot add steps to a chain that has already been built")
        return super()._append(step)

    # execution

    def build(self) -> ImageType:
        """Run every step over the source and return the result.

        Raises:
            ValidationError: If a step's arguments do not fit the actual image.
            ProcessingError: If a transform fails, or the chain was already built.
        """
        if self._consumed:
            raise ProcessingError("Operation chain has already been built")
        self._consumed = True

        image = self._source
        LOGGER.debug("Building %d step(s) on %sx%s %s", len(self._steps), image.width, image.height, image.mode)
        try:
            for index, step in enumerate(self._steps):
                try:
                    image = self._run_step(step, image)
                except RasterKitError as e:
                    LOGGER.error("Step %d/%d (%s) failed: %s", index + 1, len(self._steps), type(step).__name__, e)
                    raise
        finally:
            self.scratch.release()
        LOGGER.debug("Built %sx%s %s", image.width, image.height, image.mode)
        return image

    def _run_step(self, step: Step, image: ImageType) -> ImageType:
        buffer = self.scratch.slot
        match step:
            case ResizeStep(width=width, height=height, mode=mode, quality=quality):
                result = resize_engine.resize(image, width, height, mode, quality, buffer=buffer)
                self.scratch.adopt(result)
            case ScaleStep(factor=factor, quality=quality):
                width, height = int(image.width * factor), int(image.height * factor)
                if width <= 0 or height <= 0:
                    raise ValidationError(
                        f"Scale factor {factor} yields an empty image ({width}x{height})",
                        field="factor",
                        operation="scale",
                        image_size=image.size,
                    )
                result = resize_engine.scale(image, width, height, quality, buffer=buffer)
                self.scratch.adopt(result)
            case CropStep(x=x, y=y, width=width, height=height):
                result = crop_engine.crop(image, x, y, width, height)
            case RotateStep(degrees=degrees, background=background):
                result = rotate_engine.rotate(image, degrees, background, buffer=buffer)
                self.scratch.adopt(result)
            case PadStep(top=top, right=right, bottom=bottom, left=left, color=color):
                result = pad_engine.pad(image, top, right, bottom, left, color, buffer=buffer)
                self.scratch.adopt(result)
            case FlipStep(horizontal=horizontal):
                result = rotate_engine.flip(image) if horizontal else rotate_engine.flop(image)
            case AutoRotateStep():
                upright = ImageData(image_data=image, orientation=self._orientation).with_auto_rotation()
                result, self._orientation = upright.image_data, upright.orientation
            case FilterStep(kind=kind, amount=amount):
                result = apply_filter(image, kind, amount)
            case WatermarkStep(watermark=watermark):
                working = to_working_mode(image)
                if working is not image:
                    self.scratch.claim(working)
                canvas = self.scratch.writable(working)
                result = apply_watermark(canvas, watermark)
            case FunctionStep(func=func, name=name):
                self.scratch.expose(image)
                result = func(image)
                if not isinstance(result, Image.Image):
                    raise ProcessingError(f"Function step {name} did not return an image", operation=name)
                # The caller may still hold whatever the function returned.
                return result
            case _:
                assert_never(step)
        if result is not image:
            self.scratch.claim(result)
        return result

    def build_with_metadata(self) -> ImageData:
        """Build and return the result together with the source metadata.

        The orientation reported is TOP_LEFT once ``auto_rotate()`` has run.
        """
        image = self.build()
        result = self._image_data.with_image(image)
        result.orientation = self._orientation
        return result

    def to_file(self, path: str | pathlib.Path, image_format: str | None = None) -> pathlib.Path:
        """Build and write the result; the format defaults to the file extension."""
        return save_image(self.build(), path, image_format)

    def to_stream(self, stream: BinaryIO, image_format: str = "PNG") -> None:
        write_image(self.build(), stream, image_format)

    def to_bytes(self, image_format: str = "PNG") -> bytes:
        return to_bytes(self.build(), image_format)

    # outputs that carry the source EXIF block along

    def to_file_with_metadata(self, path: str | pathlib.Path, image_format: str | None = None) -> pathlib.Path:
        """Like ``to_file()``, writing the source EXIF back with the orientation kept in sync."""
        result = self.build_with_metadata()
        return save_image(result.image_data, path, image_format, exif=result.output_exif())

    def to_stream_with_metadata(self, stream: BinaryIO, image_format: str = "PNG") -> None:
        result = self.build_with_metadata()
        write_image(result.image_data, stream, image_format, exif=result.output_exif())

    def to_bytes_with_metadata(self, image_format: str = "PNG") -> bytes:
        result = self.build_with_metadata()
        return to_bytes(result.image_data, image_format, exif=result.output_exif())
