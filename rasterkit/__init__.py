"""rasterkit – composable raster image transformation pipeline.

Typical use::

    import rasterkit

    thumbnail = rasterkit.load("photo.jpg").resize(200, 200).pad(10, color="black").build()
"""

from concurrent.futures import Executor

from PIL import Image

from rasterkit.exceptions import (
    BatchError,
    ConstructionError,
    ImageLoadError,
    ImageSaveError,
    ProcessingError,
    RasterKitError,
    ValidationError,
)
from rasterkit.pipeline import image_loader
from rasterkit.pipeline.async_processor import AsyncProcessor
from rasterkit.pipeline.batch import BatchBuilder, BatchProcessor, ConcurrencyStrategy
from rasterkit.pipeline.chain import OperationChain
from rasterkit.pipeline.image_loader import ImageSource, supported_read_formats
from rasterkit.pipeline.image_processing_interfaces import ImageData, ImageType, ResizeMode, ResizeQuality
from rasterkit.pipeline.image_saver import supported_write_formats
from rasterkit.pipeline.orientation import ExifOrientation
from rasterkit.watermark.position import WatermarkPosition
from rasterkit.watermark.watermarks import (
    FontSpec,
    ImageWatermark,
    TextGradient,
    TextShadow,
    TextWatermark,
    Watermark,
)

__version__ = "1.0.0"


def load(source: ImageType | ImageData | ImageSource | None) -> OperationChain:
    """Start a chain from an image, an ImageData record, a file path, bytes or a stream.

    Raises:
        ConstructionError: If ``source`` is None.
        ImageLoadError: If ``source`` must be decoded and cannot be.
    """
    if source is None:
        raise ConstructionError("Source image must not be None", operation="load")
    if isinstance(source, (Image.Image, ImageData)):
        return OperationChain(source)
    return OperationChain(image_loader.load_image(source))


def load_with_metadata(source: ImageType | ImageSource | None) -> OperationChain:
    """Like load(), but keeps format and EXIF orientation so auto_rotate() can use them."""
    if source is None:
        raise ConstructionError("Source image must not be None", operation="load")
    return OperationChain(image_loader.load_with_metadata(source))


def batch(images: list[ImageType] | None = None) -> BatchBuilder:
    """Start a batch over ``images``."""
    return BatchBuilder(images)


def async_processor(executor: Executor | None = None) -> AsyncProcessor:
    """Create a future-based processor, on ``executor`` if given."""
    return AsyncProcessor(executor)


def supported_formats() -> dict[str, list[str]]:
    """Formats the installed Pillow can read and write."""
    return {"read": supported_read_formats(), "write": supported_write_formats()}


__all__ = [
    "AsyncProcessor",
    "BatchBuilder",
    "BatchError",
    "BatchProcessor",
    "ConcurrencyStrategy",
    "ConstructionError",
    "ExifOrientation",
    "FontSpec",
    "ImageData",
    "ImageLoadError",
    "ImageSaveError",
    "ImageWatermark",
    "OperationChain",
    "ProcessingError",
    "RasterKitError",
    "ResizeMode",
    "ResizeQuality",
    "TextGradient",
    "TextShadow",
    "TextWatermark",
    "ValidationError",
    "Watermark",
    "WatermarkPosition",
    "async_processor",
    "batch",
    "load",
    "load_with_metadata",
    "supported_formats",
]
