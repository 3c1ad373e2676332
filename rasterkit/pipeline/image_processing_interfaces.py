"""image_processing_interfaces.py.

Defines the data structures shared by the rasterkit pipeline: the raster
type alias, the resize enumerations and the ImageData container that carries
an image together with the metadata read from its source.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

from PIL import Image

from .orientation import ORIENTATION_TAG, ExifOrientation
from .rotate import apply_orientation

# Raster images are Pillow images throughout the pipeline
ImageType: TypeAlias = Image.Image


class ResizeMode(Enum):
    """How a target box is interpreted when resizing."""

    AUTOMATIC = "automatic"
    FIT = "fit"
    FILL = "fill"
    EXACT = "exact"


class ResizeQuality(Enum):
    """Interpolation quality for resampling."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ULTRA = "ultra"

    @property
    def resample(self) -> Image.Resampling:
        """The Pillow filter used for this quality level."""
        return _RESAMPLE[self]


_RESAMPLE = {
    ResizeQuality.LOW: Image.Resampling.NEAREST,
    ResizeQuality.MEDIUM: Image.Resampling.BILINEAR,
    ResizeQuality.HIGH: Image.Resampling.BICUBIC,
    ResizeQuality.ULTRA: Image.Resampling.BICUBIC,
}


@dataclass
class ImageData:
    """Container for a decoded image and the metadata read alongside it.

    Attributes:
        image_data (ImageType): The decoded pixels.
        source_path (str | None): The file the image was read from, if any.
        source_format (str | None): The codec format name, e.g. "JPEG".
        orientation (ExifOrientation | None): EXIF orientation, None when absent.
        exif (bytes | None): Raw EXIF block, kept so it can be written back on save.
        metadata (dict[str, Any]): Free-form extra metadata.
    """

    image_data: ImageType
    source_path: str | None = None
    source_format: str | None = None
    orientation: ExifOrientation | None = None
    exif: bytes | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def width(self) -> int:
        return self.image_data.width

    @property
    def height(self) -> int:
        return self.image_data.height

    def with_image(self, image: ImageType) -> "ImageData":
        """Return a copy of this record carrying ``image`` instead."""
        return dataclasses.replace(self, image_data=image, metadata=dict(self.metadata))

    def with_auto_rotation(self) -> "ImageData":
        """Return a copy with the EXIF orientation applied to the pixels.

        The returned record reports TOP_LEFT, so applying it twice is a no-op.
        """
        if self.orientation is None or not self.orientation.requires_transformation:
            return self
        rotated = apply_orientation(self.image_data, self.orientation)
        return dataclasses.replace(
            self,
            image_data=rotated,
            orientation=ExifOrientation.TOP_LEFT,
            metadata=dict(self.metadata),
        )

    def output_exif(self) -> bytes | None:
        """Return the EXIF block to write with the pixels, or None when there is none.

        The orientation tag is rewritten to match ``orientation``, so once the
        pixels have been turned upright readers do not rotate them again.
        """
        if not self.exif:
            return None
        if self.orientation is None:
            return self.exif
        exif = Image.Exif()
        exif.load(self.exif)
        exif[ORIENTATION_TAG] = self.orientation.tag
        return exif.tobytes()
