"""EXIF orientation tags and the transforms they imply."""

from enum import Enum

# EXIF tag id holding the orientation value
ORIENTATION_TAG = 0x0112


class ExifOrientation(Enum):
    """The eight EXIF orientation values.

    Each member carries the clockwise rotation and the mirror flips needed to
    bring the stored pixels upright. Flips are applied before the rotation.
    """

    TOP_LEFT = (1, 0, False, False)
    TOP_RIGHT = (2, 0, True, False)
    BOTTOM_RIGHT = (3, 180, False, False)
    BOTTOM_LEFT = (4, 0, False, True)
    LEFT_TOP = (5, 270, True, False)
    RIGHT_TOP = (6, 90, False, False)
    RIGHT_BOTTOM = (7, 90, True, False)
    LEFT_BOTTOM = (8, 270, False, False)

    def __init__(self, tag: int, rotation: int, flip_horizontal: bool, flip_vertical: bool) -> None:
        self.tag = tag
        self.rotation = rotation
        self.flip_horizontal = flip_horizontal
        self.flip_vertical = flip_vertical

    @property
    def requires_transformation(self) -> bool:
        return self.rotation != 0 or self.flip_horizontal or self.flip_vertical

    @property
    def swaps_dimensions(self) -> bool:
        return self.rotation in {90, 270}

    @classmethod
    def from_tag(cls, tag: int | None) -> "ExifOrientation":
        """Map an EXIF tag value to its orientation; unknown values read as TOP_LEFT."""
        for orientation in cls:
            if orientation.tag == tag:
                return orientation
        return cls.TOP_LEFT
