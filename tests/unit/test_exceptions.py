"""Unit tests for the rasterkit exception hierarchy."""

import pytest

from rasterkit.exceptions import (
    BatchError,
    ConstructionError,
    ImageLoadError,
    ImageSaveError,
    ProcessingError,
    RasterKitError,
    ValidationError,
)


class TestRasterKitError:
    """Base error formatting."""

    def test_plain_message(self) -> None:  # noqa: PLR6301
        """Without context the message is used as is."""
        assert str(RasterKitError("bad")) == "bad"

    def test_context_is_appended(self) -> None:  # noqa: PLR6301
        """Operation and image size are appended to the message."""
        error = ProcessingError("failed", operation="rotate", image_size=(640, 480))
        assert str(error) == "failed [operation: rotate] [image: 640x480]"
        assert error.message == "failed"

    @pytest.mark.parametrize(
        "error",
        [
            ConstructionError("x"),
            ValidationError("x"),
            ProcessingError("x"),
            BatchError(0, ValueError("x")),
            ImageLoadError("x"),
            ImageSaveError("x"),
        ],
    )
    def test_hierarchy(self, error) -> None:  # noqa: PLR6301
        """Every rasterkit error can be caught as RasterKitError."""
        assert isinstance(error, RasterKitError)


class TestSpecificErrors:
    """Extra attributes on subclasses."""

    def test_validation_field(self) -> None:  # noqa: PLR6301
        """ValidationError records the offending field."""
        error = ValidationError("too small", field="width", operation="resize")
        assert error.field == "width"
        assert "[operation: resize]" in str(error)

    def test_batch_error(self) -> None:  # noqa: PLR6301
        """BatchError names the failing index and keeps the cause."""
        cause = ValueError("decode failed")
        error = BatchError(3, cause)
        assert error.index == 3
        assert error.cause is cause
        assert str(error) == "Batch item 3 failed: decode failed"

    def test_io_errors(self) -> None:  # noqa: PLR6301
        """Load and save errors carry their source or destination and format."""
        load_error = ImageLoadError("cannot read", source="a.png", image_format="PNG")
        save_error = ImageSaveError("cannot write", destination="b.jpg", image_format="JPEG")
        assert (load_error.source, load_error.image_format, load_error.operation) == ("a.png", "PNG", "load")
        assert (save_error.destination, save_error.image_format, save_error.operation) == ("b.jpg", "JPEG", "save")
