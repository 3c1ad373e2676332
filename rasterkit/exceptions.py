"""exceptions.py

Defines custom exception classes for rasterkit, providing clear error types
for chain construction, argument validation, pixel processing, batch
execution and codec I/O.

All exceptions inherit from RasterKitError, allowing for unified error handling.
"""


class RasterKitError(Exception):
    """Base class for all rasterkit errors.

    Carries optional context about the operation that failed and the size of
    the image it was working on.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        image_size: tuple[int, int] | None = None,
    ) -> None:
        """Initialize the error with optional operation context.

        Args:
            message (str): A description of the error.
            operation (str | None): Name of the operation that failed, if known.
            image_size (tuple[int, int] | None): (width, height) of the image involved.
        """
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.image_size = image_size

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"[operation: {self.operation}]")
        if self.image_size:
            parts.append(f"[image: {self.image_size[0]}x{self.image_size[1]}]")
        return " ".join(parts)


class ConstructionError(RasterKitError):  # pylint: disable=too-few-public-methods
    """Raised when an operation chain is created without a source image."""


class ValidationError(RasterKitError):
    """Raised when an argument is outside its valid range.

    Covers non-positive dimensions, negative padding, opacity or scale out of
    range, empty required fields and crop rectangles that exceed the image.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        operation: str | None = None,
        image_size: tuple[int, int] | None = None,
    ) -> None:
        super().__init__(message, operation=operation, image_size=image_size)
        self.field = field


class ProcessingError(RasterKitError):  # pylint: disable=too-few-public-methods
    """Raised when a transform fails for environmental reasons (memory, codec, backend)."""


class BatchError(RasterKitError):
    """Wraps the failure of a single image inside a batch run."""

    def __init__(self, index: int, cause: BaseException) -> None:
        """Initialize a BatchError.

        Args:
            index (int): Position of the failing image in the batch input.
            cause (BaseException): The underlying per-image error.
        """
        super().__init__(f"Batch item {index} failed: {cause}")
        self.index = index
        self.cause = cause


class ImageLoadError(RasterKitError):
    """Raised when an image cannot be read or decoded."""

    def __init__(self, message: str, source: str | None = None, image_format: str | None = None) -> None:
        super().__init__(message, operation="load")
        self.source = source
        self.image_format = image_format


class ImageSaveError(RasterKitError):
    """Raised when an image cannot be encoded or written."""

    def __init__(self, message: str, destination: str | None = None, image_format: str | None = None) -> None:
        super().__init__(message, operation="save")
        self.destination = destination
        self.image_format = image_format
