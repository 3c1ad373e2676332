"""Per-chain scratch raster reused across buffer-aware stages.

Pad draws its canvas straight into the chain's scratch slot when the slot
already has the size and mode it needs. Pillow's resize and transform calls
always allocate their own output, so for resize and rotate a matching slot
only receives a copy of the rendered frame: the slot object is kept stable
across steps, but no allocation is saved. The slot never holds the chain's
original source image.

The buffer also tracks which raster the chain currently owns. Rasters the
chain did not allocate itself (the source, or anything returned by a user
function) are copied before a stage draws on them in place.
"""

from PIL import Image

from rasterkit.utils import log

LOGGER = log.get_logger(__name__)


def reusable(buffer: Image.Image | None, size: tuple[int, int], mode: str) -> bool:
    """Return True when ``buffer`` can receive a ``size``/``mode`` result."""
    return buffer is not None and buffer.size == size and buffer.mode == mode


def render_into(rendered: Image.Image, buffer: Image.Image | None) -> Image.Image:
    """Copy ``rendered`` into ``buffer`` when compatible, otherwise hand ``rendered`` back.

    ``rendered`` is already a full frame, so this costs one extra copy and
    only keeps the chain's slot identity. The copy happens after rendering,
    so ``buffer`` may also be the stage input.
    """
    if rendered is buffer or not reusable(buffer, rendered.size, rendered.mode):
        return rendered
    assert buffer is not None
    buffer.paste(rendered, (0, 0))
    return buffer


class ScratchBuffer:
    """One reusable raster slot bound to a single chain."""

    def __init__(self, source: Image.Image) -> None:
        self._source = source
        self._slot: Image.Image | None = None
        self._owned: Image.Image | None = None
        self.allocations = 0
        self.reuses = 0

    @property
    def slot(self) -> Image.Image | None:
        return self._slot

    def owns(self, image: Image.Image) -> bool:
        """Return True when ``image`` was allocated by this chain and has not been handed out."""
        return image is self._owned

    def claim(self, image: Image.Image) -> None:
        """Mark ``image`` as allocated by the chain; the source is never claimed."""
        if image is not self._source:
            self._owned = image

    def expose(self, image: Image.Image) -> None:
        """Record that ``image`` was handed to code outside the chain.

        Nothing the chain holds is drawn on in place afterwards: ownership is
        dropped and, if ``image`` is the slot, the slot is detached.
        """
        self._owned = None
        if image is self._slot:
            LOGGER.debug("Scratch buffer handed out, detaching it")
            self._slot = None

    def adopt(self, result: Image.Image) -> None:
        """Record the outcome of a buffer-aware stage.

        A result that is the slot itself counts as a reuse; any other result
        that is not the original source becomes the new slot.
        """
        if result is self._slot:
            self.reuses += 1
            LOGGER.debug("Reused scratch buffer %sx%s %s", result.width, result.height, result.mode)
            return
        if result is self._source:
            return
        self._slot = result
        self.allocations += 1
        LOGGER.debug("New scratch buffer %sx%s %s", result.width, result.height, result.mode)

    def writable(self, image: Image.Image) -> Image.Image:
        """Return a raster holding ``image``'s pixels that is safe to draw on in place."""
        if self.owns(image):
            return image
        if self._slot is not image and reusable(self._slot, image.size, image.mode):
            assert self._slot is not None
            self._slot.paste(image, (0, 0))
            copy = self._slot
        else:
            copy = image.copy()
        self.adopt(copy)
        self.claim(copy)
        return copy

    def release(self) -> None:
        """Detach the slot so the last result is no longer reused by this chain."""
        self._slot = None
        self._owned = None
