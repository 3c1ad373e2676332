"""Future-based processing API.

Every method returns a ``concurrent.futures.Future`` (or a stage callable
that does), so loading, transforming and saving can be composed without
blocking the caller.
"""

import os
import pathlib
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, TypeAlias

from PIL import Image

from rasterkit.exceptions import ConstructionError
from rasterkit.utils import config, log
from rasterkit.watermark.watermarks import Watermark

from .chain import OperationChain, StepRecorder
from .image_loader import ImageSource, load_image
from .image_processing_interfaces import ImageType, ResizeMode, ResizeQuality
from .image_saver import save_image

LOGGER = log.get_logger(__name__)

Stage: TypeAlias = Callable[[ImageType], Future]
Configure: TypeAlias = Callable[[OperationChain], Any]


def completed(value: Any) -> Future:
    """Return an already resolved future."""
    future: Future = Future()
    future.set_result(value)
    return future


def failed(error: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(error)
    return future


class AsyncProcessor:
    """Runs chains on an executor.

    Without an executor argument a thread pool is created and owned by this
    processor; ``shutdown()`` only ever stops a pool the processor owns.
    """

    def __init__(self, executor: Executor | None = None) -> None:
        if executor is None:
            self._executor: Executor = ThreadPoolExecutor(
                max_workers=config.get_elastic_max_workers(), thread_name_prefix="rasterkit-async"
            )
            self._owns_executor = True
        else:
            self._executor = executor
            self._owns_executor = False

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def owns_executor(self) -> bool:
        return self._owns_executor

    def load(self, source: ImageType | ImageSource | None) -> Future:
        """Resolve to a decoded image; an in-memory image resolves immediately."""
        if source is None:
            return failed(ConstructionError("Source image must not be None", operation="load"))
        if isinstance(source, Image.Image):
            return completed(source)
        return self._executor.submit(load_image, source)

    def process(self, image: ImageType, configure: Configure) -> Future:
        """Build a chain for ``image``, let ``configure`` add steps, and run it."""

        def run() -> ImageType:
            chain = OperationChain(image)
            configure(chain)
            return chain.build()

        return self._executor.submit(run)

    def _stage(self, recorder: StepRecorder) -> Stage:
        steps = recorder.steps
        return lambda image: self.process(image, lambda chain: chain.extend(steps))

    def resize(
        self,
        width: int,
        height: int,
        mode: ResizeMode | None = None,
        quality: ResizeQuality | None = None,
    ) -> Stage:
        """Return a stage that resizes its input; arguments are validated now."""
        return self._stage(StepRecorder().resize(width, height, mode, quality))

    def watermark(self, watermark: Watermark | str) -> Stage:
        """Return a stage that watermarks its input."""
        return self._stage(StepRecorder().watermark(watermark))

    def then(self, future: Future, stage: Stage) -> Future:
        """Feed the result of ``future`` into ``stage`` once it resolves."""
        chained: Future = Future()

        def forward(inner: Future) -> None:
            if inner.cancelled():
                chained.cancel()
                return
            error = inner.exception()
            if error is not None:
                chained.set_exception(error)
            else:
                chained.set_result(inner.result())

        def start(outer: Future) -> None:
            if outer.cancelled():
                chained.cancel()
                return
            error = outer.exception()
            if error is not None:
                chained.set_exception(error)
                return
            try:
                stage(outer.result()).add_done_callback(forward)
            except RuntimeError as e:
                chained.set_exception(e)

        future.add_done_callback(start)
        return chained

    def to_file(
        self, image: ImageType, path: str | os.PathLike[str], image_format: str | None = None
    ) -> Future:
        """Resolve to the written path."""
        return self._executor.submit(save_image, image, pathlib.Path(path), image_format)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        if not self._owns_executor:
            LOGGER.debug("Executor is caller-owned, leaving it running")
            return
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)

    def __enter__(self) -> "AsyncProcessor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
