"""
Batch processing for rasterkit.

Applies one recorded set of chain steps to many images. Each image gets its
own OperationChain; the concurrency strategy is chosen once, when the
processor runs, from what the builder was given.
"""

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

from rasterkit.exceptions import BatchError, ValidationError
from rasterkit.utils import config, log

from .chain import OperationChain, Step, StepRecorder
from .image_loader import ImageSource, load_image
from .image_processing_interfaces import ImageType

LOGGER = log.get_logger(__name__)

THREAD_NAME_PREFIX = "rasterkit-batch"


class ConcurrencyStrategy(Enum):
    """How batch items are scheduled."""

    SEQUENTIAL = "sequential"
    FIXED_POOL = "fixed_pool"
    ELASTIC_POOL = "elastic_pool"
    CALLER_SUPPLIED = "caller_supplied"

    @property
    def system_owned(self) -> bool:
        """True when the pool is created, and therefore shut down, by rasterkit."""
        return self in {ConcurrencyStrategy.FIXED_POOL, ConcurrencyStrategy.ELASTIC_POOL}


def select_strategy(executor: Executor | None, parallelism: int, asynchronous: bool) -> ConcurrencyStrategy:
    """Pick the strategy: caller executor, then fixed pool, then the per-API default."""
    if executor is not None:
        return ConcurrencyStrategy.CALLER_SUPPLIED
    if parallelism > 1:
        return ConcurrencyStrategy.FIXED_POOL
    if asynchronous:
        return ConcurrencyStrategy.ELASTIC_POOL
    return ConcurrencyStrategy.SEQUENTIAL


@dataclass(frozen=True)
class BatchJob:
    """Everything needed to run a batch."""

    images: tuple[ImageType, ...]
    steps: tuple[Step, ...]
    parallelism: int = 1
    executor: Executor | None = None
    preserve_order: bool = True


def _failed_future(error: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(error)
    return future


class BatchProcessor:
    """Runs a BatchJob synchronously or asynchronously."""

    def __init__(self, job: BatchJob) -> None:
        self.job = job

    def process_one(self, index: int, image: ImageType) -> ImageType:
        """Run the job's steps on one image, wrapping any failure in BatchError."""
        try:
            return OperationChain(image).extend(self.job.steps).build()
        except Exception as e:
            raise BatchError(index, e) from e

    def _create_executor(self, strategy: ConcurrencyStrategy) -> Executor:
        match strategy:
            case ConcurrencyStrategy.CALLER_SUPPLIED:
                assert self.job.executor is not None
                return self.job.executor
            case ConcurrencyStrategy.FIXED_POOL:
                return ThreadPoolExecutor(max_workers=self.job.parallelism, thread_name_prefix=THREAD_NAME_PREFIX)
            case ConcurrencyStrategy.ELASTIC_POOL:
                return ThreadPoolExecutor(
                    max_workers=config.get_elastic_max_workers(), thread_name_prefix=THREAD_NAME_PREFIX
                )
            case _:
                raise ValueError(f"Strategy {strategy.name} does not use an executor")

    def _submit_all(self, executor: Executor) -> list[Future]:
        futures: list[Future] = []
        for index, image in enumerate(self.job.images):
            try:
                futures.append(executor.submit(self.process_one, index, image))
            except RuntimeError as e:
                # Executor already shut down
                futures.append(_failed_future(BatchError(index, e)))
        return futures

    def execute(self) -> list[ImageType]:
        """Process every image and return the results.

        Results follow input order unless ``preserve_order`` is off, in which
        case they arrive in completion order.

        Raises:
            BatchError: For the first failure met while collecting results.
        """
        if not self.job.images:
            return []
        strategy = select_strategy(self.job.executor, self.job.parallelism, asynchronous=False)
        LOGGER.info("Processing batch of %d image(s) with %s", len(self.job.images), strategy.name)

        if strategy is ConcurrencyStrategy.SEQUENTIAL:
            return [self.process_one(index, image) for index, image in enumerate(self.job.images)]

        executor = self._create_executor(strategy)
        try:
            futures = self._submit_all(executor)
            ordered = futures if self.job.preserve_order else as_completed(futures)
            results = [future.result() for future in ordered]
        finally:
            if strategy.system_owned:
                executor.shutdown(wait=False, cancel_futures=True)
        LOGGER.info("Batch of %d image(s) complete", len(results))
        return results

    def execute_async(self) -> list[Future]:
        """Submit every image and return one future per image, in input order.

        Never raises; failures are stored in the futures as BatchError.
        """
        if not self.job.images:
            return []
        strategy = select_strategy(self.job.executor, self.job.parallelism, asynchronous=True)
        LOGGER.info("Submitting batch of %d image(s) with %s", len(self.job.images), strategy.name)
        try:
            executor = self._create_executor(strategy)
        except (RuntimeError, ValueError) as e:
            return [_failed_future(BatchError(index, e)) for index in range(len(self.job.images))]

        futures = self._submit_all(executor)
        if strategy.system_owned:
            _shutdown_when_done(executor, futures)
        return futures

    def execute_and_join(self) -> Future:
        """Return a single future resolving to the list of all results."""
        futures = self.execute_async()
        joined: Future = Future()
        if not futures:
            joined.set_result([])
            return joined

        lock = threading.Lock()
        completed: list[Future] = []

        def on_done(future: Future) -> None:
            with lock:
                completed.append(future)
                if len(completed) < len(futures):
                    return
            _resolve_joined(joined, futures, completed if not self.job.preserve_order else futures)

        for future in futures:
            future.add_done_callback(on_done)
        return joined


def _resolve_joined(joined: Future, futures: list[Future], ordered: list[Future]) -> None:
    for index, future in enumerate(futures):
        if future.cancelled():
            joined.set_exception(BatchError(index, RuntimeError("batch item was cancelled")))
            return
        error = future.exception()
        if error is not None:
            joined.set_exception(error)
            return
    joined.set_result([future.result() for future in ordered])


def _shutdown_when_done(executor: Executor, futures: list[Future]) -> None:
    """Shut ``executor`` down once every future has finished."""
    lock = threading.Lock()
    remaining = [len(futures)]

    def on_done(_future: Future) -> None:
        with lock:
            remaining[0] -= 1
            finished = remaining[0] == 0
        if finished:
            LOGGER.debug("Batch pool drained, shutting down")
            executor.shutdown(wait=False)

    for future in futures:
        future.add_done_callback(on_done)


class BatchBuilder(StepRecorder):
    """Collects images, chain steps and concurrency settings for a batch run."""

    def __init__(self, images: Iterable[ImageType] | None = None) -> None:
        super().__init__()
        self._images: list[ImageType] = []
        self._parallelism = 1
        self._executor: Executor | None = None
        self._preserve_order = config.get_default_preserve_order()
        if images is not None:
            self.images(images)

    def images(self, images: Iterable[ImageType]) -> Self:
        """Replace the input list."""
        self._images = []
        for image in images:
            self.add_image(image)
        return self

    def add_image(self, image: ImageType) -> Self:
        if image is None:
            raise ValidationError("Batch image must not be None", field="image", operation="batch")
        self._images.append(image)
        return self

    def images_from_paths(self, sources: Iterable[ImageSource]) -> Self:
        """Decode and append images from files, bytes or streams."""
        for source in sources:
            self.add_image(load_image(source))
        return self

    def parallel(self, parallelism: int) -> Self:
        """Process with a dedicated pool of ``parallelism`` threads (1 means sequential)."""
        if isinstance(parallelism, bool) or not isinstance(parallelism, int) or parallelism < 1:
            raise ValidationError(
                f"Parallelism must be at least 1, got {parallelism!r}", field="parallelism", operation="batch"
            )
        self._parallelism = parallelism
        return self

    def executor(self, executor: Executor) -> Self:
        """Run on a caller-owned executor; rasterkit never shuts it down."""
        if executor is None:
            raise ValidationError("Executor must not be None", field="executor", operation="batch")
        self._executor = executor
        return self

    def preserve_order(self, preserve: bool = True) -> Self:
        self._preserve_order = preserve
        return self

    def configure(self, configure: Callable[[StepRecorder], Any]) -> Self:
        """Let ``configure`` append steps through the chain builder methods, at this point in the order."""
        if not callable(configure):
            raise ValidationError("configure() needs a callable", field="configure", operation="batch")
        configure(self)
        return self

    def build(self) -> BatchProcessor:
        return BatchProcessor(
            BatchJob(
                images=tuple(self._images),
                steps=self.steps,
                parallelism=self._parallelism,
                executor=self._executor,
                preserve_order=self._preserve_order,
            )
        )

    def execute(self) -> list[ImageType]:
        return self.build().execute()

    def execute_async(self) -> list[Future]:
        return self.build().execute_async()

    def execute_and_join(self) -> Future:
        return self.build().execute_and_join()
