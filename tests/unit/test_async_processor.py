"""Unit tests for the future-based AsyncProcessor."""

import io
from concurrent.futures import ThreadPoolExecutor

import pytest
from PIL import Image

import rasterkit
from rasterkit.exceptions import ConstructionError, ImageLoadError, ValidationError
from rasterkit.pipeline.async_processor import AsyncProcessor, completed, failed
from rasterkit.pipeline.image_processing_interfaces import ResizeMode
from rasterkit.watermark.watermarks import ImageWatermark


@pytest.fixture()
def processor():
    """A processor that owns its executor.

    Yields:
        AsyncProcessor: Shut down after the test.
    """
    with AsyncProcessor() as owned:
        yield owned


class TestFutureHelpers:
    """completed() and failed()."""

    def test_completed(self) -> None:  # noqa: PLR6301
        """completed() is already resolved with the value."""
        future = completed(7)
        assert future.done()
        assert future.result() == 7

    def test_failed(self) -> None:  # noqa: PLR6301
        """failed() is already resolved with the error."""
        error = ValueError("x")
        assert failed(error).exception() is error


class TestLoad:
    """AsyncProcessor.load()."""

    def test_in_memory_image_resolves_immediately(self, processor, make_image) -> None:  # noqa: PLR6301
        """A decoded image needs no executor round trip."""
        image = make_image(4, 4)
        future = processor.load(image)
        assert future.done()
        assert future.result() is image

    def test_none_fails_future(self, processor) -> None:  # noqa: PLR6301
        """None yields a failed future rather than raising."""
        assert isinstance(processor.load(None).exception(), ConstructionError)

    def test_bytes_are_decoded(self, processor, make_image) -> None:  # noqa: PLR6301
        """Encoded bytes are decoded on the executor."""
        buffer = io.BytesIO()
        make_image(6, 3).save(buffer, format="PNG")
        assert processor.load(buffer.getvalue()).result(timeout=5).size == (6, 3)

    def test_missing_file_fails_future(self, processor, temp_dir) -> None:  # noqa: PLR6301
        """Decoding errors are delivered through the future."""
        future = processor.load(temp_dir / "missing.png")
        assert isinstance(future.exception(timeout=5), ImageLoadError)


class TestStages:
    """process(), stage factories and then()."""

    def test_process_runs_configured_chain(self, processor, make_image) -> None:  # noqa: PLR6301
        """configure() receives the chain and its steps are run."""
        future = processor.process(make_image(20, 10), lambda chain: chain.pad(5))
        assert future.result(timeout=5).size == (30, 20)

    def test_process_error_in_future(self, processor, make_image) -> None:  # noqa: PLR6301
        """Errors raised while building are stored in the future."""
        future = processor.process(make_image(5, 5), lambda chain: chain.crop(0, 0, 10, 10))
        assert isinstance(future.exception(timeout=5), ValidationError)

    def test_resize_stage_validates_eagerly(self, processor) -> None:  # noqa: PLR6301
        """Stage factories check their arguments when called."""
        with pytest.raises(ValidationError):
            processor.resize(0, 10)

    def test_load_resize_watermark_pipeline(self, processor, make_image) -> None:  # noqa: PLR6301
        """then() chains stages; the result carries every transform."""
        overlay = make_image(10, 10, (0, 0, 255))
        future = processor.then(
            processor.then(processor.load(make_image(200, 100)), processor.resize(100, 100, ResizeMode.EXACT)),
            processor.watermark(ImageWatermark(overlay, opacity=1.0, scale=1.0)),
        )
        result = future.result(timeout=5)
        assert result.size == (100, 100)
        assert result.getpixel((95, 95)) == (0, 0, 255)
        assert result.getpixel((5, 5)) == (255, 0, 0)

    def test_then_propagates_failure(self, processor) -> None:  # noqa: PLR6301
        """A failed upstream future fails the chained one without running the stage."""
        calls = []

        def stage(image):
            calls.append(image)
            return completed(image)

        future = processor.then(failed(ValueError("upstream")), stage)
        assert isinstance(future.exception(timeout=5), ValueError)
        assert calls == []

    def test_to_file(self, processor, make_image, temp_dir) -> None:  # noqa: PLR6301
        """to_file resolves to the written path."""
        path = processor.to_file(make_image(8, 8), temp_dir / "async.png").result(timeout=5)
        assert path.exists()
        with Image.open(path) as written:
            assert written.size == (8, 8)


class TestOwnership:
    """Executor lifecycle."""

    def test_owned_executor_is_shut_down(self) -> None:  # noqa: PLR6301
        """Leaving the context shuts the processor's own pool down."""
        with AsyncProcessor() as owned:
            assert owned.owns_executor
        with pytest.raises(RuntimeError):
            owned.executor.submit(lambda: None)

    def test_caller_executor_left_running(self) -> None:  # noqa: PLR6301
        """shutdown() never stops an executor the caller supplied."""
        pool = ThreadPoolExecutor(max_workers=1)
        try:
            processor = rasterkit.async_processor(pool)
            assert not processor.owns_executor
            processor.shutdown()
            assert pool.submit(lambda: 3).result(timeout=5) == 3
        finally:
            pool.shutdown()
