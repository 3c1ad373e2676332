"""Unit tests for image loading and saving."""

import io

import pytest
from PIL import Image

import rasterkit
from rasterkit.exceptions import ImageLoadError, ImageSaveError
from rasterkit.pipeline.image_processing_interfaces import ImageData
from rasterkit.pipeline.image_loader import load_image, load_with_metadata, read_orientation, supported_read_formats
from rasterkit.pipeline.image_saver import (
    DEFAULT_FORMAT,
    format_from_path,
    is_writable_format,
    save_image,
    supported_write_formats,
    to_bytes,
    write_image,
)
from rasterkit.pipeline.orientation import ORIENTATION_TAG, ExifOrientation


@pytest.fixture()
def rotated_jpeg(temp_dir):
    """A 40x20 JPEG tagged with EXIF orientation 6.

    Returns:
        pathlib.Path: The file path.
    """
    exif = Image.Exif()
    exif[ORIENTATION_TAG] = 6
    path = temp_dir / "rotated.jpg"
    Image.new("RGB", (40, 20), (200, 10, 10)).save(path, exif=exif)
    return path


class TestLoadImage:
    """load_image() sources and failures."""

    def test_load_from_path(self, temp_dir, make_image) -> None:  # noqa: PLR6301
        """Paths (str or Path) are decoded."""
        path = temp_dir / "in.png"
        make_image(12, 7).save(path)
        assert load_image(path).size == (12, 7)
        assert load_image(str(path)).format == "PNG"

    def test_load_from_bytes_and_stream(self, make_image) -> None:  # noqa: PLR6301
        """Raw bytes and binary streams are accepted."""
        data = to_bytes(make_image(3, 4))
        assert load_image(data).size == (3, 4)
        assert load_image(io.BytesIO(data)).size == (3, 4)

    def test_missing_file(self, temp_dir) -> None:  # noqa: PLR6301
        """A missing path raises ImageLoadError naming the source."""
        with pytest.raises(ImageLoadError) as exc_info:
            load_image(temp_dir / "nope.png")
        assert "nope.png" in exc_info.value.source

    def test_garbage_bytes(self) -> None:  # noqa: PLR6301
        """Undecodable data raises ImageLoadError."""
        with pytest.raises(ImageLoadError):
            load_image(b"definitely not an image")

    def test_read_formats(self) -> None:  # noqa: PLR6301
        """Common formats are readable."""
        formats = supported_read_formats()
        assert {"PNG", "JPEG"} <= set(formats)


class TestMetadata:
    """EXIF orientation and metadata."""

    def test_orientation_read(self, rotated_jpeg) -> None:  # noqa: PLR6301
        """The orientation tag is decoded into ExifOrientation."""
        assert read_orientation(rotated_jpeg) is ExifOrientation.RIGHT_TOP
        data = load_with_metadata(rotated_jpeg)
        assert data.orientation is ExifOrientation.RIGHT_TOP
        assert data.source_format == "JPEG"
        assert data.source_path == str(rotated_jpeg)
        assert data.exif
        assert data.metadata["width"] == 40

    def test_missing_orientation(self, make_image) -> None:  # noqa: PLR6301
        """Images without EXIF read as upright, and the record leaves orientation unset."""
        image = make_image(5, 5)
        assert read_orientation(image) is ExifOrientation.TOP_LEFT
        assert load_with_metadata(image).orientation is None

    def test_load_with_metadata_then_auto_rotate(self, rotated_jpeg) -> None:  # noqa: PLR6301
        """The public helper keeps the orientation so auto_rotate can apply it."""
        result = rasterkit.load_with_metadata(rotated_jpeg).auto_rotate().build()
        assert result.size == (20, 40)

    def test_plain_load_ignores_orientation(self, rotated_jpeg) -> None:  # noqa: PLR6301
        """load() does not carry orientation, so auto_rotate is a no-op."""
        assert rasterkit.load(rotated_jpeg).auto_rotate().build().size == (40, 20)


class TestSaveImage:
    """Encoding and writing."""

    @pytest.mark.parametrize(
        "name, expected",
        [("a.png", "PNG"), ("a.JPG", "JPEG"), ("a.jpeg", "JPEG"), ("a.bmp", "BMP"), ("a.unknownext", None)],
    )
    def test_format_from_path(self, name, expected) -> None:  # noqa: PLR6301
        """Extensions map to Pillow format names, case-insensitively."""
        assert format_from_path(name) == expected

    def test_writable_formats(self) -> None:  # noqa: PLR6301
        """Format checks are case-insensitive and reject blanks."""
        assert is_writable_format("png")
        assert not is_writable_format("")
        assert not is_writable_format(None)
        assert not is_writable_format("NOT_A_FORMAT")
        assert "PNG" in supported_write_formats()

    def test_save_creates_parents(self, make_image, temp_dir) -> None:  # noqa: PLR6301
        """Missing parent directories are created."""
        path = save_image(make_image(4, 4), temp_dir / "a" / "b" / "out.png")
        assert path.exists()

    def test_alpha_dropped_for_jpeg(self, temp_dir) -> None:  # noqa: PLR6301
        """JPEG output of an RGBA image is flattened to RGB."""
        path = save_image(Image.new("RGBA", (4, 4), (10, 20, 30, 128)), temp_dir / "alpha.jpg")
        with Image.open(path) as written:
            assert written.mode == "RGB"

    def test_unknown_format_falls_back_to_png(self, make_image, temp_dir) -> None:  # noqa: PLR6301
        """An unknown extension is written as PNG."""
        path = save_image(make_image(4, 4), temp_dir / "out.unknownext")
        with Image.open(path) as written:
            assert written.format == DEFAULT_FORMAT

    def test_explicit_format_wins(self, make_image, temp_dir) -> None:  # noqa: PLR6301
        """An explicit format overrides the extension."""
        path = save_image(make_image(4, 4), temp_dir / "out.png", "bmp")
        with Image.open(path) as written:
            assert written.format == "BMP"

    def test_exif_written_back(self, rotated_jpeg, temp_dir) -> None:  # noqa: PLR6301
        """EXIF bytes passed to save_image end up in the file."""
        data = load_with_metadata(rotated_jpeg)
        path = save_image(data.image_data, temp_dir / "copy.jpg", exif=data.exif)
        assert read_orientation(path) is ExifOrientation.RIGHT_TOP

    def test_unwritable_destination(self, make_image, temp_dir) -> None:  # noqa: PLR6301
        """A destination under a regular file cannot be created."""
        blocker = temp_dir / "file"
        blocker.write_text("x")
        with pytest.raises(ImageSaveError):
            save_image(make_image(4, 4), blocker / "out.png")

    def test_write_image_to_stream(self, make_image) -> None:  # noqa: PLR6301
        """write_image encodes into an open stream."""
        stream = io.BytesIO()
        write_image(make_image(4, 4), stream, "JPEG")
        assert stream.getvalue()[:2] == b"\xff\xd8"


class TestSupportedFormats:
    """rasterkit.supported_formats()."""

    def test_reports_read_and_write(self) -> None:  # noqa: PLR6301
        """Both directions are listed."""
        formats = rasterkit.supported_formats()
        assert "PNG" in formats["read"]
        assert "PNG" in formats["write"]


class TestImageData:
    """The ImageData record."""

    def test_with_image_keeps_metadata(self, make_image) -> None:  # noqa: PLR6301
        """Swapping the pixels keeps the source fields and copies the metadata dict."""
        data = ImageData(image_data=make_image(4, 4), source_format="JPEG", metadata={"camera": "x"})
        swapped = data.with_image(make_image(2, 2))
        assert (swapped.width, swapped.height) == (2, 2)
        assert swapped.source_format == "JPEG"
        swapped.metadata["camera"] = "y"
        assert data.metadata == {"camera": "x"}

    def test_with_auto_rotation(self, make_image) -> None:  # noqa: PLR6301
        """Orientation 6 is applied to the pixels and the record then reports TOP_LEFT."""
        data = ImageData(image_data=make_image(40, 20), orientation=ExifOrientation.RIGHT_TOP)
        upright = data.with_auto_rotation()
        assert (upright.width, upright.height) == (20, 40)
        assert upright.orientation is ExifOrientation.TOP_LEFT
        assert upright.with_auto_rotation() is upright
        assert data.orientation is ExifOrientation.RIGHT_TOP

    def test_output_exif(self, rotated_jpeg, make_image) -> None:  # noqa: PLR6301
        """The EXIF block written back carries the record's current orientation."""
        data = load_with_metadata(rotated_jpeg)
        as_read = Image.Exif()
        as_read.load(data.output_exif())
        assert as_read[ORIENTATION_TAG] == 6

        upright = Image.Exif()
        upright.load(data.with_auto_rotation().output_exif())
        assert upright[ORIENTATION_TAG] == 1
        assert ImageData(image_data=make_image(2, 2)).output_exif() is None


class TestMetadataOutput:
    """Chain outputs that carry EXIF along."""

    def test_auto_rotated_file_reads_upright(self, rotated_jpeg, temp_dir) -> None:  # noqa: PLR6301
        """After auto_rotate the written EXIF says TOP_LEFT, so readers do not rotate twice."""
        path = rasterkit.load_with_metadata(rotated_jpeg).auto_rotate().to_file_with_metadata(temp_dir / "up.jpg")
        with Image.open(path) as written:
            assert written.size == (20, 40)
            assert written.getexif()[ORIENTATION_TAG] == 1

    def test_orientation_kept_without_auto_rotate(self, rotated_jpeg, temp_dir) -> None:  # noqa: PLR6301
        """Untouched orientation is written back as it was read."""
        path = rasterkit.load_with_metadata(rotated_jpeg).pad(1).to_file_with_metadata(temp_dir / "same.jpg")
        assert read_orientation(path) is ExifOrientation.RIGHT_TOP

    def test_plain_to_file_drops_exif(self, rotated_jpeg, temp_dir) -> None:  # noqa: PLR6301
        """to_file() writes pixels only."""
        path = rasterkit.load_with_metadata(rotated_jpeg).to_file(temp_dir / "bare.jpg")
        with Image.open(path) as written:
            assert ORIENTATION_TAG not in written.getexif()

    def test_bytes_and_stream_with_metadata(self, rotated_jpeg) -> None:  # noqa: PLR6301
        """The bytes and stream variants embed the EXIF block too."""
        data = rasterkit.load_with_metadata(rotated_jpeg).auto_rotate().to_bytes_with_metadata("PNG")
        with Image.open(io.BytesIO(data)) as written:
            assert written.getexif()[ORIENTATION_TAG] == 1

        stream = io.BytesIO()
        rasterkit.load_with_metadata(rotated_jpeg).to_stream_with_metadata(stream, "JPEG")
        assert read_orientation(stream.getvalue()) is ExifOrientation.RIGHT_TOP

    def test_to_bytes_with_exif(self, make_image) -> None:  # noqa: PLR6301
        """The encoder helpers accept an EXIF block."""
        exif = Image.Exif()
        exif[ORIENTATION_TAG] = 3
        data = to_bytes(make_image(4, 4), "JPEG", exif=exif.tobytes())
        assert read_orientation(data) is ExifOrientation.BOTTOM_RIGHT
