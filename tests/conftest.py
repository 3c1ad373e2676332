"""
Configuration file for pytest.

This file defines shared fixtures for the test suite. Fixtures defined here
are automatically available to all tests.
"""

import os
import pathlib
import tempfile

import pytest
from PIL import Image

# Point configuration at a file that does not exist before rasterkit is
# imported, so a developer's own config never leaks into the tests.
_CONFIG_DIR = tempfile.mkdtemp(prefix="rasterkit_test_config_")
os.environ["RASTERKIT_CONFIG_FILE"] = str(pathlib.Path(_CONFIG_DIR) / "config.toml")

from rasterkit.utils import config  # noqa: E402


@pytest.fixture(scope="function")
def temp_dir():
    """
    Pytest fixture to create a temporary directory for a test function.

    Yields:
        pathlib.Path: The path to the created temporary directory.
    """
    with tempfile.TemporaryDirectory(prefix="rasterkit_test_") as tmpdir:
        yield pathlib.Path(tmpdir)


@pytest.fixture(scope="session")
def project_root():
    """
    Pytest fixture to get the root directory of the project.

    Returns:
        pathlib.Path: The project root directory.
    """
    return pathlib.Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def isolated_config(temp_dir, monkeypatch):
    """Give every test its own (initially absent) config file.

    Yields:
        pathlib.Path: Where the test may write a config.toml.
    """
    config_file = temp_dir / "config" / "config.toml"
    monkeypatch.setenv("RASTERKIT_CONFIG_FILE", str(config_file))
    config.reload_config()
    yield config_file
    config.reload_config()


@pytest.fixture()
def make_image():
    """Factory for solid-colour test images.

    Returns:
        Callable: ``make_image(width, height, color="red", mode="RGB")``.
    """

    def _make(width: int, height: int, color=(255, 0, 0), mode: str = "RGB") -> Image.Image:
        return Image.new(mode, (width, height), color)

    return _make


@pytest.fixture()
def gradient_image():
    """A 40x30 RGB image whose pixels are all distinct, for lossless-transform checks.

    Returns:
        Image.Image: The test image.
    """
    image = Image.new("RGB", (40, 30))
    image.putdata([(x * 6, y * 8, (x + y) % 256) for y in range(30) for x in range(40)])
    return image
