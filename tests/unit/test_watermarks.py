"""Unit tests for the watermark value types."""

import pytest
from PIL import Image, ImageFont

from rasterkit.exceptions import ValidationError
from rasterkit.utils import config
from rasterkit.watermark.position import WatermarkPosition
from rasterkit.watermark.watermarks import (
    FontSpec,
    ImageWatermark,
    TextGradient,
    TextShadow,
    TextWatermark,
)


class TestTextWatermark:
    """Construction and validation of text watermarks."""

    def test_defaults(self) -> None:  # noqa: PLR6301
        """Defaults: bottom-right, 70% opacity, margin 5, white text."""
        watermark = TextWatermark("© rasterkit")
        assert watermark.position is WatermarkPosition.BOTTOM_RIGHT
        assert watermark.opacity == pytest.approx(0.7)
        assert watermark.margin == 5
        assert watermark.color == "white"
        assert watermark.background is None
        assert watermark.shadow is None
        assert watermark.gradient is None

    @pytest.mark.parametrize("text", ["", None, 42])
    def test_text_required(self, text) -> None:  # noqa: PLR6301
        """Empty or non-string text is refused."""
        with pytest.raises(ValidationError) as exc_info:
            TextWatermark(text)
        assert exc_info.value.field == "text"

    @pytest.mark.parametrize("opacity", [-0.1, 1.01, float("nan")])
    def test_opacity_range(self, opacity) -> None:  # noqa: PLR6301
        """Opacity outside [0, 1] is refused."""
        with pytest.raises(ValidationError):
            TextWatermark("x", opacity=opacity)

    def test_opacity_bounds_accepted(self) -> None:  # noqa: PLR6301
        """Both ends of the opacity range are valid."""
        assert TextWatermark("x", opacity=0.0).opacity == 0.0
        assert TextWatermark("x", opacity=1.0).opacity == 1.0

    def test_negative_margin_rejected(self) -> None:  # noqa: PLR6301
        """Margins must be non-negative."""
        with pytest.raises(ValidationError):
            TextWatermark("x", margin=-1)

    def test_invalid_colours_rejected(self) -> None:  # noqa: PLR6301
        """Text and background colours are checked on construction."""
        with pytest.raises(ValidationError):
            TextWatermark("x", color="nope")
        with pytest.raises(ValidationError):
            TextWatermark("x", background=(300, 0, 0))

    def test_with_helpers_return_validated_copies(self) -> None:  # noqa: PLR6301
        """with_position and with_opacity derive new values and keep the original."""
        original = TextWatermark("x")
        moved = original.with_position(WatermarkPosition.TOP_LEFT).with_opacity(0.3)
        assert moved.position is WatermarkPosition.TOP_LEFT
        assert moved.opacity == pytest.approx(0.3)
        assert original.position is WatermarkPosition.BOTTOM_RIGHT
        with pytest.raises(ValidationError):
            original.with_opacity(2.0)

    def test_shadow_and_gradient_validate_colours(self) -> None:  # noqa: PLR6301
        """Shadow and gradient colours are resolved eagerly."""
        assert TextShadow().offset == (2, 2)
        with pytest.raises(ValidationError):
            TextShadow(color="nope")
        with pytest.raises(ValidationError):
            TextGradient("red", "nope")


class TestFontSpec:
    """Font configuration."""

    def test_defaults_from_config(self) -> None:  # noqa: PLR6301
        """Without a config file, the font size is 24 and no path is set."""
        spec = FontSpec()
        assert spec.size == 24
        assert spec.path is None

    def test_config_overrides_defaults(self, isolated_config) -> None:  # noqa: PLR6301
        """The watermark section of the config file sets the default size."""
        isolated_config.parent.mkdir(parents=True, exist_ok=True)
        isolated_config.write_text("[watermark]\nfont_size = 40\n")
        config.reload_config()
        assert FontSpec().size == 40

    def test_size_must_be_positive(self) -> None:  # noqa: PLR6301
        """A zero font size is refused."""
        with pytest.raises(ValidationError):
            FontSpec(size=0)

    def test_missing_font_falls_back(self) -> None:  # noqa: PLR6301
        """An unknown font file still yields a usable font."""
        font = FontSpec(path="/nonexistent/font.ttf", size=18).load()
        assert isinstance(font, (ImageFont.FreeTypeFont, ImageFont.ImageFont))


class TestImageWatermark:
    """Construction and validation of image watermarks."""

    def test_defaults(self, make_image) -> None:  # noqa: PLR6301
        """Defaults: bottom-right, 50% opacity, quarter scale, no margin."""
        watermark = ImageWatermark(make_image(80, 40))
        assert watermark.position is WatermarkPosition.BOTTOM_RIGHT
        assert watermark.opacity == pytest.approx(0.5)
        assert watermark.scale == pytest.approx(0.25)
        assert watermark.margin == 0
        assert watermark.scaled_size == (20, 10)

    def test_scaled_size_never_zero(self, make_image) -> None:  # noqa: PLR6301
        """Tiny overlays keep at least one pixel per side."""
        assert ImageWatermark(make_image(2, 2), scale=0.1).scaled_size == (1, 1)

    @pytest.mark.parametrize("scale", [0.0, -0.5, 1.5, float("inf")])
    def test_scale_range(self, make_image, scale) -> None:  # noqa: PLR6301
        """Scale must lie in (0, 1]."""
        with pytest.raises(ValidationError) as exc_info:
            ImageWatermark(make_image(10, 10), scale=scale)
        assert exc_info.value.field == "scale"

    def test_image_required(self) -> None:  # noqa: PLR6301
        """A missing overlay image is refused."""
        with pytest.raises(ValidationError):
            ImageWatermark(None)

    def test_overlay_is_not_copied(self) -> None:  # noqa: PLR6301
        """The watermark refers to the caller's image."""
        overlay = Image.new("RGBA", (10, 10))
        assert ImageWatermark(overlay).image is overlay
