"""
Tests for position and style resolution.
"""

import pytest

from reelgraph.models.layer_models import (
    Position,
    Shadow,
    TextBackground,
    TextStroke,
    TextStyle,
)
from reelgraph.utils.position_resolver import (
    clamp,
    color_to_rgb,
    normalize_anchor,
    normalize_color,
    resolve,
    resolve_position,
    resolve_text_style,
    rounded_corner_mask,
)


class TestResolvePosition:
    """Tests for x/y and anchor resolution."""

    @pytest.mark.parametrize("frame", [(1920, 1080), (1080, 1920), (1281, 721), (640, 480)])
    def test_centered_anchor_lands_on_frame_center(self, frame):
        """Test that a centered element's midpoint is the frame's midpoint."""
        resolved = resolve_position(Position.centered(), frame)

        assert resolved.x == frame[0] / 2
        assert resolved.y == frame[1] / 2
        assert resolved.x_expr.endswith("-overlay_w/2")
        assert resolved.y_expr.endswith("-overlay_h/2")

    def test_percent_and_pixels(self):
        """Test percentage and pixel forms."""
        resolved = resolve_position(Position(x="25%", y="120px"), (1920, 1080))

        assert resolved.x == 480
        assert resolved.y == 120
        assert (resolved.x_expr, resolved.y_expr) == ("480", "120")

    def test_keywords_respect_margin(self):
        """Test that edge keywords are inset by the margin."""
        resolved = resolve_position(Position.named("bottom-right", margin=20), (1920, 1080))

        assert (resolved.x, resolved.y) == (1900, 1060)
        assert resolved.x_expr == "1900-overlay_w"
        assert resolved.y_expr == "1060-overlay_h"

    def test_text_size_variables(self):
        """Test that text positions use the text size variables."""
        resolved = resolve_position(Position.centered(), (1920, 1080), kind="text")

        assert resolved.x_expr == "960-text_w/2"
        assert resolved.y_expr == "540-text_h/2"

    @pytest.mark.parametrize("value", ["abc", "inf", "nan%", "12qx"])
    def test_invalid_values_fall_back_to_center(self, value):
        """Test that unparseable coordinates resolve to the frame center."""
        resolved = resolve_position(Position(x=value, y=value), (1920, 1080))

        assert (resolved.x, resolved.y) == (960, 540)

    def test_resolve_with_explicit_anchor(self):
        """Test the (x_expr, y_expr) helper with an anchor override."""
        assert resolve(Position(x=100, y=100), "bottom", (1920, 1080)) == (
            "100-overlay_w/2",
            "100-overlay_h",
        )


class TestAnchors:
    """Tests for anchor normalization."""

    def test_aliases(self):
        """Test that alias spellings map onto the 9-point grid."""
        assert normalize_anchor("top-center") == "top"
        assert normalize_anchor("Bottom_Right") == "bottom-right"
        assert normalize_anchor("middle") == "center"

    def test_unknown_anchor_uses_default(self):
        """Test the fallback for an unknown anchor."""
        assert normalize_anchor("somewhere") == "top-left"
        assert normalize_anchor(None, "center") == "center"


class TestColors:
    """Tests for color normalization."""

    def test_hex_forms(self):
        """Test #RRGGBB, #RRGGBBAA and 0x forms."""
        assert normalize_color("#ff0000") == "0xFF0000"
        assert normalize_color("0x00ff00") == "0x00FF00"
        assert normalize_color("#FF000080") == "0xFF0000@0.502"

    def test_rgb_forms(self):
        """Test rgb() and rgba() forms."""
        assert normalize_color("rgb(255, 0, 0)") == "0xFF0000"
        assert normalize_color("rgba(0,0,0,0.8)") == "0x000000@0.8"

    def test_names_and_alpha_suffix(self):
        """Test color names with and without an alpha suffix."""
        assert normalize_color("red@0.3") == "red@0.3"
        assert normalize_color("transparent") == "black@0"
        assert normalize_color("white", alpha=1.5) == "white@1"

    @pytest.mark.parametrize("value", ["not-a-color", "rgb(300,0,0)", "#12", "red@x", ""])
    def test_invalid_colors_use_default(self, value):
        """Test that invalid colors resolve to the caller's default."""
        assert normalize_color(value, "0x00FF00") == "0x00FF00"

    def test_color_to_rgb(self):
        """Test RGB channel extraction."""
        assert color_to_rgb("orange") == (255, 165, 0)
        assert color_to_rgb("#0a0b0c") == (10, 11, 12)
        assert color_to_rgb("nope", (1, 2, 3)) == (1, 2, 3)


class TestClamp:
    """Tests for clamping helpers."""

    def test_out_of_range(self):
        """Test values outside the range are clamped."""
        assert clamp(1.5, 0.0, 1.0, 0.5) == 1.0
        assert clamp(-0.5, 0.0, 1.0, 0.5) == 0.0

    def test_invalid_values(self):
        """Test that unusable values take the default."""
        assert clamp(None, 0.0, 1.0, 0.5) == 0.5
        assert clamp("high", 0.0, 1.0, 0.5) == 0.5
        assert clamp(float("nan"), 0.0, 1.0, 0.5) == 0.5


class TestTextStyle:
    """Tests for text style resolution."""

    def test_default_style(self):
        """Test the parameters of a default style."""
        style = resolve_text_style(TextStyle())

        assert style.params == (("fontsize", "48"), ("fontcolor", "white"))
        assert style.mask_expr is None

    def test_font_selection(self):
        """Test font family, font files and the configured default font."""
        assert ("font", "Arial") in resolve_text_style(TextStyle(font_family="Arial")).params
        assert ("fontfile", "fonts/Inter.ttf") in resolve_text_style(
            TextStyle(font_family="fonts/Inter.ttf")
        ).params
        assert ("fontfile", "/fonts/default.ttf") in resolve_text_style(
            TextStyle(), "/fonts/default.ttf"
        ).params

    def test_stroke_background_and_shadow(self):
        """Test stroke, box and shadow parameters."""
        style = resolve_text_style(
            TextStyle(
                stroke=TextStroke(color="#000000", width=3),
                background=TextBackground(color="rgba(0,0,0,0.8)", padding=6, radius=8),
                shadow=Shadow(offset_x=2, offset_y=2),
            )
        )
        params = dict(style.params)

        assert params["bordercolor"] == "0x000000"
        assert params["borderw"] == "3"
        assert params["box"] == "1"
        assert params["boxcolor"] == "0x000000@0.8"
        assert params["boxborderw"] == "6"
        assert params["shadowcolor"] == "black@0.5"
        assert params["shadowx"] == "2"
        assert style.mask_expr is not None

    def test_opacity_is_clamped(self):
        """Test that text opacity is applied as a clamped alpha."""
        params = dict(resolve_text_style(TextStyle(color="#ffffff", opacity=1.5)).params)

        assert params["fontcolor"] == "0xFFFFFF@1"

    def test_invalid_font_size(self, caplog):
        """Test that a non-positive font size falls back to 48."""
        caplog.set_level("DEBUG")

        style = resolve_text_style(TextStyle(font_size=0))

        assert style.font_size == 48
        assert "Invalid font size" in caplog.text

    def test_rounded_corner_mask(self):
        """Test the corner mask expression keeps interior alpha."""
        mask = rounded_corner_mask(10)

        assert "hypot" in mask
        assert mask.endswith(",0,alpha(X,Y))")
