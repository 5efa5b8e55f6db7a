"""Unit tests for color parsing and blending."""

import logging

import pytest

from keyframe_timeline.color import ColorInterpolator, Rgba, looks_like_color, parse_color
from keyframe_timeline.errors import UnparseableColor


class TestParseColor:

    def test_long_hex(self):
        assert parse_color("#FF8000") == Rgba(255, 128, 0)

    def test_short_hex_expands(self):
        assert parse_color("#f00") == Rgba(255, 0, 0)

    def test_rgb_function(self):
        assert parse_color("rgb(10, 20, 30)") == Rgba(10, 20, 30)

    def test_rgba_function_clamps(self):
        assert parse_color("rgba(300, 0, 0, 2)") == Rgba(255, 0, 0, 1.0)

    def test_named_color_case_insensitive(self):
        assert parse_color("Navy") == Rgba(0, 0, 128)

    @pytest.mark.parametrize("value", ["#12345", "rgb(1, 2)", "rgba(1, 2, 3)", "hsl(0, 100%, 50%)", "notacolor"])
    def test_unsupported_raises(self, value):
        with pytest.raises(ValueError):
            parse_color(value)


class TestRgbaToCss:

    def test_opaque_uses_rgb(self):
        assert Rgba(255, 127.6, 0).to_css() == "rgb(255, 128, 0)"

    def test_translucent_uses_rgba(self):
        assert Rgba(0, 0, 0, 0.5).to_css() == "rgba(0, 0, 0, 0.5)"


class TestColorInterpolator:

    def test_midpoint_of_red_and_blue(self):
        colors = ColorInterpolator()
        assert colors.blend("#ff0000", "#0000ff", 0.5) == "rgb(128, 0, 128)"

    def test_alpha_blends(self):
        colors = ColorInterpolator()
        assert colors.blend("rgba(0, 0, 0, 0)", "rgba(0, 0, 0, 1)", 0.5) == "rgba(0, 0, 0, 0.5)"

    def test_endpoints(self):
        colors = ColorInterpolator()
        assert colors.blend("red", "blue", 0) == "rgb(255, 0, 0)"
        assert colors.blend("red", "blue", 1) == "rgb(0, 0, 255)"

    def test_unparseable_is_recorded_and_logged(self, caplog):
        colors = ColorInterpolator()
        with caplog.at_level(logging.WARNING, logger="keyframe_timeline.color"):
            assert colors.blend("#ff0000", "rgb(1, 2)", 0.5) is None
        assert len(colors.warnings) == 1
        assert isinstance(colors.warnings[0], UnparseableColor)
        assert colors.warnings[0].value == "rgb(1, 2)"
        assert "not supported" in caplog.text

    def test_warning_history_is_bounded(self):
        colors = ColorInterpolator(warning_history=2)
        for i in range(5):
            colors.blend(f"#bad{i}x", "red", 0.5)
        assert len(colors.warnings) == 2
        assert colors.warnings[-1].value == "#bad4x"

    def test_repeated_bad_value_reported_once(self, caplog):
        colors = ColorInterpolator()
        with caplog.at_level(logging.WARNING, logger="keyframe_timeline.color"):
            for frame in range(30):
                assert colors.blend("rgb(1, 2)", "red", frame / 30) is None
        assert len(colors.warnings) == 1
        assert caplog.text.count("not supported") == 1


class TestLooksLikeColor:

    @pytest.mark.parametrize("value", ["#fff", "#A0b1C2", "rgb(1,2,3)", "rgba(", "red"])
    def test_tagged_as_color(self, value):
        assert looks_like_color(value)

    @pytest.mark.parametrize("value", ["hello", "redish", "", "12", "#intro", "#nothex", "#12345"])
    def test_plain_text(self, value):
        assert not looks_like_color(value)
