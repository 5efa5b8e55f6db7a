"""Unit tests for property interpolation and property value tagging."""

import pytest

from keyframe_timeline.color import ColorInterpolator
from keyframe_timeline.interpolation import (
    PropertyInterpolator,
    PropertyKind,
    PropertyValue,
    validate_properties,
)


class TestPropertyValue:

    def test_bool_is_not_a_number(self):
        assert PropertyValue.of(True).kind == PropertyKind.BOOL

    def test_number(self):
        assert PropertyValue.of(3).kind == PropertyKind.NUMBER
        assert PropertyValue.of(2.5).kind == PropertyKind.NUMBER

    def test_color_and_text(self):
        assert PropertyValue.of("#abc").kind == PropertyKind.COLOR
        assert PropertyValue.of("hello").kind == PropertyKind.TEXT

    @pytest.mark.parametrize("value", [None, [1, 2], {"a": 1}])
    def test_non_scalar_rejected(self, value):
        with pytest.raises(ValueError):
            PropertyValue.of(value)


class TestValidateProperties:

    def test_none_is_empty(self):
        assert validate_properties(None) == {}

    def test_returns_copy(self):
        props = {"x": 1}
        result = validate_properties(props)
        result["x"] = 2
        assert props["x"] == 1

    def test_rejects_nested_values(self):
        with pytest.raises(ValueError):
            validate_properties({"pos": {"x": 1}})

    def test_rejects_non_string_keys(self):
        with pytest.raises(ValueError):
            validate_properties({1: 2})


class TestPropertyInterpolator:

    def setup_method(self):
        self.interp = PropertyInterpolator()

    def test_numbers_linear(self):
        result = self.interp.interpolate({"x": 0, "y": 10}, {"x": 100, "y": 20}, 0.5)
        assert result == {"x": pytest.approx(50), "y": pytest.approx(15)}

    def test_numbers_eased(self):
        result = self.interp.interpolate({"x": 0}, {"x": 100}, 0.5, "easeInQuad")
        assert result["x"] == pytest.approx(25)

    def test_progress_is_clamped(self):
        assert self.interp.interpolate({"x": 0}, {"x": 100}, 1.5)["x"] == pytest.approx(100)
        assert self.interp.interpolate({"x": 0}, {"x": 100}, -1)["x"] == pytest.approx(0)

    def test_one_sided_keys_pass_through(self):
        result = self.interp.interpolate({"x": 0, "a": 1}, {"x": 10, "b": 2}, 0.5)
        assert result["a"] == 1
        assert result["b"] == 2
        assert list(result) == ["x", "a", "b"]

    def test_colors_blend(self):
        result = self.interp.interpolate({"fill": "#000000"}, {"fill": "#ffffff"}, 0.5)
        assert result["fill"] == "rgb(128, 128, 128)"

    def test_text_switches_at_half(self):
        start, end = {"label": "a"}, {"label": "b"}
        assert self.interp.interpolate(start, end, 0.49)["label"] == "a"
        assert self.interp.interpolate(start, end, 0.5)["label"] == "b"

    def test_bool_switches_at_half(self):
        assert self.interp.interpolate({"on": False}, {"on": True}, 0.25)["on"] is False
        assert self.interp.interpolate({"on": False}, {"on": True}, 0.75)["on"] is True

    def test_switch_uses_eased_progress(self):
        # easeInQuad(0.6) = 0.36, still before the switch point
        assert self.interp.interpolate({"s": "a"}, {"s": "b"}, 0.6, "easeInQuad")["s"] == "a"

    def test_mixed_kinds_switch_discretely(self):
        assert self.interp.interpolate({"v": 1}, {"v": "big"}, 0.8)["v"] == "big"

    def test_bad_color_falls_back_and_records(self):
        colors = ColorInterpolator()
        interp = PropertyInterpolator(colors)
        result = interp.interpolate({"c": "rgb(1, 2)"}, {"c": "#ffffff"}, 0.3)
        assert result["c"] == "rgb(1, 2)"
        assert len(colors.warnings) == 1

    def test_hash_tag_text_is_not_blended_as_color(self):
        colors = ColorInterpolator()
        interp = PropertyInterpolator(colors)
        assert PropertyValue.of("#intro").kind == PropertyKind.TEXT
        assert interp.interpolate({"cue": "#intro"}, {"cue": "#outro"}, 0.2)["cue"] == "#intro"
        assert interp.interpolate({"cue": "#intro"}, {"cue": "#outro"}, 0.7)["cue"] == "#outro"
        assert len(colors.warnings) == 0
