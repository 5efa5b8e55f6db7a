"""
Tests for timeline JSON export/import.

Import is all-or-nothing: a rejected document leaves the model unchanged.
"""

import json

import pytest

from keyframe_timeline.errors import MalformedSerializedStateError
from keyframe_timeline.events import ChangeKind
from keyframe_timeline.timeline_model import TimelineModel


def _layer(layer_id, parent_id=None, keyframes=None, tweens=None):
    return {
        "id": layer_id,
        "name": layer_id,
        "visible": True,
        "locked": False,
        "color": "#42A5F5",
        "parentId": parent_id,
        "isExpanded": True,
        "index": 0,
        "keyframes": keyframes or [],
        "motionTweens": tweens or [],
    }


def _doc(*layers, **scalars):
    doc = {"layers": list(layers), "currentTime": 0, "duration": 600, "timeScale": 1}
    doc.update(scalars)
    return doc


@pytest.fixture()
def populated(model):
    group = model.add_layer(name="Group")
    box = model.add_layer(name="Box", parent_id=group.id, color="#123456")
    k1 = model.add_keyframe(box.id, 0, {"x": 0, "fill": "#000000", "label": "a", "on": False})
    k2 = model.add_keyframe(box.id, 10, {"x": 100, "fill": "#ffffff", "label": "b", "on": True})
    model.add_motion_tween(box.id, k1.id, k2.id, "easeInOutCubic", {"blur": 1.5})
    model.select_layer(box.id)
    model.select_keyframe(box.id, k2.id)
    model.set_current_time(4.25)
    model.set_time_scale(2.5)
    return model


class TestRoundTrip:

    def test_round_trip_is_lossless(self, populated, settings):
        restored = TimelineModel(settings=settings)
        restored.from_json(populated.to_json())
        assert restored.to_dict() == populated.to_dict()
        assert restored.selected_keyframe_ids == populated.selected_keyframe_ids
        for t in (0, 3.3, 5, 10):
            assert restored.get_objects_at_time(t) == populated.get_objects_at_time(t)

    def test_camel_case_keys(self, populated):
        data = json.loads(populated.to_json())
        assert set(data) == {"layers", "currentTime", "duration", "timeScale", "selectedLayerIds"}
        layer = data["layers"][1]
        assert layer["parentId"] == data["layers"][0]["id"]
        assert "motionTweens" in layer and "isExpanded" in layer
        tween = layer["motionTweens"][0]
        assert set(tween) == {"id", "startKeyframeId", "endKeyframeId", "easingFunction", "properties"}

    def test_import_publishes_event(self, model, events):
        model.from_dict(_doc(_layer("a")))
        assert events[-1].kind == ChangeKind.DATA_IMPORTED
        assert [l.id for l in model.get_layers()] == ["a"]

    def test_import_replaces_state(self, populated):
        populated.from_dict(_doc(_layer("only")))
        assert [l.id for l in populated.get_layers()] == ["only"]
        assert populated.selected_layer_ids == []
        assert populated.selected_keyframe_ids == []

    def test_sibling_indices_renumbered_on_import(self, model):
        a, b, c, child = _layer("a"), _layer("b"), _layer("c"), _layer("child", parent_id="a")
        a["index"], b["index"], c["index"], child["index"] = 7, 2, 2, 4
        model.from_dict(_doc(a, b, c, child))
        indices = {l.id: l.index for l in model.get_layers()}
        assert indices == {"b": 0, "c": 1, "a": 2, "child": 0}
        rows = model.groups.get_layers_with_indentation()
        assert [r.layer.id for r in rows] == ["b", "c", "a", "child"]

    def test_missing_scalars_use_defaults(self, model):
        model.from_dict({"layers": []})
        assert model.duration == 600
        assert model.time_scale == 1


class TestRejectedImports:

    @pytest.mark.parametrize(
        "doc",
        [
            pytest.param([], id="not-an-object"),
            pytest.param({"layers": "nope"}, id="layers-not-array"),
            pytest.param(_doc(_layer("a"), _layer("a")), id="duplicate-layer-ids"),
            pytest.param(_doc(_layer("a", parent_id="ghost")), id="missing-parent"),
            pytest.param(_doc(_layer("a", parent_id="b"), _layer("b", parent_id="a")), id="parent-cycle"),
            pytest.param(_doc(_layer("a", parent_id="a")), id="self-parent"),
            pytest.param(_doc(currentTime=700), id="current-time-past-end"),
            pytest.param(_doc(currentTime=-1), id="negative-current-time"),
            pytest.param(_doc(timeScale=50), id="time-scale-out-of-range"),
            pytest.param(_doc(duration="long"), id="duration-not-number"),
            pytest.param(
                _doc(_layer("a", keyframes=[{"id": "k", "time": 700, "properties": {}}])),
                id="keyframe-past-duration",
            ),
            pytest.param(
                _doc(_layer("a", keyframes=[{"id": "k", "time": -1, "properties": {}}])),
                id="negative-keyframe-time",
            ),
            pytest.param(
                _doc(_layer("a", keyframes=[
                    {"id": "k", "time": 1, "properties": {}},
                    {"id": "k", "time": 2, "properties": {}},
                ])),
                id="duplicate-keyframe-ids",
            ),
            pytest.param(
                _doc(_layer("a", keyframes=[{"id": "k", "time": 1, "properties": {"p": [1]}}])),
                id="non-scalar-property",
            ),
            pytest.param(
                _doc(_layer(
                    "a",
                    keyframes=[{"id": "k", "time": 1, "properties": {}}],
                    tweens=[{"id": "t", "startKeyframeId": "k", "endKeyframeId": "ghost"}],
                )),
                id="dangling-tween",
            ),
            pytest.param(_doc(selectedLayerIds=["ghost"]), id="unknown-selection"),
        ],
    )
    def test_invalid_document_keeps_state(self, populated, doc):
        before = populated.to_dict()
        with pytest.raises(MalformedSerializedStateError):
            populated.from_dict(doc)
        assert populated.to_dict() == before

    def test_invalid_json_text(self, model):
        with pytest.raises(MalformedSerializedStateError):
            model.from_json("{not json")

    def test_rejected_import_publishes_nothing(self, model, events):
        with pytest.raises(MalformedSerializedStateError):
            model.from_dict(_doc(currentTime=900))
        assert events == []
