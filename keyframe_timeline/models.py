"""
Data models for the timeline engine.
Serialized keys are camelCase to match the editor's JSON documents.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from .easing import DEFAULT_EASING
from .interpolation import validate_properties

LAYER_COLORS = [
    "#FF5252",  # Red
    "#FFAB40",  # Orange
    "#FFEB3B",  # Yellow
    "#66BB6A",  # Green
    "#42A5F5",  # Blue
    "#7E57C2",  # Purple
    "#EC407A",  # Pink
    "#26A69A",  # Teal
]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


class CascadePolicy(Enum):
    """What happens to child layers when their parent is removed."""
    REPARENT_CHILDREN = "reparent_children"  # Children move up to the removed layer's parent
    DELETE_CHILDREN = "delete_children"      # Children are removed recursively


def _require(data: dict, key: str, kind, label: str):
    if key not in data:
        raise ValueError(f"{label} is missing '{key}'")
    value = data[key]
    if kind is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{label}.{key} must be a number, got {value!r}")
        return float(value)
    if not isinstance(value, kind):
        raise ValueError(f"{label}.{key} must be {kind.__name__}, got {value!r}")
    return value


def _optional_bool(data: dict, key: str, default: bool, label: str) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{label}.{key} must be a boolean, got {value!r}")
    return value


def _optional_str(data: dict, key: str, default: str, label: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"{label}.{key} must be a string, got {value!r}")
    return value


@dataclass
class Keyframe:
    """A timestamped snapshot of property values on a layer."""
    id: str = field(default_factory=lambda: new_id("keyframe"))
    time: float = 0.0  # seconds
    properties: Dict[str, Any] = field(default_factory=dict)
    is_selected: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "time": self.time,
            "properties": dict(self.properties),
            "isSelected": self.is_selected,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Keyframe':
        if not isinstance(data, dict):
            raise ValueError(f"keyframe must be an object, got {data!r}")
        return cls(
            id=_require(data, "id", str, "keyframe"),
            time=_require(data, "time", float, "keyframe"),
            properties=validate_properties(data.get("properties", {})),
            is_selected=_optional_bool(data, "isSelected", False, "keyframe"),
        )


@dataclass
class MotionTween:
    """Interpolation between two keyframes of the same layer."""
    id: str = field(default_factory=lambda: new_id("tween"))
    start_keyframe_id: str = ""
    end_keyframe_id: str = ""
    easing_function: str = DEFAULT_EASING
    properties: Dict[str, Any] = field(default_factory=dict)  # Per-tween overrides

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startKeyframeId": self.start_keyframe_id,
            "endKeyframeId": self.end_keyframe_id,
            "easingFunction": self.easing_function,
            "properties": dict(self.properties),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MotionTween':
        if not isinstance(data, dict):
            raise ValueError(f"motion tween must be an object, got {data!r}")
        easing = data.get("easingFunction") or DEFAULT_EASING
        if not isinstance(easing, str):
            raise ValueError(f"motionTween.easingFunction must be a string, got {easing!r}")
        return cls(
            id=_require(data, "id", str, "motionTween"),
            start_keyframe_id=_require(data, "startKeyframeId", str, "motionTween"),
            end_keyframe_id=_require(data, "endKeyframeId", str, "motionTween"),
            easing_function=easing,
            properties=validate_properties(data.get("properties", {})),
        )


@dataclass
class Layer:
    """An animatable object; acts as a group when other layers point at it."""
    id: str = field(default_factory=lambda: new_id("layer"))
    name: str = "Layer"
    visible: bool = True
    locked: bool = False
    color: str = LAYER_COLORS[0]
    parent_id: Optional[str] = None
    is_expanded: bool = True
    index: int = 0
    keyframes: List[Keyframe] = field(default_factory=list)
    motion_tweens: List[MotionTween] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "visible": self.visible,
            "locked": self.locked,
            "color": self.color,
            "parentId": self.parent_id,
            "isExpanded": self.is_expanded,
            "index": self.index,
            "keyframes": [kf.to_dict() for kf in self.keyframes],
            "motionTweens": [tw.to_dict() for tw in self.motion_tweens],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Layer':
        if not isinstance(data, dict):
            raise ValueError(f"layer must be an object, got {data!r}")
        parent_id = data.get("parentId")
        if parent_id is not None and not isinstance(parent_id, str):
            raise ValueError(f"layer.parentId must be a string, got {parent_id!r}")
        index = data.get("index", 0)
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValueError(f"layer.index must be an integer, got {index!r}")
        keyframes = data.get("keyframes", [])
        tweens = data.get("motionTweens", [])
        if not isinstance(keyframes, list) or not isinstance(tweens, list):
            raise ValueError("layer.keyframes and layer.motionTweens must be arrays")

        layer = cls(
            id=_require(data, "id", str, "layer"),
            name=_optional_str(data, "name", "Layer", "layer"),
            visible=_optional_bool(data, "visible", True, "layer"),
            locked=_optional_bool(data, "locked", False, "layer"),
            color=_optional_str(data, "color", LAYER_COLORS[0], "layer"),
            parent_id=parent_id,
            is_expanded=_optional_bool(data, "isExpanded", True, "layer"),
            index=index,
        )
        layer.keyframes = sorted((Keyframe.from_dict(k) for k in keyframes), key=lambda k: k.time)
        layer.motion_tweens = [MotionTween.from_dict(t) for t in tweens]
        return layer

    def find_keyframe(self, keyframe_id: str) -> Optional[Keyframe]:
        for keyframe in self.keyframes:
            if keyframe.id == keyframe_id:
                return keyframe
        return None

    def find_tween(self, tween_id: str) -> Optional[MotionTween]:
        for tween in self.motion_tweens:
            if tween.id == tween_id:
                return tween
        return None

    def sort_keyframes(self):
        """Keep keyframes ordered by time (stable for equal times)."""
        self.keyframes.sort(key=lambda k: k.time)


class KeyframeHit(NamedTuple):
    """A keyframe matched by a time query, with its owning layer."""
    layer_id: str
    keyframe: Keyframe


class ObjectState(NamedTuple):
    """A layer and its interpolated properties at some time."""
    layer: Layer
    properties: Dict[str, Any]


class IndentedLayer(NamedTuple):
    """One row of the layer list display tree."""
    layer: Layer
    indent_level: int
