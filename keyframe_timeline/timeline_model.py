"""
Timeline Model for the keyframe animation engine.
Owns layers, keyframes, motion tweens, time/zoom scalars and selection.

Every mutation validates first, then mutates, then publishes its change
events; a call that raises leaves the state untouched. Queries return
deep copies so callers never hold live references into the model.
"""

import copy
import json
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from .config import TimelineSettings, get_settings
from .color import ColorInterpolator
from .easing import DEFAULT_EASING, is_known_easing
from .errors import (
    CyclicGroupError,
    InvalidReferenceError,
    InvalidTimeRangeError,
    MalformedSerializedStateError,
    NotFoundError,
)
from .events import ChangeEvent, ChangeKind, ChangeNotifier, Listener
from .groups import GroupHierarchy, find_cycle
from .interpolation import PropertyInterpolator, validate_properties
from .models import (
    LAYER_COLORS,
    CascadePolicy,
    Keyframe,
    KeyframeHit,
    Layer,
    MotionTween,
    ObjectState,
    new_id,
)

logger = logging.getLogger(__name__)

_LAYER_FIELDS = {
    "name": str,
    "visible": bool,
    "locked": bool,
    "color": str,
    "parent_id": (str, type(None)),
    "is_expanded": bool,
    "index": int,
}
_KEYFRAME_FIELDS = {"time", "properties", "is_selected"}
_TWEEN_FIELDS = {"start_keyframe_id", "end_keyframe_id", "easing_function", "properties"}

# Event payloads use the same camelCase keys as the JSON document
_PAYLOAD_KEYS = {
    "parent_id": "parentId",
    "is_expanded": "isExpanded",
    "is_selected": "isSelected",
    "start_keyframe_id": "startKeyframeId",
    "end_keyframe_id": "endKeyframeId",
    "easing_function": "easingFunction",
}


def _payload(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {_PAYLOAD_KEYS.get(key, key): value for key, value in changes.items()}


def _check_time(time: float, what: str = "time") -> float:
    if isinstance(time, bool) or not isinstance(time, (int, float)) or not math.isfinite(time):
        raise InvalidTimeRangeError(f"{what} must be a finite number, got {time!r}")
    if time < 0:
        raise InvalidTimeRangeError(f"{what} must not be negative, got {time}")
    return float(time)


def _check_finite(value: float, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{what} must be a finite number, got {value!r}")
    return float(value)


def _check_layer_changes(changes: Dict[str, Any]):
    for key, value in changes.items():
        if key not in _LAYER_FIELDS:
            raise ValueError(f"Layer field '{key}' cannot be updated")
        expected = _LAYER_FIELDS[key]
        # bool is an int, but an index of True is a mistake
        if key == "index" and isinstance(value, bool):
            raise ValueError("Layer.index must be an integer")
        if not isinstance(value, expected):
            raise ValueError(f"Layer.{key} has invalid value {value!r}")


class TimelineModel:
    """
    The authoritative timeline state and its mutation/query API.

    Construct one per timeline; nothing here is global. Listeners receive a
    ChangeEvent after each mutation is fully applied.
    """

    def __init__(
        self,
        settings: Optional[TimelineSettings] = None,
        notifier: Optional[ChangeNotifier] = None,
    ):
        self.settings = settings or get_settings()
        self.notifier = notifier or ChangeNotifier()
        self.interpolator = PropertyInterpolator(
            ColorInterpolator(warning_history=self.settings.color_warning_history)
        )
        self.groups = GroupHierarchy(self)

        self._layers: List[Layer] = []
        self._current_time: float = 0.0
        self._duration: float = float(self.settings.default_duration)
        self._time_scale: float = float(self.settings.default_time_scale)
        self._selected_layer_ids: List[str] = []
        self._selected_keyframes: List[Tuple[str, str]] = []  # (layer_id, keyframe_id)
        self._clipboard: List[Tuple[float, Dict[str, Any]]] = []  # (time, properties) of copied keyframes

    def subscribe(
        self, listener: Listener, kinds: Optional[Iterable[ChangeKind]] = None
    ) -> Callable[[], None]:
        """Shortcut for ``self.notifier.subscribe``."""
        return self.notifier.subscribe(listener, kinds)

    # === Scalars ===

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def time_scale(self) -> float:
        return self._time_scale

    @property
    def selected_layer_ids(self) -> List[str]:
        return list(self._selected_layer_ids)

    @property
    def selected_keyframe_ids(self) -> List[Tuple[str, str]]:
        return list(self._selected_keyframes)

    # === Layers ===

    def get_layers(self) -> List[Layer]:
        return copy.deepcopy(self._layers)

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        layer = self._find_layer(layer_id)
        return copy.deepcopy(layer) if layer else None

    def add_layer(
        self,
        name: Optional[str] = None,
        visible: bool = True,
        locked: bool = False,
        color: Optional[str] = None,
        parent_id: Optional[str] = None,
        is_expanded: bool = True,
    ) -> Layer:
        """
        Add a layer after its last sibling.

        Args:
            name: Display name (defaults to "Layer N")
            visible: Visibility flag
            locked: Lock flag
            color: Track color (defaults cycle through LAYER_COLORS)
            parent_id: Parent layer, None for a root layer
            is_expanded: Whether the layer's children are shown

        Returns:
            A copy of the stored layer
        """
        count = len(self._layers)
        fields = {
            "name": name if name is not None else f"Layer {count + 1}",
            "visible": visible,
            "locked": locked,
            "color": color if color is not None else LAYER_COLORS[count % len(LAYER_COLORS)],
            "parent_id": parent_id,
            "is_expanded": is_expanded,
        }
        _check_layer_changes(fields)
        if parent_id is not None and self._find_layer(parent_id) is None:
            raise NotFoundError("Layer", parent_id)

        index = len(self._siblings(parent_id))
        layer = Layer(id=self._unique_id("layer", self._layer_ids()), index=index, **fields)
        self._layers.append(layer)

        logger.info(f"Added layer {layer.name} ({layer.id})", extra={"layer_id": layer.id})
        self._publish(ChangeKind.LAYER_ADDED, (layer.id,), {"layer": layer.to_dict()})
        return copy.deepcopy(layer)

    def update_layer(self, layer_id: str, **changes) -> Layer:
        """
        Merge field changes into a layer.

        ``index`` is a position among the layer's siblings; the siblings are
        renumbered around it. A new ``parent_id`` without an ``index``
        appends the layer after its new siblings.

        Raises:
            NotFoundError: unknown layer, or unknown parent in ``parent_id``
            CyclicGroupError: ``parent_id`` would make the layer its own ancestor
            ValueError: unknown/immutable field or wrongly typed value
        """
        layer = self._require_layer(layer_id)
        _check_layer_changes(changes)

        old_parent_id = layer.parent_id
        if "parent_id" in changes:
            parent_id = changes["parent_id"]
            if parent_id is not None and self._find_layer(parent_id) is None:
                raise NotFoundError("Layer", parent_id)
            if self.groups.would_create_circular_reference(layer_id, parent_id):
                logger.debug(f"Rejected reparenting {layer_id} under {parent_id}: cycle")
                raise CyclicGroupError(layer_id, parent_id)

        for key, value in changes.items():
            if key != "index":
                setattr(layer, key, value)

        if layer.parent_id != old_parent_id:
            self._place(layer, changes.get("index", len(self._siblings(layer.parent_id, exclude=layer_id))))
            self._renumber(old_parent_id)
        elif "index" in changes:
            self._place(layer, changes["index"])

        values = _payload(changes)
        if "index" in changes or "parent_id" in changes:
            values["index"] = layer.index
        self._publish(ChangeKind.LAYER_UPDATED, (layer_id,), values)
        return copy.deepcopy(layer)

    def move_layer(self, layer_id: str, new_index: int) -> Layer:
        """
        Move a layer to another position among its siblings.

        Args:
            layer_id: Layer to move
            new_index: Target position, 0 is the top of the sibling list

        Raises:
            NotFoundError: unknown layer
            ValueError: ``new_index`` outside the sibling list
        """
        layer = self._require_layer(layer_id)
        sibling_count = len(self._siblings(layer.parent_id))
        if isinstance(new_index, bool) or not isinstance(new_index, int) or not 0 <= new_index < sibling_count:
            raise ValueError(f"new_index must be in [0, {sibling_count - 1}], got {new_index!r}")

        old_index = layer.index
        self._place(layer, new_index)
        order = [l.id for l in self._siblings(layer.parent_id)]

        logger.debug(f"Moved layer {layer_id} from {old_index} to {layer.index}")
        self._publish(
            ChangeKind.LAYER_MOVED,
            (layer_id,),
            {"oldIndex": old_index, "newIndex": layer.index, "parentId": layer.parent_id, "order": order},
        )
        return copy.deepcopy(layer)

    def duplicate_layer(self, layer_id: str, name: Optional[str] = None) -> Layer:
        """
        Copy a layer with its keyframes and tweens, placed right after it.

        Keyframes and tweens get fresh ids and the tweens point at the copied
        keyframes. Child layers are not copied.
        """
        source = self._require_layer(layer_id)
        if name is not None and not isinstance(name, str):
            raise ValueError(f"Layer.name has invalid value {name!r}")

        clone = copy.deepcopy(source)
        clone.id = self._unique_id("layer", self._layer_ids())
        clone.name = name if name is not None else f"{source.name} copy"

        keyframe_ids: Dict[str, str] = {}
        for kf in clone.keyframes:
            fresh = self._unique_id("keyframe", set(keyframe_ids.values()))
            keyframe_ids[kf.id] = fresh
            kf.id = fresh
            kf.is_selected = False
        tween_ids: Set[str] = set()
        for tween in clone.motion_tweens:
            tween.id = self._unique_id("tween", tween_ids)
            tween_ids.add(tween.id)
            tween.start_keyframe_id = keyframe_ids[tween.start_keyframe_id]
            tween.end_keyframe_id = keyframe_ids[tween.end_keyframe_id]

        self._layers.insert(self._layers.index(source) + 1, clone)
        self._place(clone, source.index + 1)

        logger.info(f"Duplicated layer {layer_id} as {clone.id}", extra={"layer_id": clone.id})
        self._publish(ChangeKind.LAYER_ADDED, (clone.id,), {"layer": clone.to_dict(), "sourceId": layer_id})
        return copy.deepcopy(clone)

    def remove_layer(self, layer_id: str, cascade_policy: CascadePolicy) -> bool:
        """
        Remove a layer with its keyframes and tweens.

        Args:
            layer_id: Layer to remove
            cascade_policy: REPARENT_CHILDREN moves children to this layer's
                parent (after its existing children); DELETE_CHILDREN
                removes the whole subtree

        Returns:
            True if removed, False if the layer does not exist
        """
        policy = CascadePolicy(cascade_policy)
        layer = self._find_layer(layer_id)
        if layer is None:
            return False

        if policy == CascadePolicy.DELETE_CHILDREN:
            removed = [layer_id] + self.groups.get_descendant_ids(layer_id)
            children: List[Layer] = []
        else:
            removed = [layer_id]
            children = self._siblings(layer_id)

        removed_set = set(removed)
        self._layers = [l for l in self._layers if l.id not in removed_set]
        self._renumber(layer.parent_id)
        base = len(self._siblings(layer.parent_id))
        for offset, child in enumerate(children):
            child.parent_id = layer.parent_id
            child.index = base + offset
        self._selected_layer_ids = [i for i in self._selected_layer_ids if i not in removed_set]
        self._selected_keyframes = [s for s in self._selected_keyframes if s[0] not in removed_set]

        logger.info(f"Removed layer {layer_id} ({policy.value}, {len(removed)} removed)")
        self._publish(
            ChangeKind.LAYER_REMOVED,
            tuple(removed),
            {
                "cascadePolicy": policy.value,
                "reparentedIds": [c.id for c in children],
                "newParentId": layer.parent_id if children else None,
            },
        )
        return True

    def select_layer(self, layer_id: str, multi_select: bool = False):
        self._require_layer(layer_id)
        if not multi_select:
            self._selected_layer_ids = []
        if layer_id not in self._selected_layer_ids:
            self._selected_layer_ids.append(layer_id)
        self._publish(
            ChangeKind.LAYER_SELECTED,
            (layer_id,),
            {"multiSelect": multi_select, "selectedLayerIds": list(self._selected_layer_ids)},
        )

    # === Keyframes ===

    def get_keyframes(self, layer_id: str) -> List[Keyframe]:
        return copy.deepcopy(self._require_layer(layer_id).keyframes)

    def add_keyframe(self, layer_id: str, time: float, properties: Optional[Dict[str, Any]] = None) -> Keyframe:
        """
        Add a keyframe to a layer, growing the duration to cover it.

        Raises:
            InvalidTimeRangeError: negative or non-finite time
            NotFoundError: unknown layer
            ValueError: non-scalar property values
        """
        time = _check_time(time)
        layer = self._require_layer(layer_id)
        props = validate_properties(properties)

        keyframe = Keyframe(
            id=self._unique_id("keyframe", {k.id for k in layer.keyframes}),
            time=time,
            properties=props,
        )
        layer.keyframes.append(keyframe)
        layer.sort_keyframes()
        previous_duration = self._grow_duration(time)

        logger.debug(f"Added keyframe {keyframe.id} at {time}s to {layer_id}")
        self._publish(ChangeKind.KEYFRAME_ADDED, (layer_id, keyframe.id), {"keyframe": keyframe.to_dict()})
        self._publish_duration(previous_duration)
        return copy.deepcopy(keyframe)

    def update_keyframe(self, layer_id: str, keyframe_id: str, **changes) -> Keyframe:
        layer = self._require_layer(layer_id)
        keyframe = self._require_keyframe(layer, keyframe_id)
        unknown = set(changes) - _KEYFRAME_FIELDS
        if unknown:
            raise ValueError(f"Keyframe field(s) cannot be updated: {', '.join(sorted(unknown))}")
        if "time" in changes:
            changes["time"] = _check_time(changes["time"])
        if "properties" in changes:
            changes["properties"] = validate_properties(changes["properties"])
        if "is_selected" in changes and not isinstance(changes["is_selected"], bool):
            raise ValueError(f"Keyframe.is_selected must be a boolean, got {changes['is_selected']!r}")

        for key, value in changes.items():
            setattr(keyframe, key, value)

        previous_duration = None
        if "time" in changes:
            layer.sort_keyframes()
            previous_duration = self._grow_duration(keyframe.time)
        if "is_selected" in changes:
            ref = (layer_id, keyframe_id)
            if keyframe.is_selected and ref not in self._selected_keyframes:
                self._selected_keyframes.append(ref)
            elif not keyframe.is_selected and ref in self._selected_keyframes:
                self._selected_keyframes.remove(ref)

        self._publish(ChangeKind.KEYFRAME_UPDATED, (layer_id, keyframe_id), _payload(changes))
        self._publish_duration(previous_duration)
        return copy.deepcopy(keyframe)

    def remove_keyframe(self, layer_id: str, keyframe_id: str) -> bool:
        """Remove a keyframe and every tween that references it."""
        layer = self._find_layer(layer_id)
        if layer is None or layer.find_keyframe(keyframe_id) is None:
            return False

        dropped = [
            t.id for t in layer.motion_tweens
            if keyframe_id in (t.start_keyframe_id, t.end_keyframe_id)
        ]
        layer.motion_tweens = [t for t in layer.motion_tweens if t.id not in dropped]
        layer.keyframes = [k for k in layer.keyframes if k.id != keyframe_id]
        ref = (layer_id, keyframe_id)
        if ref in self._selected_keyframes:
            self._selected_keyframes.remove(ref)

        logger.debug(f"Removed keyframe {keyframe_id} from {layer_id} ({len(dropped)} tweens dropped)")
        for tween_id in dropped:
            self._publish(ChangeKind.TWEEN_REMOVED, (layer_id, tween_id), {"cascadeFrom": keyframe_id})
        self._publish(ChangeKind.KEYFRAME_REMOVED, (layer_id, keyframe_id), {"removedTweenIds": dropped})
        return True

    def select_keyframe(self, layer_id: str, keyframe_id: str, multi_select: bool = False):
        layer = self._require_layer(layer_id)
        keyframe = self._require_keyframe(layer, keyframe_id)
        if not multi_select:
            for other in self._layers:
                for kf in other.keyframes:
                    kf.is_selected = False
            self._selected_keyframes = []
        keyframe.is_selected = True
        if (layer_id, keyframe_id) not in self._selected_keyframes:
            self._selected_keyframes.append((layer_id, keyframe_id))
        self._publish(
            ChangeKind.KEYFRAME_SELECTED,
            (layer_id, keyframe_id),
            {"multiSelect": multi_select, "selectedCount": len(self._selected_keyframes)},
        )

    def clear_selection(self):
        for layer in self._layers:
            for kf in layer.keyframes:
                kf.is_selected = False
        self._selected_layer_ids = []
        self._selected_keyframes = []
        self._publish(ChangeKind.SELECTION_CLEARED)

    def move_keyframes(self, offset: float, refs: Optional[List[Tuple[str, str]]] = None) -> List[Keyframe]:
        """
        Shift keyframes in time by ``offset`` seconds, keeping them on their layers.

        Args:
            offset: Seconds to add to each keyframe time (may be negative)
            refs: (layer_id, keyframe_id) pairs; defaults to the keyframe selection

        Returns:
            Copies of the moved keyframes

        Raises:
            NotFoundError: a referenced layer or keyframe does not exist
            InvalidTimeRangeError: a keyframe would move before 0
        """
        offset = _check_finite(offset, "offset")
        targets = self._resolve_keyframes(refs)
        if not targets:
            return []
        for layer, keyframe in targets:
            if keyframe.time + offset < 0:
                raise InvalidTimeRangeError(
                    f"Keyframe {keyframe.id} at {keyframe.time}s cannot move by {offset}s"
                )

        for layer, keyframe in targets:
            keyframe.time += offset
        for layer in {id(l): l for l, _ in targets}.values():
            layer.sort_keyframes()
        previous_duration = self._grow_duration(max(kf.time for _, kf in targets))

        logger.debug(f"Moved {len(targets)} keyframes by {offset}s")
        self._publish(
            ChangeKind.KEYFRAMES_MOVED,
            tuple(kf.id for _, kf in targets),
            {"offset": offset, "moves": [[l.id, kf.id, kf.time] for l, kf in targets]},
        )
        self._publish_duration(previous_duration)
        return [copy.deepcopy(kf) for _, kf in targets]

    def copy_keyframes(self, refs: Optional[List[Tuple[str, str]]] = None) -> int:
        """
        Put keyframes on the model's clipboard for paste_keyframes().

        Returns:
            Number of keyframes copied (0 leaves the clipboard untouched)
        """
        targets = self._resolve_keyframes(refs)
        if not targets:
            logger.warning("No keyframes selected to copy")
            return 0
        self._clipboard = [(kf.time, dict(kf.properties)) for _, kf in targets]
        self._publish(ChangeKind.KEYFRAMES_COPIED, values={"count": len(self._clipboard)})
        return len(self._clipboard)

    def paste_keyframes(self, layer_id: str, time: float) -> List[Keyframe]:
        """
        Paste the clipboard onto a layer, the earliest copied keyframe landing at ``time``.

        Keyframes that would land on an existing keyframe of the layer are
        skipped.

        Returns:
            Copies of the new keyframes
        """
        time = _check_time(time)
        layer = self._require_layer(layer_id)
        if not self._clipboard:
            logger.warning("No keyframes in clipboard")
            return []

        shift = time - min(t for t, _ in self._clipboard)
        epsilon = self.settings.exact_match_epsilon
        taken = {k.id for k in layer.keyframes}
        pasted: List[Keyframe] = []
        skipped = 0
        for copied_time, properties in self._clipboard:
            target = copied_time + shift
            if any(abs(k.time - target) < epsilon for k in layer.keyframes + pasted):
                logger.debug(f"Skipping paste at {target}s on {layer_id}: keyframe already there")
                skipped += 1
                continue
            keyframe = Keyframe(id=self._unique_id("keyframe", taken), time=target, properties=dict(properties))
            taken.add(keyframe.id)
            pasted.append(keyframe)

        if not pasted:
            return []
        layer.keyframes.extend(pasted)
        layer.sort_keyframes()
        previous_duration = self._grow_duration(max(k.time for k in pasted))

        self._publish(
            ChangeKind.KEYFRAMES_PASTED,
            (layer_id,) + tuple(k.id for k in pasted),
            {"keyframes": [k.to_dict() for k in pasted], "skipped": skipped},
        )
        self._publish_duration(previous_duration)
        return copy.deepcopy(pasted)

    @property
    def clipboard_size(self) -> int:
        return len(self._clipboard)

    def get_keyframes_at_time(self, time: float, tolerance: Optional[float] = None) -> List[KeyframeHit]:
        """
        All keyframes across all layers within ``tolerance`` seconds of ``time``.

        Exact float matches are unreliable, hence the tolerance window
        (defaults to ``settings.keyframe_tolerance``).
        """
        if tolerance is None:
            tolerance = self.settings.keyframe_tolerance
        if tolerance < 0:
            raise ValueError(f"tolerance must not be negative, got {tolerance}")
        return [
            KeyframeHit(layer.id, copy.deepcopy(kf))
            for layer in self._layers
            for kf in layer.keyframes
            if abs(kf.time - time) <= tolerance
        ]

    # === Motion Tweens ===

    def get_motion_tweens(self, layer_id: str) -> List[MotionTween]:
        return copy.deepcopy(self._require_layer(layer_id).motion_tweens)

    def add_motion_tween(
        self,
        layer_id: str,
        start_keyframe_id: str,
        end_keyframe_id: str,
        easing_function: str = DEFAULT_EASING,
        properties: Optional[Dict[str, Any]] = None,
    ) -> MotionTween:
        """
        Join two keyframes of a layer with an interpolating tween.

        Raises:
            NotFoundError: unknown layer
            InvalidReferenceError: missing keyframe ids, or start == end
        """
        layer = self._require_layer(layer_id)
        self._check_tween_refs(layer, start_keyframe_id, end_keyframe_id)
        props = validate_properties(properties)
        easing = easing_function or DEFAULT_EASING
        if not is_known_easing(easing):
            logger.warning(f"Unknown easing '{easing}' on layer {layer_id}, will behave as linear")

        tween = MotionTween(
            id=self._unique_id("tween", {t.id for t in layer.motion_tweens}),
            start_keyframe_id=start_keyframe_id,
            end_keyframe_id=end_keyframe_id,
            easing_function=easing,
            properties=props,
        )
        layer.motion_tweens.append(tween)

        logger.debug(f"Added tween {tween.id} ({start_keyframe_id} -> {end_keyframe_id}, {easing})")
        self._publish(ChangeKind.TWEEN_ADDED, (layer_id, tween.id), {"tween": tween.to_dict()})
        return copy.deepcopy(tween)

    def update_motion_tween(self, layer_id: str, tween_id: str, **changes) -> MotionTween:
        layer = self._require_layer(layer_id)
        tween = layer.find_tween(tween_id)
        if tween is None:
            raise NotFoundError("MotionTween", tween_id, layer_id)
        unknown = set(changes) - _TWEEN_FIELDS
        if unknown:
            raise ValueError(f"MotionTween field(s) cannot be updated: {', '.join(sorted(unknown))}")

        self._check_tween_refs(
            layer,
            changes.get("start_keyframe_id", tween.start_keyframe_id),
            changes.get("end_keyframe_id", tween.end_keyframe_id),
        )
        if "properties" in changes:
            changes["properties"] = validate_properties(changes["properties"])
        if "easing_function" in changes:
            changes["easing_function"] = changes["easing_function"] or DEFAULT_EASING

        for key, value in changes.items():
            setattr(tween, key, value)

        self._publish(ChangeKind.TWEEN_UPDATED, (layer_id, tween_id), _payload(changes))
        return copy.deepcopy(tween)

    def remove_motion_tween(self, layer_id: str, tween_id: str) -> bool:
        layer = self._find_layer(layer_id)
        if layer is None or layer.find_tween(tween_id) is None:
            return False
        layer.motion_tweens = [t for t in layer.motion_tweens if t.id != tween_id]
        self._publish(ChangeKind.TWEEN_REMOVED, (layer_id, tween_id))
        return True

    # === Time ===

    def set_current_time(self, time: float, extend: bool = False) -> float:
        """
        Move the playhead, clamped to [0, duration].

        Args:
            time: Requested time in seconds
            extend: Grow the duration first (by ``settings.extension_padding``)
                when seeking past the end

        Returns:
            The time actually set
        """
        if isinstance(time, bool) or not isinstance(time, (int, float)) or math.isnan(time):
            raise InvalidTimeRangeError(f"time must be a number, got {time!r}")
        if extend and math.isfinite(time):
            self.extend_duration_if_needed(time, self.settings.extension_padding)

        self._current_time = max(0.0, min(float(time), self._duration))
        self._publish(ChangeKind.TIME_CHANGED, values={"time": self._current_time, "requested": time})
        return self._current_time

    def extend_duration_if_needed(self, time: float, padding: float = 0.0) -> bool:
        """
        Grow the duration to ``time + padding`` if that is past the end.

        Returns:
            True if the duration was extended
        """
        target = _check_finite(time, "time") + _check_finite(padding, "padding")
        if target <= self._duration:
            return False
        previous = self._duration
        self._duration = target
        logger.debug(f"Duration extended {previous}s -> {target}s")
        self._publish_duration(previous)
        return True

    def set_duration(self, duration: float) -> bool:
        """
        Set the timeline length explicitly.

        Raises:
            InvalidTimeRangeError: negative, or shorter than the latest keyframe

        Returns:
            True if the duration changed
        """
        duration = _check_time(duration, "duration")
        latest = self.get_max_keyframe_time()
        if duration < latest:
            raise InvalidTimeRangeError(f"duration {duration}s would cut off the keyframe at {latest}s")
        if duration == self._duration:
            return False

        previous = self._duration
        self._duration = duration
        clamped = self._current_time > duration
        if clamped:
            self._current_time = duration

        self._publish_duration(previous)
        if clamped:
            self._publish(ChangeKind.TIME_CHANGED, values={"time": self._current_time, "requested": self._current_time})
        return True

    def set_time_scale(self, scale: float) -> float:
        """Set zoom, clamped to the configured limits. Returns the applied scale."""
        scale = _check_finite(scale, "time scale")
        self._time_scale = max(self.settings.min_time_scale, min(scale, self.settings.max_time_scale))
        self._publish(ChangeKind.ZOOM_CHANGED, values={"timeScale": self._time_scale})
        return self._time_scale

    def get_max_keyframe_time(self) -> float:
        return max((kf.time for layer in self._layers for kf in layer.keyframes), default=0.0)

    # === Interpolation ===

    def get_objects_at_time(self, time: float, include_hidden: bool = True) -> List[ObjectState]:
        """
        Interpolated property snapshot of every layer at ``time``.

        Args:
            time: Time in seconds
            include_hidden: Also report layers whose ``visible`` flag is off

        Returns:
            One ObjectState per layer, in layer list order
        """
        return [
            ObjectState(copy.deepcopy(layer), self._properties_at(layer, time))
            for layer in self._layers
            if include_hidden or layer.visible
        ]

    def _properties_at(self, layer: Layer, time: float) -> Dict[str, Any]:
        keyframes = layer.keyframes
        if not keyframes:
            return {}
        if time <= keyframes[0].time:
            return dict(keyframes[0].properties)
        if time >= keyframes[-1].time:
            return dict(keyframes[-1].properties)

        # Most recent keyframe at or before time
        previous = keyframes[0]
        for kf in keyframes:
            if kf.time > time:
                break
            previous = kf
        if abs(previous.time - time) < self.settings.exact_match_epsilon:
            return dict(previous.properties)

        for tween in layer.motion_tweens:
            start = layer.find_keyframe(tween.start_keyframe_id)
            end = layer.find_keyframe(tween.end_keyframe_id)
            if start is None or end is None:
                continue
            if not min(start.time, end.time) <= time <= max(start.time, end.time):
                continue
            span = end.time - start.time
            progress = (time - start.time) / span if span else 1.0
            props = self.interpolator.interpolate(
                start.properties, end.properties, progress, tween.easing_function
            )
            props.update(tween.properties)
            return props

        # No tween covers this time: hold the last keyframe
        return dict(previous.properties)

    # === Export/Import ===

    def to_dict(self) -> dict:
        return {
            "layers": [layer.to_dict() for layer in self._layers],
            "currentTime": self._current_time,
            "duration": self._duration,
            "timeScale": self._time_scale,
            "selectedLayerIds": list(self._selected_layer_ids),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def from_json(self, json_str: str):
        """Replace the whole state from a JSON document (not a merge)."""
        try:
            data = json.loads(json_str)
        except (TypeError, ValueError) as e:
            raise MalformedSerializedStateError(f"Invalid JSON: {e}") from e
        self.from_dict(data)

    def from_dict(self, data: dict):
        """
        Replace the whole state from a parsed document.

        The document is fully validated before anything is swapped in.

        Raises:
            MalformedSerializedStateError: structure or invariant violation;
                the current state is kept
        """
        try:
            layers, scalars, selected = self._parse_state(data)
        except ValueError as e:
            logger.warning(f"Rejected timeline import: {e}")
            raise MalformedSerializedStateError(str(e)) from e

        self._layers = layers
        self._current_time, self._duration, self._time_scale = scalars
        self._selected_layer_ids = selected
        self._selected_keyframes = [
            (layer.id, kf.id) for layer in layers for kf in layer.keyframes if kf.is_selected
        ]

        logger.info(f"Imported timeline: {len(layers)} layers, {self._duration}s")
        self._publish(
            ChangeKind.DATA_IMPORTED,
            tuple(l.id for l in layers),
            {"duration": self._duration, "currentTime": self._current_time, "timeScale": self._time_scale},
        )

    def _parse_state(self, data) -> Tuple[List[Layer], Tuple[float, float, float], List[str]]:
        if not isinstance(data, dict):
            raise ValueError("timeline document must be an object")
        raw_layers = data.get("layers")
        if not isinstance(raw_layers, list):
            raise ValueError("timeline document needs a 'layers' array")
        layers = [Layer.from_dict(item) for item in raw_layers]

        def number(key: str, default: float) -> float:
            value = data.get(key, default)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"'{key}' must be a finite number, got {value!r}")
            return float(value)

        current_time = number("currentTime", 0.0)
        duration = number("duration", self.settings.default_duration)
        time_scale = number("timeScale", self.settings.default_time_scale)

        # Unique ids (layers globally, keyframes/tweens per layer)
        layer_ids: Set[str] = set()
        for layer in layers:
            if layer.id in layer_ids:
                raise ValueError(f"duplicate layer id {layer.id}")
            layer_ids.add(layer.id)
            keyframe_ids = [k.id for k in layer.keyframes]
            if len(set(keyframe_ids)) != len(keyframe_ids):
                raise ValueError(f"duplicate keyframe id in layer {layer.id}")
            tween_ids = [t.id for t in layer.motion_tweens]
            if len(set(tween_ids)) != len(tween_ids):
                raise ValueError(f"duplicate motion tween id in layer {layer.id}")
            for kf in layer.keyframes:
                if not math.isfinite(kf.time) or kf.time < 0:
                    raise ValueError(f"keyframe {kf.id} in layer {layer.id} has invalid time {kf.time}")
            for tween in layer.motion_tweens:
                try:
                    self._check_tween_refs(layer, tween.start_keyframe_id, tween.end_keyframe_id)
                except InvalidReferenceError as e:
                    raise ValueError(f"motion tween {tween.id}: {e}") from e

        # Parent links
        for layer in layers:
            if layer.parent_id is not None and layer.parent_id not in layer_ids:
                raise ValueError(f"layer {layer.id} references missing parent {layer.parent_id}")
        cyclic = find_cycle({l.id: l.parent_id for l in layers})
        if cyclic is not None:
            raise ValueError(f"layer {cyclic} is its own ancestor")

        # Time scalars
        latest = max((kf.time for l in layers for kf in l.keyframes), default=0.0)
        if duration < latest:
            raise ValueError(f"duration {duration} is shorter than the keyframe at {latest}")
        if not 0 <= current_time <= duration:
            raise ValueError(f"currentTime {current_time} is outside [0, {duration}]")
        if not self.settings.min_time_scale <= time_scale <= self.settings.max_time_scale:
            raise ValueError(
                f"timeScale {time_scale} is outside "
                f"[{self.settings.min_time_scale}, {self.settings.max_time_scale}]"
            )

        selected = data.get("selectedLayerIds", [])
        if not isinstance(selected, list) or not all(isinstance(i, str) and i in layer_ids for i in selected):
            raise ValueError("selectedLayerIds must list existing layer ids")

        # Sibling order is kept, indices are renumbered 0..n-1
        by_parent: Dict[Optional[str], List[Layer]] = {}
        for layer in sorted(layers, key=lambda l: l.index):
            by_parent.setdefault(layer.parent_id, []).append(layer)
        for siblings in by_parent.values():
            for index, layer in enumerate(siblings):
                layer.index = index

        return layers, (current_time, duration, time_scale), list(dict.fromkeys(selected))

    # === Private Methods ===

    def _create_group_layer(self, name: str, member_ids: List[str]) -> Layer:
        """Add a group layer and reparent members under it as one mutation."""
        count = len(self._layers)
        group = Layer(
            id=self._unique_id("layer", self._layer_ids()),
            name=name or "Group",
            color=LAYER_COLORS[count % len(LAYER_COLORS)],
            index=len(self._siblings(None)),
        )
        self._layers.append(group)
        old_parents = []
        for position, layer_id in enumerate(member_ids):
            member = self._find_layer(layer_id)
            old_parents.append(member.parent_id)
            member.parent_id = group.id
            member.index = position
        for parent_id in dict.fromkeys(old_parents):
            self._renumber(parent_id)

        self._publish(
            ChangeKind.LAYER_ADDED,
            (group.id,),
            {"layer": group.to_dict(), "memberIds": list(member_ids)},
        )
        self._publish(ChangeKind.LAYER_UPDATED, tuple(member_ids), {"parentId": group.id})
        return copy.deepcopy(group)

    def _find_layer(self, layer_id: str) -> Optional[Layer]:
        for layer in self._layers:
            if layer.id == layer_id:
                return layer
        return None

    def _resolve_keyframes(self, refs: Optional[List[Tuple[str, str]]]) -> List[Tuple[Layer, Keyframe]]:
        """Look up (layer_id, keyframe_id) pairs, defaulting to the selection."""
        pairs = self._selected_keyframes if refs is None else refs
        resolved = []
        for layer_id, keyframe_id in dict.fromkeys(tuple(p) for p in pairs):
            layer = self._require_layer(layer_id)
            resolved.append((layer, self._require_keyframe(layer, keyframe_id)))
        return resolved

    def _require_layer(self, layer_id: str) -> Layer:
        layer = self._find_layer(layer_id)
        if layer is None:
            raise NotFoundError("Layer", layer_id)
        return layer

    @staticmethod
    def _require_keyframe(layer: Layer, keyframe_id: str) -> Keyframe:
        keyframe = layer.find_keyframe(keyframe_id)
        if keyframe is None:
            raise NotFoundError("Keyframe", keyframe_id, layer.id)
        return keyframe

    @staticmethod
    def _check_tween_refs(layer: Layer, start_keyframe_id: str, end_keyframe_id: str):
        if start_keyframe_id == end_keyframe_id:
            raise InvalidReferenceError(
                f"Motion tween needs two different keyframes, got {start_keyframe_id} twice"
            )
        for keyframe_id in (start_keyframe_id, end_keyframe_id):
            if layer.find_keyframe(keyframe_id) is None:
                raise InvalidReferenceError(f"Keyframe {keyframe_id} is not on layer {layer.id}")

    def _layer_ids(self) -> Set[str]:
        return {l.id for l in self._layers}

    def _siblings(self, parent_id: Optional[str], exclude: Optional[str] = None) -> List[Layer]:
        """Layers under ``parent_id`` in display order (stable for equal indices)."""
        return sorted(
            (l for l in self._layers if l.parent_id == parent_id and l.id != exclude),
            key=lambda l: l.index,
        )

    def _place(self, layer: Layer, position: int):
        """Insert ``layer`` at ``position`` among its siblings and renumber them 0..n-1."""
        siblings = self._siblings(layer.parent_id, exclude=layer.id)
        siblings.insert(max(0, min(position, len(siblings))), layer)
        for index, sibling in enumerate(siblings):
            sibling.index = index

    def _renumber(self, parent_id: Optional[str]):
        for index, sibling in enumerate(self._siblings(parent_id)):
            sibling.index = index

    @staticmethod
    def _unique_id(prefix: str, taken: Set[str]) -> str:
        while True:
            candidate = new_id(prefix)
            if candidate not in taken:
                return candidate

    def _grow_duration(self, time: float) -> Optional[float]:
        """Extend duration to cover ``time``; returns the old duration if it grew."""
        if time <= self._duration:
            return None
        previous = self._duration
        self._duration = time
        return previous

    def _publish_duration(self, previous: Optional[float]):
        if previous is None:
            return
        self._publish(ChangeKind.DURATION_CHANGED, values={"duration": self._duration, "previous": previous})

    def _publish(self, kind: ChangeKind, ids: Tuple[str, ...] = (), values: Optional[Dict[str, Any]] = None):
        # Listeners get their own copy of the payload, never live model state
        self.notifier.publish(ChangeEvent(kind, tuple(ids), copy.deepcopy(values) if values else {}))
