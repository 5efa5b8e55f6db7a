"""
Change notifications for timeline mutations.

Events are delivered synchronously, in subscription order, after the
mutation is fully applied and before the mutating call returns.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    # Playback
    PLAY = "playback:play"
    PAUSE = "playback:pause"
    STOP = "playback:stop"
    PLAYBACK_LOOPED = "playback:loop"
    TIME_CHANGED = "time:changed"
    DURATION_CHANGED = "duration:changed"

    # Layers
    LAYER_ADDED = "layer:added"
    LAYER_UPDATED = "layer:updated"
    LAYER_REMOVED = "layer:removed"
    LAYER_SELECTED = "layer:selected"
    LAYER_MOVED = "layer:moved"

    # Keyframes
    KEYFRAME_ADDED = "keyframe:added"
    KEYFRAME_UPDATED = "keyframe:updated"
    KEYFRAME_REMOVED = "keyframe:removed"
    KEYFRAME_SELECTED = "keyframe:selected"
    SELECTION_CLEARED = "selection:cleared"
    KEYFRAMES_MOVED = "keyframes:moved"
    KEYFRAMES_COPIED = "keyframes:copied"
    KEYFRAMES_PASTED = "keyframes:pasted"

    # Motion tweens
    TWEEN_ADDED = "motiontween:added"
    TWEEN_UPDATED = "motiontween:updated"
    TWEEN_REMOVED = "motiontween:removed"

    # Whole-timeline
    ZOOM_CHANGED = "zoom:changed"
    DATA_IMPORTED = "data:imported"


@dataclass(frozen=True)
class ChangeEvent:
    """A single published mutation: what changed, which ids, and new values."""
    kind: ChangeKind
    ids: Tuple[str, ...] = ()
    values: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[ChangeEvent], None]


@dataclass(eq=False)
class _Subscription:
    listener: Listener
    kinds: Optional[FrozenSet[ChangeKind]]


class ChangeNotifier:
    """
    Fan-out of ChangeEvents to subscribed listeners.

    A listener may mutate the model from its callback; the nested mutation
    publishes its own event immediately (depth-first). Avoiding feedback
    loops is up to the listener.
    """

    def __init__(self):
        self._subscriptions: List[_Subscription] = []

    def subscribe(
        self, listener: Listener, kinds: Optional[Iterable[ChangeKind]] = None
    ) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: fn(event) called for every matching event
            kinds: Only deliver these event kinds (default: all)

        Returns:
            A callable that removes the subscription
        """
        sub = _Subscription(listener, frozenset(kinds) if kinds is not None else None)
        self._subscriptions.append(sub)

        def unsubscribe():
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

        return unsubscribe

    def publish(self, event: ChangeEvent):
        """Deliver an event to every matching listener."""
        # Snapshot so listeners can (un)subscribe during delivery
        for sub in list(self._subscriptions):
            if sub.kinds is not None and event.kind not in sub.kinds:
                continue
            try:
                sub.listener(event)
            except Exception:
                logger.exception(
                    f"Listener {sub.listener!r} failed on {event.kind.value}",
                    extra={"event_kind": event.kind.value},
                )

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)
