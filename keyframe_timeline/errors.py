"""
Error taxonomy for the timeline engine.

Every validation failure is raised at the offending call, before any state
is touched and before any change notification goes out.
"""

from dataclasses import dataclass


class TimelineError(Exception):
    """Base class for all timeline engine errors."""


class NotFoundError(TimelineError):
    """A referenced layer, keyframe or tween id does not exist."""

    def __init__(self, kind: str, entity_id: str, layer_id: str = None):
        self.kind = kind
        self.entity_id = entity_id
        self.layer_id = layer_id
        where = f" in layer {layer_id}" if layer_id else ""
        super().__init__(f"{kind} not found: {entity_id}{where}")


class InvalidReferenceError(TimelineError):
    """A motion tween references missing, duplicate or foreign keyframes."""


class CyclicGroupError(TimelineError):
    """Reparenting would make a layer its own ancestor."""

    def __init__(self, layer_id: str, parent_id: str):
        self.layer_id = layer_id
        self.parent_id = parent_id
        super().__init__(f"Moving {layer_id} under {parent_id} would create a group cycle")


class InvalidTimeRangeError(TimelineError):
    """Negative time, or a duration shorter than the latest keyframe."""


class MalformedSerializedStateError(TimelineError):
    """Imported timeline data failed validation; the previous state is kept."""


@dataclass(frozen=True)
class UnparseableColor:
    """Non-fatal record of a color string that could not be blended."""
    value: str
    reason: str = "unsupported color format"
