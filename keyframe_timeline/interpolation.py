"""
Property interpolation between keyframes.

Property maps are plain dicts for storage; for blending each value is
tagged with a PropertyKind and the blend rule is chosen by tag.
"""

from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any, Dict, Optional

from .color import ColorInterpolator, looks_like_color
from .easing import DEFAULT_EASING, apply_easing

# Progress at which non-interpolable values flip from start to end
DISCRETE_SWITCH_POINT = 0.5


class PropertyKind(Enum):
    NUMBER = "number"
    COLOR = "color"
    TEXT = "text"
    BOOL = "bool"


@dataclass(frozen=True)
class PropertyValue:
    """A property value tagged with its kind."""
    kind: PropertyKind
    value: Any

    @classmethod
    def of(cls, raw: Any) -> "PropertyValue":
        # bool is a subclass of int, so it has to be checked first
        if isinstance(raw, bool):
            return cls(PropertyKind.BOOL, raw)
        if isinstance(raw, Real):
            return cls(PropertyKind.NUMBER, raw)
        if isinstance(raw, str):
            kind = PropertyKind.COLOR if looks_like_color(raw) else PropertyKind.TEXT
            return cls(kind, raw)
        raise ValueError(f"Unsupported property value {raw!r} ({type(raw).__name__})")


def validate_properties(properties: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of a property map, rejecting non-scalar values."""
    if properties is None:
        return {}
    if not isinstance(properties, dict):
        raise ValueError(f"properties must be a mapping, got {type(properties).__name__}")
    result = {}
    for key, value in properties.items():
        if not isinstance(key, str):
            raise ValueError(f"property names must be strings, got {key!r}")
        PropertyValue.of(value)
        result[key] = value
    return result


class PropertyInterpolator:
    """Blends two property maps at a given progress."""

    def __init__(self, colors: Optional[ColorInterpolator] = None):
        self.colors = colors or ColorInterpolator()

    def interpolate(
        self,
        start: Dict[str, Any],
        end: Dict[str, Any],
        progress: float,
        easing: str = DEFAULT_EASING,
    ) -> Dict[str, Any]:
        """
        Interpolate between two sets of properties.

        Args:
            start: Properties at progress 0
            end: Properties at progress 1
            progress: Raw progress, clamped to [0, 1]
            easing: Easing function name (unknown names mean linear)

        Returns:
            Blended property map containing every key of either input
        """
        eased = apply_easing(progress, easing)
        result: Dict[str, Any] = {}

        for key in list(start) + [k for k in end if k not in start]:
            if key not in end:
                result[key] = start[key]
                continue
            if key not in start:
                result[key] = end[key]
                continue
            result[key] = self._blend(PropertyValue.of(start[key]), PropertyValue.of(end[key]), eased)

        return result

    def _blend(self, a: PropertyValue, b: PropertyValue, eased: float) -> Any:
        if a.kind == PropertyKind.NUMBER and b.kind == PropertyKind.NUMBER:
            return a.value + (b.value - a.value) * eased
        if a.kind == PropertyKind.COLOR and b.kind == PropertyKind.COLOR:
            blended = self.colors.blend(a.value, b.value, eased)
            if blended is not None:
                return blended
        return a.value if eased < DISCRETE_SWITCH_POINT else b.value
