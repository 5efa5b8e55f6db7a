"""
Easing functions for motion tweens.
Each function maps progress in [0, 1] to eased progress in [0, 1].
"""

import re
from typing import Callable, Dict, List

EasingFunction = Callable[[float], float]

DEFAULT_EASING = "linear"


def _ease_linear(t: float) -> float:
    return t


def _ease_in_quad(t: float) -> float:
    return t * t


def _ease_out_quad(t: float) -> float:
    return t * (2 - t)


def _ease_in_out_quad(t: float) -> float:
    return 2 * t * t if t < 0.5 else -1 + (4 - 2 * t) * t


def _ease_in_cubic(t: float) -> float:
    return t ** 3


def _ease_out_cubic(t: float) -> float:
    return (t - 1) ** 3 + 1


def _ease_in_out_cubic(t: float) -> float:
    return 4 * t ** 3 if t < 0.5 else (t - 1) * (2 * t - 2) * (2 * t - 2) + 1


def _ease_in_quart(t: float) -> float:
    return t ** 4


def _ease_out_quart(t: float) -> float:
    return 1 - (t - 1) ** 4


def _ease_in_out_quart(t: float) -> float:
    return 8 * t ** 4 if t < 0.5 else 1 - 8 * (t - 1) ** 4


def _ease_in_quint(t: float) -> float:
    return t ** 5


def _ease_out_quint(t: float) -> float:
    return 1 + (t - 1) ** 5


def _ease_in_out_quint(t: float) -> float:
    return 16 * t ** 5 if t < 0.5 else 1 + 16 * (t - 1) ** 5


EASING_FUNCTIONS: Dict[str, EasingFunction] = {
    "linear": _ease_linear,
    "easeInQuad": _ease_in_quad,
    "easeOutQuad": _ease_out_quad,
    "easeInOutQuad": _ease_in_out_quad,
    "easeInCubic": _ease_in_cubic,
    "easeOutCubic": _ease_out_cubic,
    "easeInOutCubic": _ease_in_out_cubic,
    "easeInQuart": _ease_in_quart,
    "easeOutQuart": _ease_out_quart,
    "easeInOutQuart": _ease_in_out_quart,
    "easeInQuint": _ease_in_quint,
    "easeOutQuint": _ease_out_quint,
    "easeInOutQuint": _ease_in_out_quint,
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# snake_case spellings ("ease_in_out_cubic") resolve to the same functions
_ALIASES: Dict[str, str] = {
    _CAMEL_BOUNDARY.sub("_", name).lower(): name for name in EASING_FUNCTIONS
}


def easing_names() -> List[str]:
    """Canonical easing names, in menu order."""
    return list(EASING_FUNCTIONS)


def is_known_easing(name: str) -> bool:
    return name in EASING_FUNCTIONS or name in _ALIASES


def get_easing(name: str) -> EasingFunction:
    """Look up an easing function by name, falling back to linear."""
    if name in EASING_FUNCTIONS:
        return EASING_FUNCTIONS[name]
    canonical = _ALIASES.get(name)
    if canonical:
        return EASING_FUNCTIONS[canonical]
    return _ease_linear


def apply_easing(progress: float, name: str = DEFAULT_EASING) -> float:
    """Clamp progress to [0, 1] and apply the named easing."""
    progress = max(0.0, min(1.0, progress))
    return get_easing(name)(progress)
