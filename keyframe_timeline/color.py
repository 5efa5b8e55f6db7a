"""
Color parsing and blending for tweened color properties.
Supports #rgb, #rrggbb, rgb(), rgba() and a small set of named colors.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Set

from .errors import UnparseableColor

logger = logging.getLogger(__name__)

NAMED_COLORS = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "pink": (255, 192, 203),
    "brown": (165, 42, 42),
    "gray": (128, 128, 128),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
    "lime": (0, 255, 0),
    "olive": (128, 128, 0),
    "navy": (0, 0, 128),
    "teal": (0, 128, 128),
    "aqua": (0, 255, 255),
    "silver": (192, 192, 192),
    "maroon": (128, 0, 0),
    "fuchsia": (255, 0, 255),
}

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_FUNC_RE = re.compile(r"^(rgba?)\(\s*([^)]*)\)$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


@dataclass(frozen=True)
class Rgba:
    """A parsed color: 0-255 channels plus 0-1 alpha."""
    r: float
    g: float
    b: float
    a: float = 1.0

    def to_css(self) -> str:
        r, g, b = (int(round(c)) for c in (self.r, self.g, self.b))
        alpha = round(self.a, 3)
        if alpha >= 1:
            return f"rgb({r}, {g}, {b})"
        return f"rgba({r}, {g}, {b}, {alpha:g})"


def looks_like_color(value: str) -> bool:
    """Cheap syntactic check used to tag string properties as colors.

    Looser than ``parse_color`` for functional notation: anything starting
    with ``rgb(`` or ``rgba(`` is tagged, and malformed ones are reported when
    blended. Text after ``#`` must be 3 or 6 hex digits.
    """
    text = value.strip()
    if text.startswith("#"):
        return bool(_HEX_RE.match(text))
    if _FUNC_RE.match(text) or text.lower().startswith(("rgb(", "rgba(")):
        return True
    return text.lower() in NAMED_COLORS


def parse_color(value: str) -> Rgba:
    """Parse a color string, raising ValueError when it is not supported."""
    text = value.strip()

    hex_match = _HEX_RE.match(text)
    if hex_match:
        digits = hex_match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return Rgba(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))

    func_match = _FUNC_RE.match(text)
    if func_match:
        name = func_match.group(1).lower()
        parts = [p.strip() for p in func_match.group(2).split(",")]
        expected = 4 if name == "rgba" else 3
        if len(parts) != expected or not all(_NUMBER_RE.match(p) for p in parts):
            raise ValueError(f"expected {expected} numeric components in {value!r}")
        r, g, b = (max(0.0, min(255.0, float(p))) for p in parts[:3])
        a = max(0.0, min(1.0, float(parts[3]))) if expected == 4 else 1.0
        return Rgba(r, g, b, a)

    named = NAMED_COLORS.get(text.lower())
    if named:
        return Rgba(*named)

    raise ValueError(f"unsupported color format: {value!r}")


class ColorInterpolator:
    """
    Linearly blends two colors channel by channel.

    Parse failures are non-fatal: they are logged, remembered in
    ``warnings`` and reported to the caller as ``None`` so it can fall back
    to a discrete switch.
    """

    def __init__(self, warning_history: int = 100):
        self.warnings: Deque[UnparseableColor] = deque(maxlen=max(1, warning_history))
        self._reported: Set[str] = set()

    def blend(self, start: str, end: str, progress: float) -> Optional[str]:
        """Blend two color strings; returns None if either cannot be parsed."""
        try:
            c1 = parse_color(start)
        except ValueError as e:
            self._record(start, str(e))
            return None
        try:
            c2 = parse_color(end)
        except ValueError as e:
            self._record(end, str(e))
            return None

        t = max(0.0, min(1.0, progress))
        blended = Rgba(
            r=c1.r + (c2.r - c1.r) * t,
            g=c1.g + (c2.g - c1.g) * t,
            b=c1.b + (c2.b - c1.b) * t,
            a=c1.a + (c2.a - c1.a) * t,
        )
        return blended.to_css()

    def _record(self, value: str, reason: str):
        # Each bad value is reported once, blends run on every frame
        if value in self._reported:
            return
        self._reported.add(value)
        logger.warning(f"Color format not supported for interpolation: {value!r} ({reason})")
        self.warnings.append(UnparseableColor(value=value, reason=reason))
