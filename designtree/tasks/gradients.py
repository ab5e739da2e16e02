# designtree/tasks/gradients.py
from __future__ import annotations

"""
Figma-gradient → CSS-gradientsträng.

Handtagen (gradientHandlePositions) ligger i enhetskvadraten men kan hamna
utanför [0, 1] när gradienten sträcker sig bortom formen. Vi klämmer dem till
[0, 1] innan vinkel/radie räknas ut. Överskjutningen bevaras alltså inte.

- LINEAR  → linear-gradient(<vinkel>deg, ...)
- RADIAL  → radial-gradient(circle <r>% at <cx>% <cy>%, ...)
- ANGULAR → conic-gradient(from <vinkel>deg at <cx>% <cy>%, ...)
- DIAMOND → radial-gradient(ellipse <rx>% <ry>% at <cx>% <cy>%, ...)
  (axelparallell ellips, ingen äkta romb)
"""

import logging
import math
from typing import Any, List, Mapping, Sequence, Tuple

from .common import format_rgba_color, round_half_up

log = logging.getLogger("designtree/gradients")

DEFAULT_STOPS = "rgba(0,0,0,1) 0%, rgba(255,255,255,1) 100%"
FALLBACK_GRADIENT = f"linear-gradient(0deg, {DEFAULT_STOPS})"

GRADIENT_TYPES = (
    "GRADIENT_LINEAR",
    "GRADIENT_RADIAL",
    "GRADIENT_ANGULAR",
    "GRADIENT_DIAMOND",
)

Point = Tuple[float, float]

# ────────────────────────────────────────────────────────────────────────────
# Geometri
# ────────────────────────────────────────────────────────────────────────────

def _clamp(v: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, v))

def clamp_handles(handles: Sequence[Mapping[str, Any]] | None) -> List[Point]:
    if not handles or len(handles) < 2:
        return [(0.0, 0.0), (1.0, 1.0)]
    return [(_clamp(float(h["x"])), _clamp(float(h["y"]))) for h in handles]

def css_angle(p0: Point, p1: Point) -> float:
    """
    atan2 mäter moturs från +x, CSS medurs från toppen:
    css = (90 - atan2°) mod 360.
    """
    deg = math.degrees(math.atan2(p1[1] - p0[1], p1[0] - p0[0]))
    return (90 - deg + 360) % 360

def _distance(p0: Point, p1: Point) -> float:
    return math.hypot(p1[0] - p0[0], p1[1] - p0[1])

def _pct(v: float) -> int:
    return round_half_up(v * 100)

# ────────────────────────────────────────────────────────────────────────────
# Stops
# ────────────────────────────────────────────────────────────────────────────

def format_stops(stops: Sequence[Mapping[str, Any]] | None) -> str:
    if not stops:
        return DEFAULT_STOPS
    parts: List[str] = []
    for st in stops:
        color = format_rgba_color(st["color"])
        parts.append(f"{color} {_pct(float(st['position']))}%")
    return ", ".join(parts)

# ────────────────────────────────────────────────────────────────────────────
# Per familj
# ────────────────────────────────────────────────────────────────────────────

def _linear(h: List[Point], stops: str) -> str:
    angle = round_half_up(css_angle(h[0], h[1]))
    return f"linear-gradient({angle}deg, {stops})"

def _radial(h: List[Point], stops: str) -> str:
    center, edge = h[0], h[1]
    r = _pct(_distance(center, edge))
    return f"radial-gradient(circle {r}% at {_pct(center[0])}% {_pct(center[1])}%, {stops})"

def _angular(h: List[Point], stops: str) -> str:
    center, direction = h[0], h[1]
    angle = round_half_up(css_angle(center, direction))
    return f"conic-gradient(from {angle}deg at {_pct(center[0])}% {_pct(center[1])}%, {stops})"

def _diamond(h: List[Point], stops: str) -> str:
    center, edge = h[0], h[1]
    rx = _pct(abs(edge[0] - center[0]))
    ry = _pct(abs(edge[1] - center[1]))
    return f"radial-gradient(ellipse {rx}% {ry}% at {_pct(center[0])}% {_pct(center[1])}%, {stops})"

_CONVERTERS = {
    "GRADIENT_LINEAR": _linear,
    "GRADIENT_RADIAL": _radial,
    "GRADIENT_ANGULAR": _angular,
    "GRADIENT_DIAMOND": _diamond,
}

def convert_gradient_to_css(
    kind: str,
    handles: Sequence[Mapping[str, Any]] | None,
    stops: Sequence[Mapping[str, Any]] | None,
) -> str:
    """
    Kastar aldrig: trasiga handtag/stops ger FALLBACK_GRADIENT plus en varning.
    """
    try:
        conv = _CONVERTERS.get(kind, _linear)
        return conv(clamp_handles(handles), format_stops(stops))
    except Exception as e:
        log.warning("Gradient conversion failed, using fallback", extra={"kind": kind, "err": str(e)})
        return FALLBACK_GRADIENT


__all__ = [
    "GRADIENT_TYPES",
    "FALLBACK_GRADIENT",
    "DEFAULT_STOPS",
    "clamp_handles",
    "css_angle",
    "format_stops",
    "convert_gradient_to_css",
]
