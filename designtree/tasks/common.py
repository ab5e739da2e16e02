# designtree/tasks/common.py
from __future__ import annotations

"""
Gemensamma hjälpare för förenklingen:

* JS-kompatibel avrundning och talformatering ("2px", inte "2.0px")
* Pruning av tomma nycklar (None, [] och {})
* Synlighet, hex → rgba, pixelavrundning och CSS-shorthand
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional


# ────────────────────────────────────────────────────────────────────────────
# Tal
# ────────────────────────────────────────────────────────────────────────────

def round_half_up(x: float) -> int:
    """Som JavaScripts Math.round: .5 avrundas alltid uppåt (mot +∞)."""
    return int(math.floor(x + 0.5))

def fmt_num(x: Any) -> str:
    if isinstance(x, bool):
        return "true" if x else "false"
    if isinstance(x, float):
        if math.isfinite(x) and x.is_integer():
            return str(int(x))
        return repr(x)
    return str(x)

def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


# ────────────────────────────────────────────────────────────────────────────
# Pruning
# ────────────────────────────────────────────────────────────────────────────

def _is_empty(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, (list, tuple, dict)) and len(v) == 0:
        return True
    return False

def remove_empty_keys(value: Any) -> Any:
    """
    Rekursiv pruning. Nycklar vars (prunade) värde är None, tom lista eller
    tom dict tas bort. Listelement tas aldrig bort, de prunas bara var för sig.
    Idempotent: remove_empty_keys(remove_empty_keys(x)) == remove_empty_keys(x).
    """
    if isinstance(value, list):
        return [remove_empty_keys(v) for v in value]
    if isinstance(value, tuple):
        return [remove_empty_keys(v) for v in value]
    if isinstance(value, dict):
        out: Dict[str, Any] = {}
        for k, v in value.items():
            cleaned = remove_empty_keys(v)
            if _is_empty(cleaned):
                continue
            out[k] = cleaned
        return out
    return value


# ────────────────────────────────────────────────────────────────────────────
# Synlighet och färg
# ────────────────────────────────────────────────────────────────────────────

def is_visible(element: Mapping[str, Any]) -> bool:
    """Endast explicit visible=False räknas som osynlig."""
    return element.get("visible", True) is not False

def hex_to_rgba(hex_str: str, opacity: float = 1) -> str:
    """
    "#F00" / "#FF0000" → "rgba(255, 0, 0, 1)". Opacity kläms till [0, 1].
    Kastar aldrig: ogiltig hex ger svarta kanaler.
    """
    a = min(max(opacity, 0), 1)
    h = str(hex_str or "").strip().lstrip("#")
    if len(h) == 3:
        h = h[0] * 2 + h[1] * 2 + h[2] * 2
    try:
        if len(h) != 6:
            raise ValueError(h)
        r, g, b = int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
    except ValueError:
        r = g = b = 0
    return f"rgba({r}, {g}, {b}, {fmt_num(a)})"

def _channels(color: Mapping[str, Any], opacity: float) -> tuple[int, int, int, float]:
    r = round_half_up(float(color.get("r", 0)) * 255)
    g = round_half_up(float(color.get("g", 0)) * 255)
    b = round_half_up(float(color.get("b", 0)) * 255)
    # Alpha och paint-opacity multipliceras, två decimaler
    a_col = color.get("a", 1)
    a = round_half_up(float(opacity) * float(1 if a_col is None else a_col) * 100) / 100
    return r, g, b, a

def convert_color(color: Mapping[str, Any], opacity: float = 1) -> Dict[str, Any]:
    """Figma RGBA (0–1) → {"hex": "#RRGGBB", "opacity": a}."""
    r, g, b, a = _channels(color, opacity)
    return {"hex": "#{:02X}{:02X}{:02X}".format(r, g, b), "opacity": a}

def format_rgba_color(color: Mapping[str, Any], opacity: float = 1) -> str:
    r, g, b, a = _channels(color, opacity)
    return f"rgba({r}, {g}, {b}, {fmt_num(a)})"

def pixel_round(num: Any) -> float:
    """Två decimaler, halva avrundas bort från noll (som JS toFixed)."""
    if not _is_number(num) or math.isnan(num):
        raise TypeError("Input must be a valid number")
    if math.isinf(num):
        return float(num)
    return float(Decimal(num).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# ────────────────────────────────────────────────────────────────────────────
# CSS-shorthand
# ────────────────────────────────────────────────────────────────────────────

def generate_css_shorthand(
    values: Mapping[str, Any],
    *,
    ignore_zero: bool = True,
    suffix: str = "px",
) -> Optional[str]:
    """
    {top, right, bottom, left} → kortaste CSS-formen.

        {10,10,10,10} → "10px"
        {10,20,10,20} → "10px 20px"
        {10,20,30,20} → "10px 20px 30px"
        {10,20,30,40} → "10px 20px 30px 40px"

    Alla noll och ignore_zero → None.
    """
    top = values.get("top", 0)
    right = values.get("right", 0)
    bottom = values.get("bottom", 0)
    left = values.get("left", 0)

    if ignore_zero and top == 0 and right == 0 and bottom == 0 and left == 0:
        return None

    t, r, b, l = (f"{fmt_num(v)}{suffix}" for v in (top, right, bottom, left))
    if top == right == bottom == left:
        return t
    if right == left:
        if top == bottom:
            return f"{t} {r}"
        return f"{t} {r} {b}"
    return f"{t} {r} {b} {l}"


__all__ = [
    "round_half_up",
    "fmt_num",
    "remove_empty_keys",
    "is_visible",
    "hex_to_rgba",
    "convert_color",
    "format_rgba_color",
    "pixel_round",
    "generate_css_shorthand",
]
