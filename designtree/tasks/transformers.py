# designtree/tasks/transformers.py
from __future__ import annotations

"""
Standardkollaboratörer för förenklaren: layout, strokes, effects samt
sanering av komponentkataloger.

Alla funktioner är rena funktioner av en rå Figma-nod (och dess förälder för
layout). De kan bytas ut via parametrar till simplify().
"""

from typing import Any, Dict, List, Mapping, Optional

from .common import fmt_num, format_rgba_color, generate_css_shorthand, is_visible, pixel_round
from .paints import normalize_paint

# ────────────────────────────────────────────────────────────────────────────
# Layout
# ────────────────────────────────────────────────────────────────────────────

_JUSTIFY = {
    "MIN": "flex-start",
    "CENTER": "center",
    "MAX": "flex-end",
    "SPACE_BETWEEN": "space-between",
}
_ALIGN = {
    "MIN": "flex-start",
    "CENTER": "center",
    "MAX": "flex-end",
    "BASELINE": "baseline",
}

def _px(v: Any) -> Optional[str]:
    if not isinstance(v, (int, float)) or isinstance(v, bool) or v == 0:
        return None
    return f"{fmt_num(pixel_round(v))}px"

def _is_auto_layout(node: Optional[Mapping[str, Any]]) -> bool:
    return bool(node) and node.get("layoutMode") in ("HORIZONTAL", "VERTICAL")  # type: ignore[union-attr]

def _bbox(node: Mapping[str, Any]) -> Optional[Dict[str, float]]:
    bb = node.get("absoluteBoundingBox")
    if not isinstance(bb, dict):
        return None
    try:
        return {k: float(bb.get(k) or 0.0) for k in ("x", "y", "width", "height")}
    except (TypeError, ValueError):
        return None

def build_simplified_layout(node: Mapping[str, Any], parent: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Auto layout → flex-ordförråd. Nyckeln "mode" finns alltid; en layout med
    bara "mode" räknas som tom av förenklaren.
    """
    layout: Dict[str, Any] = {"mode": "none"}

    if _is_auto_layout(node):
        layout["mode"] = "row" if node.get("layoutMode") == "HORIZONTAL" else "column"
        layout["justifyContent"] = _JUSTIFY.get(str(node.get("primaryAxisAlignItems") or ""))
        layout["alignItems"] = _ALIGN.get(str(node.get("counterAxisAlignItems") or ""))
        if node.get("layoutWrap") == "WRAP":
            layout["wrap"] = True
        layout["gap"] = _px(node.get("itemSpacing"))
        layout["padding"] = generate_css_shorthand({
            "top": node.get("paddingTop") or 0,
            "right": node.get("paddingRight") or 0,
            "bottom": node.get("paddingBottom") or 0,
            "left": node.get("paddingLeft") or 0,
        })

    if _is_auto_layout(parent) and node.get("layoutAlign") == "STRETCH":
        layout["alignSelf"] = "stretch"

    sizing = {
        "horizontal": str(node.get("layoutSizingHorizontal") or "").lower() or None,
        "vertical": str(node.get("layoutSizingVertical") or "").lower() or None,
    }
    layout["sizing"] = {k: v for k, v in sizing.items() if v}

    absolute = node.get("layoutPositioning") == "ABSOLUTE"
    if absolute:
        layout["position"] = "absolute"

    bb = _bbox(node)
    if bb is not None:
        dims: Dict[str, Any] = {}
        if sizing["horizontal"] != "hug":
            dims["width"] = pixel_round(bb["width"])
        if sizing["vertical"] != "hug":
            dims["height"] = pixel_round(bb["height"])
        layout["dimensions"] = dims

        pbb = _bbox(parent) if parent else None
        # Position är bara meningsfull när föräldern inte styr den via auto layout
        if pbb is not None and (absolute or not _is_auto_layout(parent)):
            layout["locationRelativeToParent"] = {
                "x": pixel_round(bb["x"] - pbb["x"]),
                "y": pixel_round(bb["y"] - pbb["y"]),
            }

    if node.get("clipsContent") is True:
        layout["overflow"] = "hidden"

    return {k: v for k, v in layout.items() if v not in (None, {}, [])}

# ────────────────────────────────────────────────────────────────────────────
# Strokes
# ────────────────────────────────────────────────────────────────────────────

def build_simplified_strokes(node: Mapping[str, Any]) -> Dict[str, Any]:
    strokes: Dict[str, Any] = {"colors": []}
    raw = node.get("strokes")
    if isinstance(raw, list) and raw:
        strokes["colors"] = [normalize_paint(s) for s in raw if isinstance(s, dict) and is_visible(s)]

    w = node.get("strokeWeight")
    if isinstance(w, (int, float)) and not isinstance(w, bool) and w > 0:
        strokes["strokeWeight"] = f"{fmt_num(w)}px"

    dashes = node.get("strokeDashes")
    if isinstance(dashes, list) and dashes:
        strokes["strokeDashes"] = dashes

    ind = node.get("individualStrokeWeights")
    if isinstance(ind, dict):
        strokes["strokeWeights"] = generate_css_shorthand(ind)

    return {k: v for k, v in strokes.items() if v is not None}

# ────────────────────────────────────────────────────────────────────────────
# Effects
# ────────────────────────────────────────────────────────────────────────────

def _shadow_css(ef: Mapping[str, Any]) -> str:
    off = ef.get("offset") or {}
    dx = fmt_num(off.get("x", 0))
    dy = fmt_num(off.get("y", 0))
    blur = fmt_num(ef.get("radius", 0))
    spread = fmt_num(ef.get("spread", 0) or 0)
    color = format_rgba_color(ef.get("color") or {})
    inset = "inset " if ef.get("type") == "INNER_SHADOW" else ""
    return f"{inset}{dx}px {dy}px {blur}px {spread}px {color}"

def build_simplified_effects(node: Mapping[str, Any]) -> Dict[str, str]:
    effects = [e for e in (node.get("effects") or []) if isinstance(e, dict) and is_visible(e)]
    shadows: List[str] = []
    filters: List[str] = []
    backdrop: List[str] = []
    for ef in effects:
        t = ef.get("type")
        if t in ("DROP_SHADOW", "INNER_SHADOW"):
            shadows.append(_shadow_css(ef))
        elif t == "LAYER_BLUR":
            filters.append(f"blur({fmt_num(ef.get('radius', 0))}px)")
        elif t == "BACKGROUND_BLUR":
            backdrop.append(f"blur({fmt_num(ef.get('radius', 0))}px)")

    out: Dict[str, str] = {}
    if shadows:
        # TEXT-noder får text-shadow, och där finns ingen inset
        if node.get("type") == "TEXT":
            out["textShadow"] = ", ".join(s for s in shadows if not s.startswith("inset "))
        else:
            out["boxShadow"] = ", ".join(shadows)
    if filters:
        out["filter"] = " ".join(filters)
    if backdrop:
        out["backdropFilter"] = " ".join(backdrop)
    return {k: v for k, v in out.items() if v}

# ────────────────────────────────────────────────────────────────────────────
# Komponentkataloger
# ────────────────────────────────────────────────────────────────────────────

def sanitize_components(components: Optional[Mapping[str, Any]]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for cid, comp in (components or {}).items():
        if not isinstance(comp, dict):
            continue
        out[cid] = {
            "id": cid,
            "key": comp.get("key"),
            "name": comp.get("name"),
            "componentSetId": comp.get("componentSetId"),
        }
    return out

def sanitize_component_sets(component_sets: Optional[Mapping[str, Any]]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for sid, cs in (component_sets or {}).items():
        if not isinstance(cs, dict):
            continue
        out[sid] = {
            "id": sid,
            "key": cs.get("key"),
            "name": cs.get("name"),
            "description": cs.get("description") or None,
        }
    return out


__all__ = [
    "build_simplified_layout",
    "build_simplified_strokes",
    "build_simplified_effects",
    "sanitize_components",
    "sanitize_component_sets",
]
