# designtree/tasks/simplify.py
from __future__ import annotations

"""
Figma-nodträd → SimplifiedDesign.

- Osynliga noder (visible=False) tas bort tillsammans med hela sitt subträd.
- Alla värden inlinas (inga delade stil-referenser).
- Tomma fält (None, [], {}) prunas bort i slutet.
- Förälder skickas bara som parameter under traverseringen och sparas aldrig
  i utdata.
- limit_depth() kapar trädet till N lager för stegvis utforskning.
"""

import json
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .common import fmt_num, is_visible, remove_empty_keys
from .paints import normalize_paint
from .transformers import (
    build_simplified_effects,
    build_simplified_layout,
    build_simplified_strokes,
    sanitize_component_sets,
    sanitize_components,
)

log = logging.getLogger("designtree/simplify")

TRACE_NODES = os.getenv("DESIGNTREE_TRACE", "0").lower() in ("1", "true", "yes")

RawNode = Mapping[str, Any]
SimplifiedNode = Dict[str, Any]
SimplifiedDesign = Dict[str, Any]

LayoutBuilder = Callable[[RawNode, Optional[RawNode]], Dict[str, Any]]
NodeBuilder = Callable[[RawNode], Dict[str, Any]]

# ────────────────────────────────────────────────────────────────────────────
# Per-nod-härledningar
# ────────────────────────────────────────────────────────────────────────────

def _num(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)

def _prop_value(v: Any) -> str:
    # Samma strängform som API:ts JavaScript-värld: true/false, 12 (inte 12.0)
    if isinstance(v, (bool, int, float)):
        return fmt_num(v)
    return "" if v is None else str(v)

def _component_properties(props: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for name, p in props.items():
        p = p if isinstance(p, dict) else {"value": p}
        out.append({"name": name, "value": _prop_value(p.get("value")), "type": p.get("type")})
    return out

def _text_style(style: Mapping[str, Any]) -> Dict[str, Any]:
    font_size = style.get("fontSize")
    lh_px = style.get("lineHeightPx")
    ls = style.get("letterSpacing")

    line_height = None
    if lh_px and font_size:
        line_height = f"{fmt_num(lh_px / font_size)}em"

    letter_spacing = None
    if ls and font_size:
        letter_spacing = f"{fmt_num(ls / font_size * 100)}%"

    return {
        "fontFamily": style.get("fontFamily"),
        "fontWeight": style.get("fontWeight"),
        "fontSize": font_size,
        "lineHeight": line_height,
        "letterSpacing": letter_spacing,
        "textCase": style.get("textCase"),
        "textAlignHorizontal": style.get("textAlignHorizontal"),
        "textAlignVertical": style.get("textAlignVertical"),
    }

def _border_radius(node: RawNode) -> Optional[str]:
    radii = node.get("rectangleCornerRadii")
    if isinstance(radii, list) and len(radii) == 4 and all(_num(r) for r in radii):
        return " ".join(f"{fmt_num(r)}px" for r in radii)
    cr = node.get("cornerRadius")
    if _num(cr):
        return f"{fmt_num(cr)}px"
    return None

# ────────────────────────────────────────────────────────────────────────────
# Traversering
# ────────────────────────────────────────────────────────────────────────────

class _Builders:
    __slots__ = ("layout", "strokes", "effects")

    def __init__(self, layout: LayoutBuilder, strokes: NodeBuilder, effects: NodeBuilder):
        self.layout = layout
        self.strokes = strokes
        self.effects = effects

def _parse_node(n: RawNode, parent: Optional[RawNode], b: _Builders) -> SimplifiedNode:
    node_type = n.get("type")
    out: SimplifiedNode = {"id": n.get("id"), "name": n.get("name"), "type": node_type}

    if node_type == "INSTANCE":
        if n.get("componentId"):
            out["componentId"] = n["componentId"]
        props = n.get("componentProperties")
        if isinstance(props, dict) and props:
            out["componentProperties"] = _component_properties(props)

    style = n.get("style")
    if isinstance(style, dict) and style:
        out["textStyle"] = _text_style(style)

    fills = n.get("fills")
    if isinstance(fills, list) and fills:
        out["fills"] = [normalize_paint(p) for p in fills]

    strokes = b.strokes(n)
    if strokes.get("colors"):
        out["strokes"] = strokes

    effects = b.effects(n)
    if effects:
        out["effects"] = effects

    layout = b.layout(n, parent)
    if len(layout) > 1:
        out["layout"] = layout

    if n.get("characters"):
        out["text"] = n["characters"]

    opacity = n.get("opacity")
    if _num(opacity) and opacity != 1:
        out["opacity"] = opacity

    br = _border_radius(n)
    if br:
        out["borderRadius"] = br

    # Barnen sist så att nodens egna fält hålls samlade i utdata
    children = n.get("children")
    if isinstance(children, list) and children:
        kids = [_parse_node(c, n, b) for c in children if isinstance(c, dict) and is_visible(c)]
        if kids:
            out["children"] = kids

    if node_type == "VECTOR":
        out["type"] = "IMAGE-SVG"

    if TRACE_NODES:
        log.debug("Simplified node", extra={"id": out["id"], "type": out["type"], "keys": sorted(out)})

    return out

# ────────────────────────────────────────────────────────────────────────────
# Publikt API
# ────────────────────────────────────────────────────────────────────────────

def simplify(
    raw_nodes: Any,
    raw_components: Optional[Mapping[str, Any]] = None,
    raw_component_sets: Optional[Mapping[str, Any]] = None,
    *,
    name: str = "",
    last_modified: str = "",
    thumbnail_url: str = "",
    layout_builder: LayoutBuilder = build_simplified_layout,
    strokes_builder: NodeBuilder = build_simplified_strokes,
    effects_builder: NodeBuilder = build_simplified_effects,
) -> SimplifiedDesign:
    """
    Rå noder + komponentkataloger → prunad SimplifiedDesign.

    raw_nodes får vara en lista av noder eller en enskild nod (dict).
    Allt annat ger TypeError. UnrecognizedPaintError från normaliseringen
    propageras.
    """
    if isinstance(raw_nodes, dict):
        roots: Iterable[Any] = [raw_nodes]
    elif isinstance(raw_nodes, (list, tuple)):
        roots = raw_nodes
    else:
        raise TypeError(f"Kan inte traversera noder av typen {type(raw_nodes).__name__}")

    builders = _Builders(layout_builder, strokes_builder, effects_builder)
    nodes = [_parse_node(n, None, builders) for n in roots if isinstance(n, dict) and is_visible(n)]

    design: SimplifiedDesign = {
        "name": name,
        "lastModified": last_modified,
        "thumbnailUrl": thumbnail_url or "",
        "nodes": nodes,
        "components": sanitize_components(raw_components),
        "componentSets": sanitize_component_sets(raw_component_sets),
    }
    log.info("Simplified design", extra={"design": name, "roots": len(nodes)})
    return remove_empty_keys(design)

def parse_figma_response(data: Mapping[str, Any], **builders: Any) -> SimplifiedDesign:
    """
    Tar emot antingen GET /v1/files/:key eller GET /v1/files/:key/nodes.
    """
    components: Dict[str, Any] = {}
    component_sets: Dict[str, Any] = {}

    if isinstance(data.get("nodes"), dict):
        roots: List[Any] = []
        for entry in data["nodes"].values():
            if not isinstance(entry, dict):
                continue
            components.update(entry.get("components") or {})
            component_sets.update(entry.get("componentSets") or {})
            if isinstance(entry.get("document"), dict):
                roots.append(entry["document"])
    else:
        doc = data.get("document") or {}
        roots = list(doc.get("children") or [])
        components.update(data.get("components") or {})
        component_sets.update(data.get("componentSets") or {})

    return simplify(
        roots,
        components,
        component_sets,
        name=data.get("name") or "",
        last_modified=data.get("lastModified") or "",
        thumbnail_url=data.get("thumbnailUrl") or "",
        **builders,
    )

def find_node_by_id(node_id: str, nodes: Iterable[SimplifiedNode]) -> Optional[SimplifiedNode]:
    """Djupet först, pre-order. Första träffen vinner."""
    for n in nodes or []:
        if not isinstance(n, dict):
            continue
        if n.get("id") == node_id:
            return n
        found = find_node_by_id(node_id, n.get("children") or [])
        if found is not None:
            return found
    return None

def limit_depth(
    nodes: Iterable[SimplifiedNode],
    max_layers: int,
    current_layer: int = 1,
) -> List[SimplifiedNode]:
    """
    Lager 1 = nodes själv. På lager max_layers tas "children" bort men noderna
    behålls. Indata muteras inte; varje nod grundkopieras.
    """
    max_layers = max(1, int(max_layers))
    out: List[SimplifiedNode] = []
    for n in nodes:
        clone = dict(n)
        if current_layer >= max_layers:
            clone.pop("children", None)
        elif clone.get("children"):
            clone["children"] = limit_depth(clone["children"], max_layers, current_layer + 1)
        out.append(clone)
    return out


__all__ = [
    "simplify",
    "parse_figma_response",
    "find_node_by_id",
    "limit_depth",
]

# ────────────────────────────────────────────────────────────────────────────
# CLI-test
# ────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":  # pragma: no cover
    import sys
    if len(sys.argv) < 2:
        print("Använd: python -m designtree.tasks.simplify <figma.json> [djup]")
        sys.exit(1)
    with open(sys.argv[1], "r", encoding="utf-8") as f:
        payload = json.load(f)
    design = parse_figma_response(payload)
    if len(sys.argv) > 2:
        design["nodes"] = limit_depth(design.get("nodes") or [], int(sys.argv[2]))
    print(json.dumps(design, ensure_ascii=False, indent=2))
