# designtree/tasks/paints.py
from __future__ import annotations

"""
Figma-paint → SimplifiedFill.

SOLID    → "#RRGGBB" (alpha == 1) eller "rgba(r, g, b, a)"
GRADIENT → CSS-gradientsträng (se gradients.py)
IMAGE    → {"type": "IMAGE", "imageRef", "scaleMode", ...}
PATTERN  → {"type": "PATTERN", "sourceNodeId", ...}
Övrigt   → UnrecognizedPaintError
"""

from typing import Any, Dict, Mapping, Optional, Union

from .common import convert_color, format_rgba_color
from .gradients import FALLBACK_GRADIENT, GRADIENT_TYPES, convert_gradient_to_css

SimplifiedFill = Union[str, Dict[str, Any]]

# Valfria IMAGE-fält som bara följer med om de finns på källan
_IMAGE_PASSTHROUGH = ("imageTransform", "scalingFactor", "rotation", "filters", "gifRef")

_PATTERN_FIELDS = (
    "sourceNodeId",
    "tileType",
    "scalingFactor",
    "spacing",
    "horizontalAlignment",
    "verticalAlignment",
)


class UnrecognizedPaintError(ValueError):
    """Okänd paint-typ från Figma-API:t. Ska inte tystas lokalt."""


def _solid(paint: Mapping[str, Any]) -> str:
    color = paint.get("color") or {}
    opacity = paint.get("opacity", 1)
    c = convert_color(color, 1 if opacity is None else opacity)
    if c["opacity"] == 1:
        return c["hex"]
    return format_rgba_color(color, 1 if opacity is None else opacity)

def _gradient(paint: Mapping[str, Any]) -> str:
    handles = paint.get("gradientHandlePositions")
    stops = paint.get("gradientStops")
    if not isinstance(handles, list) or not isinstance(stops, list):
        return FALLBACK_GRADIENT
    return convert_gradient_to_css(str(paint["type"]), handles, stops)

def _image(paint: Mapping[str, Any], processing_options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    scale_mode = paint.get("scaleMode")
    out: Dict[str, Any] = {
        "type": "IMAGE",
        "imageRef": paint.get("imageRef"),
        "scaleMode": str(scale_mode).upper() if scale_mode else "FIT",
    }
    if processing_options:
        out["imageProcessingOptions"] = dict(processing_options)
    for k in _IMAGE_PASSTHROUGH:
        if paint.get(k) is not None:
            out[k] = paint[k]
    return out

def _pattern(paint: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": "PATTERN"}
    for k in _PATTERN_FIELDS:
        out[k] = paint.get(k)
    return out

def normalize_paint(
    paint: Mapping[str, Any],
    processing_options: Optional[Mapping[str, Any]] = None,
) -> SimplifiedFill:
    t = paint.get("type")
    if t == "SOLID":
        return _solid(paint)
    if t in GRADIENT_TYPES:
        return _gradient(paint)
    if t == "IMAGE":
        return _image(paint, processing_options)
    if t == "PATTERN":
        return _pattern(paint)
    raise UnrecognizedPaintError(f"Unknown paint type: {t}")


__all__ = ["SimplifiedFill", "UnrecognizedPaintError", "normalize_paint"]
