# designtree/tasks/render.py
from __future__ import annotations

"""
SimplifiedDesign → resultat-dict → YAML/JSON-text, samt ett litet
resultatlager (ResultStore) för tidigare hämtningar.

Resultatets form:
    {warning?, depth_info?, file: {name, lastModified, thumbnailUrl},
     nodes, components?, componentSets?}
"""

import json
import logging
import os
import threading
import time
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .simplify import limit_depth

log = logging.getLogger("designtree/render")

OUTPUT_FORMAT = os.getenv("OUTPUT_FORMAT", "yaml").strip().lower()
OUTPUT_FORMATS = ("yaml", "json")

DEPTH_WARNING = (
    "⚠️ Layout with limited depth is incomplete. For complete design implementation, "
    "remove depth restrictions to fetch all layout data."
)

# ────────────────────────────────────────────────────────────────────────────
# Resultat
# ────────────────────────────────────────────────────────────────────────────

def build_result(design: Mapping[str, Any], depth: Optional[int] = None) -> Dict[str, Any]:
    """
    depth kapar nodträdet lokalt och lägger till warning/depth_info.
    Tomma komponentkataloger utelämnas.
    """
    nodes: List[Dict[str, Any]] = list(design.get("nodes") or [])
    result: Dict[str, Any] = {}
    if depth:
        nodes = limit_depth(nodes, depth)
        result["warning"] = DEPTH_WARNING
        result["depth_info"] = {
            "current_api_depth": depth,
            "recommended_api_depth": "unlimited (remove depth parameter)",
        }

    result["file"] = {
        "name": design.get("name", ""),
        "lastModified": design.get("lastModified", ""),
        "thumbnailUrl": design.get("thumbnailUrl", ""),
    }
    result["nodes"] = nodes
    if design.get("components"):
        result["components"] = design["components"]
    if design.get("componentSets"):
        result["componentSets"] = design["componentSets"]
    return result

def to_json_min(result: Any) -> str:
    return json.dumps(result, ensure_ascii=False, separators=(",", ":"))

def render(result: Any, fmt: Optional[str] = None) -> str:
    fmt = (fmt or OUTPUT_FORMAT).lower()
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format: {fmt}")
    if fmt == "yaml":
        return yaml.safe_dump(result, sort_keys=False, allow_unicode=True, width=120, indent=2)
    return json.dumps(result, ensure_ascii=False, indent=2)

def _size_kb(text: str) -> str:
    return f"{len(text) / 1024:.1f}"

def direct_header(result: Mapping[str, Any], file_key: str, fmt: Optional[str] = None) -> str:
    fmt = (fmt or OUTPUT_FORMAT).lower()
    name = (result.get("file") or {}).get("name") or file_key
    count = len(result.get("nodes") or [])
    size = _size_kb(to_json_min(result))
    if fmt == "yaml":
        return f"# Figma Design: {name}\n# Nodes: {count}\n# Size: {size} KB\n\n"
    return f"/* Figma Design: {name}\n * Nodes: {count}\n * Size: {size} KB\n */\n\n"

# ────────────────────────────────────────────────────────────────────────────
# Resultatlager
# ────────────────────────────────────────────────────────────────────────────

def result_key(file_key: str, node_id: Optional[str] = None, depth: Optional[int] = None) -> str:
    key = file_key
    if node_id:
        key += f"-{node_id}"
    if depth:
        key += f"-depth{depth}"
    return key

class ResultStore:
    """
    Trådsäker nyckel → minifierad JSON. Hålls av appen, inte som modulglobal.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, Dict[str, Any]] = {}

    def put(
        self,
        key: str,
        result: Mapping[str, Any],
        *,
        fmt: str,
        file_key: str,
        node_id: Optional[str] = None,
        depth: Optional[int] = None,
    ) -> bool:
        """Returnerar True om nyckeln redan fanns (uppdatering)."""
        entry = {
            "data": to_json_min(result),
            "originalFormat": fmt,
            "metadata": {
                "fileKey": file_key,
                "nodeId": node_id,
                "depth": depth,
                "fileName": (result.get("file") or {}).get("name"),
                "timestamp": int(time.time() * 1000),
            },
        }
        with self._lock:
            is_update = key in self._items
            self._items[key] = entry
        log.info("Stored result", extra={"key": key, "update": is_update, "bytes": len(entry["data"])})
        return is_update

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._items.get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def describe(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self.get(key)
        if entry is None:
            return None
        meta = entry["metadata"]
        try:
            data = json.loads(entry["data"])
        except ValueError:
            data = {}
        parts = [f"{len(data.get('nodes') or [])} nodes"]
        n_comp = len(data.get("components") or {})
        if n_comp:
            parts.append(f"{n_comp} components")
        parts.append(f"depth {meta['depth']}" if meta.get("depth") else "full depth")
        parts.append(f"{_size_kb(entry['data'])} KB")
        return {
            "key": key,
            "name": meta.get("fileName") or f"Figma-{key}",
            "description": f"{meta.get('fileName') or 'Figma Design'} - {' • '.join(parts)}",
            "mimeType": "application/json",
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


__all__ = [
    "DEPTH_WARNING",
    "OUTPUT_FORMATS",
    "build_result",
    "render",
    "direct_header",
    "to_json_min",
    "result_key",
    "ResultStore",
]
