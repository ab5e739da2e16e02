# designtree/tasks/worker.py
from __future__ import annotations

"""
Celery-app och tasks.

Kör worker:
    celery -A designtree.tasks.worker worker -l info
"""

import logging
import os
from typing import Any, Dict, List, Optional

from celery import Celery

from . import figma_client
from .render import build_result
from .simplify import parse_figma_response

log = logging.getLogger("designtree/worker")

# ─────────────────────────────────────────────────────────
# Miljö & konfiguration
# ─────────────────────────────────────────────────────────

BROKER_URL = (os.getenv("CELERY_BROKER_URL") or "redis://redis:6379/0").strip()
RESULT_BACKEND = (os.getenv("CELERY_RESULT_BACKEND") or BROKER_URL).strip()
ALWAYS_EAGER = os.getenv("CELERY_TASK_ALWAYS_EAGER", "0").lower() in ("1", "true", "yes")

# ─────────────────────────────────────────────────────────
# Celery-app
# ─────────────────────────────────────────────────────────

app = Celery("designtree", broker=BROKER_URL, backend=RESULT_BACKEND)
app.conf.broker_connection_retry_on_startup = True
app.conf.broker_connection_timeout = 3
app.conf.redis_socket_timeout = 3
app.conf.task_always_eager = ALWAYS_EAGER
celery_app: Celery = app

# ─────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────

def load_design(file_key: str, node_id: Optional[str] = None, depth: Optional[int] = None) -> Dict[str, Any]:
    """Hämta → förenkla → (kapa djup) → resultat-dict."""
    log.info(
        "Fetching design",
        extra={"fileKey": file_key, "nodeId": node_id, "depth": depth or "all"},
    )
    raw = figma_client.fetch_design(file_key, node_id)
    design = parse_figma_response(raw)
    log.info("Fetched design", extra={"fileKey": file_key, "design": design.get("name")})
    return build_result(design, depth)

# ─────────────────────────────────────────────────────────
# Tasks
# ─────────────────────────────────────────────────────────

@app.task(name="designtree.tasks.worker.get_figma_data")
def get_figma_data(*, file_key: str, node_id: Optional[str] = None, depth: Optional[int] = None) -> Dict[str, Any]:
    return load_design(file_key, node_id, depth)

@app.task(name="designtree.tasks.worker.download_figma_images")
def download_figma_images(
    *,
    file_key: str,
    nodes: List[Dict[str, Any]],
    local_path: str,
    png_scale: Optional[float] = None,
    image_processing: Optional[Dict[str, Any]] = None,
    svg_options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return figma_client.download_images(
        file_key,
        nodes,
        local_path,
        png_scale=png_scale,
        processing_options=image_processing,
        svg_options=svg_options,
    )


__all__ = ["app", "celery_app", "load_design", "get_figma_data", "download_figma_images"]
