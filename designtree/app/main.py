# designtree/app/main.py
from __future__ import annotations

"""
FastAPI-gateway för designtree.

Kör:
    uvicorn designtree.app.main:app --reload
"""

import logging
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..tasks.render import ResultStore
from .figma import router as figma_router

# ── Logging ───────────────────────────────────────────────────────────────
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("designtree")

# ── FastAPI + CORS ────────────────────────────────────────────────────────
app = FastAPI(title="designtree")
app.add_middleware(
  CORSMiddleware,
  allow_origins=["*"],      # begränsa i prod
  allow_methods=["*"],
  allow_headers=["*"],
)

# Resultatlagret lever på appen; tester kan byta ut det
app.state.result_store = ResultStore()

app.include_router(figma_router)

# ── Healthcheck ───────────────────────────────────────────────────────────
@app.get("/healthz")
async def healthz() -> Dict[str, str]:
  return {"status": "ok"}
