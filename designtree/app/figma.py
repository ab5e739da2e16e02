# designtree/app/figma.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Literal, Optional

from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, Field

from ..tasks.image_processing import ImageOptionsError, ImageProcessingOptions, validate_processing_options
from ..tasks.render import OUTPUT_FORMAT, ResultStore, direct_header, render, result_key
from ..tasks.worker import celery_app, download_figma_images, load_design

log = logging.getLogger("designtree/api")

router = APIRouter(prefix="/figma", tags=["figma"])

# ==== Scheman ====

class FigmaDataRequest(BaseModel):
    fileKey: str = Field(..., min_length=1, description="Nyckeln ur figma.com/(file|design)/<fileKey>/...")
    nodeId: Optional[str] = Field(None, description="node-id ur URL:en, t.ex. 1:2")
    depth: Optional[int] = Field(None, ge=1, description="Antal lager att behålla i trädet")
    format: Optional[Literal["yaml", "json"]] = None
    direct: bool = False

class ImageDownloadRequest(BaseModel):
    nodeId: str
    fileName: str
    imageRef: Optional[str] = None

class ImageProcessingSettings(ImageProcessingOptions):
    enabled: bool = False

class SvgOptions(BaseModel):
    outlineText: bool = True
    includeId: bool = False
    simplifyStroke: bool = True

class ImageBatchRequest(BaseModel):
    fileKey: str = Field(..., min_length=1)
    nodes: List[ImageDownloadRequest] = Field(..., min_length=1)
    localPath: str = Field(..., min_length=1)
    pngScale: Optional[float] = Field(None, gt=0)
    imageProcessing: Optional[ImageProcessingSettings] = None
    svgOptions: SvgOptions = Field(default_factory=SvgOptions)

class FailedDownload(BaseModel):
    nodeId: Optional[str] = None
    fileName: str
    error: str

class BatchDownloadResult(BaseModel):
    saved: List[str] = Field(default_factory=list)
    failed: List[FailedDownload] = Field(default_factory=list)
    success: bool = True

class ImageBatchStartResponse(BaseModel):
    task_id: str

class ImageBatchStatusResponse(BaseModel):
    status: str
    result: Optional[BatchDownloadResult] = None
    error: Optional[str] = None

def get_store(request: Request) -> ResultStore:
    return request.app.state.result_store

# ==== Designdata ====

@router.post("/data")
def figma_data(body: FigmaDataRequest, store: ResultStore = Depends(get_store)) -> Response:
    """
    Hämtar och förenklar designen. Svaret är renderad text (YAML som default);
    minifierad JSON sparas i resultatlagret under X-Result-Key.
    """
    fmt = body.format or OUTPUT_FORMAT
    try:
        result = load_design(body.fileKey, body.nodeId, body.depth)
    except HTTPException:
        raise
    except Exception as e:
        log.exception("Error fetching file", extra={"fileKey": body.fileKey})
        raise HTTPException(status_code=500, detail=f"Error fetching file: {e}")

    key = result_key(body.fileKey, body.nodeId, body.depth)
    store.put(key, result, fmt=fmt, file_key=body.fileKey, node_id=body.nodeId, depth=body.depth)

    text = render(result, fmt)
    if body.direct:
        text = direct_header(result, body.fileKey, fmt) + text
    media = ("application/yaml" if fmt == "yaml" else "application/json") + "; charset=utf-8"
    return PlainTextResponse(text, media_type=media, headers={"X-Result-Key": key})

@router.get("/resources")
def list_resources(store: ResultStore = Depends(get_store)) -> Dict[str, Any]:
    return {"resources": [store.describe(k) for k in store.keys()]}

@router.get("/resources/{key}")
def read_resource(key: str, store: ResultStore = Depends(get_store)) -> Dict[str, Any]:
    entry = store.get(key)
    if entry is None:
        raise HTTPException(404, f"Resource not found: {key}")
    return {**(store.describe(key) or {}), "data": json.loads(entry["data"])}

# ==== Bildnedladdning ====

@router.post("/images", response_model=ImageBatchStartResponse)
def start_image_download(body: ImageBatchRequest):
    """
    Köar batchnedladdningen. Returnerar Celery task_id.
    """
    processing: Optional[Dict[str, Any]] = None
    if body.imageProcessing is not None and body.imageProcessing.enabled:
        processing = body.imageProcessing.model_dump(exclude={"enabled"}, exclude_none=True)
        try:
            validate_processing_options(processing)
        except ImageOptionsError as e:
            raise HTTPException(status_code=400, detail=str(e))

    try:
        task = download_figma_images.delay(
            file_key=body.fileKey,
            nodes=[n.model_dump(exclude_none=True) for n in body.nodes],
            local_path=body.localPath,
            png_scale=body.pngScale,
            image_processing=processing,
            svg_options=body.svgOptions.model_dump(),
        )
    except Exception as e:  # pragma: no cover
        raise HTTPException(status_code=500, detail=f"Kunde inte köa nedladdningen: {e}")
    return ImageBatchStartResponse(task_id=task.id)

@router.get("/images/{task_id}", response_model=ImageBatchStatusResponse)
def get_image_download(task_id: str):
    """
    Status samt resultat (om klart).
    """
    res = AsyncResult(task_id, app=celery_app)
    state = res.state
    if state == "FAILURE":
        err_str = str(res.result) if res.result else "Okänt fel"
        return ImageBatchStatusResponse(status="FAILURE", error=err_str)
    if state == "SUCCESS":
        return ImageBatchStatusResponse(status="SUCCESS", result=BatchDownloadResult(**(res.result or {})))
    return ImageBatchStatusResponse(status=state)


__all__ = ["router", "get_store"]
