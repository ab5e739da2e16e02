# designtree/tasks/figma_client.py
from __future__ import annotations

import logging
import os
import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from time import perf_counter, sleep
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import requests
from fastapi import HTTPException
from requests.exceptions import RequestException

from .image_processing import (
    ImageOptionsError,
    ImageProcessingOptions,
    OptionsLike,
    process_image_buffer,
    validate_processing_options,
)

log = logging.getLogger("designtree/figma-client")

# ── Konfiguration via env ───────────────────────────────────────────────────
FIGMA_TOKEN = os.getenv("FIGMA_TOKEN")
FIGMA_OAUTH_TOKEN = os.getenv("FIGMA_OAUTH_TOKEN")
FIGMA_API_BASE = os.getenv("FIGMA_API_BASE", "https://api.figma.com/v1").rstrip("/")

# Retries
FIGMA_API_ATTEMPTS = int(os.getenv("FIGMA_API_ATTEMPTS", "3"))          # Files/Nodes/Images API
FIGMA_API_BACKOFF_S = float(os.getenv("FIGMA_API_BACKOFF_S", "0.3"))    # 0.3 → 0.6 → 1.2 …
FIGMA_API_TIMEOUT_S = float(os.getenv("FIGMA_API_TIMEOUT_S", "30"))
IMG_FETCH_ATTEMPTS = int(os.getenv("IMG_FETCH_ATTEMPTS", "3"))          # presignade bild-URL:er
IMG_FETCH_BACKOFF_S = float(os.getenv("IMG_FETCH_BACKOFF_S", "0.2"))
IMG_FETCH_TIMEOUT_S = float(os.getenv("IMG_FETCH_TIMEOUT_S", "30"))

IMG_DOWNLOAD_WORKERS = int(os.getenv("IMG_DOWNLOAD_WORKERS", "8"))
DEFAULT_PNG_SCALE = float(os.getenv("DEFAULT_PNG_SCALE", "2"))

log.info(
    "Figma client init",
    extra={
        "has_token": bool(FIGMA_TOKEN),
        "has_oauth": bool(FIGMA_OAUTH_TOKEN),
        "api_base": FIGMA_API_BASE,
        "figma_api_attempts": FIGMA_API_ATTEMPTS,
        "img_fetch_attempts": IMG_FETCH_ATTEMPTS,
        "workers": IMG_DOWNLOAD_WORKERS,
    },
)

# ── HTTP-hjälpare ───────────────────────────────────────────────────────────
def _auth_headers() -> Dict[str, str]:
    """
    OAuth vinner över personlig token. Inga tokens i query.
    """
    if FIGMA_OAUTH_TOKEN:
        return {"Authorization": f"Bearer {FIGMA_OAUTH_TOKEN}"}
    if FIGMA_TOKEN:
        return {"X-Figma-Token": FIGMA_TOKEN}
    raise HTTPException(500, "FIGMA_TOKEN eller FIGMA_OAUTH_TOKEN saknas i serverns miljö.")

def _should_retry_status(status: int) -> bool:
    return status == 429 or (500 <= status < 600)

def _sleep_backoff(base: float, attempt: int) -> None:
    t = base * (2 ** (attempt - 1))
    jitter = t * 0.25 * (random.random() - 0.5)  # ±12.5%
    sleep(max(0.0, t + jitter))

def _get_with_retries(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, str]] = None,
    timeout: float = 15.0,
    attempts: int = 3,
    backoff_s: float = 0.3,
) -> requests.Response:
    get = session.get if session is not None else requests.get
    last_exc: Optional[Exception] = None
    for i in range(1, max(1, attempts) + 1):
        try:
            r = get(url, headers=headers, params=params, timeout=timeout)
            if _should_retry_status(r.status_code) and i < attempts:
                _sleep_backoff(backoff_s, i)
                continue
            return r
        except RequestException as e:
            last_exc = e
            if i < attempts:
                _sleep_backoff(backoff_s, i)
                continue
            break
    if last_exc:
        raise last_exc
    return r  # type: ignore[UnboundLocalVariable]

def _api_json(path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    GET mot Figma REST. Nätverksfel → 502, icke-200 → upstream-status.
    """
    url = f"{FIGMA_API_BASE}{path}"
    t0 = perf_counter()
    try:
        r = _get_with_retries(
            url,
            headers=_auth_headers(),
            params=params,
            timeout=FIGMA_API_TIMEOUT_S,
            attempts=FIGMA_API_ATTEMPTS,
            backoff_s=FIGMA_API_BACKOFF_S,
        )
    except RequestException as e:
        log.error("Figma API network error", exc_info=True, extra={"path": path})
        raise HTTPException(502, f"figma nätverksfel: {e}")
    dt = (perf_counter() - t0) * 1000
    log.info("Figma API response", extra={"path": path, "status": r.status_code, "ms": round(dt, 1)})

    if r.status_code != 200:
        preview = ""
        try:
            preview = r.text[:300]
        except Exception:
            pass
        raise HTTPException(status_code=r.status_code, detail=f"Figma API {path}: {preview}")

    try:
        return r.json()
    except ValueError:
        raise HTTPException(502, "figma svarade inte med giltig JSON")

# ── Figma REST ──────────────────────────────────────────────────────────────
def get_file(file_key: str) -> Dict[str, Any]:
    return _api_json(f"/files/{file_key}")

def get_nodes(file_key: str, node_id: str) -> Dict[str, Any]:
    return _api_json(f"/files/{file_key}/nodes", {"ids": node_id})

def fetch_design(file_key: str, node_id: Optional[str] = None) -> Dict[str, Any]:
    """Rå payload: hela filen, eller bara noden om node_id anges."""
    if node_id:
        return get_nodes(file_key, node_id)
    return get_file(file_key)

def get_image_fill_urls(file_key: str) -> Dict[str, str]:
    """imageRef → presignad URL för alla bildfyllningar i filen."""
    j = _api_json(f"/files/{file_key}/images")
    return dict(((j.get("meta") or {}).get("images")) or {})

# Figma-defaults för SVG-export
DEFAULT_SVG_OPTIONS: Dict[str, bool] = {"outlineText": True, "includeId": False, "simplifyStroke": True}

_SVG_PARAMS = {
    "outlineText": "svg_outline_text",
    "includeId": "svg_include_id",
    "simplifyStroke": "svg_simplify_stroke",
}

def get_render_urls(
    file_key: str,
    node_ids: Iterable[str],
    fmt: str = "png",
    scale: float = DEFAULT_PNG_SCALE,
    svg_options: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Optional[str]]:
    ids = [n for n in node_ids if n]
    if not ids:
        return {}
    params = {"ids": ",".join(ids), "format": fmt}
    if fmt == "png":
        params["scale"] = f"{scale:g}"
    elif fmt == "svg":
        merged = {**DEFAULT_SVG_OPTIONS, **{k: v for k, v in (svg_options or {}).items() if v is not None}}
        for key, param in _SVG_PARAMS.items():
            params[param] = "true" if merged[key] else "false"
    j = _api_json(f"/images/{file_key}", params)
    return dict(j.get("images") or {})

# ── Nedladdning ─────────────────────────────────────────────────────────────
def _fetch_bytes(session: Optional[requests.Session], url: str) -> bytes:
    r = _get_with_retries(
        url,
        session=session,
        timeout=IMG_FETCH_TIMEOUT_S,
        attempts=IMG_FETCH_ATTEMPTS,
        backoff_s=IMG_FETCH_BACKOFF_S,
    )
    if r.status_code != 200:
        raise HTTPException(status_code=r.status_code, detail=f"image fetch error {r.status_code}")
    return r.content

def download_image(
    file_name: str,
    local_path: str,
    image_url: str,
    processing_options: Optional[OptionsLike] = None,
    *,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Hämtar bilden och skriver den till local_path/file_name. Efterbearbetning
    körs bara när mode och minst en dimension finns; annars skrivs bytes
    oförändrade. Misslyckas den sparas originalbytes och en varning loggas.
    """
    os.makedirs(local_path, exist_ok=True)
    full_path = os.path.join(local_path, file_name)

    opts: Optional[ImageProcessingOptions] = None
    if processing_options is not None:
        opts = validate_processing_options(processing_options)

    body = _fetch_bytes(session, image_url)
    if opts is not None and opts.mode and (opts.width or opts.height) and not file_name.lower().endswith(".svg"):
        try:
            body = process_image_buffer(body, opts)
        except ImageOptionsError:
            raise
        except Exception as e:
            log.warning("Image processing failed, keeping original", extra={"file": file_name, "err": str(e)})

    with open(full_path, "wb") as f:
        f.write(body)
    log.info("Saved image", extra={"file": full_path, "bytes": len(body)})
    return full_path

def _render_target(file_name: str) -> Tuple[str, str]:
    """fileName → (filnamn, format). Utan känd ändelse blir det SVG."""
    lower = file_name.lower()
    if lower.endswith(".png"):
        return file_name, "png"
    if lower.endswith(".svg"):
        return file_name, "svg"
    return f"{file_name}.svg", "svg"

def _group_failed(
    failed: List[Dict[str, Any]], group: Iterable[Tuple[Dict[str, Any], str]], err: Exception
) -> None:
    for n, name in group:
        failed.append({"nodeId": n.get("nodeId"), "fileName": name, "error": str(err)})

def download_images(
    file_key: str,
    nodes: Iterable[Mapping[str, Any]],
    local_path: str,
    *,
    png_scale: Optional[float] = None,
    processing_options: Optional[OptionsLike] = None,
    svg_options: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Batch: noder med imageRef hämtas som bildfyllningar, övriga renderas
    (png/svg efter filändelse). Ett misslyckat jobb stoppar inte de andra,
    inte heller en misslyckad URL-uppslagning: gruppens noder hamnar i failed.

    Returnerar {"saved": [...], "failed": [{nodeId, fileName, error}], "success": bool}.
    ImageOptionsError kastas innan något hämtas.
    """
    opts: Optional[ImageProcessingOptions] = None
    if processing_options is not None:
        opts = validate_processing_options(processing_options)

    items = [dict(n) for n in nodes]
    fills = [n for n in items if n.get("imageRef")]
    renders = [n for n in items if not n.get("imageRef")]

    jobs: List[Tuple[Dict[str, Any], str, Optional[str]]] = []
    failed: List[Dict[str, Any]] = []

    if fills:
        try:
            fill_urls = get_image_fill_urls(file_key)
        except Exception as e:
            log.warning("Image fill lookup failed", extra={"fileKey": file_key, "err": str(e)})
            _group_failed(failed, [(n, n["fileName"]) for n in fills], e)
        else:
            for n in fills:
                jobs.append((n, n["fileName"], fill_urls.get(n["imageRef"])))

    by_format: Dict[str, List[Tuple[Dict[str, Any], str]]] = {}
    for n in renders:
        name, fmt = _render_target(n["fileName"])
        by_format.setdefault(fmt, []).append((n, name))
    for fmt, group in by_format.items():
        try:
            urls = get_render_urls(
                file_key,
                [n["nodeId"] for n, _ in group],
                fmt=fmt,
                scale=png_scale or DEFAULT_PNG_SCALE,
                svg_options=svg_options,
            )
        except Exception as e:
            log.warning("Render lookup failed", extra={"fileKey": file_key, "format": fmt, "err": str(e)})
            _group_failed(failed, group, e)
            continue
        for n, name in group:
            jobs.append((n, name, urls.get(n["nodeId"])))

    saved: List[str] = []
    with requests.Session() as s, ThreadPoolExecutor(max_workers=max(1, IMG_DOWNLOAD_WORKERS)) as ex:
        futs = {}
        for n, name, url in jobs:
            if not url:
                failed.append({"nodeId": n.get("nodeId"), "fileName": name, "error": "no image URL returned"})
                continue
            futs[ex.submit(download_image, name, local_path, url, opts, session=s)] = (n, name)
        for f in as_completed(futs):
            n, name = futs[f]
            try:
                saved.append(f.result())
            except Exception as e:
                log.warning("Image download failed", extra={"nodeId": n.get("nodeId"), "file": name, "err": str(e)})
                failed.append({"nodeId": n.get("nodeId"), "fileName": name, "error": str(e)})

    saved.sort()
    log.info("Batch download done", extra={"fileKey": file_key, "saved": len(saved), "failed": len(failed)})
    return {"saved": saved, "failed": failed, "success": not failed}


__all__ = [
    "get_file",
    "get_nodes",
    "fetch_design",
    "get_image_fill_urls",
    "get_render_urls",
    "download_image",
    "download_images",
]
