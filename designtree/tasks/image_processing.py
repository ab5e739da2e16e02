# designtree/tasks/image_processing.py
from __future__ import annotations

"""
Efterbearbetning av nedladdade bilder (Pillow).

Lägen (samma namn som Figmas scaleMode):
  FILL  – sträck till exakt width×height, aspekt ignoreras
  FIT   – skala in i boxen med bevarad aspekt; med bakgrund och båda mått
          paddas resultatet till en width×height-canvas
  CROP  – skala så att boxen täcks, beskär runt position (default center)
  TILE  – upprepa en tile på en transparent width×height-canvas

Utdata behåller källans format. quality används bara för JPEG/WEBP.
"""

import logging
import math
import os
from io import BytesIO
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from PIL import Image, ImageColor, ImageOps
from pydantic import BaseModel, ValidationError, field_validator

from .common import round_half_up

log = logging.getLogger("designtree/image-processing")

PROCESSING_MODES = ("FILL", "FIT", "CROP", "TILE")
DEFAULT_QUALITY = 85

CropPosition = Literal[
    "top", "right top", "right", "right bottom", "bottom",
    "left bottom", "left", "left top", "center", "centre",
]

# CSS-liknande ankare → Pillow-centering (x, y) i [0, 1]
_CROP_CENTERING: Dict[CropPosition, Tuple[float, float]] = {
    "top": (0.5, 0.0),
    "right top": (1.0, 0.0),
    "right": (1.0, 0.5),
    "right bottom": (1.0, 1.0),
    "bottom": (0.5, 1.0),
    "left bottom": (0.0, 1.0),
    "left": (0.0, 0.5),
    "left top": (0.0, 0.0),
    "center": (0.5, 0.5),
    "centre": (0.5, 0.5),
}

_TRANSPARENT = (255, 255, 255, 0)


class ImageOptionsError(ValueError):
    """Ogiltiga ImageProcessingOptions."""


# ── Modeller ────────────────────────────────────────────────────────────────
class ImageProcessingOptions(BaseModel):
    mode: str = "FIT"
    width: Optional[int] = None
    height: Optional[int] = None
    background: Optional[Union[str, Dict[str, Any]]] = None
    quality: Optional[int] = None
    preserveAspectRatio: Optional[bool] = None
    position: Optional[CropPosition] = None

    @field_validator("position", mode="before")
    @classmethod
    def _lower_position(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

class ProcessedImageInfo(BaseModel):
    filePath: str
    originalDimensions: Dict[str, int]
    processedDimensions: Dict[str, int]
    mode: str


OptionsLike = Union[ImageProcessingOptions, Mapping[str, Any]]

def _coerce(options: OptionsLike) -> ImageProcessingOptions:
    if isinstance(options, ImageProcessingOptions):
        return options
    try:
        return ImageProcessingOptions(**dict(options))
    except ValidationError as e:
        raise ImageOptionsError(str(e)) from e

# ── Validering och härledning ───────────────────────────────────────────────
def validate_processing_options(options: OptionsLike) -> ImageProcessingOptions:
    """
    Kastar ImageOptionsError vid okänt läge, quality utanför [1, 100] eller
    width/height ≤ 0. Returnerar de tolkade alternativen.
    """
    opts = _coerce(options)
    if opts.mode not in PROCESSING_MODES:
        raise ImageOptionsError(
            f"Invalid image processing mode: {opts.mode}. Valid modes are: {', '.join(PROCESSING_MODES)}"
        )
    if opts.quality is not None and not 1 <= opts.quality <= 100:
        raise ImageOptionsError("Quality must be between 1 and 100")
    if opts.width is not None and opts.width <= 0:
        raise ImageOptionsError("Width must be greater than 0")
    if opts.height is not None and opts.height <= 0:
        raise ImageOptionsError("Height must be greater than 0")
    return opts

def processing_mode_from_scale_mode(scale_mode: Optional[str]) -> str:
    m = (scale_mode or "").upper()
    return m if m in PROCESSING_MODES else "FIT"

def processing_options_from_paint(
    paint: Mapping[str, Any],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> ImageProcessingOptions:
    mode = processing_mode_from_scale_mode(paint.get("scaleMode"))
    return ImageProcessingOptions(
        mode=mode,
        width=width,
        height=height,
        preserveAspectRatio=mode != "FILL",
        background={"r": 255, "g": 255, "b": 255, "alpha": 0},
        quality=DEFAULT_QUALITY,
    )

def tile_offsets(width: int, height: int, tile_w: int, tile_h: int) -> List[Tuple[int, int]]:
    """Övre vänstra hörn för varje tile, rad för rad."""
    nx = math.ceil(width / tile_w)
    ny = math.ceil(height / tile_h)
    return [(x * tile_w, y * tile_h) for y in range(ny) for x in range(nx)]

# ── Hjälpare ────────────────────────────────────────────────────────────────
def _rgba(bg: Union[str, Mapping[str, Any], None]) -> Tuple[int, int, int, int]:
    if bg is None:
        return _TRANSPARENT
    if isinstance(bg, str):
        c = ImageColor.getrgb(bg)
        return (c[0], c[1], c[2], c[3] if len(c) > 3 else 255)
    alpha = bg.get("alpha", 1)
    return (
        int(bg.get("r", 0)),
        int(bg.get("g", 0)),
        int(bg.get("b", 0)),
        round_half_up(float(1 if alpha is None else alpha) * 255),
    )

def _fit_size(ow: int, oh: int, w: Optional[int], h: Optional[int]) -> Tuple[int, int]:
    scales = []
    if w:
        scales.append(w / ow)
    if h:
        scales.append(h / oh)
    s = min(scales)
    return max(1, round_half_up(ow * s)), max(1, round_half_up(oh * s))

def _working_copy(im: Image.Image) -> Image.Image:
    # Palett- och CMYK-bilder skalas dåligt; arbeta i RGB/RGBA
    if im.mode in ("RGB", "RGBA", "L", "LA"):
        return im
    return im.convert("RGBA")

def _encode(img: Image.Image, fmt: str, quality: Optional[int]) -> bytes:
    out = BytesIO()
    kwargs: Dict[str, Any] = {}
    if fmt == "JPEG":
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        if quality:
            kwargs["quality"] = quality
    elif fmt == "WEBP" and quality:
        kwargs["quality"] = quality
    img.save(out, format=fmt, **kwargs)
    return out.getvalue()

# ── Publikt API ─────────────────────────────────────────────────────────────
def process_image_buffer(data: bytes, options: OptionsLike) -> bytes:
    """
    Bildbytes → bearbetade bytes i samma format. Läget styr; saknas de mått
    ett läge behöver blir bilden bara omkodad.
    """
    opts = validate_processing_options(options)

    src = Image.open(BytesIO(data))
    src.load()
    fmt = src.format or "PNG"
    ow, oh = src.size
    w, h = opts.width, opts.height
    img = _working_copy(src)

    if opts.mode == "FILL":
        if w and h:
            img = img.resize((w, h), Image.Resampling.LANCZOS)

    elif opts.mode == "FIT":
        if w or h:
            img = img.resize(_fit_size(ow, oh, w, h), Image.Resampling.LANCZOS)
            if opts.background is not None and w and h:
                canvas = Image.new("RGBA", (w, h), _rgba(opts.background))
                x = (w - img.width) // 2
                y = (h - img.height) // 2
                canvas.alpha_composite(img.convert("RGBA"), dest=(x, y))
                img = canvas

    elif opts.mode == "CROP":
        if w and h:
            centering = _CROP_CENTERING[opts.position or "center"]
            img = ImageOps.fit(img, (w, h), method=Image.Resampling.LANCZOS, centering=centering)

    elif opts.mode == "TILE":
        if w and h:
            tw, th = min(ow, w), min(oh, h)
            tile = img.resize((tw, th), Image.Resampling.LANCZOS).convert("RGBA")
            canvas = Image.new("RGBA", (w, h), _TRANSPARENT)
            for x, y in tile_offsets(w, h, tw, th):
                # paste klipper kanttiles som sticker ut
                canvas.paste(tile, (x, y))
            img = canvas

    log.debug(
        "Processed image",
        extra={"mode": opts.mode, "format": fmt, "from": (ow, oh), "to": img.size},
    )
    return _encode(img, fmt, opts.quality)

def process_image_file(
    input_path: Union[str, os.PathLike],
    output_path: Union[str, os.PathLike],
    options: OptionsLike,
) -> ProcessedImageInfo:
    opts = validate_processing_options(options)
    with open(input_path, "rb") as f:
        data = f.read()

    with Image.open(BytesIO(data)) as im:
        original = {"width": im.width, "height": im.height}

    body = process_image_buffer(data, opts)
    with Image.open(BytesIO(body)) as im:
        processed = {"width": im.width, "height": im.height}

    with open(output_path, "wb") as f:
        f.write(body)

    return ProcessedImageInfo(
        filePath=str(output_path),
        originalDimensions=original,
        processedDimensions=processed,
        mode=opts.mode,
    )


__all__ = [
    "PROCESSING_MODES",
    "CropPosition",
    "ImageOptionsError",
    "ImageProcessingOptions",
    "ProcessedImageInfo",
    "validate_processing_options",
    "processing_mode_from_scale_mode",
    "processing_options_from_paint",
    "tile_offsets",
    "process_image_buffer",
    "process_image_file",
]
