"""
Tester för bildefterbearbetningen. Alla bilder skapas med Pillow i minnet.
"""

from io import BytesIO

import pytest
from PIL import Image

from designtree.tasks.image_processing import (
    ImageOptionsError,
    ImageProcessingOptions,
    process_image_buffer,
    process_image_file,
    processing_mode_from_scale_mode,
    processing_options_from_paint,
    tile_offsets,
    validate_processing_options,
)

from .conftest import make_image, open_image

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def _split_red_blue(size=(100, 50)) -> bytes:
    """Vänster halva röd, höger halva blå."""
    w, h = size
    im = Image.new("RGBA", size, BLUE)
    im.paste(Image.new("RGBA", (w // 2, h), RED), (0, 0))
    buf = BytesIO()
    im.save(buf, format="PNG")
    return buf.getvalue()


# ── Validering ──────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "opts",
    [
        {"mode": "STRETCH"},
        {"mode": "FIT", "quality": 0},
        {"mode": "FIT", "quality": 101},
        {"mode": "FILL", "width": 0},
        {"mode": "FILL", "height": -5},
        {"mode": "FILL", "width": "wide"},
        {"mode": "CROP", "width": 10, "height": 10, "position": "middle"},
    ],
)
def test_invalid_options(opts):
    with pytest.raises(ImageOptionsError):
        validate_processing_options(opts)


def test_valid_options_are_returned_as_model():
    opts = validate_processing_options({"mode": "CROP", "width": 10, "height": 10, "quality": 1})
    assert isinstance(opts, ImageProcessingOptions)
    assert opts.mode == "CROP"


def test_scale_mode_mapping():
    assert processing_mode_from_scale_mode("fill") == "FILL"
    assert processing_mode_from_scale_mode("TILE") == "TILE"
    assert processing_mode_from_scale_mode(None) == "FIT"
    assert processing_mode_from_scale_mode("STRETCH") == "FIT"


def test_options_from_paint():
    opts = processing_options_from_paint({"scaleMode": "FILL"}, 10, 20)
    assert opts.mode == "FILL"
    assert opts.width == 10 and opts.height == 20
    assert opts.preserveAspectRatio is False
    assert opts.quality == 85
    assert opts.background == {"r": 255, "g": 255, "b": 255, "alpha": 0}
    assert processing_options_from_paint({}).preserveAspectRatio is True


def test_tile_offsets():
    assert tile_offsets(120, 80, 50, 50) == [
        (0, 0), (50, 0), (100, 0),
        (0, 50), (50, 50), (100, 50),
    ]


# ── Lägen ───────────────────────────────────────────────────────────────────
def test_fill_ignores_aspect(png_bytes):
    out = open_image(process_image_buffer(png_bytes, {"mode": "FILL", "width": 10, "height": 30}))
    assert out.size == (10, 30)


def test_fill_without_both_dimensions_keeps_size(png_bytes):
    out = open_image(process_image_buffer(png_bytes, {"mode": "FILL", "width": 10}))
    assert out.size == (100, 50)


def test_fit_keeps_aspect(png_bytes):
    out = open_image(process_image_buffer(png_bytes, {"mode": "FIT", "width": 50, "height": 50}))
    assert out.size == (50, 25)
    out = open_image(process_image_buffer(png_bytes, {"mode": "FIT", "width": 20}))
    assert out.size == (20, 10)


def test_fit_with_background_pads_to_box(png_bytes):
    out = open_image(
        process_image_buffer(png_bytes, {"mode": "FIT", "width": 50, "height": 50, "background": "#ff0000"})
    )
    assert out.size == (50, 50)
    px = out.convert("RGBA")
    assert px.getpixel((25, 0)) == RED
    assert px.getpixel((25, 25)) == BLUE


def test_crop_covers_box_and_honours_position():
    data = _split_red_blue()
    left = open_image(process_image_buffer(data, {"mode": "CROP", "width": 50, "height": 50, "position": "left"}))
    right = open_image(process_image_buffer(data, {"mode": "CROP", "width": 50, "height": 50, "position": "right"}))
    assert left.size == right.size == (50, 50)
    assert left.convert("RGBA").getpixel((25, 25)) == RED
    assert right.convert("RGBA").getpixel((25, 25)) == BLUE


def test_crop_position_is_case_insensitive():
    opts = validate_processing_options({"mode": "CROP", "width": 5, "height": 5, "position": "Left Top"})
    assert opts.position == "left top"


def test_tile_repeats_source_on_transparent_canvas():
    src = Image.new("RGBA", (50, 50), (0, 255, 0, 255))
    src.putpixel((10, 20), RED)
    buf = BytesIO()
    src.save(buf, format="PNG")

    out = open_image(process_image_buffer(buf.getvalue(), {"mode": "TILE", "width": 120, "height": 80}))
    assert out.size == (120, 80)
    px = out.convert("RGBA")
    for x, y in tile_offsets(120, 80, 50, 50):
        if x + 10 < 120 and y + 20 < 80:
            assert px.getpixel((x + 10, y + 20)) == RED
    assert px.getpixel((119, 79)) == (0, 255, 0, 255)


def test_tile_larger_source_becomes_single_tile():
    data = make_image((200, 200))
    out = open_image(process_image_buffer(data, {"mode": "TILE", "width": 120, "height": 80}))
    assert out.size == (120, 80)


# ── Format och kvalitet ─────────────────────────────────────────────────────
def test_output_keeps_source_format(png_bytes):
    out = open_image(process_image_buffer(png_bytes, {"mode": "FILL", "width": 4, "height": 4}))
    assert out.format == "PNG"


def test_quality_applies_to_jpeg():
    noise = Image.effect_noise((64, 64), 80).convert("RGB")
    buf = BytesIO()
    noise.save(buf, format="JPEG", quality=95)
    data = buf.getvalue()

    low = process_image_buffer(data, {"mode": "FILL", "quality": 10})
    high = process_image_buffer(data, {"mode": "FILL", "quality": 95})
    assert open_image(low).format == "JPEG"
    assert len(low) < len(high)


def test_invalid_options_raise_before_decoding():
    with pytest.raises(ImageOptionsError):
        process_image_buffer(b"not an image", {"mode": "BOGUS"})


# ── Fil ─────────────────────────────────────────────────────────────────────
def test_process_image_file(tmp_path, png_bytes):
    src = tmp_path / "in.png"
    dst = tmp_path / "out.png"
    src.write_bytes(png_bytes)

    info = process_image_file(src, dst, {"mode": "FIT", "width": 20})
    assert info.filePath == str(dst)
    assert info.originalDimensions == {"width": 100, "height": 50}
    assert info.processedDimensions == {"width": 20, "height": 10}
    assert info.mode == "FIT"
    assert open_image(dst.read_bytes()).size == (20, 10)
