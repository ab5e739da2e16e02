import pytest

from designtree.tasks.gradients import FALLBACK_GRADIENT
from designtree.tasks.paints import UnrecognizedPaintError, normalize_paint

RED = {"r": 1, "g": 0, "b": 0, "a": 1}


def test_solid_opaque_is_hex():
    assert normalize_paint({"type": "SOLID", "color": RED}) == "#FF0000"


def test_solid_with_paint_opacity_is_rgba():
    assert normalize_paint({"type": "SOLID", "color": RED, "opacity": 0.5}) == "rgba(255, 0, 0, 0.5)"


def test_solid_alpha_and_opacity_multiply():
    paint = {"type": "SOLID", "color": {**RED, "a": 0.5}, "opacity": 0.5}
    assert normalize_paint(paint) == "rgba(255, 0, 0, 0.25)"


def test_gradient_without_handles_uses_fallback():
    paint = {"type": "GRADIENT_RADIAL", "gradientStops": []}
    assert normalize_paint(paint) == FALLBACK_GRADIENT


def test_gradient_linear():
    paint = {
        "type": "GRADIENT_LINEAR",
        "gradientHandlePositions": [{"x": 0, "y": 0}, {"x": 0, "y": 1}, {"x": 1, "y": 0}],
        "gradientStops": [
            {"color": RED, "position": 0},
            {"color": {"r": 0, "g": 0, "b": 0, "a": 1}, "position": 1},
        ],
    }
    assert normalize_paint(paint) == (
        "linear-gradient(0deg, rgba(255, 0, 0, 1) 0%, rgba(0, 0, 0, 1) 100%)"
    )


def test_image_upper_cases_scale_mode():
    out = normalize_paint({"type": "IMAGE", "imageRef": "abc", "scaleMode": "fill"})
    assert out == {"type": "IMAGE", "imageRef": "abc", "scaleMode": "FILL"}


def test_image_defaults_to_fit_and_passes_optional_fields():
    out = normalize_paint(
        {"type": "IMAGE", "imageRef": "abc", "rotation": 0, "gifRef": None},
        {"mode": "FIT", "width": 100},
    )
    assert out == {
        "type": "IMAGE",
        "imageRef": "abc",
        "scaleMode": "FIT",
        "imageProcessingOptions": {"mode": "FIT", "width": 100},
        "rotation": 0,
    }


def test_pattern():
    out = normalize_paint({"type": "PATTERN", "sourceNodeId": "9:9", "tileType": "RECTANGULAR"})
    assert out["type"] == "PATTERN"
    assert out["sourceNodeId"] == "9:9"
    assert out["tileType"] == "RECTANGULAR"
    assert "spacing" in out


def test_unknown_paint_raises():
    with pytest.raises(UnrecognizedPaintError) as exc:
        normalize_paint({"type": "EMOJI"})
    assert isinstance(exc.value, ValueError)
    assert "EMOJI" in str(exc.value)
