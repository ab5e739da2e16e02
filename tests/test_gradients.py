"""Tester för gradient → CSS."""

import logging

import pytest

from designtree.tasks.gradients import (
    DEFAULT_STOPS,
    FALLBACK_GRADIENT,
    clamp_handles,
    convert_gradient_to_css,
    css_angle,
    format_stops,
)

RED_BLUE = [
    {"color": {"r": 1, "g": 0, "b": 0, "a": 1}, "position": 0},
    {"color": {"r": 0, "g": 0, "b": 1, "a": 1}, "position": 1},
]
RED_BLUE_CSS = "rgba(255, 0, 0, 1) 0%, rgba(0, 0, 255, 1) 100%"


def _h(*pts):
    return [{"x": x, "y": y} for x, y in pts]


def test_linear_left_to_right_is_90deg():
    css = convert_gradient_to_css("GRADIENT_LINEAR", _h((0, 0), (1, 0), (0, 1)), RED_BLUE)
    assert css == f"linear-gradient(90deg, {RED_BLUE_CSS})"


def test_linear_top_to_bottom_is_0deg():
    css = convert_gradient_to_css("GRADIENT_LINEAR", _h((0, 0), (0, 1)), RED_BLUE)
    assert css == f"linear-gradient(0deg, {RED_BLUE_CSS})"


def test_linear_handles_are_clamped():
    css = convert_gradient_to_css("GRADIENT_LINEAR", _h((-0.5, 0), (1.5, 0)), RED_BLUE)
    assert css.startswith("linear-gradient(90deg,")


def test_too_few_handles_use_diagonal_default():
    assert clamp_handles(_h((0.2, 0.2))) == [(0.0, 0.0), (1.0, 1.0)]
    assert clamp_handles(None) == [(0.0, 0.0), (1.0, 1.0)]
    css = convert_gradient_to_css("GRADIENT_LINEAR", [], RED_BLUE)
    assert css.startswith("linear-gradient(45deg,")


def test_css_angle_range():
    assert css_angle((0.5, 0.5), (0.5, 0.0)) == 180
    assert 0 <= css_angle((1, 1), (0, 0)) < 360


def test_radial():
    css = convert_gradient_to_css("GRADIENT_RADIAL", _h((0.5, 0.5), (1, 0.5), (0.5, 1)), RED_BLUE)
    assert css == f"radial-gradient(circle 50% at 50% 50%, {RED_BLUE_CSS})"


def test_angular():
    css = convert_gradient_to_css("GRADIENT_ANGULAR", _h((0.5, 0.5), (0.5, 0)), RED_BLUE)
    assert css == f"conic-gradient(from 180deg at 50% 50%, {RED_BLUE_CSS})"


def test_diamond_is_ellipse():
    css = convert_gradient_to_css("GRADIENT_DIAMOND", _h((0.5, 0.5), (1, 0.75)), RED_BLUE)
    assert css == f"radial-gradient(ellipse 50% 25% at 50% 50%, {RED_BLUE_CSS})"


def test_stop_positions_are_integer_percent():
    stops = [{"color": {"r": 0, "g": 0, "b": 0, "a": 0.5}, "position": 0.335}]
    assert format_stops(stops) == "rgba(0, 0, 0, 0.5) 34%"


def test_empty_stops_use_default_pair():
    assert format_stops([]) == DEFAULT_STOPS
    css = convert_gradient_to_css("GRADIENT_LINEAR", _h((0, 0), (1, 0)), [])
    assert css == f"linear-gradient(90deg, {DEFAULT_STOPS})"


@pytest.mark.parametrize(
    "handles, stops",
    [
        (_h((0, 0), (1, 0)), [{"position": 0.5}]),
        ([{"x": "a", "y": 0}, {"x": 1, "y": 1}], RED_BLUE),
    ],
)
def test_broken_input_falls_back_with_warning(handles, stops, caplog):
    with caplog.at_level(logging.WARNING, logger="designtree/gradients"):
        css = convert_gradient_to_css("GRADIENT_LINEAR", handles, stops)
    assert css == FALLBACK_GRADIENT
    assert any("fallback" in r.getMessage() for r in caplog.records)
