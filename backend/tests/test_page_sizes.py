from __future__ import annotations

import pytest

from reporting.page_sizes import (
    PAGE_FORMATS,
    clamp_zoom,
    css_page_size,
    dimensions,
    page_format,
    to_pixels,
    to_points,
    zoom_in,
    zoom_out,
)


def test_letter_pixels_at_96_dpi():
    px = to_pixels(dimensions("letter"), dpi=96, zoom_percent=100)
    assert (px.width_px, px.height_px) == (816.0, 1056.0)

    half = to_pixels(dimensions("letter"), dpi=96, zoom_percent=50)
    assert (half.width_px, half.height_px) == (408.0, 528.0)


def test_a4_converts_millimeters_to_inches():
    px = to_pixels(dimensions("a4"))
    assert px.width_px == pytest.approx(210 / 25.4 * 96)
    assert px.height_px == pytest.approx(297 / 25.4 * 96)


@pytest.mark.parametrize("name", sorted(PAGE_FORMATS))
@pytest.mark.parametrize("zoom", [50, 75, 100, 125, 150, 200])
def test_aspect_ratio_is_zoom_independent(name, zoom):
    dims = dimensions(name)
    assert to_pixels(dims, zoom_percent=zoom).aspect_ratio == pytest.approx(dims.aspect_ratio)


def test_unknown_format_falls_back_to_letter():
    assert page_format("tabloid").key == "letter"
    assert page_format(None).key == "letter"
    assert page_format(" A4 ").key == "a4"


def test_css_page_size_and_points():
    assert css_page_size("letter") == "8.5in 11in"
    assert css_page_size("a4") == "210mm 297mm"
    assert css_page_size("legal") == "8.5in 14in"
    assert to_points(dimensions("letter")) == (612.0, 792.0)


def test_zoom_steps_are_clamped():
    assert zoom_in(100) == 125
    assert zoom_out(100) == 75
    assert zoom_in(200) == 200
    assert zoom_out(50) == 50
    assert clamp_zoom(10) == 50
    assert clamp_zoom(500) == 200
