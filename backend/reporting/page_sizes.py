"""
Physical page formats and their pixel/point equivalents.

Letter and Legal are defined in inches, A4 in millimeters. Pixel sizes are derived at a
DPI (96 by default, the CSS reference pixel) and scaled by a zoom percentage; points are
72 per inch. Unknown format names fall back to Letter.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MM_PER_INCH = 25.4
CSS_DPI = 96
POINTS_PER_INCH = 72

MIN_ZOOM = 50
MAX_ZOOM = 200
ZOOM_STEP = 25
DEFAULT_ZOOM = 100

DEFAULT_FORMAT = "letter"


@dataclass(frozen=True)
class PageDimensions:
    width_units: float
    height_units: float
    unit: Literal["in", "mm"]

    @property
    def width_in(self) -> float:
        return self.width_units / MM_PER_INCH if self.unit == "mm" else self.width_units

    @property
    def height_in(self) -> float:
        return self.height_units / MM_PER_INCH if self.unit == "mm" else self.height_units

    @property
    def aspect_ratio(self) -> float:
        return self.width_units / self.height_units


@dataclass(frozen=True)
class PixelDimensions:
    width_px: float
    height_px: float

    @property
    def aspect_ratio(self) -> float:
        return self.width_px / self.height_px


@dataclass(frozen=True)
class PageFormat:
    key: str
    name: str
    dimensions: PageDimensions
    # Paper format name understood by Chromium's page.pdf()
    paper_format: str

    @property
    def css_size(self) -> str:
        d = self.dimensions
        return f"{d.width_units:g}{d.unit} {d.height_units:g}{d.unit}"


PAGE_FORMATS: dict[str, PageFormat] = {
    "letter": PageFormat("letter", 'Letter (8.5" x 11")', PageDimensions(8.5, 11.0, "in"), "Letter"),
    "a4": PageFormat("a4", "A4 (210 x 297 mm)", PageDimensions(210.0, 297.0, "mm"), "A4"),
    "legal": PageFormat("legal", 'Legal (8.5" x 14")', PageDimensions(8.5, 14.0, "in"), "Legal"),
}


def page_format(name: str | None) -> PageFormat:
    key = str(name or "").strip().lower()
    return PAGE_FORMATS.get(key, PAGE_FORMATS[DEFAULT_FORMAT])


def dimensions(name: str | None) -> PageDimensions:
    return page_format(name).dimensions


def to_pixels(dims: PageDimensions, dpi: float = CSS_DPI, zoom_percent: float = DEFAULT_ZOOM) -> PixelDimensions:
    scale = zoom_percent / 100
    return PixelDimensions(
        width_px=dims.width_in * dpi * scale,
        height_px=dims.height_in * dpi * scale,
    )


def to_points(dims: PageDimensions) -> tuple[float, float]:
    return (dims.width_in * POINTS_PER_INCH, dims.height_in * POINTS_PER_INCH)


def css_page_size(name: str | None) -> str:
    return page_format(name).css_size


def clamp_zoom(zoom: float) -> int:
    return int(max(MIN_ZOOM, min(MAX_ZOOM, round(zoom))))


def zoom_in(zoom: float) -> int:
    return clamp_zoom(zoom + ZOOM_STEP)


def zoom_out(zoom: float) -> int:
    return clamp_zoom(zoom - ZOOM_STEP)
