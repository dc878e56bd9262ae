"""Render a flat scratch-map preview image."""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Iterable, List, Sequence, Tuple

from PIL import Image, ImageDraw
from shapely.geometry import Polygon

from scratch_map.data.countries import Country
from scratch_map.data.places import GeocodedPlace
from scratch_map.geometry.disks import CoverageDisk

OCEAN_COLOR = "#0b1e3a"
REVEALED_COLOR = "#7fb069"
HIDDEN_COLOR = "black"
BORDER_COLOR = "#2a2a2a"
PREVIEW_FILENAME = "scratch-map.png"


class MapPreview:
    """Equirectangular projection: unrevealed countries painted over in black."""

    def __init__(self, width: int, height: int, *, pin_color: str) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Preview dimensions must be positive")
        self.width = width
        self.height = height
        self.pin_color = pin_color

    def project(self, lng: float, lat: float) -> Tuple[float, float]:
        x = (lng + 180.0) / 360.0 * self.width
        y = (90.0 - lat) / 180.0 * self.height
        return x, y

    def render(
        self,
        countries: Iterable[Country],
        revealed_ids: Collection[str],
        disks: Sequence[CoverageDisk] = (),
        places: Sequence[GeocodedPlace] = (),
    ) -> Image.Image:
        canvas = Image.new("RGB", (self.width, self.height), OCEAN_COLOR)
        draw = ImageDraw.Draw(canvas)

        for country in countries:
            fill = REVEALED_COLOR if country.identifier in revealed_ids else HIDDEN_COLOR
            for polygon in country.parts:
                self._draw_polygon(draw, polygon, fill)

        for disk in disks:
            draw.line(self._ring(disk.vertices), fill=self.pin_color, width=1)

        for place in places:
            if place.lat is None or place.lng is None:
                continue
            x, y = self.project(place.lng, place.lat)
            draw.ellipse((x - 2, y - 2, x + 2, y + 2), fill=self.pin_color)
        return canvas

    def save(self, image: Image.Image, directory: Path) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / PREVIEW_FILENAME
        image.save(target, format="PNG")
        return target

    def _draw_polygon(self, draw: ImageDraw.ImageDraw, polygon: Polygon, fill: str) -> None:
        exterior = self._ring(polygon.exterior.coords)
        if len(exterior) < 3:
            return
        draw.polygon(exterior, fill=fill, outline=BORDER_COLOR)
        for interior in polygon.interiors:
            hole = self._ring(interior.coords)
            if len(hole) >= 3:
                draw.polygon(hole, fill=OCEAN_COLOR)

    def _ring(self, coords: Iterable[Sequence[float]]) -> List[Tuple[float, float]]:
        return [self.project(point[0], point[1]) for point in coords]


__all__ = ["MapPreview", "PREVIEW_FILENAME"]
