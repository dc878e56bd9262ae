"""Geodesic helpers for building and measuring coverage disks."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, List, Optional, Tuple

from pyproj import Geod
from shapely.geometry import Point, Polygon
from shapely.geometry.base import BaseGeometry

DEFAULT_RADIUS_KM = 100.0
DEFAULT_STEPS = 64

BBox = Tuple[float, float, float, float]
LngLat = Tuple[float, float]

GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class CoverageDisk:
    """A circle of ``radius_km`` around a place, approximated as a closed ring."""

    center_lat: float
    center_lng: float
    radius_km: float
    vertices: Tuple[LngLat, ...]
    title: str = ""
    formatted_address: Optional[str] = None

    @cached_property
    def polygon(self) -> Polygon:
        return Polygon(self.vertices)

    @cached_property
    def bbox(self) -> BBox:
        return self.polygon.bounds

    @property
    def center(self) -> Point:
        return Point(self.center_lng, self.center_lat)


def disk_vertices(lat: float, lng: float, radius_km: float, steps: int = DEFAULT_STEPS) -> Tuple[LngLat, ...]:
    """Destination points at evenly spaced bearings, first point repeated to close the ring."""
    if steps < 3:
        raise ValueError("A disk needs at least 3 steps")
    distance_m = radius_km * 1000.0
    vertices: List[LngLat] = []
    for i in range(steps):
        lon2, lat2, _ = GEOD.fwd(lng, lat, i * -360.0 / steps, distance_m)
        vertices.append((lon2, lat2))
    vertices.append(vertices[0])
    return tuple(vertices)


def create_disk(
    lat: float,
    lng: float,
    radius_km: float = DEFAULT_RADIUS_KM,
    steps: int = DEFAULT_STEPS,
    *,
    title: str = "",
    formatted_address: Optional[str] = None,
) -> CoverageDisk:
    return CoverageDisk(
        center_lat=lat,
        center_lng=lng,
        radius_km=radius_km,
        vertices=disk_vertices(lat, lng, radius_km, steps),
        title=title,
        formatted_address=formatted_address,
    )


def create_disks_for_places(
    places: Iterable[object],
    radius_km: float = DEFAULT_RADIUS_KM,
    steps: int = DEFAULT_STEPS,
) -> List[CoverageDisk]:
    """Build one disk per geocoded place; places without coordinates are skipped."""
    disks = []
    for place in places:
        if not getattr(place, "geocoded", False):
            continue
        lat = getattr(place, "lat", None)
        lng = getattr(place, "lng", None)
        if lat is None or lng is None:
            continue
        disks.append(
            create_disk(
                lat,
                lng,
                radius_km,
                steps,
                title=getattr(place, "title", ""),
                formatted_address=getattr(place, "formatted_address", None),
            )
        )
    return disks


def bboxes_overlap(a: BBox, b: BBox) -> bool:
    return not (a[2] < b[0] or a[0] > b[2] or a[3] < b[1] or a[1] > b[3])


def bbox_contains_point(box: BBox, lng: float, lat: float) -> bool:
    return box[0] <= lng <= box[2] and box[1] <= lat <= box[3]


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    _, _, meters = GEOD.inv(lng1, lat1, lng2, lat2)
    return meters / 1000.0


def area_km2(geometry: BaseGeometry) -> float:
    """Geodesic area of a (multi)polygon in square kilometers."""
    if geometry.is_empty:
        return 0.0
    area_m2, _ = GEOD.geometry_area_perimeter(geometry)
    return abs(area_m2) / 1_000_000.0


__all__ = [
    "BBox",
    "CoverageDisk",
    "DEFAULT_RADIUS_KM",
    "DEFAULT_STEPS",
    "area_km2",
    "bbox_contains_point",
    "bboxes_overlap",
    "create_disk",
    "create_disks_for_places",
    "disk_vertices",
    "distance_km",
]
