"""Decide which countries count as revealed.

Two strategies feed the map:

* coverage disks around geocoded places, tested geometrically per country
  (``is_country_covered``), and
* the hand-maintained scratch set, tested by identifier
  (``is_country_scratched``).

``compute_revealed_countries`` is the stricter statistic shown to the user: a
country only counts when a place point lies inside it.

Geometry failures never escape these functions. A failing (country, disk)
pair falls back to a distance check or is treated as not covered, and a
failing union leaves that disk unmerged.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Container, Iterable, List, Optional, Sequence, Tuple

from shapely.errors import ShapelyError
from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from scratch_map.data.countries import Country, IdExtractor
from scratch_map.geometry.disks import (
    CoverageDisk,
    area_km2,
    bbox_contains_point,
    bboxes_overlap,
    distance_km,
)

LOGGER = logging.getLogger(__name__)

# Distance fallback used when the exact intersection test cannot decide.
FALLBACK_RADIUS_FACTOR = 1.5


@dataclass(frozen=True)
class RevealedCountries:
    count: int
    names: Tuple[str, ...]


def _country_identifier(country: Country) -> str:
    return country.identifier


def is_country_scratched(
    country: Country,
    scratch_set: Container[str],
    id_extractor: IdExtractor = _country_identifier,
) -> bool:
    return id_extractor(country) in scratch_set


def _centroid(country: Country) -> Optional[Point]:
    centroid = country.geometry.centroid
    return None if centroid.is_empty else centroid


def _disk_touches_country(country: Country, centroid: Optional[Point], disk: CoverageDisk) -> bool:
    if centroid is not None and disk.polygon.covers(centroid):
        return True
    if country.geometry.covers(disk.center):
        return True
    try:
        return country.geometry.intersects(disk.polygon)
    except ShapelyError as exc:
        if centroid is None:
            LOGGER.debug("Intersection failed for %s without a centroid: %s", country.name, exc)
            return False
        distance = distance_km(centroid.y, centroid.x, disk.center_lat, disk.center_lng)
        LOGGER.debug(
            "Intersection failed for %s, falling back to distance %.1f km: %s",
            country.name,
            distance,
            exc,
        )
        return distance <= disk.radius_km * FALLBACK_RADIUS_FACTOR


def is_country_covered(country: Country, disks: Iterable[CoverageDisk]) -> bool:
    """True when any disk reaches the country; stops at the first match."""
    if not country.is_usable:
        return False
    country_box = country.bbox
    centroid: Optional[Point] = None
    centroid_ready = False
    for disk in disks:
        if not bboxes_overlap(country_box, disk.bbox):
            continue
        try:
            if not centroid_ready:
                centroid = _centroid(country)
                centroid_ready = True
            if _disk_touches_country(country, centroid, disk):
                return True
        except ShapelyError as exc:
            LOGGER.warning("Error checking country intersection for %s: %s", country.name, exc)
    return False


def compute_revealed_countries(
    countries: Sequence[Country],
    disks: Iterable[CoverageDisk],
) -> RevealedCountries:
    """Countries that administratively contain at least one place point."""
    indexed = [(country, country.bbox) for country in countries if country.is_usable]
    names = set()

    for disk in disks:
        lng, lat = disk.center_lng, disk.center_lat
        point = disk.center
        for country, box in indexed:
            if not bbox_contains_point(box, lng, lat):
                continue
            try:
                inside = country.geometry.covers(point)
            except ShapelyError as exc:
                LOGGER.warning("Point-in-polygon failed for %s: %s", country.name, exc)
                continue
            if inside:
                names.add(country.name)
                break

    ordered = tuple(sorted(names))
    return RevealedCountries(count=len(ordered), names=ordered)


def merge_disks(disks: Sequence[CoverageDisk]) -> List[BaseGeometry]:
    """Union the disk polygons into disjoint pieces.

    A disk whose union fails is kept as a separate piece, so overlaps with it
    are counted twice.
    """
    if not disks:
        return []

    merged: BaseGeometry = disks[0].polygon
    unmerged: List[BaseGeometry] = []
    for disk in disks[1:]:
        try:
            merged = merged.union(disk.polygon)
        except ShapelyError as exc:
            LOGGER.warning("Could not merge disk %s: %s", disk.title or (disk.center_lat, disk.center_lng), exc)
            unmerged.append(disk.polygon)

    pieces = list(getattr(merged, "geoms", [merged]))
    return pieces + unmerged


def total_covered_area(disks: Sequence[CoverageDisk]) -> float:
    """Area of the union of all disks, in square kilometers."""
    return sum(area_km2(piece) for piece in merge_disks(disks))


def is_point_in_disks(lat: float, lng: float, disks: Iterable[CoverageDisk]) -> bool:
    point = Point(lng, lat)
    return any(disk.polygon.covers(point) for disk in disks)


def is_point_within_radius(
    lat: float,
    lng: float,
    centers: Iterable[Tuple[float, float]],
    radius_km: float,
) -> bool:
    """``centers`` are (lat, lng) pairs."""
    return any(distance_km(lat, lng, c_lat, c_lng) <= radius_km for c_lat, c_lng in centers)


def min_distance_to_center(lat: float, lng: float, centers: Iterable[Tuple[float, float]]) -> float:
    return min((distance_km(lat, lng, c_lat, c_lng) for c_lat, c_lng in centers), default=math.inf)


__all__ = [
    "FALLBACK_RADIUS_FACTOR",
    "RevealedCountries",
    "compute_revealed_countries",
    "is_country_covered",
    "is_country_scratched",
    "is_point_in_disks",
    "is_point_within_radius",
    "merge_disks",
    "min_distance_to_center",
    "total_covered_area",
]
