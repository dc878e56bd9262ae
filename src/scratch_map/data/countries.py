"""Country boundary polygons and the identifiers used to track them."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import requests
from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Polygon, shape
from shapely.geometry.base import BaseGeometry

LOGGER = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "unknown"

# Tried in order; the first non-empty string wins.
COUNTRY_ID_FIELDS: Tuple[str, ...] = ("name", "NAME", "ADMIN", "NAME_EN")

Ring = List[Tuple[float, float]]


def country_id(properties: Mapping[str, Any], fields: Sequence[str] = COUNTRY_ID_FIELDS) -> str:
    """Return the identifier a country is tracked under.

    Countries lacking every field collapse onto ``UNKNOWN_COUNTRY``.
    """
    for key in fields:
        value = properties.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return UNKNOWN_COUNTRY


@dataclass(frozen=True, eq=False)
class Country:
    name: str
    geometry: BaseGeometry
    properties: Mapping[str, Any] = field(default_factory=dict)

    @cached_property
    def bbox(self) -> Tuple[float, float, float, float]:
        return self.geometry.bounds

    @property
    def identifier(self) -> str:
        return country_id({"name": self.name, **self.properties})

    @property
    def parts(self) -> List[Polygon]:
        return _polygons(self.geometry)

    @property
    def rings(self) -> List[Ring]:
        return [[(x, y) for x, y in polygon.exterior.coords] for polygon in self.parts]

    @property
    def is_usable(self) -> bool:
        return not self.geometry.is_empty and self.geometry.area > 0

    @classmethod
    def from_rings(cls, name: str, rings: Sequence[Sequence[Sequence[float]]]) -> "Country":
        """Build a country where every ring is an independent part."""
        parts = [Polygon([(float(p[0]), float(p[1])) for p in ring]) for ring in rings if len(ring) >= 3]
        if not parts:
            geometry: BaseGeometry = Polygon()
        elif len(parts) == 1:
            geometry = parts[0]
        else:
            geometry = MultiPolygon(parts)
        return cls(name=name, geometry=geometry, properties={"name": name})

    @classmethod
    def from_feature(cls, feature: Mapping[str, Any]) -> Optional["Country"]:
        properties = dict(feature.get("properties") or {})
        name = country_id(properties)
        raw_geometry = feature.get("geometry")
        if not raw_geometry or not raw_geometry.get("coordinates"):
            LOGGER.warning("Skipping country %s without geometry", name)
            return None
        try:
            geometry = shape(raw_geometry)
        except (ShapelyError, ValueError, TypeError, IndexError) as exc:
            LOGGER.warning("Skipping country %s with malformed geometry: %s", name, exc)
            return None
        if geometry.is_empty or geometry.geom_type not in ("Polygon", "MultiPolygon"):
            LOGGER.warning("Skipping country %s with unsupported geometry %s", name, geometry.geom_type)
            return None
        return cls(name=name, geometry=geometry, properties=properties)


def _polygons(geometry: BaseGeometry) -> List[Polygon]:
    if geometry.is_empty:
        return []
    if isinstance(geometry, Polygon):
        return [geometry]
    if isinstance(geometry, MultiPolygon):
        return list(geometry.geoms)
    return []


def countries_from_geojson(data: Mapping[str, Any]) -> List[Country]:
    countries = []
    for feature in data.get("features", []):
        country = Country.from_feature(feature)
        if country is None:
            continue
        if country.name == UNKNOWN_COUNTRY:
            LOGGER.warning("Country without a name field will be tracked as %r", UNKNOWN_COUNTRY)
        countries.append(country)
    LOGGER.info("Loaded %d countries", len(countries))
    return countries


class CountrySource:
    """Loads the country collection from a local GeoJSON file or a URL."""

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        path: Optional[Path] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if url is None and path is None:
            raise RuntimeError("A countries URL or path is required")
        self._url = url
        self._path = path
        self._session = session or requests.Session()

    def load(self) -> List[Country]:
        return countries_from_geojson(self._fetch())

    def _fetch(self) -> Dict[str, Any]:
        if self._path is not None:
            LOGGER.info("Reading countries from %s", self._path)
            with open(self._path, "r", encoding="utf-8") as handle:
                return json.load(handle)
        LOGGER.info("Downloading countries from %s", self._url)
        response = self._session.get(self._url, timeout=30)
        response.raise_for_status()
        return response.json()


IdExtractor = Callable[[Country], str]


__all__ = [
    "COUNTRY_ID_FIELDS",
    "Country",
    "CountrySource",
    "IdExtractor",
    "UNKNOWN_COUNTRY",
    "countries_from_geojson",
    "country_id",
]
