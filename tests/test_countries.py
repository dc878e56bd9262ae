import json
from pathlib import Path

import pytest

from scratch_map.data.countries import (
    UNKNOWN_COUNTRY,
    Country,
    CountrySource,
    countries_from_geojson,
    country_id,
)


def polygon_feature(properties, coordinates):
    return {"type": "Feature", "properties": properties, "geometry": {"type": "Polygon", "coordinates": coordinates}}


SQUARE = [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]


@pytest.mark.parametrize(
    "properties, expected",
    [
        ({"name": "France", "NAME": "FR", "ADMIN": "French Republic"}, "France"),
        ({"NAME": "Germany", "ADMIN": "Federal Republic"}, "Germany"),
        ({"ADMIN": "Italy"}, "Italy"),
        ({"NAME_EN": "Åland"}, "Åland"),
        ({"name": "", "NAME": "  ", "NAME_EN": "Spain"}, "Spain"),
        ({}, UNKNOWN_COUNTRY),
        ({"name": None, "ADMIN": 42}, UNKNOWN_COUNTRY),
    ],
)
def test_country_id_fallback_chain(properties, expected) -> None:
    assert country_id(properties) == expected


def test_from_feature_uses_identifier_chain() -> None:
    country = Country.from_feature(polygon_feature({"NAME_EN": "Åland"}, SQUARE))
    assert country is not None
    assert country.name == "Åland"
    assert country.identifier == "Åland"
    assert country.bbox == (0.0, 0.0, 1.0, 1.0)


def test_from_feature_multipolygon() -> None:
    feature = {
        "type": "Feature",
        "properties": {"name": "Islands"},
        "geometry": {
            "type": "MultiPolygon",
            "coordinates": [SQUARE, [[[5, 5], [6, 5], [6, 6], [5, 6], [5, 5]]]],
        },
    }
    country = Country.from_feature(feature)
    assert country is not None
    assert len(country.rings) == 2


@pytest.mark.parametrize(
    "geometry",
    [
        None,
        {"type": "Polygon", "coordinates": []},
        {"type": "Point", "coordinates": [1, 2]},
        {"type": "Polygon", "coordinates": [[[0, 0], [1]]]},
    ],
)
def test_malformed_geometry_is_skipped(geometry) -> None:
    feature = {"type": "Feature", "properties": {"name": "Broken"}, "geometry": geometry}
    assert Country.from_feature(feature) is None


def test_from_rings_treats_each_ring_as_a_part() -> None:
    country = Country.from_rings("Two", [[(0, 0), (1, 0), (1, 1), (0, 0)], [(3, 3), (4, 3), (4, 4), (3, 3)]])
    assert country.geometry.geom_type == "MultiPolygon"
    assert country.is_usable


def test_countries_from_geojson_drops_bad_features() -> None:
    data = {
        "type": "FeatureCollection",
        "features": [
            polygon_feature({"name": "Good"}, SQUARE),
            {"type": "Feature", "properties": {"name": "Bad"}, "geometry": None},
        ],
    }
    assert [country.name for country in countries_from_geojson(data)] == ["Good"]


class DummyResponse:
    def __init__(self, payload) -> None:
        self.payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self):
        return self.payload


class DummySession:
    def __init__(self, payload) -> None:
        self.payload = payload
        self.urls = []

    def get(self, url, timeout):  # noqa: D401 - signature matches requests
        self.urls.append(url)
        return DummyResponse(self.payload)


def test_source_prefers_local_file(tmp_path: Path) -> None:
    path = tmp_path / "world.geojson"
    path.write_text(json.dumps({"features": [polygon_feature({"name": "Local"}, SQUARE)]}), encoding="utf-8")
    session = DummySession({"features": []})
    source = CountrySource(url="https://example.com/world.geojson", path=path, session=session)  # type: ignore[arg-type]
    assert [country.name for country in source.load()] == ["Local"]
    assert session.urls == []


def test_source_downloads_when_no_file() -> None:
    session = DummySession({"features": [polygon_feature({"ADMIN": "Remote"}, SQUARE)]})
    source = CountrySource(url="https://example.com/world.geojson", session=session)  # type: ignore[arg-type]
    assert [country.name for country in source.load()] == ["Remote"]
    assert session.urls == ["https://example.com/world.geojson"]


def test_source_requires_a_location() -> None:
    with pytest.raises(RuntimeError):
        CountrySource()
