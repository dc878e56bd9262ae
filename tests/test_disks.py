import math

import pytest

from scratch_map.data.places import GeocodedPlace
from scratch_map.geometry.disks import (
    area_km2,
    bbox_contains_point,
    create_disk,
    create_disks_for_places,
    disk_vertices,
    distance_km,
)
from scratch_map.reveal.matcher import total_covered_area


def test_disk_ring_is_closed_with_expected_vertex_count() -> None:
    vertices = disk_vertices(48.85, 2.35, 100, steps=64)
    assert len(vertices) == 65
    assert vertices[0] == vertices[-1]


def test_disk_vertices_lie_on_the_radius() -> None:
    disk = create_disk(48.85, 2.35, 100, steps=16)
    for lng, lat in disk.vertices:
        assert distance_km(48.85, 2.35, lat, lng) == pytest.approx(100, rel=1e-6)


def test_disk_needs_three_steps() -> None:
    with pytest.raises(ValueError):
        disk_vertices(0.0, 0.0, 100, steps=2)


def test_disk_bbox_contains_center() -> None:
    disk = create_disk(-33.86, 151.2, 100)
    assert bbox_contains_point(disk.bbox, disk.center_lng, disk.center_lat)


def test_disks_for_places_skip_ungeocoded() -> None:
    places = [
        GeocodedPlace(title="Paris", lat=48.85, lng=2.35, formatted_address="Paris, France", geocoded=True),
        GeocodedPlace(title="Atlantis", geocoded=False, error="No results found"),
    ]
    disks = create_disks_for_places(places, radius_km=50, steps=8)
    assert len(disks) == 1
    assert disks[0].title == "Paris"
    assert disks[0].formatted_address == "Paris, France"
    assert disks[0].radius_km == 50


def test_single_disk_area_is_close_to_circle() -> None:
    area = area_km2(create_disk(10.0, 10.0, 100).polygon)
    assert area == pytest.approx(math.pi * 100 ** 2, rel=0.01)


def test_total_area_of_nothing_is_zero() -> None:
    assert total_covered_area([]) == 0


def test_total_area_does_not_double_count_overlaps() -> None:
    single = total_covered_area([create_disk(10.0, 10.0, 100)])
    twice = total_covered_area([create_disk(10.0, 10.0, 100), create_disk(10.0, 10.0, 100)])
    assert twice == pytest.approx(single, rel=1e-6)


def test_total_area_is_monotonic_as_disks_are_added() -> None:
    disks = [create_disk(10.0, 10.0, 100), create_disk(10.0, 11.0, 100), create_disk(-30.0, 60.0, 100)]
    areas = [total_covered_area(disks[:i]) for i in range(len(disks) + 1)]
    for before, after in zip(areas, areas[1:]):
        assert after > before
    # Partial overlap adds less than a full disk.
    assert areas[2] - areas[1] < areas[1]


def test_contained_disk_leaves_area_unchanged() -> None:
    outer = create_disk(10.0, 10.0, 100)
    inner = create_disk(10.1, 10.1, 20)
    assert total_covered_area([outer, inner]) == pytest.approx(total_covered_area([outer]), rel=1e-6)
