"""Tests for the geodetic domain services.

Longitudes are west-positive throughout.
"""

from __future__ import annotations

import math

import pytest

from domain.terrain.errors import FatalTerrainError, QueryError
from domain.terrain.services import (
    WGS84_A,
    WGS84_B,
    covering_quadrangles,
    earth_radius,
    geodesic_distance,
    get_circular_bounding_box,
    get_point_at_distance,
    lon_diff,
    wrap_max,
    wrap_min,
)
from domain.terrain.value_objects import BoundingBox, Coordinate, QuadrangleId


# ---------------------------------------------------------------------------
# earth_radius
# ---------------------------------------------------------------------------
def test_earth_radius_equator_is_semi_major_axis():
    assert earth_radius(0.0) == pytest.approx(WGS84_A / 1000.0, rel=1e-6)


def test_earth_radius_pole_is_semi_minor_axis():
    assert earth_radius(90.0) == pytest.approx(WGS84_B / 1000.0, rel=1e-6)
    assert earth_radius(-90.0) == pytest.approx(WGS84_B / 1000.0, rel=1e-6)


def test_earth_radius_decreases_toward_pole():
    assert earth_radius(0.0) > earth_radius(45.0) > earth_radius(89.0)


# ---------------------------------------------------------------------------
# get_point_at_distance
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("bearing", [0.0, 45.0, 90.0, 181.5, 359.0])
@pytest.mark.parametrize(
    "center",
    [
        Coordinate(lat=0.0, lon=0.0),
        Coordinate(lat=-33.9, lon=358.2),
        Coordinate(lat=51.5, lon=0.12),
        Coordinate(lat=89.9, lon=180.0),
    ],
)
def test_zero_distance_is_identity(center, bearing):
    result = get_point_at_distance(center, 0.0, bearing)
    assert result.lat == pytest.approx(center.lat)
    assert result.lon == pytest.approx(center.lon)


def test_due_north_moves_latitude_only():
    center = Coordinate(lat=10.0, lon=20.0)
    result = get_point_at_distance(center, 100.0, 0.0)

    expected = 10.0 + math.degrees(100.0 / earth_radius(10.0))
    assert result.lat == pytest.approx(expected, rel=1e-9)
    assert result.lon == pytest.approx(20.0, abs=1e-9)


def test_projected_point_lies_at_requested_distance():
    center = Coordinate(lat=40.0, lon=74.0)
    result = get_point_at_distance(center, 25.0, 135.0)
    # Spherical projection vs ellipsoidal measurement: within 1%
    assert geodesic_distance(center, result) == pytest.approx(25000.0, rel=1e-2)


# ---------------------------------------------------------------------------
# get_circular_bounding_box
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("lat", [0.0, 45.0, -60.0])
def test_bounding_box_edge_midpoints_at_radius(lat):
    center = Coordinate(lat=lat, lon=100.0)
    radius_km = 10.0
    box = get_circular_bounding_box(center, radius_km)

    midpoints = [
        Coordinate(lat=box.max_lat, lon=center.lon),
        Coordinate(lat=box.min_lat, lon=center.lon),
        Coordinate(lat=center.lat, lon=box.max_lon),
        Coordinate(lat=center.lat, lon=box.min_lon),
    ]
    for point in midpoints:
        assert geodesic_distance(center, point) == pytest.approx(
            radius_km * 1000.0, rel=1e-2
        )


def test_bounding_box_corners_are_ordered():
    box = get_circular_bounding_box(Coordinate(lat=10.0, lon=20.0), 50.0)
    assert box.lower_right.lat < box.upper_left.lat
    assert box.lower_right.lon < box.upper_left.lon


def test_bounding_box_widens_toward_pole():
    near_equator = get_circular_bounding_box(Coordinate(lat=1.0, lon=20.0), 50.0)
    near_pole = get_circular_bounding_box(Coordinate(lat=70.0, lon=20.0), 50.0)

    assert (near_pole.max_lon - near_pole.min_lon) > (
        near_equator.max_lon - near_equator.min_lon
    )


def test_bounding_box_latitude_clamped():
    box = get_circular_bounding_box(Coordinate(lat=89.99, lon=0.0), 100.0)
    assert box.max_lat == 90.0


# ---------------------------------------------------------------------------
# Wraparound helpers
# ---------------------------------------------------------------------------
def test_lon_diff_normalizes_across_seam():
    assert lon_diff(1.0, 359.0) == pytest.approx(2.0)
    assert lon_diff(359.0, 1.0) == pytest.approx(-2.0)
    assert lon_diff(21.0, 20.0) == pytest.approx(1.0)


def test_wrap_max_direct_comparison():
    assert wrap_max(21.0, 20.0) == 21.0
    assert wrap_max(19.0, 20.0) == 20.0


def test_wrap_max_across_seam_picks_western_side():
    # 0.5W is west of 359.5W (which is 0.5E)
    assert wrap_max(359.5, 0.5) == 0.5
    assert wrap_max(0.5, 359.5) == 0.5


def test_wrap_min_across_seam_picks_eastern_side():
    assert wrap_min(359.5, 0.5) == 359.5
    assert wrap_min(0.5, 359.5) == 359.5


def test_wrap_helpers_accept_empty_extent():
    assert wrap_max(42.0, None) == 42.0
    assert wrap_min(42.0, None) == 42.0


# ---------------------------------------------------------------------------
# covering_quadrangles
# ---------------------------------------------------------------------------
def _region(min_lat, max_lat, min_lon, max_lon) -> BoundingBox:
    return BoundingBox(
        lower_right=Coordinate(lat=min_lat, lon=min_lon),
        upper_left=Coordinate(lat=max_lat, lon=max_lon),
    )


def test_covering_quadrangles_longitude_outer_loop():
    quads = covering_quadrangles(_region(10.5, 11.5, 20.2, 21.7))

    assert [q.basename() for q in quads] == [
        "10_11_20_21",
        "11_12_20_21",
        "10_11_21_22",
        "11_12_21_22",
    ]


def test_covering_quadrangles_single_tile():
    quads = covering_quadrangles(_region(10.1, 10.9, 20.1, 20.9))
    assert quads == [QuadrangleId(min_lat=10, max_lat=11, min_lon=20, max_lon=21)]


def test_covering_quadrangles_negative_latitudes():
    quads = covering_quadrangles(_region(-1.5, -0.5, 5.0, 5.5))
    assert [q.basename() for q in quads] == ["-2_-1_5_6", "-1_0_5_6"]


def test_degenerate_region_is_fatal():
    region = _region(10.0, 10.0, 20.0, 21.0)
    with pytest.raises(QueryError) as excinfo:
        covering_quadrangles(region)

    assert isinstance(excinfo.value, FatalTerrainError)
    assert excinfo.value.tiles_lat == 0
    assert excinfo.value.tiles_lon == 1
