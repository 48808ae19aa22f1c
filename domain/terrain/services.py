"""Terrain Bounded Context - Domain Services.

Pure geodetic helpers used to decide which terrain must be loaded.
NO I/O operations - file loading is implemented by infrastructure adapters
under `src/infrastructure/terrain/` via domain ports.
"""

from __future__ import annotations

import math

from pyproj import Geod

from domain.terrain.errors import QueryError
from domain.terrain.value_objects import BoundingBox, Coordinate, QuadrangleId

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
WGS84_A = 6378137.0  # semi-major axis (m)
WGS84_B = 6356752.3  # semi-minor axis (m)

# Two west longitudes closer than this are compared directly; farther apart
# they are assumed to sit on opposite sides of the 0/360 seam.
WRAP_THRESHOLD_DEG = 180.0

# WGS84 ellipsoid for geodesic calculations (same as GPS, EPSG:4326)
_geod = Geod(ellps="WGS84")


# ---------------------------------------------------------------------------
# Earth Radius
# ---------------------------------------------------------------------------
def earth_radius(latitude: float) -> float:
    """Return the WGS84 geocentric radius in km at a latitude in degrees.

    R = sqrt((An² + Bn²) / (Ad² + Bd²)) with An = a² cos φ, Bn = b² sin φ,
    Ad = a cos φ, Bd = b sin φ.
    """
    lat_rad = math.radians(latitude)
    an = WGS84_A * WGS84_A * math.cos(lat_rad)
    bn = WGS84_B * WGS84_B * math.sin(lat_rad)
    ad = WGS84_A * math.cos(lat_rad)
    bd = WGS84_B * math.sin(lat_rad)
    return math.sqrt((an * an + bn * bn) / (ad * ad + bd * bd)) / 1000.0


# ---------------------------------------------------------------------------
# Forward Geodesic
# ---------------------------------------------------------------------------
def get_point_at_distance(
    center: Coordinate, distance_km: float, bearing_deg: float
) -> Coordinate:
    """Project a point along a bearing using a spherical earth.

    The sphere radius is earth_radius(center.lat). The formula is applied to
    the stored longitude as-is, so with west-positive longitudes a bearing of
    90 degrees moves the longitude value upward (westward).

    Args:
        center: Starting coordinate
        distance_km: Distance to travel in km
        bearing_deg: Bearing in degrees clockwise from north

    Returns:
        The projected coordinate; ``center`` itself when distance is zero.
    """
    if distance_km == 0:
        return center

    lat1 = math.radians(center.lat)
    lon1 = math.radians(center.lon)
    bearing = math.radians(bearing_deg)
    d_r = distance_km / earth_radius(center.lat)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(d_r)
        + math.cos(lat1) * math.sin(d_r) * math.cos(bearing)
    )
    lon2 = lon1 + math.atan2(
        math.sin(bearing) * math.sin(d_r) * math.cos(lat1),
        math.cos(d_r) - math.sin(lat1) * math.sin(lat2),
    )
    return Coordinate(lat=math.degrees(lat2), lon=math.degrees(lon2))


# ---------------------------------------------------------------------------
# Circular Bounding Box
# ---------------------------------------------------------------------------
def get_circular_bounding_box(center: Coordinate, radius_km: float) -> BoundingBox:
    """Return the rectangle enclosing a circle of ``radius_km`` around ``center``.

    The north-south half extent is radius / R(lat); the east-west half extent
    is radius / (R(lat) cos(lat)) and grows toward the poles. Latitudes are
    clamped to [-90, 90].

    Returns:
        BoundingBox with lower_right = (min lat, min lon) and
        upper_left = (max lat, max lon).
    """
    lat_rad = math.radians(center.lat)
    lon_rad = math.radians(center.lon)

    e_rad = earth_radius(center.lat)
    p_rad = e_rad * math.cos(lat_rad)

    lat_min = lat_rad - radius_km / e_rad
    lat_max = lat_rad + radius_km / e_rad
    lon_min = lon_rad - radius_km / p_rad
    lon_max = lon_rad + radius_km / p_rad

    return BoundingBox(
        lower_right=Coordinate(
            lat=max(-90.0, math.degrees(lat_min)), lon=math.degrees(lon_min)
        ),
        upper_left=Coordinate(
            lat=min(90.0, math.degrees(lat_max)), lon=math.degrees(lon_max)
        ),
    )


# ---------------------------------------------------------------------------
# Geodesic Distance
# ---------------------------------------------------------------------------
def geodesic_distance(start: Coordinate, end: Coordinate) -> float:
    """Calculate geodesic distance between two points in meters.

    Uses the WGS84 ellipsoid. Longitudes are negated to the east-positive
    convention pyproj expects.
    """
    _, _, distance = _geod.inv(-start.lon, start.lat, -end.lon, end.lat)
    return float(abs(distance))


# ---------------------------------------------------------------------------
# Longitude Wraparound
# ---------------------------------------------------------------------------
def lon_diff(lon1: float, lon2: float) -> float:
    """Return lon1 - lon2 normalized to the range (-180, 180)."""
    diff = lon1 - lon2
    if diff <= -180.0:
        diff += 360.0
    if diff >= 180.0:
        diff -= 360.0
    return diff


def wrap_max(candidate: float, current: float | None) -> float:
    """Westernmost of two west longitudes, honoring the 0/360 seam."""
    if current is None:
        return candidate
    if abs(candidate - current) < WRAP_THRESHOLD_DEG:
        return max(candidate, current)
    return min(candidate, current)


def wrap_min(candidate: float, current: float | None) -> float:
    """Easternmost of two west longitudes, honoring the 0/360 seam."""
    if current is None:
        return candidate
    if abs(candidate - current) < WRAP_THRESHOLD_DEG:
        return min(candidate, current)
    return max(candidate, current)


# ---------------------------------------------------------------------------
# Quadrangle Enumeration
# ---------------------------------------------------------------------------
def covering_quadrangles(region: BoundingBox) -> list[QuadrangleId]:
    """List the 1x1 degree quadrangles covering a region.

    Bounds are widened to whole degrees with floor/ceil. Longitude is the
    outer loop and latitude the inner one.

    Raises:
        QueryError: If the region spans zero quadrangles on either axis
    """
    min_lat = math.floor(region.min_lat)
    max_lat = math.ceil(region.max_lat)
    min_lon = math.floor(region.min_lon)
    max_lon = math.ceil(region.max_lon)

    tiles_lat = max_lat - min_lat
    tiles_lon = max_lon - min_lon
    if tiles_lat <= 0 or tiles_lon <= 0:
        raise QueryError(region, tiles_lat, tiles_lon)

    quadrangles: list[QuadrangleId] = []
    for x in range(tiles_lon):
        for y in range(tiles_lat):
            lat = min_lat + y
            lon = min_lon + x
            quadrangles.append(
                QuadrangleId(min_lat=lat, max_lat=lat + 1, min_lon=lon, max_lon=lon + 1)
            )
    return quadrangles
