"""Terrain Bounded Context - Clutter and User-Defined Terrain.

Both augmentations raise the loaded elevation grid through the single
TerrainStore.add_elevation mutator. Parsing of files lives in the
infrastructure adapters; this module holds the rules.
"""

from __future__ import annotations

import logging
import re

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, model_validator

from domain.terrain.errors import FormatError
from domain.terrain.store import TerrainStore
from domain.terrain.value_objects import BoundingBox, Coordinate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
METERS_PER_FOOT = 0.3048

# Nominal canopy heights (m) per MODIS land-cover class, from ITU-R P.452-11.
# Classes not listed (water, grassland, wetland, snow, barren...) add nothing.
CANOPY_HEIGHTS: dict[int, float] = {
    1: 20.0,  # evergreen needleleaf
    2: 20.0,  # evergreen broadleaf
    13: 20.0,  # urban
    3: 15.0,  # deciduous needleleaf
    4: 15.0,  # deciduous broadleaf
    5: 15.0,  # mixed forest
    6: 4.0,  # closed shrubland
    8: 4.0,  # woody savanna
    7: 2.0,  # open shrubland
    9: 2.0,  # savanna
    10: 2.0,  # grassland
    12: 2.0,  # cropland
    14: 2.0,  # cropland / natural mosaic
}

NEAR_FIELD_CELLS = 3  # exclusion half-width around the transmitter, in cells
CLUTTER_MODE = 2  # 5x5 cell footprint per land-cover cell
UDT_MODE = 1  # single cell per user-defined point


def canopy_height(code: int) -> float:
    """Canopy height in meters for a land-cover class (0.0 when none)."""
    return CANOPY_HEIGHTS.get(int(code), 0.0)


# ---------------------------------------------------------------------------
# Clutter
# ---------------------------------------------------------------------------
class ClutterGrid(BaseModel):
    """Land-cover classes on a regular grid (Value Object).

    Row 0 is the northernmost row. ``xll`` is the east-positive longitude of
    the lower-left corner, as written in ASCII-grid headers.
    """

    classes: NDArray[np.int32]
    xll: float
    yll: float
    cellsize: float

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_grid(self) -> "ClutterGrid":
        if self.classes.ndim != 2:
            raise ValueError(f"Classes must be 2D, got {self.classes.ndim}D")
        if self.cellsize <= 0:
            raise ValueError(f"Cellsize must be positive: {self.cellsize}")
        return self


def _class_heights(classes: NDArray[np.int32]) -> NDArray[np.float64]:
    lookup = np.zeros(max(CANOPY_HEIGHTS) + 1, dtype=np.float64)
    for code, height in CANOPY_HEIGHTS.items():
        lookup[code] = height
    in_table = (classes >= 0) & (classes < lookup.size)
    return np.where(in_table, lookup[np.clip(classes, 0, lookup.size - 1)], 0.0)


def apply_clutter(
    store: TerrainStore,
    grid: ClutterGrid,
    bounds: BoundingBox,
    transmitter: Coordinate,
) -> int:
    """Boost elevations by canopy height across a bounding box.

    A cell contributes when its class height is positive, it lies strictly
    inside ``bounds`` and it is outside the near-field square of
    NEAR_FIELD_CELLS cellsizes around the transmitter.

    Returns:
        Number of cells that raised a resident page.
    """
    nrows, ncols = grid.classes.shape
    near_field = grid.cellsize * NEAR_FIELD_CELLS

    # First row sits nrows cells above the lower-left corner.
    lats = grid.yll + (nrows - np.arange(nrows)) * grid.cellsize
    east = grid.xll + np.arange(ncols) * grid.cellsize
    lons = np.where(east > 0, 360.0 - east, -east)

    heights = _class_heights(grid.classes)

    lat_in = (lats > bounds.min_lat) & (lats < bounds.max_lat)
    lon_in = (lons > bounds.min_lon) & (lons < bounds.max_lon)
    lat_far = np.abs(lats - transmitter.lat) > near_field
    lon_far = np.abs(lons - transmitter.lon) > near_field

    inside = lat_in[:, None] & lon_in[None, :]
    outside_near_field = lat_far[:, None] | lon_far[None, :]
    selected = (heights > 0) & inside & outside_near_field

    applied = 0
    for row, col in zip(*np.nonzero(selected)):
        if store.add_elevation(
            float(lats[row]), float(lons[col]), float(heights[row, col]), CLUTTER_MODE
        ):
            applied += 1

    logger.debug("Clutter raised %d of %d candidate cells", applied, int(selected.sum()))
    return applied


# ---------------------------------------------------------------------------
# User-Defined Terrain
# ---------------------------------------------------------------------------
class UdtRecord(BaseModel):
    """One user-defined terrain feature, height already in meters (Value Object)."""

    lat: float
    lon: float
    height_m: float

    model_config = ConfigDict(frozen=True)


_SPACES_RE = re.compile(r"\s+")


def parse_bearing(text: str) -> float:
    """Parse decimal degrees ("40.139722") or "deg min sec" ("40 08 23").

    Any sign on a component makes the whole value negative. Values beyond
    +/-360 degrees, and inputs in any other shape, yield 0.0.
    """
    clean = _SPACES_RE.sub(" ", text.strip())
    parts = clean.split(" ") if clean else []

    bearing = 0.0
    try:
        if len(parts) == 1:
            bearing = float(parts[0])
        elif len(parts) == 3:
            degrees, minutes, seconds = int(parts[0]), int(parts[1]), float(parts[2])
            bearing = abs(degrees) + abs(minutes / 60.0) + abs(seconds / 3600.0)
            if degrees < 0 or minutes < 0 or seconds < 0:
                bearing = -bearing
    except ValueError as e:
        raise FormatError(f"Unparseable bearing: {text!r}") from e

    if bearing > 360.0 or bearing < -360.0:
        bearing = 0.0
    return bearing


def parse_udt_record(line: str) -> UdtRecord | None:
    """Parse ``lat, lon, height[M]``; ``;`` starts a comment.

    Heights are feet unless suffixed with M/m, and are rounded to whole
    meters. Latitude and longitude are taken as absolute values.

    Returns:
        None for blank or comment-only lines.

    Raises:
        FormatError: If the record does not have three fields or a field
            is not numeric
    """
    content = line.split(";", 1)[0].strip()
    if not content:
        return None

    fields = content.split(",")
    if len(fields) < 3:
        raise FormatError(f"UDT record needs lat, lon, height: {line.strip()!r}")

    lat = abs(parse_bearing(fields[0]))
    lon = abs(parse_bearing(fields[1]))

    raw_height = fields[2].strip()
    in_meters = "m" in raw_height.lower()
    numeric = re.split(r"[Mm]", raw_height, maxsplit=1)[0].strip()
    try:
        value = float(numeric)
    except ValueError as e:
        raise FormatError(f"Unparseable UDT height: {raw_height!r}") from e

    height = float(np.rint(value if in_meters else METERS_PER_FOOT * value))
    return UdtRecord(lat=lat, lon=lon, height_m=height)


def discretize_udt(records: list[UdtRecord], ippd: int) -> dict[tuple[int, int], float]:
    """Snap records to the run's pixel grid, keeping the tallest per pixel.

    Records with a non-positive height are dropped.
    """
    pixels: dict[tuple[int, int], float] = {}
    for record in records:
        if record.height_m <= 0:
            continue
        key = (int(np.rint(record.lat * ippd)), int(np.rint(record.lon * ippd)))
        if record.height_m > pixels.get(key, 0.0):
            pixels[key] = record.height_m
    return pixels


def apply_udt(store: TerrainStore, records: list[UdtRecord]) -> int:
    """Apply user-defined terrain points to the store.

    Returns:
        Number of distinct pixels that raised a resident page.
    """
    applied = 0
    for (xpix, ypix), height in discretize_udt(records, store.ippd).items():
        lat, lon = xpix / store.ippd, ypix / store.ippd
        logger.debug("Adding UDT point: %.6f, %.6f, %.1f", lat, lon, height)
        if store.add_elevation(lat, lon, height, UDT_MODE):
            applied += 1
    return applied
