"""Terrain Bounded Context - Value Objects.

Data structures representing geographic concepts and elevation pages.
All validation occurs at construction time via Pydantic.

Longitude convention: every longitude in this package is WEST-POSITIVE
(degrees increasing westward, wrapping at 0/360). Callers holding standard
east-positive values must negate them before building a Coordinate.
"""

from __future__ import annotations

import math
import re
from enum import Enum

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.terrain.errors import FormatError

# Quadrangle names are parsed like sscanf("%d_%d_%d_%d"): trailing text such
# as "-hd" or a file extension is ignored.
_QUADRANGLE_RE = re.compile(r"\s*([+-]?\d+)_([+-]?\d+)_([+-]?\d+)_([+-]?\d+)")


class LoadOutcome(str, Enum):
    """How a quadrangle request was satisfied."""

    LOADED = "loaded"
    ALREADY_RESIDENT = "already_resident"
    SEA_LEVEL = "sea_level"


class Coordinate(BaseModel):
    """Latitude / west-positive longitude pair in decimal degrees (Value Object).

    Invariants:
        CO-1: latitude in [-90, 90]
        CO-2: longitude is finite (values outside [0, 360) are allowed near
              the wrap and are normalized by consumers)
    """

    lat: float = Field(ge=-90, le=90)
    lon: float

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_lon(self) -> "Coordinate":
        if not math.isfinite(self.lon):
            raise ValueError(f"Longitude must be finite: {self.lon}")
        return self


class BoundingBox(BaseModel):
    """Rectangle defined by its lower-right and upper-left corners (Value Object).

    With west-positive longitudes the lower-right corner holds the minimum
    latitude and minimum (easternmost) longitude. Ordering is not enforced
    here: degenerate query regions are reported by the topo loader.
    """

    lower_right: Coordinate
    upper_left: Coordinate

    model_config = ConfigDict(frozen=True)

    @property
    def min_lat(self) -> float:
        return self.lower_right.lat

    @property
    def max_lat(self) -> float:
        return self.upper_left.lat

    @property
    def min_lon(self) -> float:
        return self.lower_right.lon

    @property
    def max_lon(self) -> float:
        return self.upper_left.lon


class QuadrangleId(BaseModel):
    """Integer-degree identity of one quadrangle (Value Object).

    Used as the page-table key: two requests with equal bounds address the
    same page regardless of file suffix.
    """

    min_lat: int
    max_lat: int
    min_lon: int
    max_lon: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, name: str) -> "QuadrangleId":
        """Parse ``minlat_maxlat_minlon_maxlon`` from a quadrangle name.

        Raises:
            FormatError: If the name does not start with four integers
                separated by underscores
        """
        match = _QUADRANGLE_RE.match(name)
        if match is None:
            raise FormatError(f"Malformed quadrangle name: {name!r}")
        min_lat, max_lat, min_lon, max_lon = (int(g) for g in match.groups())
        return cls(min_lat=min_lat, max_lat=max_lat, min_lon=min_lon, max_lon=max_lon)

    def basename(self) -> str:
        return f"{self.min_lat}_{self.max_lat}_{self.min_lon}_{self.max_lon}"


class ElevationPage(BaseModel):
    """One resident elevation grid with its signal/mask grids (Entity).

    Rows grow northward from ``min_north``; columns grow westward so that the
    last column sits on ``max_west``. Standard quadrangle pages are square
    (ippd x ippd); a LIDAR mosaic page is height x width.

    Pages are filled once by a loader and afterwards only changed through
    TerrainStore.add_elevation, so the model is intentionally not frozen.
    """

    data: NDArray[np.int16]  # elevation samples in meters
    signal: NDArray[np.uint8]  # owned by the propagation layer
    mask: NDArray[np.uint8]  # owned by the propagation layer
    min_north: float
    max_north: float
    min_west: float
    max_west: float
    min_el: int
    max_el: int
    ppd_north: float  # rows per degree of latitude
    ppd_west: float  # columns per degree of longitude

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_page(self) -> "ElevationPage":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        if self.data.shape[0] == 0 or self.data.shape[1] == 0:
            raise ValueError(f"Data cannot be empty: {self.data.shape}")
        if self.data.dtype != np.int16:
            raise ValueError(f"Data must be int16, got {self.data.dtype}")
        if self.signal.shape != self.data.shape or self.mask.shape != self.data.shape:
            raise ValueError("Signal and mask grids must match the data shape")
        if self.ppd_north <= 0 or self.ppd_west <= 0:
            raise ValueError(
                f"Sampling density must be positive: {self.ppd_north}, {self.ppd_west}"
            )
        return self

    @classmethod
    def from_samples(
        cls,
        data: NDArray[np.int16],
        *,
        min_north: float,
        max_north: float,
        min_west: float,
        max_west: float,
        ppd_north: float,
        ppd_west: float,
    ) -> "ElevationPage":
        """Build a page with zeroed signal/mask grids and elevation stats from data."""
        return cls(
            data=data,
            signal=np.zeros(data.shape, dtype=np.uint8),
            mask=np.zeros(data.shape, dtype=np.uint8),
            min_north=min_north,
            max_north=max_north,
            min_west=min_west,
            max_west=max_west,
            min_el=int(data.min()),
            max_el=int(data.max()),
            ppd_north=ppd_north,
            ppd_west=ppd_west,
        )

    @classmethod
    def sea_level(cls, quadrangle: QuadrangleId, ippd: int) -> "ElevationPage":
        """Synthetic all-zero page covering a quadrangle's integer bounds."""
        return cls.from_samples(
            np.zeros((ippd, ippd), dtype=np.int16),
            min_north=float(quadrangle.min_lat),
            max_north=float(quadrangle.max_lat),
            min_west=float(quadrangle.min_lon),
            max_west=float(quadrangle.max_lon),
            ppd_north=float(ippd),
            ppd_west=float(ippd),
        )

    @property
    def rows(self) -> int:
        return int(self.data.shape[0])

    @property
    def cols(self) -> int:
        return int(self.data.shape[1])


class LidarTile(BaseModel):
    """One source LIDAR tile as delivered by the tile reader (Value Object).

    Pixel (0, 0) is the north-west corner (``max_north``, ``max_west``);
    columns grow eastward, rows grow southward.

    Invariants:
        LT-1: data is a non-empty 2D int16 array
        LT-2: max_north > min_north
        LT-3: west span (wrap-aware) > 0
        LT-4: cellsize > 0 and resolution > 0
    """

    data: NDArray[np.int16]
    cellsize: float  # degrees per pixel
    resolution: float  # meters per pixel
    max_north: float
    min_north: float
    max_west: float
    min_west: float
    min_el: int
    max_el: int
    name: str = ""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_tile(self) -> "LidarTile":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        if self.data.shape[0] == 0 or self.data.shape[1] == 0:
            raise ValueError(f"Data cannot be empty: {self.data.shape}")
        if self.data.dtype != np.int16:
            raise ValueError(f"Data must be int16, got {self.data.dtype}")
        if not (self.max_north > self.min_north):
            raise ValueError(
                f"Invalid north ordering: min={self.min_north} >= max={self.max_north}"
            )
        if self.west_span <= 0:
            raise ValueError(
                f"Invalid west span: min={self.min_west} max={self.max_west}"
            )
        if self.cellsize <= 0 or self.resolution <= 0:
            raise ValueError(
                f"Cellsize and resolution must be positive: "
                f"{self.cellsize}, {self.resolution}"
            )
        return self

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def west_span(self) -> float:
        """Degrees of longitude covered, accounting for the 0/360 wrap."""
        span = self.max_west - self.min_west
        return span if span >= 0 else span + 360.0

    @property
    def ppdx(self) -> float:
        """Pixels per degree of longitude."""
        return self.width / self.west_span

    @property
    def ppdy(self) -> float:
        """Pixels per degree of latitude."""
        return self.height / (self.max_north - self.min_north)
