"""Terrain Bounded Context - Error Hierarchy.

Custom exceptions for terrain acquisition.

Recoverable errors abort a single load and propagate to the caller.
Subclasses of FatalTerrainError mean the run cannot continue safely; the
command-line front end is expected to exit non-zero when it sees one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.terrain.value_objects import BoundingBox


class TerrainError(Exception):
    """Base error for terrain operations."""


class QuadrangleNotFoundError(TerrainError):
    """No backing file exists for a quadrangle in the requested format.

    Attributes:
        name: Quadrangle file name that was searched for
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Quadrangle file not found: {name}")


class FormatError(TerrainError):
    """Malformed name, header, or sample data."""


class UnsupportedResolutionError(FormatError):
    """Grid dimensions are not one of the supported layouts."""


class DecodeError(TerrainError):
    """Decompression library reported a failure (distinct from end of stream)."""


class ResourceExhaustedError(TerrainError):
    """No free page slot is available in the terrain store."""


class StoreFrozenError(TerrainError):
    """Terrain store was mutated after it was frozen for read-only use."""


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------
class FatalTerrainError(TerrainError):
    """Base for errors that must terminate the run."""


class DimensionFaultError(FatalTerrainError):
    """Composite grid exceeds the safe size ceiling.

    Attributes:
        width: Composite width in pixels
        height: Composite height in pixels
    """

    def __init__(self, width: int, height: int, limit: int) -> None:
        self.width = width
        self.height = height
        self.limit = limit
        super().__init__(
            f"Not processing a tile with these dimensions: {width} x {height} "
            f"(limit {limit})"
        )


class QueryError(FatalTerrainError):
    """Query region collapses to zero quadrangles on an axis.

    Attributes:
        region: The offending BoundingBox
    """

    def __init__(self, region: "BoundingBox", tiles_lat: int, tiles_lon: int) -> None:
        self.region = region
        self.tiles_lat = tiles_lat
        self.tiles_lon = tiles_lon
        super().__init__(
            f"Plot area gave {tiles_lat} x {tiles_lon} tiles which is invalid"
        )
