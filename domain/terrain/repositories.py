"""Domain Port(s) for Terrain I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .store import TerrainStore
from .value_objects import LidarTile, LoadOutcome


class LidarTileRepository(Protocol):
    """Port for obtaining LIDAR tiles from external sources.

    Implementations live in infrastructure (e.g., GeoTIFF adapter).
    """

    def load_tile(self, file_path: Path | str) -> LidarTile:
        """Load one tile with west-positive bounds and int16 elevations."""
        ...


class QuadrangleRepository(Protocol):
    """Port for populating a terrain store with one quadrangle.

    The store's ``ippd`` decides which quadrangle files are requested.
    """

    store: TerrainStore

    def load_sdf(self, name: str) -> LoadOutcome:
        """Load a quadrangle by name, falling back to sea level when absent."""
        ...
