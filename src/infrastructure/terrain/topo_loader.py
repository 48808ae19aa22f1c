"""Terrain acquisition entry points.

load_topo_data() fills a store with every quadrangle covering a region;
load_lidar() replaces the store's contents with a LIDAR mosaic.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from domain.terrain.repositories import LidarTileRepository, QuadrangleRepository
from domain.terrain.services import covering_quadrangles
from domain.terrain.store import TerrainStore
from domain.terrain.value_objects import BoundingBox, ElevationPage, LoadOutcome

from .lidar_mosaic import load_mosaic

logger = logging.getLogger(__name__)

# Files stored at 3600 samples per degree carry this suffix.
HD_SUFFIX = "-hd"
HD_IPPD = 3600

_FILE_LIST_RE = re.compile(r"[ ,]+")


def quadrangle_names(region: BoundingBox, ippd: int) -> list[str]:
    """Names of the quadrangles covering a region, longitude-major.

    Raises:
        QueryError: If the region spans zero quadrangles on either axis
    """
    suffix = HD_SUFFIX if ippd == HD_IPPD else ""
    return [f"{q.basename()}{suffix}" for q in covering_quadrangles(region)]


def load_topo_data(
    region: BoundingBox, loader: QuadrangleRepository
) -> dict[str, LoadOutcome]:
    """Load every quadrangle covering ``region`` into the loader's store.

    File names follow the store's working resolution. The first failing
    quadrangle aborts the call; its error propagates.

    Returns:
        Outcome per quadrangle name, in request order.
    """
    outcomes: dict[str, LoadOutcome] = {}
    for name in quadrangle_names(region, loader.store.ippd):
        outcomes[name] = loader.load_sdf(name)

    sea_level = sum(1 for o in outcomes.values() if o is LoadOutcome.SEA_LEVEL)
    logger.info(
        "Topo load: %d quadrangles requested, %d sea-level substitutions",
        len(outcomes),
        sea_level,
    )
    return outcomes


def split_file_list(paths: str | list[str] | list[Path]) -> list[str]:
    """Accept a space/comma separated string or a list of paths."""
    if isinstance(paths, str):
        return [p for p in _FILE_LIST_RE.split(paths) if p]
    return [str(p) for p in paths]


def load_lidar(
    store: TerrainStore,
    paths: str | list[str] | list[Path],
    adapter: LidarTileRepository,
    resample: float = 0,
) -> ElevationPage:
    """Load LIDAR tiles and install their mosaic as the store's only page.

    Raises:
        ValueError: If no file names are given
        FileNotFoundError, FormatError: From the tile adapter
        DimensionFaultError: If the composite is too large
    """
    files = split_file_list(paths)
    if not files:
        raise ValueError("No LIDAR tiles given")

    tiles = []
    for index, filename in enumerate(files):
        tile = adapter.load_tile(filename)
        logger.debug(
            "Loaded LIDAR tile %s (%d of %d) with width %d",
            Path(filename).name,
            index + 1,
            len(files),
            tile.width,
        )
        tiles.append(tile)

    return load_mosaic(store, tiles, resample)
