"""ESRI ASCII-grid adapter for MODIS land-cover clutter files.

Only the standard 2880 x 3840 layout is supported; its cellsize is fixed at
0.004167 degrees regardless of what the header states.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from domain.terrain.augmentation import ClutterGrid, apply_clutter
from domain.terrain.errors import FormatError, UnsupportedResolutionError
from domain.terrain.store import TerrainStore
from domain.terrain.value_objects import BoundingBox, Coordinate

logger = logging.getLogger(__name__)

# (ncols, nrows) -> cellsize in degrees
SUPPORTED_GRIDS: dict[tuple[int, int], float] = {(2880, 3840): 0.004167}

_HEADER_KEYS = ("ncols", "nrows", "xllcorner", "yllcorner", "cellsize", "nodata_value")


def _parse_header(lines: list[str], label: str) -> tuple[dict[str, float], int]:
    header: dict[str, float] = {}
    index = 0
    for index, line in enumerate(lines):
        parts = line.split()
        if len(parts) != 2 or parts[0].lower() not in _HEADER_KEYS:
            break
        try:
            header[parts[0].lower()] = float(parts[1])
        except ValueError as e:
            raise FormatError(f"{label}: bad header line {line.strip()!r}") from e
    else:
        index = len(lines)

    missing = [k for k in ("ncols", "nrows", "xllcorner", "yllcorner") if k not in header]
    if missing:
        raise FormatError(f"{label}: header lacks {', '.join(missing)}")
    return header, index


def read_clutter_grid(file_path: Path | str) -> ClutterGrid:
    """Read a clutter file into a ClutterGrid.

    Raises:
        FileNotFoundError: If the file does not exist
        UnsupportedResolutionError: If the grid is not a supported layout
        FormatError: Malformed header or body
    """
    path = Path(file_path)
    with open(path, "r", encoding="ascii", errors="replace") as fh:
        lines = fh.readlines()

    header, body_start = _parse_header(lines, path.name)
    ncols, nrows = int(header["ncols"]), int(header["nrows"])
    cellsize = SUPPORTED_GRIDS.get((ncols, nrows))
    if cellsize is None:
        raise UnsupportedResolutionError(
            f"Unsupported clutter resolution {ncols} x {nrows} in {path.name}"
        )

    logger.debug("Loading clutter file %s %d x %d...", path.name, ncols, nrows)
    try:
        classes = np.loadtxt(lines[body_start:], dtype=np.int32, ndmin=2)
    except ValueError as e:
        raise FormatError(f"{path.name}: bad clutter body: {e}") from e
    if classes.shape != (nrows, ncols):
        raise FormatError(
            f"{path.name}: expected {nrows} x {ncols} classes, got "
            f"{classes.shape[0]} x {classes.shape[1]}"
        )

    return ClutterGrid(
        classes=classes,
        xll=header["xllcorner"],
        yll=header["yllcorner"],
        cellsize=cellsize,
    )


def load_clutter(
    store: TerrainStore,
    file_path: Path | str,
    bounds: BoundingBox,
    transmitter: Coordinate,
) -> int:
    """Read a clutter file and raise the store by canopy heights.

    Returns:
        Number of land-cover cells applied.
    """
    grid = read_clutter_grid(file_path)
    applied = apply_clutter(store, grid, bounds, transmitter)
    logger.info("Clutter %s: %d cells applied", Path(file_path).name, applied)
    return applied
