"""LIDAR mosaic builder.

Stitches independently sourced LIDAR tiles into one composite elevation page
and installs it as the sole resident page of a TerrainStore.

Pipeline:
1) Target resolution: finest native resolution, optionally coarsened by the
   caller's resample factor
2) Rescale mismatched tiles (nearest neighbour) unless the first tile is a
   whole-degree 3600-pixel tile
3) Union bounds with the wrap-aware west comparison
4) Aspect correction: pad a very tall or very wide layout with one blank tile
5) Composite size from per-tile pixel offsets, bounded by MAX_DIMENSION
6) Row placement through numpy slices; rows falling outside are skipped
7) Rotate 180 degrees into page orientation and fill single-cell holes
"""

from __future__ import annotations

import logging

import numpy as np
from affine import Affine
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.warp import reproject

from domain.terrain.errors import DimensionFaultError
from domain.terrain.services import wrap_max, wrap_min
from domain.terrain.store import TerrainStore
from domain.terrain.value_objects import ElevationPage, LidarTile

logger = logging.getLogger(__name__)

_WGS84 = CRS.from_epsg(4326)

# Either composite axis above this many pixels is rejected.
MAX_DIMENSION = 39000
# Installed mosaic pages may be at most this wide (8 whole-degree 3600 tiles).
MAX_PAGE_WIDTH = 3600 * 8
# Layouts are squared up only at resolutions finer than this (meters).
ASPECT_FIX_MAX_RESOLUTION = 28.0
ASPECT_FIX_RATIO = 1.5
# First tiles this wide are whole-degree bulk tiles and are never rescaled.
BULK_TILE_WIDTH = 3600


class MosaicComposite(BaseModel):
    """Natural-order composite: row 0 is north, column 0 is west."""

    data: NDArray[np.int16]
    max_north: float
    min_north: float
    max_west: float
    min_west: float
    resolution: float
    skipped_rows: int = 0

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


def target_resolution(tiles: list[LidarTile], resample: float = 0) -> float:
    """Resolution (meters) every tile is brought to before compositing."""
    smallest = min(tile.resolution for tile in tiles)
    desired = resample if resample != 0 and smallest < resample else smallest
    if resample > 1:
        desired = smallest * resample
    return desired


def rescale_tile(tile: LidarTile, resolution: float) -> LidarTile:
    """Resample a tile to ``resolution`` meters with nearest neighbour.

    Bounds are unchanged, so pixel density scales with the new size. Both
    grids share a local origin at longitude 0 so tiles near the 0/360 seam
    resample the same way as any other.
    """
    factor = tile.resolution / resolution
    height = max(1, int(round(tile.height * factor)))
    width = max(1, int(round(tile.width * factor)))

    origin = Affine.translation(0.0, tile.max_north)
    src_transform = origin * Affine.scale(1.0 / tile.ppdx, -1.0 / tile.ppdy)
    dst_transform = origin * Affine.scale(
        tile.west_span / width, -(tile.max_north - tile.min_north) / height
    )
    dst = np.zeros((height, width), dtype=np.int16)
    reproject(
        source=tile.data,
        destination=dst,
        src_transform=src_transform,
        src_crs=_WGS84,
        dst_transform=dst_transform,
        dst_crs=_WGS84,
        resampling=Resampling.nearest,
    )
    logger.debug(
        "Rescaled %s from %.3f m to %.3f m (%dx%d -> %dx%d)",
        tile.name or "tile",
        tile.resolution,
        resolution,
        tile.width,
        tile.height,
        width,
        height,
    )
    return tile.model_copy(
        update={
            "data": dst,
            "cellsize": tile.cellsize / factor,
            "resolution": resolution,
        }
    )


def _west_offset(max_west: float, tile_max_west: float) -> float:
    offset = max_west - tile_max_west
    return offset if offset >= 0 else offset + 360.0


def _pixel_offsets(
    tile: LidarTile, max_north: float, max_west: float
) -> tuple[int, int]:
    north = int(round((max_north - tile.max_north) * tile.ppdy))
    west = int(round(_west_offset(max_west, tile.max_west) * tile.ppdx))
    return north, west


def _blank_tile(
    template: LidarTile, *, max_north: float, min_north: float, max_west: float,
    min_west: float,
) -> LidarTile:
    span_west = max_west - min_west if max_west >= min_west else max_west - min_west + 360.0
    width = max(1, int(round(span_west * template.ppdx)))
    height = max(1, int(round((max_north - min_north) * template.ppdy)))
    return LidarTile(
        data=np.zeros((height, width), dtype=np.int16),
        cellsize=template.cellsize,
        resolution=template.resolution,
        max_north=max_north,
        min_north=min_north,
        max_west=max_west,
        min_west=min_west,
        min_el=0,
        max_el=0,
        name="blank",
    )


def compose_mosaic(tiles: list[LidarTile], resample: float = 0) -> MosaicComposite:
    """Composite tiles into one natural-order grid.

    Raises:
        ValueError: If no tiles are given
        DimensionFaultError: If either composite axis exceeds MAX_DIMENSION
    """
    if not tiles:
        raise ValueError("At least one LIDAR tile is required")

    resolution = target_resolution(tiles, resample)
    if tiles[0].width != BULK_TILE_WIDTH:
        tiles = [
            tile if tile.resolution == resolution else rescale_tile(tile, resolution)
            for tile in tiles
        ]

    max_north = max(tile.max_north for tile in tiles)
    min_north = min(tile.min_north for tile in tiles)
    max_west = tiles[0].max_west
    min_west = tiles[0].min_west
    for tile in tiles[1:]:
        max_west = wrap_max(tile.max_west, max_west)
        min_west = wrap_min(tile.min_west, min_west)
    if min_west >= 360.0:
        min_west -= 360.0

    total_width = _west_offset(max_west, min_west)
    total_height = max_north - min_north
    logger.debug(
        "Mosaic union: %.6fN..%.6fN %.6fW..%.6fW (%.6f x %.6f deg)",
        min_north,
        max_north,
        min_west,
        max_west,
        total_width,
        total_height,
    )

    if len(tiles) >= 2 and resolution < ASPECT_FIX_MAX_RESOLUTION:
        if total_height > total_width * ASPECT_FIX_RATIO:
            deficit = total_height - total_width
            blank = _blank_tile(
                tiles[-1],
                max_north=max_north,
                min_north=min_north,
                max_west=max_west + deficit,
                min_west=max_west,
            )
            max_west += deficit
            tiles = [*tiles, blank]
            logger.debug("Squared tall layout with %.4f deg blank to the west", deficit)
        elif total_width > total_height * ASPECT_FIX_RATIO:
            deficit = total_width - total_height
            blank = _blank_tile(
                tiles[-1],
                max_north=max_north + deficit,
                min_north=max_north,
                max_west=max_west,
                min_west=min_west,
            )
            max_north += deficit
            tiles = [*tiles, blank]
            logger.debug("Squared wide layout with %.4f deg blank to the north", deficit)

    width = 0
    height = 0
    offsets: list[tuple[int, int]] = []
    for tile in tiles:
        north_px, west_px = _pixel_offsets(tile, max_north, max_west)
        offsets.append((north_px, west_px))
        width = max(width, west_px + tile.width)
        height = max(height, north_px + tile.height)
        if width > MAX_DIMENSION or height > MAX_DIMENSION:
            raise DimensionFaultError(width, height, MAX_DIMENSION)

    data = np.zeros((height, width), dtype=np.int16)
    skipped = 0
    for tile, (north_px, west_px) in zip(tiles, offsets):
        if west_px < 0 or north_px < 0 or west_px + tile.width > width:
            fitting = 0
        else:
            fitting = max(0, min(tile.height, height - north_px))
        if fitting:
            data[north_px : north_px + fitting, west_px : west_px + tile.width] = (
                tile.data[:fitting]
            )
        if fitting < tile.height:
            skipped += tile.height - fitting
            logger.warning(
                "Skipped %d rows of %s outside the %dx%d composite",
                tile.height - fitting,
                tile.name or "tile",
                width,
                height,
            )

    return MosaicComposite(
        data=data,
        max_north=max_north,
        min_north=min_north,
        max_west=max_west,
        min_west=min_west,
        resolution=resolution,
        skipped_rows=skipped,
    )


def gap_fill(data: NDArray[np.int16]) -> NDArray[np.int16]:
    """Fill interior cells <= 0 with the mean of their positive diagonal neighbours.

    Neighbours are read from the unfilled grid. Cells with no positive
    diagonal neighbour, and border cells, are returned unchanged.
    """
    filled = data.copy()
    if data.shape[0] < 3 or data.shape[1] < 3:
        return filled

    src = data.astype(np.int32)
    diagonals = (src[:-2, :-2], src[2:, 2:], src[:-2, 2:], src[2:, :-2])
    total = sum(np.where(d > 0, d, 0) for d in diagonals)
    count = sum((d > 0).astype(np.int32) for d in diagonals)

    interior = src[1:-1, 1:-1]
    mean = np.zeros_like(total)
    np.floor_divide(total, count, out=mean, where=count > 0)
    holes = (interior <= 0) & (count > 0)
    filled[1:-1, 1:-1] = np.where(holes, mean, interior).astype(np.int16)
    return filled


def build_mosaic_page(composite: MosaicComposite) -> ElevationPage:
    """Rotate a composite into page orientation and fill holes.

    Raises:
        DimensionFaultError: If the composite is wider than MAX_PAGE_WIDTH
    """
    if composite.width > MAX_PAGE_WIDTH:
        raise DimensionFaultError(composite.width, composite.height, MAX_PAGE_WIDTH)

    rotated = np.ascontiguousarray(composite.data[::-1, ::-1])
    data = gap_fill(rotated)
    west_span = _west_offset(composite.max_west, composite.min_west)
    return ElevationPage.from_samples(
        data,
        min_north=composite.min_north,
        max_north=composite.max_north,
        min_west=composite.min_west,
        max_west=composite.max_west,
        ppd_north=composite.height / (composite.max_north - composite.min_north),
        ppd_west=composite.width / west_span if west_span > 0 else float(composite.width),
    )


def load_mosaic(
    store: TerrainStore, tiles: list[LidarTile], resample: float = 0
) -> ElevationPage:
    """Build the composite page and make it the store's only page."""
    composite = compose_mosaic(tiles, resample)
    page = build_mosaic_page(composite)
    store.replace_with_mosaic(page)
    logger.info(
        "LIDAR mosaic loaded: %d tiles, %dx%d at %.3f m, ippd %d",
        len(tiles),
        page.cols,
        page.rows,
        composite.resolution,
        store.ippd,
    )
    return page
