"""GeoTIFF adapter for LidarTileRepository.

Loads one LIDAR elevation tile with rasterio, normalizing to EPSG:4326 and
returning a domain LidarTile Value Object with west-positive bounds.

Lifecycle (to avoid resource leaks):
1) Validate the path (existence, extension, non-empty)
2) Open dataset with context manager inside rasterio.Env
3) Read metadata and validate preconditions (single band, CRS, transform)
4) Reproject to EPSG:4326 if needed using calculate_default_transform
5) Convert nodata -> 0 (sea level); round and cast to int16
6) Convert east-positive bounds to west-positive and derive resolution
7) Exit contexts to release GDAL handles
8) Return LidarTile
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from affine import Affine
from numpy.typing import NDArray
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.transform import array_bounds
from rasterio.warp import calculate_default_transform, reproject

from domain.terrain.errors import FormatError
from domain.terrain.services import WGS84_A
from domain.terrain.value_objects import LidarTile

logger = logging.getLogger(__name__)

# Target CRS for all output (constructed once for efficient comparison)
_TARGET_CRS = CRS.from_epsg(4326)

# Length of one degree along the equator, used to express cellsize in meters.
METERS_PER_DEGREE = math.pi * WGS84_A / 180.0

_INT16_MIN = float(np.iinfo(np.int16).min)
_INT16_MAX = float(np.iinfo(np.int16).max)


def _is_wgs84(crs: Any) -> bool:
    """Check if CRS is WGS84 (EPSG:4326 or equivalent).

    Uses rasterio CRS equality first, then falls back to string comparison
    for objects that only render as an authority code.
    """
    if crs is None:
        return False
    try:
        if crs == _TARGET_CRS:
            return True
    except (TypeError, AttributeError):
        pass
    return str(crs).upper() in ("EPSG:4326", "OGC:CRS84")


def to_west_positive(lon_east: float) -> float:
    """Convert an east-positive longitude to west-positive in [0, 360)."""
    return (-lon_east) % 360.0


def _to_int16(data: NDArray[np.floating]) -> NDArray[np.int16]:
    filled = np.nan_to_num(data, nan=0.0)
    return np.clip(np.rint(filled), _INT16_MIN, _INT16_MAX).astype(np.int16)


class GeoTiffLidarTileAdapter:
    """Infrastructure adapter for loading LIDAR tiles from GeoTIFF files."""

    def load_tile(self, file_path: Path | str) -> LidarTile:
        """Load one tile and return it as a west-positive LidarTile.

        Raises:
            FileNotFoundError: If the file does not exist
            FormatError: Unsupported extension, empty file, wrong band count,
                missing CRS, invalid transform, or a raster rasterio rejects
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(str(path))
        if path.suffix.lower() not in (".tif", ".tiff"):
            raise FormatError(f"Unsupported file extension: {path.suffix}")

        try:
            if path.stat().st_size == 0:
                raise FormatError("Empty file")
        except OSError as e:
            logger.error(
                "Failed to stat %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise

        try:
            with rasterio.Env():
                with rasterio.open(path) as src:
                    data, transform = self._read_wgs84(src, path.name)
        except PermissionError as e:
            raise PermissionError(path.name) from e
        except rasterio.errors.RasterioError as e:
            raise FormatError(f"Corrupted or invalid raster: {e}") from e

        height, width = data.shape
        west, south, east, north = array_bounds(height, width, transform)
        cellsize = abs(transform.a)

        try:
            tile = LidarTile(
                data=data,
                cellsize=cellsize,
                resolution=cellsize * METERS_PER_DEGREE,
                max_north=north,
                min_north=south,
                max_west=to_west_positive(west),
                min_west=to_west_positive(east),
                min_el=int(data.min()),
                max_el=int(data.max()),
                name=path.name,
            )
        except ValueError as e:
            raise FormatError(f"Invalid tile bounds in {path.name}: {e}") from e

        logger.debug(
            "LIDAR %s: loaded %dx%d tile, %.3f m/pixel",
            path.name,
            width,
            height,
            tile.resolution,
        )
        return tile

    def _read_wgs84(
        self, src: Any, label: str
    ) -> tuple[NDArray[np.int16], Affine]:
        if src.count != 1:
            raise FormatError(f"Expected 1 band, got {src.count}")
        if src.crs is None:
            raise FormatError("Raster has no CRS defined")

        transform: Affine = src.transform
        if not isinstance(transform, Affine):
            raise FormatError("Missing affine transform")
        if any(not math.isfinite(v) for v in tuple(transform)[:6]):
            raise FormatError("Invalid (NaN/Inf) transform values")
        if transform.a == 0 or transform.e == 0:
            raise FormatError("Invalid transform scale (zero)")

        if _is_wgs84(src.crs):
            raw = src.read(1, masked=True, out_dtype="float32")
            if hasattr(raw, "mask") and np.any(raw.mask):
                raw = np.where(raw.mask, np.float32(np.nan), raw.data)
            elif src.nodata is not None:
                raw = np.where(raw == src.nodata, np.float32(np.nan), raw)
            return _to_int16(np.asarray(raw)), transform

        sb = src.bounds
        dst_transform, dst_width, dst_height = calculate_default_transform(
            src.crs, _TARGET_CRS, src.width, src.height,
            sb.left, sb.bottom, sb.right, sb.top,
        )
        dst = np.full((dst_height, dst_width), np.nan, dtype=np.float32)
        reproject(
            source=rasterio.band(src, 1),
            destination=dst,
            src_transform=transform,
            src_crs=src.crs,
            dst_transform=dst_transform,
            dst_crs=_TARGET_CRS,
            resampling=Resampling.bilinear,
            src_nodata=src.nodata,
            dst_nodata=np.nan,
        )
        logger.info(
            "LIDAR %s: reprojected from %s to EPSG:4326", label, src.crs.to_string()
        )
        return _to_int16(dst), dst_transform
