#!/usr/bin/env python3
"""Generate synthetic terrain fixtures for the test suite.

Fixtures are minimal synthetic inputs - not real terrain data.

Usage:
    python scripts/gen_fixtures.py [output_dir]

Output:
    tests/fixtures/ by default

Dependencies:
    This script imports from shared/ (not tests/) to avoid circular
    dependencies between scripts and tests packages.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from affine import Affine
from numpy.typing import NDArray
from rasterio.crs import CRS

from shared.fixtures_expected import (
    EXPECTED_FIXTURE_COUNT,
    EXPECTED_FIXTURES,
    FIXTURE_NATIVE_IPPD,
)
from shared.sdf_writer import write_clutter, write_sdf, write_udt

# Output directory
FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"

# LIDAR tiles: two adjoining 0.01 x 0.01 degree tiles at 10 x 10 pixels,
# west tile spanning 74.02W..74.01W and east tile 74.01W..74.00W, 40.01N..40.02N.
LIDAR_SIZE = 10
LIDAR_SPAN = 0.01
LIDAR_NORTH = 40.02
LIDAR_WEST_EDGE = -74.02


# =============================================================================
# Helper: write_raster
# =============================================================================
def write_raster(
    path: Path,
    data: NDArray[Any],
    transform: Affine,
    crs: CRS | None = None,
    nodata: float | None = None,
) -> None:
    """Write a single-band GeoTIFF using rasterio."""
    height, width = data.shape
    kwargs: dict[str, Any] = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": 1,
        "dtype": str(data.dtype),
        "transform": transform,
    }
    if crs is not None:
        kwargs["crs"] = crs
    if nodata is not None:
        kwargs["nodata"] = nodata

    with rasterio.open(path, "w", **kwargs) as dst:
        dst.write(data, 1)


def quadrangle_samples(base: int) -> NDArray[np.int16]:
    """Gradient grid starting at ``base`` meters."""
    n = FIXTURE_NATIVE_IPPD
    return (base + np.arange(n * n, dtype=np.int16)).reshape(n, n)


# =============================================================================
# Quadrangles
# =============================================================================
def gen_quadrangles(out_dir: Path) -> None:
    write_sdf(out_dir, "40_41_73_74", quadrangle_samples(100))
    write_sdf(out_dir, "41_42_73_74", quadrangle_samples(200), compression="bz2")
    write_sdf(out_dir, "42_43_73_74", quadrangle_samples(300), compression="gz")
    print("  Created: 3 quadrangles (plain, bz2, gz)")


# =============================================================================
# LIDAR
# =============================================================================
def gen_lidar_tiles(out_dir: Path) -> None:
    """Two adjoining int16 EPSG:4326 tiles with distinct values."""
    pixel = LIDAR_SPAN / LIDAR_SIZE
    for index, name in enumerate(("lidar_west.tif", "lidar_east.tif")):
        west_edge = LIDAR_WEST_EDGE + index * LIDAR_SPAN
        transform = Affine.translation(west_edge, LIDAR_NORTH) * Affine.scale(
            pixel, -pixel
        )
        data = np.full((LIDAR_SIZE, LIDAR_SIZE), 50 + 50 * index, dtype=np.int16)
        write_raster(out_dir / name, data, transform, crs=CRS.from_epsg(4326))
    print("  Created: 2 LIDAR tiles (10x10, EPSG:4326, int16)")


# =============================================================================
# Augmentation inputs
# =============================================================================
def gen_clutter(out_dir: Path) -> None:
    classes = np.zeros((4, 6), dtype=np.int32)
    classes[1, 2] = 13  # urban
    classes[2, 4] = 5  # mixed forest
    write_clutter(out_dir / "clutter_small.asc", classes, xll=-73.5, yll=40.5, cellsize=0.1)
    print("  Created: clutter_small.asc (6x4)")


def gen_udt(out_dir: Path) -> None:
    write_udt(
        out_dir / "towers.udt",
        [
            "; lat, lon, height",
            "40.5, 73.5, 30M",
            "40 30 00, 73 30 00, 100",
        ],
    )
    print("  Created: towers.udt")


# =============================================================================
# Main
# =============================================================================
def generate_all(out_dir: Path) -> list[str]:
    """Write every fixture into ``out_dir`` and return the generated names."""
    out_dir.mkdir(parents=True, exist_ok=True)
    gen_quadrangles(out_dir)
    gen_lidar_tiles(out_dir)
    gen_clutter(out_dir)
    gen_udt(out_dir)
    return sorted(f.name for f in out_dir.iterdir() if f.is_file())


def main(argv: list[str] | None = None) -> int:
    """Generate all fixtures.

    Returns:
        0 on success, 1 on failure
    """
    args = sys.argv[1:] if argv is None else argv
    out_dir = Path(args[0]) if args else FIXTURES_DIR

    print("=" * 60)
    print("Generating terrain test fixtures")
    print("=" * 60)
    try:
        generated = generate_all(out_dir)
    except OSError as e:
        print(f"ERROR: Cannot write fixtures: {e}")
        return 1

    found_set = set(generated) & set(EXPECTED_FIXTURES)
    missing = set(EXPECTED_FIXTURES) - found_set
    if missing or len(found_set) != EXPECTED_FIXTURE_COUNT:
        print(f"ERROR: Missing fixtures: {sorted(missing)}")
        print("\nUpdate shared/fixtures_expected.py to match generated fixtures.")
        return 1

    print(f"\nDone! Generated {EXPECTED_FIXTURE_COUNT} fixtures in {out_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
