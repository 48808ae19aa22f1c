"""Writers for synthetic terrain input files.

Used by scripts/gen_fixtures.py and the test suite to produce quadrangle
(.sdf, .sdf.bz2, .sdf.gz), clutter and UDT files without real terrain data.
"""

from __future__ import annotations

import bz2
import gzip
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

# Extension per compression name
SDF_EXTENSIONS: dict[str, str] = {
    "none": ".sdf",
    "bz2": ".sdf.bz2",
    "gz": ".sdf.gz",
}


def sdf_bytes(
    samples: NDArray[np.integer],
    *,
    min_north: float,
    max_north: float,
    min_west: float,
    max_west: float,
) -> bytes:
    """Serialize a header and row-major samples, one value per line.

    Header order is max_west, min_north, min_west, max_north.
    """
    header = [f"{v:.6f}" for v in (max_west, min_north, min_west, max_north)]
    body = (str(int(v)) for v in np.asarray(samples).ravel())
    return ("\n".join([*header, *body]) + "\n").encode("ascii")


def write_sdf(
    directory: Path,
    name: str,
    samples: NDArray[np.integer],
    *,
    compression: str = "none",
    bounds: tuple[float, float, float, float] | None = None,
) -> Path:
    """Write a quadrangle file named after ``name`` in ``directory``.

    Args:
        directory: Output directory
        name: Quadrangle name such as "10_11_20_21" or "10_11_20_21-hd"
        samples: Samples in file order (the whole native grid)
        compression: "none", "bz2" or "gz"
        bounds: (min_north, max_north, min_west, max_west); parsed from
            ``name`` when omitted

    Returns:
        Path of the written file
    """
    if bounds is None:
        min_north, max_north, min_west, max_west = (
            float(v) for v in name.removesuffix("-hd").split("_")
        )
    else:
        min_north, max_north, min_west, max_west = bounds

    payload = sdf_bytes(
        samples,
        min_north=min_north,
        max_north=max_north,
        min_west=min_west,
        max_west=max_west,
    )
    path = Path(directory) / f"{name}{SDF_EXTENSIONS[compression]}"
    if compression == "bz2":
        path.write_bytes(bz2.compress(payload))
    elif compression == "gz":
        path.write_bytes(gzip.compress(payload))
    else:
        path.write_bytes(payload)
    return path


def write_clutter(
    path: Path,
    classes: NDArray[np.integer],
    *,
    xll: float,
    yll: float,
    cellsize: float = 0.004167,
) -> Path:
    """Write an ESRI ASCII grid of land-cover classes (row 0 is north)."""
    nrows, ncols = classes.shape
    lines = [
        f"ncols        {ncols}",
        f"nrows        {nrows}",
        f"xllcorner    {xll}",
        f"yllcorner    {yll}",
        f"cellsize     {cellsize}",
    ]
    lines.extend(" ".join(str(int(v)) for v in row) for row in classes)
    Path(path).write_text("\n".join(lines) + "\n", encoding="ascii")
    return Path(path)


def write_udt(path: Path, records: list[str]) -> Path:
    """Write UDT lines verbatim, one record per line."""
    Path(path).write_text("\n".join(records) + "\n", encoding="utf-8")
    return Path(path)
