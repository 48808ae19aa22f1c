"""Shared helpers for test conftest files and test modules."""

from __future__ import annotations

import numpy as np

from domain.terrain.value_objects import ElevationPage, QuadrangleId


def make_page(quadrangle: QuadrangleId, ippd: int, fill: int = 0) -> ElevationPage:
    """Square page over a quadrangle's integer bounds filled with ``fill``."""
    return ElevationPage.from_samples(
        np.full((ippd, ippd), fill, dtype=np.int16),
        min_north=float(quadrangle.min_lat),
        max_north=float(quadrangle.max_lat),
        min_west=float(quadrangle.min_lon),
        max_west=float(quadrangle.max_lon),
        ppd_north=float(ippd),
        ppd_west=float(ippd),
    )
