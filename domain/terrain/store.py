"""Terrain Bounded Context - Terrain Store.

Page table plus the global extent accumulators every loader reads and
mutates. One store is built per run and passed explicitly to each loader.

Lifecycle:
1) Loaders commit pages (quadrangles or a single LIDAR mosaic)
2) Augmentation raises elevations through add_elevation
3) freeze() switches the store to read-only for the propagation layer
"""

from __future__ import annotations

import logging
import math

import numpy as np

from domain.terrain.errors import ResourceExhaustedError, StoreFrozenError
from domain.terrain.services import lon_diff, wrap_max, wrap_min
from domain.terrain.value_objects import ElevationPage, QuadrangleId

logger = logging.getLogger(__name__)

DEFAULT_IPPD = 1200
DEFAULT_MAX_PAGES = 64

_INT16_MIN = int(np.iinfo(np.int16).min)
_INT16_MAX = int(np.iinfo(np.int16).max)


class TerrainStore:
    """Registry of resident elevation pages and their combined extent.

    Invariants:
        TS-1: at most one resident page per QuadrangleId
        TS-2: len(pages) <= max_pages
        TS-3: extents reflect the union of every committed page
        TS-4: no mutation after freeze()
    """

    def __init__(
        self, ippd: int = DEFAULT_IPPD, max_pages: int = DEFAULT_MAX_PAGES
    ) -> None:
        if ippd <= 0:
            raise ValueError(f"ippd must be positive: {ippd}")
        if max_pages <= 0:
            raise ValueError(f"max_pages must be positive: {max_pages}")
        self.ippd = ippd
        self.max_pages = max_pages
        self._pages: dict[QuadrangleId, ElevationPage] = {}
        self._frozen = False
        self.min_north: float | None = None
        self.max_north: float | None = None
        self.min_west: float | None = None
        self.max_west: float | None = None
        self.min_elevation: int | None = None
        self.max_elevation: int | None = None

    # -----------------------------------------------------------------------
    # Page table
    # -----------------------------------------------------------------------
    @property
    def pages(self) -> list[ElevationPage]:
        return list(self._pages.values())

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._pages)

    def is_resident(self, quadrangle: QuadrangleId) -> bool:
        return quadrangle in self._pages

    def get_page(self, quadrangle: QuadrangleId) -> ElevationPage | None:
        return self._pages.get(quadrangle)

    def ensure_free_slot(self) -> None:
        """Raise ResourceExhaustedError when the page table is full."""
        if len(self._pages) >= self.max_pages:
            raise ResourceExhaustedError(
                f"No free page slot ({len(self._pages)}/{self.max_pages} in use)"
            )

    def commit(self, quadrangle: QuadrangleId, page: ElevationPage) -> None:
        """Register a fully loaded page and fold it into the global extents.

        Raises:
            StoreFrozenError: If the store is frozen
            ResourceExhaustedError: If no slot is free
            ValueError: If the quadrangle is already resident
        """
        self._check_mutable()
        if quadrangle in self._pages:
            raise ValueError(f"Quadrangle {quadrangle.basename()} already resident")
        self.ensure_free_slot()
        self._pages[quadrangle] = page
        self._update_extents(page)

    def replace_with_mosaic(self, page: ElevationPage) -> None:
        """Drop every page and install a single composite page.

        Paging switches to single-page mode: max_pages becomes 1 and ippd the
        larger composite dimension. Extents are reset to the mosaic's own.
        """
        self._check_mutable()
        if self._pages:
            logger.debug("Replacing %d resident pages with mosaic", len(self._pages))
        self._pages.clear()
        self.max_pages = 1
        self.ippd = max(page.rows, page.cols)
        self.min_north = self.max_north = None
        self.min_west = self.max_west = None
        self.min_elevation = self.max_elevation = None

        key = QuadrangleId(
            min_lat=math.floor(page.min_north),
            max_lat=math.ceil(page.max_north),
            min_lon=math.floor(page.min_west),
            max_lon=math.ceil(page.max_west),
        )
        self._pages[key] = page
        self._update_extents(page)

    def freeze(self) -> None:
        """Mark the store read-only; loaders and mutators fail afterwards."""
        self._frozen = True
        logger.debug(
            "Terrain store frozen: %d pages, elevation %s..%s",
            len(self._pages),
            self.min_elevation,
            self.max_elevation,
        )

    def _check_mutable(self) -> None:
        if self._frozen:
            raise StoreFrozenError("Terrain store is frozen")

    def _update_extents(self, page: ElevationPage) -> None:
        if self.min_elevation is None or page.min_el < self.min_elevation:
            self.min_elevation = page.min_el
        if self.max_elevation is None or page.max_el > self.max_elevation:
            self.max_elevation = page.max_el

        if self.max_north is None or page.max_north > self.max_north:
            self.max_north = page.max_north
        if self.min_north is None or page.min_north < self.min_north:
            self.min_north = page.min_north

        self.max_west = wrap_max(page.max_west, self.max_west)
        self.min_west = wrap_min(page.min_west, self.min_west)

    # -----------------------------------------------------------------------
    # Read interface
    # -----------------------------------------------------------------------
    def page_for(
        self, lat: float, lon: float
    ) -> tuple[ElevationPage, int, int] | None:
        """Locate the page and (row, col) cell nearest to a coordinate.

        Returns None when no resident page covers the point.
        """
        for page in self._pages.values():
            row = int(np.rint(page.ppd_north * (lat - page.min_north)))
            col = (page.cols - 1) - int(
                np.rint(page.ppd_west * lon_diff(page.max_west, lon))
            )
            if 0 <= row < page.rows and 0 <= col < page.cols:
                return page, row, col
        return None

    def elevation_at(self, lat: float, lon: float) -> int | None:
        """Elevation in meters at the nearest cell, or None outside the grid."""
        located = self.page_for(lat, lon)
        if located is None:
            return None
        page, row, col = located
        return int(page.data[row, col])

    # -----------------------------------------------------------------------
    # Mutator
    # -----------------------------------------------------------------------
    def add_elevation(self, lat: float, lon: float, height: float, mode: int = 1) -> bool:
        """Raise terrain by ``height`` meters at the cell nearest a coordinate.

        mode <= 1 touches the single nearest cell; mode > 1 touches the
        (2*mode+1) square around it, which suits area land cover.

        Returns:
            True if a resident page covered the point and was raised.
        """
        self._check_mutable()
        if height <= 0:
            return False

        located = self.page_for(lat, lon)
        if located is None:
            return False
        page, row, col = located

        size = mode if mode > 1 else 0
        r0, r1 = max(0, row - size), min(page.rows, row + size + 1)
        c0, c1 = max(0, col - size), min(page.cols, col + size + 1)

        block = page.data[r0:r1, c0:c1].astype(np.int32) + int(np.rint(height))
        page.data[r0:r1, c0:c1] = np.clip(block, _INT16_MIN, _INT16_MAX).astype(
            np.int16
        )

        raised_max = int(page.data[r0:r1, c0:c1].max())
        if raised_max > page.max_el:
            page.max_el = raised_max
        if self.max_elevation is None or raised_max > self.max_elevation:
            self.max_elevation = raised_max
        return True
