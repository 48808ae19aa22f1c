"""Pytest configuration for terrain domain tests.

Domain tests build stores and pages directly with numpy arrays; no file I/O
and no rasterio.
"""

from __future__ import annotations

import pytest

from domain.terrain.store import TerrainStore
from domain.terrain.value_objects import QuadrangleId
from tests.conftest_utils import make_page


@pytest.fixture
def quad_10_20() -> QuadrangleId:
    return QuadrangleId.parse("10_11_20_21")


@pytest.fixture
def loaded_store(quad_10_20: QuadrangleId) -> TerrainStore:
    """One flat 100 m page over 10N..11N, 20W..21W at 4 samples per degree."""
    store = TerrainStore(ippd=4, max_pages=4)
    store.commit(quad_10_20, make_page(quad_10_20, 4, fill=100))
    return store
