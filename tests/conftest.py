"""Root pytest configuration for all tests.

Provides the generated fixture directory shared by the terrain (pure domain)
and gis (infrastructure) suites.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from domain.terrain.store import TerrainStore


@pytest.fixture
def small_store() -> TerrainStore:
    """Store at 4 samples per degree with room for 4 pages."""
    return TerrainStore(ippd=4, max_pages=4)


@pytest.fixture(scope="session")
def generated_fixtures(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Directory holding every fixture from scripts/gen_fixtures.py."""
    from scripts.gen_fixtures import generate_all

    out_dir = tmp_path_factory.mktemp("fixtures")
    generate_all(out_dir)
    return out_dir
