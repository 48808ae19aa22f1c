"""Pytest configuration for infrastructure tests.

Fakes for rasterio datasets are defined per test module and installed with
monkeypatch; no module replaces the real rasterio package.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from domain.terrain.store import TerrainStore
from infrastructure.terrain.sdf_loader import SdfQuadrangleLoader
from infrastructure.terrain.settings import TerrainSettings
from shared.fixtures_expected import FIXTURE_NATIVE_IPPD


@pytest.fixture
def sdf_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty search directory; the working directory is moved elsewhere."""
    search = tmp_path / "sdf"
    search.mkdir()
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    return search


@pytest.fixture
def native_store() -> TerrainStore:
    """Store at the fixture files' native density."""
    return TerrainStore(ippd=FIXTURE_NATIVE_IPPD, max_pages=4)


@pytest.fixture
def native_loader(native_store: TerrainStore, sdf_dir: Path) -> SdfQuadrangleLoader:
    return SdfQuadrangleLoader(
        native_store,
        settings=TerrainSettings(sdf_path=sdf_dir),
        native_ippd=FIXTURE_NATIVE_IPPD,
    )
