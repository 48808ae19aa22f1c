"""Tests for the GeoTIFF LIDAR tile adapter.

rasterio.open is replaced with a FakeDataset through monkeypatch; the real
rasterio package is used for everything else.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from types import SimpleNamespace

import numpy as np
import numpy.ma as ma
import pytest
import rasterio
from affine import Affine

from domain.terrain.errors import FormatError
from infrastructure.terrain.lidar_adapter import (
    METERS_PER_DEGREE,
    GeoTiffLidarTileAdapter,
    to_west_positive,
)


class FakeCRS:
    def __init__(self, code: str):
        self._code = code

    def to_string(self) -> str:
        return self._code

    def __str__(self) -> str:
        return self._code


class FakeDataset:
    def __init__(
        self,
        *,
        count: int = 1,
        crs: str | None = "EPSG:4326",
        transform: Affine,
        width: int,
        height: int,
        nodata=None,
        values: np.ndarray | None = None,
    ):
        self.count = count
        self.crs = FakeCRS(crs) if crs is not None else None
        self.transform = transform
        self.width = width
        self.height = height
        self.nodata = nodata
        self.dtypes = ("float32",) * count
        self.shape = (height, width)
        self.bounds = SimpleNamespace(
            left=transform.c,
            bottom=transform.f + transform.e * height,
            right=transform.c + transform.a * width,
            top=transform.f,
        )
        if values is None:
            values = np.arange(width * height, dtype=np.float32).reshape(height, width)
        self._values = values.astype(np.float32)

    def read(self, band: int, *, masked: bool, out_dtype: str):
        return ma.MaskedArray(self._values, mask=np.zeros(self._values.shape, bool))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


# 10x10 pixels over 40.0N..40.5N, 74.5W..74.0W
TRANSFORM = Affine.translation(-74.5, 40.5) * Affine.scale(0.05, -0.05)


@pytest.fixture
def tif(tmp_path):
    path = tmp_path / "tile.tif"
    path.write_bytes(b"x")
    return path


def _install(monkeypatch, ds) -> None:
    monkeypatch.setattr("rasterio.open", lambda path: ds)
    monkeypatch.setattr("rasterio.Env", lambda *a, **k: nullcontext())


def test_to_west_positive():
    assert to_west_positive(-74.5) == pytest.approx(74.5)
    assert to_west_positive(1.0) == pytest.approx(359.0)
    assert to_west_positive(0.0) == 0.0


def test_happy_path_builds_west_positive_tile(monkeypatch, tif):
    _install(monkeypatch, FakeDataset(transform=TRANSFORM, width=10, height=10))

    tile = GeoTiffLidarTileAdapter().load_tile(tif)

    assert tile.data.dtype == np.int16
    assert tile.data.shape == (10, 10)
    assert tile.max_north == pytest.approx(40.5)
    assert tile.min_north == pytest.approx(40.0)
    assert tile.max_west == pytest.approx(74.5)
    assert tile.min_west == pytest.approx(74.0)
    assert tile.cellsize == pytest.approx(0.05)
    assert tile.resolution == pytest.approx(0.05 * METERS_PER_DEGREE)
    assert (tile.min_el, tile.max_el) == (0, 99)
    assert tile.ppdx == pytest.approx(20.0)
    assert tile.name == "tile.tif"


def test_east_of_greenwich_wraps(monkeypatch, tif):
    transform = Affine.translation(1.0, 40.5) * Affine.scale(0.05, -0.05)
    _install(monkeypatch, FakeDataset(transform=transform, width=10, height=10))

    tile = GeoTiffLidarTileAdapter().load_tile(tif)

    assert tile.max_west == pytest.approx(359.0)
    assert tile.min_west == pytest.approx(358.5)
    assert tile.west_span == pytest.approx(0.5)


def test_masked_pixels_become_sea_level(monkeypatch, tif):
    ds = FakeDataset(transform=TRANSFORM, width=10, height=10)

    def fake_read(self, band, *, masked, out_dtype):
        data = np.full((10, 10), 55.0, dtype=np.float32)
        mask = np.zeros((10, 10), dtype=bool)
        mask[0, 0] = True
        return ma.MaskedArray(data, mask=mask)

    monkeypatch.setattr(FakeDataset, "read", fake_read)
    _install(monkeypatch, ds)

    tile = GeoTiffLidarTileAdapter().load_tile(tif)
    assert tile.data[0, 0] == 0
    assert tile.data[5, 5] == 55


def test_explicit_nodata_value_becomes_sea_level(monkeypatch, tif):
    values = np.full((10, 10), 12.0, dtype=np.float32)
    values[3, 4] = -9999.0
    _install(
        monkeypatch,
        FakeDataset(transform=TRANSFORM, width=10, height=10, nodata=-9999.0, values=values),
    )

    tile = GeoTiffLidarTileAdapter().load_tile(tif)
    assert tile.data[3, 4] == 0
    assert tile.min_el == 0


def test_float_elevations_rounded(monkeypatch, tif):
    values = np.full((10, 10), 10.6, dtype=np.float32)
    values[0, 0] = -2.4
    _install(
        monkeypatch, FakeDataset(transform=TRANSFORM, width=10, height=10, values=values)
    )

    tile = GeoTiffLidarTileAdapter().load_tile(tif)
    assert tile.data[1, 1] == 11
    assert tile.data[0, 0] == -2


def test_file_not_found(tmp_path):
    with pytest.raises(FileNotFoundError):
        GeoTiffLidarTileAdapter().load_tile(tmp_path / "missing.tif")


def test_unsupported_extension(tmp_path):
    path = tmp_path / "tile.asc"
    path.write_bytes(b"x")
    with pytest.raises(FormatError, match="extension"):
        GeoTiffLidarTileAdapter().load_tile(path)


def test_empty_file(tmp_path):
    path = tmp_path / "empty.tif"
    path.write_bytes(b"")
    with pytest.raises(FormatError, match="Empty"):
        GeoTiffLidarTileAdapter().load_tile(path)


def test_multiband_rejected(monkeypatch, tif):
    _install(monkeypatch, FakeDataset(count=3, transform=TRANSFORM, width=10, height=10))
    with pytest.raises(FormatError, match="1 band"):
        GeoTiffLidarTileAdapter().load_tile(tif)


def test_missing_crs_rejected(monkeypatch, tif):
    _install(monkeypatch, FakeDataset(crs=None, transform=TRANSFORM, width=10, height=10))
    with pytest.raises(FormatError, match="CRS"):
        GeoTiffLidarTileAdapter().load_tile(tif)


def test_nan_transform_rejected(monkeypatch, tif):
    transform = Affine(float("nan"), 0.0, -74.5, 0.0, -0.05, 40.5)
    _install(monkeypatch, FakeDataset(transform=transform, width=10, height=10))
    with pytest.raises(FormatError, match="NaN"):
        GeoTiffLidarTileAdapter().load_tile(tif)


def test_corrupted_file_rejected(monkeypatch, tif):
    def fake_open(path):
        raise rasterio.errors.RasterioIOError("Corrupted data")

    monkeypatch.setattr("rasterio.open", fake_open)
    monkeypatch.setattr("rasterio.Env", lambda *a, **k: nullcontext())

    with pytest.raises(FormatError, match="Corrupted"):
        GeoTiffLidarTileAdapter().load_tile(tif)


def test_permission_error_reraised_with_name(monkeypatch, tif):
    def fake_open(path):
        raise PermissionError("permission denied")

    monkeypatch.setattr("rasterio.open", fake_open)
    monkeypatch.setattr("rasterio.Env", lambda *a, **k: nullcontext())

    with pytest.raises(PermissionError, match="tile.tif"):
        GeoTiffLidarTileAdapter().load_tile(tif)


def test_reprojection_path(monkeypatch, tif, caplog):
    src_transform = Affine.translation(500000.0, 4480000.0) * Affine.scale(30.0, -30.0)
    ds = FakeDataset(
        crs="EPSG:32618", transform=src_transform, width=10, height=10, nodata=-9999
    )

    def fake_cdt(src_crs, dst_crs, w, h, *bounds):
        return Affine.translation(-75.0, 40.5) * Affine.scale(0.025, -0.025), 20, 20

    def fake_reproject(source, destination, **kwargs):
        assert kwargs["dst_nodata"] != kwargs["dst_nodata"]  # NaN fill
        destination[:] = 100.0
        destination[0, 0] = np.nan

    _install(monkeypatch, ds)
    monkeypatch.setattr("rasterio.band", lambda dataset, bidx: (dataset, bidx))
    monkeypatch.setattr(
        "infrastructure.terrain.lidar_adapter.calculate_default_transform", fake_cdt
    )
    monkeypatch.setattr("infrastructure.terrain.lidar_adapter.reproject", fake_reproject)
    caplog.set_level(logging.INFO)

    tile = GeoTiffLidarTileAdapter().load_tile(tif)

    assert tile.data.shape == (20, 20)
    assert tile.data[0, 0] == 0
    assert tile.data[10, 10] == 100
    assert tile.max_west == pytest.approx(75.0)
    assert tile.min_west == pytest.approx(74.5)
    assert tile.cellsize == pytest.approx(0.025)
    assert "reprojected from EPSG:32618 to EPSG:4326" in caplog.text


@pytest.mark.integration
def test_generated_tiles_load(generated_fixtures):
    adapter = GeoTiffLidarTileAdapter()

    west = adapter.load_tile(generated_fixtures / "lidar_west.tif")
    east = adapter.load_tile(generated_fixtures / "lidar_east.tif")

    assert west.max_west == pytest.approx(74.02)
    assert east.min_west == pytest.approx(74.0)
    assert west.min_west == pytest.approx(east.max_west)
    assert (west.width, west.height) == (10, 10)
    assert int(west.data[0, 0]) == 50
    assert int(east.data[0, 0]) == 100
