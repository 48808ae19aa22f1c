"""Quadrangle (SDF) loader for the terrain store.

Loads ``minlat_maxlat_minlon_maxlon`` quadrangles from ``.sdf``, ``.sdf.bz2``
or ``.sdf.gz`` files into a TerrainStore page.

Lifecycle of one load:
1) Parse the quadrangle name (FormatError when malformed)
2) Return early when the quadrangle is already resident
3) Check for a free page slot (ResourceExhaustedError)
4) Locate the file: working directory first, then the configured search path
5) Read the 4-line header and ippd x ippd samples, skipping filler lines when
   the file is sampled finer than the run's ippd
6) Commit the finished page; global extents change only on success

load_sdf() tries the three encodings in order and synthesizes a sea-level
page when none exists.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from domain.terrain.errors import FormatError, QuadrangleNotFoundError
from domain.terrain.store import TerrainStore
from domain.terrain.value_objects import ElevationPage, LoadOutcome, QuadrangleId

from .line_source import LINE_SOURCES, BufferedLineSource
from .settings import TerrainSettings

logger = logging.getLogger(__name__)


def filler_lines(ippd: int, native_ippd: int) -> tuple[int, int]:
    """Return (lines skipped before each sample, lines skipped after each row).

    Full resolution skips nothing. At half resolution (600 of 1200) one line
    precedes every sample and one native row follows every row; at quarter
    resolution (300 of 1200) three lines and three native rows.

    Raises:
        ValueError: If ippd does not evenly subsample native_ippd
    """
    if ippd <= 0 or ippd > native_ippd or native_ippd % ippd != 0:
        raise ValueError(
            f"Cannot subsample {native_ippd} samples/degree down to {ippd}"
        )
    factor = native_ippd // ippd
    return factor - 1, (factor - 1) * native_ippd


class SdfQuadrangleLoader:
    """Infrastructure adapter that fills TerrainStore pages from SDF files.

    Parameters
    ----------
    store: TerrainStore
        Destination store; its ``ippd`` is the working resolution.
    settings: TerrainSettings | None
        Source of the search path and native file resolution.
    search_path: Path | str | None
        Overrides ``settings.sdf_path``.
    native_ippd: int | None
        Overrides ``settings.native_ippd``.
    """

    def __init__(
        self,
        store: TerrainStore,
        settings: TerrainSettings | None = None,
        search_path: Path | str | None = None,
        native_ippd: int | None = None,
    ) -> None:
        settings = settings or TerrainSettings()
        self.store = store
        self.search_path = Path(search_path) if search_path else settings.sdf_path
        self.native_ippd = native_ippd or settings.native_ippd
        self._per_sample, self._per_row = filler_lines(store.ippd, self.native_ippd)

    # -----------------------------------------------------------------------
    # File lookup
    # -----------------------------------------------------------------------
    def locate(self, filename: str) -> Path:
        """Find a file in the working directory, then under the search path.

        Raises:
            QuadrangleNotFoundError: If neither location has the file
        """
        candidates = [Path(filename)]
        if self.search_path is not None:
            candidates.append(self.search_path / filename)
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        raise QuadrangleNotFoundError(filename)

    # -----------------------------------------------------------------------
    # Single-format load
    # -----------------------------------------------------------------------
    def load(self, name: str, source_cls: type[BufferedLineSource]) -> LoadOutcome:
        """Load one quadrangle in one encoding.

        Raises:
            FormatError: Malformed name, header or samples
            DecodeError: Corrupt compressed stream
            ResourceExhaustedError: Page table is full
            QuadrangleNotFoundError: No file for this encoding
        """
        quadrangle = QuadrangleId.parse(name)
        if self.store.is_resident(quadrangle):
            return LoadOutcome.ALREADY_RESIDENT
        self.store.ensure_free_slot()

        filename = name.split(".", 1)[0] + source_cls.extension
        path = self.locate(filename)

        try:
            source = source_cls.open(path)
        except FileNotFoundError as e:
            raise QuadrangleNotFoundError(filename) from e
        except OSError as e:
            logger.error(
                "Failed to open %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise

        logger.debug(
            "Loading %s into page %d...", path.name, len(self.store) + 1
        )
        with source:
            page = self._read_page(source)

        self.store.commit(quadrangle, page)
        logger.debug(
            "Loaded %s: elevation %d..%d, bounds %.6fN %.6fW to %.6fN %.6fW",
            path.name,
            page.min_el,
            page.max_el,
            page.min_north,
            page.min_west,
            page.max_north,
            page.max_west,
        )
        return LoadOutcome.LOADED

    def _read_page(self, source: BufferedLineSource) -> ElevationPage:
        max_west = self._read_header_value(source)
        min_north = self._read_header_value(source)
        min_west = self._read_header_value(source)
        max_north = self._read_header_value(source)

        ippd = self.store.ippd
        data = np.empty((ippd, ippd), dtype=np.int16)
        for x in range(ippd):
            for y in range(ippd):
                self._skip(source, self._per_sample)
                data[x, y] = self._read_sample(source)
            self._skip(source, self._per_row)

        return ElevationPage.from_samples(
            data,
            min_north=min_north,
            max_north=max_north,
            min_west=min_west,
            max_west=max_west,
            ppd_north=float(ippd),
            ppd_west=float(ippd),
        )

    @staticmethod
    def _read_header_value(source: BufferedLineSource) -> float:
        line = source.read_line()
        if line is None:
            raise FormatError(f"{source.name}: header ended early")
        try:
            return float(line.strip())
        except ValueError as e:
            raise FormatError(f"{source.name}: bad header line {line!r}") from e

    @staticmethod
    def _read_sample(source: BufferedLineSource) -> int:
        line = source.read_line()
        if line is None:
            raise FormatError(f"{source.name}: truncated elevation data")
        try:
            return int(line.strip())
        except ValueError as e:
            raise FormatError(f"{source.name}: bad elevation sample {line!r}") from e

    @staticmethod
    def _skip(source: BufferedLineSource, count: int) -> None:
        for _ in range(count):
            if source.read_line() is None:
                raise FormatError(f"{source.name}: truncated filler data")

    # -----------------------------------------------------------------------
    # Fallback orchestration
    # -----------------------------------------------------------------------
    def load_sdf(self, name: str) -> LoadOutcome:
        """Load a quadrangle trying plain, bzip2, then gzip files.

        When no encoding exists the quadrangle is assumed to be water and a
        sea-level page is registered, so every well-formed request succeeds.
        Errors other than a missing file propagate.
        """
        for source_cls in LINE_SOURCES:
            try:
                return self.load(name, source_cls)
            except QuadrangleNotFoundError:
                logger.debug("No %s file for %s", source_cls.extension, name)

        quadrangle = QuadrangleId.parse(name)
        logger.warning(
            "SDF file not found, region %r assumed as sea-level into page %d",
            name,
            len(self.store) + 1,
        )
        self.store.commit(quadrangle, ElevationPage.sea_level(quadrangle, self.store.ippd))
        return LoadOutcome.SEA_LEVEL
