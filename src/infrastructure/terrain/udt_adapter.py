"""User-defined terrain (UDT) file adapter."""

from __future__ import annotations

import logging
from pathlib import Path

from domain.terrain.augmentation import UdtRecord, apply_udt, parse_udt_record
from domain.terrain.errors import FormatError
from domain.terrain.store import TerrainStore

from .settings import TerrainSettings

logger = logging.getLogger(__name__)


class UdtFileAdapter:
    """Reads ``lat, lon, height[M]`` records and applies them to a store.

    Files are looked up in the working directory first, then under the
    configured search path.
    """

    def __init__(
        self,
        settings: TerrainSettings | None = None,
        search_path: Path | str | None = None,
    ) -> None:
        settings = settings or TerrainSettings()
        self.search_path = Path(search_path) if search_path else settings.sdf_path

    def locate(self, filename: Path | str) -> Path:
        candidates = [Path(filename)]
        if self.search_path is not None:
            candidates.append(self.search_path / filename)
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        raise FileNotFoundError(str(filename))

    def read_records(self, filename: Path | str) -> list[UdtRecord]:
        """Parse every record in a UDT file.

        Raises:
            FileNotFoundError: If neither location has the file
            FormatError: If a line is malformed (message names the line)
        """
        path = self.locate(filename)
        records: list[UdtRecord] = []
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            for lineno, line in enumerate(fh, start=1):
                try:
                    record = parse_udt_record(line)
                except FormatError as e:
                    raise FormatError(f"{path.name}:{lineno}: {e}") from e
                if record is not None:
                    records.append(record)
        logger.debug("Read %d UDT records from %s", len(records), path.name)
        return records

    def load(self, store: TerrainStore, filename: Path | str) -> int:
        """Apply a UDT file to the store; returns the number of pixels raised."""
        records = self.read_records(filename)
        applied = apply_udt(store, records)
        logger.info("UDT %s: %d points applied", Path(filename).name, applied)
        return applied
