"""Runtime configuration for terrain acquisition.

Values come from the environment (prefix ``TERRAIN_``) or an optional
``.env`` file; constructor keywords override both.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.terrain.store import TerrainStore

# Working resolutions the quadrangle reader can produce, in samples per degree.
SUPPORTED_IPPD = (300, 600, 1200, 3600)
# Sampling densities quadrangle files are written at.
SUPPORTED_NATIVE_IPPD = (1200, 3600)


class TerrainSettings(BaseSettings):
    """Terrain loader configuration.

    Attributes:
        sdf_path: Directory searched for quadrangle and UDT files after the
            current working directory
        ippd: Working samples per degree for standard pages
        native_ippd: Samples per degree stored in the quadrangle files
        max_pages: Page table capacity
    """

    sdf_path: Path | None = None
    ippd: int = 1200
    native_ippd: int = 1200
    max_pages: int = Field(default=64, gt=0)

    model_config = SettingsConfigDict(env_prefix="TERRAIN_", env_file=".env")

    @field_validator("ippd")
    @classmethod
    def validate_ippd(cls, value: int) -> int:
        if value not in SUPPORTED_IPPD:
            raise ValueError(f"ippd must be one of {SUPPORTED_IPPD}, got {value}")
        return value

    @field_validator("native_ippd")
    @classmethod
    def validate_native_ippd(cls, value: int) -> int:
        if value not in SUPPORTED_NATIVE_IPPD:
            raise ValueError(
                f"native_ippd must be one of {SUPPORTED_NATIVE_IPPD}, got {value}"
            )
        return value


def create_store(settings: TerrainSettings | None = None) -> TerrainStore:
    """Empty store at the configured working resolution and page capacity."""
    settings = settings or TerrainSettings()
    return TerrainStore(ippd=settings.ippd, max_pages=settings.max_pages)
