"""Infrastructure adapters for the terrain bounded context.

File readers (SDF quadrangles, LIDAR GeoTIFF tiles, clutter and UDT files),
the LIDAR mosaic builder, and the run-level terrain loaders.

Adapters exported for simplified imports.
"""

from .clutter_adapter import load_clutter, read_clutter_grid
from .lidar_adapter import GeoTiffLidarTileAdapter
from .lidar_mosaic import compose_mosaic, load_mosaic
from .sdf_loader import SdfQuadrangleLoader
from .settings import TerrainSettings, create_store
from .topo_loader import load_lidar, load_topo_data
from .udt_adapter import UdtFileAdapter

__all__ = [
    "GeoTiffLidarTileAdapter",
    "SdfQuadrangleLoader",
    "TerrainSettings",
    "UdtFileAdapter",
    "compose_mosaic",
    "create_store",
    "load_clutter",
    "load_lidar",
    "load_mosaic",
    "load_topo_data",
    "read_clutter_grid",
]
