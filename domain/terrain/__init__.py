"""Terrain Bounded Context.

Responsible for elevation data and the geometry that decides what to load:
- Value Objects: Coordinate, BoundingBox, QuadrangleId, ElevationPage, LidarTile
- Services: earth_radius, get_point_at_distance, get_circular_bounding_box
- Store: TerrainStore (page table, global extents, add_elevation)
- Augmentation: clutter canopy boost, user-defined terrain
"""
