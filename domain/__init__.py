"""Terrain Loader Domain Layer.

This package contains the core logic organized by bounded contexts:
- terrain: elevation pages, geodesy, augmentation of the loaded grid
"""

from domain import terrain

__all__ = ["terrain"]
