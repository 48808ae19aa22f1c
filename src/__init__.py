"""Infrastructure root.

Holds the adapters that read terrain files from disk and install them into
a TerrainStore. Tests put this directory on sys.path, so the import name is
``infrastructure`` rather than ``src.infrastructure``.
"""
