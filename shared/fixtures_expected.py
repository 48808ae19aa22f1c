"""Single source of truth for generated terrain test fixtures.

This module defines the fixture filenames and the sampling density they are
written at, used by both:
- scripts/gen_fixtures.py (generation verification)
- tests/gis/test_fixtures_sanity.py (existence verification)

Location: shared/ (not tests/) to avoid scripts->tests dependency.

When adding/removing fixtures, update ONLY this list.
"""

from __future__ import annotations

# Quadrangle fixtures are tiny: FIXTURE_NATIVE_IPPD x FIXTURE_NATIVE_IPPD.
FIXTURE_NATIVE_IPPD = 8

# Sorted alphabetically for deterministic comparison.
EXPECTED_FIXTURES: list[str] = sorted(
    [
        "40_41_73_74.sdf",  # plain quadrangle, gradient
        "41_42_73_74.sdf.bz2",  # bzip2 quadrangle
        "42_43_73_74.sdf.gz",  # gzip quadrangle
        "clutter_small.asc",  # land-cover grid
        "lidar_east.tif",  # LIDAR tile, east half
        "lidar_west.tif",  # LIDAR tile, west half
        "towers.udt",  # user-defined terrain
    ]
)

# Count derived from list for verification
EXPECTED_FIXTURE_COUNT: int = len(EXPECTED_FIXTURES)
