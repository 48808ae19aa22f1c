"""Helpers shared by the fixture generator and the test suite.

Holds the SDF/UDT writers and the list of generated fixture files, kept
outside ``tests`` so ``scripts/gen_fixtures.py`` can import them.
"""

from __future__ import annotations
