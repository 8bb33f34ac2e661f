"""Repository layer: DB access helpers (SQLite).

Keep functions thin and focused, so services/domains avoid SQL strings.
"""
from __future__ import annotations
