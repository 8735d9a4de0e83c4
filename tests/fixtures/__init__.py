"""
Test fixtures for deterministic testing.

- fixture_db: temp SQLite databases seeded from farm_seed.json, plus the
  pinned clock instants the expectations are computed against
- farm_seed.json: pinned farm data; expectations in the tests depend on it
"""

from .fixture_db import AFTER_SEED_WEEK, MID_SEED_WEEK, SEED_WEEK, create_fixture_db, load_seed_data

__all__ = ["AFTER_SEED_WEEK", "MID_SEED_WEEK", "SEED_WEEK", "create_fixture_db", "load_seed_data"]
