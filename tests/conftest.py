"""
Test configuration — repo root on sys.path + determinism guards.

Tests never touch the live database: sqlite3.connect and filesystem probes
against the live DB path raise. Use the `db` fixture (a seeded temp copy
built by tests/fixtures/fixture_db.py) instead.
"""

import os
import sqlite3
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# =============================================================================
# DETERMINISM GUARD: Block live database access
# =============================================================================

HOME_DB_ABSOLUTE = Path.home() / ".farmops" / "data" / "farmops.db"

_FORBIDDEN_DB_PATTERNS = [
    str(HOME_DB_ABSOLUTE),
    ".farmops/data/farmops.db",
]


def _is_forbidden_path(path_str: str) -> bool:
    if not path_str:
        return False
    return any(pattern in path_str for pattern in _FORBIDDEN_DB_PATTERNS)


def _raise_determinism_violation(path_str: str, operation: str):
    raise RuntimeError(
        f"DETERMINISM VIOLATION: live DB path probed via {operation}: {path_str}\n"
        "Tests must use the `db` fixture from tests/conftest.py."
    )


_original_os_stat = os.stat
_original_path_exists = Path.exists


def _guarded_os_stat(path, *args, **kwargs):
    if _is_forbidden_path(str(path)):
        _raise_determinism_violation(str(path), "os.stat")
    return _original_os_stat(path, *args, **kwargs)


def _guarded_path_exists(self, *args, **kwargs):
    if _is_forbidden_path(str(self)):
        _raise_determinism_violation(str(self), "Path.exists")
    return _original_path_exists(self, *args, **kwargs)


# Installed at load time to catch import-time probes
os.stat = _guarded_os_stat
Path.exists = _guarded_path_exists

_original_sqlite_connect = sqlite3.connect


def _guarded_sqlite_connect(database, *args, **kwargs):
    """Intercept sqlite3.connect to block live DB access."""
    if _is_forbidden_path(str(database)):
        _raise_determinism_violation(str(database), "sqlite3.connect")
    return _original_sqlite_connect(database, *args, **kwargs)


@pytest.fixture(autouse=True)
def guard_live_db_access(monkeypatch):
    """Automatically guard all tests against live DB access."""
    monkeypatch.setattr(sqlite3, "connect", _guarded_sqlite_connect)


# =============================================================================
# FIXTURE DB
# =============================================================================


@pytest.fixture
def db(tmp_path):
    """Fresh seeded database per test."""
    from farmops.db import Database
    from tests.fixtures.fixture_db import create_fixture_db

    db_path = tmp_path / "farmops_test.db"
    conn = create_fixture_db(db_path)
    conn.close()
    return Database(db_path)


@pytest.fixture
def empty_db(tmp_path):
    """Schema only, no rows."""
    from farmops.db import Database

    database = Database(tmp_path / "farmops_empty.db")
    database.create_fresh()
    return database


@pytest.fixture
def repository(db):
    from farmops.repository import FarmRepository

    return FarmRepository(db)


@pytest.fixture
def snapshots(db):
    from farmops.snapshot_store import SnapshotStore

    return SnapshotStore(db)


@pytest.fixture
def service(repository, snapshots):
    """Service pinned after the seed week."""
    from farmops.compliance import ComplianceService
    from tests.fixtures import AFTER_SEED_WEEK

    return ComplianceService(repository, snapshots, now_fn=lambda: AFTER_SEED_WEEK)
