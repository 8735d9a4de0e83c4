"""
Centralized Database Access for farmops.

Single source of truth for:
- DB path resolution
- Connection factory
- Transactions
- Schema convergence (delegated to schema_engine)

ALL code must use this module for DB access. No direct sqlite3.connect() elsewhere.

Connections are opened per operation so the store is safe to use from the
API server's worker threads. Connections run in autocommit mode; multi-
statement writes go through transaction(), which takes the write lock up
front with BEGIN IMMEDIATE so concurrent writers serialize instead of
interleaving.
"""

import logging
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from farmops import paths, schema, schema_engine

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 10.0


def get_db_path() -> Path:
    """
    Get the canonical DB path.

    Resolution order:
    1. FARMOPS_DB env var (explicit override)
    2. ~/.farmops/data/farmops.db (default via paths.db_path())
    """
    return paths.db_path()


class Database:
    """SQLite connection factory and query helpers."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = str(db_path) if db_path is not None else str(get_db_path())
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"Database({self.db_path!r})"

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection with row factory and foreign keys enabled.

        Usage:
            with db.connect() as conn:
                conn.execute(...)
        """
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        All-or-nothing unit of work.

        Commits on success, rolls back on any exception and re-raises.

        Usage:
            with db.transaction() as conn:
                conn.execute("DELETE ...")
                conn.executemany("INSERT ...", rows)
        """
        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    @contextmanager
    def read_view(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Consistent read across several statements.

        Every SELECT inside sees the same committed state, so a concurrent
        replace is observed either entirely or not at all.
        """
        with self.connect() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
            finally:
                conn.execute("COMMIT")

    # =========================================================================
    # Query Helpers
    # =========================================================================

    def fetch_all(self, sql: str, params: Iterable[Any] = ()) -> list[dict[str, Any]]:
        with self.connect() as conn:
            return [dict(row) for row in conn.execute(sql, tuple(params)).fetchall()]

    def fetch_one(self, sql: str, params: Iterable[Any] = ()) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute(sql, tuple(params)).fetchone()
            return dict(row) if row else None

    def execute(self, sql: str, params: Iterable[Any] = ()) -> int:
        """Run one write statement. Returns affected row count."""
        with self.connect() as conn:
            return conn.execute(sql, tuple(params)).rowcount

    # =========================================================================
    # Schema
    # =========================================================================

    def ensure_schema(self) -> dict:
        """Converge the database to farmops.schema. Safe to call repeatedly."""
        with self.connect() as conn:
            version_before = conn.execute("PRAGMA user_version").fetchone()[0]
            results = schema_engine.converge(conn)
        results["previous_version"] = version_before

        if results.get("tables_created"):
            logger.info("Tables created: %s", results["tables_created"])
        if results.get("columns_added"):
            logger.info("Columns added: %s", results["columns_added"])
        if results.get("errors"):
            logger.warning("Schema convergence errors: %s", results["errors"])
        logger.info(
            "Schema at version %s (was %s) for %s",
            schema.SCHEMA_VERSION,
            version_before,
            self.db_path,
        )
        return results

    def create_fresh(self) -> dict:
        """Drop and recreate every table. Tests and brand-new databases only."""
        with self.connect() as conn:
            return schema_engine.create_fresh(conn)
