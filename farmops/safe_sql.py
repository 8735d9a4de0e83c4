"""
SQL text builders for the farmops store.

Values always travel as ? parameters. Identifiers cannot (SQLite has no
parameterized table or column names), so every table and column name that
reaches an f-string here is checked against IDENTIFIER first. WHERE and
ORDER BY fragments are passed through as written and must come from code,
never from request input.

    sql = safe_sql.select("farm_phases", where="farm = ?", order_by="id")
    rows = db.fetch_all(sql, ["Musha"])
"""

# ruff: noqa: S608 -- identifiers pass validate_identifier() before interpolation.

from __future__ import annotations

import re
from collections.abc import Sequence

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(name: str) -> str:
    """Return name if it is a plain SQL identifier, else raise ValueError."""
    if not isinstance(name, str) or not IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def _columns(columns: Sequence[str]) -> str:
    if not columns:
        raise ValueError("At least one column is required")
    return ", ".join(validate_identifier(c) for c in columns)


# =============================================================================
# PRAGMA
# =============================================================================


def pragma_table_info(table: str) -> str:
    return f"PRAGMA table_info([{validate_identifier(table)}])"


def pragma_user_version_set(version: int) -> str:
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise ValueError(f"Invalid schema version: {version!r}")
    return f"PRAGMA user_version = {version}"


# =============================================================================
# Statements
# =============================================================================


def select(
    table: str,
    columns: str = "*",
    where: str | None = None,
    order_by: str | None = None,
    limit: int | None = None,
) -> str:
    """
    SELECT over one table.

    columns is a raw list ("*" or "id, name"); where is a condition without
    the WHERE keyword, using ? for values.
    """
    sql = f"SELECT {columns} FROM {validate_identifier(table)}"
    if where:
        sql += f" WHERE {where}"
    if order_by:
        sql += f" ORDER BY {order_by}"
    if limit is not None:
        sql += f" LIMIT {int(limit)}"
    return sql


def insert(table: str, columns: Sequence[str]) -> str:
    placeholders = ", ".join("?" * len(columns))
    return f"INSERT INTO {validate_identifier(table)} ({_columns(columns)}) VALUES ({placeholders})"


def upsert(table: str, columns: Sequence[str], conflict: Sequence[str], update: Sequence[str]) -> str:
    """INSERT that, on a conflict over the given key columns, overwrites update columns."""
    sets = ", ".join(f"{col} = excluded.{col}" for col in (validate_identifier(c) for c in update))
    return f"{insert(table, columns)} ON CONFLICT({_columns(conflict)}) DO UPDATE SET {sets}"


def delete(table: str, where: str) -> str:
    """DELETE with a mandatory condition; there is no unfiltered delete."""
    if not where:
        raise ValueError("DELETE requires a WHERE condition")
    return f"DELETE FROM {validate_identifier(table)} WHERE {where}"


# =============================================================================
# Conditions
# =============================================================================


def in_clause(column: str, count: int) -> str:
    """column IN (?, ?, ...) with count placeholders."""
    if count <= 0:
        raise ValueError(f"IN clause needs at least 1 placeholder, got {count}")
    return f"{validate_identifier(column)} IN ({', '.join('?' * count)})"


def where_and(conditions: Sequence[str]) -> str:
    """Conditions joined with AND; "" when there are none."""
    return " AND ".join(conditions)
