"""
Schema Convergence Engine — introspect, diff, apply.

The declarative schema in farmops.schema is compared with what a SQLite
database actually holds. The difference is a SchemaDiff; applying it only
ever adds things:

    diff = schema_engine.diff(conn)
    results = schema_engine.apply(conn, diff)

converge(conn) does both. create_fresh(conn) is the destructive variant for
new databases and test fixtures: it drops every table and builds the
schema from nothing.

Result dicts (tables_created, columns_added, indexes_created, errors,
schema_version) are what Database.ensure_schema logs and `init-db` prints.
"""

import logging
import re
import sqlite3
from dataclasses import dataclass, field

from farmops import safe_sql, schema

logger = logging.getLogger(__name__)

# Allowed in CREATE TABLE, rejected by ALTER TABLE ADD COLUMN
_NOT_ADDABLE = [
    re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE),
    re.compile(r"\bAUTOINCREMENT\b", re.IGNORECASE),
    re.compile(r"\bUNIQUE\b", re.IGNORECASE),
    re.compile(r"\bCHECK\s*\((?:[^()]|\([^()]*\))*\)", re.IGNORECASE),
]
_NOT_NULL = re.compile(r"\bNOT\s+NULL\b", re.IGNORECASE)
_DEFAULT = re.compile(r"\bDEFAULT\b", re.IGNORECASE)


def addable_column_ddl(col_ddl: str) -> str:
    """
    Column DDL rewritten for ALTER TABLE ADD COLUMN.

    Key, uniqueness and CHECK clauses are dropped (fresh tables still get
    them). NOT NULL without a DEFAULT gets DEFAULT '' so existing rows stay
    valid.
    """
    ddl = col_ddl
    for pattern in _NOT_ADDABLE:
        ddl = pattern.sub("", ddl)
    ddl = " ".join(ddl.split())
    if _NOT_NULL.search(ddl) and not _DEFAULT.search(ddl):
        ddl += " DEFAULT ''"
    return ddl


def create_table_sql(table_name: str, table_def: dict) -> str:
    lines = [f"    {name} {ddl}" for name, ddl in table_def["columns"]]
    lines += [f"    UNIQUE({', '.join(cols)})" for cols in table_def.get("unique", [])]
    body = ",\n".join(lines)
    return f"CREATE TABLE IF NOT EXISTS [{safe_sql.validate_identifier(table_name)}] (\n{body}\n)"


def create_index_sql(name: str, table: str, columns: str, where: str | None) -> str:
    name, table = safe_sql.validate_identifier(name), safe_sql.validate_identifier(table)
    sql = f"CREATE INDEX IF NOT EXISTS [{name}] ON [{table}]({columns})"
    return f"{sql} WHERE {where}" if where else sql


# =============================================================================
# Introspection
# =============================================================================


def _sqlite_names(conn: sqlite3.Connection, kind: str) -> set[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = ? AND name NOT LIKE 'sqlite_%'", (kind,)
    ).fetchall()
    return {row[0] for row in rows}


def _column_names(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(safe_sql.pragma_table_info(table)).fetchall()}


@dataclass
class SchemaDiff:
    """What a database lacks relative to farmops.schema."""

    missing_tables: list[str] = field(default_factory=list)
    missing_columns: list[tuple[str, str, str]] = field(default_factory=list)
    missing_indexes: list[tuple[str, str, str, str | None]] = field(default_factory=list)
    version: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.missing_tables or self.missing_columns or self.missing_indexes)

    @property
    def up_to_date(self) -> bool:
        return self.is_empty and self.version == schema.SCHEMA_VERSION


def diff(conn: sqlite3.Connection) -> SchemaDiff:
    tables = _sqlite_names(conn, "table")
    indexes = _sqlite_names(conn, "index")
    result = SchemaDiff(version=conn.execute("PRAGMA user_version").fetchone()[0])

    for table_name, table_def in schema.TABLES.items():
        if table_name not in tables:
            result.missing_tables.append(table_name)
            continue
        present = _column_names(conn, table_name)
        result.missing_columns.extend(
            (table_name, name, ddl) for name, ddl in table_def["columns"] if name not in present
        )

    known_tables = tables | set(result.missing_tables)
    result.missing_indexes = [
        index for index in schema.INDEXES if index[0] not in indexes and index[1] in known_tables
    ]
    return result


# =============================================================================
# Apply
# =============================================================================


def _try(conn: sqlite3.Connection, sql: str, label: str, results: dict) -> bool:
    try:
        conn.execute(sql)  # nosec B608
    except sqlite3.OperationalError as e:
        err = f"{label}: {e}"
        results["errors"].append(err)
        logger.warning("schema_engine: %s", err)
        return False
    return True


def apply(conn: sqlite3.Connection, pending: SchemaDiff) -> dict:
    """Add what pending lists, then stamp PRAGMA user_version. Never drops."""
    results: dict = {"tables_created": [], "columns_added": [], "indexes_created": [], "errors": []}

    for table_name in pending.missing_tables:
        sql = create_table_sql(table_name, schema.TABLES[table_name])
        if _try(conn, sql, f"CREATE TABLE {table_name}", results):
            results["tables_created"].append(table_name)
            logger.info("schema_engine: created table %s", table_name)

    for table_name, col_name, col_ddl in pending.missing_columns:
        sql = f"ALTER TABLE [{table_name}] ADD COLUMN [{col_name}] {addable_column_ddl(col_ddl)}"
        if _try(conn, sql, f"ADD COLUMN {table_name}.{col_name}", results):
            results["columns_added"].append(f"{table_name}.{col_name}")
            logger.info("schema_engine: added column %s.%s", table_name, col_name)

    for index in pending.missing_indexes:
        if _try(conn, create_index_sql(*index), f"CREATE INDEX {index[0]}", results):
            results["indexes_created"].append(index[0])

    conn.execute(safe_sql.pragma_user_version_set(schema.SCHEMA_VERSION))
    results["schema_version"] = schema.SCHEMA_VERSION
    return results


def converge(conn: sqlite3.Connection) -> dict:
    """Bring an existing database up to farmops.schema without losing data."""
    return apply(conn, diff(conn))


def create_fresh(conn: sqlite3.Connection) -> dict:
    """Drop every table, then build the whole schema. New databases and tests only."""
    for name in _sqlite_names(conn, "table"):
        conn.execute(f"DROP TABLE IF EXISTS [{safe_sql.validate_identifier(name)}]")  # nosec B608
    return apply(conn, diff(conn))
