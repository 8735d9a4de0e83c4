"""
Tests for schema convergence and the SQL builders it relies on.
"""

import sqlite3

import pytest

from farmops import safe_sql, schema, schema_engine
from farmops.observability import HealthChecker, HealthStatus


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:", isolation_level=None)
    yield connection
    connection.close()


class TestAddableColumnDdl:
    @pytest.mark.parametrize(
        "ddl,expected",
        [
            ("INTEGER PRIMARY KEY AUTOINCREMENT", "INTEGER"),
            ("TEXT NOT NULL UNIQUE", "TEXT NOT NULL DEFAULT ''"),
            ("TEXT NOT NULL CHECK (action IN ('add', 'remove'))", "TEXT NOT NULL DEFAULT ''"),
            ("REAL NOT NULL DEFAULT 0", "REAL NOT NULL DEFAULT 0"),
            ("TEXT", "TEXT"),
        ],
    )
    def test_rewrites(self, ddl, expected):
        assert schema_engine.addable_column_ddl(ddl) == expected


class TestConverge:
    def test_empty_database_gets_everything(self, conn):
        results = schema_engine.converge(conn)
        assert results["tables_created"] == list(schema.TABLES)
        assert results["errors"] == []
        assert conn.execute("PRAGMA user_version").fetchone()[0] == schema.SCHEMA_VERSION
        assert schema_engine.diff(conn).up_to_date

    def test_idempotent(self, conn):
        schema_engine.converge(conn)
        again = schema_engine.converge(conn)
        assert again["tables_created"] == []
        assert again["columns_added"] == []
        assert again["indexes_created"] == []

    def test_adds_missing_column_and_keeps_rows(self, conn):
        conn.execute("CREATE TABLE farms (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)")
        conn.execute("INSERT INTO farms (name) VALUES ('Musha')")

        pending = schema_engine.diff(conn)
        assert ("farms", "labor_rate_per_day", "REAL") in pending.missing_columns
        assert "farms" not in pending.missing_tables

        results = schema_engine.apply(conn, pending)
        assert "farms.labor_rate_per_day" in results["columns_added"]
        assert conn.execute("SELECT name, labor_rate_per_day FROM farms").fetchall() == [("Musha", None)]

    def test_create_fresh_drops_data(self, conn):
        schema_engine.converge(conn)
        conn.execute("INSERT INTO farms (name) VALUES ('Musha')")
        schema_engine.create_fresh(conn)
        assert conn.execute("SELECT COUNT(*) FROM farms").fetchone()[0] == 0


class TestSafeSql:
    def test_select(self):
        sql = safe_sql.select("farm_phases", "id", where="farm = ?", order_by="id", limit=1)
        assert sql == "SELECT id FROM farm_phases WHERE farm = ? ORDER BY id LIMIT 1"

    def test_upsert(self):
        sql = safe_sql.upsert("t", ["a", "b", "c"], conflict=["a"], update=["c"])
        assert sql == "INSERT INTO t (a, b, c) VALUES (?, ?, ?) ON CONFLICT(a) DO UPDATE SET c = excluded.c"

    def test_in_clause(self):
        assert safe_sql.in_clause("farm_phase_id", 3) == "farm_phase_id IN (?, ?, ?)"
        with pytest.raises(ValueError):
            safe_sql.in_clause("farm_phase_id", 0)

    @pytest.mark.parametrize("name", ["farms; DROP TABLE farms", "1farm", "", "farm-phases"])
    def test_rejects_unsafe_identifiers(self, name):
        with pytest.raises(ValueError):
            safe_sql.select(name)

    def test_delete_requires_condition(self):
        with pytest.raises(ValueError):
            safe_sql.delete("farms", "")


class TestHealth:
    def test_fresh_store_is_healthy(self, empty_db):
        report = HealthChecker(empty_db).run_all()
        assert report.status == HealthStatus.HEALTHY

    def test_missing_table_degrades(self, empty_db):
        with empty_db.connect() as c:
            c.execute("DROP TABLE harvest_logs")
        report = HealthChecker(empty_db).run_all()
        assert report.status == HealthStatus.DEGRADED
        check = next(c for c in report.to_dict()["checks"] if c["name"] == "schema_version")
        assert check["missing_tables"] == ["harvest_logs"]
