"""
Declarative Schema Definition — the single source of truth.

Every table and index of the farmops store lives here. The schema_engine
reads this and converges any database to match.

Adding a column = add one line here. The engine handles the rest.

Tables fall in two groups:
- Collaborator-owned, read by the core: farms, farm_phases, SOP tables,
  weekly schedules, activity logs.
- Core-owned: phase_activity_overrides, compliance_snapshots.

Dates are stored as "YYYY-MM-DD" text; timestamps as ISO-8601 UTC text.
No foreign keys: orphaned schedule rows are expected during phase archival
and are skipped at read time.
"""

from collections import OrderedDict

# =============================================================================
# Schema version: bump when you change this file
# =============================================================================
SCHEMA_VERSION = 3

# =============================================================================
# Table Definitions
#
# Format: TABLES[name] = {"columns": [(col_name, col_ddl), ...], "unique": [...]}
# =============================================================================

TABLES: dict[str, dict] = OrderedDict()

# ---------------------------------------------------------------------------
# Farm directory
# ---------------------------------------------------------------------------
TABLES["farms"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("name", "TEXT NOT NULL UNIQUE"),
        ("labor_rate_per_day", "REAL"),
    ],
}

TABLES["farm_phases"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("phase_id", "TEXT NOT NULL"),
        ("crop_code", "TEXT NOT NULL"),
        ("farm", "TEXT NOT NULL"),
        ("area_ha", "REAL NOT NULL DEFAULT 0"),
        ("sowing_date", "TEXT NOT NULL"),
        ("archived", "INTEGER NOT NULL DEFAULT 0"),
    ],
}

# ---------------------------------------------------------------------------
# SOP definitions, keyed by crop and week offset from sowing
# ---------------------------------------------------------------------------
TABLES["labor_sops"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("crop_code", "TEXT NOT NULL"),
        ("week", "INTEGER NOT NULL"),
        ("task", "TEXT NOT NULL"),
        ("no_of_casuals", "REAL NOT NULL DEFAULT 0"),
        ("no_of_days", "REAL NOT NULL DEFAULT 0"),
        ("cost_per_casual_day", "REAL NOT NULL DEFAULT 0"),
    ],
}

TABLES["nutri_sops"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("crop_code", "TEXT NOT NULL"),
        ("week", "INTEGER NOT NULL"),
        ("products", "TEXT NOT NULL"),
        ("active_ingredient", "TEXT NOT NULL DEFAULT ''"),
        ("rate_ha", "REAL NOT NULL DEFAULT 0"),
        ("unit_price", "REAL NOT NULL DEFAULT 0"),
        ("cost", "REAL NOT NULL DEFAULT 0"),
    ],
}

# ---------------------------------------------------------------------------
# Weekly schedules (replaced wholesale by the schedule editor)
# ---------------------------------------------------------------------------
TABLES["labor_schedules"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("week_start_date", "TEXT NOT NULL"),
        ("day_of_week", "INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6)"),
        ("labor_sop_id", "INTEGER NOT NULL"),
    ],
}

TABLES["nutri_schedules"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("week_start_date", "TEXT NOT NULL"),
        ("day_of_week", "INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6)"),
        ("nutri_sop_id", "INTEGER NOT NULL"),
    ],
}

TABLES["harvest_schedules"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("week_start_date", "TEXT NOT NULL"),
        ("day_of_week", "INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6)"),
        ("pledge_kg", "REAL"),
    ],
}

# ---------------------------------------------------------------------------
# Activity logs (immutable records of work performed)
# ---------------------------------------------------------------------------
TABLES["attendance_records"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("attendance_date", "TEXT NOT NULL"),
        ("activity", "TEXT NOT NULL"),
        ("casual_name", "TEXT"),
    ],
}

TABLES["feeding_records"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("application_date", "TEXT NOT NULL"),
        ("product", "TEXT NOT NULL"),
        ("quantity", "REAL"),
    ],
}

TABLES["harvest_logs"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("log_date", "TEXT NOT NULL"),
        ("quantity_kg", "REAL"),
    ],
}

# ---------------------------------------------------------------------------
# Core-owned: overrides and snapshots
# ---------------------------------------------------------------------------
TABLES["phase_activity_overrides"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("sop_id", "INTEGER NOT NULL"),
        ("sop_type", "TEXT NOT NULL CHECK (sop_type IN ('labor', 'nutri'))"),
        ("week_start", "TEXT NOT NULL"),
        ("action", "TEXT NOT NULL CHECK (action IN ('add', 'remove'))"),
        ("created_at", "TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"),
        ("updated_at", "TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"),
    ],
    "unique": [("farm_phase_id", "sop_id", "sop_type", "week_start")],
}

TABLES["compliance_snapshots"] = {
    "columns": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("week_start_date", "TEXT NOT NULL"),
        ("farm_phase_id", "INTEGER NOT NULL"),
        ("phase_id", "TEXT NOT NULL DEFAULT ''"),
        ("crop_code", "TEXT NOT NULL DEFAULT ''"),
        ("farm", "TEXT NOT NULL DEFAULT ''"),
        ("type", "TEXT NOT NULL"),
        ("task", "TEXT NOT NULL"),
        ("day_of_week", "INTEGER NOT NULL"),
        ("status", "TEXT NOT NULL"),
        ("saved_by", "TEXT NOT NULL"),
        ("saved_by_name", "TEXT"),
        ("snapshot_at", "TEXT NOT NULL"),
    ],
}

# =============================================================================
# Indexes: (name, table, columns, where)
# =============================================================================
INDEXES: list[tuple[str, str, str, str | None]] = [
    ("idx_farm_phases_farm", "farm_phases", "farm", None),
    ("idx_labor_sops_crop_week", "labor_sops", "crop_code, week", None),
    ("idx_nutri_sops_crop_week", "nutri_sops", "crop_code, week", None),
    ("idx_labor_schedules_week", "labor_schedules", "week_start_date, farm_phase_id", None),
    ("idx_nutri_schedules_week", "nutri_schedules", "week_start_date, farm_phase_id", None),
    ("idx_harvest_schedules_week", "harvest_schedules", "week_start_date, farm_phase_id", None),
    ("idx_attendance_phase_date", "attendance_records", "farm_phase_id, attendance_date", None),
    ("idx_feeding_phase_date", "feeding_records", "farm_phase_id, application_date", None),
    ("idx_harvest_logs_phase_date", "harvest_logs", "farm_phase_id, log_date", None),
    ("idx_overrides_week", "phase_activity_overrides", "week_start, farm_phase_id", None),
    ("idx_snapshots_week", "compliance_snapshots", "week_start_date", None),
    ("idx_snapshots_week_farm", "compliance_snapshots", "week_start_date, farm", None),
]
