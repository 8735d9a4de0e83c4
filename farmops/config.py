"""
Centralized configuration for farmops.

All values that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# Farm calendar
# ============================================================

FARM_UTC_OFFSET_HOURS: int = int(os.environ.get("FARMOPS_UTC_OFFSET_HOURS", "2"))
"""Fixed civil offset of the farms (EAT, UTC+2, no DST). Drives "today"."""

FARM_TIMEZONE_NAME: str = os.environ.get("FARMOPS_TIMEZONE_NAME", "EAT")

# ============================================================
# Compliance
# ============================================================

TASK_ALIASES_PATH: str | None = os.environ.get("FARMOPS_TASK_ALIASES") or None
"""Optional YAML alias table. Unset means the built-in table is used."""

HARVEST_TASK_NAME: str = "Harvest"
"""Task label for harvest-schedule rows, which have no SOP."""

UNKNOWN_SAVER_NAME: str = "Unknown"
"""Shown for snapshots saved without a display name."""

# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("FARMOPS_LOG_LEVEL", "INFO")

_log_json = os.environ.get("FARMOPS_LOG_JSON")
LOG_JSON: bool | None = None if _log_json is None else _log_json.lower() in ("1", "true", "yes")
"""None = auto-detect (JSON when stderr is not a TTY)."""

# ============================================================
# API server
# ============================================================

CORS_ORIGINS: list[str] = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
]

API_HOST: str = os.environ.get("FARMOPS_HOST", "127.0.0.1")
API_PORT: int = int(os.environ.get("FARMOPS_PORT", "8420"))
