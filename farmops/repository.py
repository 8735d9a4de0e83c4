"""
Farm data repository — reads from collaborator-owned tables, writes overrides.

Every read either returns complete data or raises DependencyFailure. There
is no fallback to empty results: partial data would under-report compliance
silently, which is worse than a visible failure.
"""

import logging
import sqlite3
from collections.abc import Generator, Iterable, Sequence
from contextlib import contextmanager
from datetime import date, datetime, timezone

from farmops import farm_calendar, safe_sql
from farmops.db import Database
from farmops.errors import DependencyFailure
from farmops.models import (
    ActivityLog,
    FarmPhase,
    HarvestScheduleEntry,
    LaborSop,
    NutriSop,
    OverrideAction,
    PhaseOverride,
    ScheduleEntry,
    SopType,
)
from farmops.schedule_resolver import SopCatalog, WeekSchedule

logger = logging.getLogger(__name__)


@contextmanager
def _dependency(operation: str) -> Generator[None, None, None]:
    """Re-raise storage errors as DependencyFailure."""
    try:
        yield
    except sqlite3.Error as e:
        logger.exception("Storage failure during %s", operation)
        raise DependencyFailure(f"Failed to {operation}: {e}") from e


def _as_date(value: str) -> date:
    return date.fromisoformat(str(value)[:10])


def _phase_filter(column: str, phase_ids: Sequence[int] | None) -> tuple[list[str], list]:
    if phase_ids is None:
        return [], []
    return [safe_sql.in_clause(column, len(phase_ids))], list(phase_ids)


class FarmRepository:
    """Typed reads over the farmops store."""

    def __init__(self, db: Database):
        self.db = db

    # ==================== Farm directory ====================

    def list_phases(
        self,
        ids: Sequence[int] | None = None,
        farm: str | None = None,
        include_archived: bool = True,
    ) -> list[FarmPhase]:
        if ids is not None and not ids:
            return []
        conditions, params = _phase_filter("id", ids)
        if farm is not None:
            conditions.append("farm = ?")
            params.append(farm)
        if not include_archived:
            conditions.append("archived = 0")
        sql = safe_sql.select("farm_phases", where=safe_sql.where_and(conditions) or None, order_by="id")
        with _dependency("read farm phases"):
            rows = self.db.fetch_all(sql, params)
        return [
            FarmPhase(
                id=row["id"],
                phase_id=row["phase_id"],
                crop_code=row["crop_code"],
                farm=row["farm"],
                area_ha=float(row["area_ha"] or 0),
                sowing_date=_as_date(row["sowing_date"]),
                archived=bool(row["archived"]),
            )
            for row in rows
        ]

    def farm_labor_rates(self) -> dict[str, float]:
        """Per-farm labor rate overrides; farms without a positive rate are absent."""
        sql = safe_sql.select("farms", "name, labor_rate_per_day", where="labor_rate_per_day IS NOT NULL")
        with _dependency("read farm labor rates"):
            rows = self.db.fetch_all(sql)
        return {
            row["name"]: float(row["labor_rate_per_day"])
            for row in rows
            if float(row["labor_rate_per_day"]) > 0
        }

    # ==================== SOPs ====================

    def sop_catalog(self) -> SopCatalog:
        with _dependency("read SOP tables"):
            labor_rows = self.db.fetch_all(safe_sql.select("labor_sops", order_by="id"))
            nutri_rows = self.db.fetch_all(safe_sql.select("nutri_sops", order_by="id"))
        labor = [
            LaborSop(
                id=r["id"],
                crop_code=r["crop_code"],
                week=int(r["week"]),
                task=r["task"],
                no_of_casuals=float(r["no_of_casuals"] or 0),
                no_of_days=float(r["no_of_days"] or 0),
                cost_per_casual_day=float(r["cost_per_casual_day"] or 0),
            )
            for r in labor_rows
        ]
        nutri = [
            NutriSop(
                id=r["id"],
                crop_code=r["crop_code"],
                week=int(r["week"]),
                products=r["products"],
                active_ingredient=r["active_ingredient"] or "",
                rate_ha=float(r["rate_ha"] or 0),
                unit_price=float(r["unit_price"] or 0),
                cost=float(r["cost"] or 0),
            )
            for r in nutri_rows
        ]
        return SopCatalog(labor=labor, nutri=nutri)

    # ==================== Weekly schedules ====================

    def week_schedule(self, week_start: date, phase_ids: Sequence[int] | None = None) -> WeekSchedule:
        if phase_ids is not None and not phase_ids:
            return WeekSchedule(week_start)

        conditions, params = _phase_filter("farm_phase_id", phase_ids)
        where = safe_sql.where_and(["week_start_date = ?"] + conditions)
        params = [week_start.isoformat()] + params

        with _dependency("read weekly schedules"):
            labor_rows = self.db.fetch_all(safe_sql.select("labor_schedules", where=where, order_by="id"), params)
            nutri_rows = self.db.fetch_all(safe_sql.select("nutri_schedules", where=where, order_by="id"), params)
            harvest_rows = self.db.fetch_all(safe_sql.select("harvest_schedules", where=where, order_by="id"), params)

        return WeekSchedule(
            week_start,
            labor=[
                ScheduleEntry(r["farm_phase_id"], _as_date(r["week_start_date"]), r["day_of_week"], r["labor_sop_id"])
                for r in labor_rows
            ],
            nutri=[
                ScheduleEntry(r["farm_phase_id"], _as_date(r["week_start_date"]), r["day_of_week"], r["nutri_sop_id"])
                for r in nutri_rows
            ],
            harvest=[
                HarvestScheduleEntry(
                    r["farm_phase_id"], _as_date(r["week_start_date"]), r["day_of_week"], r["pledge_kg"]
                )
                for r in harvest_rows
            ],
        )

    # ==================== Activity logs ====================

    def _logs(
        self,
        table: str,
        date_column: str,
        descriptor_column: str | None,
        phase_ids: Sequence[int],
        week_start: date,
    ) -> list[ActivityLog]:
        if not phase_ids:
            return []
        conditions, params = _phase_filter("farm_phase_id", phase_ids)
        conditions += [f"{date_column} >= ?", f"{date_column} < ?"]
        params += [week_start.isoformat(), farm_calendar.week_end(week_start).isoformat()]
        sql = safe_sql.select(table, where=safe_sql.where_and(conditions), order_by="id")
        with _dependency(f"read {table}"):
            rows = self.db.fetch_all(sql, params)
        return [
            ActivityLog(
                farm_phase_id=r["farm_phase_id"],
                log_date=_as_date(r[date_column]),
                descriptor=(r[descriptor_column] or "") if descriptor_column else "",
            )
            for r in rows
        ]

    def attendance_logs(self, phase_ids: Sequence[int], week_start: date) -> list[ActivityLog]:
        return self._logs("attendance_records", "attendance_date", "activity", phase_ids, week_start)

    def feeding_logs(self, phase_ids: Sequence[int], week_start: date) -> list[ActivityLog]:
        return self._logs("feeding_records", "application_date", "product", phase_ids, week_start)

    def harvest_logs(self, phase_ids: Sequence[int], week_start: date) -> list[ActivityLog]:
        return self._logs("harvest_logs", "log_date", None, phase_ids, week_start)

    # ==================== Overrides ====================

    def overrides(
        self,
        week_start: date,
        phase_ids: Sequence[int] | None = None,
        sop_type: SopType | None = None,
    ) -> list[PhaseOverride]:
        if phase_ids is not None and not phase_ids:
            return []
        conditions, params = _phase_filter("farm_phase_id", phase_ids)
        conditions.insert(0, "week_start = ?")
        params.insert(0, week_start.isoformat())
        if sop_type is not None:
            conditions.append("sop_type = ?")
            params.append(sop_type.value)
        sql = safe_sql.select(
            "phase_activity_overrides", where=safe_sql.where_and(conditions), order_by="farm_phase_id, sop_id"
        )
        with _dependency("read phase overrides"):
            rows = self.db.fetch_all(sql, params)
        return [
            PhaseOverride(
                farm_phase_id=r["farm_phase_id"],
                sop_id=r["sop_id"],
                sop_type=SopType(r["sop_type"]),
                week_start=_as_date(r["week_start"]),
                action=OverrideAction(r["action"]),
            )
            for r in rows
        ]

    def upsert_override(self, override: PhaseOverride) -> PhaseOverride:
        """Insert or replace the action for the override's key. Last write wins."""
        now = datetime.now(timezone.utc).isoformat()
        sql = safe_sql.upsert(
            "phase_activity_overrides",
            ["farm_phase_id", "sop_id", "sop_type", "week_start", "action", "created_at", "updated_at"],
            conflict=["farm_phase_id", "sop_id", "sop_type", "week_start"],
            update=["action", "updated_at"],
        )
        params = [
            override.farm_phase_id,
            override.sop_id,
            override.sop_type.value,
            override.week_start.isoformat(),
            override.action.value,
            now,
            now,
        ]
        with _dependency("save phase override"):
            self.db.execute(sql, params)
        logger.info(
            "Override %s %s SOP %s for phase %s week %s",
            override.action.value,
            override.sop_type.value,
            override.sop_id,
            override.farm_phase_id,
            override.week_start,
        )
        return override

    def delete_override(self, farm_phase_id: int, sop_id: int, sop_type: SopType, week_start: date) -> bool:
        sql = safe_sql.delete(
            "phase_activity_overrides",
            where="farm_phase_id = ? AND sop_id = ? AND sop_type = ? AND week_start = ?",
        )
        with _dependency("delete phase override"):
            count = self.db.execute(sql, [farm_phase_id, sop_id, sop_type.value, week_start.isoformat()])
        return count > 0


def distinct_ids(values: Iterable[int]) -> list[int]:
    """Order-preserving de-duplication of phase ids."""
    return list(dict.fromkeys(values))
