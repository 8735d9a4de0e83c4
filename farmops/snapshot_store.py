"""
Compliance Snapshots — immutable, whole-week copies of computed compliance.

Once a week is snapshotted, the snapshot is authoritative over live
computation: it records what was true when it was saved, even if the
phase's schedule or sowing date changed afterwards. A week's entries are
only ever replaced as a unit (delete-all-then-insert in one transaction)
or deleted as a unit, which reverts the week to live computation.
"""

import logging
import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from farmops import config, safe_sql
from farmops.db import Database
from farmops.errors import DependencyFailure, InvalidInput
from farmops.models import ComplianceEntry, ComplianceSummary, EntryType, Status

logger = logging.getLogger(__name__)

TABLE = "compliance_snapshots"

_ENTRY_COLUMNS = [
    "week_start_date",
    "farm_phase_id",
    "phase_id",
    "crop_code",
    "farm",
    "type",
    "task",
    "day_of_week",
    "status",
    "saved_by",
    "saved_by_name",
    "snapshot_at",
]


@dataclass(frozen=True)
class SnapshotInfo:
    """Metadata probe result for a week that has a snapshot."""

    week_start: date
    snapshot_at: str
    saved_by: str
    saved_by_name: str
    summary: ComplianceSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "exists": True,
            "snapshotAt": self.snapshot_at,
            "savedByName": self.saved_by_name,
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class SnapshotRead:
    week_start: date
    snapshot_at: str
    entries: list[ComplianceEntry] = field(default_factory=list)

    @property
    def summary(self) -> ComplianceSummary:
        return ComplianceSummary.from_entries(self.entries)


@dataclass(frozen=True)
class SnapshotSaveResult:
    count: int
    snapshot_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "count": self.count, "snapshotAt": self.snapshot_at}


def _utc_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _row_to_entry(row) -> ComplianceEntry:
    return ComplianceEntry(
        type=EntryType(row["type"]),
        farm_phase_id=row["farm_phase_id"],
        phase_id=row["phase_id"],
        crop_code=row["crop_code"],
        farm=row["farm"],
        task=row["task"],
        day_of_week=row["day_of_week"],
        status=Status(row["status"]),
    )


class SnapshotStore:
    """Persists, reads and deletes per-week compliance snapshots."""

    def __init__(self, db: Database):
        self.db = db

    def exists(self, week_start: date) -> SnapshotInfo | None:
        """Metadata for the week's snapshot, or None when there is none."""
        week = week_start.isoformat()
        try:
            with self.db.read_view() as conn:
                first = conn.execute(
                    safe_sql.select(
                        TABLE,
                        "snapshot_at, saved_by, saved_by_name",
                        where="week_start_date = ?",
                        order_by="id",
                        limit=1,
                    ),
                    [week],
                ).fetchone()
                if first is None:
                    return None
                statuses = [
                    row["status"]
                    for row in conn.execute(safe_sql.select(TABLE, "status", where="week_start_date = ?"), [week])
                ]
        except sqlite3.Error as e:
            logger.exception("Failed to check compliance snapshot for %s", week)
            raise DependencyFailure(f"Failed to check snapshot: {e}") from e

        return SnapshotInfo(
            week_start=week_start,
            snapshot_at=first["snapshot_at"],
            saved_by=first["saved_by"],
            saved_by_name=first["saved_by_name"] or config.UNKNOWN_SAVER_NAME,
            summary=ComplianceSummary.from_statuses(statuses),
        )

    def read(
        self,
        week_start: date,
        farm: str | None = None,
        farm_phase_ids: Sequence[int] | None = None,
    ) -> SnapshotRead | None:
        """
        Entries of the week's snapshot, in the order they were saved.

        A farm filter matches the denormalized farm name, because a phase's
        live schedule may have changed since the snapshot was taken. Without
        a farm, an optional phase-id list narrows the entries. Returns None
        when the week has no snapshot at all; a snapshot with nothing for
        the filter is still a snapshot and comes back empty.
        """
        week = week_start.isoformat()
        conditions = ["week_start_date = ?"]
        params: list[Any] = [week]
        if farm is not None:
            conditions.append("farm = ?")
            params.append(farm)
        elif farm_phase_ids:
            conditions.append(safe_sql.in_clause("farm_phase_id", len(farm_phase_ids)))
            params.extend(farm_phase_ids)

        try:
            with self.db.read_view() as conn:
                first = conn.execute(
                    safe_sql.select(TABLE, "snapshot_at", where="week_start_date = ?", order_by="id", limit=1),
                    [week],
                ).fetchone()
                if first is None:
                    return None
                rows = conn.execute(
                    safe_sql.select(TABLE, where=safe_sql.where_and(conditions), order_by="id"), params
                ).fetchall()
        except sqlite3.Error as e:
            logger.exception("Failed to read compliance snapshot for %s", week)
            raise DependencyFailure(f"Failed to read snapshot: {e}") from e

        return SnapshotRead(
            week_start=week_start,
            snapshot_at=first["snapshot_at"],
            entries=[_row_to_entry(r) for r in rows],
        )

    def save(
        self,
        week_start: date,
        entries: Iterable[ComplianceEntry],
        saved_by: str | int,
        saved_by_name: str | None = None,
        now: datetime | None = None,
    ) -> SnapshotSaveResult:
        """
        Replace the week's snapshot with entries, atomically.

        Delete and insert run in one BEGIN IMMEDIATE transaction: concurrent
        saves for the same week serialize, and readers never see a mix of
        old and new rows.
        """
        entries = list(entries)
        if not entries:
            raise InvalidInput("weekStartDate and non-empty entries array are required")
        if saved_by is None or str(saved_by).strip() == "":
            raise InvalidInput("savedBy is required")

        snapshot_at = _utc_timestamp(now)
        week = week_start.isoformat()
        records = [
            (
                week,
                e.farm_phase_id,
                e.phase_id,
                e.crop_code,
                e.farm,
                e.type.value,
                e.task,
                e.day_of_week,
                e.status.value,
                str(saved_by),
                saved_by_name,
                snapshot_at,
            )
            for e in entries
        ]

        try:
            with self.db.transaction() as conn:
                replaced = conn.execute(safe_sql.delete(TABLE, where="week_start_date = ?"), [week]).rowcount
                conn.executemany(safe_sql.insert(TABLE, _ENTRY_COLUMNS), records)
        except sqlite3.Error as e:
            logger.exception("Failed to save compliance snapshot for %s", week)
            raise DependencyFailure(f"Failed to save snapshot: {e}") from e

        logger.info(
            "Saved compliance snapshot for %s: %d entries (replaced %d) by %s",
            week,
            len(records),
            replaced,
            saved_by,
            extra={"week_start": week, "entry_count": len(records)},
        )
        return SnapshotSaveResult(count=len(records), snapshot_at=snapshot_at)

    def delete(self, week_start: date) -> int:
        """Remove the week's snapshot. Returns rows deleted; 0 means there was none."""
        week = week_start.isoformat()
        try:
            with self.db.transaction() as conn:
                deleted = conn.execute(safe_sql.delete(TABLE, where="week_start_date = ?"), [week]).rowcount
        except sqlite3.Error as e:
            logger.exception("Failed to delete compliance snapshot for %s", week)
            raise DependencyFailure(f"Failed to delete snapshot: {e}") from e

        if deleted:
            logger.info("Deleted compliance snapshot for %s (%d entries)", week, deleted)
        return deleted

