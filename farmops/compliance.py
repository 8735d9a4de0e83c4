"""
Weekly compliance: live computation and snapshot precedence.

Live computation runs the pipeline

    schedule resolver -> activity matcher -> status engine

over one week's reads. Which of live or snapshot data answers a query is
decided here, at the query boundary, by composing sources:

    SnapshotFirstSource(SnapshotComplianceSource, LiveComplianceSource)

A saved snapshot wins unless the caller forces live data. The resolver and
status engine never look at snapshots.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Protocol

from farmops import daily_summary, farm_calendar
from farmops.activity_matcher import ActivityMatcher, normalize
from farmops.errors import InvalidInput
from farmops.models import (
    ActivityLog,
    ComplianceEntry,
    ComplianceSummary,
    DueTask,
    EntryType,
    FarmPhase,
)
from farmops.overrides import OverrideSet
from farmops.repository import FarmRepository, distinct_ids
from farmops.schedule_resolver import SopCatalog, WeekSchedule, resolve_week
from farmops.snapshot_store import SnapshotInfo, SnapshotSaveResult, SnapshotStore
from farmops.status_engine import compute_status, finalize_for_snapshot

logger = logging.getLogger(__name__)

SOURCE_LIVE = "live"
SOURCE_SNAPSHOT = "snapshot"


# =============================================================================
# QUERY / REPORT
# =============================================================================


def parse_phase_ids(value: str | Iterable[Any] | None) -> list[int]:
    """
    Phase ids from "1,2,3" or an iterable. Non-numeric items are dropped.

    Returns [] for None or an empty value; callers decide whether that is
    acceptable.
    """
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else value
    ids = []
    for item in items:
        try:
            ids.append(int(str(item).strip()))
        except ValueError:
            continue
    return distinct_ids(ids)


@dataclass(frozen=True)
class ComplianceQuery:
    """One week of compliance, for a set of phases or for a whole farm."""

    week_start: date
    farm_phase_ids: tuple[int, ...] = ()
    farm: str | None = None
    force_live: bool = False

    @classmethod
    def build(
        cls,
        week_start: str | date | None,
        farm_phase_ids: str | Iterable[Any] | None = None,
        farm: str | None = None,
        force_live: bool = False,
    ) -> "ComplianceQuery":
        """Validate raw inputs. Raises InvalidInput."""
        ids = parse_phase_ids(farm_phase_ids)
        farm = farm.strip() if farm else None
        if not ids and not farm:
            raise InvalidInput("farmPhaseIds (or farm) and weekStart are required")
        if week_start is None or (isinstance(week_start, str) and not week_start.strip()):
            raise InvalidInput("farmPhaseIds (or farm) and weekStart are required")
        return cls(
            week_start=farm_calendar.parse_week_start(week_start),
            farm_phase_ids=tuple(ids),
            farm=farm,
            force_live=bool(force_live),
        )


@dataclass(frozen=True)
class ComplianceReport:
    entries: list[ComplianceEntry] = field(default_factory=list)
    source: str = SOURCE_LIVE
    snapshot_at: str | None = None

    @property
    def summary(self) -> ComplianceSummary:
        return ComplianceSummary.from_entries(self.entries)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "entries": [e.to_dict() for e in self.entries],
            "summary": self.summary.to_dict(),
            "source": self.source,
        }
        if self.snapshot_at is not None:
            result["snapshotAt"] = self.snapshot_at
        return result


# =============================================================================
# LIVE COMPUTATION
# =============================================================================


@dataclass
class ComplianceInputs:
    """Everything one week's live computation reads."""

    phases: list[FarmPhase]
    catalog: SopCatalog
    schedule: WeekSchedule
    overrides: OverrideSet
    attendance: list[ActivityLog] = field(default_factory=list)
    feeding: list[ActivityLog] = field(default_factory=list)
    harvest: list[ActivityLog] = field(default_factory=list)


def _logs_by_day(logs: Iterable[ActivityLog], week_start: date) -> dict[tuple[int, int], list[str]]:
    """(phase id, day of week) -> descriptors, for logs inside the week."""
    end = farm_calendar.week_end(week_start)
    index: dict[tuple[int, int], list[str]] = defaultdict(list)
    for log in logs:
        if week_start <= log.log_date < end:
            index[(log.farm_phase_id, farm_calendar.day_of_week(log.log_date))].append(log.descriptor)
    return index


class LiveCompliance:
    """Computes entries from schedules, SOPs, overrides and activity logs."""

    def __init__(self, matcher: ActivityMatcher | None = None):
        self.matcher = matcher or ActivityMatcher()

    def compute(self, inputs: ComplianceInputs, week_start: date, now: datetime | None = None) -> ComplianceReport:
        labor = _logs_by_day(inputs.attendance, week_start)
        feeding = _logs_by_day(inputs.feeding, week_start)
        harvest = _logs_by_day(inputs.harvest, week_start)
        phases = {p.id: p for p in inputs.phases}

        entries = []
        for task in resolve_week(inputs.phases, inputs.catalog, inputs.schedule, inputs.overrides):
            key = (task.farm_phase_id, task.day_of_week)
            if task.type == EntryType.LABOR:
                has_log = self.matcher.any_matches(labor.get(key, ()), task.task)
            elif task.type == EntryType.NUTRI:
                has_log = _product_logged(feeding.get(key, ()), task)
            else:
                has_log = key in harvest

            phase = phases[task.farm_phase_id]
            entries.append(
                ComplianceEntry(
                    type=task.type,
                    farm_phase_id=phase.id,
                    phase_id=phase.phase_id,
                    crop_code=phase.crop_code,
                    farm=phase.farm,
                    task=task.task,
                    day_of_week=task.day_of_week,
                    status=compute_status(task.day_of_week, has_log, week_start, now),
                )
            )
        return ComplianceReport(entries=entries, source=SOURCE_LIVE)


def _product_logged(products: Iterable[str], task: DueTask) -> bool:
    wanted = normalize(task.task)
    return any(normalize(p) == wanted for p in products)


# =============================================================================
# SOURCES
# =============================================================================


class ComplianceSource(Protocol):
    def fetch(self, query: ComplianceQuery) -> ComplianceReport | None: ...


class LiveComplianceSource:
    """Reads one week from the repository and computes it."""

    def __init__(self, repository: FarmRepository, live: LiveCompliance | None = None, now_fn=None):
        self.repository = repository
        self.live = live or LiveCompliance()
        self._now_fn = now_fn

    def _now(self) -> datetime | None:
        return self._now_fn() if self._now_fn else None

    def phases_for(self, query: ComplianceQuery) -> list[FarmPhase]:
        if not query.farm:
            return self.repository.list_phases(ids=list(query.farm_phase_ids))
        # Farm-wide, as for snapshots: the farm wins over phase ids.
        # Only phases already sown by the requested week take part.
        return [
            p
            for p in self.repository.list_phases(farm=query.farm)
            if farm_calendar.weeks_since_sowing(p.sowing_date, query.week_start) >= 0
        ]

    def load_inputs(self, phases: Sequence[FarmPhase], week_start: date) -> ComplianceInputs:
        ids = [p.id for p in phases]
        return ComplianceInputs(
            phases=list(phases),
            catalog=self.repository.sop_catalog(),
            schedule=self.repository.week_schedule(week_start, ids),
            overrides=OverrideSet(self.repository.overrides(week_start, ids), week_start=week_start),
            attendance=self.repository.attendance_logs(ids, week_start),
            feeding=self.repository.feeding_logs(ids, week_start),
            harvest=self.repository.harvest_logs(ids, week_start),
        )

    def compute_for(self, phases: Sequence[FarmPhase], week_start: date) -> ComplianceReport:
        inputs = self.load_inputs(phases, week_start)
        return self.live.compute(inputs, week_start, self._now())

    def fetch(self, query: ComplianceQuery) -> ComplianceReport:
        report = self.compute_for(self.phases_for(query), query.week_start)
        logger.debug("Live compliance for %s: %d entries", query.week_start, len(report.entries))
        return report


class SnapshotComplianceSource:
    """Serves a saved snapshot; None when the week has none."""

    def __init__(self, snapshots: SnapshotStore):
        self.snapshots = snapshots

    def fetch(self, query: ComplianceQuery) -> ComplianceReport | None:
        snapshot = self.snapshots.read(
            query.week_start,
            farm=query.farm,
            farm_phase_ids=list(query.farm_phase_ids) or None,
        )
        if snapshot is None:
            return None
        return ComplianceReport(entries=snapshot.entries, source=SOURCE_SNAPSHOT, snapshot_at=snapshot.snapshot_at)


class SnapshotFirstSource:
    """Serve primary (the snapshot) if it has the week, else fallback (live)."""

    def __init__(self, primary: ComplianceSource, fallback: ComplianceSource):
        self.primary = primary
        self.fallback = fallback

    def fetch(self, query: ComplianceQuery) -> ComplianceReport | None:
        if not query.force_live:
            report = self.primary.fetch(query)
            if report is not None:
                return report
        return self.fallback.fetch(query)


# =============================================================================
# SERVICE
# =============================================================================


class ComplianceService:
    """Entry point for the API and CLI."""

    def __init__(
        self,
        repository: FarmRepository,
        snapshots: SnapshotStore,
        matcher: ActivityMatcher | None = None,
        now_fn=None,
    ):
        self.repository = repository
        self.snapshots = snapshots
        self.live = LiveComplianceSource(repository, LiveCompliance(matcher), now_fn=now_fn)
        self.source = SnapshotFirstSource(SnapshotComplianceSource(snapshots), self.live)
        self._now_fn = now_fn

    def _now(self) -> datetime | None:
        return self._now_fn() if self._now_fn else None

    def weekly_compliance(self, query: ComplianceQuery) -> ComplianceReport:
        return self.source.fetch(query)

    def snapshot_status(self, week_start: date) -> SnapshotInfo | None:
        return self.snapshots.exists(week_start)

    def save_snapshot(
        self,
        week_start: date,
        saved_by: str | int,
        saved_by_name: str | None = None,
        entries: Sequence[ComplianceEntry] | None = None,
    ) -> SnapshotSaveResult:
        """
        Freeze a week.

        Without entries, the week is computed live for every phase, archived
        ones included, so the snapshot covers the whole operation. Either way
        open statuses of a past week are closed out as missed.
        """
        now = self._now()
        if entries is None:
            phases = self.repository.list_phases(include_archived=True)
            entries = self.live.compute_for(phases, week_start).entries
        entries = finalize_for_snapshot(entries, week_start, now)
        return self.snapshots.save(week_start, entries, saved_by, saved_by_name, now=now)

    def delete_snapshot(self, week_start: date) -> int:
        return self.snapshots.delete(week_start)

    def daily_summary(self, target_date: date | None = None) -> daily_summary.DailySummary:
        target_date = target_date or daily_summary.default_report_date(self._now())
        week_start = farm_calendar.monday_of(target_date)
        phases = self.repository.list_phases(include_archived=True)
        ids = [p.id for p in phases]
        return daily_summary.summarize(
            phases,
            self.repository.sop_catalog(),
            self.repository.week_schedule(week_start, ids),
            OverrideSet(self.repository.overrides(week_start, ids), week_start=week_start),
            self.repository.farm_labor_rates(),
            target_date,
        )
