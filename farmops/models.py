"""
Domain types for compliance reconciliation.

Rows read from collaborators (phases, SOPs, schedules, logs, overrides) are
frozen dataclasses. ComplianceEntry is the unit returned to callers, whether
freshly computed or read back from a snapshot.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class SopType(str, Enum):
    """SOP tables that support overrides."""

    LABOR = "labor"
    NUTRI = "nutri"


class EntryType(str, Enum):
    """Kinds of compliance rows."""

    LABOR = "labor"
    NUTRI = "nutri"
    HARVEST = "harvest"


class Status(str, Enum):
    """Completion status of a due task."""

    DONE = "done"
    MISSED = "missed"
    PENDING = "pending"
    UPCOMING = "upcoming"


class OverrideAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


# Sort rank so resolver output is stable across types
TYPE_ORDER = {EntryType.LABOR: 0, EntryType.NUTRI: 1, EntryType.HARVEST: 2}


@dataclass(frozen=True)
class FarmPhase:
    """A planted block. Owned by crop management; read-only here."""

    id: int
    phase_id: str
    crop_code: str
    farm: str
    area_ha: float
    sowing_date: date
    archived: bool = False


@dataclass(frozen=True)
class LaborSop:
    id: int
    crop_code: str
    week: int
    task: str
    no_of_casuals: float = 0.0
    no_of_days: float = 0.0
    cost_per_casual_day: float = 0.0

    @property
    def name(self) -> str:
        return self.task


@dataclass(frozen=True)
class NutriSop:
    id: int
    crop_code: str
    week: int
    products: str
    active_ingredient: str = ""
    rate_ha: float = 0.0
    unit_price: float = 0.0
    cost: float = 0.0  # per hectare

    @property
    def name(self) -> str:
        return self.products


@dataclass(frozen=True)
class ScheduleEntry:
    """One labor or nutrition SOP placed on a day of a week."""

    farm_phase_id: int
    week_start: date
    day_of_week: int
    sop_id: int


@dataclass(frozen=True)
class HarvestScheduleEntry:
    farm_phase_id: int
    week_start: date
    day_of_week: int
    pledge_kg: float | None = None


@dataclass(frozen=True)
class ActivityLog:
    """
    Work actually performed.

    descriptor is the attendance activity text for labor, the product name
    for feeding records, and empty for harvest logs.
    """

    farm_phase_id: int
    log_date: date
    descriptor: str = ""


@dataclass(frozen=True)
class PhaseOverride:
    farm_phase_id: int
    sop_id: int
    sop_type: SopType
    week_start: date
    action: OverrideAction

    def to_dict(self) -> dict[str, Any]:
        return {
            "farmPhaseId": self.farm_phase_id,
            "sopId": self.sop_id,
            "sopType": self.sop_type.value,
            "weekStart": self.week_start.isoformat(),
            "action": self.action.value,
        }


@dataclass(frozen=True)
class DueTask:
    """An SOP instance (or harvest pledge) due on a specific day of a week."""

    type: EntryType
    farm_phase_id: int
    sop_id: int | None
    task: str
    day_of_week: int
    sop: LaborSop | NutriSop | None = field(default=None, compare=False)

    @property
    def sort_key(self) -> tuple:
        # Harvest tasks have no SOP and sort after every SOP task of the phase
        return (
            self.farm_phase_id,
            self.sop_id is None,
            self.sop_id or 0,
            self.day_of_week,
            TYPE_ORDER[self.type],
        )


@dataclass(frozen=True)
class ComplianceEntry:
    type: EntryType
    farm_phase_id: int
    phase_id: str
    crop_code: str
    farm: str
    task: str
    day_of_week: int
    status: Status

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "farmPhaseId": self.farm_phase_id,
            "phaseId": self.phase_id,
            "cropCode": self.crop_code,
            "farm": self.farm,
            "task": self.task,
            "dayOfWeek": self.day_of_week,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComplianceEntry":
        """Build from the camelCase wire shape. Raises KeyError/ValueError on bad input."""
        return cls(
            type=EntryType(data["type"]),
            farm_phase_id=int(data["farmPhaseId"]),
            phase_id=str(data.get("phaseId") or ""),
            crop_code=str(data.get("cropCode") or ""),
            farm=str(data.get("farm") or ""),
            task=str(data["task"]),
            day_of_week=int(data["dayOfWeek"]),
            status=Status(data["status"]),
        )

    def with_status(self, status: Status) -> "ComplianceEntry":
        return ComplianceEntry(
            type=self.type,
            farm_phase_id=self.farm_phase_id,
            phase_id=self.phase_id,
            crop_code=self.crop_code,
            farm=self.farm,
            task=self.task,
            day_of_week=self.day_of_week,
            status=status,
        )


def compliance_rate(done: int, missed: int) -> int | None:
    """
    Percentage of countable tasks that were done, rounded half-up.

    Only done and missed count; pending/upcoming are not yet decidable.
    """
    countable = done + missed
    if countable == 0:
        return None
    return int(math.floor(done / countable * 100 + 0.5))


@dataclass(frozen=True)
class ComplianceSummary:
    total: int = 0
    done: int = 0
    missed: int = 0
    pending: int = 0
    upcoming: int = 0
    compliance_rate: int | None = None

    @classmethod
    def from_statuses(cls, statuses) -> "ComplianceSummary":
        counts = {s: 0 for s in Status}
        total = 0
        for status in statuses:
            counts[Status(status)] += 1
            total += 1
        return cls(
            total=total,
            done=counts[Status.DONE],
            missed=counts[Status.MISSED],
            pending=counts[Status.PENDING],
            upcoming=counts[Status.UPCOMING],
            compliance_rate=compliance_rate(counts[Status.DONE], counts[Status.MISSED]),
        )

    @classmethod
    def from_entries(cls, entries) -> "ComplianceSummary":
        return cls.from_statuses(e.status for e in entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "done": self.done,
            "missed": self.missed,
            "pending": self.pending,
            "upcoming": self.upcoming,
            "complianceRate": self.compliance_rate,
        }
