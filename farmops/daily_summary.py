"""
Daily Summary — what each farm should do today, and what it costs.

SOP quantities are weekly totals. A task scheduled on several days of the
week carries an equal share on each of them, so every figure is divided by
the number of days the (phase, SOP) is placed in the week.

    labor:  mandays = casuals * days * area_ha / days_scheduled
            total_cost = mandays * cost_per_day
    nutri:  quantity = rate_ha * area_ha / days_scheduled
            total_cost = cost_per_ha * area_ha / days_scheduled

cost_per_day is the farm's labor rate when it is set and positive, else the
SOP's own cost per casual-day.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from farmops import farm_calendar
from farmops.models import DueTask, EntryType, FarmPhase
from farmops.overrides import OverrideSet
from farmops.schedule_resolver import SopCatalog, WeekSchedule, resolve_due, scheduled_day_counts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaborLine:
    phase: str
    task: str
    mandays: float
    cost_per_day: float
    total_cost: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "task": self.task,
            "mandays": self.mandays,
            "costPerDay": self.cost_per_day,
            "totalCost": self.total_cost,
        }


@dataclass(frozen=True)
class NutriLine:
    phase: str
    product: str
    active_ingredient: str
    quantity: float
    unit_price: float
    total_cost: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "product": self.product,
            "activeIngredient": self.active_ingredient,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "totalCost": self.total_cost,
        }


@dataclass
class FarmDaySummary:
    farm: str
    total_acreage: float = 0.0
    phase_count: int = 0
    labor_tasks: list[LaborLine] = field(default_factory=list)
    nutri_tasks: list[NutriLine] = field(default_factory=list)

    @property
    def total_labor_mandays(self) -> float:
        return sum(t.mandays for t in self.labor_tasks)

    @property
    def total_labor_cost(self) -> float:
        return sum(t.total_cost for t in self.labor_tasks)

    @property
    def total_nutri_cost(self) -> float:
        return sum(t.total_cost for t in self.nutri_tasks)

    @property
    def has_tasks(self) -> bool:
        return bool(self.labor_tasks or self.nutri_tasks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "farm": self.farm,
            "totalAcreage": self.total_acreage,
            "phaseCount": self.phase_count,
            "laborTasks": [t.to_dict() for t in self.labor_tasks],
            "nutriTasks": [t.to_dict() for t in self.nutri_tasks],
            "totalLaborMandays": self.total_labor_mandays,
            "totalLaborCost": self.total_labor_cost,
            "totalNutriCost": self.total_nutri_cost,
        }


@dataclass
class DailySummary:
    date: date
    week_start: date
    farms: list[FarmDaySummary] = field(default_factory=list)

    @property
    def day_of_week(self) -> int:
        return farm_calendar.day_of_week(self.date)

    @property
    def day_name(self) -> str:
        return farm_calendar.DAY_NAMES[self.day_of_week]

    @property
    def week_number(self) -> int:
        return farm_calendar.iso_week_number(self.date)

    def totals(self) -> dict[str, float]:
        return {
            "laborMandays": sum(f.total_labor_mandays for f in self.farms),
            "laborCost": sum(f.total_labor_cost for f in self.farms),
            "nutriCost": sum(f.total_nutri_cost for f in self.farms),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "dayName": self.day_name,
            "weekNumber": self.week_number,
            "weekStart": self.week_start.isoformat(),
            "farms": [f.to_dict() for f in self.farms],
            "totals": self.totals(),
        }


def default_report_date(now: datetime | None = None) -> date:
    """Today in farm-local time."""
    return farm_calendar.farm_today(now)


def _labor_line(phase: FarmPhase, task: DueTask, days_scheduled: int, farm_rate: float | None) -> LaborLine:
    sop = task.sop
    cost_per_day = farm_rate if farm_rate and farm_rate > 0 else sop.cost_per_casual_day
    mandays = sop.no_of_casuals * sop.no_of_days * phase.area_ha / days_scheduled
    return LaborLine(
        phase=phase.phase_id,
        task=sop.task,
        mandays=mandays,
        cost_per_day=cost_per_day,
        total_cost=mandays * cost_per_day,
    )


def _nutri_line(phase: FarmPhase, task: DueTask, days_scheduled: int) -> NutriLine:
    sop = task.sop
    return NutriLine(
        phase=phase.phase_id,
        product=sop.products,
        active_ingredient=sop.active_ingredient,
        quantity=sop.rate_ha * phase.area_ha / days_scheduled,
        unit_price=sop.unit_price,
        total_cost=sop.cost * phase.area_ha / days_scheduled,
    )


def summarize(
    phases: Iterable[FarmPhase],
    catalog: SopCatalog,
    schedule: WeekSchedule,
    overrides: OverrideSet,
    farm_rates: Mapping[str, float],
    target_date: date,
) -> DailySummary:
    """
    Per-farm labor and nutrition plan for target_date.

    schedule and overrides must be those of the week containing target_date.
    Farms are listed in the order their first phase appears; farms with
    nothing scheduled today are left out.
    """
    week_start = farm_calendar.monday_of(target_date)
    today = farm_calendar.day_of_week(target_date)
    farms: dict[str, FarmDaySummary] = {}

    for phase in phases:
        summary = farms.setdefault(phase.farm, FarmDaySummary(farm=phase.farm))
        summary.total_acreage += phase.area_ha
        summary.phase_count += 1

        due = resolve_due(phase, catalog, schedule, overrides, week_start=week_start)
        day_counts = scheduled_day_counts(due)
        for task in due:
            if task.day_of_week != today or task.type == EntryType.HARVEST:
                continue
            days_scheduled = day_counts[(task.farm_phase_id, task.type, task.sop_id)] or 1
            if task.type == EntryType.LABOR:
                summary.labor_tasks.append(_labor_line(phase, task, days_scheduled, farm_rates.get(phase.farm)))
            else:
                summary.nutri_tasks.append(_nutri_line(phase, task, days_scheduled))

    active = [f for f in farms.values() if f.has_tasks]
    logger.debug("Daily summary for %s: %d of %d farms active", target_date, len(active), len(farms))
    return DailySummary(date=target_date, week_start=week_start, farms=active)
