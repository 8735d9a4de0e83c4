"""
Schedule Resolver — which SOP instances are due on which day of a week.

For one farm phase and one week:
1. weeks_since_sowing keys the SOP tables; before sowing nothing is due.
2. The natural set is every SOP row of the phase's crop at that week offset.
3. Overrides adjust the set (see farmops.overrides).
4. The weekly schedule table decides the day: each selected SOP is emitted
   once per placement, and SOPs with no placement are dropped.
5. Harvest has no SOP table; each harvest-schedule row is a "Harvest" task.

Orphaned rows (schedule/override rows pointing at unknown SOPs or phases)
are skipped, not errors. The resolver is pure: snapshot precedence is
handled at the query boundary in farmops.compliance.
"""

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import date

from farmops import config, farm_calendar
from farmops.models import (
    DueTask,
    EntryType,
    FarmPhase,
    HarvestScheduleEntry,
    LaborSop,
    NutriSop,
    ScheduleEntry,
    SopType,
)
from farmops.overrides import OverrideSet, apply_overrides

logger = logging.getLogger(__name__)


class SopCatalog:
    """Labor and nutrition SOP rows indexed by id and by (crop, week offset)."""

    def __init__(self, labor: Iterable[LaborSop] = (), nutri: Iterable[NutriSop] = ()):
        self._by_id: dict[SopType, dict[int, LaborSop | NutriSop]] = {
            SopType.LABOR: {s.id: s for s in labor},
            SopType.NUTRI: {s.id: s for s in nutri},
        }
        self._by_crop_week: dict[SopType, dict[tuple[str, int], list[int]]] = {}
        for sop_type, rows in self._by_id.items():
            index: dict[tuple[str, int], list[int]] = defaultdict(list)
            for sop in sorted(rows.values(), key=lambda s: s.id):
                index[(sop.crop_code, sop.week)].append(sop.id)
            self._by_crop_week[sop_type] = index

    def get(self, sop_type: SopType, sop_id: int) -> LaborSop | NutriSop | None:
        return self._by_id[sop_type].get(sop_id)

    def for_crop_week(self, sop_type: SopType, crop_code: str, week: int) -> list[int]:
        return list(self._by_crop_week[sop_type].get((crop_code, week), ()))

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._by_id.values())


class WeekSchedule:
    """Day placements of one week, from the labor/nutrition/harvest schedule tables."""

    def __init__(
        self,
        week_start: date,
        labor: Iterable[ScheduleEntry] = (),
        nutri: Iterable[ScheduleEntry] = (),
        harvest: Iterable[HarvestScheduleEntry] = (),
    ):
        self.week_start = week_start
        self._placements: dict[SopType, dict[tuple[int, int], set[int]]] = {
            SopType.LABOR: defaultdict(set),
            SopType.NUTRI: defaultdict(set),
        }
        for sop_type, rows in ((SopType.LABOR, labor), (SopType.NUTRI, nutri)):
            for row in rows:
                if row.week_start != week_start:
                    continue
                self._placements[sop_type][(row.farm_phase_id, row.sop_id)].add(row.day_of_week)

        # One entry per row; two pledges on one day are two harvest tasks
        self._harvest: dict[int, list[int]] = defaultdict(list)
        for row in harvest:
            if row.week_start == week_start:
                self._harvest[row.farm_phase_id].append(row.day_of_week)

    def days_for(self, sop_type: SopType, farm_phase_id: int, sop_id: int) -> list[int]:
        return sorted(self._placements[sop_type].get((farm_phase_id, sop_id), ()))

    def harvest_days(self, farm_phase_id: int) -> list[int]:
        return sorted(self._harvest.get(farm_phase_id, ()))

    def phase_ids(self) -> set[int]:
        ids = set(self._harvest)
        for placements in self._placements.values():
            ids.update(phase_id for phase_id, _ in placements)
        return ids


def _resolve_sop_type(
    phase: FarmPhase,
    sop_type: SopType,
    week_offset: int,
    catalog: SopCatalog,
    schedule: WeekSchedule,
    overrides: OverrideSet,
) -> list[DueTask]:
    natural = catalog.for_crop_week(sop_type, phase.crop_code, week_offset)
    selected = apply_overrides(natural, overrides.for_phase(phase.id, sop_type))

    entry_type = EntryType(sop_type.value)
    due: list[DueTask] = []
    for sop_id in selected:
        sop = catalog.get(sop_type, sop_id)
        if sop is None:
            logger.debug("Skipping override for unknown %s SOP %s on phase %s", sop_type.value, sop_id, phase.id)
            continue
        for day in schedule.days_for(sop_type, phase.id, sop_id):
            due.append(
                DueTask(
                    type=entry_type,
                    farm_phase_id=phase.id,
                    sop_id=sop_id,
                    task=sop.name,
                    day_of_week=day,
                    sop=sop,
                )
            )
    return due


def resolve_due(
    phase: FarmPhase,
    catalog: SopCatalog,
    schedule: WeekSchedule,
    overrides: OverrideSet,
    week_start: date | None = None,
) -> list[DueTask]:
    """Due tasks of one phase for one week, sorted by (sop id, day, type)."""
    week_start = week_start or schedule.week_start
    week_offset = farm_calendar.weeks_since_sowing(phase.sowing_date, week_start)
    if week_offset < 0:
        return []

    due: list[DueTask] = []
    for sop_type in (SopType.LABOR, SopType.NUTRI):
        due.extend(_resolve_sop_type(phase, sop_type, week_offset, catalog, schedule, overrides))

    for day in schedule.harvest_days(phase.id):
        due.append(
            DueTask(
                type=EntryType.HARVEST,
                farm_phase_id=phase.id,
                sop_id=None,
                task=config.HARVEST_TASK_NAME,
                day_of_week=day,
            )
        )

    due.sort(key=lambda t: t.sort_key)
    return due


def resolve_week(
    phases: Iterable[FarmPhase],
    catalog: SopCatalog,
    schedule: WeekSchedule,
    overrides: OverrideSet,
) -> list[DueTask]:
    """Due tasks of every phase for the schedule's week, in stable order."""
    phases = list(phases)
    known = {p.id for p in phases}
    orphans = schedule.phase_ids() - known
    if orphans:
        logger.debug("Ignoring schedule rows for unknown phases: %s", sorted(orphans))

    due: list[DueTask] = []
    for phase in phases:
        due.extend(resolve_due(phase, catalog, schedule, overrides))
    due.sort(key=lambda t: t.sort_key)
    return due


def scheduled_day_counts(due: Iterable[DueTask]) -> Counter:
    """How many days each (phase, type, sop id) is scheduled in the week."""
    return Counter((t.farm_phase_id, t.type, t.sop_id) for t in due)
