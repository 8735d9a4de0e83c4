"""
Tests for the daily summary: weekly SOP totals split over scheduled days.
"""

from datetime import date, datetime, timezone

import pytest

from farmops.daily_summary import default_report_date, summarize
from farmops.models import FarmPhase, LaborSop, NutriSop, OverrideAction, PhaseOverride, ScheduleEntry, SopType
from farmops.overrides import OverrideSet
from farmops.schedule_resolver import SopCatalog, WeekSchedule

WEEK = date(2026, 1, 26)
MONDAY = WEEK
THURSDAY = date(2026, 1, 29)

PHASE = FarmPhase(id=1, phase_id="MU-FB-01", crop_code="FB", farm="Musha", area_ha=2.0, sowing_date=date(2026, 1, 5))
CATALOG = SopCatalog(
    labor=[
        LaborSop(id=1, crop_code="FB", week=3, task="Weeding", no_of_casuals=5, no_of_days=2, cost_per_casual_day=1000)
    ],
    nutri=[
        NutriSop(id=1, crop_code="FB", week=3, products="NPK 17-17-17", rate_ha=100, unit_price=800, cost=80000)
    ],
)
# Weeding on Monday and Thursday, NPK on Monday only
SCHEDULE = WeekSchedule(
    WEEK,
    labor=[ScheduleEntry(1, WEEK, 0, 1), ScheduleEntry(1, WEEK, 3, 1)],
    nutri=[ScheduleEntry(1, WEEK, 0, 1)],
)


class TestLaborSplit:
    def test_mandays_divided_by_days_scheduled(self):
        summary = summarize([PHASE], CATALOG, SCHEDULE, OverrideSet(), {}, MONDAY)
        (farm,) = summary.farms
        (line,) = farm.labor_tasks
        # 5 casuals x 2 days x 2.0 ha over 2 scheduled days
        assert line.mandays == 10
        assert line.cost_per_day == 1000
        assert line.total_cost == 10000

    def test_farm_rate_overrides_sop_rate(self):
        summary = summarize([PHASE], CATALOG, SCHEDULE, OverrideSet(), {"Musha": 1500}, THURSDAY)
        (line,) = summary.farms[0].labor_tasks
        assert line.cost_per_day == 1500
        assert line.total_cost == 15000

    @pytest.mark.parametrize("rate", [0, -5])
    def test_non_positive_farm_rate_ignored(self, rate):
        summary = summarize([PHASE], CATALOG, SCHEDULE, OverrideSet(), {"Musha": rate}, MONDAY)
        assert summary.farms[0].labor_tasks[0].cost_per_day == 1000


class TestNutriSplit:
    def test_quantity_and_cost_scale_with_area(self):
        summary = summarize([PHASE], CATALOG, SCHEDULE, OverrideSet(), {}, MONDAY)
        (line,) = summary.farms[0].nutri_tasks
        assert line.product == "NPK 17-17-17"
        assert line.quantity == 200
        assert line.unit_price == 800
        assert line.total_cost == 160000

    def test_not_scheduled_today(self):
        summary = summarize([PHASE], CATALOG, SCHEDULE, OverrideSet(), {}, THURSDAY)
        assert summary.farms[0].nutri_tasks == []


class TestGrouping:
    def test_day_without_tasks_drops_farm(self):
        summary = summarize([PHASE], CATALOG, SCHEDULE, OverrideSet(), {}, date(2026, 1, 27))
        assert summary.farms == []
        assert summary.totals() == {"laborMandays": 0, "laborCost": 0, "nutriCost": 0}

    def test_removed_sop_not_planned(self):
        overrides = OverrideSet([PhaseOverride(1, 1, SopType.LABOR, WEEK, OverrideAction.REMOVE)])
        summary = summarize([PHASE], CATALOG, SCHEDULE, overrides, {}, MONDAY)
        assert summary.farms[0].labor_tasks == []
        assert len(summary.farms[0].nutri_tasks) == 1

    def test_farm_totals_count_all_phases(self):
        idle = FarmPhase(id=2, phase_id="MU-FB-02", crop_code="FB", farm="Musha", area_ha=1.5, sowing_date=date(2026, 3, 2))
        other = FarmPhase(id=3, phase_id="KI-01", crop_code="FB", farm="Kinazi", area_ha=1.0, sowing_date=date(2026, 3, 2))
        summary = summarize([PHASE, idle, other], CATALOG, SCHEDULE, OverrideSet(), {}, MONDAY)
        assert [f.farm for f in summary.farms] == ["Musha"]
        assert summary.farms[0].total_acreage == 3.5
        assert summary.farms[0].phase_count == 2

    def test_to_dict_shape(self):
        data = summarize([PHASE], CATALOG, SCHEDULE, OverrideSet(), {}, THURSDAY).to_dict()
        assert data["date"] == "2026-01-29"
        assert data["dayName"] == "Thursday"
        assert data["weekNumber"] == 5
        assert data["weekStart"] == "2026-01-26"
        farm = data["farms"][0]
        assert farm["laborTasks"] == [
            {"phase": "MU-FB-01", "task": "Weeding", "mandays": 10.0, "costPerDay": 1000, "totalCost": 10000.0}
        ]
        assert farm["totalLaborMandays"] == 10
        assert data["totals"] == {"laborMandays": 10, "laborCost": 10000, "nutriCost": 0}


class TestDefaultDate:
    def test_today_in_farm_time(self):
        assert default_report_date(datetime(2026, 1, 28, 23, 0, tzinfo=timezone.utc)) == THURSDAY


class TestAddOverrides:
    # SOPs from later crop weeks, placed Tuesday and Friday of this week
    LATER_CATALOG = SopCatalog(
        labor=[
            LaborSop(
                id=5, crop_code="FB", week=5, task="Trelissing", no_of_casuals=6, no_of_days=1, cost_per_casual_day=1000
            )
        ],
        nutri=[NutriSop(id=3, crop_code="FB", week=6, products="Fungicide", rate_ha=3, unit_price=4000, cost=12000)],
    )
    LATER_SCHEDULE = WeekSchedule(
        WEEK,
        labor=[ScheduleEntry(1, WEEK, 1, 5), ScheduleEntry(1, WEEK, 4, 5)],
        nutri=[ScheduleEntry(1, WEEK, 1, 3), ScheduleEntry(1, WEEK, 4, 3)],
    )
    TUESDAY = date(2026, 1, 27)

    def _summarize(self, overrides):
        return summarize([PHASE], self.LATER_CATALOG, self.LATER_SCHEDULE, overrides, {}, self.TUESDAY)

    def test_not_planned_without_override(self):
        assert self._summarize(OverrideSet()).farms == []

    def test_added_labor_split_over_scheduled_days(self):
        overrides = OverrideSet([PhaseOverride(1, 5, SopType.LABOR, WEEK, OverrideAction.ADD)])
        (farm,) = self._summarize(overrides).farms
        (line,) = farm.labor_tasks
        # 6 casuals x 1 day x 2.0 ha over 2 scheduled days
        assert line.task == "Trelissing"
        assert line.mandays == 6
        assert line.total_cost == 6000
        assert farm.nutri_tasks == []

    def test_added_nutri_split_over_scheduled_days(self):
        overrides = OverrideSet([PhaseOverride(1, 3, SopType.NUTRI, WEEK, OverrideAction.ADD)])
        (farm,) = self._summarize(overrides).farms
        (line,) = farm.nutri_tasks
        assert line.product == "Fungicide"
        assert line.quantity == 3
        assert line.total_cost == 12000
        assert farm.labor_tasks == []
