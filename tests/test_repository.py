"""
Tests for typed reads over the seeded store and override writes.
"""

from datetime import date

import pytest

from farmops.errors import DependencyFailure
from farmops.models import OverrideAction, PhaseOverride, SopType
from farmops.repository import FarmRepository, distinct_ids

WEEK = date(2026, 1, 26)


class TestPhases:
    def test_all_phases_in_id_order(self, repository):
        assert [p.id for p in repository.list_phases()] == [1, 2, 3, 4, 5]

    def test_by_ids(self, repository):
        phases = repository.list_phases(ids=[3, 1, 404])
        assert [p.phase_id for p in phases] == ["MU-FB-01", "KI-BR-01"]
        assert phases[0].sowing_date == date(2026, 1, 5)
        assert phases[0].area_ha == 2.0

    def test_empty_ids(self, repository):
        assert repository.list_phases(ids=[]) == []

    def test_by_farm_excluding_archived(self, repository):
        assert [p.id for p in repository.list_phases(farm="Musha", include_archived=False)] == [1, 2]
        assert [p.id for p in repository.list_phases(farm="Musha")] == [1, 2, 5]

    def test_farm_labor_rates_only_positive(self, repository):
        assert repository.farm_labor_rates() == {"Kinazi": 1500.0}


class TestScheduleReads:
    def test_sop_catalog(self, repository):
        catalog = repository.sop_catalog()
        assert catalog.for_crop_week(SopType.LABOR, "FB", 3) == [1, 2]
        assert catalog.get(SopType.NUTRI, 2).active_ingredient == "Mancozeb 80%"

    def test_week_schedule_filters_week_and_phases(self, repository):
        schedule = repository.week_schedule(WEEK, [1])
        assert schedule.days_for(SopType.LABOR, 1, 2) == [0, 3]
        assert schedule.days_for(SopType.LABOR, 1, 1) == [2]
        assert schedule.phase_ids() == {1}

    def test_week_schedule_harvest(self, repository):
        assert repository.week_schedule(WEEK).harvest_days(3) == [4]


class TestLogs:
    def test_attendance_within_week_only(self, repository):
        logs = repository.attendance_logs([1], WEEK)
        assert [(log.log_date, log.descriptor) for log in logs] == [
            (date(2026, 1, 28), "Weeding and Top Dressing"),
            (date(2026, 1, 26), "Spraying"),
        ]

    def test_feeding_descriptor_is_product(self, repository):
        assert [log.descriptor for log in repository.feeding_logs([1, 3], WEEK)] == ["npk  17-17-17", "Mancozeb"]

    def test_no_phases_no_reads(self, repository):
        assert repository.harvest_logs([], WEEK) == []


class TestOverrides:
    def test_read_week(self, repository):
        overrides = repository.overrides(WEEK)
        assert [(o.farm_phase_id, o.sop_id, o.action) for o in overrides] == [
            (1, 5, OverrideAction.ADD),
            (2, 3, OverrideAction.REMOVE),
        ]

    def test_read_filtered(self, repository):
        assert repository.overrides(WEEK, [2], SopType.NUTRI) == []
        assert len(repository.overrides(WEEK, [2], SopType.LABOR)) == 1

    def test_upsert_last_write_wins(self, repository):
        repository.upsert_override(PhaseOverride(1, 5, SopType.LABOR, WEEK, OverrideAction.REMOVE))
        overrides = repository.overrides(WEEK, [1])
        assert [(o.sop_id, o.action) for o in overrides] == [(5, OverrideAction.REMOVE)]

    def test_upsert_new_key(self, repository):
        repository.upsert_override(PhaseOverride(3, 4, SopType.LABOR, WEEK, OverrideAction.REMOVE))
        assert len(repository.overrides(WEEK)) == 3

    def test_delete(self, repository):
        assert repository.delete_override(1, 5, SopType.LABOR, WEEK) is True
        assert repository.delete_override(1, 5, SopType.LABOR, WEEK) is False


class TestStorageFailure:
    def test_missing_table_raises_dependency_failure(self, db):
        with db.connect() as conn:
            conn.execute("DROP TABLE attendance_records")
        with pytest.raises(DependencyFailure, match="attendance_records"):
            FarmRepository(db).attendance_logs([1], WEEK)


def test_distinct_ids_preserves_order():
    assert distinct_ids([3, 1, 3, 2, 1]) == [3, 1, 2]
