"""
Tests for farm-local time, week arithmetic and week-date recovery.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from farmops import farm_calendar
from farmops.errors import InvalidInput


class TestFarmNow:
    def test_utc_evening_is_next_day_in_eat(self):
        # 23:00 UTC Sunday is 01:00 Monday at the farms
        now = datetime(2026, 1, 25, 23, 0, tzinfo=timezone.utc)
        assert farm_calendar.farm_today(now) == date(2026, 1, 26)

    def test_naive_datetime_taken_as_utc(self):
        assert farm_calendar.farm_now(datetime(2026, 1, 25, 23, 0)).utcoffset() == timedelta(hours=2)
        assert farm_calendar.farm_today(datetime(2026, 1, 25, 23, 0)) == date(2026, 1, 26)

    def test_current_monday(self):
        now = datetime(2026, 1, 29, 12, 0, tzinfo=timezone.utc)  # Thursday
        assert farm_calendar.current_monday(now) == date(2026, 1, 26)


class TestWeekArithmetic:
    def test_monday_of_sunday(self):
        assert farm_calendar.monday_of(date(2026, 2, 1)) == date(2026, 1, 26)

    def test_week_end_is_exclusive(self):
        assert farm_calendar.week_end(date(2026, 1, 26)) == date(2026, 2, 2)

    def test_iso_week_number(self):
        assert farm_calendar.iso_week_number(date(2026, 1, 29)) == 5

    @pytest.mark.parametrize(
        "sowing,week_start,expected",
        [
            (date(2026, 1, 5), date(2026, 1, 26), 3),
            (date(2026, 1, 5), date(2026, 1, 5), 0),
            (date(2026, 1, 7), date(2026, 1, 26), 2),  # 19 days floors to 2
            (date(2026, 1, 27), date(2026, 1, 26), -1),
            (date(2026, 2, 9), date(2026, 1, 26), -2),
        ],
    )
    def test_weeks_since_sowing_floors(self, sowing, week_start, expected):
        assert farm_calendar.weeks_since_sowing(sowing, week_start) == expected


class TestRecoverIntendedMonday:
    """Sunday -> next day, Monday -> unchanged, other weekdays -> previous Monday."""

    def test_sunday_moves_forward(self):
        assert farm_calendar.recover_intended_monday("2026-01-25") == date(2026, 1, 26)

    def test_monday_unchanged(self):
        assert farm_calendar.recover_intended_monday("2026-01-26") == date(2026, 1, 26)

    @pytest.mark.parametrize("day", ["2026-01-27", "2026-01-28", "2026-01-29", "2026-01-30", "2026-01-31"])
    def test_midweek_moves_back(self, day):
        assert farm_calendar.recover_intended_monday(day) == date(2026, 1, 26)

    def test_utc_serialized_local_monday(self):
        # Monday 00:00 EAT serialized by a browser
        assert farm_calendar.recover_intended_monday("2026-01-25T22:00:00.000Z") == date(2026, 1, 26)

    def test_offset_datetime_converted_to_utc_first(self):
        # 01:00+02:00 Monday is 23:00 UTC Sunday
        assert farm_calendar.recover_intended_monday("2026-01-26T01:00:00+02:00") == date(2026, 1, 26)

    def test_date_object(self):
        assert farm_calendar.recover_intended_monday(date(2026, 1, 28)) == date(2026, 1, 26)

    def test_malformed(self):
        with pytest.raises(ValueError):
            farm_calendar.recover_intended_monday("not-a-date")


class TestParsing:
    def test_parse_week_start_recovers(self):
        assert farm_calendar.parse_week_start("2026-01-25") == date(2026, 1, 26)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_parse_week_start_required(self, value):
        with pytest.raises(InvalidInput, match="weekStart is required"):
            farm_calendar.parse_week_start(value)

    def test_parse_week_start_malformed(self):
        with pytest.raises(InvalidInput, match="Invalid weekStart"):
            farm_calendar.parse_week_start("2026-13-45")

    def test_parse_calendar_date(self):
        assert farm_calendar.parse_calendar_date("2026-01-29") == date(2026, 1, 29)

    def test_parse_calendar_date_invalid(self):
        with pytest.raises(InvalidInput, match="Invalid date"):
            farm_calendar.parse_calendar_date("29/01/2026")

    @pytest.mark.parametrize(
        "value", ["2026-01-29T23:30:00+02:00", "2026-01-29T21:30:00Z", "2026-01-29 08:00", "20260129"]
    )
    def test_parse_calendar_date_rejects_non_plain_dates(self, value):
        with pytest.raises(InvalidInput, match="Invalid date"):
            farm_calendar.parse_calendar_date(value)

    def test_parse_calendar_date_rejects_datetime_objects(self):
        with pytest.raises(InvalidInput, match="got a datetime"):
            farm_calendar.parse_calendar_date(datetime(2026, 1, 29, 23, 30, tzinfo=timezone.utc))
