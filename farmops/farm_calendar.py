"""
Farm Calendar — fixed-offset civil time, week boundaries, and week-date recovery.

All compliance date arithmetic flows through this module:
1. "Now" and "today" in the farms' fixed timezone (EAT, UTC+2, no DST).
2. Monday-of-week, day-of-week (0=Mon..6=Sun), ISO week numbers.
3. Weeks since sowing, the key into the SOP tables.
4. Recovery of the intended Monday from a week date that went through UTC
   serialization on the client and may come back as the Sunday before.

No other module should do its own weekday math.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone

from farmops import config
from farmops.errors import InvalidInput

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

FARM_TZ = timezone(timedelta(hours=config.FARM_UTC_OFFSET_HOURS), config.FARM_TIMEZONE_NAME)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

DAYS_PER_WEEK = 7

_CALENDAR_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


# =============================================================================
# NOW / TODAY
# =============================================================================


def farm_now(now: datetime | None = None) -> datetime:
    """Current instant in farm-local time. Naive datetimes are taken as UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(FARM_TZ)


def farm_today(now: datetime | None = None) -> date:
    return farm_now(now).date()


def monday_of(d: date) -> date:
    """Monday of the week containing d."""
    return d - timedelta(days=d.weekday())


def day_of_week(d: date) -> int:
    """0=Mon .. 6=Sun."""
    return d.weekday()


def current_monday(now: datetime | None = None) -> date:
    return monday_of(farm_today(now))


def week_end(week_start: date) -> date:
    """Exclusive end of the week starting at week_start."""
    return week_start + timedelta(days=DAYS_PER_WEEK)


def iso_week_number(d: date) -> int:
    return d.isocalendar()[1]


def weeks_since_sowing(sowing_date: date, week_start: date) -> int:
    """
    Whole weeks from sowing to week_start, floored.

    Negative before sowing (nursery weeks key negative SOP offsets).
    """
    return (week_start - sowing_date).days // DAYS_PER_WEEK


# =============================================================================
# PARSING AND WEEK-DATE RECOVERY
# =============================================================================


def to_utc_calendar_date(value: str | date | datetime) -> date:
    """
    Calendar date of a caller-supplied value as seen in UTC.

    Accepts "YYYY-MM-DD", full ISO datetimes (with "Z" or an offset), date
    and datetime objects. Aware datetimes are converted to UTC first.
    Raises ValueError when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")

    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def recover_intended_monday(value: str | date | datetime) -> date:
    """
    Intended Monday of a week date that may have been shifted through UTC.

    A farm-local Monday midnight serialized as UTC lands on the Sunday
    before. Branching is fixed: Sunday -> next day, Monday -> unchanged,
    any other weekday -> back to the preceding Monday. Snapshots are keyed
    by the result, so this must not change.
    """
    d = to_utc_calendar_date(value)
    weekday = d.weekday()
    if weekday == 6:
        return d + timedelta(days=1)
    if weekday == 0:
        return d
    return d - timedelta(days=weekday)


def parse_week_start(value: str | date | datetime | None) -> date:
    """Validated, Monday-recovered week start. Raises InvalidInput."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput("weekStart is required")
    try:
        monday = recover_intended_monday(value)
    except ValueError as e:
        raise InvalidInput(f"Invalid weekStart: {value!r}") from e
    if isinstance(value, str) and monday.isoformat() != value.strip()[:10]:
        logger.debug("weekStart %s recovered to Monday %s", value, monday)
    return monday


def parse_calendar_date(value: str | date | None, field_name: str = "date") -> date:
    """
    Plain "YYYY-MM-DD" date. Raises InvalidInput.

    Datetimes, with or without an offset, are rejected, not truncated.
    """
    if isinstance(value, datetime):
        raise InvalidInput(f"{field_name} must be a calendar date, got a datetime")
    if isinstance(value, date):
        return value
    if value is None or not value.strip():
        raise InvalidInput(f"{field_name} is required")
    if not _CALENDAR_DATE.fullmatch(value.strip()):
        raise InvalidInput(f"Invalid {field_name}: {value!r}")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidInput(f"Invalid {field_name}: {value!r}") from e
