"""
Status Engine — completion status of a due task.

Four statuses, no others:
- done: a matching log exists (logs win regardless of timing)
- missed: no log and the scheduled day is already past
- pending: no log and the scheduled day is today
- upcoming: no log and the scheduled day is still ahead

"Today" is taken in the farms' fixed timezone. Statuses are recomputed on
every call; only a snapshot freezes them.
"""

from collections.abc import Iterable
from datetime import date, datetime

from farmops import farm_calendar
from farmops.models import ComplianceEntry, Status

# Statuses that can still change without a new log
OPEN_STATUSES = {Status.PENDING, Status.UPCOMING}


def compute_status(
    day_of_week: int,
    has_matching_log: bool,
    week_monday: date,
    now: datetime | None = None,
) -> Status:
    """
    Status of a task due on day_of_week (0=Mon) of the week starting week_monday.

    week_monday must already be the intended Monday; callers holding a
    client-supplied date go through farm_calendar.parse_week_start first.
    """
    if has_matching_log:
        return Status.DONE

    local_now = farm_calendar.farm_now(now)
    today_dow = local_now.weekday()
    current_monday = farm_calendar.monday_of(local_now.date())

    if week_monday < current_monday:
        return Status.MISSED
    if week_monday > current_monday:
        return Status.UPCOMING

    if day_of_week < today_dow:
        return Status.MISSED
    if day_of_week == today_dow:
        return Status.PENDING
    return Status.UPCOMING


def is_past_week(week_monday: date, now: datetime | None = None) -> bool:
    return week_monday < farm_calendar.current_monday(now)


def finalize_for_snapshot(
    entries: Iterable[ComplianceEntry],
    week_monday: date,
    now: datetime | None = None,
) -> list[ComplianceEntry]:
    """
    Close out open statuses before freezing a past week.

    Pending and upcoming tasks of a week that is already over can never be
    completed, so they are frozen as missed. Current and future weeks are
    frozen as-is.
    """
    entries = list(entries)
    if not is_past_week(week_monday, now):
        return entries
    return [e.with_status(Status.MISSED) if e.status in OPEN_STATUSES else e for e in entries]
