"""Countdown date math shared by event listings and widgets.

All comparisons are by calendar date in the timezone of *now*, so an event
at 23:00 tomorrow and one at 01:00 tomorrow are both "1 day left".
"""

from __future__ import annotations

from datetime import date, datetime, timedelta


def _local_date(value: datetime, now: datetime) -> date:
    if value.tzinfo is not None and now.tzinfo is not None:
        value = value.astimezone(now.tzinfo)
    return value.date()


def days_remaining(target_at: datetime, now: datetime) -> int:
    """Calendar days from *now* to *target_at*; negative once it has passed."""
    return (_local_date(target_at, now) - now.date()).days


def is_today(target_at: datetime, now: datetime) -> bool:
    return days_remaining(target_at, now) == 0


def is_past(target_at: datetime, now: datetime) -> bool:
    return target_at < now


def is_within_days(target_at: datetime, now: datetime, days: int = 7) -> bool:
    return 0 <= days_remaining(target_at, now) <= days


def countdown_label(target_at: datetime, now: datetime) -> str:
    remaining = days_remaining(target_at, now)
    if remaining == 0:
        return "today"
    if remaining == 1:
        return "1 day left"
    if remaining > 1:
        return f"{remaining} days left"
    if remaining == -1:
        return "1 day ago"
    return f"{-remaining} days ago"


def _time_left(target_at: datetime, now: datetime) -> timedelta:
    return max(target_at - now, timedelta(0))


def hours_remaining(target_at: datetime, now: datetime) -> int:
    """Hour part (0..23) of the time left; 0 once the event has passed.

    Unlike ``days_remaining`` this is elapsed time, for the clock-style
    hour and minute fields shown next to the day count.
    """
    return int(_time_left(target_at, now).total_seconds() // 3600) % 24


def minutes_remaining(target_at: datetime, now: datetime) -> int:
    """Minute part (0..59) of the time left; 0 once the event has passed."""
    return int(_time_left(target_at, now).total_seconds() // 60) % 60
