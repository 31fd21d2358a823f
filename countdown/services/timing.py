"""Timing rules: labels, identifiers and fire-time computation."""

from __future__ import annotations

from datetime import datetime, time, timedelta

from dateutil.relativedelta import relativedelta

from countdown.domain.errors import InvalidRuleError
from countdown.domain.models import TimingKind, TimingRule

DEFAULT_ANCHOR_HOUR = 9
DEFAULT_ANCHOR_MINUTE = 0

# Selectable rules in picker order; custom offsets are entered separately.
BASIC_RULES = [
    TimingRule.none(),
    TimingRule.same_day(),
    TimingRule.day_before(),
    TimingRule.week_before(),
    TimingRule.month_before(),
]

_LABELS = {
    TimingKind.NONE: "no reminder",
    TimingKind.SAME_DAY: "same day",
    TimingKind.DAY_BEFORE: "1 day before",
    TimingKind.WEEK_BEFORE: "1 week before",
    TimingKind.MONTH_BEFORE: "1 month before",
}

_FIXED_OFFSETS = {
    TimingKind.SAME_DAY: relativedelta(),
    TimingKind.DAY_BEFORE: relativedelta(days=1),
    TimingKind.WEEK_BEFORE: relativedelta(days=7),
    TimingKind.MONTH_BEFORE: relativedelta(months=1),
}


def validate_rule(rule: TimingRule) -> TimingRule:
    """Raise InvalidRuleError unless *rule* can be evaluated."""
    if rule.is_custom and (rule.days is None or rule.days <= 0):
        raise InvalidRuleError(
            f"custom reminder offset must be a positive number of days, got {rule.days!r}"
        )
    return rule


def describe(rule: TimingRule) -> str:
    """Human-readable, locale-agnostic label for *rule*."""
    if rule.is_custom:
        return f"{rule.days} days before"
    return _LABELS[rule.kind]


def identifier(rule: TimingRule) -> str:
    """Stable token for *rule*, used as the tail of a dedupe key."""
    if rule.is_custom:
        return f"custom_{rule.days}"
    return str(rule.kind)


def fire_time(
    rule: TimingRule,
    event_at: datetime,
    anchor_hour: int = DEFAULT_ANCHOR_HOUR,
    anchor_minute: int = DEFAULT_ANCHOR_MINUTE,
) -> datetime | None:
    """Return when *rule* fires for an event at *event_at*, or ``None``.

    Works on the event's calendar date and places the reminder at the
    anchor wall-clock time in the event's own timezone (naive in, naive
    out). Month arithmetic clamps to the last day of the shorter month, so
    March 31 maps to February 28 or 29.

    The result is not compared with the event time or with "now"; a
    ``sameDay`` reminder for a 07:00 event still fires at 09:00. An offset
    that reaches past the first representable date yields ``None``.
    """
    if not 0 <= anchor_hour <= 23:
        raise ValueError(f"anchor_hour must be in 0..23, got {anchor_hour}")
    if not 0 <= anchor_minute <= 59:
        raise ValueError(f"anchor_minute must be in 0..59, got {anchor_minute}")

    validate_rule(rule)
    if rule.kind == TimingKind.NONE:
        return None

    try:
        if rule.is_custom:
            day = event_at.date() - timedelta(days=rule.days)
        else:
            day = event_at.date() - _FIXED_OFFSETS[rule.kind]
    except (OverflowError, ValueError):
        return None

    return datetime.combine(day, time(anchor_hour, anchor_minute), tzinfo=event_at.tzinfo)
