"""Operations on an event's ReminderSet.

Every function returns a new ``ReminderSet``; inputs are never mutated so a
caller can keep the previous configuration around (e.g. to undo an edit).
"""

from __future__ import annotations

from countdown.domain.errors import InvalidRuleError
from countdown.domain.models import ReminderSet, TimingKind, TimingRule


def default_reminder_set(event_id: str) -> ReminderSet:
    """A new event gets one enabled ``dayBefore`` reminder."""
    return ReminderSet(event_id=event_id)


def effective_rules(reminder_set: ReminderSet) -> list[TimingRule]:
    """Rules that actually produce reminders, in order.

    Empty when disabled. Otherwise the primary rule followed by the custom
    rules, with ``none`` dropped, non-custom entries in ``custom_rules``
    ignored and repeated custom offsets collapsed to their first occurrence.
    """
    if not reminder_set.enabled:
        return []

    candidates = [reminder_set.primary_rule] + [
        r for r in reminder_set.custom_rules if r.is_custom
    ]
    rules: list[TimingRule] = []
    seen_offsets: set[int | None] = set()
    for rule in candidates:
        if rule.kind == TimingKind.NONE:
            continue
        if rule.is_custom:
            if rule.days in seen_offsets:
                continue
            seen_offsets.add(rule.days)
        rules.append(rule)
    return rules


def has_reminders(reminder_set: ReminderSet) -> bool:
    return bool(effective_rules(reminder_set))


def add_custom(reminder_set: ReminderSet, offset_days: int) -> ReminderSet:
    if offset_days <= 0:
        raise InvalidRuleError(
            f"custom reminder offset must be a positive number of days, got {offset_days}"
        )
    if any(r.is_custom and r.days == offset_days for r in reminder_set.custom_rules):
        return reminder_set.model_copy()
    return reminder_set.model_copy(
        update={"custom_rules": [*reminder_set.custom_rules, TimingRule.custom(offset_days)]}
    )


def remove_custom(reminder_set: ReminderSet, offset_days: int) -> ReminderSet:
    remaining = [
        r for r in reminder_set.custom_rules if not (r.is_custom and r.days == offset_days)
    ]
    return reminder_set.model_copy(update={"custom_rules": remaining})


def set_enabled(reminder_set: ReminderSet, flag: bool) -> ReminderSet:
    """Toggle the master switch. Rules are kept so re-enabling restores them."""
    return reminder_set.model_copy(update={"enabled": flag})


def set_primary(reminder_set: ReminderSet, rule: TimingRule) -> ReminderSet:
    return reminder_set.model_copy(update={"primary_rule": rule})
