"""Tests for ReminderScheduler reconcile/cancel semantics."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from countdown.clock import FixedClock
from countdown.domain.errors import DeliveryError, InvalidRuleError
from countdown.domain.models import Event, ReminderSet, TimingRule
from countdown.repos.memory import InMemoryReminderDelivery
from countdown.services.scheduler import ReminderScheduler, dedupe_key, key_prefix

_NOW = datetime(2026, 6, 1, 0, 0)
_EVENT_AT = datetime(2026, 6, 15, 14, 0)


class FlakyDelivery(InMemoryReminderDelivery):
    """Delivery that rejects submissions whose key ends with a chosen suffix."""

    def __init__(self, failing_suffixes: tuple[str, ...] = ()) -> None:
        super().__init__()
        self.failing_suffixes = failing_suffixes
        self.cancelled_prefixes: list[str] = []

    def submit(self, dedupe_key, fire_at, title, body):
        if dedupe_key.endswith(self.failing_suffixes):
            raise DeliveryError("notification center rejected the request")
        super().submit(dedupe_key, fire_at, title, body)

    def cancel_by_prefix(self, prefix):
        self.cancelled_prefixes.append(prefix)
        super().cancel_by_prefix(prefix)


class BrokenCancelDelivery(InMemoryReminderDelivery):
    def cancel_by_prefix(self, prefix):
        raise DeliveryError("center unavailable")


@pytest.fixture()
def clock():
    return FixedClock(_NOW)


@pytest.fixture()
def delivery():
    return FlakyDelivery()


@pytest.fixture()
def scheduler(delivery, clock):
    return ReminderScheduler(delivery=delivery, clock=clock)


def _make_event(**overrides) -> Event:
    defaults = dict(id="evt-1", title="Trip to Kyoto", target_at=_EVENT_AT)
    defaults.update(overrides)
    return Event(**defaults)


def _make_set(**overrides) -> ReminderSet:
    defaults = dict(event_id="evt-1")
    defaults.update(overrides)
    return ReminderSet(**defaults)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def test_dedupe_key_is_deterministic():
    assert dedupe_key("evt-1", TimingRule.custom(3)) == "event_evt-1_custom_3"
    assert dedupe_key("evt-1", TimingRule.custom(3)) == dedupe_key("evt-1", TimingRule.custom(3))


def test_prefix_does_not_match_longer_ids():
    assert not dedupe_key("12", TimingRule.day_before()).startswith(key_prefix("1"))


# ---------------------------------------------------------------------------
# reconcile
# ---------------------------------------------------------------------------


def test_day_before_scenario(scheduler, delivery):
    """Event on June 15 14:00, clock June 1: one reminder on June 14 09:00."""
    outcome = scheduler.reconcile(_make_event(), _make_set())

    assert outcome.scheduled_count == 1
    assert outcome.failed_count == 0
    assert delivery.list_pending() == ["event_evt-1_dayBefore"]
    pending = delivery.get("event_evt-1_dayBefore")
    assert pending.fire_at == datetime(2026, 6, 14, 9, 0)
    assert pending.title == "Event reminder"
    assert pending.body == "Trip to Kyoto: 1 day before"


def test_past_fire_time_is_skipped(scheduler, delivery, clock):
    clock.set(datetime(2026, 6, 14, 10, 0))

    outcome = scheduler.reconcile(_make_event(), _make_set())

    assert outcome.scheduled_count == 0
    assert outcome.skipped_count == 1
    assert outcome.errors == []
    assert delivery.list_pending() == []


def test_fire_time_equal_to_now_is_skipped(scheduler, delivery, clock):
    clock.set(datetime(2026, 6, 14, 9, 0))
    outcome = scheduler.reconcile(_make_event(), _make_set())
    assert outcome.scheduled_count == 0


def test_disabled_set_cancels_and_schedules_nothing(scheduler, delivery):
    scheduler.reconcile(_make_event(), _make_set())
    assert len(delivery.list_pending()) == 1

    outcome = scheduler.reconcile(_make_event(), _make_set(enabled=False))

    assert outcome.scheduled_count == 0
    assert delivery.list_pending() == []
    assert delivery.cancelled_prefixes[-1] == "event_evt-1_"


def test_reconcile_twice_is_idempotent(scheduler, delivery, clock):
    reminder_set = _make_set(
        primary_rule=TimingRule.week_before(),
        custom_rules=[TimingRule.custom(3), TimingRule.custom(10)],
    )
    first = scheduler.reconcile(_make_event(), reminder_set)
    pending_after_first = delivery.list_pending()

    clock.advance(timedelta(hours=1))
    second = scheduler.reconcile(_make_event(), reminder_set)

    assert first.scheduled_count == second.scheduled_count == 3
    assert delivery.list_pending() == pending_after_first


def test_update_replaces_previous_reminders(scheduler, delivery):
    scheduler.reconcile(_make_event(), _make_set(custom_rules=[TimingRule.custom(5)]))
    scheduler.reconcile(_make_event(), _make_set(primary_rule=TimingRule.same_day()))

    assert delivery.list_pending() == ["event_evt-1_sameDay"]


def test_other_events_are_untouched(scheduler, delivery):
    scheduler.reconcile(_make_event(id="evt-2"), _make_set(event_id="evt-2"))
    scheduler.reconcile(_make_event(), _make_set(enabled=False))

    assert delivery.list_pending() == ["event_evt-2_dayBefore"]


def test_partial_failure_is_reported_not_fatal(clock):
    delivery = FlakyDelivery(failing_suffixes=("custom_3",))
    scheduler = ReminderScheduler(delivery=delivery, clock=clock)

    outcome = scheduler.reconcile(
        _make_event(), _make_set(custom_rules=[TimingRule.custom(3)])
    )

    assert outcome.scheduled_count == 1
    assert outcome.failed_count == 1
    assert outcome.errors[0].rule == TimingRule.custom(3)
    assert "rejected" in outcome.errors[0].reason
    assert delivery.list_pending() == ["event_evt-1_dayBefore"]
    assert outcome.summary() == "1 of 2 reminders set"


def test_invalid_custom_rule_propagates_without_side_effects(scheduler, delivery):
    scheduler.reconcile(_make_event(), _make_set())

    with pytest.raises(InvalidRuleError):
        scheduler.reconcile(_make_event(), _make_set(custom_rules=[TimingRule.custom(0)]))

    assert delivery.list_pending() == ["event_evt-1_dayBefore"]


def test_month_before_on_the_31st(scheduler, delivery, clock):
    clock.set(datetime(2026, 1, 1, 0, 0))
    event = _make_event(target_at=datetime(2026, 3, 31, 9, 0))

    scheduler.reconcile(event, _make_set(primary_rule=TimingRule.month_before()))

    assert delivery.get("event_evt-1_monthBefore").fire_at == datetime(2026, 2, 28, 9, 0)


def test_custom_anchor_time(delivery, clock):
    scheduler = ReminderScheduler(delivery=delivery, clock=clock, anchor_hour=7, anchor_minute=30)
    scheduler.reconcile(_make_event(), _make_set())
    assert delivery.get("event_evt-1_dayBefore").fire_at == datetime(2026, 6, 14, 7, 30)


# ---------------------------------------------------------------------------
# cancel / describe_current
# ---------------------------------------------------------------------------


def test_cancel_with_nothing_scheduled_is_fine(scheduler, delivery):
    scheduler.cancel("unknown")
    assert delivery.list_pending() == []


def test_cancel_swallows_delivery_failure(clock):
    scheduler = ReminderScheduler(delivery=BrokenCancelDelivery(), clock=clock)
    scheduler.cancel("evt-1")


def test_describe_current(scheduler):
    rs = _make_set(custom_rules=[TimingRule.custom(3), TimingRule.custom(3)])
    assert scheduler.describe_current(rs) == "1 day before, 3 days before"
    assert scheduler.describe_current(_make_set(enabled=False)) == "no reminder"
    assert scheduler.describe_current(_make_set(primary_rule=TimingRule.none())) == "no reminder"


def test_expand_does_not_filter_past(scheduler):
    reminders = scheduler.expand(
        _make_event(target_at=datetime(2020, 1, 1)), _make_set()
    )
    assert len(reminders) == 1
    assert reminders[0].dedupe_key == "event_evt-1_dayBefore"


def test_huge_custom_offset_is_skipped_not_fatal(scheduler, delivery):
    scheduler.reconcile(_make_event(), _make_set())

    outcome = scheduler.reconcile(
        _make_event(), _make_set(custom_rules=[TimingRule.custom(1_000_000)])
    )

    assert outcome.scheduled_count == 1
    assert outcome.skipped_count == 1
    assert outcome.failed_count == 0
    assert delivery.list_pending() == ["event_evt-1_dayBefore"]
