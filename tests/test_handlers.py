"""Tests for the bus handlers that keep reminders in step with events."""

from __future__ import annotations

from datetime import datetime

import pytest

from countdown.clock import FixedClock
from countdown.domain.bus import EventBus
from countdown.domain.events import EventDeleted, EventSaved
from countdown.domain.handlers import HandlerRegistry
from countdown.domain.models import Event, TimingRule
from countdown.repos.memory import (
    EventRepository,
    InMemoryReminderDelivery,
    ReminderSetRepository,
)
from countdown.services.reminder_set import add_custom, default_reminder_set, set_enabled
from countdown.services.scheduler import ReminderScheduler

_NOW = datetime(2026, 6, 1, 0, 0)


@pytest.fixture()
def env():
    """Fresh bus + repos + registry for each test."""
    bus = EventBus()
    event_repo = EventRepository()
    reminder_set_repo = ReminderSetRepository()
    delivery = InMemoryReminderDelivery()
    scheduler = ReminderScheduler(delivery=delivery, clock=FixedClock(_NOW))

    registry = HandlerRegistry(
        bus=bus,
        event_repo=event_repo,
        reminder_set_repo=reminder_set_repo,
        scheduler=scheduler,
    )

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.event_repo = event_repo
    e.reminder_set_repo = reminder_set_repo
    e.delivery = delivery
    e.registry = registry
    return e


def _make_event(**overrides) -> Event:
    defaults = dict(id="evt-1", title="Birthday", target_at=datetime(2026, 6, 15, 14, 0))
    defaults.update(overrides)
    return Event(**defaults)


def test_saved_event_gets_default_reminder(env):
    env.event_repo.add(_make_event())

    env.bus.publish(EventSaved(event_id="evt-1"))

    assert env.reminder_set_repo.get("evt-1") == default_reminder_set("evt-1")
    assert env.delivery.list_pending() == ["event_evt-1_dayBefore"]
    assert env.reminder_set_repo.last_outcome("evt-1").scheduled_count == 1


def test_saved_event_uses_stored_reminder_set(env):
    env.event_repo.add(_make_event())
    env.reminder_set_repo.save(add_custom(default_reminder_set("evt-1"), 4))

    env.bus.publish(EventSaved(event_id="evt-1"))

    assert env.delivery.list_pending() == ["event_evt-1_custom_4", "event_evt-1_dayBefore"]


def test_resave_after_date_change_moves_reminders(env):
    env.event_repo.add(_make_event())
    env.bus.publish(EventSaved(event_id="evt-1"))

    env.event_repo.add(_make_event(target_at=datetime(2026, 7, 1, 12, 0)))
    env.bus.publish(EventSaved(event_id="evt-1"))

    pending = env.delivery.get("event_evt-1_dayBefore")
    assert pending.fire_at == datetime(2026, 6, 30, 9, 0)
    assert len(env.delivery.list_pending()) == 1


def test_disabling_clears_pending(env):
    env.event_repo.add(_make_event())
    env.bus.publish(EventSaved(event_id="evt-1"))

    env.reminder_set_repo.save(set_enabled(default_reminder_set("evt-1"), False))
    env.bus.publish(EventSaved(event_id="evt-1"))

    assert env.delivery.list_pending() == []


def test_deleted_event_cancels_reminders(env):
    env.event_repo.add(_make_event())
    env.bus.publish(EventSaved(event_id="evt-1"))
    env.event_repo.delete("evt-1")

    env.bus.publish(EventDeleted(event_id="evt-1"))

    assert env.delivery.list_pending() == []
    assert env.reminder_set_repo.get("evt-1") is None


def test_saved_unknown_event_is_ignored(env):
    env.bus.publish(EventSaved(event_id="missing"))
    assert env.delivery.list_pending() == []


def test_primary_rule_none_schedules_nothing(env):
    env.event_repo.add(_make_event())
    env.reminder_set_repo.save(
        default_reminder_set("evt-1").model_copy(update={"primary_rule": TimingRule.none()})
    )

    env.bus.publish(EventSaved(event_id="evt-1"))

    assert env.delivery.list_pending() == []
    assert env.reminder_set_repo.last_outcome("evt-1").scheduled_count == 0
