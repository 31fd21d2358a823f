"""FastAPI application: entry point for the countdown reminder service."""

from __future__ import annotations

from datetime import datetime, timedelta

from fastapi import FastAPI, HTTPException

from countdown.clock import SystemClock
from countdown.config import configure_logging, get_settings
from countdown.domain.bus import EventBus
from countdown.domain.errors import InvalidRuleError
from countdown.domain.events import EventDeleted, EventSaved
from countdown.domain.handlers import HandlerRegistry
from countdown.domain.models import (
    CustomRuleIn,
    Event,
    EventIn,
    EventOut,
    NotificationRecord,
    PendingReminder,
    ReminderSet,
    ReminderSetIn,
    ReminderSetOut,
)
from countdown.repos.memory import (
    EventRepository,
    InMemoryReminderDelivery,
    NotificationHistoryRepository,
    ReminderSetRepository,
)
from countdown.services.countdown import days_remaining
from countdown.services.dispatch import LoggingPushSender, dispatch_due
from countdown.services.reminder_set import add_custom, default_reminder_set, remove_custom
from countdown.services.scheduler import ReminderScheduler
from countdown.services.timing import validate_rule

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Countdown Reminder Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
event_repo = EventRepository()
reminder_set_repo = ReminderSetRepository()
history_repo = NotificationHistoryRepository()
delivery = InMemoryReminderDelivery()
push_sender = LoggingPushSender()

scheduler = ReminderScheduler(
    delivery=delivery,
    clock=SystemClock(settings.tz),
    anchor_hour=settings.anchor_hour,
    anchor_minute=settings.anchor_minute,
    title=settings.notification_title,
)

handler_registry = HandlerRegistry(
    bus=event_bus,
    event_repo=event_repo,
    reminder_set_repo=reminder_set_repo,
    scheduler=scheduler,
)


def _localize(value: datetime) -> datetime:
    """Interpret naive datetimes in the configured timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=settings.tz)
    return value


def _get_event_or_404(event_id: str) -> Event:
    event = event_repo.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _event_out(event: Event) -> EventOut:
    return EventOut(
        **event.model_dump(),
        days_remaining=days_remaining(event.target_at, scheduler.clock.now()),
    )


def _reminder_set_out(event_id: str) -> ReminderSetOut:
    reminder_set = reminder_set_repo.get(event_id) or default_reminder_set(event_id)
    return ReminderSetOut(
        reminder_set=reminder_set,
        description=scheduler.describe_current(reminder_set),
        outcome=reminder_set_repo.last_outcome(event_id),
    )


def _save_reminder_set(reminder_set: ReminderSet) -> ReminderSetOut:
    try:
        validate_rule(reminder_set.primary_rule)
        for rule in reminder_set.custom_rules:
            validate_rule(rule)
    except InvalidRuleError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    reminder_set_repo.save(reminder_set)
    event_bus.publish(EventSaved(event_id=reminder_set.event_id))
    return _reminder_set_out(reminder_set.event_id)


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/events", response_model=EventOut, status_code=201)
def create_event(payload: EventIn) -> EventOut:
    """Store a new event and schedule its default reminder."""
    event = Event(
        title=payload.title,
        target_at=_localize(payload.target_at),
        note=payload.note,
        color=payload.color,
    )
    event_repo.add(event)
    event_bus.publish(EventSaved(event_id=event.id))
    return _event_out(event)


@app.get("/events", response_model=list[EventOut])
def list_events() -> list[EventOut]:
    """Return all stored events, soonest first."""
    return [_event_out(e) for e in event_repo.list_all()]


@app.get("/events/{event_id}", response_model=EventOut)
def get_event(event_id: str) -> EventOut:
    return _event_out(_get_event_or_404(event_id))


@app.put("/events/{event_id}", response_model=EventOut)
def update_event(event_id: str, payload: EventIn) -> EventOut:
    """Update an event and reschedule its reminders."""
    stored = _get_event_or_404(event_id)
    updated = stored.model_copy(
        update={
            "title": payload.title,
            "target_at": _localize(payload.target_at),
            "note": payload.note,
            "color": payload.color,
        }
    )
    event_repo.add(updated)
    event_bus.publish(EventSaved(event_id=event_id))
    return _event_out(updated)


@app.delete("/events/{event_id}")
def delete_event(event_id: str) -> dict:
    """Delete an event and cancel everything scheduled for it."""
    _get_event_or_404(event_id)
    event_repo.delete(event_id)
    event_bus.publish(EventDeleted(event_id=event_id))
    return {"status": "deleted"}


@app.get("/events/{event_id}/reminders", response_model=ReminderSetOut)
def get_reminders(event_id: str) -> ReminderSetOut:
    _get_event_or_404(event_id)
    return _reminder_set_out(event_id)


@app.put("/events/{event_id}/reminders", response_model=ReminderSetOut)
def replace_reminders(event_id: str, payload: ReminderSetIn) -> ReminderSetOut:
    """Replace the reminder settings wholesale and reconcile."""
    _get_event_or_404(event_id)
    reminder_set = ReminderSet(event_id=event_id, **payload.model_dump())
    return _save_reminder_set(reminder_set)


@app.post("/events/{event_id}/reminders/custom", response_model=ReminderSetOut)
def add_custom_reminder(event_id: str, payload: CustomRuleIn) -> ReminderSetOut:
    _get_event_or_404(event_id)
    current = reminder_set_repo.get(event_id) or default_reminder_set(event_id)
    return _save_reminder_set(add_custom(current, payload.days))


@app.delete("/events/{event_id}/reminders/custom/{days}", response_model=ReminderSetOut)
def remove_custom_reminder(event_id: str, days: int) -> ReminderSetOut:
    _get_event_or_404(event_id)
    current = reminder_set_repo.get(event_id) or default_reminder_set(event_id)
    return _save_reminder_set(remove_custom(current, days))


@app.get("/reminders/pending", response_model=list[PendingReminder])
def list_pending_reminders() -> list[PendingReminder]:
    """Return reminders waiting to fire, soonest first."""
    return delivery.pending_items()


@app.post("/tick", response_model=list[NotificationRecord])
def tick(now: datetime | None = None) -> list[NotificationRecord]:
    """Run the dispatch job once.

    Pass *now* as a query param to control the simulated clock. Defaults to
    the scheduler clock when omitted.
    """
    current_time = _localize(now) if now is not None else scheduler.clock.now()
    return dispatch_due(
        delivery,
        push_sender,
        history_repo,
        now=current_time,
        window=timedelta(minutes=settings.dispatch_window_minutes),
    )


@app.get("/history", response_model=list[NotificationRecord])
def list_history() -> list[NotificationRecord]:
    return history_repo.list_all()
