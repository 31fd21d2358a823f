"""In-memory repositories and the in-memory reminder delivery adapter."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from countdown.domain.errors import DeliveryError
from countdown.domain.models import (
    Event,
    NotificationRecord,
    PendingReminder,
    ReminderSet,
    SchedulingOutcome,
)

logger = logging.getLogger(__name__)


class EventRepository:
    """Dict-backed store for Event instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Event] = {}

    def add(self, event: Event) -> None:
        self._store[event.id] = event

    def get(self, event_id: str) -> Event | None:
        return self._store.get(event_id)

    def list_all(self) -> list[Event]:
        return sorted(self._store.values(), key=lambda e: e.target_at)

    def delete(self, event_id: str) -> None:
        self._store.pop(event_id, None)


class ReminderSetRepository:
    """Reminder sets and the last scheduling outcome, keyed by event id."""

    def __init__(self) -> None:
        self._sets: dict[str, ReminderSet] = {}
        self._outcomes: dict[str, SchedulingOutcome] = {}

    def save(self, reminder_set: ReminderSet) -> None:
        self._sets[reminder_set.event_id] = reminder_set

    def get(self, event_id: str) -> ReminderSet | None:
        return self._sets.get(event_id)

    def delete(self, event_id: str) -> None:
        self._sets.pop(event_id, None)
        self._outcomes.pop(event_id, None)

    def record_outcome(self, event_id: str, outcome: SchedulingOutcome) -> None:
        self._outcomes[event_id] = outcome

    def last_outcome(self, event_id: str) -> SchedulingOutcome | None:
        return self._outcomes.get(event_id)


class NotificationHistoryRepository:
    """List-backed log of dispatched notifications."""

    def __init__(self) -> None:
        self._records: list[NotificationRecord] = []

    def add(self, record: NotificationRecord) -> None:
        self._records.append(record)

    def list_all(self) -> list[NotificationRecord]:
        return sorted(self._records, key=lambda r: r.sent_at)

    def was_sent(self, dedupe_key: str, fire_at: datetime) -> bool:
        return any(r.dedupe_key == dedupe_key and r.fire_at == fire_at for r in self._records)


class InMemoryReminderDelivery:
    """Holds pending reminders the way a device notification center does.

    Submitting an existing key replaces the earlier request.
    """

    def __init__(self) -> None:
        self._pending: dict[str, PendingReminder] = {}

    def submit(self, dedupe_key: str, fire_at: datetime, title: str, body: str) -> None:
        if not dedupe_key:
            raise DeliveryError("dedupe_key must not be empty")
        self._pending[dedupe_key] = PendingReminder(
            dedupe_key=dedupe_key, fire_at=fire_at, title=title, body=body
        )

    def cancel_by_prefix(self, prefix: str) -> None:
        keys = [k for k in self._pending if k.startswith(prefix)]
        for key in keys:
            del self._pending[key]
        if keys:
            logger.info("Cancelled %d pending reminder(s) with prefix %s", len(keys), prefix)

    def list_pending(self) -> list[str]:
        return [p.dedupe_key for p in self.pending_items()]

    def pending_items(self) -> list[PendingReminder]:
        return sorted(self._pending.values(), key=lambda p: (p.fire_at, p.dedupe_key))

    def get(self, dedupe_key: str) -> PendingReminder | None:
        return self._pending.get(dedupe_key)

    def list_due(self, now: datetime, window: timedelta = timedelta(0)) -> list[PendingReminder]:
        horizon = now + window
        return [p for p in self.pending_items() if p.fire_at <= horizon]

    def remove(self, dedupe_key: str) -> None:
        self._pending.pop(dedupe_key, None)
