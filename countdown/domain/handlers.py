"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from countdown.domain.bus import EventBus
from countdown.domain.events import EventDeleted, EventSaved
from countdown.repos.memory import EventRepository, ReminderSetRepository
from countdown.services.reminder_set import default_reminder_set
from countdown.services.scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Keeps scheduled reminders in step with stored events."""

    def __init__(
        self,
        bus: EventBus,
        event_repo: EventRepository,
        reminder_set_repo: ReminderSetRepository,
        scheduler: ReminderScheduler,
    ) -> None:
        self.bus = bus
        self.event_repo = event_repo
        self.reminder_set_repo = reminder_set_repo
        self.scheduler = scheduler
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(EventSaved, self.on_event_saved)
        self.bus.subscribe(EventDeleted, self.on_event_deleted)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_event_saved(self, event: EventSaved) -> None:
        stored = self.event_repo.get(event.event_id)
        if stored is None:
            return

        reminder_set = self.reminder_set_repo.get(event.event_id)
        if reminder_set is None:
            reminder_set = default_reminder_set(event.event_id)
            self.reminder_set_repo.save(reminder_set)

        outcome = self.scheduler.reconcile(stored, reminder_set)
        self.reminder_set_repo.record_outcome(event.event_id, outcome)
        logger.info("Event %s reminders: %s", event.event_id, outcome.summary())

    def on_event_deleted(self, event: EventDeleted) -> None:
        self.scheduler.cancel(event.event_id)
        self.reminder_set_repo.delete(event.event_id)
