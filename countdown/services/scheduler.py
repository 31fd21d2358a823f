"""Reminder scheduling: turn an event's ReminderSet into pending reminders.

The scheduler owns no state. Everything that is "scheduled" lives in the
injected ``ReminderDelivery``; reminders for one event are addressed by a
shared key prefix so a reconcile can replace them wholesale.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from countdown.domain.errors import DeliveryError
from countdown.domain.models import (
    Event,
    ReminderSet,
    RuleFailure,
    ScheduledReminder,
    SchedulingOutcome,
    TimingRule,
)
from countdown.services.reminder_set import effective_rules
from countdown.services.timing import (
    DEFAULT_ANCHOR_HOUR,
    DEFAULT_ANCHOR_MINUTE,
    describe,
    fire_time,
    identifier,
    validate_rule,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Event reminder"
NO_REMINDER = "no reminder"
DESCRIPTION_SEPARATOR = ", "


class Clock(Protocol):
    def now(self) -> datetime: ...


class ReminderDelivery(Protocol):
    """The platform side that stores and eventually fires reminders."""

    def cancel_by_prefix(self, prefix: str) -> None: ...

    def submit(self, dedupe_key: str, fire_at: datetime, title: str, body: str) -> None:
        """Accept one reminder or raise ``DeliveryError``."""
        ...

    def list_pending(self) -> list[str]: ...


def key_prefix(event_id: str) -> str:
    return f"event_{event_id}_"


def dedupe_key(event_id: str, rule: TimingRule) -> str:
    return f"{key_prefix(event_id)}{identifier(rule)}"


class ReminderScheduler:
    """Reconciles delivered reminders with an event's current ReminderSet."""

    def __init__(
        self,
        delivery: ReminderDelivery,
        clock: Clock,
        anchor_hour: int = DEFAULT_ANCHOR_HOUR,
        anchor_minute: int = DEFAULT_ANCHOR_MINUTE,
        title: str = DEFAULT_TITLE,
    ) -> None:
        self.delivery = delivery
        self.clock = clock
        self.anchor_hour = anchor_hour
        self.anchor_minute = anchor_minute
        self.title = title

    def expand(self, event: Event, reminder_set: ReminderSet) -> list[ScheduledReminder]:
        """Compute every reminder the set asks for, past or not."""
        reminders: list[ScheduledReminder] = []
        for rule in effective_rules(reminder_set):
            fire_at = fire_time(rule, event.target_at, self.anchor_hour, self.anchor_minute)
            if fire_at is None:
                continue
            reminders.append(
                ScheduledReminder(
                    event_id=event.id,
                    rule=rule,
                    fire_at=fire_at,
                    title=self.title,
                    body=f"{event.title}: {describe(rule)}",
                    dedupe_key=dedupe_key(event.id, rule),
                )
            )
        return reminders

    def reconcile(self, event: Event, reminder_set: ReminderSet) -> SchedulingOutcome:
        """Replace whatever is scheduled for *event* with what *reminder_set* asks for.

        A bad custom offset raises ``InvalidRuleError`` before anything is
        cancelled. Past or unrepresentable fire times are skipped. A
        submission that fails is recorded in the outcome and the remaining
        ones still go out.
        """
        rules = effective_rules(reminder_set)
        for rule in rules:
            validate_rule(rule)

        self.cancel(event.id)
        if not rules:
            return SchedulingOutcome.none()

        now = self.clock.now()
        reminders = self.expand(event, reminder_set)
        # Rules whose fire date falls outside the calendar never fire.
        outcome = SchedulingOutcome(skipped_count=len(rules) - len(reminders))
        for reminder in reminders:
            if reminder.fire_at <= now:
                logger.debug(
                    "Skipping past reminder %s (fire_at=%s, now=%s)",
                    reminder.dedupe_key,
                    reminder.fire_at.isoformat(),
                    now.isoformat(),
                )
                outcome.skipped_count += 1
                continue
            try:
                self.delivery.submit(
                    reminder.dedupe_key, reminder.fire_at, reminder.title, reminder.body
                )
            except DeliveryError as exc:
                logger.warning("Failed to schedule %s: %s", reminder.dedupe_key, exc)
                outcome.failed_count += 1
                outcome.errors.append(RuleFailure(rule=reminder.rule, reason=str(exc)))
                continue
            logger.info(
                "Scheduled %s for %s", reminder.dedupe_key, reminder.fire_at.isoformat()
            )
            outcome.scheduled_count += 1
        return outcome

    def cancel(self, event_id: str) -> None:
        """Drop every pending reminder for *event_id*. Never raises."""
        try:
            self.delivery.cancel_by_prefix(key_prefix(event_id))
        except DeliveryError as exc:
            logger.warning("Failed to cancel reminders for event %s: %s", event_id, exc)

    def describe_current(self, reminder_set: ReminderSet) -> str:
        rules = effective_rules(reminder_set)
        if not rules:
            return NO_REMINDER
        return DESCRIPTION_SEPARATOR.join(describe(rule) for rule in rules)
