"""Dispatch of due reminders to a push sender.

This is the periodic job side of reminder delivery: each run looks at
pending reminders that fire within ``window`` of now, sends them, writes
the notification history and drops them from the pending set. A reminder
is sent at most once; a failed send is recorded and not retried.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Protocol

from countdown.domain.errors import DeliveryError
from countdown.domain.models import DeliveryStatus, NotificationRecord, PendingReminder
from countdown.repos.memory import InMemoryReminderDelivery, NotificationHistoryRepository

logger = logging.getLogger(__name__)


class PushSender(Protocol):
    def send(self, reminder: PendingReminder) -> None:
        """Deliver one notification or raise ``DeliveryError``."""
        ...


class LoggingPushSender:
    """Sender that writes notifications to the log instead of a push service."""

    def send(self, reminder: PendingReminder) -> None:
        logger.info("Notification %s: %s | %s", reminder.dedupe_key, reminder.title, reminder.body)


def dispatch_due(
    delivery: InMemoryReminderDelivery,
    sender: PushSender,
    history: NotificationHistoryRepository,
    now: datetime,
    window: timedelta = timedelta(0),
) -> list[NotificationRecord]:
    """Send every pending reminder due by ``now + window``.

    There is no lower bound: after a missed run, reminders whose fire time
    has already passed still go out on the next one (late rather than
    never). Any error from *sender* marks that reminder ``failed`` in the
    history and the batch carries on.

    Returns the history records written during this run.
    """
    records: list[NotificationRecord] = []
    due = delivery.list_due(now, window)
    if not due:
        logger.debug("No reminders due at %s", now.isoformat())
        return records

    for reminder in due:
        if history.was_sent(reminder.dedupe_key, reminder.fire_at):
            logger.info("Skipping %s, already dispatched", reminder.dedupe_key)
            delivery.remove(reminder.dedupe_key)
            continue

        status = DeliveryStatus.SENT
        error_message = None
        try:
            sender.send(reminder)
        except DeliveryError as exc:
            logger.warning("Failed to send %s: %s", reminder.dedupe_key, exc)
            status = DeliveryStatus.FAILED
            error_message = str(exc)
        except Exception as exc:
            logger.exception("Push sender crashed on %s", reminder.dedupe_key)
            status = DeliveryStatus.FAILED
            error_message = f"{type(exc).__name__}: {exc}"

        record = NotificationRecord(
            dedupe_key=reminder.dedupe_key,
            title=reminder.title,
            body=reminder.body,
            fire_at=reminder.fire_at,
            sent_at=now,
            status=status,
            error_message=error_message,
        )
        history.add(record)
        delivery.remove(reminder.dedupe_key)
        records.append(record)

    logger.info("Dispatched %d reminder(s) at %s", len(records), now.isoformat())
    return records
