"""Domain events emitted when events or their reminder settings change."""

from __future__ import annotations

from pydantic import BaseModel


class EventSaved(BaseModel):
    """Fired after an Event or its ReminderSet is created or updated."""

    event_id: str


class EventDeleted(BaseModel):
    """Fired after an Event has been removed from the store."""

    event_id: str
