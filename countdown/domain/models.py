"""Domain models for the countdown reminder service."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class TimingKind(StrEnum):
    NONE = "none"
    SAME_DAY = "sameDay"
    DAY_BEFORE = "dayBefore"
    WEEK_BEFORE = "weekBefore"
    MONTH_BEFORE = "monthBefore"
    CUSTOM = "custom"


class DeliveryStatus(StrEnum):
    SENT = "sent"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Event(BaseModel):
    """A countdown target. The reminder core only reads id, title and target_at."""

    id: str = Field(default_factory=_new_id)
    title: str
    target_at: datetime
    note: str = ""
    color: str = "blue"
    created_at: datetime = Field(default_factory=_utcnow)


class TimingRule(BaseModel):
    """How far before an event a reminder fires.

    ``days`` only carries meaning for ``custom``. Positivity is checked when
    the rule is evaluated, not when it is built, so stored data with a bad
    offset surfaces as ``InvalidRuleError`` instead of a parse failure.
    """

    model_config = ConfigDict(frozen=True)

    kind: TimingKind
    days: int | None = None

    @classmethod
    def none(cls) -> TimingRule:
        return cls(kind=TimingKind.NONE)

    @classmethod
    def same_day(cls) -> TimingRule:
        return cls(kind=TimingKind.SAME_DAY)

    @classmethod
    def day_before(cls) -> TimingRule:
        return cls(kind=TimingKind.DAY_BEFORE)

    @classmethod
    def week_before(cls) -> TimingRule:
        return cls(kind=TimingKind.WEEK_BEFORE)

    @classmethod
    def month_before(cls) -> TimingRule:
        return cls(kind=TimingKind.MONTH_BEFORE)

    @classmethod
    def custom(cls, days: int) -> TimingRule:
        return cls(kind=TimingKind.CUSTOM, days=days)

    @property
    def is_custom(self) -> bool:
        return self.kind == TimingKind.CUSTOM


class ReminderSet(BaseModel):
    """Reminder policy for exactly one event."""

    event_id: str
    enabled: bool = True
    primary_rule: TimingRule = Field(default_factory=TimingRule.day_before)
    custom_rules: list[TimingRule] = Field(default_factory=list)


class ScheduledReminder(BaseModel):
    """A concrete reminder computed from (event, rule). Never persisted."""

    event_id: str
    rule: TimingRule
    fire_at: datetime
    title: str
    body: str
    dedupe_key: str


class RuleFailure(BaseModel):
    rule: TimingRule
    reason: str


class SchedulingOutcome(BaseModel):
    """Result of one reconcile pass."""

    scheduled_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    errors: list[RuleFailure] = Field(default_factory=list)

    @classmethod
    def none(cls) -> SchedulingOutcome:
        return cls()

    @property
    def total(self) -> int:
        return self.scheduled_count + self.failed_count

    @property
    def ok(self) -> bool:
        return self.failed_count == 0

    def summary(self) -> str:
        return f"{self.scheduled_count} of {self.total} reminders set"


class PendingReminder(BaseModel):
    """A reminder held by the delivery collaborator until it fires."""

    dedupe_key: str
    fire_at: datetime
    title: str
    body: str


class NotificationRecord(BaseModel):
    """One entry of the notification history written by the dispatcher."""

    id: str = Field(default_factory=_new_id)
    dedupe_key: str
    title: str
    body: str
    fire_at: datetime
    sent_at: datetime
    status: DeliveryStatus
    error_message: str | None = None


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class EventIn(BaseModel):
    title: str = Field(min_length=1)
    target_at: datetime
    note: str = ""
    color: str = "blue"


class EventOut(Event):
    days_remaining: int


class ReminderSetIn(BaseModel):
    enabled: bool = True
    primary_rule: TimingRule = Field(default_factory=TimingRule.day_before)
    custom_rules: list[TimingRule] = Field(default_factory=list)


class CustomRuleIn(BaseModel):
    days: int = Field(gt=0)


class ReminderSetOut(BaseModel):
    reminder_set: ReminderSet
    description: str
    outcome: SchedulingOutcome | None = None
