"""Exceptions raised by the reminder core."""

from __future__ import annotations


class ReminderError(Exception):
    """Base class for reminder errors."""


class InvalidRuleError(ReminderError, ValueError):
    """A timing rule cannot be evaluated, e.g. a custom rule with days <= 0."""


class DeliveryError(ReminderError):
    """The delivery collaborator refused or failed to accept a reminder."""
