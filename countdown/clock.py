"""Clocks injected into the scheduler and dispatcher.

``SystemClock`` reads real time. ``FixedClock`` holds a settable instant and
is used by tests and by the simulated ``/tick`` endpoint.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone, tzinfo


class SystemClock:
    """Wall-clock time in a fixed timezone (UTC by default)."""

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self._lock = threading.Lock()
        self._now = now

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, now: datetime) -> None:
        with self._lock:
            self._now = now

    def advance(self, delta: timedelta) -> datetime:
        if delta <= timedelta(0):
            raise ValueError("delta must be positive")
        with self._lock:
            self._now = self._now + delta
            return self._now
