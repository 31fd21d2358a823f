"""Runtime settings resolved from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass
class Settings:
    """Reminder policy and service configuration."""

    anchor_hour: int = 9
    anchor_minute: int = 0
    timezone: str = "UTC"
    notification_title: str = "Event reminder"
    dispatch_window_minutes: int = 60
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.anchor_hour = _env_int("COUNTDOWN_ANCHOR_HOUR", self.anchor_hour)
        self.anchor_minute = _env_int("COUNTDOWN_ANCHOR_MINUTE", self.anchor_minute)
        self.dispatch_window_minutes = _env_int(
            "COUNTDOWN_DISPATCH_WINDOW_MINUTES", self.dispatch_window_minutes
        )
        self.timezone = os.getenv("COUNTDOWN_TIMEZONE") or self.timezone
        self.notification_title = (
            os.getenv("COUNTDOWN_NOTIFICATION_TITLE") or self.notification_title
        )
        self.log_level = (os.getenv("COUNTDOWN_LOG_LEVEL") or self.log_level).upper()

        if not 0 <= self.anchor_hour <= 23:
            raise ValueError(f"anchor_hour must be in 0..23, got {self.anchor_hour}")
        if not 0 <= self.anchor_minute <= 59:
            raise ValueError(f"anchor_minute must be in 0..59, got {self.anchor_minute}")
        if self.dispatch_window_minutes < 0:
            raise ValueError("dispatch_window_minutes must not be negative")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
