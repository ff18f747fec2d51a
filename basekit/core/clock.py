"""Time helpers bound to a named timezone."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigurationError


class Clock(Protocol):
    def today(self) -> date:
        ...


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"Invalid timezone name: {tz_name}") from None


def now_in_local(tz_name: str) -> datetime:
    return datetime.now(timezone.utc).astimezone(_zone(tz_name))


def today_in_local(tz_name: str) -> date:
    return now_in_local(tz_name).date()


class SystemClock:
    """Clock reading the system time in ``tz_name``."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self._zone = _zone(tz_name)
        self.tz_name = tz_name

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self._zone)

    def today(self) -> date:
        return self.now().date()
