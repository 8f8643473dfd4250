"""Injectable time sources.

Expiry checks and period bucketing read time through a clock object so
tests can move time forward without sleeping.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Time source returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        """Return the current instant."""
        ...


class SystemClock:
    """Wall-clock UTC time source."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Settable time source for deterministic expiry and bucketing."""

    def __init__(self, start: datetime | None = None) -> None:
        self._current = _as_utc(start) if start else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward and return the new instant."""
        self._current = self._current + delta
        return self._current

    def set(self, instant: datetime) -> None:
        self._current = _as_utc(instant)


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
