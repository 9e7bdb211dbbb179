"""Injectable time source for expiry classification."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


def as_aware(value: datetime) -> datetime:
    """Return *value* with a timezone; naive datetimes are taken to be UTC.

    Used wherever naive and aware values may meet in a comparison.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Clock(ABC):
    """Supplies "now" to anything that depends on wall-clock time."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Reads the local wall clock (timezone-aware)."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class FixedClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, at: datetime) -> None:
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = at

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by ``timedelta(**kwargs)`` and return the new time."""
        self._at = self._at + timedelta(**kwargs)
        return self._at
