"""
Clock abstraction.
Timeouts and completion stamps read time through a Clock so tests can
control it.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Optional


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time (UTC, timezone-aware)."""
        pass


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Usage:
        clock = ManualClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        clock.advance(minutes=10)
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self._lock = Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, **delta: float) -> datetime:
        """Move forward by a timedelta expressed as keyword args."""
        with self._lock:
            self._now = self._now + timedelta(**delta)
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment
