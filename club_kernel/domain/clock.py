"""
Clock -- deterministic time abstraction.

Responsibility:
    Injectable clock so that services never call ``datetime.now()`` or
    ``date.today()`` directly.  Dues automation windows depend on "today",
    so every boundary test drives time through a DeterministicClock.

Architecture position:
    Kernel > Domain -- zero I/O except SystemClock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today(tz)`` returns the calendar date in the named timezone.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self, tz_name: str = "UTC") -> date:
        """Calendar date of ``now()`` in ``tz_name``."""
        return self.now().astimezone(ZoneInfo(tz_name)).date()


class SystemClock(Clock):
    """Production clock returning the actual system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``advance_days()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0

    @classmethod
    def on_date(cls, day: date, hour: int = 12) -> "DeterministicClock":
        """Clock pinned to ``hour``:00 UTC on ``day``."""
        return cls(datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def advance_days(self, days: int) -> None:
        self._advance_seconds += days * 86400
