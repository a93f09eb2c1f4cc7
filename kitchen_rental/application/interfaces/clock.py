"""Clock port. Every rule that depends on "now" reads it from here."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware UTC instant."""
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FakeClock(Clock):
    """
    Clock for tests and demos.

    Stays frozen until ``set_time`` or ``advance`` moves it, so cancellation
    windows and start gates can be exercised hour by hour.
    """

    def __init__(self, current: datetime | None = None):
        current = current or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set_time(self, new_time: datetime) -> None:
        self._current = new_time

    def advance(self, seconds: int = 0, minutes: int = 0, hours: int = 0, days: int = 0) -> None:
        self._current += timedelta(seconds=seconds, minutes=minutes, hours=hours, days=days)
