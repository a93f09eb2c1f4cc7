"""Value object DateRange: the rental window of a reservation."""

from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class DateRange:
    """
    Immutable calendar-day window ``[start, end]``.

    Both bounds are inclusive when comparing windows: two ranges that share a
    single boundary day overlap, so equipment cannot be handed back and out
    again on the same day.

    Attributes:
        start: First rental day.
        end: Return day, strictly after ``start``.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"start must be before end: {self.start} >= {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def days(self) -> int:
        """Number of billable days (never below one)."""
        return max(1, self.duration.days)

    def __str__(self) -> str:
        return f"{self.start.isoformat()} -> {self.end.isoformat()}"
