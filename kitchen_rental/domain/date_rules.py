"""Reservation window rules shared by creation, rescheduling and availability checks."""

from datetime import date, datetime, timedelta

from kitchen_rental.domain.errors import (
    EndBeforeOrEqualStartError,
    PastStartDateError,
    TooFarInFutureError,
)
from kitchen_rental.domain.value_objects.date_range import DateRange

DEFAULT_MAX_ADVANCE_DAYS = 365


def to_day(value: date | datetime) -> date:
    """Strip the time of day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def validate_window(
    start: date | datetime,
    end: date | datetime,
    now: datetime,
    max_advance_days: int = DEFAULT_MAX_ADVANCE_DAYS,
) -> DateRange:
    """
    Check a candidate window against "today" and return it as a DateRange.

    All values are compared at calendar-day granularity. A reservation being
    rescheduled is validated against the current day as well, so it can be
    moved forward but never into the past.

    Raises:
        PastStartDateError: start is before today.
        EndBeforeOrEqualStartError: end is not after start.
        TooFarInFutureError: start is more than ``max_advance_days`` ahead.
    """
    today = to_day(now)
    start_day = to_day(start)
    end_day = to_day(end)

    if start_day < today:
        raise PastStartDateError(start_day, end_day)
    if end_day <= start_day:
        raise EndBeforeOrEqualStartError(start_day, end_day)
    if start_day > today + timedelta(days=max_advance_days):
        raise TooFarInFutureError(start_day, end_day, max_advance_days)

    return DateRange(start=start_day, end=end_day)
