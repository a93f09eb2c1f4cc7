"""Rental pricing."""

import math
from datetime import date, datetime, time, timezone
from decimal import Decimal

from kitchen_rental.domain.errors import InvalidDailyRateError, SubMinimumDurationError
from kitchen_rental.domain.value_objects.money import quantize_amount

SECONDS_PER_DAY = 24 * 60 * 60


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def billable_days(start: date | datetime, end: date | datetime) -> int:
    """Any started day counts as a full day."""
    seconds = (_as_datetime(end) - _as_datetime(start)).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def compute_amount(
    daily_rate: Decimal | int | str,
    start: date | datetime,
    end: date | datetime,
) -> Decimal:
    """
    Charge for renting at ``daily_rate`` from ``start`` to ``end``.

    Pure function of its inputs. The result keeps the currency's minor-unit
    precision; no other rounding is applied.

    Raises:
        InvalidDailyRateError: the rate is zero or negative.
        SubMinimumDurationError: the window is shorter than one day.
    """
    rate = daily_rate if isinstance(daily_rate, Decimal) else Decimal(str(daily_rate))
    if rate <= 0:
        raise InvalidDailyRateError(daily_rate)

    days = billable_days(start, end)
    if days < 1:
        raise SubMinimumDurationError(days)

    return quantize_amount(rate * days)
