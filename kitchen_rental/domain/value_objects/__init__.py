"""Value objects of the rental domain."""

from kitchen_rental.domain.value_objects.date_range import DateRange
from kitchen_rental.domain.value_objects.money import Money

__all__ = [
    "DateRange",
    "Money",
]
