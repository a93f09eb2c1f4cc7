"""Equipment snapshot as seen by the booking core (read-only)."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class EquipmentStatus(str, Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


@dataclass(frozen=True)
class EquipmentSnapshot:
    id: str
    status: EquipmentStatus
    daily_rate: Decimal
    name: str = ""
    currency: str = "USD"

    @property
    def is_available(self) -> bool:
        return self.status == EquipmentStatus.AVAILABLE
