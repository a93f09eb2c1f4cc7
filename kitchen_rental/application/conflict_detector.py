"""Overlap detection between a candidate window and an equipment's timeline."""

import logging
from datetime import date

from kitchen_rental.application.interfaces.reservation_repo import ReservationRepo
from kitchen_rental.domain.date_rules import to_day
from kitchen_rental.domain.errors import EndBeforeOrEqualStartError


class ConflictDetector:
    """
    Answers whether ``[start, end]`` collides with a pending, confirmed or
    active reservation of the same equipment.

    Both bounds are inclusive: a window that starts on another's return day
    is a conflict. Store failures propagate as ReservationStoreError.
    """

    def __init__(self, reservation_repo: ReservationRepo) -> None:
        self._reservation_repo = reservation_repo
        self._logger = logging.getLogger(__name__)

    async def has_conflict(
        self,
        equipment_id: str,
        start: date,
        end: date,
        exclude_id: str | None = None,
    ) -> bool:
        start, end = to_day(start), to_day(end)
        if start >= end:
            raise EndBeforeOrEqualStartError(start, end)

        conflict = await self._reservation_repo.exists_conflict(
            equipment_id=equipment_id,
            start=start,
            end=end,
            exclude_id=exclude_id,
        )
        if conflict:
            self._logger.info(
                "Reservation window conflicts with existing booking",
                extra={
                    "equipment_id": equipment_id,
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                    "exclude_id": exclude_id,
                },
            )
        return conflict
