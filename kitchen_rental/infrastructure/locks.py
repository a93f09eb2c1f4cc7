"""In-process serialization of writers per equipment timeline."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class EquipmentLocks:
    """
    One ``asyncio.Lock`` per equipment id.

    Guards the conflict-check-then-write sequence inside a single process.
    Across processes the database row lock taken by
    ``ReservationRepo.lock_timeline`` does the same job.

    A lock lives only while some task holds it or waits for it, so the map
    stays as small as the number of equipment being written right now.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, equipment_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(equipment_id, asyncio.Lock())
        self._users[equipment_id] = self._users.get(equipment_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[equipment_id] -= 1
            if self._users[equipment_id] == 0:
                del self._users[equipment_id]
                del self._locks[equipment_id]

    def __len__(self) -> int:
        return len(self._locks)
