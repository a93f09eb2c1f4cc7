"""Constants and small builders shared across the test suite."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

# Monday morning; every relative date in the suite is computed from here.
FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()

EQUIPMENT_ID = "eq-test-mixer"
EQUIPMENT_RATE = Decimal("50.00")


def days_from_today(days: int) -> date:
    return TODAY + timedelta(days=days)


def auth_headers(actor_id: str, role: str) -> dict[str, str]:
    return {"X-User-Id": actor_id, "X-User-Role": role}


def suspend_after(read):
    """
    Wrap an async repository read so the caller yields to the event loop
    right after reading. Two tasks that go through it both see the state as
    it was before either of them wrote.
    """

    async def wrapper(*args, **kwargs):
        result = await read(*args, **kwargs)
        await asyncio.sleep(0)
        return result

    return wrapper
