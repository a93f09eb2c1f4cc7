"""
Deadlock retry for booking writes.

Two concurrent bookings on the same equipment can deadlock on the timeline
lock in a real database. The request boundary re-runs the whole unit of
work; the booking engine itself never retries.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Driver messages / SQLSTATE codes that mean "lost a lock race, try again".
RETRYABLE_LOCK_ERRORS = (
    "1213",  # MySQL deadlock
    "1205",  # MySQL lock wait timeout
    "40P01",  # PostgreSQL deadlock_detected
    "40001",  # PostgreSQL serialization_failure
    "database is locked",  # SQLite
)


def is_deadlock_error(error: BaseException) -> bool:
    """True when ``error``, or any error in its ``__cause__`` chain, is a lock race."""
    current: BaseException | None = error
    while current is not None:
        if isinstance(current, DBAPIError) and any(
            marker in str(current) for marker in RETRYABLE_LOCK_ERRORS
        ):
            return True
        current = current.__cause__
    return False


async def retry_on_deadlock(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
    operation: str = "booking write",
) -> T:
    """
    Run ``func`` and re-run it while it fails with a lock race.

    The wait doubles after every failed attempt (``base_delay``, then
    ``2 * base_delay`` ...). Any other error, or the last lock race, is
    re-raised unchanged.
    """
    attempt = 1
    while True:
        try:
            return await func()
        except Exception as exc:
            if not is_deadlock_error(exc):
                raise
            if attempt >= max_attempts:
                logger.error(
                    "Lock race persisted, giving up",
                    extra={"operation": operation, "attempts": attempt, "error": str(exc)},
                )
                raise

            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Deadlock on %s, retrying",
                operation,
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "retry_delay": delay,
                },
            )
            await asyncio.sleep(delay)
            attempt += 1
