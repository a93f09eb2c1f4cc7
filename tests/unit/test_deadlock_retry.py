"""
Deadlock retry at the request boundary.

- Detects MySQL 1213/1205, PostgreSQL 40P01/40001 and SQLite "database is locked"
- Follows the ``__cause__`` chain of repository storage errors
- Retries with exponential backoff and gives up after max_attempts
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from kitchen_rental.domain.errors import ReservationStoreError
from kitchen_rental.infrastructure.db.retry import is_deadlock_error, retry_on_deadlock


def _operational_error(message: str) -> OperationalError:
    return OperationalError("statement", "params", message, connection_invalidated=False)


def _deadlock() -> OperationalError:
    return _operational_error("(pymysql.err.OperationalError) (1213, 'Deadlock found')")


class TestDeadlockDetection:
    @pytest.mark.parametrize(
        "message",
        [
            "(pymysql.err.OperationalError) (1213, 'Deadlock found')",
            "(pymysql.err.OperationalError) (1205, 'Lock wait timeout exceeded')",
            "deadlock detected SQLSTATE 40P01",
            "could not serialize access SQLSTATE 40001",
            "(sqlite3.OperationalError) database is locked",
        ],
    )
    def test_detects_lock_errors(self, message):
        assert is_deadlock_error(_operational_error(message))

    def test_ignores_other_errors(self):
        assert not is_deadlock_error(Exception("Generic error"))
        assert not is_deadlock_error(
            _operational_error("(pymysql.err.OperationalError) (2013, 'Lost connection')")
        )

    def test_detects_deadlock_wrapped_in_storage_error(self):
        try:
            try:
                raise _deadlock()
            except OperationalError as exc:
                raise ReservationStoreError("create reservation") from exc
        except ReservationStoreError as wrapped:
            assert is_deadlock_error(wrapped)


class TestRetryLogic:
    async def test_success_on_first_attempt(self):
        call_count = 0

        async def successful_func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert await retry_on_deadlock(successful_func, max_attempts=3) == "success"
        assert call_count == 1

    async def test_retries_until_success(self):
        call_count = 0

        async def fails_twice():
            nonlocal call_count
            call_count += 1
            if call_count <= 2:
                raise _deadlock()
            return "success_after_retries"

        result = await retry_on_deadlock(fails_twice, max_attempts=3, base_delay=0.01)

        assert result == "success_after_retries"
        assert call_count == 3

    async def test_gives_up_after_max_attempts(self):
        call_count = 0

        async def always_fails():
            nonlocal call_count
            call_count += 1
            raise _deadlock()

        with pytest.raises(OperationalError):
            await retry_on_deadlock(always_fails, max_attempts=3, base_delay=0.01)
        assert call_count == 3

    async def test_non_deadlock_error_not_retried(self):
        call_count = 0

        async def raises_value_error():
            nonlocal call_count
            call_count += 1
            raise ValueError("Not a deadlock")

        with pytest.raises(ValueError, match="Not a deadlock"):
            await retry_on_deadlock(raises_value_error, max_attempts=3)
        assert call_count == 1

    async def test_backoff_doubles(self):
        async def always_fails():
            raise _deadlock()

        with patch("kitchen_rental.infrastructure.db.retry.asyncio.sleep") as mock_sleep:
            mock_sleep.return_value = None
            with pytest.raises(OperationalError):
                await retry_on_deadlock(always_fails, max_attempts=3, base_delay=0.1)

        delays = [call.args[0] for call in mock_sleep.call_args_list]
        assert delays == pytest.approx([0.1, 0.2])

    async def test_logs_each_retry(self):
        call_count = 0

        async def fails_once():
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise _deadlock()
            return "success"

        with patch("kitchen_rental.infrastructure.db.retry.logger") as mock_logger:
            await retry_on_deadlock(fails_once, max_attempts=3, base_delay=0.01)

        assert mock_logger.warning.called
        assert "deadlock" in mock_logger.warning.call_args[0][0].lower()

    async def test_final_failure_names_the_operation(self):
        async def always_fails():
            raise _deadlock()

        with patch("kitchen_rental.infrastructure.db.retry.logger") as mock_logger:
            with pytest.raises(OperationalError):
                await retry_on_deadlock(
                    always_fails, max_attempts=2, base_delay=0, operation="create booking"
                )

        extra = mock_logger.error.call_args.kwargs["extra"]
        assert extra["operation"] == "create booking"
        assert extra["attempts"] == 2
