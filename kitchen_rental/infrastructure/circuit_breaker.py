"""
Circuit breaker configuration for external service calls.

- CLOSED: normal operation, requests pass through
- OPEN: too many failures, requests fail immediately
- HALF_OPEN: one trial request decides whether to close again
"""

import logging

from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

logger = logging.getLogger(__name__)


class LoggingBreakerListener(CircuitBreakerListener):
    """Logs breaker state changes for monitoring and alerting."""

    def __init__(self, name: str):
        self.name = name

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": old_state.name if old_state else None,
                "new_state": new_state.name if new_state else None,
            },
        )


stripe_breaker = CircuitBreaker(
    fail_max=5,
    reset_timeout=60,
    name="stripe_circuit_breaker",
    listeners=[LoggingBreakerListener("stripe")],
)


__all__ = [
    "stripe_breaker",
    "CircuitBreakerError",
    "LoggingBreakerListener",
]
