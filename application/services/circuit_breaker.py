import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from domain.exceptions.currency import CircuitBreakerError

logger = logging.getLogger(__name__)


class CircuitBreakerState(Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """In-process circuit breaker guarding one rate source"""

    def __init__(
            self,
            source_name: str,
            failure_threshold: int = 3,
            recovery_timeout: int = 300,
            success_threshold: int = 1,
            clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.source_name = source_name

        # Circuit breaker configuration
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self._clock = clock

        self.state = CircuitBreakerState.CLOSED
        self.failure_count = 0
        self.last_failure_time: datetime | None = None

        # Track consecutive successes in HALF_OPEN state
        self._consecutive_successes = 0

    async def call(self, func: Callable[[], Awaitable[Any]]) -> Any:
        """Execute function with circuit breaker protection"""
        if self.state == CircuitBreakerState.OPEN:
            if self._should_attempt_reset():
                self._transition_state(CircuitBreakerState.HALF_OPEN, "attempting_recovery")
            else:
                raise CircuitBreakerError(self.source_name, self.failure_count, self.last_failure_time)

        try:
            result = await func()
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self):
        if self.state == CircuitBreakerState.HALF_OPEN:
            self._consecutive_successes += 1

            if self._consecutive_successes >= self.success_threshold:
                self._transition_state(
                    CircuitBreakerState.CLOSED,
                    f"recovery_successful after {self._consecutive_successes} successes",
                )
            else:
                logger.debug(
                    f"Circuit breaker HALF_OPEN for {self.source_name}: "
                    f"{self._consecutive_successes}/{self.success_threshold} successes"
                )
        else:
            # Reset failure count on successful call in normal operation
            self.failure_count = 0

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.state == CircuitBreakerState.HALF_OPEN:
            self._transition_state(CircuitBreakerState.OPEN, "failure_during_recovery")
            return

        if self.failure_count >= self.failure_threshold:
            self._transition_state(CircuitBreakerState.OPEN, f"{self.failure_count}_consecutive_failures")
        else:
            logger.warning(
                f"Source failure for {self.source_name}: {self.failure_count}/{self.failure_threshold}"
            )

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt circuit reset"""
        if self.last_failure_time is None:
            return True
        time_since_failure = self._clock() - self.last_failure_time
        return time_since_failure.total_seconds() >= self.recovery_timeout

    def _transition_state(self, new_state: CircuitBreakerState, reason: str):
        old_state = self.state
        self.state = new_state
        self._consecutive_successes = 0
        if new_state == CircuitBreakerState.CLOSED:
            self.failure_count = 0

        log = logger.warning if new_state == CircuitBreakerState.OPEN else logger.info
        log(
            f"Circuit breaker state change for {self.source_name}: "
            f"{old_state.value} -> {new_state.value} ({reason})"
        )

    def get_status(self) -> dict:
        """Get current circuit breaker status for monitoring"""
        return {
            "source": self.source_name,
            "state": self.state.value,
            "status": "healthy" if self.state == CircuitBreakerState.CLOSED else "unhealthy",
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
        }

    def force_reset(self):
        """Manually reset circuit breaker (for admin/debugging)"""
        self._transition_state(CircuitBreakerState.CLOSED, "manual_reset")
