"""Circuit breaker for the booking backend.

Purpose: Fail fast when the scheduling service is down instead of stacking
up slow lookups behind every keystroke.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service failing, requests fail immediately
- HALF_OPEN: Testing if service recovered, allow one request

Remote calls run in worker threads (see services.HttpBookingBackend), so the
counters are guarded by a lock.
"""
import threading
import time
from enum import Enum
from typing import Any, Callable

from booking_workflow.logging_config import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when circuit breaker is open (fail fast)."""
    pass


class CircuitBreaker:
    """Circuit breaker for external service calls."""

    def __init__(self, failure_threshold: int = 5, timeout: int = 60):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            timeout: Seconds to wait before attempting half-open
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.last_failure_time = None
        self._state = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        """Get current state as string."""
        return self._state.value

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute function with circuit breaker protection.

        Raises:
            CircuitBreakerOpen: If circuit is open (fail fast)
            Exception: If function raises exception
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._state = CircuitState.HALF_OPEN
                    logger.info("circuit_half_open")
                else:
                    raise CircuitBreakerOpen(
                        f"Booking service unavailable. "
                        f"Retry after {self._time_until_retry():.1f}s"
                    )

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def reset(self):
        """Force the breaker back to CLOSED."""
        with self._lock:
            self.failure_count = 0
            self.last_failure_time = None
            self._state = CircuitState.CLOSED

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True

        elapsed = time.time() - self.last_failure_time
        return elapsed >= self.timeout

    def _time_until_retry(self) -> float:
        if self.last_failure_time is None:
            return 0

        elapsed = time.time() - self.last_failure_time
        return max(0, self.timeout - elapsed)

    def _on_success(self):
        with self._lock:
            self.failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("circuit_closed")

    def _on_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.time()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("circuit_reopened")
            elif self.failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.error(
                    "circuit_opened",
                    failure_count=self.failure_count,
                    timeout=self.timeout,
                )
