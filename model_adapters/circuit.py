"""Circuit breaker pattern for per-adapter fault isolation."""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, TypeVar, Optional, Any, Dict

from .errors import CircuitOpenError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation, requests pass through
    OPEN = "open"  # Circuit tripped, requests fail fast
    HALF_OPEN = "half_open"  # One probe allowed to test recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Consecutive failures before opening
    reset_timeout: float = 60.0  # Seconds before trying half-open
    exclude_exceptions: tuple = field(default_factory=tuple)  # Don't count these as failures


class CircuitBreaker:
    """
    Circuit breaker implementation.

    States:
    - CLOSED: Normal operation. Consecutive failures increment a counter.
    - OPEN: All requests fail fast until ``reset_timeout`` has elapsed.
    - HALF_OPEN: Exactly one probe request is let through. Success closes the
      circuit, failure reopens it and restarts the timeout window.

    State changes happen under a lock that is never held across an await.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False

        self._lock = threading.RLock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state, checking for timeout transition."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._should_attempt_reset():
                self._transition_to_half_open()
            return self._state

    @property
    def failure_count(self) -> int:
        """Get current consecutive failure count."""
        return self._failure_count

    @property
    def opened_at(self) -> Optional[float]:
        return self._opened_at

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def is_half_open(self) -> bool:
        return self.state == CircuitState.HALF_OPEN

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to try half-open."""
        if self._opened_at is None:
            return True
        return self._clock() - self._opened_at >= self.config.reset_timeout

    def _get_remaining_timeout(self) -> float:
        """Get remaining time until half-open transition."""
        if self._opened_at is None:
            return 0
        elapsed = self._clock() - self._opened_at
        return max(0, self.config.reset_timeout - elapsed)

    def _transition_to_half_open(self) -> None:
        self._state = CircuitState.HALF_OPEN
        self._probe_in_flight = False
        logger.info("Circuit '%s': OPEN -> HALF_OPEN (testing service recovery)", self.name)

    def _transition_to_open(self) -> None:
        previous = self._state
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._probe_in_flight = False
        logger.warning(
            "Circuit '%s': %s -> OPEN (%d consecutive failures, threshold %d)",
            self.name,
            previous.name,
            self._failure_count,
            self.config.failure_threshold,
        )

    def _transition_to_closed(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit '%s': %s -> CLOSED (service recovered)", self.name, self._state.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._probe_in_flight = False

    def _acquire(self) -> None:
        """Admit a call or raise CircuitOpenError."""
        with self._lock:
            state = self.state  # This may transition open -> half-open

            if state == CircuitState.CLOSED:
                return

            if state == CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return

            remaining = self._get_remaining_timeout()
            raise CircuitOpenError(
                f"circuit '{self.name}' is open, retry after {remaining:.0f}s",
                provider=self.name,
                remaining_timeout=remaining,
            )

    def _record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to_closed()
            else:
                self._failure_count = 0

    def _record_failure(self, exception: Exception) -> None:
        if isinstance(exception, self.config.exclude_exceptions):
            with self._lock:
                self._probe_in_flight = False
            return

        with self._lock:
            self._failure_count += 1

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to_open()
            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self.config.failure_threshold:
                    self._transition_to_open()

    async def call_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Execute an async function through the circuit breaker.

        Args:
            func: Async function to execute
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            Result from func

        Raises:
            CircuitOpenError: If circuit is open, without calling func
        """
        self._acquire()

        try:
            result = await func(*args, **kwargs)
        except asyncio.CancelledError:
            with self._lock:
                self._probe_in_flight = False
            raise
        except Exception as e:
            self._record_failure(e)
            raise

        self._record_success()
        return result

    def reset(self) -> None:
        """Manually reset the circuit breaker to closed state."""
        with self._lock:
            self._transition_to_closed()

    def trip(self) -> None:
        """Manually trip the circuit breaker to open state."""
        with self._lock:
            self._transition_to_open()

    def get_stats(self) -> Dict[str, Any]:
        """Get circuit breaker statistics."""
        with self._lock:
            state = self.state
            return {
                "name": self.name,
                "state": state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self.config.failure_threshold,
                "remaining_timeout": self._get_remaining_timeout() if state == CircuitState.OPEN else 0,
            }
