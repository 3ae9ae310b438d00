"""Async circuit breaker for protecting Fitbit API calls."""

import threading
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

import structlog

from .metrics import CIRCUIT_BREAKER_STATE
from .types import JSONObject

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_STATE_GAUGE_VALUES = {"closed": 0, "open": 1, "half_open": 2}


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when a call is attempted on an open circuit."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit breaker '{name}' is open")
        self.breaker_name = name


class CircuitBreaker:
    """Circuit breaker (CLOSED -> OPEN -> HALF_OPEN -> CLOSED).

    After ``failure_threshold`` consecutive failures the circuit opens and
    ``call`` fails fast with ``CircuitOpenError``. Once ``recovery_timeout``
    seconds have passed a single trial call is let through; its outcome closes or
    reopens the circuit.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
    ) -> None:
        self._name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._lock = threading.RLock()
        self._failure_count = 0
        self._state = CircuitState.CLOSED
        self._last_failure_time: float = 0
        self._total_trips = 0
        self._export_state()

    def _export_state(self) -> None:
        CIRCUIT_BREAKER_STATE.labels(name=self._name).set(_STATE_GAUGE_VALUES[self._state.value])

    @property
    def state(self) -> CircuitState:
        """Current circuit state, accounting for recovery timeout."""
        with self._lock:
            elapsed = time.monotonic() - self._last_failure_time
            if self._state == CircuitState.OPEN and elapsed >= self._recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._export_state()
                logger.info(
                    "circuit_half_open",
                    name=self._name,
                    after_seconds=self._recovery_timeout,
                )
            return self._state

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def record_success(self) -> None:
        """Reset the failure count and close the circuit."""
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("circuit_closed", name=self._name)
            self._failure_count = 0
            self._state = CircuitState.CLOSED
            self._export_state()

    def record_failure(self) -> None:
        """Count a failure, opening the circuit at the threshold."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()
            # A failed half-open trial call reopens immediately
            if (
                self._failure_count >= self._failure_threshold
                or self._state == CircuitState.HALF_OPEN
            ):
                if self._state != CircuitState.OPEN:
                    self._total_trips += 1
                    logger.warning(
                        "circuit_opened",
                        name=self._name,
                        failures=self._failure_count,
                        recovery_timeout=self._recovery_timeout,
                        total_trips=self._total_trips,
                    )
                self._state = CircuitState.OPEN
                self._export_state()

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open.
        """
        if self.is_open:
            raise CircuitOpenError(self._name)
        try:
            result = await operation()
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def get_stats(self) -> JSONObject:
        """Get circuit breaker statistics."""
        with self._lock:
            return {
                "name": self._name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self._failure_threshold,
                "recovery_timeout": self._recovery_timeout,
                "total_trips": self._total_trips,
            }
