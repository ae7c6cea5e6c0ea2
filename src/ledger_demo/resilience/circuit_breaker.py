"""Circuit breaker guarding calls to the ledger API."""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from ledger_demo.config import constants
from ledger_demo.errors import CircuitOpenError
from ledger_demo.utilities.logging_patterns import get_logger
from ledger_demo.utilities.time_provider import SystemClock, TimeProvider

logger = get_logger(__name__, component="circuit_breaker")

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls
    HALF_OPEN = "half_open"  # Probing recovery


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Thresholds for a circuit breaker. Durations are in seconds."""

    failure_threshold: float = constants.CIRCUIT_FAILURE_THRESHOLD
    recovery_timeout: float = constants.CIRCUIT_RECOVERY_TIMEOUT
    monitoring_period: float = constants.CIRCUIT_MONITORING_PERIOD
    minimum_requests: int = constants.CIRCUIT_MINIMUM_REQUESTS
    success_threshold: float = constants.CIRCUIT_SUCCESS_THRESHOLD

    @property
    def probe_limit(self) -> int:
        return max(1, self.minimum_requests)

    @property
    def probes_to_close(self) -> int:
        return max(1, math.ceil(self.success_threshold * self.probe_limit))


@dataclass(frozen=True)
class CircuitBreakerStats:
    name: str
    state: CircuitState
    window_requests: int
    window_failures: int
    total_requests: int
    total_failures: int
    total_rejections: int
    trips: int
    opened_at: float | None


class CircuitBreaker:
    """Rolling-window circuit breaker.

    CLOSED opens once the ``monitoring_period`` window holds at least
    ``minimum_requests`` calls and its failures reach ``failure_threshold``.
    A threshold of 1 or more is a failure count, so three failures trip the
    default breaker however many successes surround them; a threshold below 1
    is a failure ratio of the window.

    OPEN rejects until ``recovery_timeout`` has passed, then admits
    ``probe_limit`` HALF_OPEN probes; enough successes close it and any probe
    failure reopens it.
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        clock: TimeProvider | None = None,
    ) -> None:
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock or SystemClock()
        self._state = CircuitState.CLOSED
        self._window: deque[tuple[float, bool]] = deque()
        self._opened_at: float | None = None
        self._probes_in_flight = 0
        self._probe_successes = 0
        self._total_requests = 0
        self._total_failures = 0
        self._total_rejections = 0
        self._trips = 0

    @property
    def state(self) -> CircuitState:
        self._refresh_state()
        return self._state

    def is_available(self) -> bool:
        """Whether a call made now would be attempted. Does not change state."""
        if self._state is CircuitState.CLOSED:
            return True
        if self._state is CircuitState.OPEN:
            return self._recovery_elapsed()
        return self._probes_in_flight < self.config.probe_limit

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        self._refresh_state()
        if self._state is CircuitState.OPEN or (
            self._state is CircuitState.HALF_OPEN
            and self._probes_in_flight >= self.config.probe_limit
        ):
            self._total_rejections += 1
            raise CircuitOpenError(
                f"Circuit '{self.name}' is open; call rejected", breaker_name=self.name
            )

        probing = self._state is CircuitState.HALF_OPEN
        if probing:
            self._probes_in_flight += 1
        self._total_requests += 1
        try:
            result = await operation()
        except Exception:
            if probing:
                self._probes_in_flight -= 1
            self._record(success=False, probing=probing)
            raise
        if probing:
            self._probes_in_flight -= 1
        self._record(success=True, probing=probing)
        return result

    def manual_reset(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logger.info(f"Circuit '{self.name}' manually reset", breaker=self.name)
        self._close()

    def get_stats(self) -> CircuitBreakerStats:
        self._prune()
        return CircuitBreakerStats(
            name=self.name,
            state=self._state,
            window_requests=len(self._window),
            window_failures=sum(1 for _, ok in self._window if not ok),
            total_requests=self._total_requests,
            total_failures=self._total_failures,
            total_rejections=self._total_rejections,
            trips=self._trips,
            opened_at=self._opened_at,
        )

    def _record(self, *, success: bool, probing: bool) -> None:
        if not success:
            self._total_failures += 1

        # A probe outcome only matters while still half-open.
        if probing and self._state is CircuitState.HALF_OPEN:
            if not success:
                self._open("probe failed")
                return
            self._probe_successes += 1
            if self._probe_successes >= self.config.probes_to_close:
                logger.info(f"Circuit '{self.name}' closed after recovery", breaker=self.name)
                self._close()
            return

        if self._state is not CircuitState.CLOSED:
            return
        self._window.append((self._clock.monotonic(), success))
        self._prune()
        failures = sum(1 for _, ok in self._window if not ok)
        if (
            not success
            and len(self._window) >= self.config.minimum_requests
            and self._threshold_reached(failures)
        ):
            self._open(f"{failures} failures in {len(self._window)} requests")

    def _threshold_reached(self, failures: int) -> bool:
        threshold = self.config.failure_threshold
        if threshold < 1:
            return failures / len(self._window) >= threshold
        return failures >= threshold

    def _refresh_state(self) -> None:
        if self._state is CircuitState.OPEN and self._recovery_elapsed():
            self._state = CircuitState.HALF_OPEN
            self._probes_in_flight = 0
            self._probe_successes = 0
            logger.info(f"Circuit '{self.name}' entering half-open state", breaker=self.name)

    def _recovery_elapsed(self) -> bool:
        if self._opened_at is None:
            return True
        return self._clock.monotonic() - self._opened_at >= self.config.recovery_timeout

    def _prune(self) -> None:
        cutoff = self._clock.monotonic() - self.config.monitoring_period
        while self._window and self._window[0][0] < cutoff:
            self._window.popleft()

    def _open(self, reason: str) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock.monotonic()
        self._probes_in_flight = 0
        self._probe_successes = 0
        self._trips += 1
        logger.warning(f"Circuit '{self.name}' opened: {reason}", breaker=self.name)

    def _close(self) -> None:
        self._state = CircuitState.CLOSED
        self._window.clear()
        self._opened_at = None
        self._probes_in_flight = 0
        self._probe_successes = 0


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerStats",
    "CircuitState",
]
