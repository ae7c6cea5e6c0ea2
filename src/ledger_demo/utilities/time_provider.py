"""Clock abstractions so breaker windows and run timing can be driven in tests."""

from __future__ import annotations

import time as time_module
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class TimeProvider(Protocol):
    """Protocol for retrieving current time values."""

    def now_utc(self) -> datetime:
        """Return the current UTC time as a timezone-aware datetime."""

    def time(self) -> float:
        """Return the current Unix timestamp (seconds since epoch)."""

    def monotonic(self) -> float:
        """Return a monotonic clock value for measuring durations."""


class SystemClock:
    """Clock backed by the system time sources."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def time(self) -> float:
        return time_module.time()

    def monotonic(self) -> float:
        return time_module.monotonic()


class FakeClock:
    """Deterministic clock for tests that can be advanced manually."""

    def __init__(self, start_time: float = 1_700_000_000.0) -> None:
        self._now = datetime.fromtimestamp(float(start_time), UTC)
        self._monotonic = float(start_time)

    def now_utc(self) -> datetime:
        return self._now

    def time(self) -> float:
        return self._now.timestamp()

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("advance() requires a non-negative duration")
        self._now = self._now + timedelta(seconds=float(seconds))
        self._monotonic += float(seconds)


__all__ = ["FakeClock", "SystemClock", "TimeProvider"]
