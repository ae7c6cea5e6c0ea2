"""Bounded retry with deterministic capped exponential backoff."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ledger_demo.errors import CircuitOpenError
from ledger_demo.utilities.backoff_policy import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_DELAY,
    evaluate_backoff_delay,
)
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="retry")

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]
RetryCallback = Callable[[str, int, BaseException, float], None]


@dataclass
class RetryPolicy:
    """Invoke an async operation up to ``max_retries`` times.

    Every failure is retried except a circuit-open rejection, which is raised
    straight away. The last error is re-raised once attempts are exhausted.
    """

    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    sleep: SleepFn = field(default=asyncio.sleep)
    on_retry: RetryCallback | None = None

    def delay_for(self, attempt: int) -> float:
        return evaluate_backoff_delay(
            attempt=attempt, base_delay=self.base_delay, max_delay=self.max_delay
        ).delay_seconds

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        max_retries: int = 3,
    ) -> T:
        attempts = max(1, max_retries)
        attempt = 0

        while True:
            attempt += 1
            try:
                return await operation()
            except CircuitOpenError:
                raise
            except Exception as exc:
                if attempt >= attempts:
                    logger.warning(
                        f"{name} failed after {attempts} attempts: {exc}",
                        operation=name,
                        attempts=attempts,
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.debug(
                    f"{name} failed (attempt {attempt}/{attempts}), retrying in {delay:.2f}s: {exc}",
                    operation=name,
                    attempt=attempt,
                )
                if self.on_retry is not None:
                    self.on_retry(name, attempt, exc, delay)
                await self.sleep(delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]], name: str, max_retries: int = 3
) -> T:
    """Run ``operation`` with the default retry policy."""
    return await RetryPolicy().run(operation, name, max_retries)


__all__ = ["RetryPolicy", "with_retry"]
