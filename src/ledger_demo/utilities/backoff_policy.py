"""Deterministic backoff policy helpers."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BASE_DELAY = 0.1
DEFAULT_MAX_DELAY = 2.0


@dataclass(frozen=True)
class BackoffDecision:
    """Result of evaluating a backoff attempt."""

    attempt: int
    delay_seconds: float
    capped: bool


def evaluate_backoff_delay(
    *,
    attempt: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    multiplier: float = 2.0,
) -> BackoffDecision:
    """Delay to wait after failed ``attempt`` (1-based) before the next one.

    ``min(base_delay * multiplier**attempt, max_delay)``; no jitter, so the
    schedule for the defaults is 0.2s, 0.4s, 0.8s, 1.6s, 2.0s, ...
    """

    if attempt < 1 or base_delay <= 0:
        return BackoffDecision(attempt=attempt, delay_seconds=0.0, capped=False)

    raw_delay = base_delay * (multiplier**attempt)
    capped = raw_delay >= max_delay
    return BackoffDecision(
        attempt=attempt, delay_seconds=float(min(raw_delay, max_delay)), capped=capped
    )


__all__ = [
    "DEFAULT_BASE_DELAY",
    "DEFAULT_MAX_DELAY",
    "BackoffDecision",
    "evaluate_backoff_delay",
]
