"""Retry and circuit-breaker protection for remote calls."""

from ledger_demo.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerStats,
    CircuitState,
)
from ledger_demo.resilience.retry import RetryPolicy, with_retry

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerStats",
    "CircuitState",
    "RetryPolicy",
    "with_retry",
]
