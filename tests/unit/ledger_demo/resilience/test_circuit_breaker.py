from __future__ import annotations

import pytest

from ledger_demo.errors import CircuitOpenError
from ledger_demo.resilience import CircuitBreaker, CircuitBreakerConfig, CircuitState


class _Boom(Exception):
    pass


async def _fail() -> None:
    raise _Boom("remote unavailable")


async def _ok() -> str:
    return "ok"


@pytest.fixture
def breaker(fake_clock) -> CircuitBreaker:
    config = CircuitBreakerConfig(
        failure_threshold=3,
        recovery_timeout=30.0,
        monitoring_period=120.0,
        minimum_requests=2,
        success_threshold=0.6,
    )
    return CircuitBreaker("account-generator", config, fake_clock)


async def _trip(breaker: CircuitBreaker, failures: int = 3) -> None:
    for _ in range(failures):
        with pytest.raises(_Boom):
            await breaker.execute(_fail)


class TestCircuitBreaker:
    async def test_opens_after_threshold_failures(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker, failures=2)
        assert breaker.state is CircuitState.CLOSED

        await _trip(breaker, failures=1)
        assert breaker.state is CircuitState.OPEN
        assert breaker.is_available() is False
        assert breaker.get_stats().trips == 1

    async def test_open_circuit_rejects_without_calling(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker)
        calls = 0

        async def operation() -> None:
            nonlocal calls
            calls += 1

        with pytest.raises(CircuitOpenError) as excinfo:
            await breaker.execute(operation)

        assert calls == 0
        assert excinfo.value.breaker_name == "account-generator"
        assert breaker.get_stats().total_rejections == 1

    async def test_half_open_after_recovery_timeout_then_closes(
        self, breaker: CircuitBreaker, fake_clock
    ) -> None:
        await _trip(breaker)
        fake_clock.advance(29.0)
        assert breaker.state is CircuitState.OPEN

        fake_clock.advance(1.0)
        assert breaker.is_available() is True
        assert breaker.state is CircuitState.HALF_OPEN

        # probe_limit = 2, probes_to_close = ceil(0.6 * 2) = 2
        assert await breaker.execute(_ok) == "ok"
        assert breaker.state is CircuitState.HALF_OPEN
        assert await breaker.execute(_ok) == "ok"
        assert breaker.state is CircuitState.CLOSED
        assert breaker.get_stats().window_requests == 0

    async def test_probe_failure_reopens(self, breaker: CircuitBreaker, fake_clock) -> None:
        await _trip(breaker)
        fake_clock.advance(30.0)
        assert breaker.state is CircuitState.HALF_OPEN

        with pytest.raises(_Boom):
            await breaker.execute(_fail)

        assert breaker.state is CircuitState.OPEN
        assert breaker.get_stats().trips == 2

    async def test_failures_outside_window_do_not_count(
        self, breaker: CircuitBreaker, fake_clock
    ) -> None:
        await _trip(breaker, failures=2)
        fake_clock.advance(121.0)
        await _trip(breaker, failures=1)

        stats = breaker.get_stats()
        assert breaker.state is CircuitState.CLOSED
        assert stats.window_failures == 1
        assert stats.total_failures == 3

    async def test_minimum_requests_guards_opening(self, fake_clock) -> None:
        config = CircuitBreakerConfig(failure_threshold=1, minimum_requests=3)
        breaker = CircuitBreaker("ledger-generator", config, fake_clock)

        await _trip(breaker, failures=2)
        assert breaker.state is CircuitState.CLOSED

        await _trip(breaker, failures=1)
        assert breaker.state is CircuitState.OPEN

    async def test_count_threshold_ignores_surrounding_successes(
        self, breaker: CircuitBreaker
    ) -> None:
        for _ in range(50):
            await breaker.execute(_ok)

        await _trip(breaker, failures=3)

        assert breaker.state is CircuitState.OPEN

    async def test_fractional_threshold_is_a_failure_ratio(self, fake_clock) -> None:
        config = CircuitBreakerConfig(failure_threshold=0.5, minimum_requests=4)
        breaker = CircuitBreaker("asset-generator", config, fake_clock)
        for _ in range(6):
            await breaker.execute(_ok)

        await _trip(breaker, failures=5)
        assert breaker.state is CircuitState.CLOSED

        await _trip(breaker, failures=1)
        assert breaker.state is CircuitState.OPEN
        assert breaker.get_stats().window_failures == 6

    async def test_manual_reset_forces_closed(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker)
        breaker.manual_reset()

        assert breaker.state is CircuitState.CLOSED
        assert await breaker.execute(_ok) == "ok"

    async def test_is_available_does_not_transition(
        self, breaker: CircuitBreaker, fake_clock
    ) -> None:
        await _trip(breaker)
        fake_clock.advance(31.0)

        assert breaker.is_available() is True
        assert breaker.get_stats().state is CircuitState.OPEN
