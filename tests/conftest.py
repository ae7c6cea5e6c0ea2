"""
Shared fixtures: deterministic clock, recorded sleeps and an in-memory ledger API.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from ledger_demo.client import InMemoryLedgerApi, LedgerApi
from ledger_demo.generators import DemoDataFactory, GeneratorDeps
from ledger_demo.logging.correlation import phase_context_var, run_id_var
from ledger_demo.plugins import PluginManager
from ledger_demo.settings import Settings
from ledger_demo.state import StateRegistry
from ledger_demo.utilities.time_provider import FakeClock


class RecordedSleep:
    """Async stand-in for ``asyncio.sleep`` that records delays and advances a clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._clock is not None:
            self._clock.advance(delay)


@pytest.fixture(autouse=True)
def reset_run_context():
    """Reset the run correlation context around each test."""
    run_token = run_id_var.set("")
    phase_token = phase_context_var.set({})
    yield
    run_id_var.reset(run_token)
    phase_context_var.reset(phase_token)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorded_sleep(fake_clock: FakeClock) -> RecordedSleep:
    return RecordedSleep(fake_clock)


@pytest.fixture
def memory_api() -> InMemoryLedgerApi:
    return InMemoryLedgerApi()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, seed=7, max_concurrency=4)


@pytest.fixture
def make_deps(
    fake_clock: FakeClock,
    recorded_sleep: RecordedSleep,
    memory_api: InMemoryLedgerApi,
    settings: Settings,
) -> Callable[..., GeneratorDeps]:
    def _factory(
        *,
        client: LedgerApi | None = None,
        plugins: PluginManager | None = None,
        registry: StateRegistry | None = None,
        settings_override: Settings | None = None,
        seed: int = 7,
    ) -> GeneratorDeps:
        return GeneratorDeps(
            client=client or memory_api,
            registry=registry or StateRegistry(clock=fake_clock),
            plugins=plugins or PluginManager(),
            settings=settings_override or settings,
            data=DemoDataFactory(seed=seed),
            clock=fake_clock,
            sleep=recorded_sleep,
        )

    return _factory


@pytest.fixture
def deps(make_deps: Callable[..., GeneratorDeps]) -> GeneratorDeps:
    return make_deps()
