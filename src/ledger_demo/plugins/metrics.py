"""Aggregates timing and counts across a generation run."""

from __future__ import annotations

from collections import Counter
from typing import Any

from ledger_demo.plugins.base import Plugin, PluginContext
from ledger_demo.state import GenerationMetrics
from ledger_demo.utilities.time_provider import SystemClock, TimeProvider


class MetricsPlugin(Plugin):
    name = "metrics"
    version = "1.0.0"
    priority = 10

    def __init__(self, enabled: bool = True) -> None:
        super().__init__(enabled)
        self._clock: TimeProvider = SystemClock()
        self.created: Counter[str] = Counter()
        self.failed: Counter[str] = Counter()
        self.phase_durations: dict[str, float] = {}
        self._phase_started: dict[str, float] = {}
        self.memory_warnings = 0
        self.checkpoints = 0
        self.last_metrics: GenerationMetrics | None = None
        self._run_started: float | None = None
        self.run_duration: float | None = None

    async def initialize(self, context: PluginContext) -> None:
        self._clock = context.clock

    async def before_generation(self, config: dict[str, Any]) -> None:
        self.created.clear()
        self.failed.clear()
        self.phase_durations.clear()
        self._phase_started.clear()
        self._run_started = self._clock.monotonic()

    async def after_generation(self, report: dict[str, Any]) -> None:
        if self._run_started is not None:
            self.run_duration = self._clock.monotonic() - self._run_started

    async def after_entity_generation(
        self, entity_type: str, entity: Any, parent_id: str | None
    ) -> None:
        self.created[entity_type] += 1

    async def on_entity_error(
        self, entity_type: str, error: BaseException, parent_id: str | None
    ) -> None:
        self.failed[entity_type] += 1

    async def on_state_change(self, phase: str, details: dict[str, Any]) -> None:
        status = details.get("status")
        if status == "started":
            self._phase_started[phase] = self._clock.monotonic()
        elif status == "completed" and phase in self._phase_started:
            elapsed = self._clock.monotonic() - self._phase_started.pop(phase)
            self.phase_durations[phase] = self.phase_durations.get(phase, 0.0) + elapsed

    async def on_checkpoint(self, checkpoint: Any) -> None:
        self.checkpoints += 1

    async def on_metrics_update(self, metrics: GenerationMetrics) -> None:
        self.last_metrics = metrics

    async def on_memory_warning(self, entity_count: int, limit: int) -> None:
        self.memory_warnings += 1

    def summary(self) -> dict[str, Any]:
        return {
            "created": dict(self.created),
            "failed": dict(self.failed),
            "phase_durations": {k: round(v, 3) for k, v in self.phase_durations.items()},
            "checkpoints": self.checkpoints,
            "memory_warnings": self.memory_warnings,
            "run_duration": self.run_duration,
        }


__all__ = ["MetricsPlugin"]
