"""Plugin contract for cross-cutting generation concerns."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from ledger_demo.settings import Settings
    from ledger_demo.state import GenerationMetrics, RegistrySnapshot, StateRegistry
    from ledger_demo.utilities.time_provider import TimeProvider


class HookPoint(str, Enum):
    """Lifecycle events a plugin can subscribe to by overriding the same-named method."""

    BEFORE_GENERATION = "before_generation"
    AFTER_GENERATION = "after_generation"
    BEFORE_ENTITY_GENERATION = "before_entity_generation"
    AFTER_ENTITY_GENERATION = "after_entity_generation"
    ON_ENTITY_ERROR = "on_entity_error"
    ON_STATE_CHANGE = "on_state_change"
    ON_CHECKPOINT = "on_checkpoint"
    ON_RESTORE = "on_restore"
    ON_METRICS_UPDATE = "on_metrics_update"
    ON_MEMORY_WARNING = "on_memory_warning"
    ON_CUSTOM_EVENT = "on_custom_event"


@dataclass(frozen=True)
class PluginContext:
    settings: "Settings"
    registry: "StateRegistry"
    clock: "TimeProvider"


class Plugin:
    """Base class for plugins.

    Every hook is a no-op coroutine. The manager only schedules hooks a
    subclass overrides, so a plugin pays nothing for events it ignores.
    Lower ``priority`` runs first.
    """

    name: str = "plugin"
    version: str = "1.0.0"
    priority: int = 100

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    async def initialize(self, context: PluginContext) -> None:
        """Called once when the manager starts up."""

    async def teardown(self) -> None:
        """Release anything held by the plugin."""

    async def before_generation(self, config: dict[str, Any]) -> None: ...

    async def after_generation(self, report: dict[str, Any]) -> None: ...

    async def before_entity_generation(
        self, entity_type: str, payload: Any, parent_id: str | None
    ) -> None: ...

    async def after_entity_generation(
        self, entity_type: str, entity: Any, parent_id: str | None
    ) -> None: ...

    async def on_entity_error(
        self, entity_type: str, error: BaseException, parent_id: str | None
    ) -> None: ...

    async def on_state_change(self, phase: str, details: dict[str, Any]) -> None: ...

    async def on_checkpoint(self, checkpoint: "RegistrySnapshot") -> None: ...

    async def on_restore(self, checkpoint: "RegistrySnapshot") -> None: ...

    async def on_metrics_update(self, metrics: "GenerationMetrics") -> None: ...

    async def on_memory_warning(self, entity_count: int, limit: int) -> None: ...

    async def on_custom_event(self, event: str, payload: dict[str, Any]) -> None: ...

    def capabilities(self) -> frozenset[HookPoint]:
        """Hooks this plugin's class actually overrides."""
        cls = type(self)
        return frozenset(
            hook for hook in HookPoint if getattr(cls, hook.value) is not getattr(Plugin, hook.value)
        )


__all__ = ["HookPoint", "Plugin", "PluginContext"]
