"""Priority-ordered hook pipeline with per-plugin failure isolation."""

from __future__ import annotations

from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ledger_demo.plugins.base import HookPoint, Plugin, PluginContext
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="plugins")


@dataclass(frozen=True)
class _HookBinding:
    priority: int
    sequence: int
    plugin: Plugin
    handler: Callable[..., Awaitable[None]]


class PluginManager:
    """Registers plugins and dispatches lifecycle hooks to them.

    Which hooks a plugin implements is resolved when it is registered; each
    hook point keeps its own ordered list of bound handlers. A handler that
    raises is logged and skipped; the remaining plugins still run.
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._bindings: dict[HookPoint, list[_HookBinding]] = {hook: [] for hook in HookPoint}
        self._sequence = 0
        self.hook_errors: Counter[str] = Counter()
        self._initialized = False

    @property
    def plugins(self) -> list[Plugin]:
        return sorted(self._plugins.values(), key=lambda p: p.priority)

    def register(self, plugin: Plugin) -> None:
        if plugin.name in self._plugins:
            raise ValueError(f"Plugin '{plugin.name}' is already registered")
        self._plugins[plugin.name] = plugin
        self._sequence += 1
        for hook in plugin.capabilities():
            bindings = self._bindings[hook]
            bindings.append(
                _HookBinding(
                    priority=plugin.priority,
                    sequence=self._sequence,
                    plugin=plugin,
                    handler=getattr(plugin, hook.value),
                )
            )
            bindings.sort(key=lambda b: (b.priority, b.sequence))
        logger.info(
            f"Registered plugin {plugin.name} v{plugin.version}",
            plugin=plugin.name,
            priority=plugin.priority,
        )

    def unregister(self, name: str) -> Plugin | None:
        plugin = self._plugins.pop(name, None)
        if plugin is None:
            return None
        for hook, bindings in self._bindings.items():
            self._bindings[hook] = [b for b in bindings if b.plugin is not plugin]
        return plugin

    def get_plugin(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def has_subscribers(self, hook: HookPoint) -> bool:
        return any(b.plugin.enabled for b in self._bindings[hook])

    async def initialize(self, context: PluginContext) -> None:
        for plugin in self.plugins:
            try:
                await plugin.initialize(context)
            except Exception as exc:
                plugin.enabled = False
                self.hook_errors[plugin.name] += 1
                logger.error(
                    f"Plugin {plugin.name} failed to initialize and was disabled: {exc}",
                    plugin=plugin.name,
                )
        self._initialized = True

    async def teardown(self) -> None:
        for plugin in reversed(self.plugins):
            try:
                await plugin.teardown()
            except Exception as exc:
                self.hook_errors[plugin.name] += 1
                logger.error(f"Plugin {plugin.name} teardown failed: {exc}", plugin=plugin.name)
        self._initialized = False

    async def dispatch(self, hook: HookPoint, *args: Any) -> None:
        for binding in self._bindings[hook]:
            if not binding.plugin.enabled:
                continue
            try:
                await binding.handler(*args)
            except Exception as exc:
                self.hook_errors[binding.plugin.name] += 1
                logger.error(
                    f"Plugin {binding.plugin.name} failed in {hook.value}: {exc}",
                    plugin=binding.plugin.name,
                    hook=hook.value,
                )

    async def emit_custom_event(self, event: str, payload: dict[str, Any] | None = None) -> None:
        await self.dispatch(HookPoint.ON_CUSTOM_EVENT, event, payload or {})


__all__ = ["PluginManager"]
