from __future__ import annotations

import asyncio

from ledger_demo.client import HttpLedgerApi, InMemoryLedgerApi, LedgerApi
from ledger_demo.config import VolumeConfig
from ledger_demo.generators import DemoDataFactory, GeneratorDeps
from ledger_demo.generators.base import SleepFn
from ledger_demo.monitoring.report import GenerationReport
from ledger_demo.orchestration import Generator
from ledger_demo.plugins import CachePlugin, MetricsPlugin, PluginManager, ValidationPlugin
from ledger_demo.settings import Settings
from ledger_demo.state import RegistrySnapshot, StateRegistry
from ledger_demo.utilities.logging_patterns import get_logger
from ledger_demo.utilities.time_provider import SystemClock, TimeProvider

logger = get_logger(__name__, component="app")


def create_plugin_manager(settings: Settings) -> PluginManager:
    """Register the built-in plugins enabled by ``settings``."""
    manager = PluginManager()
    manager.register(MetricsPlugin())
    if settings.enable_validation:
        manager.register(ValidationPlugin())
    if settings.enable_cache:
        manager.register(CachePlugin(max_size=settings.cache_max_size, ttl=settings.cache_ttl))
    return manager


class ApplicationContainer:
    """
    Composition root for a generation run.

    Services are created lazily and shared by every generator. The API
    client is opened per run: an injected client is used as-is, ``dry_run``
    uses the in-memory API, and otherwise an HTTP client is opened against
    the configured services.

    Usage:
        container = ApplicationContainer(settings, dry_run=True)
        report = await container.run(load_volume("small"), volume_name="small")
        await container.shutdown()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: LedgerApi | None = None,
        clock: TimeProvider | None = None,
        sleep: SleepFn | None = None,
        dry_run: bool = False,
    ) -> None:
        self.settings = settings
        self.dry_run = dry_run
        self.clock = clock or SystemClock()
        self.sleep = sleep or asyncio.sleep
        self._client = client

        self._registry: StateRegistry | None = None
        self._plugins: PluginManager | None = None
        self._data: DemoDataFactory | None = None
        self.generator: Generator | None = None

    @property
    def registry(self) -> StateRegistry:
        if self._registry is None:
            self._registry = StateRegistry(clock=self.clock)
        return self._registry

    @property
    def plugins(self) -> PluginManager:
        if self._plugins is None:
            self._plugins = create_plugin_manager(self.settings)
        return self._plugins

    @property
    def data(self) -> DemoDataFactory:
        if self._data is None:
            self._data = DemoDataFactory(seed=self.settings.seed)
        return self._data

    def create_deps(self, client: LedgerApi) -> GeneratorDeps:
        return GeneratorDeps(
            client=client,
            registry=self.registry,
            plugins=self.plugins,
            settings=self.settings,
            data=self.data,
            clock=self.clock,
            sleep=self.sleep,
        )

    def create_generator(
        self, client: LedgerApi, volume: VolumeConfig, volume_name: str = "custom"
    ) -> Generator:
        self.generator = Generator(self.create_deps(client), volume, volume_name=volume_name)
        return self.generator

    async def run(
        self,
        volume: VolumeConfig,
        *,
        volume_name: str = "custom",
        resume_from: RegistrySnapshot | None = None,
    ) -> GenerationReport:
        if self._client is not None:
            return await self._run_with(self._client, volume, volume_name, resume_from)
        if self.dry_run:
            logger.info("Dry run: using the in-memory ledger API", operation="bootstrap")
            self._client = InMemoryLedgerApi()
            return await self._run_with(self._client, volume, volume_name, resume_from)

        logger.info(
            f"Connecting to {self.settings.onboarding_url} and {self.settings.transaction_url}",
            operation="bootstrap",
        )
        async with HttpLedgerApi(self.settings) as client:
            return await self._run_with(client, volume, volume_name, resume_from)

    async def _run_with(
        self,
        client: LedgerApi,
        volume: VolumeConfig,
        volume_name: str,
        resume_from: RegistrySnapshot | None,
    ) -> GenerationReport:
        generator = self.create_generator(client, volume, volume_name)
        return await generator.run(resume_from=resume_from)

    @property
    def last_checkpoint(self) -> RegistrySnapshot | None:
        return self.generator.last_checkpoint if self.generator else None

    async def shutdown(self) -> None:
        if self._plugins is not None:
            await self._plugins.teardown()


__all__ = ["ApplicationContainer", "create_plugin_manager"]
