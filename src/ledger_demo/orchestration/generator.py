"""
Top-level driver for a full generation run.

Walks the hierarchy organization → ledger → {asset, portfolio, segment} →
account → transaction, firing plugin hooks around every phase and taking an
in-memory checkpoint after each ledger so an interrupted run can be resumed.
Only ledgers that reached their volume counts are marked complete; a resume
fills in the rest.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from ledger_demo.config import VolumeConfig, constants
from ledger_demo.generators import (
    AccountGenerator,
    AssetGenerator,
    BaseGenerator,
    GeneratorDeps,
    LedgerGenerator,
    OrganizationGenerator,
    PortfolioGenerator,
    SegmentGenerator,
    TransactionGenerator,
)
from ledger_demo.generators.transactions import LedgerTransactionResult
from ledger_demo.logging.correlation import phase_context, run_context
from ledger_demo.monitoring.report import GenerationReport, build_report
from ledger_demo.plugins import HookPoint, PluginContext
from ledger_demo.state import RegistrySnapshot
from ledger_demo.utilities.logging_patterns import get_logger, log_operation

logger = get_logger(__name__, component="orchestration")


@dataclass
class GeneratorSuite:
    organizations: OrganizationGenerator
    ledgers: LedgerGenerator
    assets: AssetGenerator
    portfolios: PortfolioGenerator
    segments: SegmentGenerator
    accounts: AccountGenerator
    transactions: TransactionGenerator

    @classmethod
    def build(cls, deps: GeneratorDeps) -> GeneratorSuite:
        return cls(
            organizations=OrganizationGenerator(deps),
            ledgers=LedgerGenerator(deps),
            assets=AssetGenerator(deps),
            portfolios=PortfolioGenerator(deps),
            segments=SegmentGenerator(deps),
            accounts=AccountGenerator(deps),
            transactions=TransactionGenerator(deps),
        )

    def all(self) -> list[BaseGenerator[Any]]:
        return [
            self.organizations,
            self.ledgers,
            self.assets,
            self.portfolios,
            self.segments,
            self.accounts,
            self.transactions,
        ]


def _remaining(target: int, existing: int) -> int:
    return max(0, target - existing)


class Generator:
    """Runs every entity generator in dependency order for one volume."""

    def __init__(
        self,
        deps: GeneratorDeps,
        volume: VolumeConfig,
        *,
        volume_name: str = "custom",
        generators: GeneratorSuite | None = None,
    ) -> None:
        self.deps = deps
        self.registry = deps.registry
        self.plugins = deps.plugins
        self.settings = deps.settings
        self.volume = volume
        self.volume_name = volume_name
        self.generators = generators or GeneratorSuite.build(deps)
        self.last_checkpoint: RegistrySnapshot | None = None
        self.transaction_results: list[LedgerTransactionResult] = []

    async def run(self, resume_from: RegistrySnapshot | None = None) -> GenerationReport:
        """Generate the whole hierarchy and return the completion report.

        With ``resume_from``, registry contents are restored first and
        organizations or ledgers already marked complete are skipped.
        Per-ledger failures are logged and counted; the run always finishes.
        """
        self.transaction_results = []
        with run_context(volume=self.volume_name) as run_id:
            if resume_from is not None:
                self.registry.restore(resume_from)
            else:
                self.registry.new_run()

            await self.plugins.initialize(
                PluginContext(settings=self.settings, registry=self.registry, clock=self.deps.clock)
            )
            if resume_from is not None:
                await self.plugins.dispatch(HookPoint.ON_RESTORE, resume_from)

            logger.info(
                f"Starting {self.volume_name} generation run {run_id}"
                + (" (resumed)" if resume_from is not None else ""),
                operation="generation",
                status="started",
            )
            await self.plugins.dispatch(
                HookPoint.BEFORE_GENERATION,
                {
                    "run_id": run_id,
                    "volume": self.volume_name,
                    "resumed": resume_from is not None,
                    **self.volume.model_dump(),
                },
            )

            async with self._phase("organizations"):
                await self.generators.organizations.generate(
                    _remaining(self.volume.organizations, len(self.registry.get_organization_ids()))
                )

            for organization_id in self.registry.get_organization_ids():
                if self.registry.is_completed(f"org:{organization_id}"):
                    logger.info(f"Organization {organization_id} already complete, skipping")
                    continue
                await self._populate_organization(organization_id)

            self.registry.complete_generation()
            report = self.build_report(run_id)
            logger.info(
                f"Generation run {run_id} finished: {report.total_created} entities, "
                f"{report.total_errors} errors in {report.duration_seconds:.2f}s",
                operation="generation",
                status="completed",
            )
            await self.plugins.dispatch(HookPoint.AFTER_GENERATION, report.to_dict())
        return report

    def build_report(self, run_id: str) -> GenerationReport:
        return build_report(
            self.registry,
            run_id=run_id,
            volume=self.volume_name,
            breaker_stats=[generator.circuit_stats() for generator in self.generators.all()],
            transaction_results=self.transaction_results,
            plugin_errors=sum(self.plugins.hook_errors.values()),
        )

    async def _populate_organization(self, organization_id: str) -> None:
        with phase_context(organization_id=organization_id):
            existing = len(self.registry.get_ledger_ids(organization_id))
            async with self._phase("ledgers", organization_id=organization_id):
                await self.generators.ledgers.generate(
                    _remaining(self.volume.ledgers_per_organization, existing),
                    organization_id,
                    organization_id,
                )
            ledger_ids = self.registry.get_ledger_ids(organization_id)
            all_complete = len(ledger_ids) >= self.volume.ledgers_per_organization
            for ledger_id in ledger_ids:
                if self.registry.is_completed(f"ledger:{ledger_id}"):
                    logger.info(f"Ledger {ledger_id} already complete, skipping")
                    continue
                populated = False
                try:
                    await self._populate_ledger(organization_id, ledger_id)
                    populated = True
                except Exception as exc:
                    logger.exception(
                        f"Ledger {ledger_id} failed, continuing with the next one: {exc}",
                        ledger_id=ledger_id,
                    )
                    await self.generators.ledgers.track_error(
                        exc, organization_id, {"ledger_id": ledger_id}
                    )
                if populated and self.ledger_is_full(ledger_id):
                    self.registry.mark_completed(f"ledger:{ledger_id}")
                else:
                    all_complete = False
                    logger.warning(
                        f"Ledger {ledger_id} is incomplete; a resumed run will fill it in",
                        ledger_id=ledger_id,
                    )
                await self._checkpoint()
            if all_complete:
                self.registry.mark_completed(f"org:{organization_id}")

    def ledger_is_full(self, ledger_id: str) -> bool:
        """Whether the registry holds every entity the volume asks for in ``ledger_id``."""
        volume = self.volume
        registry = self.registry
        return (
            len(registry.get_asset_ids(ledger_id))
            >= min(volume.assets_per_ledger, len(constants.ASSET_CATALOGUE))
            and len(registry.get_portfolio_ids(ledger_id)) >= volume.portfolios_per_ledger
            and len(registry.get_segment_ids(ledger_id)) >= volume.segments_per_ledger
            and len(registry.get_account_ids(ledger_id)) >= volume.accounts_per_ledger
        )

    async def _populate_ledger(self, organization_id: str, ledger_id: str) -> None:
        volume = self.volume
        registry = self.registry
        with phase_context(ledger_id=ledger_id):
            async with self._phase("ledger_setup", ledger_id=ledger_id):
                await asyncio.gather(
                    self.generators.assets.generate(
                        _remaining(volume.assets_per_ledger, len(registry.get_asset_ids(ledger_id))),
                        ledger_id,
                        organization_id,
                    ),
                    self.generators.portfolios.generate(
                        _remaining(
                            volume.portfolios_per_ledger, len(registry.get_portfolio_ids(ledger_id))
                        ),
                        ledger_id,
                        organization_id,
                    ),
                    self.generators.segments.generate(
                        _remaining(
                            volume.segments_per_ledger, len(registry.get_segment_ids(ledger_id))
                        ),
                        ledger_id,
                        organization_id,
                    ),
                )

            async with self._phase("accounts", ledger_id=ledger_id):
                await self.generators.accounts.generate(
                    _remaining(volume.accounts_per_ledger, len(registry.get_account_ids(ledger_id))),
                    ledger_id,
                    organization_id,
                )

            async with self._phase("transactions", ledger_id=ledger_id):
                result = await self.generators.transactions.generate_for_ledger(
                    organization_id, ledger_id, volume.transactions_per_account
                )
                self.transaction_results.append(result)

    async def _checkpoint(self) -> None:
        self.last_checkpoint = self.registry.snapshot()
        await self.plugins.dispatch(HookPoint.ON_CHECKPOINT, self.last_checkpoint)
        await self.plugins.dispatch(HookPoint.ON_METRICS_UPDATE, self.registry.metrics)

        total = self.registry.total_entities()
        limit = self.settings.max_entities_in_memory
        if total > limit:
            logger.warning(
                f"{total} entities held in memory, above the limit of {limit}",
                entity_count=total,
            )
            await self.plugins.dispatch(HookPoint.ON_MEMORY_WARNING, total, limit)

    @asynccontextmanager
    async def _phase(self, phase: str, **details: Any) -> AsyncIterator[None]:
        await self.plugins.dispatch(HookPoint.ON_STATE_CHANGE, phase, {**details, "status": "started"})
        try:
            with log_operation(phase, logger, level=logging.DEBUG, **details):
                yield
        except Exception:
            await self.plugins.dispatch(
                HookPoint.ON_STATE_CHANGE, phase, {**details, "status": "failed"}
            )
            raise
        await self.plugins.dispatch(
            HookPoint.ON_STATE_CHANGE, phase, {**details, "status": "completed"}
        )


__all__ = ["Generator", "GeneratorSuite"]
