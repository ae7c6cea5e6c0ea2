"""Run-completion report and its console rendering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

from rich.console import Console
from rich.table import Table

from ledger_demo.generators.transactions import LedgerTransactionResult
from ledger_demo.resilience import CircuitBreakerStats
from ledger_demo.state import ENTITY_TYPES, StateRegistry


@dataclass(frozen=True)
class EntitySummary:
    entity_type: str
    created: int
    errors: int

    @property
    def success_rate(self) -> float:
        attempts = self.created + self.errors
        return 100.0 * self.created / attempts if attempts else 100.0


@dataclass
class GenerationReport:
    run_id: str
    volume: str
    duration_seconds: float
    entities: list[EntitySummary]
    total_errors: int
    retries: int
    circuit_trips: dict[str, int] = field(default_factory=dict)
    deposits_attempted: int = 0
    deposits_succeeded: int = 0
    transfers_attempted: int = 0
    transfers_succeeded: int = 0
    skipped_ledgers: int = 0
    plugin_errors: int = 0

    @property
    def total_created(self) -> int:
        return sum(e.created for e in self.entities)

    @property
    def overall_success_rate(self) -> float:
        attempts = self.total_created + sum(e.errors for e in self.entities)
        return 100.0 * self.total_created / attempts if attempts else 100.0

    @property
    def throughput(self) -> float:
        """Entities created per second."""
        return self.total_created / self.duration_seconds if self.duration_seconds > 0 else 0.0

    def counts(self) -> dict[str, int]:
        return {e.entity_type: e.created for e in self.entities}

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["entities"] = [
            {**asdict(e), "success_rate": round(e.success_rate, 2)} for e in self.entities
        ]
        data["total_created"] = self.total_created
        data["overall_success_rate"] = round(self.overall_success_rate, 2)
        data["throughput"] = round(self.throughput, 2)
        return data


def build_report(
    registry: StateRegistry,
    *,
    run_id: str,
    volume: str,
    breaker_stats: Iterable[CircuitBreakerStats] = (),
    transaction_results: Iterable[LedgerTransactionResult] = (),
    plugin_errors: int = 0,
) -> GenerationReport:
    metrics = registry.metrics
    report = GenerationReport(
        run_id=run_id,
        volume=volume,
        duration_seconds=registry.duration(),
        entities=[
            EntitySummary(
                entity_type=entity_type,
                created=metrics.entity_counts.get(entity_type, 0),
                errors=metrics.error_counts.get(entity_type, 0),
            )
            for entity_type in ENTITY_TYPES
        ],
        total_errors=metrics.total_errors,
        retries=metrics.retries,
        circuit_trips={s.name: s.trips for s in breaker_stats if s.trips},
        plugin_errors=plugin_errors,
    )
    for result in transaction_results:
        report.deposits_attempted += result.deposits.attempted
        report.deposits_succeeded += result.deposits.succeeded
        report.transfers_attempted += result.transfers.attempted
        report.transfers_succeeded += result.transfers.succeeded
        if result.skipped_reason:
            report.skipped_ledgers += 1
    return report


def summary_table(report: GenerationReport) -> Table:
    table = Table(title=f"Generation summary ({report.volume}, run {report.run_id})")
    table.add_column("Entity", style="cyan")
    table.add_column("Created", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Success", justify="right")
    for entity in report.entities:
        table.add_row(
            entity.entity_type.capitalize(),
            str(entity.created),
            str(entity.errors),
            f"{entity.success_rate:.1f}%",
        )
    table.add_section()
    table.add_row(
        "Total",
        str(report.total_created),
        str(report.total_errors),
        f"{report.overall_success_rate:.1f}%",
        style="bold",
    )
    return table


def render_summary(report: GenerationReport, console: Console | None = None) -> None:
    console = console or Console()
    console.print(summary_table(report))
    console.print(
        f"Deposits {report.deposits_succeeded}/{report.deposits_attempted}, "
        f"transfers {report.transfers_succeeded}/{report.transfers_attempted}, "
        f"retries {report.retries}, duration {report.duration_seconds:.2f}s "
        f"({report.throughput:.1f} entities/s)"
    )
    if report.circuit_trips:
        trips = ", ".join(f"{name}: {count}" for name, count in report.circuit_trips.items())
        console.print(f"[yellow]Circuit breaker trips[/yellow] {trips}")
    if report.skipped_ledgers:
        console.print(
            f"[yellow]{report.skipped_ledgers} ledger(s) had too few accounts for transactions[/yellow]"
        )


__all__ = [
    "EntitySummary",
    "GenerationReport",
    "build_report",
    "render_summary",
    "summary_table",
]
