from __future__ import annotations

import pytest
from rich.console import Console

from ledger_demo.generators.transactions import LedgerTransactionResult
from ledger_demo.monitoring.progress import ProgressReporter
from ledger_demo.monitoring.report import build_report, render_summary
from ledger_demo.resilience import CircuitBreakerStats, CircuitState
from ledger_demo.state import StateRegistry


class TestProgressReporter:
    def test_snapshot_math(self, fake_clock) -> None:
        progress = ProgressReporter("accounts", total=10, clock=fake_clock)
        progress.start()
        for _ in range(3):
            progress.report_item_completed()
        progress.report_item_failed(RuntimeError("nope"))
        fake_clock.advance(2.0)

        snap = progress.snapshot()

        assert snap.processed == 4
        assert snap.percent == pytest.approx(40.0)
        assert snap.throughput == pytest.approx(2.0)
        assert snap.eta_seconds == pytest.approx(3.0)

    def test_stop_freezes_elapsed_time(self, fake_clock) -> None:
        progress = ProgressReporter("ledgers", total=1, clock=fake_clock)
        progress.start()
        fake_clock.advance(1.5)
        progress.report_item_completed()

        final = progress.stop()
        fake_clock.advance(30.0)

        assert final.elapsed_seconds == pytest.approx(1.5)
        assert progress.snapshot().elapsed_seconds == pytest.approx(1.5)

    def test_empty_run_reports_complete(self, fake_clock) -> None:
        snap = ProgressReporter("nothing", total=0, clock=fake_clock).snapshot()
        assert snap.percent == 100.0
        assert snap.eta_seconds is None

    def test_progress_logged_at_interval(self, fake_clock, caplog) -> None:
        caplog.set_level("INFO", logger="ledger_demo.monitoring.progress")
        progress = ProgressReporter("assets", total=4, clock=fake_clock, log_interval=5.0)
        progress.start()

        progress.report_item_completed()
        fake_clock.advance(6.0)
        progress.report_item_completed()

        assert "assets: 2/4 (50%), eta 6s" in caplog.text


def _stats(name: str, trips: int) -> CircuitBreakerStats:
    return CircuitBreakerStats(
        name=name,
        state=CircuitState.CLOSED,
        window_requests=0,
        window_failures=0,
        total_requests=5,
        total_failures=trips,
        total_rejections=0,
        trips=trips,
        opened_at=None,
    )


@pytest.fixture
def populated_registry(fake_clock) -> StateRegistry:
    registry = StateRegistry(clock=fake_clock)
    registry.add_organization_id("org-1")
    registry.add_ledger_id("org-1", "ldg-1")
    for index in range(3):
        registry.add_account_id("ldg-1", f"acc-{index}", f"alias-{index}")
    registry.track_generation_error("account", "ldg-1", RuntimeError("boom"))
    registry.increment_retry_count()
    fake_clock.advance(10.0)
    registry.complete_generation()
    return registry


def test_build_report_aggregates_registry_and_phases(populated_registry: StateRegistry) -> None:
    funded = LedgerTransactionResult(ledger_id="ldg-1")
    funded.deposits.batch.attempted = 3
    funded.deposits.batch.succeeded = 3
    funded.transfers.batch.attempted = 6
    funded.transfers.batch.succeeded = 5
    skipped = LedgerTransactionResult(ledger_id="ldg-2", skipped_reason="1 account(s) in ledger, need at least 2")

    report = build_report(
        populated_registry,
        run_id="run-1",
        volume="small",
        breaker_stats=[_stats("account-generator", 2), _stats("asset-generator", 0)],
        transaction_results=[funded, skipped],
        plugin_errors=1,
    )

    assert report.counts()["account"] == 3
    assert report.total_created == 5
    assert report.total_errors == 1
    assert report.retries == 1
    assert report.duration_seconds == pytest.approx(10.0)
    assert report.throughput == pytest.approx(0.5)
    assert report.overall_success_rate == pytest.approx(500 / 6)
    assert report.circuit_trips == {"account-generator": 2}
    assert (report.deposits_succeeded, report.transfers_attempted, report.transfers_succeeded) == (3, 6, 5)
    assert report.skipped_ledgers == 1

    data = report.to_dict()
    account = next(e for e in data["entities"] if e["entity_type"] == "account")
    assert account == {"entity_type": "account", "created": 3, "errors": 1, "success_rate": 75.0}
    assert data["total_created"] == 5


def test_render_summary(populated_registry: StateRegistry) -> None:
    report = build_report(
        populated_registry,
        run_id="run-1",
        volume="small",
        breaker_stats=[_stats("account-generator", 1)],
        transaction_results=[LedgerTransactionResult(ledger_id="ldg-1", skipped_reason="too few")],
    )
    console = Console(record=True, width=120)

    render_summary(report, console)

    output = console.export_text()
    assert "Generation summary (small, run run-1)" in output
    assert "Account" in output
    assert "75.0%" in output
    assert "Circuit breaker trips account-generator: 1" in output
    assert "1 ledger(s) had too few accounts" in output
