from __future__ import annotations

import json
import logging

import pytest
from click.testing import CliRunner

import ledger_demo.cli as cli
from ledger_demo.monitoring.report import GenerationReport
from ledger_demo.settings import Settings

runner = CliRunner(env={"COLUMNS": "200"})


@pytest.fixture
def logging_calls(monkeypatch) -> list[dict[str, object]]:
    calls: list[dict[str, object]] = []

    def fake_configure_logging(level, log_dir=None, json_logs=False):
        calls.append({"level": level, "log_dir": log_dir, "json_logs": json_logs})

    monkeypatch.setattr(cli, "configure_logging", fake_configure_logging)
    return calls


@pytest.fixture
def tiny_volume(tmp_path):
    path = tmp_path / "tiny.yaml"
    path.write_text(
        "organizations: 1\n"
        "ledgers_per_organization: 1\n"
        "assets_per_ledger: 1\n"
        "portfolios_per_ledger: 0\n"
        "segments_per_ledger: 0\n"
        "accounts_per_ledger: 2\n"
        "transactions_per_account: 1\n",
        encoding="utf-8",
    )
    return path


def test_dry_run_generates_and_writes_report(tmp_path, monkeypatch, logging_calls, tiny_volume) -> None:
    monkeypatch.setattr(
        cli, "_resolve_settings", lambda: Settings(_env_file=None, settlement_delay=0.0)
    )
    report_path = tmp_path / "out" / "report.json"

    result = runner.invoke(
        cli.app,
        [
            "generate",
            "--dry-run",
            "--volume",
            "small",
            "--volume-file",
            str(tiny_volume),
            "--seed",
            "1",
            "--debug",
            "-o",
            str(report_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Deposits 2/2, transfers 2/2" in result.output
    assert logging_calls == [{"level": logging.DEBUG, "log_dir": None, "json_logs": False}]

    report = json.loads(report_path.read_text(encoding="utf-8"))
    created = {entry["entity_type"]: entry["created"] for entry in report["entities"]}
    assert created["organization"] == 1
    assert created["account"] == 2
    assert created["transaction"] == 4
    assert report["deposits_succeeded"] == 2
    assert report["transfers_succeeded"] == 2
    assert report["total_errors"] == 0


def test_cli_flags_override_settings(monkeypatch, logging_calls, tiny_volume) -> None:
    captured: dict[str, object] = {}

    async def fake_execute(container, volume, volume_name):
        captured["settings"] = container.settings
        captured["dry_run"] = container.dry_run
        captured["volume_name"] = volume_name
        return GenerationReport(
            run_id="run-x", volume=volume_name, duration_seconds=0.0, entities=[], total_errors=0, retries=0
        )

    monkeypatch.setattr(cli, "_execute", fake_execute)
    monkeypatch.setattr(cli, "_resolve_settings", lambda: Settings(_env_file=None))

    result = runner.invoke(
        cli.app,
        [
            "generate",
            "-v",
            "MEDIUM",
            "--volume-file",
            str(tiny_volume),
            "--base-url",
            "https://ledger.internal/",
            "--onboarding-port",
            "8080",
            "--auth-token",
            "tok",
            "-c",
            "7",
        ],
    )

    assert result.exit_code == 0, result.output
    settings = captured["settings"]
    assert settings.onboarding_url == "https://ledger.internal:8080"
    assert settings.token == "tok"
    assert settings.max_concurrency == 7
    assert settings.volume == "medium"
    assert captured["volume_name"] == "medium"
    assert captured["dry_run"] is False


def test_invalid_volume_file_fails_cleanly(tmp_path, monkeypatch, logging_calls) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("accounts_per_ledger: 1\n", encoding="utf-8")
    monkeypatch.setattr(cli, "_resolve_settings", lambda: Settings(_env_file=None))

    result = runner.invoke(cli.app, ["generate", "--dry-run", "--volume-file", str(bad)])

    assert result.exit_code == 1
    assert "Invalid volume overrides" in result.output


def test_unknown_preset_is_rejected_by_click(monkeypatch, logging_calls) -> None:
    monkeypatch.setattr(cli, "_resolve_settings", lambda: Settings(_env_file=None))

    result = runner.invoke(cli.app, ["generate", "--volume", "enormous"])

    assert result.exit_code == 2
    assert "Invalid value for '--volume'" in result.output


def test_presets_lists_every_preset() -> None:
    result = runner.invoke(cli.app, ["presets"])

    assert result.exit_code == 0
    for name in ("small", "medium", "large", "xlarge"):
        assert name in result.output
