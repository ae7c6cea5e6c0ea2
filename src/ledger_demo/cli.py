"""Click-based CLI entry point for the ``ledger_demo`` package."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.table import Table

from ledger_demo.app import ApplicationContainer
from ledger_demo.config import VOLUME_PRESETS, VolumeConfig, load_volume
from ledger_demo.errors import ConfigurationError
from ledger_demo.logging import configure_logging
from ledger_demo.monitoring.report import GenerationReport, render_summary
from ledger_demo.settings import Settings, get_settings

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Populate the ledger APIs with a realistic demo-data hierarchy.",
)
def app() -> None:
    """CLI root group."""


@app.command("generate")
@click.option(
    "--volume",
    "-v",
    "volume_name",
    type=click.Choice(sorted(VOLUME_PRESETS), case_sensitive=False),
    help="Volume preset (defaults to LEDGER_DEMO_VOLUME, then 'small').",
)
@click.option(
    "--volume-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file overriding individual preset counts.",
)
@click.option("--base-url", help="Ledger API host, e.g. http://localhost.")
@click.option("--onboarding-port", type=click.IntRange(1, 65535), help="Onboarding service port.")
@click.option(
    "--transaction-port", type=click.IntRange(1, 65535), help="Transaction service port."
)
@click.option("--auth-token", envvar="LEDGER_DEMO_AUTH_TOKEN", help="Bearer token for the APIs.")
@click.option(
    "--concurrency",
    "-c",
    type=click.IntRange(1, 100),
    help="Maximum number of in-flight API calls.",
)
@click.option("--seed", type=int, help="Seed for reproducible fake data.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Generate against an in-memory API instead of the remote services.",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    help="Directory for rotating log files.",
)
@click.option("--json-logs", is_flag=True, help="Also write JSON-lines logs to --log-dir.")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Optional path to write the run report as JSON.",
)
def generate(
    volume_name: str | None,
    volume_file: Path | None,
    base_url: str | None,
    onboarding_port: int | None,
    transaction_port: int | None,
    auth_token: str | None,
    concurrency: int | None,
    seed: int | None,
    debug: bool,
    dry_run: bool,
    log_dir: Path | None,
    json_logs: bool,
    output: Path | None,
) -> None:
    """Generate organizations, ledgers, assets, accounts and transactions."""
    settings = _apply_overrides(
        _resolve_settings(),
        base_url=base_url,
        onboarding_port=onboarding_port,
        transaction_port=transaction_port,
        auth_token=auth_token,
        max_concurrency=concurrency,
        seed=seed,
        volume=volume_name.lower() if volume_name else None,
        debug=debug or None,
        log_dir=log_dir,
        json_logs=json_logs or None,
    )
    configure_logging(
        logging.DEBUG if settings.debug else logging.INFO,
        log_dir=settings.log_dir,
        json_logs=settings.json_logs,
    )

    try:
        volume = load_volume(settings.volume, volume_file)
    except ConfigurationError as exc:
        raise click.ClickException(exc.message) from exc

    container = ApplicationContainer(settings, dry_run=dry_run)
    report = asyncio.run(_execute(container, volume, settings.volume))

    render_summary(report, Console())
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
        click.echo(f"Wrote run report to {output}")


@app.command("presets")
def presets() -> None:
    """List the built-in volume presets."""
    table = Table(title="Volume presets")
    table.add_column("Preset", style="cyan")
    for field_name in VolumeConfig.model_fields:
        table.add_column(field_name.replace("_", " "), justify="right")
    for name, preset in VOLUME_PRESETS.items():
        table.add_row(name, *(str(value) for value in preset.model_dump().values()))
    Console().print(table)


async def _execute(
    container: ApplicationContainer, volume: VolumeConfig, volume_name: str
) -> GenerationReport:
    try:
        return await container.run(volume, volume_name=volume_name)
    finally:
        await container.shutdown()


def _apply_overrides(settings: Settings, **overrides: Any) -> Settings:
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return settings
    try:
        return type(settings)(**{**settings.model_dump(), **updates})
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise click.ClickException(f"Invalid setting {field}: {first['msg']}") from exc


def _resolve_settings() -> Settings:
    """Allow dependency injection from tests without global mutation."""
    return get_settings()


__all__ = ["app"]
