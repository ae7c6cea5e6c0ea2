"""Volume presets controlling how many entities a run creates."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ledger_demo.errors import ConfigurationError


class VolumeConfig(BaseModel):
    """Per-entity counts for one generation run."""

    model_config = ConfigDict(frozen=True)

    organizations: int = Field(ge=1)
    ledgers_per_organization: int = Field(ge=1)
    assets_per_ledger: int = Field(ge=1)
    portfolios_per_ledger: int = Field(ge=0)
    segments_per_ledger: int = Field(ge=0)
    accounts_per_ledger: int = Field(ge=2)
    transactions_per_account: int = Field(ge=0)


VOLUME_PRESETS: dict[str, VolumeConfig] = {
    "small": VolumeConfig(
        organizations=1,
        ledgers_per_organization=2,
        assets_per_ledger=3,
        portfolios_per_ledger=2,
        segments_per_ledger=1,
        accounts_per_ledger=5,
        transactions_per_account=2,
    ),
    "medium": VolumeConfig(
        organizations=3,
        ledgers_per_organization=5,
        assets_per_ledger=8,
        portfolios_per_ledger=4,
        segments_per_ledger=3,
        accounts_per_ledger=15,
        transactions_per_account=3,
    ),
    "large": VolumeConfig(
        organizations=10,
        ledgers_per_organization=10,
        assets_per_ledger=15,
        portfolios_per_ledger=8,
        segments_per_ledger=5,
        accounts_per_ledger=30,
        transactions_per_account=7,
    ),
    "xlarge": VolumeConfig(
        organizations=25,
        ledgers_per_organization=20,
        assets_per_ledger=20,
        portfolios_per_ledger=10,
        segments_per_ledger=8,
        accounts_per_ledger=50,
        transactions_per_account=10,
    ),
}


def load_volume(name: str, overrides_file: Path | None = None) -> VolumeConfig:
    """Resolve a preset by name, applying optional YAML overrides.

    The overrides file is a flat mapping of ``VolumeConfig`` field names to
    counts, e.g. ``accounts_per_ledger: 8``.
    """
    preset = VOLUME_PRESETS.get(name.lower())
    if preset is None:
        raise ConfigurationError(
            f"Unknown volume preset '{name}' (expected one of {', '.join(VOLUME_PRESETS)})",
            config_key="volume",
        )
    if overrides_file is None:
        return preset

    try:
        raw: Any = yaml.safe_load(overrides_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(
            f"Cannot read volume overrides from {overrides_file}: {exc}",
            config_key="volume_file",
            original_error=exc,
        ) from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Volume overrides in {overrides_file} must be a mapping", config_key="volume_file"
        )

    unknown = set(raw) - set(VolumeConfig.model_fields)
    if unknown:
        raise ConfigurationError(
            f"Unknown volume fields: {', '.join(sorted(unknown))}", config_key="volume_file"
        )
    try:
        return VolumeConfig(**{**preset.model_dump(), **raw})
    except PydanticValidationError as exc:
        raise ConfigurationError(
            f"Invalid volume overrides: {exc.errors()[0]['msg']}",
            config_key="volume_file",
            original_error=exc,
        ) from exc


__all__ = ["VOLUME_PRESETS", "VolumeConfig", "load_volume"]
