"""Typed configuration backed by environment variables."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledger_demo.config import constants

_DEFAULT_ENV_FILES: tuple[Path, ...] = (
    Path(".env"),
    Path("scripts/demo-data/.env"),
)


class Settings(BaseSettings):
    """Generator configuration loaded from ``LEDGER_DEMO_*`` variables and `.env` files."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="LEDGER_DEMO_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = Field(default="http://localhost", description="Ledger API host.")
    onboarding_port: int = Field(default=3000, description="Port of the onboarding service.")
    transaction_port: int = Field(default=3001, description="Port of the transaction service.")
    auth_token: SecretStr | None = Field(default=None, description="Bearer token, if required.")
    request_timeout: float = Field(default=30.0, gt=0, description="Per-request timeout (s).")

    volume: Literal["small", "medium", "large", "xlarge"] = "small"
    max_concurrency: int = Field(default=10, ge=1, le=100)
    seed: int | None = Field(default=None, description="Seed for reproducible fake data.")
    debug: bool = False

    settlement_delay: float = Field(default=constants.SETTLEMENT_DELAY_SECONDS, ge=0)
    max_entities_in_memory: int = Field(default=10_000, ge=1)
    enable_validation: bool = True
    enable_cache: bool = True
    cache_max_size: int = Field(default=1_000, ge=1)
    cache_ttl: float = Field(default=300.0, gt=0)

    failure_threshold: float = Field(default=constants.CIRCUIT_FAILURE_THRESHOLD, gt=0)
    recovery_timeout: float = Field(default=constants.CIRCUIT_RECOVERY_TIMEOUT, ge=0)
    monitoring_period: float = Field(default=constants.CIRCUIT_MONITORING_PERIOD, gt=0)
    minimum_requests: int = Field(default=constants.CIRCUIT_MINIMUM_REQUESTS, ge=1)
    success_threshold: float = Field(default=constants.CIRCUIT_SUCCESS_THRESHOLD, gt=0, le=1)

    log_dir: Path | None = Field(default=None, description="Directory for rotating log files.")
    json_logs: bool = False

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def onboarding_url(self) -> str:
        return f"{self.base_url}:{self.onboarding_port}"

    @property
    def transaction_url(self) -> str:
        return f"{self.base_url}:{self.transaction_port}"

    @property
    def token(self) -> str | None:
        """Expose the auth token as a plain string for the HTTP client."""
        return self.auth_token.get_secret_value() if self.auth_token else None


def _existing_env_files() -> list[str]:
    return [str(path) for path in _DEFAULT_ENV_FILES if path.exists()]


@lru_cache
def get_settings(_env_files: Sequence[str] | None = None) -> Settings:
    """Load settings once per process, respecting `.env` fallbacks."""
    env_files = list(_env_files) if _env_files is not None else _existing_env_files()
    if env_files:
        return Settings(_env_file=env_files)
    return Settings()


__all__ = ["Settings", "get_settings"]
