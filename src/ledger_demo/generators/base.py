"""
Shared machinery for entity generators.

Each generator is assembled from injected parts: the API client, the run's
state registry, the plugin pipeline, and its own retry policy, circuit
breaker and batch runner. Subclasses supply payload building, the remote
create/list calls and registry bookkeeping for one entity type.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ledger_demo.client import LedgerApi
from ledger_demo.errors import (
    MissingParentError,
    ValidationError,
    handle_error,
    is_conflict_error,
    log_error,
)
from ledger_demo.generators.fakers import DemoDataFactory
from ledger_demo.monitoring.progress import ProgressReporter
from ledger_demo.plugins import CachePlugin, HookPoint, PluginManager
from ledger_demo.resilience import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerStats,
    RetryPolicy,
)
from ledger_demo.settings import Settings
from ledger_demo.state import StateRegistry
from ledger_demo.utilities.batching import BatchRunner
from ledger_demo.utilities.logging_patterns import get_logger
from ledger_demo.utilities.time_provider import SystemClock, TimeProvider

logger = get_logger(__name__, component="generators")

E = TypeVar("E")
M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class GeneratorDeps:
    """Collaborators shared by every generator in a run."""

    client: LedgerApi
    registry: StateRegistry
    plugins: PluginManager
    settings: Settings
    data: DemoDataFactory
    clock: TimeProvider = field(default_factory=SystemClock)
    sleep: SleepFn = asyncio.sleep


@dataclass(frozen=True)
class ValidationResult(Generic[M]):
    valid: bool
    data: M | None = None
    errors: tuple[str, ...] = ()


def breaker_config_from(settings: Settings) -> CircuitBreakerConfig:
    return CircuitBreakerConfig(
        failure_threshold=settings.failure_threshold,
        recovery_timeout=settings.recovery_timeout,
        monitoring_period=settings.monitoring_period,
        minimum_requests=settings.minimum_requests,
        success_threshold=settings.success_threshold,
    )


class BaseGenerator(ABC, Generic[E]):
    """Template for generators of one entity type."""

    entity_type: ClassVar[str]
    max_retries: ClassVar[int] = 3

    def __init__(
        self,
        deps: GeneratorDeps,
        *,
        retry: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        batch_runner: BatchRunner | None = None,
    ) -> None:
        self.deps = deps
        self.client = deps.client
        self.registry = deps.registry
        self.plugins = deps.plugins
        self.settings = deps.settings
        self.data = deps.data
        self.clock = deps.clock
        self.retry = retry or RetryPolicy(sleep=deps.sleep, on_retry=self._count_retry)
        self.breaker = breaker or CircuitBreaker(
            f"{self.entity_type}-generator", breaker_config_from(deps.settings), deps.clock
        )
        self.batch_runner = batch_runner or BatchRunner(
            batch_size=deps.settings.max_concurrency, sleep=deps.sleep
        )

    # -- contract ----------------------------------------------------------------

    @abstractmethod
    async def generate(
        self, count: int, parent_id: str | None = None, organization_id: str | None = None
    ) -> list[E]:
        """Create ``count`` entities, returning the ones that succeeded."""

    @abstractmethod
    async def generate_one(
        self,
        parent_id: str | None = None,
        organization_id: str | None = None,
        **options: Any,
    ) -> E:
        """Create a single entity, adopting an existing one on conflict."""

    async def exists(
        self, entity_id: str, parent_id: str | None = None, organization_id: str | None = None
    ) -> bool:
        return False

    # -- protection --------------------------------------------------------------

    async def execute_with_protection(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        max_retries: int | None = None,
    ) -> T:
        """Retry ``operation`` inside this generator's circuit breaker.

        The breaker sees one outcome per protected call, not one per retry.
        """
        retries = self.max_retries if max_retries is None else max_retries
        return await self.breaker.execute(lambda: self.retry.run(operation, name, retries))

    async def handle_conflict(
        self,
        error: BaseException,
        entity_name: str,
        retriever: Callable[[], Awaitable[E | None]],
    ) -> E | None:
        """Resolve an already-exists error by fetching the existing entity.

        Non-conflict errors are re-raised. A failed retrieval yields ``None``.
        """
        if not is_conflict_error(error):
            raise error
        logger.warning(
            f"{self.entity_type} '{entity_name}' already exists, retrieving it",
            entity_type=self.entity_type,
        )
        try:
            return await retriever()
        except Exception as exc:
            logger.warning(
                f"Could not retrieve existing {self.entity_type} '{entity_name}': {exc}",
                entity_type=self.entity_type,
            )
            return None

    async def create_or_adopt(
        self,
        create: Callable[[], Awaitable[E]],
        find_existing: Callable[[], Awaitable[E | None]],
        name: str,
        max_retries: int | None = None,
    ) -> E:
        async def attempt() -> E:
            try:
                return await create()
            except Exception as exc:
                existing = await self.handle_conflict(exc, name, find_existing)
                if existing is None:
                    raise
                return existing

        return await self.execute_with_protection(
            attempt, f"create {self.entity_type} {name}", max_retries
        )

    async def create_entity(
        self,
        *,
        payload: Any,
        name: str,
        parent_id: str | None,
        create: Callable[[], Awaitable[E]],
        find_existing: Callable[[], Awaitable[E | None]],
        register: Callable[[E], None],
    ) -> E:
        """Create or adopt one entity, register it and notify plugins."""
        await self.plugins.dispatch(
            HookPoint.BEFORE_ENTITY_GENERATION, self.entity_type, payload, parent_id
        )
        entity = await self.create_or_adopt(create, find_existing, name)
        register(entity)
        await self.plugins.dispatch(
            HookPoint.AFTER_ENTITY_GENERATION, self.entity_type, entity, parent_id
        )
        return entity

    def cached(self, key: str, parent_id: str | None = None) -> Any | None:
        cache = self.plugins.get_plugin("cache")
        if isinstance(cache, CachePlugin):
            return cache.get(self.entity_type, key, parent_id)
        return None

    def circuit_stats(self) -> CircuitBreakerStats:
        return self.breaker.get_stats()

    def is_circuit_available(self) -> bool:
        return self.breaker.is_available()

    def reset_circuit(self) -> None:
        self.breaker.manual_reset()

    def _count_retry(self, name: str, attempt: int, error: BaseException, delay: float) -> None:
        self.registry.increment_retry_count()

    # -- parents -----------------------------------------------------------------

    def get_organization_id(self, organization_id: str | None = None) -> str | None:
        if organization_id:
            return organization_id
        registered = self.registry.get_organization_ids()
        return registered[0] if registered else None

    def resolve_organization_id(self, organization_id: str | None = None) -> str:
        resolved = self.get_organization_id(organization_id)
        if resolved is None:
            raise MissingParentError(
                f"Cannot generate {self.entity_type}: no organization ID given or registered",
                parent_type="organization",
            )
        return resolved

    def resolve_ledger_id(self, ledger_id: str | None, organization_id: str) -> str:
        if ledger_id:
            return ledger_id
        registered = self.registry.get_ledger_ids(organization_id)
        if not registered:
            raise MissingParentError(
                f"Cannot generate {self.entity_type}: no ledger ID given or registered "
                f"for organization {organization_id}",
                parent_type="ledger",
            )
        return registered[0]

    # -- validation --------------------------------------------------------------

    def validate_data(self, model: type[M], data: Mapping[str, Any] | M) -> M:
        """Validate ``data`` against ``model``, raising ``ValidationError`` on failure."""
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            raise ValidationError(
                f"Invalid {self.entity_type} data: {first['msg']}",
                field=".".join(str(part) for part in first["loc"]) or None,
                value=first.get("input"),
                entity_type=self.entity_type,
                original_error=exc,
            ) from exc

    def safe_validate_data(self, model: type[M], data: Mapping[str, Any]) -> ValidationResult[M]:
        try:
            return ValidationResult(valid=True, data=model.model_validate(data))
        except PydanticValidationError as exc:
            return ValidationResult(
                valid=False,
                errors=tuple(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
                ),
            )

    def validate_batch_data(
        self, model: type[M], items: Sequence[Mapping[str, Any]]
    ) -> tuple[list[M], list[tuple[int, tuple[str, ...]]]]:
        """Split ``items`` into validated models and ``(index, errors)`` pairs."""
        valid: list[M] = []
        invalid: list[tuple[int, tuple[str, ...]]] = []
        for index, item in enumerate(items):
            result = self.safe_validate_data(model, item)
            if result.valid and result.data is not None:
                valid.append(result.data)
            else:
                invalid.append((index, result.errors))
        return valid, invalid

    def validate_required(self, data: Mapping[str, Any], fields: Sequence[str]) -> None:
        for name in fields:
            if data.get(name) in (None, ""):
                raise ValidationError(
                    f"{self.entity_type} is missing required field '{name}'",
                    field=name,
                    entity_type=self.entity_type,
                )

    @staticmethod
    def generate_safe_name(name: str, max_length: int = 256) -> str:
        cleaned = " ".join(name.split())
        return cleaned if len(cleaned) <= max_length else cleaned[: max_length - 3].rstrip() + "..."

    # -- errors and batching -----------------------------------------------------

    async def track_error(
        self,
        error: BaseException,
        parent_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Count, log and broadcast a per-item generation failure."""
        self.registry.track_generation_error(self.entity_type, parent_id, error, context)
        if isinstance(error, Exception):
            log_error(
                handle_error(error, {"entity_type": self.entity_type, "parent_id": parent_id})
            )
        await self.plugins.dispatch(HookPoint.ON_ENTITY_ERROR, self.entity_type, error, parent_id)

    def create_progress(self, total: int, name: str | None = None) -> ProgressReporter:
        return ProgressReporter(name or f"{self.entity_type} generation", total, clock=self.clock)

    async def generate_batched(
        self,
        count: int,
        parent_id: str | None,
        build: Callable[[int], Awaitable[E]],
    ) -> list[E]:
        """Run ``build(index)`` for ``count`` items in batches, skipping failures."""
        if count <= 0:
            return []
        progress = self.create_progress(count)
        progress.start()

        async def process(index: int, _position: int) -> E:
            try:
                return await build(index)
            except Exception as exc:
                await self.track_error(exc, parent_id, {"index": index})
                raise

        outcome = await self.batch_runner.execute_batch_with_progress(
            list(range(count)), process, name=f"{self.entity_type} generation", progress=progress
        )
        progress.stop()
        return outcome.results


__all__ = ["BaseGenerator", "GeneratorDeps", "ValidationResult", "breaker_config_from"]
