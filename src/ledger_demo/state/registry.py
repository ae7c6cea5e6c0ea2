"""Run-scoped registry of the IDs and relationships produced by a generation run."""

from __future__ import annotations

import copy
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any

from ledger_demo.config import constants
from ledger_demo.utilities.logging_patterns import get_logger
from ledger_demo.utilities.time_provider import SystemClock, TimeProvider

logger = get_logger(__name__, component="state")

ENTITY_TYPES: tuple[str, ...] = (
    "organization",
    "ledger",
    "asset",
    "portfolio",
    "segment",
    "account",
    "transaction",
)


@dataclass
class GeneratorState:
    """IDs created so far. Child maps are keyed by parent ID."""

    organization_ids: list[str] = field(default_factory=list)
    ledger_ids: dict[str, list[str]] = field(default_factory=dict)
    asset_ids: dict[str, list[str]] = field(default_factory=dict)
    asset_codes: dict[str, list[str]] = field(default_factory=dict)
    portfolio_ids: dict[str, list[str]] = field(default_factory=dict)
    segment_ids: dict[str, list[str]] = field(default_factory=dict)
    account_ids: dict[str, list[str]] = field(default_factory=dict)
    account_aliases: dict[str, list[str]] = field(default_factory=dict)
    transaction_ids: dict[str, list[str]] = field(default_factory=dict)
    account_assets: dict[str, dict[str, str]] = field(default_factory=dict)


@dataclass
class GenerationMetrics:
    """Counters for one run. Times are epoch seconds."""

    start_time: float
    end_time: float | None = None
    entity_counts: dict[str, int] = field(default_factory=lambda: dict.fromkeys(ENTITY_TYPES, 0))
    error_counts: dict[str, int] = field(default_factory=lambda: dict.fromkeys(ENTITY_TYPES, 0))
    total_errors: int = 0
    retries: int = 0

    def duration(self, now: float) -> float:
        return (self.end_time if self.end_time is not None else now) - self.start_time


@dataclass(frozen=True)
class TrackedError:
    entity_type: str
    parent_id: str | None
    message: str
    context: dict[str, Any]
    timestamp: float


@dataclass(frozen=True)
class RegistrySnapshot:
    """Deep copy of registry contents used for in-memory checkpoints."""

    state: GeneratorState
    metrics: GenerationMetrics
    completed: frozenset[str]
    taken_at: float


class StateRegistry:
    """Holds everything a run has produced so dependent generators can find parents.

    One instance is created per run and handed to every generator. The
    registry does not validate referential integrity; callers only add children
    under parents they have already registered.
    """

    def __init__(
        self,
        clock: TimeProvider | None = None,
        max_tracked_errors: int = constants.MAX_TRACKED_ERRORS,
    ) -> None:
        self._clock = clock or SystemClock()
        self._max_tracked_errors = max_tracked_errors
        self.reset()

    def reset(self) -> None:
        """Clear all state and start fresh metrics."""
        self.state = GeneratorState()
        self.metrics = GenerationMetrics(start_time=self._clock.time())
        self.errors: deque[TrackedError] = deque(maxlen=self._max_tracked_errors)
        self.completed: set[str] = set()

    new_run = reset

    # -- writers -----------------------------------------------------------------

    def add_organization_id(self, organization_id: str) -> None:
        self.state.organization_ids.append(organization_id)
        self._count("organization")

    def add_ledger_id(self, organization_id: str, ledger_id: str) -> None:
        self.state.ledger_ids.setdefault(organization_id, []).append(ledger_id)
        self._count("ledger")

    def add_asset_id(self, ledger_id: str, asset_id: str, asset_code: str) -> None:
        self.state.asset_ids.setdefault(ledger_id, []).append(asset_id)
        codes = self.state.asset_codes.setdefault(ledger_id, [])
        if asset_code not in codes:
            codes.append(asset_code)
        self._count("asset")

    def add_portfolio_id(self, ledger_id: str, portfolio_id: str) -> None:
        self.state.portfolio_ids.setdefault(ledger_id, []).append(portfolio_id)
        self._count("portfolio")

    def add_segment_id(self, ledger_id: str, segment_id: str) -> None:
        self.state.segment_ids.setdefault(ledger_id, []).append(segment_id)
        self._count("segment")

    def add_account_id(self, ledger_id: str, account_id: str, alias: str | None = None) -> None:
        self.state.account_ids.setdefault(ledger_id, []).append(account_id)
        if alias:
            self.state.account_aliases.setdefault(ledger_id, []).append(alias)
        self._count("account")

    def add_transaction_id(self, ledger_id: str, transaction_id: str) -> None:
        self.state.transaction_ids.setdefault(ledger_id, []).append(transaction_id)
        self._count("transaction")

    def set_account_asset(self, ledger_id: str, account_id: str, asset_code: str) -> None:
        self.state.account_assets.setdefault(ledger_id, {})[account_id] = asset_code

    # -- readers -----------------------------------------------------------------

    def get_organization_ids(self) -> list[str]:
        return list(self.state.organization_ids)

    def get_ledger_ids(self, organization_id: str) -> list[str]:
        return list(self.state.ledger_ids.get(organization_id, []))

    def get_all_ledger_ids(self) -> list[str]:
        return [lid for ids in self.state.ledger_ids.values() for lid in ids]

    def get_asset_ids(self, ledger_id: str) -> list[str]:
        return list(self.state.asset_ids.get(ledger_id, []))

    def get_asset_codes(self, ledger_id: str) -> list[str]:
        return list(self.state.asset_codes.get(ledger_id, []))

    def get_portfolio_ids(self, ledger_id: str) -> list[str]:
        return list(self.state.portfolio_ids.get(ledger_id, []))

    def get_segment_ids(self, ledger_id: str) -> list[str]:
        return list(self.state.segment_ids.get(ledger_id, []))

    def get_account_ids(self, ledger_id: str) -> list[str]:
        return list(self.state.account_ids.get(ledger_id, []))

    def get_account_aliases(self, ledger_id: str) -> list[str]:
        return list(self.state.account_aliases.get(ledger_id, []))

    def get_transaction_ids(self, ledger_id: str) -> list[str]:
        return list(self.state.transaction_ids.get(ledger_id, []))

    def get_account_asset(self, ledger_id: str, account_id: str) -> str:
        """Asset held by an account, falling back to the default currency."""
        return self.state.account_assets.get(ledger_id, {}).get(
            account_id, constants.DEFAULT_ASSET_CODE
        )

    def has_account_asset(self, ledger_id: str, account_id: str) -> bool:
        return account_id in self.state.account_assets.get(ledger_id, {})

    def entity_counts(self) -> dict[str, int]:
        return dict(self.metrics.entity_counts)

    def total_entities(self) -> int:
        return sum(self.metrics.entity_counts.values())

    # -- metrics -----------------------------------------------------------------

    def increment_error_count(self, entity_type: str | None = None) -> None:
        self.metrics.total_errors += 1
        if entity_type in self.metrics.error_counts:
            self.metrics.error_counts[entity_type] += 1

    def increment_retry_count(self) -> None:
        self.metrics.retries += 1

    def track_generation_error(
        self,
        entity_type: str,
        parent_id: str | None,
        error: BaseException | str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Count an error and keep it in the bounded error log."""
        self.increment_error_count(entity_type)
        self.errors.append(
            TrackedError(
                entity_type=entity_type,
                parent_id=parent_id,
                message=str(error),
                context=dict(context or {}),
                timestamp=self._clock.time(),
            )
        )

    def errors_by_type(self) -> dict[str, list[TrackedError]]:
        grouped: dict[str, list[TrackedError]] = defaultdict(list)
        for tracked in self.errors:
            grouped[tracked.entity_type].append(tracked)
        return dict(grouped)

    def complete_generation(self) -> None:
        self.metrics.end_time = self._clock.time()

    def duration(self) -> float:
        return self.metrics.duration(self._clock.time())

    # -- checkpoints -------------------------------------------------------------

    def mark_completed(self, key: str) -> None:
        self.completed.add(key)

    def is_completed(self, key: str) -> bool:
        return key in self.completed

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(
            state=copy.deepcopy(self.state),
            metrics=copy.deepcopy(self.metrics),
            completed=frozenset(self.completed),
            taken_at=self._clock.time(),
        )

    def restore(self, snapshot: RegistrySnapshot) -> None:
        self.state = copy.deepcopy(snapshot.state)
        self.metrics = copy.deepcopy(snapshot.metrics)
        self.metrics.end_time = None
        self.completed = set(snapshot.completed)
        logger.info(
            f"Restored registry checkpoint with {self.total_entities()} entities",
            operation="restore",
        )

    def _count(self, entity_type: str) -> None:
        self.metrics.entity_counts[entity_type] = self.metrics.entity_counts.get(entity_type, 0) + 1


__all__ = [
    "ENTITY_TYPES",
    "GenerationMetrics",
    "GeneratorState",
    "RegistrySnapshot",
    "StateRegistry",
    "TrackedError",
]
