"""Working types for the deposit and transfer phases."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from ledger_demo.generators.transactions.batch import BatchResult


@dataclass(frozen=True)
class AccountWithAsset:
    account_id: str
    account_alias: str
    asset_code: str
    deposit_amount: Decimal | None = None


@dataclass
class PhaseResult:
    phase: str
    batch: BatchResult = field(default_factory=BatchResult)
    skipped_assets: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.batch.attempted

    @property
    def succeeded(self) -> int:
        return self.batch.succeeded


@dataclass
class LedgerTransactionResult:
    ledger_id: str
    deposits: PhaseResult = field(default_factory=lambda: PhaseResult("deposit"))
    transfers: PhaseResult = field(default_factory=lambda: PhaseResult("transfer"))
    skipped_reason: str | None = None

    @property
    def transaction_ids(self) -> list[str]:
        return [tx.id for tx in (*self.deposits.batch.transactions, *self.transfers.batch.transactions)]


def group_by_asset(accounts: Iterable[AccountWithAsset]) -> dict[str, list[AccountWithAsset]]:
    groups: dict[str, list[AccountWithAsset]] = defaultdict(list)
    for account in accounts:
        groups[account.asset_code].append(account)
    return dict(groups)


__all__ = [
    "AccountWithAsset",
    "LedgerTransactionResult",
    "PhaseResult",
    "group_by_asset",
]
