"""Initial funding deposits from a per-asset external account."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from decimal import Decimal
from typing import Any

from ledger_demo.config import constants
from ledger_demo.generators.transactions.batch import (
    BatchResult,
    SubmitFn,
    submit_transaction_batch,
)
from ledger_demo.generators.transactions.models import (
    AccountWithAsset,
    PhaseResult,
    group_by_asset,
)
from ledger_demo.models import OperationInput, OperationType, TransactionInput
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="transactions")


def deposit_amount(asset_code: str) -> Decimal:
    return constants.DEPOSIT_AMOUNTS[constants.asset_class(asset_code)]


def external_account(asset_code: str) -> str:
    return constants.EXTERNAL_ACCOUNT_TEMPLATE.format(asset_code=asset_code)


def build_deposit(account: AccountWithAsset) -> TransactionInput:
    """Credit ``account`` and debit the asset's external account by the same amount."""
    amount = account.deposit_amount or deposit_amount(account.asset_code)
    return TransactionInput(
        description=f"Initial deposit of {account.asset_code} to {account.account_alias}",
        operations=[
            OperationInput(
                account_alias=external_account(account.asset_code),
                type=OperationType.DEBIT,
                amount=amount,
                asset_code=account.asset_code,
            ),
            OperationInput(
                account_alias=account.account_alias,
                type=OperationType.CREDIT,
                amount=amount,
                asset_code=account.asset_code,
            ),
        ],
        metadata={"kind": "deposit", "generator": constants.GENERATOR_FINGERPRINT},
    )


class DepositGenerator:
    """Funds every account once, one concurrent batch per asset."""

    def __init__(
        self,
        max_concurrency: int,
        *,
        max_retries: int = constants.DEPOSIT_MAX_RETRIES,
        delay_between: float = constants.DEPOSIT_DELAY_SECONDS,
        continue_on_error: bool = True,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.max_concurrency = max_concurrency
        self.max_retries = max_retries
        self.delay_between = delay_between
        self.continue_on_error = continue_on_error
        self._sleep = sleep

    def group_concurrency(self, group_count: int, group_size: int) -> int:
        per_group = max(2, self.max_concurrency // max(group_count, 1))
        return max(1, min(per_group, constants.MAX_ACCOUNT_CONCURRENCY, group_size))

    async def run(
        self, accounts: Sequence[AccountWithAsset], submit: SubmitFn
    ) -> tuple[PhaseResult, list[AccountWithAsset]]:
        """Deposit into ``accounts``; returns the phase result and the funded accounts."""
        groups = group_by_asset(
            replace(a, deposit_amount=a.deposit_amount or deposit_amount(a.asset_code))
            for a in accounts
        )
        logger.info(
            f"Depositing into {len(accounts)} accounts across {len(groups)} assets",
            operation="deposits",
        )

        async def run_group(asset_code: str, members: list[AccountWithAsset]) -> BatchResult:
            return await submit_transaction_batch(
                [build_deposit(account) for account in members],
                submit,
                name=f"deposits[{asset_code}]",
                concurrency=self.group_concurrency(len(groups), len(members)),
                delay_between=self.delay_between,
                continue_on_error=self.continue_on_error,
                sleep=self._sleep,
            )

        ordered = list(groups.items())
        results = await asyncio.gather(*(run_group(code, members) for code, members in ordered))

        phase = PhaseResult("deposit")
        funded: list[AccountWithAsset] = []
        for (_code, members), batch in zip(ordered, results):
            phase.batch = phase.batch.merge(batch)
            failed = set(batch.failed_indexes)
            funded.extend(account for i, account in enumerate(members) if i not in failed)
        return phase, funded


__all__ = ["DepositGenerator", "build_deposit", "deposit_amount", "external_account"]
