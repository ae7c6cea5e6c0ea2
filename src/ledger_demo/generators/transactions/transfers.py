"""Peer-to-peer transfers between funded accounts holding the same asset."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from decimal import Decimal
from typing import Any

from ledger_demo.config import constants
from ledger_demo.generators.fakers import DemoDataFactory
from ledger_demo.generators.transactions.batch import SubmitFn, submit_transaction_batch
from ledger_demo.generators.transactions.models import (
    AccountWithAsset,
    PhaseResult,
    group_by_asset,
)
from ledger_demo.models import OperationInput, OperationType, TransactionInput
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="transactions")


def build_transfer(
    source: AccountWithAsset, target: AccountWithAsset, amount: Decimal
) -> TransactionInput:
    if source.asset_code != target.asset_code:
        raise ValueError(
            f"Cannot transfer between {source.asset_code} and {target.asset_code} accounts"
        )
    return TransactionInput(
        description=f"Transfer from {source.account_alias} to {target.account_alias}",
        operations=[
            OperationInput(
                account_alias=source.account_alias,
                type=OperationType.DEBIT,
                amount=amount,
                asset_code=source.asset_code,
            ),
            OperationInput(
                account_alias=target.account_alias,
                type=OperationType.CREDIT,
                amount=amount,
                asset_code=target.asset_code,
            ),
        ],
        metadata={"kind": "transfer", "generator": constants.GENERATOR_FINGERPRINT},
    )


class TransferGenerator:
    """Plans and submits ``transfers_per_account`` transfers out of each funded account."""

    def __init__(
        self,
        data: DemoDataFactory,
        max_concurrency: int,
        *,
        max_retries: int = constants.TRANSFER_MAX_RETRIES,
        delay_between: float = constants.TRANSFER_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.data = data
        self.concurrency = max(1, min(constants.TRANSFER_MAX_CONCURRENCY, max_concurrency))
        self.max_retries = max_retries
        self.delay_between = delay_between
        self._sleep = sleep

    def plan(
        self, accounts: Sequence[AccountWithAsset], transfers_per_account: int
    ) -> tuple[list[TransactionInput], list[str]]:
        """Return the transfers to submit and the asset codes skipped for lack of counterparties."""
        planned: list[TransactionInput] = []
        skipped: list[str] = []
        for asset_code, members in sorted(group_by_asset(accounts).items()):
            if len(members) < 2:
                logger.warning(
                    f"Skipping {asset_code} transfers: {len(members)} funded account(s), need 2",
                    asset_code=asset_code,
                )
                skipped.append(asset_code)
                continue
            for source in members:
                counterparties = [m for m in members if m.account_id != source.account_id]
                for _ in range(transfers_per_account):
                    target = self.data.rng.choice(counterparties)
                    amount = self.data.transfer_amount(asset_code)
                    planned.append(build_transfer(source, target, amount))
        return planned, skipped

    async def run(
        self,
        accounts: Sequence[AccountWithAsset],
        transfers_per_account: int,
        submit: SubmitFn,
    ) -> PhaseResult:
        planned, skipped = self.plan(accounts, transfers_per_account)
        phase = PhaseResult("transfer", skipped_assets=skipped)
        if not planned:
            return phase
        logger.info(f"Submitting {len(planned)} transfers", operation="transfers")
        phase.batch = await submit_transaction_batch(
            planned,
            submit,
            name="transfers",
            concurrency=self.concurrency,
            delay_between=self.delay_between,
            sleep=self._sleep,
        )
        return phase


__all__ = ["TransferGenerator", "build_transfer"]
