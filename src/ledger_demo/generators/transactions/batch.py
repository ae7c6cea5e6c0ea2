"""Concurrent submission of a list of transactions with partial-success accounting."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ledger_demo.errors import is_conflict_error
from ledger_demo.models import Transaction, TransactionInput
from ledger_demo.utilities.async_utils import worker_pool
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="transactions")

SubmitFn = Callable[[TransactionInput, int], Awaitable[Transaction]]


@dataclass
class BatchResult:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    duplicates: int = 0
    transactions: list[Transaction] = field(default_factory=list)
    failed_indexes: list[int] = field(default_factory=list)

    def merge(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            attempted=self.attempted + other.attempted,
            succeeded=self.succeeded + other.succeeded,
            failed=self.failed + other.failed,
            duplicates=self.duplicates + other.duplicates,
            transactions=[*self.transactions, *other.transactions],
            failed_indexes=[*self.failed_indexes, *other.failed_indexes],
        )


async def submit_transaction_batch(
    transactions: Sequence[TransactionInput],
    submit: SubmitFn,
    *,
    name: str,
    concurrency: int,
    delay_between: float = 0.0,
    continue_on_error: bool = True,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> BatchResult:
    """Submit ``transactions`` through ``submit`` with bounded concurrency.

    Conflicts (the transaction was already accepted) are counted as
    duplicates rather than failures.
    """
    result = BatchResult(attempted=len(transactions))
    if not transactions:
        return result

    def on_error(exc: Exception, _tx: TransactionInput, index: int) -> None:
        if is_conflict_error(exc):
            result.duplicates += 1
        else:
            result.failed += 1
            result.failed_indexes.append(index)

    outcome = await worker_pool(
        transactions,
        submit,
        concurrency=max(1, concurrency),
        preserve_order=True,
        continue_on_error=continue_on_error,
        delay_between_items=delay_between,
        sleep=sleep,
        on_error=on_error,
    )
    result.transactions = outcome.results
    result.succeeded = outcome.success_count
    logger.info(
        f"{name}: {result.succeeded}/{result.attempted} succeeded, "
        f"{result.failed} failed, {result.duplicates} duplicates",
        operation=name,
    )
    return result


__all__ = ["BatchResult", "submit_transaction_batch"]
