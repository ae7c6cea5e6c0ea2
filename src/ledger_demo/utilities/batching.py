"""Batched and sequential execution that keeps going when items fail."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ledger_demo.monitoring.progress import ProgressReporter
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="batching")

T = TypeVar("T")
R = TypeVar("R")

ErrorCallback = Callable[[Exception, Any, int], None]


@dataclass
class BatchOutcome(Generic[R]):
    results: list[R] = field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0


def create_batches(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive chunks of ``size``; the last may be shorter."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchRunner:
    """Runs a processor over items, logging and counting failures instead of raising."""

    def __init__(
        self,
        batch_size: int = 10,
        delay_between_batches: float = 0.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.batch_size = batch_size
        self.delay_between_batches = delay_between_batches
        self._sleep = sleep

    create_batches = staticmethod(create_batches)

    async def execute_batch_with_progress(
        self,
        items: Sequence[T],
        processor: Callable[[T, int], Awaitable[R]],
        *,
        name: str,
        progress: ProgressReporter | None = None,
        batch_size: int | None = None,
        on_error: ErrorCallback | None = None,
    ) -> BatchOutcome[R]:
        """Process each batch concurrently; batches run one after another.

        Results keep input order, minus the items that failed.
        """
        outcome: BatchOutcome[R] = BatchOutcome()
        batches = create_batches(items, batch_size or self.batch_size)
        offset = 0

        for batch_number, batch in enumerate(batches, start=1):
            start = offset
            offset += len(batch)
            settled = await asyncio.gather(
                *(processor(item, start + i) for i, item in enumerate(batch)),
                return_exceptions=True,
            )

            for i, (item, result) in enumerate(zip(batch, settled)):
                if isinstance(result, Exception):
                    outcome.failure_count += 1
                    self._record_failure(result, item, start + i, name, progress, on_error)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    outcome.results.append(result)
                    outcome.success_count += 1
                    if progress is not None:
                        progress.report_item_completed()

            if progress is not None:
                progress.report_batch_completed(len(batch))
            if self.delay_between_batches > 0 and batch_number < len(batches):
                await self._sleep(self.delay_between_batches)

        return outcome

    async def execute_sequential_with_progress(
        self,
        items: Sequence[T],
        processor: Callable[[T, int], Awaitable[R]],
        *,
        name: str,
        progress: ProgressReporter | None = None,
        delay_between_items: float = 0.0,
        on_error: ErrorCallback | None = None,
    ) -> BatchOutcome[R]:
        """Process items one at a time."""
        outcome: BatchOutcome[R] = BatchOutcome()
        for index, item in enumerate(items):
            try:
                result = await processor(item, index)
            except Exception as exc:
                outcome.failure_count += 1
                self._record_failure(exc, item, index, name, progress, on_error)
            else:
                outcome.results.append(result)
                outcome.success_count += 1
                if progress is not None:
                    progress.report_item_completed()
            if delay_between_items > 0 and index < len(items) - 1:
                await self._sleep(delay_between_items)
        return outcome

    @staticmethod
    def _record_failure(
        error: Exception,
        item: Any,
        index: int,
        name: str,
        progress: ProgressReporter | None,
        on_error: ErrorCallback | None,
    ) -> None:
        logger.warning(f"{name}: item {index} failed: {error}", operation=name, item_index=index)
        if progress is not None:
            progress.report_item_failed(error)
        if on_error is not None:
            on_error(error, item, index)


__all__ = ["BatchOutcome", "BatchRunner", "create_batches"]
