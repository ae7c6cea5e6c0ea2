"""Bounded-concurrency helpers for fan-out over API calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="async_utils")

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ItemFailure(Generic[T]):
    index: int
    item: T
    error: Exception


@dataclass
class WorkerPoolResult(Generic[T, R]):
    results: list[R] = field(default_factory=list)
    errors: list[ItemFailure[T]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.results)

    @property
    def failure_count(self) -> int:
        return len(self.errors)


async def worker_pool(
    items: Sequence[T],
    worker: Callable[[T, int], Awaitable[R]],
    *,
    concurrency: int = 5,
    preserve_order: bool = False,
    continue_on_error: bool = True,
    delay_between_items: float = 0.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_success: Callable[[R, T, int], None] | None = None,
    on_error: Callable[[Exception, T, int], None] | None = None,
) -> WorkerPoolResult[T, R]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` calls in flight.

    Results come back in completion order unless ``preserve_order`` is set.
    Without ``continue_on_error`` no new items start after the first failure
    and that failure is raised once in-flight work has settled.
    """
    outcome: WorkerPoolResult[T, R] = WorkerPoolResult()
    if not items:
        return outcome

    semaphore = asyncio.Semaphore(max(1, concurrency))
    completed: list[tuple[int, R]] = []
    stopped = False

    async def run_one(index: int, item: T) -> None:
        nonlocal stopped
        async with semaphore:
            if stopped:
                return
            try:
                result = await worker(item, index)
            except Exception as exc:
                outcome.errors.append(ItemFailure(index=index, item=item, error=exc))
                logger.debug(f"Worker failed on item {index}: {exc}", item_index=index)
                if on_error is not None:
                    on_error(exc, item, index)
                if not continue_on_error:
                    stopped = True
            else:
                completed.append((index, result))
                if on_success is not None:
                    on_success(result, item, index)
            if delay_between_items > 0:
                await sleep(delay_between_items)

    await asyncio.gather(*(run_one(index, item) for index, item in enumerate(items)))

    if preserve_order:
        completed.sort(key=lambda pair: pair[0])
    outcome.results = [result for _, result in completed]

    if not continue_on_error and outcome.errors:
        raise outcome.errors[0].error
    return outcome


__all__ = ["ItemFailure", "WorkerPoolResult", "worker_pool"]
