from __future__ import annotations

import pytest

from ledger_demo.monitoring import ProgressReporter
from ledger_demo.utilities.batching import BatchRunner, create_batches


def test_create_batches_keeps_short_last_chunk() -> None:
    assert create_batches(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]
    assert create_batches([], 3) == []


def test_create_batches_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        create_batches([1, 2], 0)


async def _process(item: int, index: int) -> int:
    if index in {2, 5}:
        raise RuntimeError(f"item {index} exploded")
    return item * 10


async def test_batch_partial_failure_returns_successes(fake_clock) -> None:
    progress = ProgressReporter("batch", 10, clock=fake_clock)
    failed: list[int] = []
    runner = BatchRunner(batch_size=4)

    outcome = await runner.execute_batch_with_progress(
        list(range(10)),
        _process,
        name="test batch",
        progress=progress,
        on_error=lambda _exc, _item, index: failed.append(index),
    )

    assert len(outcome.results) == 8
    assert outcome.results == [0, 10, 30, 40, 60, 70, 80, 90]
    assert outcome.success_count == 8
    assert outcome.failure_count == 2
    assert sorted(failed) == [2, 5]

    snapshot = progress.snapshot()
    assert snapshot.completed == 8
    assert snapshot.failed == 2
    assert snapshot.batches == 3


async def test_delay_between_batches_uses_injected_sleep(recorded_sleep) -> None:
    runner = BatchRunner(batch_size=2, delay_between_batches=0.5, sleep=recorded_sleep)

    await runner.execute_batch_with_progress(list(range(5)), _ok, name="delayed")

    assert recorded_sleep.delays == [0.5, 0.5]


async def _ok(item: int, _index: int) -> int:
    return item


async def test_sequential_execution_continues_after_failure(recorded_sleep) -> None:
    runner = BatchRunner(sleep=recorded_sleep)

    outcome = await runner.execute_sequential_with_progress(
        list(range(10)), _process, name="sequential", delay_between_items=0.1
    )

    assert outcome.success_count == 8
    assert outcome.failure_count == 2
    assert recorded_sleep.delays == [0.1] * 9
