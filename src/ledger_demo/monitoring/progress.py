"""Progress tracking for a batch of homogeneous operations."""

from __future__ import annotations

from dataclasses import dataclass

from ledger_demo.utilities.logging_patterns import get_logger
from ledger_demo.utilities.time_provider import SystemClock, TimeProvider

logger = get_logger(__name__, component="progress")


@dataclass(frozen=True)
class ProgressSnapshot:
    name: str
    total: int
    completed: int
    failed: int
    batches: int
    elapsed_seconds: float

    @property
    def processed(self) -> int:
        return self.completed + self.failed

    @property
    def percent(self) -> float:
        return 100.0 * self.processed / self.total if self.total else 100.0

    @property
    def throughput(self) -> float:
        """Processed items per second."""
        return self.processed / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0

    @property
    def eta_seconds(self) -> float | None:
        if self.throughput <= 0:
            return None
        return max(self.total - self.processed, 0) / self.throughput


class ProgressReporter:
    """Counts completions and failures and logs progress at most every ``log_interval`` seconds."""

    def __init__(
        self,
        name: str,
        total: int,
        clock: TimeProvider | None = None,
        log_interval: float = 5.0,
    ) -> None:
        self.name = name
        self.total = total
        self._clock = clock or SystemClock()
        self._log_interval = log_interval
        self._completed = 0
        self._failed = 0
        self._batches = 0
        self._started_at: float | None = None
        self._stopped_at: float | None = None
        self._last_log = 0.0

    def start(self) -> None:
        self._started_at = self._clock.monotonic()
        self._last_log = self._started_at
        logger.info(f"{self.name}: starting {self.total} operations", operation=self.name)

    def report_item_completed(self) -> None:
        self._completed += 1
        self._maybe_log()

    def report_item_failed(self, error: BaseException | None = None) -> None:
        self._failed += 1
        if error is not None:
            logger.debug(f"{self.name}: item failed: {error}", operation=self.name)
        self._maybe_log()

    def report_batch_completed(self, size: int | None = None) -> None:
        self._batches += 1
        logger.debug(
            f"{self.name}: batch {self._batches} done ({size if size is not None else '?'} items)",
            operation=self.name,
        )

    def snapshot(self) -> ProgressSnapshot:
        now = self._stopped_at if self._stopped_at is not None else self._clock.monotonic()
        elapsed = now - self._started_at if self._started_at is not None else 0.0
        return ProgressSnapshot(
            name=self.name,
            total=self.total,
            completed=self._completed,
            failed=self._failed,
            batches=self._batches,
            elapsed_seconds=elapsed,
        )

    def stop(self) -> ProgressSnapshot:
        self._stopped_at = self._clock.monotonic()
        snap = self.snapshot()
        logger.info(
            f"{self.name}: {snap.completed}/{snap.total} succeeded, {snap.failed} failed "
            f"in {snap.elapsed_seconds:.2f}s ({snap.throughput:.1f}/s)",
            operation=self.name,
            completed=snap.completed,
            failed=snap.failed,
        )
        return snap

    def _maybe_log(self) -> None:
        now = self._clock.monotonic()
        if now - self._last_log < self._log_interval:
            return
        self._last_log = now
        snap = self.snapshot()
        eta = f", eta {snap.eta_seconds:.0f}s" if snap.eta_seconds is not None else ""
        logger.info(
            f"{self.name}: {snap.processed}/{snap.total} ({snap.percent:.0f}%){eta}",
            operation=self.name,
        )


__all__ = ["ProgressReporter", "ProgressSnapshot"]
