"""Progress reporting and run summaries."""

from ledger_demo.monitoring.progress import ProgressReporter, ProgressSnapshot

__all__ = ["ProgressReporter", "ProgressSnapshot"]
