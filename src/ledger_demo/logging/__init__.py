"""Logging configuration and run correlation for the generator."""

from ledger_demo.logging.correlation import get_run_id, run_context
from ledger_demo.logging.setup import configure_logging

__all__ = ["configure_logging", "get_run_id", "run_context"]
