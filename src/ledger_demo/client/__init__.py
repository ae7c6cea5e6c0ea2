"""Ledger API clients."""

from ledger_demo.client.http import HttpLedgerApi
from ledger_demo.client.memory import InMemoryLedgerApi
from ledger_demo.client.protocols import LedgerApi

__all__ = ["HttpLedgerApi", "InMemoryLedgerApi", "LedgerApi"]
