"""Deposit and transfer generation."""

from ledger_demo.generators.transactions.batch import BatchResult, submit_transaction_batch
from ledger_demo.generators.transactions.deposits import DepositGenerator, build_deposit
from ledger_demo.generators.transactions.models import (
    AccountWithAsset,
    LedgerTransactionResult,
    PhaseResult,
)
from ledger_demo.generators.transactions.orchestrator import TransactionGenerator
from ledger_demo.generators.transactions.transfers import TransferGenerator, build_transfer

__all__ = [
    "AccountWithAsset",
    "BatchResult",
    "DepositGenerator",
    "LedgerTransactionResult",
    "PhaseResult",
    "TransactionGenerator",
    "TransferGenerator",
    "build_deposit",
    "build_transfer",
    "submit_transaction_batch",
]
