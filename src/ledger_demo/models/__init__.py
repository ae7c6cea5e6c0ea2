"""Pydantic schemas for ledger API payloads and responses."""

from ledger_demo.models.entities import (
    Account,
    AccountInput,
    Address,
    Asset,
    AssetInput,
    Ledger,
    LedgerInput,
    Organization,
    OrganizationInput,
    Portfolio,
    PortfolioInput,
    Segment,
    SegmentInput,
    Status,
)
from ledger_demo.models.transactions import (
    OperationInput,
    OperationType,
    Transaction,
    TransactionInput,
)

__all__ = [
    "Account",
    "AccountInput",
    "Address",
    "Asset",
    "AssetInput",
    "Ledger",
    "LedgerInput",
    "OperationInput",
    "OperationType",
    "Organization",
    "OrganizationInput",
    "Portfolio",
    "PortfolioInput",
    "Segment",
    "SegmentInput",
    "Status",
    "Transaction",
    "TransactionInput",
]
