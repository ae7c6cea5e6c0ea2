"""Double-entry transaction schemas and their wire rendering."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from ledger_demo.models.entities import ApiModel


class OperationType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class OperationInput(ApiModel):
    account_alias: str = Field(min_length=1)
    type: OperationType
    amount: Decimal = Field(gt=0)
    asset_code: str = Field(min_length=1)


class TransactionInput(ApiModel):
    """A balanced set of DEBIT/CREDIT operations in one asset."""

    description: str | None = None
    chart_of_accounts_group_name: str | None = None
    operations: list[OperationInput] = Field(min_length=2)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_double_entry(self) -> "TransactionInput":
        assets = {op.asset_code for op in self.operations}
        if len(assets) != 1:
            raise ValueError(f"operations must share one asset, got {sorted(assets)}")
        if not any(op.type is OperationType.DEBIT for op in self.operations):
            raise ValueError("transaction needs at least one DEBIT operation")
        if not any(op.type is OperationType.CREDIT for op in self.operations):
            raise ValueError("transaction needs at least one CREDIT operation")
        if self.total(OperationType.DEBIT) != self.total(OperationType.CREDIT):
            raise ValueError(
                f"unbalanced transaction: debits {self.total(OperationType.DEBIT)} "
                f"!= credits {self.total(OperationType.CREDIT)}"
            )
        return self

    @property
    def asset_code(self) -> str:
        return self.operations[0].asset_code

    def total(self, op_type: OperationType) -> Decimal:
        return sum((op.amount for op in self.operations if op.type is op_type), Decimal("0"))

    def to_payload(self) -> dict[str, Any]:
        """Render the ``send``/``source``/``distribute`` JSON body."""
        asset = self.asset_code

        def leg(op: OperationInput) -> dict[str, Any]:
            return {"accountAlias": op.account_alias, "amount": {"asset": asset, "value": str(op.amount)}}

        payload: dict[str, Any] = {
            "send": {
                "asset": asset,
                "value": str(self.total(OperationType.DEBIT)),
                "source": {
                    "from": [leg(op) for op in self.operations if op.type is OperationType.DEBIT]
                },
                "distribute": {
                    "to": [leg(op) for op in self.operations if op.type is OperationType.CREDIT]
                },
            },
            "metadata": self.metadata,
        }
        if self.description:
            payload["description"] = self.description
        if self.chart_of_accounts_group_name:
            payload["chartOfAccountsGroupName"] = self.chart_of_accounts_group_name
        return payload


class Transaction(ApiModel):
    id: str
    description: str | None = None
    status: Any = None
    asset_code: str | None = None
    amount: Decimal | None = None
    ledger_id: str | None = None


__all__ = ["OperationInput", "OperationType", "Transaction", "TransactionInput"]
