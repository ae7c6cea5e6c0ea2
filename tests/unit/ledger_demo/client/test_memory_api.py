from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_demo.client import InMemoryLedgerApi
from ledger_demo.errors import ApiError, ApiErrorKind
from ledger_demo.models import (
    AccountInput,
    AssetInput,
    LedgerInput,
    OperationInput,
    OperationType,
    OrganizationInput,
    TransactionInput,
)


def _transfer(debit: str, credit: str, amount: str, asset: str = "USD") -> TransactionInput:
    return TransactionInput(
        operations=[
            OperationInput(
                account_alias=debit, type=OperationType.DEBIT, amount=Decimal(amount), asset_code=asset
            ),
            OperationInput(
                account_alias=credit, type=OperationType.CREDIT, amount=Decimal(amount), asset_code=asset
            ),
        ]
    )


@pytest.fixture
async def ledger(memory_api: InMemoryLedgerApi) -> tuple[str, str]:
    org = await memory_api.create_organization(
        OrganizationInput(legal_name="Acme Pagamentos", legal_document="12345678000190")
    )
    ledger = await memory_api.create_ledger(org.id, LedgerInput(name="Treasury"))
    await memory_api.create_asset(
        org.id, ledger.id, AssetInput(name="US Dollar", type="currency", code="USD")
    )
    for alias in ("alice", "bob"):
        await memory_api.create_account(
            org.id,
            ledger.id,
            AccountInput(name=alias.title(), asset_code="USD", type="deposit", alias=alias),
        )
    return org.id, ledger.id


async def test_unique_keys_are_enforced_per_parent(memory_api: InMemoryLedgerApi) -> None:
    org = await memory_api.create_organization(
        OrganizationInput(legal_name="Acme", legal_document="1")
    )
    await memory_api.create_ledger(org.id, LedgerInput(name="Ops"))

    with pytest.raises(ApiError) as excinfo:
        await memory_api.create_ledger(org.id, LedgerInput(name="Ops"))

    assert excinfo.value.kind is ApiErrorKind.CONFLICT
    assert str(excinfo.value) == "409 ledger 'Ops' already exists"


async def test_unknown_parent_is_not_found(memory_api: InMemoryLedgerApi) -> None:
    with pytest.raises(ApiError) as excinfo:
        await memory_api.list_assets("org-x", "ldg-x")
    assert excinfo.value.status_code == 404


async def test_injected_failures_run_out(memory_api: InMemoryLedgerApi) -> None:
    memory_api.fail("list_organizations", times=2, status_code=502)

    for _ in range(2):
        with pytest.raises(ApiError) as excinfo:
            await memory_api.list_organizations()
        assert excinfo.value.kind is ApiErrorKind.SERVER

    assert await memory_api.list_organizations() == []
    assert memory_api.calls["list_organizations"] == 3


async def test_injected_custom_exception(memory_api: InMemoryLedgerApi) -> None:
    memory_api.fail("list_organizations", times=None, error=TimeoutError)

    for _ in range(3):
        with pytest.raises(TimeoutError):
            await memory_api.list_organizations()

    memory_api.clear_failures()
    assert await memory_api.list_organizations() == []


class TestTransactions:
    async def test_deposit_then_transfer_moves_balances(
        self, memory_api: InMemoryLedgerApi, ledger: tuple[str, str]
    ) -> None:
        org_id, ledger_id = ledger
        await memory_api.create_transaction(org_id, ledger_id, _transfer("@external/USD", "alice", "100"))
        transfer = await memory_api.create_transaction(
            org_id, ledger_id, _transfer("alice", "bob", "40")
        )

        assert transfer.amount == Decimal("40")
        assert memory_api.balance(ledger_id, "alice") == Decimal("60")
        assert memory_api.balance(ledger_id, "bob") == Decimal("40")

    async def test_overdraft_is_rejected(
        self, memory_api: InMemoryLedgerApi, ledger: tuple[str, str]
    ) -> None:
        org_id, ledger_id = ledger
        with pytest.raises(ApiError, match="insufficient funds in alice"):
            await memory_api.create_transaction(org_id, ledger_id, _transfer("alice", "bob", "1"))
        assert memory_api.balance(ledger_id, "bob") == Decimal("0")

    async def test_asset_mismatch_is_rejected(
        self, memory_api: InMemoryLedgerApi, ledger: tuple[str, str]
    ) -> None:
        org_id, ledger_id = ledger
        with pytest.raises(ApiError) as excinfo:
            await memory_api.create_transaction(
                org_id, ledger_id, _transfer("@external/EUR", "alice", "5", asset="EUR")
            )
        assert excinfo.value.kind is ApiErrorKind.VALIDATION

    async def test_idempotency_key_replays_original(
        self, memory_api: InMemoryLedgerApi, ledger: tuple[str, str]
    ) -> None:
        org_id, ledger_id = ledger
        deposit = _transfer("@external/USD", "alice", "10")

        first = await memory_api.create_transaction(org_id, ledger_id, deposit, "key-1")
        second = await memory_api.create_transaction(org_id, ledger_id, deposit, "key-1")

        assert first.id == second.id
        assert memory_api.balance(ledger_id, "alice") == Decimal("10")
        assert len(await memory_api.list_transactions(org_id, ledger_id)) == 1
