from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_demo.errors import ApiError
from ledger_demo.generators import (
    AccountGenerator,
    AssetGenerator,
    GeneratorDeps,
    LedgerGenerator,
    OrganizationGenerator,
    TransactionGenerator,
)
from ledger_demo.generators.transactions import (
    AccountWithAsset,
    DepositGenerator,
    PhaseResult,
    TransferGenerator,
    build_deposit,
)
from ledger_demo.models import OperationType, Transaction, TransactionInput


async def _ledger_with_accounts(
    deps: GeneratorDeps, holdings: dict[str, int]
) -> tuple[str, str]:
    organization = await OrganizationGenerator(deps).generate_one()
    ledger = await LedgerGenerator(deps).generate_one(organization.id)
    assets = AssetGenerator(deps)
    accounts = AccountGenerator(deps)
    for code, count in holdings.items():
        await assets.generate_one(ledger.id, organization.id, catalogue_entry=(code, code, "currency"))
        for _ in range(count):
            await accounts.generate_one(ledger.id, organization.id, payload=deps.data.account(code))
    return organization.id, ledger.id


def _account(alias: str, code: str = "USD") -> AccountWithAsset:
    return AccountWithAsset(account_id=f"id-{alias}", account_alias=alias, asset_code=code)


class TestGenerateForLedger:
    async def test_transfers_only_within_assets_with_counterparties(
        self, deps: GeneratorDeps, memory_api, recorded_sleep
    ) -> None:
        org_id, ledger_id = await _ledger_with_accounts(deps, {"BTC": 1, "USD": 3})

        result = await TransactionGenerator(deps).generate_for_ledger(org_id, ledger_id, 2)

        assert result.skipped_reason is None
        assert result.deposits.attempted == 4
        assert result.deposits.succeeded == 4
        assert result.transfers.skipped_assets == ["BTC"]
        assert result.transfers.attempted == 6
        assert result.transfers.succeeded == 6
        assert sorted(deps.registry.get_transaction_ids(ledger_id)) == sorted(result.transaction_ids)
        assert recorded_sleep.delays.count(1.0) == 1

        for payload in memory_api.transaction_payloads(ledger_id)[4:]:
            assert payload.asset_code == "USD"
            assert payload.total(OperationType.DEBIT) == payload.total(OperationType.CREDIT)

    async def test_internal_balances_never_go_negative(
        self, deps: GeneratorDeps, memory_api
    ) -> None:
        org_id, ledger_id = await _ledger_with_accounts(deps, {"USD": 4, "EUR": 2})

        await TransactionGenerator(deps).generate_for_ledger(org_id, ledger_id, 3)

        for alias in deps.registry.get_account_aliases(ledger_id):
            assert memory_api.balance(ledger_id, alias) >= Decimal("0")

    async def test_ledger_with_fewer_than_two_accounts_is_skipped(
        self, deps: GeneratorDeps, memory_api
    ) -> None:
        org_id, ledger_id = await _ledger_with_accounts(deps, {"USD": 1})

        result = await TransactionGenerator(deps).generate_for_ledger(org_id, ledger_id, 2)

        assert result.skipped_reason == "1 account(s) in ledger, need at least 2"
        assert memory_api.calls["create_transaction"] == 0

    async def test_no_settlement_wait_when_delay_disabled(
        self, make_deps, recorded_sleep, settings
    ) -> None:
        deps = make_deps(settings_override=settings.model_copy(update={"settlement_delay": 0.0}))
        org_id, ledger_id = await _ledger_with_accounts(deps, {"USD": 2})

        await TransactionGenerator(deps).generate_for_ledger(org_id, ledger_id, 1)

        assert 1.0 not in recorded_sleep.delays

    async def test_settlement_wait_follows_funded_accounts(
        self, deps: GeneratorDeps, recorded_sleep
    ) -> None:
        org_id, ledger_id = await _ledger_with_accounts(deps, {"USD": 2})
        generator = TransactionGenerator(deps)

        async def already_deposited(accounts, _submit):
            phase = PhaseResult("deposit")
            phase.batch.attempted = phase.batch.duplicates = len(accounts)
            return phase, list(accounts)

        generator.deposits.run = already_deposited

        result = await generator.generate_for_ledger(org_id, ledger_id, 1)

        assert result.deposits.succeeded == 0
        assert result.transfers.attempted == 2
        assert recorded_sleep.delays.count(1.0) == 1

    async def test_unknown_account_asset_is_fetched_from_api(self, deps: GeneratorDeps) -> None:
        org_id, ledger_id = await _ledger_with_accounts(deps, {"EUR": 2})
        account_id = deps.registry.get_account_ids(ledger_id)[0]
        deps.registry.state.account_assets[ledger_id].pop(account_id)

        prepared = await TransactionGenerator(deps).prepare_accounts(org_id, ledger_id)

        assert [a.asset_code for a in prepared] == ["EUR", "EUR"]
        assert deps.registry.get_account_asset(ledger_id, account_id) == "EUR"


class TestGenerateOne:
    async def test_mismatched_assets_return_none(self, deps: GeneratorDeps, memory_api) -> None:
        org_id, ledger_id = await _ledger_with_accounts(deps, {"USD": 1, "EUR": 1})

        result = await TransactionGenerator(deps).generate_one(
            ledger_id, org_id, source=_account("a", "USD"), target=_account("b", "EUR")
        )

        assert result is None
        assert memory_api.calls["create_transaction"] == 0

    async def test_failed_transfer_is_tracked(self, deps: GeneratorDeps, memory_api) -> None:
        org_id, ledger_id = await _ledger_with_accounts(deps, {"USD": 2})
        source, target = (
            AccountWithAsset(account_id=i, account_alias=alias, asset_code="USD")
            for i, alias in zip(
                deps.registry.get_account_ids(ledger_id),
                deps.registry.get_account_aliases(ledger_id),
            )
        )

        # unfunded source account
        with pytest.raises(ApiError):
            await TransactionGenerator(deps).generate_one(
                ledger_id, org_id, source=source, target=target, amount=Decimal("5.00")
            )

        assert deps.registry.metrics.error_counts["transaction"] == 1


class TestDepositGenerator:
    async def test_failed_deposits_leave_account_unfunded(self, recorded_sleep) -> None:
        accounts = [_account("a"), _account("b"), _account("c", "BTC")]

        async def submit(tx: TransactionInput, index: int) -> Transaction:
            if tx.operations[1].account_alias == "b":
                raise ApiError("500 ledger unavailable", status_code=500)
            return Transaction(id=f"tx-{tx.operations[1].account_alias}", asset_code=tx.asset_code)

        phase, funded = await DepositGenerator(4, sleep=recorded_sleep).run(accounts, submit)

        assert phase.attempted == 3
        assert phase.succeeded == 2
        assert phase.batch.failed == 1
        assert sorted(a.account_alias for a in funded) == ["a", "c"]
        assert {a.deposit_amount for a in funded} == {Decimal("10000.00"), Decimal("100.00")}

    async def test_conflicting_deposit_counts_as_duplicate(self, recorded_sleep) -> None:
        async def submit(tx: TransactionInput, index: int) -> Transaction:
            raise ApiError("409 transaction already exists", status_code=409)

        phase, funded = await DepositGenerator(2, sleep=recorded_sleep).run(
            [_account("a"), _account("b")], submit
        )

        assert phase.batch.duplicates == 2
        assert phase.batch.failed == 0
        assert len(funded) == 2

    @pytest.mark.parametrize(
        ("max_concurrency", "groups", "size", "expected"),
        [(10, 2, 20, 5), (10, 10, 20, 2), (40, 1, 50, 10), (10, 1, 1, 1)],
    )
    def test_group_concurrency(self, max_concurrency, groups, size, expected) -> None:
        assert DepositGenerator(max_concurrency).group_concurrency(groups, size) == expected

    def test_deposit_is_balanced_against_external_account(self) -> None:
        payload = build_deposit(_account("alice-btc", "BTC"))

        debit, credit = payload.operations
        assert debit.account_alias == "@external/BTC"
        assert credit.account_alias == "alice-btc"
        assert debit.amount == credit.amount == Decimal("100.00")


class TestTransferGenerator:
    def test_plan_never_targets_the_source(self, deps: GeneratorDeps) -> None:
        accounts = [_account("a"), _account("b"), _account("c"), _account("solo", "ETH")]

        planned, skipped = TransferGenerator(deps.data, 4).plan(accounts, 3)

        assert skipped == ["ETH"]
        assert len(planned) == 9
        for payload in planned:
            debit, credit = payload.operations
            assert debit.account_alias != credit.account_alias
            assert Decimal("100.00") <= debit.amount <= Decimal("500.00")

    def test_concurrency_is_capped(self, deps: GeneratorDeps) -> None:
        assert TransferGenerator(deps.data, 50).concurrency == 5
        assert TransferGenerator(deps.data, 2).concurrency == 2
