"""Property-based tests for double-entry invariants of generated transactions.

Tests critical bookkeeping properties:
- Every deposit debits the asset's external account by exactly what it credits
- Transfer amounts stay inside the asset-class range at cent precision
- Planned transfers never cross assets or target their own source
- Backoff delays never shrink and never exceed the cap
"""

from __future__ import annotations

from collections import Counter
from decimal import Decimal

from hypothesis import given, seed, settings
from hypothesis import strategies as st

from ledger_demo.config import constants
from ledger_demo.generators import DemoDataFactory
from ledger_demo.generators.transactions import AccountWithAsset, TransferGenerator, build_deposit
from ledger_demo.models import OperationType
from ledger_demo.utilities.backoff_policy import evaluate_backoff_delay

asset_code_strategy = st.sampled_from([code for code, _name, _type in constants.ASSET_CATALOGUE])
seed_strategy = st.integers(min_value=0, max_value=2**32 - 1)
holdings_strategy = st.lists(asset_code_strategy, min_size=0, max_size=25)


@seed(4101)
@settings(max_examples=100, deadline=None)
@given(asset_code=asset_code_strategy, alias=st.from_regex(r"[a-z][a-z0-9-]{2,30}", fullmatch=True))
def test_deposit_is_balanced(asset_code: str, alias: str) -> None:
    """Property: a deposit's debits equal its credits and touch exactly one internal account."""
    account = AccountWithAsset(account_id="acc", account_alias=alias, asset_code=asset_code)

    payload = build_deposit(account)

    assert payload.total(OperationType.DEBIT) == payload.total(OperationType.CREDIT)
    assert payload.asset_code == asset_code
    internal = [op for op in payload.operations if not op.account_alias.startswith("@external/")]
    assert [op.account_alias for op in internal] == [alias]
    assert internal[0].type is OperationType.CREDIT


@seed(4102)
@settings(max_examples=100, deadline=None)
@given(asset_code=asset_code_strategy, factory_seed=seed_strategy)
def test_transfer_amount_in_class_range(asset_code: str, factory_seed: int) -> None:
    """Property: transfer amounts are positive, in range and quantized to cents."""
    low, high = constants.TRANSFER_RANGES[constants.asset_class(asset_code)]

    amount = DemoDataFactory(seed=factory_seed).transfer_amount(asset_code)

    assert low <= amount <= high
    assert amount == amount.quantize(Decimal("0.01"))
    assert amount < constants.DEPOSIT_AMOUNTS[constants.asset_class(asset_code)]


@seed(4103)
@settings(max_examples=100, deadline=None)
@given(holdings=holdings_strategy, per_account=st.integers(min_value=0, max_value=4), factory_seed=seed_strategy)
def test_planned_transfers_stay_within_one_asset(
    holdings: list[str], per_account: int, factory_seed: int
) -> None:
    """Property: transfers pair distinct accounts of the same asset, per_account per source."""
    accounts = [
        AccountWithAsset(account_id=f"acc-{i}", account_alias=f"alias-{i}", asset_code=code)
        for i, code in enumerate(holdings)
    ]
    by_alias = {a.account_alias: a for a in accounts}
    sizes = Counter(holdings)

    planned, skipped = TransferGenerator(DemoDataFactory(seed=factory_seed), 5).plan(
        accounts, per_account
    )

    assert sorted(skipped) == sorted(code for code, size in sizes.items() if size < 2)
    assert len(planned) == per_account * sum(size for size in sizes.values() if size >= 2)
    for payload in planned:
        debit, credit = payload.operations
        assert debit.account_alias != credit.account_alias
        assert by_alias[debit.account_alias].asset_code == by_alias[credit.account_alias].asset_code
        assert debit.amount == credit.amount


@seed(4104)
@settings(max_examples=100, deadline=None)
@given(attempt=st.integers(min_value=1, max_value=30))
def test_backoff_is_monotonic_and_capped(attempt: int) -> None:
    """Property: delay(attempt + 1) >= delay(attempt) and delays never exceed the cap."""
    current = evaluate_backoff_delay(attempt=attempt)
    following = evaluate_backoff_delay(attempt=attempt + 1)

    assert 0 < current.delay_seconds <= 2.0
    assert following.delay_seconds >= current.delay_seconds
    assert current.capped == (current.delay_seconds == 2.0)
