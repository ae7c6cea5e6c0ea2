"""
Deterministic in-memory ledger API for dry runs and tests.

Mirrors the remote services closely enough for generation to behave the same
way: unique keys are enforced per parent, transactions must reference known
accounts holding the transaction asset, and balances are tracked so a
transfer cannot overdraw an internal account.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from ledger_demo.errors import ApiError
from ledger_demo.models import (
    Account,
    AccountInput,
    Asset,
    AssetInput,
    Ledger,
    LedgerInput,
    OperationType,
    Organization,
    OrganizationInput,
    Portfolio,
    PortfolioInput,
    Segment,
    SegmentInput,
    Transaction,
    TransactionInput,
)
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="memory_api")


@dataclass
class _InjectedFailure:
    remaining: int | None
    error_factory: "type[Exception] | None" = None
    status_code: int = 503


@dataclass
class _LedgerStore:
    organization_id: str
    ledger: Ledger
    assets: dict[str, Asset] = field(default_factory=dict)
    portfolios: dict[str, Portfolio] = field(default_factory=dict)
    segments: dict[str, Segment] = field(default_factory=dict)
    accounts: dict[str, Account] = field(default_factory=dict)
    transactions: dict[str, Transaction] = field(default_factory=dict)
    payloads: dict[str, TransactionInput] = field(default_factory=dict)
    balances: dict[str, Decimal] = field(default_factory=lambda: defaultdict(Decimal))


class InMemoryLedgerApi:
    """LedgerApi implementation backed by dictionaries."""

    def __init__(self, latency: float = 0.0) -> None:
        self.latency = latency
        self.calls: Counter[str] = Counter()
        self._ids = itertools.count(1)
        self._organizations: dict[str, Organization] = {}
        self._ledgers: dict[str, _LedgerStore] = {}
        self._idempotency: dict[str, str] = {}
        self._failures: dict[str, _InjectedFailure] = {}
        logger.info("InMemoryLedgerApi initialized", latency=latency)

    # -- test controls -------------------------------------------------------------

    def fail(
        self,
        operation: str,
        times: int | None = 1,
        *,
        status_code: int = 503,
        error: type[Exception] | None = None,
    ) -> None:
        """Make the next ``times`` calls to ``operation`` fail (``None`` = always)."""
        self._failures[operation] = _InjectedFailure(times, error, status_code)

    def clear_failures(self) -> None:
        self._failures.clear()

    def balance(self, ledger_id: str, alias: str) -> Decimal:
        return self._ledgers[ledger_id].balances[alias]

    def transaction_payloads(self, ledger_id: str) -> list[TransactionInput]:
        return list(self._ledgers[ledger_id].payloads.values())

    # -- internals -----------------------------------------------------------------

    async def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        await asyncio.sleep(self.latency)
        failure = self._failures.get(operation)
        if failure is None:
            return
        if failure.remaining is not None:
            failure.remaining -= 1
            if failure.remaining <= 0:
                del self._failures[operation]
        if failure.error_factory is not None:
            raise failure.error_factory(f"injected failure in {operation}")
        raise ApiError(
            f"{failure.status_code} injected failure in {operation}",
            status_code=failure.status_code,
        )

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):06d}"

    def _store(self, organization_id: str, ledger_id: str) -> _LedgerStore:
        store = self._ledgers.get(ledger_id)
        if store is None or store.organization_id != organization_id:
            raise ApiError(f"404 ledger {ledger_id} not found", status_code=404)
        return store

    @staticmethod
    def _conflict(entity: str, key: str) -> ApiError:
        return ApiError(f"409 {entity} '{key}' already exists", status_code=409)

    @staticmethod
    def _lookup(items: dict[str, object], entity_id: str, entity: str) -> object:
        if entity_id not in items:
            raise ApiError(f"404 {entity} {entity_id} not found", status_code=404)
        return items[entity_id]

    # -- organizations -------------------------------------------------------------

    async def create_organization(self, payload: OrganizationInput) -> Organization:
        await self._enter("create_organization")
        if any(o.legal_name == payload.legal_name for o in self._organizations.values()):
            raise self._conflict("organization", payload.legal_name)
        org = Organization(
            id=self._next_id("org"),
            legal_name=payload.legal_name,
            legal_document=payload.legal_document,
            metadata=payload.metadata,
        )
        self._organizations[org.id] = org
        return org

    async def get_organization(self, organization_id: str) -> Organization:
        await self._enter("get_organization")
        return self._lookup(self._organizations, organization_id, "organization")  # type: ignore[return-value]

    async def list_organizations(self) -> list[Organization]:
        await self._enter("list_organizations")
        return list(self._organizations.values())

    # -- ledgers -------------------------------------------------------------------

    async def create_ledger(self, organization_id: str, payload: LedgerInput) -> Ledger:
        await self._enter("create_ledger")
        if organization_id not in self._organizations:
            raise ApiError(f"404 organization {organization_id} not found", status_code=404)
        for store in self._ledgers.values():
            if store.organization_id == organization_id and store.ledger.name == payload.name:
                raise self._conflict("ledger", payload.name)
        ledger = Ledger(
            id=self._next_id("ldg"),
            name=payload.name,
            organization_id=organization_id,
            metadata=payload.metadata,
        )
        self._ledgers[ledger.id] = _LedgerStore(organization_id=organization_id, ledger=ledger)
        return ledger

    async def get_ledger(self, organization_id: str, ledger_id: str) -> Ledger:
        await self._enter("get_ledger")
        return self._store(organization_id, ledger_id).ledger

    async def list_ledgers(self, organization_id: str) -> list[Ledger]:
        await self._enter("list_ledgers")
        return [s.ledger for s in self._ledgers.values() if s.organization_id == organization_id]

    # -- assets --------------------------------------------------------------------

    async def create_asset(self, organization_id: str, ledger_id: str, payload: AssetInput) -> Asset:
        await self._enter("create_asset")
        store = self._store(organization_id, ledger_id)
        if any(a.code == payload.code for a in store.assets.values()):
            raise self._conflict("asset", payload.code)
        asset = Asset(
            id=self._next_id("ast"),
            name=payload.name,
            code=payload.code,
            type=payload.type,
            ledger_id=ledger_id,
        )
        store.assets[asset.id] = asset
        return asset

    async def get_asset(self, organization_id: str, ledger_id: str, asset_id: str) -> Asset:
        await self._enter("get_asset")
        return self._lookup(self._store(organization_id, ledger_id).assets, asset_id, "asset")  # type: ignore[return-value]

    async def list_assets(self, organization_id: str, ledger_id: str) -> list[Asset]:
        await self._enter("list_assets")
        return list(self._store(organization_id, ledger_id).assets.values())

    # -- portfolios ----------------------------------------------------------------

    async def create_portfolio(
        self, organization_id: str, ledger_id: str, payload: PortfolioInput
    ) -> Portfolio:
        await self._enter("create_portfolio")
        store = self._store(organization_id, ledger_id)
        if any(p.name == payload.name for p in store.portfolios.values()):
            raise self._conflict("portfolio", payload.name)
        portfolio = Portfolio(id=self._next_id("pfl"), name=payload.name, ledger_id=ledger_id)
        store.portfolios[portfolio.id] = portfolio
        return portfolio

    async def get_portfolio(
        self, organization_id: str, ledger_id: str, portfolio_id: str
    ) -> Portfolio:
        await self._enter("get_portfolio")
        store = self._store(organization_id, ledger_id)
        return self._lookup(store.portfolios, portfolio_id, "portfolio")  # type: ignore[return-value]

    async def list_portfolios(self, organization_id: str, ledger_id: str) -> list[Portfolio]:
        await self._enter("list_portfolios")
        return list(self._store(organization_id, ledger_id).portfolios.values())

    # -- segments ------------------------------------------------------------------

    async def create_segment(
        self, organization_id: str, ledger_id: str, payload: SegmentInput
    ) -> Segment:
        await self._enter("create_segment")
        store = self._store(organization_id, ledger_id)
        if any(s.name == payload.name for s in store.segments.values()):
            raise self._conflict("segment", payload.name)
        segment = Segment(id=self._next_id("seg"), name=payload.name, ledger_id=ledger_id)
        store.segments[segment.id] = segment
        return segment

    async def get_segment(self, organization_id: str, ledger_id: str, segment_id: str) -> Segment:
        await self._enter("get_segment")
        store = self._store(organization_id, ledger_id)
        return self._lookup(store.segments, segment_id, "segment")  # type: ignore[return-value]

    async def list_segments(self, organization_id: str, ledger_id: str) -> list[Segment]:
        await self._enter("list_segments")
        return list(self._store(organization_id, ledger_id).segments.values())

    # -- accounts ------------------------------------------------------------------

    async def create_account(
        self, organization_id: str, ledger_id: str, payload: AccountInput
    ) -> Account:
        await self._enter("create_account")
        store = self._store(organization_id, ledger_id)
        if any(a.alias == payload.alias for a in store.accounts.values()):
            raise self._conflict("account", payload.alias)
        if not any(a.code == payload.asset_code for a in store.assets.values()):
            raise ApiError(f"422 asset {payload.asset_code} not found in ledger", status_code=422)
        account = Account(
            id=self._next_id("acc"),
            name=payload.name,
            alias=payload.alias,
            asset_code=payload.asset_code,
            type=payload.type,
            ledger_id=ledger_id,
            portfolio_id=payload.portfolio_id,
            segment_id=payload.segment_id,
        )
        store.accounts[account.id] = account
        return account

    async def get_account(self, organization_id: str, ledger_id: str, account_id: str) -> Account:
        await self._enter("get_account")
        store = self._store(organization_id, ledger_id)
        return self._lookup(store.accounts, account_id, "account")  # type: ignore[return-value]

    async def list_accounts(self, organization_id: str, ledger_id: str) -> list[Account]:
        await self._enter("list_accounts")
        return list(self._store(organization_id, ledger_id).accounts.values())

    # -- transactions --------------------------------------------------------------

    async def create_transaction(
        self,
        organization_id: str,
        ledger_id: str,
        payload: TransactionInput,
        idempotency_key: str | None = None,
    ) -> Transaction:
        await self._enter("create_transaction")
        store = self._store(organization_id, ledger_id)
        if idempotency_key and idempotency_key in self._idempotency:
            return store.transactions[self._idempotency[idempotency_key]]

        by_alias = {a.alias: a for a in store.accounts.values()}
        asset = payload.asset_code
        for op in payload.operations:
            if op.account_alias.startswith("@external/"):
                continue
            account = by_alias.get(op.account_alias)
            if account is None:
                raise ApiError(f"422 account {op.account_alias} not found", status_code=422)
            if account.asset_code != asset:
                raise ApiError(
                    f"422 account {op.account_alias} holds {account.asset_code}, not {asset}",
                    status_code=422,
                )
            if op.type is OperationType.DEBIT and store.balances[op.account_alias] < op.amount:
                raise ApiError(f"422 insufficient funds in {op.account_alias}", status_code=422)

        for op in payload.operations:
            delta = op.amount if op.type is OperationType.CREDIT else -op.amount
            store.balances[op.account_alias] += delta

        transaction = Transaction(
            id=self._next_id("txn"),
            description=payload.description,
            status={"code": "APPROVED"},
            asset_code=asset,
            amount=payload.total(OperationType.DEBIT),
            ledger_id=ledger_id,
        )
        store.transactions[transaction.id] = transaction
        store.payloads[transaction.id] = payload
        if idempotency_key:
            self._idempotency[idempotency_key] = transaction.id
        return transaction

    async def get_transaction(
        self, organization_id: str, ledger_id: str, transaction_id: str
    ) -> Transaction:
        await self._enter("get_transaction")
        store = self._store(organization_id, ledger_id)
        return self._lookup(store.transactions, transaction_id, "transaction")  # type: ignore[return-value]

    async def list_transactions(self, organization_id: str, ledger_id: str) -> list[Transaction]:
        await self._enter("list_transactions")
        return list(self._store(organization_id, ledger_id).transactions.values())


__all__ = ["InMemoryLedgerApi"]
