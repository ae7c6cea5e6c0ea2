"""Interface the generators use to talk to the ledger API."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ledger_demo.models import (
    Account,
    AccountInput,
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
    Transaction,
    TransactionInput,
)


@runtime_checkable
class LedgerApi(Protocol):
    """Typed create/get/list surface of the onboarding and transaction services.

    Implementations raise ``ApiError``; a duplicate unique key surfaces with
    ``ApiErrorKind.CONFLICT``.
    """

    async def create_organization(self, payload: OrganizationInput) -> Organization: ...

    async def get_organization(self, organization_id: str) -> Organization: ...

    async def list_organizations(self) -> list[Organization]: ...

    async def create_ledger(self, organization_id: str, payload: LedgerInput) -> Ledger: ...

    async def get_ledger(self, organization_id: str, ledger_id: str) -> Ledger: ...

    async def list_ledgers(self, organization_id: str) -> list[Ledger]: ...

    async def create_asset(
        self, organization_id: str, ledger_id: str, payload: AssetInput
    ) -> Asset: ...

    async def get_asset(self, organization_id: str, ledger_id: str, asset_id: str) -> Asset: ...

    async def list_assets(self, organization_id: str, ledger_id: str) -> list[Asset]: ...

    async def create_portfolio(
        self, organization_id: str, ledger_id: str, payload: PortfolioInput
    ) -> Portfolio: ...

    async def get_portfolio(
        self, organization_id: str, ledger_id: str, portfolio_id: str
    ) -> Portfolio: ...

    async def list_portfolios(self, organization_id: str, ledger_id: str) -> list[Portfolio]: ...

    async def create_segment(
        self, organization_id: str, ledger_id: str, payload: SegmentInput
    ) -> Segment: ...

    async def get_segment(
        self, organization_id: str, ledger_id: str, segment_id: str
    ) -> Segment: ...

    async def list_segments(self, organization_id: str, ledger_id: str) -> list[Segment]: ...

    async def create_account(
        self, organization_id: str, ledger_id: str, payload: AccountInput
    ) -> Account: ...

    async def get_account(
        self, organization_id: str, ledger_id: str, account_id: str
    ) -> Account: ...

    async def list_accounts(self, organization_id: str, ledger_id: str) -> list[Account]: ...

    async def create_transaction(
        self,
        organization_id: str,
        ledger_id: str,
        payload: TransactionInput,
        idempotency_key: str | None = None,
    ) -> Transaction: ...

    async def get_transaction(
        self, organization_id: str, ledger_id: str, transaction_id: str
    ) -> Transaction: ...

    async def list_transactions(self, organization_id: str, ledger_id: str) -> list[Transaction]: ...


__all__ = ["LedgerApi"]
