"""aiohttp client for the onboarding and transaction services."""

from __future__ import annotations

import asyncio
import uuid
from types import TracebackType
from typing import Any, TypeVar

import aiohttp

from ledger_demo.errors import ApiError, ApiErrorKind
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
from ledger_demo.models.entities import ApiModel
from ledger_demo.settings import Settings
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="http_client")

M = TypeVar("M", bound=ApiModel)

_LIST_LIMIT = 100


class HttpLedgerApi:
    """Ledger API client over HTTP.

    Use as an async context manager so the underlying session is closed::

        async with HttpLedgerApi(settings) as api:
            org = await api.create_organization(payload)
    """

    def __init__(self, settings: Settings, session: aiohttp.ClientSession | None = None) -> None:
        self._onboarding_url = settings.onboarding_url
        self._transaction_url = settings.transaction_url
        self._token = settings.token
        self._timeout = aiohttp.ClientTimeout(total=settings.request_timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "HttpLedgerApi":
        self._ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            headers = {"Content-Type": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._session = aiohttp.ClientSession(headers=headers, timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        session = self._ensure_session()
        request_headers = {"X-Request-Id": str(uuid.uuid4())}
        request_headers.update(headers or {})
        try:
            async with session.request(
                method, url, json=json, params=params, headers=request_headers
            ) as response:
                if response.status >= 400:
                    raise ApiError(
                        await self._error_message(response),
                        status_code=response.status,
                        url=url,
                    )
                if response.status == 204:
                    return None
                return await response.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise ApiError(
                f"{method} {url} failed: {exc}",
                kind=ApiErrorKind.NETWORK,
                url=url,
                original_error=exc,
            ) from exc
        except asyncio.TimeoutError as exc:
            raise ApiError(
                f"{method} {url} timed out",
                kind=ApiErrorKind.NETWORK,
                url=url,
                original_error=exc,
            ) from exc

    @staticmethod
    async def _error_message(response: aiohttp.ClientResponse) -> str:
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            body = None
        if isinstance(body, dict):
            detail = body.get("message") or body.get("title") or body.get("code")
            if detail:
                return f"{response.status} {detail}"
        return f"{response.status} {response.reason or 'HTTP error'}"

    def _ledger_path(self, organization_id: str, ledger_id: str) -> str:
        return f"/v1/organizations/{organization_id}/ledgers/{ledger_id}"

    async def _create(self, url: str, payload: ApiModel, model: type[M]) -> M:
        data = await self._request("POST", url, json=payload.to_payload())
        return model.model_validate(data)

    async def _get(self, url: str, model: type[M]) -> M:
        return model.model_validate(await self._request("GET", url))

    async def _list(self, url: str, model: type[M]) -> list[M]:
        data = await self._request("GET", url, params={"limit": _LIST_LIMIT})
        items = data.get("items", []) if isinstance(data, dict) else data or []
        return [model.model_validate(item) for item in items]

    # -- organizations -------------------------------------------------------------

    async def create_organization(self, payload: OrganizationInput) -> Organization:
        return await self._create(
            f"{self._onboarding_url}/v1/organizations", payload, Organization
        )

    async def get_organization(self, organization_id: str) -> Organization:
        return await self._get(
            f"{self._onboarding_url}/v1/organizations/{organization_id}", Organization
        )

    async def list_organizations(self) -> list[Organization]:
        return await self._list(f"{self._onboarding_url}/v1/organizations", Organization)

    # -- ledgers -------------------------------------------------------------------

    async def create_ledger(self, organization_id: str, payload: LedgerInput) -> Ledger:
        url = f"{self._onboarding_url}/v1/organizations/{organization_id}/ledgers"
        return await self._create(url, payload, Ledger)

    async def get_ledger(self, organization_id: str, ledger_id: str) -> Ledger:
        url = f"{self._onboarding_url}{self._ledger_path(organization_id, ledger_id)}"
        return await self._get(url, Ledger)

    async def list_ledgers(self, organization_id: str) -> list[Ledger]:
        url = f"{self._onboarding_url}/v1/organizations/{organization_id}/ledgers"
        return await self._list(url, Ledger)

    # -- ledger children -----------------------------------------------------------

    def _child_url(self, organization_id: str, ledger_id: str, collection: str) -> str:
        return f"{self._onboarding_url}{self._ledger_path(organization_id, ledger_id)}/{collection}"

    async def create_asset(self, organization_id: str, ledger_id: str, payload: AssetInput) -> Asset:
        return await self._create(self._child_url(organization_id, ledger_id, "assets"), payload, Asset)

    async def get_asset(self, organization_id: str, ledger_id: str, asset_id: str) -> Asset:
        url = f"{self._child_url(organization_id, ledger_id, 'assets')}/{asset_id}"
        return await self._get(url, Asset)

    async def list_assets(self, organization_id: str, ledger_id: str) -> list[Asset]:
        return await self._list(self._child_url(organization_id, ledger_id, "assets"), Asset)

    async def create_portfolio(
        self, organization_id: str, ledger_id: str, payload: PortfolioInput
    ) -> Portfolio:
        url = self._child_url(organization_id, ledger_id, "portfolios")
        return await self._create(url, payload, Portfolio)

    async def get_portfolio(
        self, organization_id: str, ledger_id: str, portfolio_id: str
    ) -> Portfolio:
        url = f"{self._child_url(organization_id, ledger_id, 'portfolios')}/{portfolio_id}"
        return await self._get(url, Portfolio)

    async def list_portfolios(self, organization_id: str, ledger_id: str) -> list[Portfolio]:
        return await self._list(self._child_url(organization_id, ledger_id, "portfolios"), Portfolio)

    async def create_segment(
        self, organization_id: str, ledger_id: str, payload: SegmentInput
    ) -> Segment:
        url = self._child_url(organization_id, ledger_id, "segments")
        return await self._create(url, payload, Segment)

    async def get_segment(self, organization_id: str, ledger_id: str, segment_id: str) -> Segment:
        url = f"{self._child_url(organization_id, ledger_id, 'segments')}/{segment_id}"
        return await self._get(url, Segment)

    async def list_segments(self, organization_id: str, ledger_id: str) -> list[Segment]:
        return await self._list(self._child_url(organization_id, ledger_id, "segments"), Segment)

    async def create_account(
        self, organization_id: str, ledger_id: str, payload: AccountInput
    ) -> Account:
        url = self._child_url(organization_id, ledger_id, "accounts")
        return await self._create(url, payload, Account)

    async def get_account(self, organization_id: str, ledger_id: str, account_id: str) -> Account:
        url = f"{self._child_url(organization_id, ledger_id, 'accounts')}/{account_id}"
        return await self._get(url, Account)

    async def list_accounts(self, organization_id: str, ledger_id: str) -> list[Account]:
        return await self._list(self._child_url(organization_id, ledger_id, "accounts"), Account)

    # -- transactions --------------------------------------------------------------

    def _transactions_url(self, organization_id: str, ledger_id: str) -> str:
        return f"{self._transaction_url}{self._ledger_path(organization_id, ledger_id)}/transactions"

    async def create_transaction(
        self,
        organization_id: str,
        ledger_id: str,
        payload: TransactionInput,
        idempotency_key: str | None = None,
    ) -> Transaction:
        url = f"{self._transactions_url(organization_id, ledger_id)}/json"
        headers = {"Idempotency-Key": idempotency_key or str(uuid.uuid4())}
        data = await self._request("POST", url, json=payload.to_payload(), headers=headers)
        return Transaction.model_validate(data)

    async def get_transaction(
        self, organization_id: str, ledger_id: str, transaction_id: str
    ) -> Transaction:
        url = f"{self._transactions_url(organization_id, ledger_id)}/{transaction_id}"
        return await self._get(url, Transaction)

    async def list_transactions(self, organization_id: str, ledger_id: str) -> list[Transaction]:
        return await self._list(self._transactions_url(organization_id, ledger_id), Transaction)


__all__ = ["HttpLedgerApi"]
