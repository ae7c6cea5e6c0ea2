"""Account generator.

Accounts are the highest-volume onboarding entity, so besides the batched
driver shared with the other generators this one can fan out through a
bounded worker pool.
"""

from __future__ import annotations

from typing import Any

from ledger_demo.config import constants
from ledger_demo.generators.base import BaseGenerator
from ledger_demo.models import Account, AccountInput
from ledger_demo.utilities.async_utils import worker_pool
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="generators")


class AccountGenerator(BaseGenerator[Account]):
    entity_type = "account"

    def account_concurrency(self, count: int) -> int:
        return max(1, min(self.settings.max_concurrency // 2, constants.MAX_ACCOUNT_CONCURRENCY, count))

    async def generate(
        self,
        count: int,
        parent_id: str | None = None,
        organization_id: str | None = None,
        *,
        concurrent: bool | None = None,
        continue_on_error: bool = True,
    ) -> list[Account]:
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)

        asset_codes = self.registry.get_asset_codes(ledger_id)
        if not asset_codes:
            logger.warning(
                f"No assets registered for ledger {ledger_id}; skipping account generation",
                entity_type=self.entity_type,
                ledger_id=ledger_id,
            )
            return []
        if count <= 0:
            return []

        portfolios = self.registry.get_portfolio_ids(ledger_id)
        segments = self.registry.get_segment_ids(ledger_id)
        payloads = [
            self.data.account(
                asset_codes[i % len(asset_codes)],
                portfolio_id=portfolios[i % len(portfolios)] if portfolios else None,
                segment_id=segments[i % len(segments)] if segments else None,
            )
            for i in range(count)
        ]

        use_pool = concurrent if concurrent is not None else self.settings.max_concurrency > 1
        logger.info(
            f"Generating {count} accounts for ledger {ledger_id} across "
            f"{len(asset_codes)} assets ({'concurrent' if use_pool else 'batched'})",
            entity_type=self.entity_type,
            ledger_id=ledger_id,
        )
        if not use_pool:
            return await self.generate_batched(
                count,
                ledger_id,
                lambda index: self.generate_one(ledger_id, org_id, payload=payloads[index]),
            )
        return await self._generate_concurrently(org_id, ledger_id, payloads, continue_on_error)

    async def _generate_concurrently(
        self,
        organization_id: str,
        ledger_id: str,
        payloads: list[AccountInput],
        continue_on_error: bool,
    ) -> list[Account]:
        progress = self.create_progress(len(payloads))
        progress.start()

        async def worker(payload: AccountInput, index: int) -> Account:
            try:
                return await self.generate_one(ledger_id, organization_id, payload=payload)
            except Exception as exc:
                await self.track_error(exc, ledger_id, {"index": index, "alias": payload.alias})
                raise

        try:
            outcome = await worker_pool(
                payloads,
                worker,
                concurrency=self.account_concurrency(len(payloads)),
                preserve_order=True,
                continue_on_error=continue_on_error,
                on_success=lambda _account, _payload, _index: progress.report_item_completed(),
                on_error=lambda exc, _payload, _index: progress.report_item_failed(exc),
            )
        finally:
            progress.stop()
        return outcome.results

    async def generate_one(
        self,
        parent_id: str | None = None,
        organization_id: str | None = None,
        **options: Any,
    ) -> Account:
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)
        payload = options.get("payload")
        if payload is None:
            codes = self.registry.get_asset_codes(ledger_id)
            payload = self.data.account(codes[0] if codes else constants.DEFAULT_ASSET_CODE)
        payload = self.validate_data(AccountInput, payload)

        async def find_existing() -> Account | None:
            cached = self.cached(payload.alias, ledger_id)
            if cached is not None:
                return cached
            for account in await self.client.list_accounts(org_id, ledger_id):
                if account.alias == payload.alias:
                    return account
            return None

        return await self.create_entity(
            payload=payload,
            name=payload.alias,
            parent_id=ledger_id,
            create=lambda: self.client.create_account(org_id, ledger_id, payload),
            find_existing=find_existing,
            register=lambda account: self._register(ledger_id, account),
        )

    async def exists(
        self, entity_id: str, parent_id: str | None = None, organization_id: str | None = None
    ) -> bool:
        org_id = self.get_organization_id(organization_id)
        if org_id is None or parent_id is None:
            return False
        try:
            await self.client.get_account(org_id, parent_id, entity_id)
        except Exception:
            return False
        return True

    def _register(self, ledger_id: str, account: Account) -> None:
        if account.id not in self.registry.get_account_ids(ledger_id):
            self.registry.add_account_id(ledger_id, account.id, account.alias or account.id)
        self.registry.set_account_asset(ledger_id, account.id, account.asset_code)


__all__ = ["AccountGenerator"]
