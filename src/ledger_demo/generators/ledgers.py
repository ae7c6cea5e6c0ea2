"""Ledger generator."""

from __future__ import annotations

from typing import Any

from ledger_demo.generators.base import BaseGenerator
from ledger_demo.models import Ledger, LedgerInput
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="generators")


class LedgerGenerator(BaseGenerator[Ledger]):
    entity_type = "ledger"

    async def generate(
        self, count: int, parent_id: str | None = None, organization_id: str | None = None
    ) -> list[Ledger]:
        org_id = self.resolve_organization_id(parent_id or organization_id)
        logger.info(
            f"Generating {count} ledgers for organization {org_id}",
            entity_type=self.entity_type,
            organization_id=org_id,
        )
        return await self.generate_batched(
            count, org_id, lambda _index: self.generate_one(org_id, org_id)
        )

    async def generate_one(
        self,
        parent_id: str | None = None,
        organization_id: str | None = None,
        **options: Any,
    ) -> Ledger:
        org_id = self.resolve_organization_id(parent_id or organization_id)
        payload = self.validate_data(LedgerInput, options.get("payload") or self.data.ledger())

        async def find_existing() -> Ledger | None:
            cached = self.cached(payload.name, org_id)
            if cached is not None:
                return cached
            for ledger in await self.client.list_ledgers(org_id):
                if ledger.name == payload.name:
                    return ledger
            return None

        return await self.create_entity(
            payload=payload,
            name=payload.name,
            parent_id=org_id,
            create=lambda: self.client.create_ledger(org_id, payload),
            find_existing=find_existing,
            register=lambda ledger: self._register(org_id, ledger),
        )

    async def exists(
        self, entity_id: str, parent_id: str | None = None, organization_id: str | None = None
    ) -> bool:
        org_id = self.get_organization_id(parent_id or organization_id)
        if org_id is None:
            return False
        try:
            await self.client.get_ledger(org_id, entity_id)
        except Exception:
            return False
        return True

    def _register(self, organization_id: str, ledger: Ledger) -> None:
        if ledger.id not in self.registry.get_ledger_ids(organization_id):
            self.registry.add_ledger_id(organization_id, ledger.id)


__all__ = ["LedgerGenerator"]
