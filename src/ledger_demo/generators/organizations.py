"""Organization generator."""

from __future__ import annotations

from typing import Any

from ledger_demo.generators.base import BaseGenerator
from ledger_demo.models import Organization, OrganizationInput
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="generators")


class OrganizationGenerator(BaseGenerator[Organization]):
    entity_type = "organization"

    async def generate(
        self, count: int, parent_id: str | None = None, organization_id: str | None = None
    ) -> list[Organization]:
        logger.info(f"Generating {count} organizations", entity_type=self.entity_type)
        return await self.generate_batched(count, None, lambda _index: self.generate_one())

    async def generate_one(
        self,
        parent_id: str | None = None,
        organization_id: str | None = None,
        **options: Any,
    ) -> Organization:
        payload: OrganizationInput = options.get("payload") or self.data.organization()
        payload = self.validate_data(OrganizationInput, payload)
        name = self.generate_safe_name(payload.legal_name)

        async def find_existing() -> Organization | None:
            cached = self.cached(payload.legal_name)
            if cached is not None:
                return cached
            for org in await self.client.list_organizations():
                if org.legal_name == payload.legal_name:
                    return org
            return None

        return await self.create_entity(
            payload=payload,
            name=name,
            parent_id=None,
            create=lambda: self.client.create_organization(payload),
            find_existing=find_existing,
            register=self._register,
        )

    async def exists(
        self, entity_id: str, parent_id: str | None = None, organization_id: str | None = None
    ) -> bool:
        try:
            await self.client.get_organization(entity_id)
        except Exception:
            return False
        return True

    def _register(self, organization: Organization) -> None:
        if organization.id not in self.registry.get_organization_ids():
            self.registry.add_organization_id(organization.id)


__all__ = ["OrganizationGenerator"]
