"""Asset generator."""

from __future__ import annotations

from typing import Any

from ledger_demo.config import constants
from ledger_demo.generators.base import BaseGenerator
from ledger_demo.models import Asset, AssetInput
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="generators")


class AssetGenerator(BaseGenerator[Asset]):
    """Creates assets from a fixed catalogue, never repeating a code within a ledger."""

    entity_type = "asset"

    def pick_codes(self, ledger_id: str, count: int) -> list[tuple[str, str, str]]:
        taken = set(self.registry.get_asset_codes(ledger_id))
        available = [entry for entry in constants.ASSET_CATALOGUE if entry[0] not in taken]
        if count > len(available):
            logger.warning(
                f"Only {len(available)} unused asset codes left for ledger {ledger_id}, "
                f"{count} requested",
                ledger_id=ledger_id,
            )
        return available[:count]

    async def generate(
        self, count: int, parent_id: str | None = None, organization_id: str | None = None
    ) -> list[Asset]:
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)
        picks = self.pick_codes(ledger_id, count)
        logger.info(
            f"Generating {len(picks)} assets for ledger {ledger_id}",
            entity_type=self.entity_type,
            ledger_id=ledger_id,
        )
        return await self.generate_batched(
            len(picks),
            ledger_id,
            lambda index: self.generate_one(ledger_id, org_id, catalogue_entry=picks[index]),
        )

    async def generate_one(
        self,
        parent_id: str | None = None,
        organization_id: str | None = None,
        **options: Any,
    ) -> Asset:
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)
        payload = options.get("payload")
        if payload is None:
            entry = options.get("catalogue_entry")
            if entry is None:
                picks = self.pick_codes(ledger_id, 1)
                entry = picks[0] if picks else constants.ASSET_CATALOGUE[0]
            code, name, asset_type = entry
            payload = self.data.asset(code, name, asset_type)
        payload = self.validate_data(AssetInput, payload)

        async def find_existing() -> Asset | None:
            cached = self.cached(payload.code, ledger_id)
            if cached is not None:
                return cached
            for asset in await self.client.list_assets(org_id, ledger_id):
                if asset.code == payload.code:
                    return asset
            return None

        return await self.create_entity(
            payload=payload,
            name=payload.code,
            parent_id=ledger_id,
            create=lambda: self.client.create_asset(org_id, ledger_id, payload),
            find_existing=find_existing,
            register=lambda asset: self._register(ledger_id, asset),
        )

    async def exists(
        self, entity_id: str, parent_id: str | None = None, organization_id: str | None = None
    ) -> bool:
        org_id = self.get_organization_id(organization_id)
        if org_id is None or parent_id is None:
            return False
        try:
            await self.client.get_asset(org_id, parent_id, entity_id)
        except Exception:
            return False
        return True

    def _register(self, ledger_id: str, asset: Asset) -> None:
        if asset.id not in self.registry.get_asset_ids(ledger_id):
            self.registry.add_asset_id(ledger_id, asset.id, asset.code)


__all__ = ["AssetGenerator"]
