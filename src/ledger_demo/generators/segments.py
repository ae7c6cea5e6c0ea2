"""Segment generator."""

from __future__ import annotations

from typing import Any

from ledger_demo.generators.base import BaseGenerator
from ledger_demo.models import Segment, SegmentInput


class SegmentGenerator(BaseGenerator[Segment]):
    entity_type = "segment"

    async def generate(
        self, count: int, parent_id: str | None = None, organization_id: str | None = None
    ) -> list[Segment]:
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)
        return await self.generate_batched(
            count, ledger_id, lambda _index: self.generate_one(ledger_id, org_id)
        )

    async def generate_one(
        self,
        parent_id: str | None = None,
        organization_id: str | None = None,
        **options: Any,
    ) -> Segment:
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)
        payload = self.validate_data(
            SegmentInput, options.get("payload") or self.data.segment()
        )

        async def find_existing() -> Segment | None:
            cached = self.cached(payload.name, ledger_id)
            if cached is not None:
                return cached
            for segment in await self.client.list_segments(org_id, ledger_id):
                if segment.name == payload.name:
                    return segment
            return None

        return await self.create_entity(
            payload=payload,
            name=payload.name,
            parent_id=ledger_id,
            create=lambda: self.client.create_segment(org_id, ledger_id, payload),
            find_existing=find_existing,
            register=lambda segment: self._register(ledger_id, segment),
        )

    async def exists(
        self, entity_id: str, parent_id: str | None = None, organization_id: str | None = None
    ) -> bool:
        org_id = self.get_organization_id(organization_id)
        if org_id is None or parent_id is None:
            return False
        try:
            await self.client.get_segment(org_id, parent_id, entity_id)
        except Exception:
            return False
        return True

    def _register(self, ledger_id: str, segment: Segment) -> None:
        if segment.id not in self.registry.get_segment_ids(ledger_id):
            self.registry.add_segment_id(ledger_id, segment.id)


__all__ = ["SegmentGenerator"]
