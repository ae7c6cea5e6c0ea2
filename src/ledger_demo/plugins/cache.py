"""Bounded TTL cache of entities created during the run."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ledger_demo.plugins.base import Plugin, PluginContext
from ledger_demo.utilities.logging_patterns import get_logger
from ledger_demo.utilities.time_provider import SystemClock, TimeProvider

logger = get_logger(__name__, component="cache_plugin")

# Field that identifies an entity besides its ID.
UNIQUE_FIELDS: dict[str, str] = {
    "organization": "legal_name",
    "ledger": "name",
    "asset": "code",
    "portfolio": "name",
    "segment": "name",
    "account": "alias",
}

EVICTION_FRACTION = 0.1


@dataclass
class _CacheEntry:
    value: Any
    created_at: float
    hits: int = 0


def cache_key(entity_type: str, key: str, parent_id: str | None = None) -> str:
    return f"{entity_type}:{parent_id or '-'}:{key}"


class CachePlugin(Plugin):
    """Caches entities by ID and by unique field under their parent.

    When full, the least-hit (then oldest) tenth of the entries is evicted.
    Entries never outlive a run: the cache empties when a run starts or a
    checkpoint is restored.
    """

    name = "cache"
    version = "1.0.0"
    priority = 30

    def __init__(self, max_size: int = 1000, ttl: float = 300.0, enabled: bool = True) -> None:
        super().__init__(enabled)
        self.max_size = max_size
        self.ttl = ttl
        self._clock: TimeProvider = SystemClock()
        self._entries: dict[str, _CacheEntry] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    async def initialize(self, context: PluginContext) -> None:
        self._clock = context.clock

    async def teardown(self) -> None:
        self.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entity_type: str, key: str, parent_id: str | None = None) -> Any | None:
        if not self.enabled:
            return None
        full_key = cache_key(entity_type, key, parent_id)
        entry = self._entries.get(full_key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock.monotonic() - entry.created_at > self.ttl:
            del self._entries[full_key]
            self.misses += 1
            return None
        entry.hits += 1
        self.hits += 1
        return entry.value

    def set(self, entity_type: str, key: str, value: Any, parent_id: str | None = None) -> None:
        full_key = cache_key(entity_type, key, parent_id)
        if full_key not in self._entries and len(self._entries) >= self.max_size:
            self._evict()
        self._entries[full_key] = _CacheEntry(value=value, created_at=self._clock.monotonic())

    def clear(self) -> None:
        self._entries.clear()

    async def after_entity_generation(
        self, entity_type: str, entity: Any, parent_id: str | None
    ) -> None:
        entity_id = getattr(entity, "id", None)
        if entity_id:
            self.set(entity_type, str(entity_id), entity, parent_id)
        unique_field = UNIQUE_FIELDS.get(entity_type)
        unique_value = getattr(entity, unique_field, None) if unique_field else None
        if unique_value:
            self.set(entity_type, str(unique_value), entity, parent_id)

    async def before_generation(self, config: dict[str, Any]) -> None:
        self.clear()

    async def on_restore(self, checkpoint: Any) -> None:
        self.clear()

    def _evict(self) -> None:
        now = self._clock.monotonic()
        expired = [k for k, e in self._entries.items() if now - e.created_at > self.ttl]
        for key in expired:
            del self._entries[key]
        self.evictions += len(expired)
        if len(self._entries) < self.max_size:
            return

        count = max(1, math.ceil(self.max_size * EVICTION_FRACTION))
        victims = sorted(self._entries.items(), key=lambda kv: (kv[1].hits, kv[1].created_at))
        for key, _ in victims[:count]:
            del self._entries[key]
        self.evictions += count
        logger.debug(f"Evicted {count} cache entries", evicted=count)

    def stats(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }


__all__ = ["UNIQUE_FIELDS", "CachePlugin", "cache_key"]
