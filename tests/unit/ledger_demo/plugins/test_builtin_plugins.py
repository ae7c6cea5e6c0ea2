from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_demo.models import Asset, AssetInput, OperationInput, OperationType, TransactionInput
from ledger_demo.plugins import (
    CachePlugin,
    FieldRule,
    HookPoint,
    MetricsPlugin,
    PluginContext,
    PluginManager,
    ValidationPlugin,
)
from ledger_demo.state import StateRegistry


def _transfer(debit: str, credit: str) -> TransactionInput:
    return TransactionInput.model_construct(
        operations=[
            OperationInput(
                account_alias="a", type=OperationType.DEBIT, amount=Decimal(debit), asset_code="USD"
            ),
            OperationInput(
                account_alias="b", type=OperationType.CREDIT, amount=Decimal(credit), asset_code="USD"
            ),
        ],
        metadata={},
    )


class TestValidationPlugin:
    def test_asset_code_pattern(self) -> None:
        plugin = ValidationPlugin()
        assert plugin.validate("asset", {"name": "Dollar", "code": "USD", "type": "currency"}) == []
        assert plugin.validate("asset", {"name": "Dollar", "code": "usd", "type": "currency"}) == [
            "asset code must match ^[A-Z]{3,10}$"
        ]

    def test_accepts_pydantic_models(self) -> None:
        payload = AssetInput(name="Bitcoin", type="crypto", code="BTC")
        assert ValidationPlugin().validate("asset", payload) == []

    def test_transaction_rules(self) -> None:
        plugin = ValidationPlugin()
        assert plugin.validate("transaction", _transfer("10.00", "10.00")) == []
        assert plugin.validate("transaction", _transfer("10.00", "9.99")) == [
            "transaction debits and credits must balance"
        ]
        assert "transaction needs at least 2 operations" in plugin.validate(
            "transaction", {"operations": [{"type": "DEBIT", "amount": "1"}]}
        )

    def test_non_mapping_payload_is_a_violation(self) -> None:
        assert ValidationPlugin().validate("ledger", ["not", "a", "mapping"]) == [
            "ledger payload is not a mapping"
        ]

    def test_custom_rule(self) -> None:
        plugin = ValidationPlugin()
        plugin.add_rule("ledger", FieldRule("name", "ledger name must mention Ledger", check=lambda v: "Ledger" in v))
        assert plugin.validate("ledger", {"name": "Treasury"}) == ["ledger name must mention Ledger"]

    async def test_violations_are_advisory(self) -> None:
        manager = PluginManager()
        plugin = ValidationPlugin()
        manager.register(plugin)

        await manager.dispatch(
            HookPoint.BEFORE_ENTITY_GENERATION, "asset", {"name": "x", "code": "x1", "type": "currency"}, "ldg-1"
        )

        assert plugin.stats() == {"validated": {"asset": 1}, "failed": {"asset": 1}}
        assert manager.hook_errors == {}


class TestCachePlugin:
    @pytest.fixture
    def cache(self, fake_clock) -> CachePlugin:
        plugin = CachePlugin(max_size=10, ttl=60.0)
        plugin._clock = fake_clock
        return plugin

    async def test_caches_by_id_and_unique_field(self, cache: CachePlugin) -> None:
        asset = Asset(id="ast-1", name="Bitcoin", code="BTC")
        await cache.after_entity_generation("asset", asset, "ldg-1")

        assert cache.get("asset", "ast-1", "ldg-1") is asset
        assert cache.get("asset", "BTC", "ldg-1") is asset
        assert cache.get("asset", "BTC", "ldg-2") is None
        assert cache.stats()["hits"] == 2

    def test_entries_expire_after_ttl(self, cache: CachePlugin, fake_clock) -> None:
        cache.set("ledger", "Treasury", "value", "org-1")
        fake_clock.advance(61.0)

        assert cache.get("ledger", "Treasury", "org-1") is None
        assert len(cache) == 0

    def test_full_cache_evicts_least_hit_tenth(self, cache: CachePlugin, fake_clock) -> None:
        for index in range(10):
            cache.set("segment", f"s{index}", index)
            fake_clock.advance(1.0)
        for index in range(1, 10):
            cache.get("segment", f"s{index}")

        cache.set("segment", "new", "fresh")

        assert len(cache) == 10
        assert cache.get("segment", "s0") is None
        assert cache.get("segment", "new") == "fresh"
        assert cache.stats()["evictions"] == 1

    async def test_restore_clears_cache(self, cache: CachePlugin) -> None:
        cache.set("asset", "BTC", "value", "ldg-1")
        await cache.on_restore(object())
        assert len(cache) == 0

    async def test_new_run_starts_with_empty_cache(
        self, cache: CachePlugin, fake_clock, settings
    ) -> None:
        manager = PluginManager()
        manager.register(cache)
        await manager.initialize(
            PluginContext(settings=settings, registry=StateRegistry(clock=fake_clock), clock=fake_clock)
        )
        await manager.dispatch(
            HookPoint.AFTER_ENTITY_GENERATION,
            "asset",
            Asset(id="ast-1", name="Bitcoin", code="BTC"),
            "ldg-1",
        )
        assert cache.get("asset", "BTC", "ldg-1") is not None

        await manager.dispatch(HookPoint.BEFORE_GENERATION, {"volume": "small"})

        assert len(cache) == 0
        assert cache.get("asset", "BTC", "ldg-1") is None

    def test_disabled_cache_never_hits(self, cache: CachePlugin) -> None:
        cache.set("asset", "BTC", "value")
        cache.enabled = False
        assert cache.get("asset", "BTC") is None


class TestMetricsPlugin:
    async def test_counts_and_phase_durations(self, settings, fake_clock) -> None:
        plugin = MetricsPlugin()
        await plugin.initialize(
            PluginContext(settings=settings, registry=StateRegistry(clock=fake_clock), clock=fake_clock)
        )

        await plugin.before_generation({})
        await plugin.on_state_change("accounts", {"status": "started"})
        fake_clock.advance(2.5)
        await plugin.on_state_change("accounts", {"status": "completed"})
        await plugin.after_entity_generation("account", object(), "ldg-1")
        await plugin.after_entity_generation("account", object(), "ldg-1")
        await plugin.on_entity_error("account", RuntimeError("x"), "ldg-1")
        await plugin.on_memory_warning(12, 10)
        await plugin.after_generation({})

        summary = plugin.summary()
        assert summary["created"] == {"account": 2}
        assert summary["failed"] == {"account": 1}
        assert summary["phase_durations"] == {"accounts": 2.5}
        assert summary["memory_warnings"] == 1
        assert summary["run_duration"] == pytest.approx(2.5)
