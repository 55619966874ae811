"""Tests for the subscription registry service."""

from unittest.mock import AsyncMock

import pytest

from neo_webhooks.core.exceptions import (
    CacheError,
    DatabaseError,
    RegistryUnavailableError,
    SubscriptionNotFoundError,
    WebhookValidationError,
)
from neo_webhooks.core.value_objects import SubscriptionId
from neo_webhooks.features.webhooks.services import SubscriptionRegistryService


HOOK_URL = "https://hooks.example.com/orders"


class TestSubscriptionRegistryService:
    """Test registry lifecycle operations and the resolve cache."""

    @pytest.mark.asyncio
    async def test_register_persists_active_subscription(self, registry, subscription_repository):
        """Test registering a subscription."""
        subscription = await registry.register(
            tenant_id="tenant-1",
            url=HOOK_URL,
            secret="s3cret",
            event_types=["order.created", "order.updated"],
            headers={"X-Key": "abc"},
        )

        assert subscription.active is True
        stored = await subscription_repository.get_by_id(subscription.id)
        assert stored is not None
        assert stored.event_types == ["order.created", "order.updated"]
        assert stored.headers == {"X-Key": "abc"}

    @pytest.mark.asyncio
    async def test_register_generates_missing_secret(self, registry):
        first = await registry.register("tenant-1", HOOK_URL, None, ["order.created"])
        second = await registry.register("tenant-1", HOOK_URL, None, ["order.created"])

        assert len(first.secret) == 64
        int(first.secret, 16)
        assert first.secret != second.secret

    @pytest.mark.asyncio
    async def test_register_binary_secret(self, registry, subscription_repository):
        secret = bytes(range(128, 160))

        subscription = await registry.register("tenant-1", HOOK_URL, secret, ["order.created"])

        assert (await subscription_repository.get_by_id(subscription.id)).secret == secret

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [
        {"url": "not a url"},
        {"secret": ""},
        {"headers": {"X-Shop": "caf\u00e9"}},
        {"event_types": []},
        {"event_types": ["Order.Created"]},
    ])
    async def test_register_rejects_invalid_input(self, registry, subscription_repository, kwargs):
        params = {
            "tenant_id": "tenant-1",
            "url": HOOK_URL,
            "secret": "s3cret",
            "event_types": ["order.created"],
        }
        params.update(kwargs)

        with pytest.raises(WebhookValidationError):
            await registry.register(**params)
        assert await subscription_repository.list_by_tenant("tenant-1") == []

    @pytest.mark.asyncio
    async def test_resolve_filters_by_tenant_and_event(self, registry):
        match = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        await registry.register("tenant-1", HOOK_URL, "s", ["order.updated"])
        await registry.register("tenant-2", HOOK_URL, "s", ["order.created"])

        resolved = await registry.resolve("tenant-1", "order.created")

        assert [s.id for s in resolved] == [match.id]

    @pytest.mark.asyncio
    async def test_resolve_populates_cache(self, registry, subscription_cache):
        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])

        await registry.resolve("tenant-1", "order.created")

        cached = await subscription_cache.get("tenant-1", "order.created")
        assert [s.id for s in cached] == [created.id]

    @pytest.mark.asyncio
    async def test_register_invalidates_cached_resolution(self, registry):
        """Test a new subscription is visible to the next resolve despite a cached entry."""
        assert await registry.resolve("tenant-1", "order.created") == []

        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])

        resolved = await registry.resolve("tenant-1", "order.created")
        assert [s.id for s in resolved] == [created.id]

    @pytest.mark.asyncio
    async def test_deactivated_subscription_never_resolved(self, registry):
        """Test deactivation purges the cached resolution."""
        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created", "order.updated"])
        await registry.resolve("tenant-1", "order.created")
        await registry.resolve("tenant-1", "order.updated")

        assert await registry.deactivate(created.id, "manual") is True

        assert await registry.resolve("tenant-1", "order.created") == []
        assert await registry.resolve("tenant-1", "order.updated") == []

    @pytest.mark.asyncio
    async def test_deactivate_is_idempotent(self, registry):
        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])

        assert await registry.deactivate(created.id, "first") is True
        assert await registry.deactivate(created.id, "second") is False

        stored = await registry.get(created.id)
        assert stored.active is False
        assert stored.last_error == "first"

    @pytest.mark.asyncio
    async def test_deactivate_unknown_subscription(self, registry):
        with pytest.raises(SubscriptionNotFoundError):
            await registry.deactivate(SubscriptionId.generate(), "reason")

    @pytest.mark.asyncio
    async def test_reactivate(self, registry):
        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        await registry.deactivate(created.id, "manual")

        reactivated = await registry.reactivate(created.id)

        assert reactivated.active is True
        assert reactivated.last_error is None
        assert [s.id for s in await registry.resolve("tenant-1", "order.created")] == [created.id]

    @pytest.mark.asyncio
    async def test_record_outcome(self, registry, clock):
        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])

        await registry.record_outcome(created.id, False, "HTTP 500")
        await registry.record_outcome(created.id, False, "HTTP 503")
        failed = await registry.get(created.id)
        assert failed.consecutive_retry_count == 2
        assert failed.last_error == "HTTP 503"

        await registry.record_outcome(created.id, True)
        healed = await registry.get(created.id)
        assert healed.consecutive_retry_count == 0
        assert healed.last_error is None
        assert healed.last_triggered_at == clock.now()

    @pytest.mark.asyncio
    async def test_record_outcome_unknown_subscription_is_ignored(self, registry):
        await registry.record_outcome(SubscriptionId.generate(), True)

    @pytest.mark.asyncio
    async def test_get_accepts_string_ids(self, registry):
        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])

        assert (await registry.get(str(created.id))).id == created.id
        with pytest.raises(WebhookValidationError):
            await registry.get("not-a-uuid")

    @pytest.mark.asyncio
    async def test_delete(self, registry):
        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        await registry.resolve("tenant-1", "order.created")

        await registry.delete(created.id)

        assert await registry.resolve("tenant-1", "order.created") == []
        with pytest.raises(SubscriptionNotFoundError):
            await registry.get(created.id)

    @pytest.mark.asyncio
    async def test_list_for_tenant_includes_inactive(self, registry):
        first = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        second = await registry.register("tenant-1", HOOK_URL, "s", ["order.updated"])
        await registry.deactivate(second.id, "manual")

        listed = await registry.list_for_tenant("tenant-1")

        assert {s.id for s in listed} == {first.id, second.id}


class TestRegistryDegradation:
    """Test registry behaviour when its backends fail."""

    @pytest.mark.asyncio
    async def test_cache_failure_falls_back_to_store(self, subscription_repository, clock):
        failing_cache = AsyncMock()
        failing_cache.get.side_effect = CacheError("redis down")
        failing_cache.set.side_effect = CacheError("redis down")
        failing_cache.invalidate.side_effect = CacheError("redis down")
        registry = SubscriptionRegistryService(subscription_repository, failing_cache, clock=clock)

        created = await registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        resolved = await registry.resolve("tenant-1", "order.created")

        assert [s.id for s in resolved] == [created.id]

    @pytest.mark.asyncio
    async def test_store_failure_raises_registry_unavailable(self, clock):
        repository = AsyncMock()
        repository.find_active.side_effect = DatabaseError("connection refused")
        registry = SubscriptionRegistryService(repository, None, clock=clock)

        with pytest.raises(RegistryUnavailableError):
            await registry.resolve("tenant-1", "order.created")

    @pytest.mark.asyncio
    async def test_cached_inactive_entries_filtered(self, subscription_repository, subscription_cache, clock, make_subscription):
        """Test a stale cache entry never yields an inactive subscription."""
        registry = SubscriptionRegistryService(subscription_repository, subscription_cache, clock=clock)
        stale = make_subscription(active=False)
        await subscription_cache.set("tenant-1", "order.created", [stale], 60)

        assert await registry.resolve("tenant-1", "order.created") == []

    @pytest.mark.asyncio
    async def test_cache_entry_expires(self, registry, subscription_repository, subscription_cache, clock, make_subscription):
        await registry.resolve("tenant-1", "order.created")
        # Written behind the registry's back, so only expiry makes it visible
        direct = make_subscription()
        await subscription_repository.save(direct)

        assert await registry.resolve("tenant-1", "order.created") == []

        clock.advance(3601)
        assert [s.id for s in await registry.resolve("tenant-1", "order.created")] == [direct.id]
