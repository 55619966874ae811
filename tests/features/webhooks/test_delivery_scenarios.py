"""End-to-end delivery scenarios on the assembled platform with in-memory backends."""

import pytest

from neo_webhooks.features.webhooks.entities import CircuitState
from neo_webhooks.features.webhooks.services import EXCESSIVE_FAILURES_REASON, MAX_RETRIES_REASON
from neo_webhooks.features.webhooks.utils import verify


HOOK_URL = "https://hooks.example.com/orders"
OTHER_HOOK_URL = "https://hooks.example.com/inventory"


async def drain_due_retries(platform, clock, delay_seconds):
    clock.advance(delay_seconds)
    return await platform.retry_scheduler.drain_once()


@pytest.mark.scenario
class TestDeliveryScenarios:
    """Delivery, retry and circuit breaker behaviour across the whole pipeline."""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self, platform, transport, clock):
        """Test a 200 updates lastTriggeredAt, clears lastError and queues nothing."""
        subscription = await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        await platform.registry.record_outcome(subscription.id, False, "HTTP 500")

        summary = await platform.dispatch_service.dispatch("tenant-1", "order.created", {"id": 1})

        assert summary.delivered == 1
        stored = await platform.registry.get(subscription.id)
        assert stored.last_triggered_at == clock.now()
        assert stored.last_error is None
        assert await platform.retry_queue.count() == 0

    @pytest.mark.asyncio
    async def test_three_failures_trip_breaker(self, platform, transport, clock):
        """Test three 500s deactivate the subscription and a fourth event makes no attempt."""
        subscription = await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        transport.default = 500

        for _ in range(3):
            await platform.dispatch_service.dispatch("tenant-1", "order.created", {})
        stored = await platform.registry.get(subscription.id)
        assert stored.active is False
        assert stored.last_error == EXCESSIVE_FAILURES_REASON
        assert len(transport.requests) == 3

        summary = await platform.dispatch_service.dispatch("tenant-1", "order.created", {})

        assert summary.matched == 0
        assert len(transport.requests) == 3

        # Retries queued before the trip are dropped without an attempt
        await drain_due_retries(platform, clock, 60)
        assert len(transport.requests) == 3
        assert await platform.retry_queue.count() == 0

    @pytest.mark.asyncio
    async def test_recovers_on_fifth_attempt(self, platform, transport, clock, failure_counter):
        """Test timeouts on attempts 1-4 then 200 on attempt 5."""
        subscription = await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        transport.script(HOOK_URL, "timeout", "timeout", "timeout", "timeout", 200)

        summary = await platform.dispatch_service.dispatch("tenant-1", "order.created", {"id": 9})
        assert summary.queued == 1

        for delay in (1, 2, 4, 8):
            assert await drain_due_retries(platform, clock, delay) == 1

        assert len(transport.requests) == 5
        assert await platform.retry_queue.count() == 0
        assert await failure_counter.get(subscription.id) == 0
        assert await platform.failure_tracker.get_state(subscription.id) is CircuitState.HEALTHY
        stored = await platform.registry.get(subscription.id)
        assert stored.active is True
        assert stored.last_error is None
        assert stored.consecutive_retry_count == 0

    @pytest.mark.asyncio
    async def test_exhausted_after_five_timeouts(self, platform, transport, clock):
        """Test five timeouts drop the envelope and deactivate the subscription."""
        subscription = await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        transport.default = "timeout"

        await platform.dispatch_service.dispatch("tenant-1", "order.created", {})
        for delay in (1, 2, 4, 8):
            await drain_due_retries(platform, clock, delay)

        assert len(transport.requests) == 5
        assert await platform.retry_queue.count() == 0
        stored = await platform.registry.get(subscription.id)
        assert stored.active is False
        assert stored.last_error == MAX_RETRIES_REASON

        # Nothing left to redeliver
        assert await drain_due_retries(platform, clock, 3600) == 0
        assert len(transport.requests) == 5


@pytest.mark.scenario
class TestDeliveryProperties:
    """Properties that hold for any delivery."""

    @pytest.mark.asyncio
    async def test_every_active_match_gets_an_attempt(self, platform, transport):
        urls = [f"https://hooks.example.com/hook-{index}" for index in range(5)]
        for url in urls:
            await platform.registry.register("tenant-1", url, "s", ["order.created", "order.updated"])
        inactive = await platform.registry.register("tenant-1", OTHER_HOOK_URL, "s", ["order.created"])
        await platform.registry.deactivate(inactive.id, "manual")

        await platform.dispatch_service.dispatch("tenant-1", "order.created", {})

        assert sorted(str(r.url) for r in transport.requests) == sorted(urls)

    @pytest.mark.asyncio
    async def test_backoff_doubles_between_attempts(self, platform, transport, clock):
        subscription = await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        transport.default = 500

        await platform.dispatch_service.dispatch("tenant-1", "order.created", {})
        gaps = []
        for _ in range(4):
            (item,) = await platform.retry_queue.list_for_subscription(subscription.id)
            gap = (item.next_retry_at - clock.now()).total_seconds()
            gaps.append(gap)
            await drain_due_retries(platform, clock, gap)

        assert gaps == [1, 2, 4, 8]

    @pytest.mark.asyncio
    async def test_single_success_resets_failures(self, platform, transport, clock):
        subscription = await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        transport.script(HOOK_URL, 500, 500, 200, 500, 500)

        for _ in range(5):
            await platform.dispatch_service.dispatch("tenant-1", "order.created", {})

        stored = await platform.registry.get(subscription.id)
        assert stored.active is True
        assert stored.consecutive_retry_count == 2

    @pytest.mark.asyncio
    async def test_manual_reactivation_resumes_delivery(self, platform, transport):
        subscription = await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        transport.script(HOOK_URL, 500, 500, 500)
        for _ in range(3):
            await platform.dispatch_service.dispatch("tenant-1", "order.created", {})

        await platform.registry.reactivate(subscription.id)
        summary = await platform.dispatch_service.dispatch("tenant-1", "order.created", {})

        assert summary.delivered == 1

    @pytest.mark.asyncio
    async def test_deliveries_verifiable_by_receiver(self, platform, transport):
        await platform.registry.register("tenant-1", HOOK_URL, "receiver-secret", ["order.created"])

        await platform.dispatch_service.dispatch("tenant-1", "order.created", {"total": 12.5})

        request = transport.requests[0]
        assert verify(request.headers["x-webhook-signature"], request.content, "receiver-secret")

    @pytest.mark.asyncio
    async def test_binary_secret_deliveries_verifiable(self, platform, transport):
        secret = bytes(range(128, 160))
        await platform.registry.register("tenant-1", HOOK_URL, secret, ["order.created"])

        await platform.dispatch_service.dispatch("tenant-1", "order.created", {"id": 3})

        request = transport.requests[0]
        assert verify(request.headers["x-webhook-signature"], request.content, secret)

    @pytest.mark.asyncio
    async def test_raise_event_delivers_asynchronously(self, platform, transport):
        await platform.registry.register("tenant-1", HOOK_URL, "s", ["order.created"])
        await platform.start()
        try:
            platform.raise_event("tenant-1", "order.created", {"id": 1})
            await platform.ingress.join()
        finally:
            await platform.stop()

        assert len(transport.requests) == 1
