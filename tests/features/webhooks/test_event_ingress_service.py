"""Tests for event ingress."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from neo_webhooks.core.exceptions import EventValidationError
from neo_webhooks.features.webhooks.entities import DispatchSummary
from neo_webhooks.features.webhooks.services import EventIngressService


class TestEventIngressService:
    """Test non-blocking event intake."""

    @pytest.fixture
    def dispatch(self):
        mock_dispatch = AsyncMock()
        mock_dispatch.dispatch.return_value = DispatchSummary()
        return mock_dispatch

    @pytest.mark.asyncio
    async def test_raise_event_returns_before_dispatch(self, dispatch):
        """Test raise_event only enqueues; dispatch happens on a worker."""
        ingress = EventIngressService(dispatch, worker_count=1)

        result = ingress.raise_event("tenant-1", "order.created", {"id": 1})

        assert result is None
        assert ingress.pending == 1
        dispatch.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_workers_dispatch_events(self, dispatch):
        ingress = EventIngressService(dispatch, worker_count=2)
        await ingress.start()

        ingress.raise_event("tenant-1", "order.created", {"id": 1})
        ingress.raise_event("tenant-1", "order.updated", {"id": 2})
        await ingress.join()
        await ingress.stop()

        assert dispatch.dispatch.await_count == 2
        dispatch.dispatch.assert_any_await("tenant-1", "order.created", {"id": 1})
        dispatch.dispatch.assert_any_await("tenant-1", "order.updated", {"id": 2})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tenant_id,event_type,payload", [
        ("", "order.created", {}),
        ("tenant-1", "", {}),
        ("tenant-1", "OrderCreated", {}),
        ("tenant-1", "order.created", {"bad": object()}),
        ("tenant-1", "order.created", {"total": float("nan")}),
    ])
    async def test_invalid_events_rejected(self, dispatch, tenant_id, event_type, payload):
        ingress = EventIngressService(dispatch)

        with pytest.raises(EventValidationError):
            ingress.raise_event(tenant_id, event_type, payload)
        assert ingress.pending == 0

    @pytest.mark.asyncio
    async def test_payload_is_snapshotted(self, dispatch):
        """Test mutating the payload after raise_event does not change the delivery."""
        ingress = EventIngressService(dispatch, worker_count=1)
        payload = {"items": [1, 2]}

        ingress.raise_event("tenant-1", "order.created", payload)
        payload["items"].append(3)
        await ingress.start()
        await ingress.join()
        await ingress.stop()

        dispatch.dispatch.assert_awaited_once_with("tenant-1", "order.created", {"items": [1, 2]})

    @pytest.mark.asyncio
    async def test_full_queue_drops_event(self, dispatch):
        ingress = EventIngressService(dispatch, worker_count=1, max_pending_events=1)

        ingress.raise_event("tenant-1", "order.created", {})
        ingress.raise_event("tenant-1", "order.created", {})

        assert ingress.pending == 1

    @pytest.mark.asyncio
    async def test_worker_survives_dispatch_errors(self, dispatch):
        dispatch.dispatch.side_effect = [RuntimeError("boom"), DispatchSummary()]
        ingress = EventIngressService(dispatch, worker_count=1)
        await ingress.start()

        ingress.raise_event("tenant-1", "order.created", {})
        ingress.raise_event("tenant-1", "order.created", {})
        await ingress.join()

        assert ingress.is_running
        assert dispatch.dispatch.await_count == 2
        await ingress.stop()

    @pytest.mark.asyncio
    async def test_stop_drains_pending_events(self, dispatch):
        async def slow_dispatch(*args):
            await asyncio.sleep(0.01)
            return DispatchSummary()

        dispatch.dispatch.side_effect = slow_dispatch
        ingress = EventIngressService(dispatch, worker_count=1)
        await ingress.start()
        for index in range(3):
            ingress.raise_event("tenant-1", "order.created", {"n": index})

        await ingress.stop(drain_timeout=5)

        assert dispatch.dispatch.await_count == 3
        assert not ingress.is_running

    @pytest.mark.asyncio
    async def test_stop_with_drain_timeout(self, dispatch):
        async def hanging_dispatch(*args):
            await asyncio.sleep(10)

        dispatch.dispatch.side_effect = hanging_dispatch
        ingress = EventIngressService(dispatch, worker_count=1)
        await ingress.start()
        ingress.raise_event("tenant-1", "order.created", {})
        ingress.raise_event("tenant-1", "order.created", {})

        await ingress.stop(drain_timeout=0.05)

        assert not ingress.is_running

    def test_invalid_worker_count(self, dispatch):
        with pytest.raises(ValueError):
            EventIngressService(dispatch, worker_count=0)
