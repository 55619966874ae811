"""Pytest configuration and fixtures for neo-webhooks tests."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from neo_webhooks.config import WebhookSettings
from neo_webhooks.core.value_objects import SubscriptionId
from neo_webhooks.features.webhooks.adapters import (
    HttpDeliveryAdapter,
    InMemoryFailureCounter,
    InMemorySubscriptionCache,
)
from neo_webhooks.features.webhooks.entities import EventEnvelope, Subscription
from neo_webhooks.features.webhooks.module import WebhookPlatform
from neo_webhooks.features.webhooks.repositories import (
    InMemoryRetryQueue,
    InMemorySubscriptionRepository,
)
from neo_webhooks.features.webhooks.services import (
    DispatchService,
    FailureTrackerService,
    RetrySchedulerService,
    SubscriptionRegistryService,
)
from neo_webhooks.utils import SecretEncryption


TENANT_ID = "tenant-1"
HOOK_URL = "https://hooks.example.com/orders"
OTHER_HOOK_URL = "https://hooks.example.com/inventory"
SECRET = "whsec_test_secret"
ENCRYPTION_KEY = "test-encryption-key"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now


class ScriptedTransport:
    """httpx transport handler replaying scripted outcomes per URL.

    An outcome is an HTTP status code, ``"timeout"`` or ``"connect_error"``.
    Unscripted requests get ``default``. Every request is recorded.
    """

    def __init__(self, default=200):
        self.default = default
        self.requests: List[httpx.Request] = []
        self._scripts: Dict[str, List] = {}

    def script(self, url: str, *outcomes) -> None:
        self._scripts.setdefault(url, []).extend(outcomes)

    def requests_to(self, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._scripts.get(str(request.url))
        outcome = queue.pop(0) if queue else self.default
        if outcome == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if outcome == "connect_error":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(outcome, request=request)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return WebhookSettings(
        _env_file=None,
        database_url=None,
        redis_url=None,
        retry_poll_interval_seconds=0.01,
        http_timeout_ms=2000,
    )


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest_asyncio.fixture
async def http_client(transport):
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    yield client
    await client.aclose()


@pytest.fixture
def subscription_repository():
    return InMemorySubscriptionRepository()


@pytest.fixture
def retry_queue():
    return InMemoryRetryQueue()


@pytest.fixture
def subscription_cache(clock):
    return InMemorySubscriptionCache(clock)


@pytest.fixture
def failure_counter(clock):
    return InMemoryFailureCounter(clock)


@pytest.fixture
def registry(subscription_repository, subscription_cache, clock):
    return SubscriptionRegistryService(
        repository=subscription_repository,
        cache=subscription_cache,
        cache_ttl_seconds=3600,
        clock=clock,
    )


@pytest.fixture
def failure_tracker(failure_counter, registry):
    return FailureTrackerService(failure_counter, registry, threshold=3, window_seconds=3600)


@pytest.fixture
def delivery_adapter(http_client):
    return HttpDeliveryAdapter(http_client, timeout_seconds=2.0)


@pytest.fixture
def retry_scheduler(retry_queue, registry, failure_tracker, delivery_adapter, clock):
    return RetrySchedulerService(
        queue=retry_queue,
        registry=registry,
        failure_tracker=failure_tracker,
        delivery_adapter=delivery_adapter,
        clock=clock,
        max_attempts=5,
        base_delay_ms=1000,
        poll_interval_seconds=0.01,
        worker_id="worker-test",
    )


@pytest.fixture
def dispatch_service(registry, failure_tracker, delivery_adapter, retry_scheduler, clock):
    return DispatchService(registry, failure_tracker, delivery_adapter, retry_scheduler, clock)


@pytest.fixture
def platform(settings, subscription_repository, retry_queue, subscription_cache, failure_counter, http_client, clock):
    return WebhookPlatform(
        settings=settings,
        subscription_repository=subscription_repository,
        retry_queue=retry_queue,
        cache=subscription_cache,
        failure_counter=failure_counter,
        http_client=http_client,
        clock=clock,
    )


@pytest.fixture
def make_subscription():
    """Factory for valid subscriptions."""
    def _make(**overrides) -> Subscription:
        data = {
            "id": SubscriptionId.generate(),
            "tenant_id": TENANT_ID,
            "url": HOOK_URL,
            "secret": SECRET,
            "event_types": ["order.created"],
        }
        data.update(overrides)
        return Subscription(**data)
    return _make


@pytest.fixture
def sample_envelope(clock):
    return EventEnvelope.create("order.created", TENANT_ID, {"order_id": 42}, now=clock.now())


@pytest.fixture
def mock_database():
    """Mock DatabaseManager for repository tests."""
    mock_db = AsyncMock()
    mock_db.fetchrow = AsyncMock()
    mock_db.fetch = AsyncMock()
    mock_db.fetchval = AsyncMock()
    mock_db.execute = AsyncMock()
    return mock_db


@pytest.fixture
def secret_encryption():
    return SecretEncryption(ENCRYPTION_KEY)
