"""Webhook platform wiring.

Builds the delivery core from settings with explicit dependency
construction: backing stores, adapters, then services. PostgreSQL and
Redis are used when configured; otherwise in-memory backends stand in,
which keeps a single process fully functional for development and tests.
"""

import logging
from typing import Any, Optional

import httpx

from ...cache import RedisClientManager
from ...config import WebhookSettings, get_settings
from ...core.exceptions import ConfigurationError
from ...database import DatabaseManager
from ...utils import SecretEncryption
from .adapters import (
    HttpDeliveryAdapter,
    InMemoryFailureCounter,
    InMemorySubscriptionCache,
    RedisFailureCounter,
    RedisSubscriptionCache,
    SystemClock,
)
from .entities.protocols import (
    Clock,
    FailureCounter,
    RetryQueueRepository,
    SubscriptionCache,
    SubscriptionRepository,
)
from .repositories import (
    InMemoryRetryQueue,
    InMemorySubscriptionRepository,
    RetryQueueDatabaseRepository,
    SubscriptionDatabaseRepository,
)
from .services import (
    DispatchService,
    EventIngressService,
    FailureTrackerService,
    RetrySchedulerService,
    SubscriptionRegistryService,
)

logger = logging.getLogger(__name__)


class WebhookPlatform:
    """The assembled delivery core and the resources it owns.

    Use ``await WebhookPlatform.create(settings)`` to connect to the
    configured backends, or pass backends explicitly to the constructor.
    """

    def __init__(
        self,
        settings: WebhookSettings,
        subscription_repository: SubscriptionRepository,
        retry_queue: RetryQueueRepository,
        cache: Optional[SubscriptionCache],
        failure_counter: FailureCounter,
        http_client: httpx.AsyncClient,
        clock: Optional[Clock] = None,
        database: Optional[DatabaseManager] = None,
        redis_manager: Optional[RedisClientManager] = None,
        owns_http_client: bool = False,
    ):
        self.settings = settings
        self.clock = clock or SystemClock()
        self._database = database
        self._redis_manager = redis_manager
        self._http_client = http_client
        self._owns_http_client = owns_http_client

        self.retry_queue = retry_queue
        self.registry = SubscriptionRegistryService(
            repository=subscription_repository,
            cache=cache,
            cache_ttl_seconds=settings.subscription_cache_ttl_seconds,
            clock=self.clock,
        )
        self.failure_tracker = FailureTrackerService(
            counter=failure_counter,
            registry=self.registry,
            threshold=settings.failure_threshold,
            window_seconds=settings.failure_window_seconds,
        )
        self.delivery_adapter = HttpDeliveryAdapter(
            client=http_client,
            timeout_seconds=settings.http_timeout_seconds,
            max_concurrent_requests=settings.outbound_concurrency_limit,
            user_agent=settings.user_agent,
        )
        self.retry_scheduler = RetrySchedulerService(
            queue=retry_queue,
            registry=self.registry,
            failure_tracker=self.failure_tracker,
            delivery_adapter=self.delivery_adapter,
            clock=self.clock,
            max_attempts=settings.max_retry_attempts,
            base_delay_ms=settings.retry_base_delay_ms,
            poll_interval_seconds=settings.retry_poll_interval_seconds,
            batch_size=settings.retry_batch_size,
            lease_seconds=settings.retry_lease_seconds,
        )
        self.dispatch_service = DispatchService(
            registry=self.registry,
            failure_tracker=self.failure_tracker,
            delivery_adapter=self.delivery_adapter,
            retry_scheduler=self.retry_scheduler,
            clock=self.clock,
        )
        self.ingress = EventIngressService(
            dispatch_service=self.dispatch_service,
            worker_count=settings.ingress_workers,
            max_pending_events=settings.ingress_max_pending,
        )

    @classmethod
    async def create(
        cls,
        settings: Optional[WebhookSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
    ) -> "WebhookPlatform":
        """Connect the configured backends and assemble the platform."""
        settings = settings or get_settings()
        clock = clock or SystemClock()

        encryption = None
        if settings.requires_secret_encryption:
            if not settings.secret_encryption_key:
                raise ConfigurationError(
                    "SECRET_ENCRYPTION_KEY must be set when DATABASE_URL or REDIS_URL is configured"
                )
            encryption = SecretEncryption(settings.secret_encryption_key)

        database = None
        if settings.is_database_enabled:
            database = DatabaseManager(
                settings.database_url,
                application_name=settings.app_name,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
            )
            await database.create_pool()
            subscription_repository = SubscriptionDatabaseRepository(database, encryption, settings.database_schema)
            retry_queue = RetryQueueDatabaseRepository(database, settings.database_schema)
            # retry_queue references subscriptions
            await subscription_repository.ensure_schema()
            await retry_queue.ensure_schema()
        else:
            logger.warning("DATABASE_URL not set; subscriptions and retries are kept in memory")
            subscription_repository = InMemorySubscriptionRepository()
            retry_queue = InMemoryRetryQueue()

        redis_manager = None
        if settings.is_cache_enabled:
            redis_manager = RedisClientManager(settings.redis_url)
            redis_client = await redis_manager.connect()
            cache = RedisSubscriptionCache(redis_client, encryption, settings.redis_key_prefix)
            failure_counter = RedisFailureCounter(redis_client, settings.redis_key_prefix)
        else:
            logger.warning("REDIS_URL not set; using in-process cache and failure counters")
            cache = InMemorySubscriptionCache(clock)
            failure_counter = InMemoryFailureCounter(clock)

        owns_http_client = http_client is None
        if owns_http_client:
            http_client = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                follow_redirects=False,
            )

        return cls(
            settings=settings,
            subscription_repository=subscription_repository,
            retry_queue=retry_queue,
            cache=cache,
            failure_counter=failure_counter,
            http_client=http_client,
            clock=clock,
            database=database,
            redis_manager=redis_manager,
            owns_http_client=owns_http_client,
        )

    def raise_event(self, tenant_id: str, event_type: str, payload: Any) -> None:
        """Accept an event for asynchronous delivery (see EventIngressService)."""
        self.ingress.raise_event(tenant_id, event_type, payload)

    async def start(self) -> None:
        """Start the ingress workers and the retry sweep."""
        await self.ingress.start()
        await self.retry_scheduler.start()
        logger.info("Webhook platform started")

    async def stop(self) -> None:
        """Drain ingress, stop the sweep and release owned resources."""
        await self.ingress.stop(drain_timeout=self.settings.http_timeout_seconds * 2)
        await self.retry_scheduler.stop()

        if self._owns_http_client:
            await self._http_client.aclose()
        if self._redis_manager is not None:
            await self._redis_manager.disconnect()
        if self._database is not None:
            await self._database.close_pool()
        logger.info("Webhook platform stopped")

    async def health_check(self) -> dict:
        """Report backend connectivity and queue depths."""
        database_ok = await self._database.health_check() if self._database else True
        redis_ok = True
        if self._redis_manager is not None and self._redis_manager.client is not None:
            try:
                redis_ok = bool(await self._redis_manager.client.ping())
            except Exception as e:
                logger.error(f"Redis health check failed: {e}")
                redis_ok = False

        retry_queue_depth: Optional[int]
        try:
            retry_queue_depth = await self.retry_queue.count()
        except Exception as e:
            logger.error(f"Retry queue health check failed: {e}")
            retry_queue_depth = None

        return {
            "status": "healthy" if database_ok and redis_ok else "degraded",
            "database": "connected" if self._database else "in-memory",
            "database_ok": database_ok,
            "cache": "redis" if self._redis_manager else "in-memory",
            "cache_ok": redis_ok,
            "pending_events": self.ingress.pending,
            "retry_queue_depth": retry_queue_depth,
            "retry_scheduler_running": self.retry_scheduler.is_running,
        }
