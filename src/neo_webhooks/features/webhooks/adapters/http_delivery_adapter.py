"""HTTP delivery adapter for webhooks using httpx.

Performs exactly one signed POST per call. Every outcome, including
timeouts and connection errors, is returned as a DeliveryResult; nothing
here raises for a failed delivery.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from ....utils import generate_uuid_v4
from ..entities.delivery import DeliveryResult
from ..entities.envelope import EventEnvelope
from ..entities.subscription import Subscription
from ..utils.header_builder import WebhookHeaderBuilder
from ..utils.signing import sign

logger = logging.getLogger(__name__)


class HttpDeliveryAdapter:
    """Signed webhook POSTs over a shared httpx.AsyncClient.

    The client is injected so tests can mount an ``httpx.MockTransport``.
    ``max_concurrent_requests`` bounds in-flight requests across every
    dispatch and retry sweep sharing this adapter; None or 0 disables it.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout_seconds: float = 10.0,
        max_concurrent_requests: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        """Initialize the adapter.

        Args:
            client: Shared async HTTP client (connection pooling lives there)
            timeout_seconds: Hard per-request timeout
            max_concurrent_requests: Global ceiling on outbound requests
            user_agent: Overrides the default User-Agent header
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._client = client
        self._timeout = timeout_seconds
        self._user_agent = user_agent
        self._semaphore = (
            asyncio.Semaphore(max_concurrent_requests) if max_concurrent_requests else None
        )

    async def deliver(self, subscription: Subscription, envelope: EventEnvelope) -> DeliveryResult:
        """POST the envelope to the subscription URL.

        Args:
            subscription: Target subscription (URL, secret, custom headers)
            envelope: Event envelope; its bytes are signed and sent as-is

        Returns:
            DeliveryResult, success for any 2xx status
        """
        if self._semaphore is None:
            return await self._make_request(subscription, envelope)
        async with self._semaphore:
            return await self._make_request(subscription, envelope)

    async def _make_request(self, subscription: Subscription, envelope: EventEnvelope) -> DeliveryResult:
        request_id = generate_uuid_v4()
        log_context = {
            "subscription_id": str(subscription.id),
            "event_type": envelope.event_type,
            "request_id": request_id,
        }

        try:
            body = envelope.to_json_bytes()
            headers = WebhookHeaderBuilder.build_delivery_headers(
                signature=sign(subscription.secret, body),
                timestamp=envelope.timestamp,
                request_id=request_id,
                custom_headers=subscription.headers,
                user_agent=self._user_agent,
            )
        except ValueError as e:
            logger.warning(f"Cannot build webhook request for {subscription.url}: {e}", extra=log_context)
            return DeliveryResult.failure(f"Invalid request: {e}", request_id, 0.0)

        started = time.monotonic()

        try:
            # httpx timeouts are per phase; wait_for bounds the whole exchange
            response = await asyncio.wait_for(
                self._client.post(
                    subscription.url,
                    content=body,
                    headers=headers,
                    timeout=self._timeout,
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            duration_ms = (time.monotonic() - started) * 1000
            logger.info(f"Webhook delivery to {subscription.url} timed out after {self._timeout}s", extra=log_context)
            return DeliveryResult.failure(f"Timeout after {self._timeout}s", request_id, duration_ms)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            duration_ms = (time.monotonic() - started) * 1000
            logger.info(f"Webhook delivery to {subscription.url} failed: {type(e).__name__}: {e}", extra=log_context)
            return DeliveryResult.failure(f"{type(e).__name__}: {e}", request_id, duration_ms)
        except ValueError as e:
            # Includes UnicodeEncodeError from header values httpx cannot encode
            duration_ms = (time.monotonic() - started) * 1000
            logger.warning(f"Webhook request to {subscription.url} could not be sent: {e}", extra=log_context)
            return DeliveryResult.failure(f"Invalid request: {e}", request_id, duration_ms)

        duration_ms = (time.monotonic() - started) * 1000
        result = DeliveryResult.from_status(response.status_code, request_id, duration_ms)
        if result.success:
            logger.debug(
                f"Webhook delivered to {subscription.url} with status {response.status_code} "
                f"in {duration_ms:.1f}ms",
                extra=log_context,
            )
        else:
            logger.info(
                f"Webhook delivery to {subscription.url} rejected with status {response.status_code}",
                extra=log_context,
            )
        return result
