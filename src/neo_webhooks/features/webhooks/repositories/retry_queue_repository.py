"""Retry queue repository implementation using asyncpg.

Items are leased with ``claimed_until``/``claimed_by`` and selected with
``FOR UPDATE SKIP LOCKED``, so several dispatcher processes can drain the
same table without delivering one item twice concurrently.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional

from ....core.value_objects import RetryItemId, SubscriptionId
from ....database import DatabaseManager
from ..entities.envelope import EventEnvelope
from ..entities.retry_item import RetryItem
from ..utils.queries import (
    WEBHOOKS_CREATE_SCHEMA,
    RETRY_QUEUE_CREATE_TABLE,
    RETRY_QUEUE_CREATE_INDEXES,
    RETRY_ITEM_INSERT,
    RETRY_ITEM_GET_BY_ID,
    RETRY_ITEM_CLAIM_DUE,
    RETRY_ITEM_RESCHEDULE,
    RETRY_ITEM_RELEASE,
    RETRY_ITEM_DELETE,
    RETRY_ITEM_LIST_BY_SUBSCRIPTION,
    RETRY_QUEUE_COUNT,
)
from ..utils.error_handling import handle_retry_queue_error


logger = logging.getLogger(__name__)


class RetryQueueDatabaseRepository:
    """Durable, strongly typed queue of webhook redeliveries."""

    def __init__(self, database: DatabaseManager, schema: str = "webhooks"):
        self._db = database
        self._schema = schema

    async def ensure_schema(self) -> None:
        """Create the retry_queue table if missing (requires the subscriptions table)."""
        try:
            await self._db.execute(WEBHOOKS_CREATE_SCHEMA.format(schema=self._schema))
            await self._db.execute(RETRY_QUEUE_CREATE_TABLE.format(schema=self._schema))
            await self._db.execute(RETRY_QUEUE_CREATE_INDEXES.format(schema=self._schema))
            logger.info(f"Retry queue table ready in schema {self._schema}")
        except Exception as e:
            handle_retry_queue_error("ensure_schema", None, e, {"schema": self._schema})
            raise

    async def add(self, item: RetryItem) -> RetryItem:
        """Persist a new retry item."""
        try:
            query = RETRY_ITEM_INSERT.format(schema=self._schema)
            row = await self._db.fetchrow(
                query,
                item.id.value,
                item.subscription_id.value,
                json.dumps(item.envelope.to_dict()),
                item.attempts,
                item.next_retry_at,
                item.priority,
                item.last_error,
                item.created_at,
            )
            return self._row_to_item(row) if row else item

        except Exception as e:
            handle_retry_queue_error(
                "add", item.id, e, {"schema": self._schema, "subscription_id": str(item.subscription_id)}
            )
            raise

    async def get_by_id(self, item_id: RetryItemId) -> Optional[RetryItem]:
        try:
            query = RETRY_ITEM_GET_BY_ID.format(schema=self._schema)
            row = await self._db.fetchrow(query, item_id.value)
            return self._row_to_item(row) if row else None

        except Exception as e:
            handle_retry_queue_error("get_by_id", item_id, e, {"schema": self._schema})
            raise

    async def claim_due(
        self, now: datetime, lease_until: datetime, worker_id: str, limit: int
    ) -> List[RetryItem]:
        """Lease due items in one statement; rows locked by another worker are skipped."""
        try:
            query = RETRY_ITEM_CLAIM_DUE.format(schema=self._schema)
            rows = await self._db.fetch(query, now, lease_until, worker_id, limit)
            items = [self._row_to_item(row) for row in rows]
            # RETURNING does not preserve the subquery order
            items.sort(key=lambda i: (i.priority, i.next_retry_at))
            return items

        except Exception as e:
            handle_retry_queue_error(
                "claim_due", None, e, {"schema": self._schema, "worker_id": worker_id, "limit": limit}
            )
            raise

    async def reschedule(
        self,
        item_id: RetryItemId,
        attempts: int,
        next_retry_at: datetime,
        last_error: Optional[str],
    ) -> Optional[RetryItem]:
        try:
            query = RETRY_ITEM_RESCHEDULE.format(schema=self._schema)
            row = await self._db.fetchrow(query, item_id.value, attempts, next_retry_at, last_error)
            return self._row_to_item(row) if row else None

        except Exception as e:
            handle_retry_queue_error("reschedule", item_id, e, {"schema": self._schema, "attempts": attempts})
            raise

    async def release(self, item_id: RetryItemId) -> None:
        try:
            query = RETRY_ITEM_RELEASE.format(schema=self._schema)
            await self._db.execute(query, item_id.value)

        except Exception as e:
            handle_retry_queue_error("release", item_id, e, {"schema": self._schema})
            raise

    async def delete(self, item_id: RetryItemId) -> bool:
        try:
            query = RETRY_ITEM_DELETE.format(schema=self._schema)
            result = await self._db.execute(query, item_id.value)
            return result == "DELETE 1"

        except Exception as e:
            handle_retry_queue_error("delete", item_id, e, {"schema": self._schema})
            raise

    async def list_for_subscription(self, subscription_id: SubscriptionId) -> List[RetryItem]:
        try:
            query = RETRY_ITEM_LIST_BY_SUBSCRIPTION.format(schema=self._schema)
            rows = await self._db.fetch(query, subscription_id.value)
            return [self._row_to_item(row) for row in rows]

        except Exception as e:
            handle_retry_queue_error(
                "list_for_subscription", None, e,
                {"schema": self._schema, "subscription_id": str(subscription_id)},
            )
            raise

    async def count(self) -> int:
        try:
            query = RETRY_QUEUE_COUNT.format(schema=self._schema)
            return int(await self._db.fetchval(query))

        except Exception as e:
            handle_retry_queue_error("count", None, e, {"schema": self._schema})
            raise

    def _row_to_item(self, row) -> RetryItem:
        """Convert database row to RetryItem entity."""
        envelope = row["envelope"]
        if isinstance(envelope, str):
            envelope = json.loads(envelope)

        return RetryItem(
            id=RetryItemId(row["id"]),
            subscription_id=SubscriptionId(row["subscription_id"]),
            envelope=EventEnvelope.from_dict(envelope),
            attempts=row["attempts"],
            next_retry_at=row["next_retry_at"],
            priority=row["priority"],
            last_error=row["last_error"],
            created_at=row["created_at"],
            claimed_until=row["claimed_until"],
            claimed_by=row["claimed_by"],
        )
