"""Subscription repository implementation using asyncpg.

The durable store is the source of truth for subscriptions; the resolve
cache only accelerates reads on top of it.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional

from ....core.exceptions import SubscriptionNotFoundError
from ....core.value_objects import SubscriptionId
from ....database import DatabaseManager
from ....utils import SecretEncryption
from ..entities.subscription import Subscription
from ..utils.queries import (
    WEBHOOKS_CREATE_SCHEMA,
    SUBSCRIPTIONS_CREATE_TABLE,
    SUBSCRIPTIONS_CREATE_INDEXES,
    SUBSCRIPTION_INSERT,
    SUBSCRIPTION_UPDATE,
    SUBSCRIPTION_GET_BY_ID,
    SUBSCRIPTION_FIND_ACTIVE,
    SUBSCRIPTION_LIST_BY_TENANT,
    SUBSCRIPTION_RECORD_SUCCESS,
    SUBSCRIPTION_RECORD_FAILURE,
    SUBSCRIPTION_DEACTIVATE,
    SUBSCRIPTION_DELETE,
)
from ..utils.error_handling import handle_subscription_error


logger = logging.getLogger(__name__)


class SubscriptionDatabaseRepository:
    """Database repository for webhook subscriptions.

    Accepts the shared DatabaseManager, the secret encryption and a schema
    via dependency injection. Secrets are stored as Fernet tokens.
    """

    def __init__(self, database: DatabaseManager, encryption: SecretEncryption, schema: str = "webhooks"):
        """Initialize with the shared database manager.

        Args:
            database: asyncpg pool manager
            encryption: Encrypts secrets before they reach the table
            schema: Database schema holding the webhook tables
        """
        self._db = database
        self._encryption = encryption
        self._schema = schema

    async def ensure_schema(self) -> None:
        """Create the schema and the subscriptions table if missing."""
        try:
            await self._db.execute(WEBHOOKS_CREATE_SCHEMA.format(schema=self._schema))
            await self._db.execute(SUBSCRIPTIONS_CREATE_TABLE.format(schema=self._schema))
            await self._db.execute(SUBSCRIPTIONS_CREATE_INDEXES.format(schema=self._schema))
            logger.info(f"Subscriptions table ready in schema {self._schema}")
        except Exception as e:
            handle_subscription_error("ensure_schema", None, e, {"schema": self._schema})
            raise

    async def save(self, subscription: Subscription) -> Subscription:
        """Insert a new subscription."""
        try:
            query = SUBSCRIPTION_INSERT.format(schema=self._schema)
            row = await self._db.fetchrow(
                query,
                subscription.id.value,
                subscription.tenant_id,
                subscription.url,
                self._encryption.encrypt_secret(subscription.secret),
                json.dumps(subscription.event_types),
                json.dumps(subscription.headers),
                subscription.active,
                subscription.last_triggered_at,
                subscription.last_error,
                subscription.consecutive_retry_count,
                subscription.created_at,
                subscription.updated_at,
            )
            return self._row_to_subscription(row) if row else subscription

        except Exception as e:
            handle_subscription_error("save", subscription.id, e, {"schema": self._schema})
            raise

    async def update(self, subscription: Subscription) -> Subscription:
        """Persist every mutable field of an existing subscription."""
        try:
            query = SUBSCRIPTION_UPDATE.format(schema=self._schema)
            row = await self._db.fetchrow(
                query,
                subscription.id.value,
                subscription.url,
                self._encryption.encrypt_secret(subscription.secret),
                json.dumps(subscription.event_types),
                json.dumps(subscription.headers),
                subscription.active,
                subscription.last_triggered_at,
                subscription.last_error,
                subscription.consecutive_retry_count,
                subscription.updated_at,
            )
            if not row:
                raise SubscriptionNotFoundError(str(subscription.id))
            return self._row_to_subscription(row)

        except Exception as e:
            handle_subscription_error("update", subscription.id, e, {"schema": self._schema})
            raise

    async def get_by_id(self, subscription_id: SubscriptionId) -> Optional[Subscription]:
        """Get a subscription by ID."""
        try:
            query = SUBSCRIPTION_GET_BY_ID.format(schema=self._schema)
            row = await self._db.fetchrow(query, subscription_id.value)
            return self._row_to_subscription(row) if row else None

        except Exception as e:
            handle_subscription_error("get_by_id", subscription_id, e, {"schema": self._schema})
            raise

    async def find_active(self, tenant_id: str, event_type: str) -> List[Subscription]:
        """Active subscriptions of a tenant whose event types contain ``event_type``."""
        try:
            query = SUBSCRIPTION_FIND_ACTIVE.format(schema=self._schema)
            rows = await self._db.fetch(query, tenant_id, json.dumps([event_type]))
            return [self._row_to_subscription(row) for row in rows]

        except Exception as e:
            handle_subscription_error(
                "find_active",
                None,
                e,
                {"schema": self._schema, "tenant_id": tenant_id, "event_type": event_type},
            )
            raise

    async def list_by_tenant(self, tenant_id: str) -> List[Subscription]:
        """All subscriptions of a tenant."""
        try:
            query = SUBSCRIPTION_LIST_BY_TENANT.format(schema=self._schema)
            rows = await self._db.fetch(query, tenant_id)
            return [self._row_to_subscription(row) for row in rows]

        except Exception as e:
            handle_subscription_error("list_by_tenant", None, e, {"schema": self._schema, "tenant_id": tenant_id})
            raise

    async def record_success(self, subscription_id: SubscriptionId, at: datetime) -> Optional[Subscription]:
        try:
            query = SUBSCRIPTION_RECORD_SUCCESS.format(schema=self._schema)
            row = await self._db.fetchrow(query, subscription_id.value, at)
            return self._row_to_subscription(row) if row else None

        except Exception as e:
            handle_subscription_error("record_success", subscription_id, e, {"schema": self._schema})
            raise

    async def record_failure(
        self, subscription_id: SubscriptionId, error: str, at: datetime
    ) -> Optional[Subscription]:
        try:
            query = SUBSCRIPTION_RECORD_FAILURE.format(schema=self._schema)
            row = await self._db.fetchrow(query, subscription_id.value, error, at)
            return self._row_to_subscription(row) if row else None

        except Exception as e:
            handle_subscription_error("record_failure", subscription_id, e, {"schema": self._schema})
            raise

    async def deactivate(
        self, subscription_id: SubscriptionId, reason: str, at: datetime
    ) -> Optional[Subscription]:
        """Flip an active subscription to inactive in a single statement."""
        try:
            query = SUBSCRIPTION_DEACTIVATE.format(schema=self._schema)
            row = await self._db.fetchrow(query, subscription_id.value, reason, at)
            return self._row_to_subscription(row) if row else None

        except Exception as e:
            handle_subscription_error("deactivate", subscription_id, e, {"schema": self._schema})
            raise

    async def delete(self, subscription_id: SubscriptionId) -> bool:
        """Delete a subscription; pending retry items cascade."""
        try:
            query = SUBSCRIPTION_DELETE.format(schema=self._schema)
            result = await self._db.execute(query, subscription_id.value)
            return result == "DELETE 1"

        except Exception as e:
            handle_subscription_error("delete", subscription_id, e, {"schema": self._schema})
            raise

    def _row_to_subscription(self, row) -> Subscription:
        """Convert database row to Subscription entity."""
        event_types = row["event_types"]
        if isinstance(event_types, str):
            event_types = json.loads(event_types)
        headers = row["headers"]
        if isinstance(headers, str):
            headers = json.loads(headers)

        return Subscription(
            id=SubscriptionId(row["id"]),
            tenant_id=row["tenant_id"],
            url=row["url"],
            secret=self._encryption.decrypt_secret(row["encrypted_secret"]),
            event_types=event_types or [],
            headers=headers or {},
            active=row["active"],
            last_triggered_at=row["last_triggered_at"],
            last_error=row["last_error"],
            consecutive_retry_count=row["consecutive_retry_count"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
