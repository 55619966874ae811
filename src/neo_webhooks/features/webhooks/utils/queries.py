"""Webhooks SQL query constants.

Centralizes all SQL used by the subscription store and the retry queue.
All queries are parameterized by schema so deployments can isolate the
webhook tables.
"""

# =====================================================================================
# SCHEMA
# =====================================================================================

WEBHOOKS_CREATE_SCHEMA = """
    CREATE SCHEMA IF NOT EXISTS {schema}
"""

SUBSCRIPTIONS_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS {schema}.subscriptions (
        id UUID PRIMARY KEY,
        tenant_id TEXT NOT NULL,
        url TEXT NOT NULL,
        -- Fernet token, never the plaintext secret
        encrypted_secret TEXT NOT NULL,
        event_types JSONB NOT NULL DEFAULT '[]'::jsonb,
        headers JSONB NOT NULL DEFAULT '{{}}'::jsonb,
        active BOOLEAN NOT NULL DEFAULT TRUE,
        last_triggered_at TIMESTAMPTZ,
        last_error TEXT,
        consecutive_retry_count INTEGER NOT NULL DEFAULT 0 CHECK (consecutive_retry_count >= 0),
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
"""

SUBSCRIPTIONS_CREATE_INDEXES = """
    CREATE INDEX IF NOT EXISTS idx_subscriptions_tenant_active
        ON {schema}.subscriptions (tenant_id) WHERE active;
    CREATE INDEX IF NOT EXISTS idx_subscriptions_event_types
        ON {schema}.subscriptions USING GIN (event_types)
"""

RETRY_QUEUE_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS {schema}.retry_queue (
        id UUID PRIMARY KEY,
        subscription_id UUID NOT NULL REFERENCES {schema}.subscriptions (id) ON DELETE CASCADE,
        envelope JSONB NOT NULL,
        attempts INTEGER NOT NULL CHECK (attempts >= 1),
        next_retry_at TIMESTAMPTZ NOT NULL,
        priority INTEGER NOT NULL DEFAULT 3,
        last_error TEXT,
        created_at TIMESTAMPTZ NOT NULL,
        claimed_until TIMESTAMPTZ,
        claimed_by TEXT
    )
"""

RETRY_QUEUE_CREATE_INDEXES = """
    CREATE INDEX IF NOT EXISTS idx_retry_queue_due
        ON {schema}.retry_queue (priority, next_retry_at);
    CREATE INDEX IF NOT EXISTS idx_retry_queue_subscription
        ON {schema}.retry_queue (subscription_id)
"""

# =====================================================================================
# SUBSCRIPTIONS QUERIES
# =====================================================================================

SUBSCRIPTION_INSERT = """
    INSERT INTO {schema}.subscriptions (
        id, tenant_id, url, encrypted_secret, event_types, headers, active,
        last_triggered_at, last_error, consecutive_retry_count, created_at, updated_at
    ) VALUES (
        $1, $2, $3, $4, $5::jsonb, $6::jsonb, $7, $8, $9, $10, $11, $12
    ) RETURNING *
"""

SUBSCRIPTION_UPDATE = """
    UPDATE {schema}.subscriptions SET
        url = $2,
        encrypted_secret = $3,
        event_types = $4::jsonb,
        headers = $5::jsonb,
        active = $6,
        last_triggered_at = $7,
        last_error = $8,
        consecutive_retry_count = $9,
        updated_at = $10
    WHERE id = $1
    RETURNING *
"""

SUBSCRIPTION_GET_BY_ID = """
    SELECT * FROM {schema}.subscriptions
    WHERE id = $1
"""

SUBSCRIPTION_FIND_ACTIVE = """
    SELECT * FROM {schema}.subscriptions
    WHERE tenant_id = $1
      AND active = TRUE
      AND event_types @> $2::jsonb
    ORDER BY created_at ASC
"""

SUBSCRIPTION_LIST_BY_TENANT = """
    SELECT * FROM {schema}.subscriptions
    WHERE tenant_id = $1
    ORDER BY created_at ASC
"""

SUBSCRIPTION_RECORD_SUCCESS = """
    UPDATE {schema}.subscriptions SET
        last_triggered_at = $2,
        last_error = NULL,
        consecutive_retry_count = 0,
        updated_at = $2
    WHERE id = $1
    RETURNING *
"""

SUBSCRIPTION_RECORD_FAILURE = """
    UPDATE {schema}.subscriptions SET
        last_error = $2,
        consecutive_retry_count = CASE
            WHEN active THEN consecutive_retry_count + 1
            ELSE consecutive_retry_count
        END,
        updated_at = $3
    WHERE id = $1
    RETURNING *
"""

SUBSCRIPTION_DEACTIVATE = """
    UPDATE {schema}.subscriptions SET
        active = FALSE,
        last_error = $2,
        updated_at = $3
    WHERE id = $1 AND active = TRUE
    RETURNING *
"""

SUBSCRIPTION_DELETE = """
    DELETE FROM {schema}.subscriptions
    WHERE id = $1
"""

# =====================================================================================
# RETRY QUEUE QUERIES
# =====================================================================================

RETRY_ITEM_INSERT = """
    INSERT INTO {schema}.retry_queue (
        id, subscription_id, envelope, attempts, next_retry_at,
        priority, last_error, created_at, claimed_until, claimed_by
    ) VALUES (
        $1, $2, $3::jsonb, $4, $5, $6, $7, $8, NULL, NULL
    ) RETURNING *
"""

RETRY_ITEM_GET_BY_ID = """
    SELECT * FROM {schema}.retry_queue
    WHERE id = $1
"""

RETRY_ITEM_CLAIM_DUE = """
    UPDATE {schema}.retry_queue AS q SET
        claimed_until = $2,
        claimed_by = $3
    WHERE q.id IN (
        SELECT id FROM {schema}.retry_queue
        WHERE next_retry_at <= $1
          AND (claimed_until IS NULL OR claimed_until <= $1)
        ORDER BY priority ASC, next_retry_at ASC
        LIMIT $4
        FOR UPDATE SKIP LOCKED
    )
    RETURNING q.*
"""

RETRY_ITEM_RESCHEDULE = """
    UPDATE {schema}.retry_queue SET
        attempts = $2,
        next_retry_at = $3,
        last_error = $4,
        claimed_until = NULL,
        claimed_by = NULL
    WHERE id = $1
    RETURNING *
"""

RETRY_ITEM_RELEASE = """
    UPDATE {schema}.retry_queue SET
        claimed_until = NULL,
        claimed_by = NULL
    WHERE id = $1
"""

RETRY_ITEM_DELETE = """
    DELETE FROM {schema}.retry_queue
    WHERE id = $1
"""

RETRY_ITEM_LIST_BY_SUBSCRIPTION = """
    SELECT * FROM {schema}.retry_queue
    WHERE subscription_id = $1
    ORDER BY next_retry_at ASC
"""

RETRY_QUEUE_COUNT = """
    SELECT COUNT(*) FROM {schema}.retry_queue
"""
