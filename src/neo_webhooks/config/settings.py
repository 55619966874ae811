"""
Configuration management for the webhook delivery core.

Environment-driven settings for the registry cache, circuit breaker, retry
scheduler, outbound HTTP client and the backing stores.
"""
from typing import Optional
from functools import lru_cache
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookSettings(BaseSettings):
    """Settings for webhook delivery.

    Field names map case-insensitively onto environment variables, so
    ``failure_window_seconds`` is read from ``FAILURE_WINDOW_SECONDS``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = Field(default="neo-webhooks")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Circuit breaker
    failure_window_seconds: int = Field(default=3600)
    failure_threshold: int = Field(default=3)

    # Retry scheduler
    max_retry_attempts: int = Field(default=5)
    retry_base_delay_ms: int = Field(default=1000)
    retry_poll_interval_seconds: float = Field(default=10.0)
    retry_batch_size: int = Field(default=100)
    retry_lease_seconds: int = Field(default=60)

    # Outbound HTTP
    http_timeout_ms: int = Field(default=10000)
    outbound_concurrency_limit: Optional[int] = Field(default=100)
    user_agent: str = Field(default="NeoMultiTenant-Webhooks/1.0")

    # Subscription registry
    subscription_cache_ttl_seconds: int = Field(default=3600)

    # Event ingress
    ingress_workers: int = Field(default=4)
    ingress_max_pending: int = Field(default=10000)

    # Backing stores (in-memory backends are used when unset)
    database_url: Optional[str] = Field(default=None)
    database_schema: str = Field(default="webhooks")
    db_pool_min_size: int = Field(default=2)
    db_pool_max_size: int = Field(default=10)
    redis_url: Optional[str] = Field(default=None)
    redis_key_prefix: str = Field(default="webhook")

    # Encrypts subscription secrets at rest; required with DATABASE_URL or REDIS_URL
    secret_encryption_key: Optional[str] = Field(default=None, repr=False)

    @field_validator(
        "failure_window_seconds",
        "failure_threshold",
        "max_retry_attempts",
        "retry_base_delay_ms",
        "retry_batch_size",
        "retry_lease_seconds",
        "http_timeout_ms",
        "subscription_cache_ttl_seconds",
        "ingress_workers",
        "db_pool_min_size",
        "db_pool_max_size",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject zero and negative limits."""
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("retry_poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("outbound_concurrency_limit", "ingress_max_pending")
    @classmethod
    def validate_optional_limit(cls, v: Optional[int]) -> Optional[int]:
        # 0 disables the limit
        if v is not None and v < 0:
            raise ValueError("must not be negative")
        return v

    @property
    def http_timeout_seconds(self) -> float:
        """Outbound request timeout in seconds."""
        return self.http_timeout_ms / 1000.0

    @property
    def retry_base_delay_seconds(self) -> float:
        """Base backoff delay in seconds."""
        return self.retry_base_delay_ms / 1000.0

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_database_enabled(self) -> bool:
        """Check if a PostgreSQL store is configured."""
        return bool(self.database_url)

    @property
    def is_cache_enabled(self) -> bool:
        """Check if Redis is configured."""
        return bool(self.redis_url)

    @property
    def requires_secret_encryption(self) -> bool:
        """Secrets leave process memory only when a durable store or Redis is configured."""
        return self.is_database_enabled or self.is_cache_enabled


@lru_cache()
def get_settings() -> WebhookSettings:
    """Get cached settings instance."""
    return WebhookSettings()
