"""Validation rules for the webhooks feature.

Centralized validation logic for subscription registration and raised
events. All rules raise ValueError; callers translate into the
neo-webhooks exception hierarchy at the boundary they own.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse


class WebhookValidationRules:
    """Centralized validation rules for webhook-related input."""

    # Dot separated, lower case segments: 'product.created', 'order.payment.completed'
    EVENT_TYPE_PATTERN = re.compile(r'^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)+$')

    ALLOWED_SCHEMES = ("http", "https")
    MAX_URL_LENGTH = 2048
    MAX_EVENT_TYPE_LENGTH = 100
    MAX_CUSTOM_HEADERS = 20
    MAX_HEADER_NAME_LENGTH = 100
    MAX_HEADER_VALUE_LENGTH = 1000
    MAX_TENANT_ID_LENGTH = 255

    # RFC 7230 token characters
    HEADER_NAME_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

    @classmethod
    def validate_webhook_url(cls, url: str) -> None:
        """Validate a subscriber callback URL.

        Args:
            url: URL to validate

        Raises:
            ValueError: If the URL is not an absolute HTTP(S) URL
        """
        if not url or not isinstance(url, str):
            raise ValueError("URL cannot be empty")

        if url != url.strip():
            raise ValueError("URL cannot contain leading or trailing whitespace")

        if len(url) > cls.MAX_URL_LENGTH:
            raise ValueError(f"URL length cannot exceed {cls.MAX_URL_LENGTH} characters")

        parsed = urlparse(url)
        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValueError("URL must use HTTP or HTTPS")

        if not parsed.netloc or not parsed.hostname:
            raise ValueError("URL must be absolute and include a host")

        if any(ch.isspace() for ch in url):
            raise ValueError("URL cannot contain whitespace")

        try:
            # Accessing .port validates the port range
            parsed.port
        except ValueError as e:
            raise ValueError(f"Invalid URL port: {e}") from e

    @classmethod
    def validate_secret(cls, secret: Any) -> None:
        """Validate a shared secret.

        Raises:
            ValueError: If the secret is empty or not text/bytes
        """
        if isinstance(secret, (bytes, bytearray)):
            if not secret:
                raise ValueError("Secret cannot be empty")
            return
        if not isinstance(secret, str) or not secret.strip():
            raise ValueError("Secret cannot be empty")

    @classmethod
    def normalize_secret(cls, secret: Any) -> bytes:
        """Validate a secret and return its raw bytes (text is UTF-8 encoded)."""
        cls.validate_secret(secret)
        if isinstance(secret, str):
            return secret.encode("utf-8")
        return bytes(secret)

    @classmethod
    def validate_event_type(cls, event_type: str) -> None:
        """Validate event type format.

        Args:
            event_type: Event type to validate (e.g., 'product.created')

        Raises:
            ValueError: If event type is invalid
        """
        if not event_type or not isinstance(event_type, str):
            raise ValueError("Event type cannot be empty")

        if len(event_type) > cls.MAX_EVENT_TYPE_LENGTH:
            raise ValueError(f"Event type cannot exceed {cls.MAX_EVENT_TYPE_LENGTH} characters")

        if not cls.EVENT_TYPE_PATTERN.match(event_type):
            raise ValueError(
                f"Invalid event type '{event_type}': expected dot separated lowercase "
                "segments such as 'product.created'"
            )

    @classmethod
    def normalize_event_types(cls, event_types: Iterable[str]) -> List[str]:
        """Validate and de-duplicate event types, preserving first-seen order."""
        if isinstance(event_types, str):
            raise ValueError("Event types must be a list of strings, not a single string")

        normalized: List[str] = []
        for event_type in event_types or []:
            cls.validate_event_type(event_type)
            if event_type not in normalized:
                normalized.append(event_type)

        if not normalized:
            raise ValueError("At least one event type is required")
        return normalized

    @classmethod
    def validate_custom_headers(cls, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Validate subscriber custom headers.

        Returns:
            A copy of the headers (empty dict when None)
        """
        if headers is None:
            return {}
        if not isinstance(headers, dict):
            raise ValueError("Custom headers must be a dictionary")
        if len(headers) > cls.MAX_CUSTOM_HEADERS:
            raise ValueError(f"Cannot define more than {cls.MAX_CUSTOM_HEADERS} custom headers")

        for key, value in headers.items():
            if not isinstance(key, str) or not key.strip():
                raise ValueError("Header names must be non-empty strings")
            if len(key) > cls.MAX_HEADER_NAME_LENGTH or not cls.HEADER_NAME_PATTERN.match(key):
                raise ValueError(f"Invalid header name: {key!r}")
            if not isinstance(value, str):
                raise ValueError(f"Header value for {key!r} must be a string")
            if len(value) > cls.MAX_HEADER_VALUE_LENGTH or "\r" in value or "\n" in value:
                raise ValueError(f"Invalid header value for {key!r}")
            # Header values go on the wire as ASCII
            if not value.isascii():
                raise ValueError(f"Header value for {key!r} must be ASCII")

        return dict(headers)

    @classmethod
    def validate_tenant_id(cls, tenant_id: str) -> None:
        """Validate the owning tenant (or triggering user) id."""
        if not tenant_id or not isinstance(tenant_id, str) or not tenant_id.strip():
            raise ValueError("Tenant ID cannot be empty")
        if len(tenant_id) > cls.MAX_TENANT_ID_LENGTH:
            raise ValueError(f"Tenant ID cannot exceed {cls.MAX_TENANT_ID_LENGTH} characters")

    @classmethod
    def validate_payload(cls, payload: Any) -> None:
        """Ensure the payload is JSON serializable."""
        try:
            json.dumps(payload, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Payload must be JSON serializable: {e}") from e
