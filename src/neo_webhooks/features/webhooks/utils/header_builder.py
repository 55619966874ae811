"""
Webhook Header Builder

Centralized HTTP header construction for webhook delivery so the dispatch
path and the retry path send identical headers.
"""

from typing import Dict, Optional

from .signing import SIGNATURE_HEADER, TIMESTAMP_HEADER, REQUEST_ID_HEADER


class WebhookHeaderBuilder:
    """Builder for outgoing webhook request headers."""

    DEFAULT_USER_AGENT = "NeoMultiTenant-Webhooks/1.0"

    # Subscriber headers may not replace these; conflicting values are
    # forwarded under an X-Endpoint- prefix instead.
    PROTECTED_HEADERS = frozenset({
        "content-type",
        "content-length",
        "host",
        "user-agent",
        SIGNATURE_HEADER.lower(),
        TIMESTAMP_HEADER.lower(),
        REQUEST_ID_HEADER.lower(),
    })

    @classmethod
    def build_delivery_headers(
        cls,
        signature: str,
        timestamp: str,
        request_id: str,
        custom_headers: Optional[Dict[str, str]] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, str]:
        """Build HTTP headers for a webhook delivery.

        Args:
            signature: Hex HMAC of the request body
            timestamp: Envelope timestamp, sent verbatim
            request_id: Correlation id for this HTTP attempt
            custom_headers: Subscriber configured headers
            user_agent: Override for the User-Agent header

        Returns:
            Dictionary of HTTP headers ready for the request
        """
        headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent or cls.DEFAULT_USER_AGENT,
            TIMESTAMP_HEADER: timestamp,
            SIGNATURE_HEADER: signature,
            REQUEST_ID_HEADER: request_id,
        }

        for key, value in (custom_headers or {}).items():
            if key.lower() in cls.PROTECTED_HEADERS:
                headers[f"X-Endpoint-{key}"] = value
            else:
                headers[key] = value

        return headers
