"""HMAC signing of outgoing webhook bodies.

The signature covers the exact bytes sent as the request body, so a
receiver recomputes it from the raw body it received.
"""

import hashlib
import hmac
import secrets
from typing import Union

SIGNATURE_HEADER = "X-Webhook-Signature"
TIMESTAMP_HEADER = "X-Webhook-Timestamp"
REQUEST_ID_HEADER = "X-Request-ID"

Secret = Union[str, bytes, bytearray]

# 32 random bytes, hex encoded
GENERATED_SECRET_BYTES = 32


def _secret_bytes(secret: Secret) -> bytes:
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if not secret:
        raise ValueError("Signing secret cannot be empty")
    return bytes(secret)


def sign(secret: Secret, body: bytes) -> str:
    """Return the hex HMAC-SHA256 of ``body`` keyed with ``secret``."""
    return hmac.new(_secret_bytes(secret), body, hashlib.sha256).hexdigest()


def generate_secret() -> str:
    """Generate a random signing secret for subscriptions registered without one."""
    return secrets.token_hex(GENERATED_SECRET_BYTES)


def verify(signature: str, body: bytes, secret: Secret) -> bool:
    """Check a received signature against the raw body (constant time)."""
    if not signature:
        return False
    expected = sign(secret, body)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8"))
