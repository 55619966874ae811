"""Shared utilities for neo-webhooks."""

from .datetime import utc_now, ensure_utc, format_iso_millis, parse_iso
from .uuid import generate_uuid_v7, generate_uuid_v4
from .encryption import SecretEncryption

__all__ = [
    "utc_now",
    "ensure_utc",
    "format_iso_millis",
    "parse_iso",
    "generate_uuid_v7",
    "generate_uuid_v4",
    "SecretEncryption",
]
