"""UUID utilities for neo-webhooks."""

import uuid
import time


def generate_uuid_v7() -> str:
    """
    Generate a UUIDv7 with time-based ordering.

    UUIDv7 keeps primary keys roughly insertion ordered, which keeps the
    subscription and retry queue indexes compact.

    Returns:
        String representation of UUIDv7
    """
    timestamp_ms = int(time.time() * 1000)
    timestamp_bytes = timestamp_ms.to_bytes(6, byteorder='big')
    random_bytes = uuid.uuid4().bytes[6:]
    uuid_bytes = timestamp_bytes + random_bytes

    # Version 7
    uuid_bytes = uuid_bytes[:6] + bytes([(uuid_bytes[6] & 0x0f) | 0x70]) + uuid_bytes[7:]
    # RFC 4122 variant
    uuid_bytes = uuid_bytes[:8] + bytes([(uuid_bytes[8] & 0x3f) | 0x80]) + uuid_bytes[9:]

    return str(uuid.UUID(bytes=uuid_bytes))


def generate_uuid_v4() -> str:
    """
    Generate a standard UUIDv4 (random).

    Returns:
        String representation of UUIDv4
    """
    return str(uuid.uuid4())
