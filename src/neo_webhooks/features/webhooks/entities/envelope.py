"""Event envelope delivered to subscribers.

The envelope is built once per raised event. Its timestamp is fixed at
construction and travels verbatim inside the signed body, including on
every retry of the same event.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ....utils import utc_now, format_iso_millis


@dataclass(frozen=True)
class EventEnvelope:
    """Structured, timestamped message for one event occurrence."""

    event_type: str
    timestamp: str
    triggered_by: str
    data: Any

    @classmethod
    def create(
        cls,
        event_type: str,
        triggered_by: str,
        data: Any,
        now: Optional[datetime] = None,
    ) -> "EventEnvelope":
        """Build an envelope, stamping it with the current time."""
        return cls(
            event_type=event_type,
            timestamp=format_iso_millis(now or utc_now()),
            triggered_by=triggered_by,
            data=data,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation, keys in delivery order."""
        return {
            "eventType": self.event_type,
            "timestamp": self.timestamp,
            "triggeredBy": self.triggered_by,
            "data": self.data,
        }

    def to_json_bytes(self) -> bytes:
        """Canonical request body; these exact bytes are signed and sent."""
        return json.dumps(
            self.to_payload(),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")

    def to_dict(self) -> Dict[str, Any]:
        """Storage representation used by the retry queue."""
        return self.to_payload()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventEnvelope":
        """Rebuild an envelope from its stored representation."""
        return cls(
            event_type=data["eventType"],
            timestamp=data["timestamp"],
            triggered_by=data["triggeredBy"],
            data=data.get("data"),
        )
