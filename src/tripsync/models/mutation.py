"""Pending mutation (outbox entry) model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from tripsync.util.time import now_utc, parse_rfc3339, to_rfc3339


class MutationType(str, Enum):
    """Kinds of queued writes."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True)
class PendingMutation:
    """
    A queued intent to change server state.

    The outbox holds at most one PendingMutation per trip_id; later writes
    against the same trip are coalesced into the existing entry.
    """

    id: str
    type: MutationType
    trip_id: str

    data: Optional[dict[str, Any]] = None
    timestamp: datetime = field(default_factory=now_utc)
    retry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "trip_id": self.trip_id,
            "data": dict(self.data) if self.data is not None else None,
            "timestamp": to_rfc3339(self.timestamp),
            "retry_count": self.retry_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PendingMutation:
        payload = data.get("data")
        return cls(
            id=str(data["id"]),
            type=MutationType(data["type"]),
            trip_id=str(data["trip_id"]),
            data=dict(payload) if isinstance(payload, Mapping) else None,
            timestamp=parse_rfc3339(data["timestamp"]),
            retry_count=int(data.get("retry_count", 0)),
        )
