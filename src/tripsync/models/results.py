"""Sync state and result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Mapping, Optional

from tripsync.util.time import parse_rfc3339, to_rfc3339

LastSyncStatus = Literal["success", "partial", "failed"]


class SyncStatus(str, Enum):
    """Sync engine state machine: idle -> syncing -> success|error|offline."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"
    OFFLINE = "offline"


@dataclass(frozen=True, slots=True)
class SyncState:
    """Snapshot broadcast to sync subscribers."""

    status: SyncStatus = SyncStatus.IDLE
    last_sync_time: Optional[datetime] = None
    pending_count: int = 0
    is_online: bool = True
    error: Optional[str] = None


@dataclass(slots=True)
class SyncMeta:
    """Persisted, process-wide sync bookkeeping."""

    last_sync_time: Optional[datetime] = None
    last_sync_status: Optional[LastSyncStatus] = None
    pending_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_sync_time": to_rfc3339(self.last_sync_time) if self.last_sync_time else None,
            "last_sync_status": self.last_sync_status,
            "pending_count": self.pending_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SyncMeta:
        raw_time = data.get("last_sync_time")
        return cls(
            last_sync_time=parse_rfc3339(raw_time) if raw_time else None,
            last_sync_status=data.get("last_sync_status"),
            pending_count=int(data.get("pending_count", 0)),
        )


@dataclass(frozen=True, slots=True)
class SyncError:
    """Failure of a single mutation (mutation_id is empty for sync-level errors)."""

    mutation_id: str
    error: str


@dataclass(slots=True)
class SyncResult:
    """Aggregate result of one sync() call."""

    success: bool
    synced: int = 0
    failed: int = 0
    errors: list[SyncError] = field(default_factory=list)

    id_map: dict[str, str] = field(default_factory=dict)
    skipped: bool = False


@dataclass(frozen=True, slots=True)
class StorageStats:
    trip_count: int
    pending_mutations: int
    last_sync: Optional[datetime]
