"""Public model exports for tripsync."""

from __future__ import annotations

from .mutation import MutationType, PendingMutation
from .results import (
    LastSyncStatus,
    StorageStats,
    SyncError,
    SyncMeta,
    SyncResult,
    SyncState,
    SyncStatus,
)
from .trip import (
    DEFAULT_COVER_IMAGE,
    TRIP_INPUT_FIELDS,
    Activity,
    Hotel,
    HotelLocation,
    Trip,
    TripDay,
    TripStatus,
    trip_to_input,
    validate_trip_input,
)

__all__ = [
    "Activity",
    "Hotel",
    "HotelLocation",
    "Trip",
    "TripDay",
    "TripStatus",
    "DEFAULT_COVER_IMAGE",
    "TRIP_INPUT_FIELDS",
    "trip_to_input",
    "validate_trip_input",
    "MutationType",
    "PendingMutation",
    "LastSyncStatus",
    "SyncStatus",
    "SyncState",
    "SyncMeta",
    "SyncError",
    "SyncResult",
    "StorageStats",
]
