"""tripsync public API."""

from __future__ import annotations

import logging

from tripsync.auth import AuthInfo, AuthProvider, OAuthClient, StaticAuthProvider
from tripsync.config import SyncConfig
from tripsync.controller import TripsController
from tripsync.errors import (
    ApiError,
    AuthError,
    ConflictError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    StorageError,
    TripSyncError,
    map_http_error,
)
from tripsync.manager import TripSyncManager
from tripsync.models import (
    Activity,
    Hotel,
    MutationType,
    PendingMutation,
    SyncError,
    SyncMeta,
    SyncResult,
    SyncState,
    SyncStatus,
    Trip,
    TripDay,
    TripStatus,
)
from tripsync.network import (
    ConnectivitySnapshot,
    ManualNetworkSource,
    NetworkMonitor,
    NetworkState,
    NetworkStatus,
    SocketProbeSource,
)
from tripsync.repository import TripRepository
from tripsync.storage import JsonFileBackend, MemoryBackend, OfflineStore
from tripsync.sync import SyncEngine

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # High-level
    "TripSyncManager",
    "TripRepository",
    "SyncEngine",
    "SyncConfig",
    # Components
    "OfflineStore",
    "MemoryBackend",
    "JsonFileBackend",
    "NetworkMonitor",
    "ManualNetworkSource",
    "SocketProbeSource",
    "TripsController",
    # Auth
    "AuthInfo",
    "AuthProvider",
    "OAuthClient",
    "StaticAuthProvider",
    # Models
    "Trip",
    "TripDay",
    "Activity",
    "Hotel",
    "TripStatus",
    "MutationType",
    "PendingMutation",
    "SyncMeta",
    "SyncState",
    "SyncStatus",
    "SyncResult",
    "SyncError",
    "ConnectivitySnapshot",
    "NetworkState",
    "NetworkStatus",
    # Errors
    "TripSyncError",
    "StorageError",
    "InvalidStateError",
    "AuthError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "NetworkError",
    "ApiError",
    "HttpErrorInfo",
    "map_http_error",
]
