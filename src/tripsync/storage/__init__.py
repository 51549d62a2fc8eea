"""Public storage exports for tripsync."""

from __future__ import annotations

from .backends import DocumentBackend, JsonFileBackend, MemoryBackend
from .coalesce import coalesce_mutation
from .offline_store import (
    PENDING_MUTATIONS_KEY,
    SYNC_META_KEY,
    TRIPS_KEY,
    OfflineStore,
)

__all__ = [
    "DocumentBackend",
    "MemoryBackend",
    "JsonFileBackend",
    "coalesce_mutation",
    "OfflineStore",
    "TRIPS_KEY",
    "PENDING_MUTATIONS_KEY",
    "SYNC_META_KEY",
]
