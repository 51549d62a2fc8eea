"""OfflineStore: durable local trips, mutation outbox and sync metadata."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from typing import Any, Callable, Mapping, Optional, TypeVar, Union

from tripsync.errors import InvalidArgumentError, StorageError
from tripsync.models import (
    LastSyncStatus,
    MutationType,
    PendingMutation,
    StorageStats,
    SyncMeta,
    Trip,
)
from tripsync.util.ids import new_mutation_id
from tripsync.util.time import now_utc

from .backends import DocumentBackend
from .coalesce import coalesce_mutation

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRIPS_KEY: str = "tripsync/trips"
PENDING_MUTATIONS_KEY: str = "tripsync/pending_mutations"
SYNC_META_KEY: str = "tripsync/sync_meta"

_META_FIELDS = {f.name for f in dataclasses.fields(SyncMeta)}
_MISSING = object()


class OfflineStore:
    """
    Local persistence of trips and the pending-mutation outbox.

    Each collection is stored as one whole document and every change is a
    read-modify-write of that document, serialized on an instance lock.

    Failure policy:
        - Reads that fail (backend error, corrupt document) are logged and
          treated as "nothing stored yet".
        - Writes that fail raise StorageError.
    """

    def __init__(self, backend: DocumentBackend) -> None:
        self._backend = backend
        self._lock = threading.RLock()

    # ----------------------------
    # Trips
    # ----------------------------
    def load_trips(self) -> list[Trip]:
        return self._read(
            TRIPS_KEY,
            lambda raw: [Trip.from_dict(item) for item in raw],
            default=[],
        )

    def save_trips(self, trips: list[Trip]) -> None:
        self._write(TRIPS_KEY, [t.to_dict() for t in trips])

    def save_trip(self, trip: Trip) -> None:
        """Upsert by id. New trips are placed first."""
        with self._lock:
            trips = self.load_trips()
            for i, existing in enumerate(trips):
                if existing.id == trip.id:
                    trips[i] = trip
                    break
            else:
                trips.insert(0, trip)
            self.save_trips(trips)

    def delete_trip(self, trip_id: str) -> None:
        with self._lock:
            trips = [t for t in self.load_trips() if t.id != trip_id]
            self.save_trips(trips)

    def replace_trip(self, old_id: str, trip: Trip) -> None:
        """Swap the record stored under old_id for trip, keeping its position."""
        with self._lock:
            trips = [t for t in self.load_trips() if t.id != trip.id or t.id == old_id]
            for i, existing in enumerate(trips):
                if existing.id == old_id:
                    trips[i] = trip
                    break
            else:
                trips.insert(0, trip)
            self.save_trips(trips)

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        for trip in self.load_trips():
            if trip.id == trip_id:
                return trip
        return None

    # ----------------------------
    # Pending mutations (outbox)
    # ----------------------------
    def add_pending_mutation(
        self,
        mutation_type: Union[MutationType, str],
        trip_id: str,
        data: Optional[Mapping[str, Any]] = None,
    ) -> PendingMutation:
        """
        Enqueue a mutation, coalescing with any entry already queued for trip_id.

        Returns:
            The entry now queued for trip_id.
        """
        if not trip_id:
            raise InvalidArgumentError("trip_id must be a non-empty string")

        incoming = PendingMutation(
            id=new_mutation_id(),
            type=MutationType(mutation_type),
            trip_id=trip_id,
            data=dict(data) if data is not None else None,
        )

        with self._lock:
            mutations = self.get_pending_mutations()
            for i, existing in enumerate(mutations):
                if existing.trip_id == trip_id:
                    queued = coalesce_mutation(existing, incoming)
                    mutations[i] = queued
                    break
            else:
                queued = incoming
                mutations.append(queued)

            self.save_pending_mutations(mutations)
            self.update_sync_meta(pending_count=len(mutations))

        logger.debug(
            "Queued %s for trip %s (mutation %s)",
            queued.type.value,
            trip_id,
            queued.id,
        )
        return queued

    def get_pending_mutations(self) -> list[PendingMutation]:
        return self._read(
            PENDING_MUTATIONS_KEY,
            lambda raw: [PendingMutation.from_dict(item) for item in raw],
            default=[],
        )

    def get_pending_mutation_for_trip(self, trip_id: str) -> Optional[PendingMutation]:
        for mutation in self.get_pending_mutations():
            if mutation.trip_id == trip_id:
                return mutation
        return None

    def save_pending_mutations(self, mutations: list[PendingMutation]) -> None:
        self._write(PENDING_MUTATIONS_KEY, [m.to_dict() for m in mutations])

    def remove_pending_mutation(self, mutation_id: str) -> None:
        with self._lock:
            remaining = [m for m in self.get_pending_mutations() if m.id != mutation_id]
            self.save_pending_mutations(remaining)
            self.update_sync_meta(pending_count=len(remaining))

    def complete_pending_mutation(self, pushed: PendingMutation) -> Optional[PendingMutation]:
        """
        Settle a mutation the server has accepted.

        The queued entry is removed unless updates were coalesced into it
        after `pushed` was read. In that case only the fields that differ
        from what was pushed stay queued, as an UPDATE.

        Returns:
            The follow-up UPDATE left in the outbox, or None.
        """
        with self._lock:
            mutations = self.get_pending_mutations()
            for i, current in enumerate(mutations):
                if current.id == pushed.id:
                    break
            else:
                return None

            sent = pushed.data or {}
            changed = {
                k: v for k, v in (current.data or {}).items() if sent.get(k, _MISSING) != v
            }
            if changed:
                follow_up = dataclasses.replace(
                    current,
                    type=MutationType.UPDATE,
                    data=changed,
                    retry_count=0,
                )
                mutations[i] = follow_up
            else:
                follow_up = None
                del mutations[i]

            self.save_pending_mutations(mutations)
            self.update_sync_meta(pending_count=len(mutations))

        if follow_up is not None:
            logger.debug(
                "Mutation %s changed while in flight; kept %s",
                pushed.id,
                sorted(changed),
            )
        return follow_up

    def increment_mutation_retry(self, mutation_id: str) -> int:
        """
        Increment the retry counter of a queued mutation.

        Returns:
            The new retry count, or 0 if the mutation is no longer queued.
        """
        with self._lock:
            mutations = self.get_pending_mutations()
            for mutation in mutations:
                if mutation.id == mutation_id:
                    mutation.retry_count += 1
                    self.save_pending_mutations(mutations)
                    return mutation.retry_count
        return 0

    def rebind_trip_id(self, old_id: str, new_id: str) -> None:
        """Point queued mutations for old_id at new_id (after a create synced)."""
        with self._lock:
            mutations = self.get_pending_mutations()
            changed = False
            for mutation in mutations:
                if mutation.trip_id == old_id:
                    mutation.trip_id = new_id
                    changed = True
            if changed:
                self.save_pending_mutations(mutations)

    def clear_pending_mutations(self) -> None:
        with self._lock:
            self._remove(PENDING_MUTATIONS_KEY)
            self.update_sync_meta(pending_count=0)

    # ----------------------------
    # Sync metadata
    # ----------------------------
    def get_sync_meta(self) -> SyncMeta:
        return self._read(SYNC_META_KEY, SyncMeta.from_dict, default=SyncMeta())

    def update_sync_meta(self, **changes: Any) -> SyncMeta:
        unknown = set(changes) - _META_FIELDS
        if unknown:
            raise InvalidArgumentError(
                "Unknown sync meta fields",
                details={"fields": sorted(unknown)},
            )
        with self._lock:
            meta = dataclasses.replace(self.get_sync_meta(), **changes)
            self._write(SYNC_META_KEY, meta.to_dict())
            return meta

    def record_successful_sync(self) -> SyncMeta:
        return self._record_sync("success")

    def record_partial_sync(self) -> SyncMeta:
        return self._record_sync("partial")

    def record_failed_sync(self) -> SyncMeta:
        return self._record_sync("failed")

    # ----------------------------
    # Utilities
    # ----------------------------
    def clear_all(self) -> None:
        """Remove every stored document (logout/reset)."""
        with self._lock:
            for key in (TRIPS_KEY, PENDING_MUTATIONS_KEY, SYNC_META_KEY):
                self._remove(key)

    def get_storage_stats(self) -> StorageStats:
        return StorageStats(
            trip_count=len(self.load_trips()),
            pending_mutations=len(self.get_pending_mutations()),
            last_sync=self.get_sync_meta().last_sync_time,
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _record_sync(self, status: LastSyncStatus) -> SyncMeta:
        return self.update_sync_meta(last_sync_time=now_utc(), last_sync_status=status)

    def _read(self, key: str, decode: Callable[[Any], T], *, default: T) -> T:
        try:
            raw = self._backend.get(key)
            if raw is None:
                return default
            return decode(json.loads(raw))
        except Exception:
            logger.exception("Failed to read %s; treating as empty", key)
            return default

    def _write(self, key: str, payload: Any) -> None:
        try:
            self._backend.set(key, json.dumps(payload))
        except Exception as exc:
            raise StorageError(
                "Failed to write local document",
                details={"key": key},
                cause=exc,
            ) from exc

    def _remove(self, key: str) -> None:
        try:
            self._backend.remove(key)
        except Exception as exc:
            raise StorageError(
                "Failed to remove local document",
                details={"key": key},
                cause=exc,
            ) from exc
