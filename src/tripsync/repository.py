"""TripRepository: online/offline routing for trip reads and writes."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from tripsync.controller import TripsController
from tripsync.errors import AuthError, NetworkError, StorageError, TripSyncError
from tripsync.models import Trip, TripStatus, validate_trip_input
from tripsync.network import NetworkMonitor
from tripsync.storage import OfflineStore
from tripsync.sync import SyncEngine, merge_trips
from tripsync.util.ids import is_local_id, new_local_trip_id
from tripsync.util.time import now_utc, to_rfc3339

logger = logging.getLogger(__name__)


class TripRepository:
    """
    Data-access facade.

    Online, writes go straight to the trips service and the local cache is
    updated best-effort. Offline, for trips that only exist locally, or for
    trips that already have a queued mutation, writes go to the OfflineStore
    and the outbox. Syncing is left to the caller.
    """

    def __init__(
        self,
        store: OfflineStore,
        monitor: NetworkMonitor,
        controller: TripsController,
        engine: SyncEngine,
    ) -> None:
        self._store = store
        self._monitor = monitor
        self._controller = controller
        self._engine = engine

    def fetch_trips(self) -> list[Trip]:
        """
        Return the user's trips.

        Offline, or when the service fails for a reason other than auth,
        the cached trips are returned instead.

        Raises:
            AuthError: if the session is not signed in.
        """
        if not self._monitor.is_online():
            return self._store.load_trips()

        try:
            server_trips = self._controller.list_trips()
        except AuthError:
            raise
        except TripSyncError:
            logger.warning("Fetching trips failed; using cache", exc_info=True)
            return self._store.load_trips()

        merged = merge_trips(
            self._store.load_trips(),
            server_trips,
            pending=self._store.get_pending_mutations(),
        )
        self._cache(lambda: self._store.save_trips(merged))
        return merged

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        if is_local_id(trip_id) or not self._monitor.is_online():
            return self._store.get_trip(trip_id)

        try:
            trip = self._controller.get_trip(trip_id)
        except NetworkError:
            cached = self._store.get_trip(trip_id)
            if cached is None:
                raise
            return cached

        self._cache(lambda: self._store.save_trip(trip))
        return trip

    def create_trip(self, trip_input: Mapping[str, Any]) -> Trip:
        validate_trip_input(trip_input)

        if not self._monitor.is_online():
            trip = Trip(
                id=new_local_trip_id(),
                created_at=to_rfc3339(now_utc()),
                status=TripStatus.DRAFT,
                **dict(trip_input),
            )
            self._engine.queue_create(trip)
            return trip

        trip = self._controller.create_trip(trip_input)
        self._cache(lambda: self._store.save_trip(trip))
        return trip

    def update_trip(self, trip_id: str, updates: Mapping[str, Any]) -> Optional[Trip]:
        validate_trip_input(updates, partial=True)

        if self._goes_through_outbox(trip_id):
            self._engine.queue_update(trip_id, updates)
            return self._store.get_trip(trip_id)

        trip = self._controller.update_trip(trip_id, updates)
        if trip is not None:
            self._cache(lambda: self._store.save_trip(trip))
        return trip

    def delete_trip(self, trip_id: str) -> None:
        if self._goes_through_outbox(trip_id):
            self._engine.queue_delete(trip_id)
            return

        self._controller.delete_trip(trip_id)
        self._cache(lambda: self._store.delete_trip(trip_id))

    def generate_itinerary(self, trip_id: str) -> dict[str, Any]:
        if not self._monitor.is_online():
            raise NetworkError(
                "Itinerary generation requires a connection",
                details={"trip_id": trip_id},
            )
        return self._controller.generate_itinerary(trip_id)

    def _goes_through_outbox(self, trip_id: str) -> bool:
        # Writes to a trip reach the server in the order they were made.
        return (
            is_local_id(trip_id)
            or not self._monitor.is_online()
            or self._store.get_pending_mutation_for_trip(trip_id) is not None
        )

    def _cache(self, write: Callable[[], None]) -> None:
        try:
            write()
        except StorageError:
            logger.exception("Local cache update failed")
