"""TripSyncManager: composition root and app-facing sync surface."""

from __future__ import annotations

import dataclasses
import logging
import time
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from tripsync.auth import AuthProvider
from tripsync.config import SyncConfig
from tripsync.controller import TripsController
from tripsync.errors import InvalidStateError
from tripsync.models import SyncResult, SyncState, SyncStatus, Trip
from tripsync.network import NetworkMonitor, NetworkSource, SocketProbeSource
from tripsync.repository import TripRepository
from tripsync.storage import DocumentBackend, JsonFileBackend, MemoryBackend, OfflineStore
from tripsync.sync import SyncEngine
from tripsync.util.ids import new_local_trip_id
from tripsync.util.time import now_utc, to_rfc3339

logger = logging.getLogger(__name__)

_BACKGROUND_STATES = frozenset({"background", "inactive"})


class TripSyncManager:
    """
    Owns one instance of each offline component and wires the sync triggers:
    initial sync on start(), sync on network restore (inside SyncEngine),
    sync when the app returns to the foreground, and manual sync().
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        store: OfflineStore,
        monitor: NetworkMonitor,
        controller: TripsController,
        engine: Optional[SyncEngine] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._store = store
        self._monitor = monitor
        self._controller = controller
        self._engine = engine or SyncEngine(
            store,
            monitor,
            controller,
            config=config,
            clock=clock,
        )
        self._repository = TripRepository(store, monitor, controller, self._engine)
        self._app_state = "active"
        self._started = False
        self._closed = False

    @classmethod
    def create(
        cls,
        config: SyncConfig,
        *,
        auth: AuthProvider,
        backend: Optional[DocumentBackend] = None,
        network_source: Optional[NetworkSource] = None,
        session: Any = None,
    ) -> "TripSyncManager":
        """Build every component from config."""
        if backend is None:
            backend = JsonFileBackend(config.storage_dir) if config.storage_dir else MemoryBackend()
        if network_source is None:
            network_source = SocketProbeSource.from_url(
                config.base_url,
                interval=config.probe_interval,
            )

        controller = TripsController(
            config.base_url,
            auth,
            session=session,
            timeout=config.request_timeout,
            search_timeout=config.search_timeout,
        )
        return cls(
            config,
            store=OfflineStore(backend),
            monitor=NetworkMonitor(network_source),
            controller=controller,
        )

    # ----------------------------
    # Components
    # ----------------------------
    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def engine(self) -> SyncEngine:
        return self._engine

    @property
    def monitor(self) -> NetworkMonitor:
        return self._monitor

    @property
    def store(self) -> OfflineStore:
        return self._store

    @property
    def trips(self) -> TripRepository:
        return self._repository

    # ----------------------------
    # Lifecycle / triggers
    # ----------------------------
    def start(self) -> SyncState:
        """Initialize monitoring and run the initial sync when enabled."""
        self._ensure_open()
        if self._started:
            return self.sync_state

        self._engine.initialize()
        self._engine.set_auto_sync(self._config.auto_sync)
        self._started = True

        if self._config.sync_on_mount:
            self._engine.sync()
        return self.sync_state

    def on_app_state_change(self, next_state: str) -> Optional[SyncResult]:
        """
        Feed app lifecycle transitions (active/inactive/background).

        Returns:
            The SyncResult when a foreground sync ran, else None.

        Raises:
            InvalidStateError: if the manager is closed.
        """
        self._ensure_open()
        previous = self._app_state
        self._app_state = next_state

        if not self._started or not self._config.sync_on_foreground:
            return None
        if previous in _BACKGROUND_STATES and next_state == "active":
            logger.info("App foregrounded, syncing")
            return self._engine.sync()
        return None

    def subscribe(self, listener: Callable[[SyncState], None]) -> Callable[[], None]:
        return self._engine.subscribe(listener)

    def close(self) -> None:
        if self._closed:
            return
        self._engine.cleanup()
        self._monitor.cleanup()
        self._closed = True

    # ----------------------------
    # State
    # ----------------------------
    @property
    def sync_state(self) -> SyncState:
        return self._engine.get_state()

    @property
    def is_online(self) -> bool:
        return self.sync_state.is_online

    @property
    def is_offline(self) -> bool:
        return not self.sync_state.is_online

    @property
    def is_syncing(self) -> bool:
        return self.sync_state.status is SyncStatus.SYNCING

    @property
    def pending_count(self) -> int:
        return self.sync_state.pending_count

    @property
    def has_pending_changes(self) -> bool:
        return self.pending_count > 0

    @property
    def last_sync_time(self) -> Optional[datetime]:
        return self.sync_state.last_sync_time

    @property
    def error(self) -> Optional[str]:
        return self.sync_state.error

    # ----------------------------
    # Actions
    # ----------------------------
    def sync(self, force: bool = False) -> SyncResult:
        self._ensure_open()
        return self._engine.sync(force)

    def clear_pending_changes(self) -> None:
        self._engine.clear_pending()

    def get_trips_offline(self) -> list[Trip]:
        return self._store.load_trips()

    def create_trip_offline(self, trip: Trip) -> Trip:
        """
        Queue a trip for creation, assigning a local id and created_at when
        missing. Syncs right away when online.
        """
        changes: dict[str, Any] = {}
        if not trip.id:
            changes["id"] = new_local_trip_id()
        if not trip.created_at:
            changes["created_at"] = to_rfc3339(now_utc())
        if changes:
            trip = dataclasses.replace(trip, **changes)

        self._engine.queue_create(trip)
        self._sync_if_online()
        return trip

    def update_trip_offline(self, trip_id: str, updates: Mapping[str, Any]) -> None:
        self._engine.queue_update(trip_id, updates)
        self._sync_if_online()

    def delete_trip_offline(self, trip_id: str) -> None:
        self._engine.queue_delete(trip_id)
        self._sync_if_online()

    def _sync_if_online(self) -> None:
        if self._monitor.is_online():
            self._engine.sync()

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidStateError("TripSyncManager is closed")
