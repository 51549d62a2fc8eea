"""SyncEngine: push-then-pull reconciliation of the outbox and trip cache."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional

from tripsync.config import SyncConfig
from tripsync.controller import TripsController
from tripsync.errors import AuthError, InvalidArgumentError, StorageError
from tripsync.models import (
    MutationType,
    PendingMutation,
    SyncError,
    SyncResult,
    SyncState,
    SyncStatus,
    Trip,
    trip_to_input,
    validate_trip_input,
)
from tripsync.network import NetworkMonitor, NetworkState
from tripsync.storage import OfflineStore
from tripsync.util.ids import is_local_id
from tripsync.util.listeners import ListenerRegistry, Unsubscribe

from .merge import merge_trips

logger = logging.getLogger(__name__)

SyncListener = Callable[[SyncState], None]


class SyncEngine:
    """
    Reconciles the local OfflineStore with the trips service.

    Policy:
        - One sync at a time: a call made while a sync runs returns a
          zero-effect result instead of queueing another run.
        - Non-forced calls within `min_sync_interval` of the previous attempt
          return a zero-effect result.
        - sync() never raises; failures end up in SyncResult and SyncState.
        - SyncState is only changed here; subscribers get immutable snapshots.
    """

    def __init__(
        self,
        store: OfflineStore,
        monitor: NetworkMonitor,
        controller: TripsController,
        *,
        config: Optional[SyncConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._monitor = monitor
        self._controller = controller
        self._config = config or SyncConfig()
        self._clock = clock

        self._state = SyncState()
        self._listeners: ListenerRegistry[SyncState] = ListenerRegistry("SyncEngine")
        self._state_lock = threading.Lock()

        self._guard = threading.Lock()
        self._outbox_lock = threading.RLock()
        self._sync_in_progress = False
        self._last_sync_attempt: Optional[float] = None

        self._auto_sync = self._config.auto_sync
        self._network_unsubscribe: Optional[Unsubscribe] = None

    # ----------------------------
    # Lifecycle
    # ----------------------------
    def initialize(self) -> SyncState:
        """Start network monitoring and load persisted sync metadata."""
        self._monitor.initialize()

        meta = self._store.get_sync_meta()
        online = self._monitor.is_online()
        self._set_state(
            last_sync_time=meta.last_sync_time,
            pending_count=meta.pending_count,
            is_online=online,
            status=SyncStatus.IDLE if online else SyncStatus.OFFLINE,
        )

        if self._network_unsubscribe is None:
            self._network_unsubscribe = self._monitor.subscribe(self._on_network_change)

        logger.info("SyncEngine initialized: %s", self._state)
        return self.get_state()

    def cleanup(self) -> None:
        if self._network_unsubscribe is not None:
            self._network_unsubscribe()
            self._network_unsubscribe = None
        self._listeners.clear()

    def set_auto_sync(self, enabled: bool) -> None:
        self._auto_sync = enabled

    @property
    def auto_sync(self) -> bool:
        return self._auto_sync

    # ----------------------------
    # State broadcast
    # ----------------------------
    def get_state(self) -> SyncState:
        with self._state_lock:
            return self._state

    @property
    def is_syncing(self) -> bool:
        return self._sync_in_progress

    def subscribe(self, listener: SyncListener) -> Unsubscribe:
        """Register a listener; it is called at once with the current state."""
        unsubscribe = self._listeners.add(listener)
        self._listeners.deliver(listener, self.get_state())
        return unsubscribe

    # ----------------------------
    # Sync
    # ----------------------------
    def sync(self, force: bool = False) -> SyncResult:
        """
        Push pending mutations, then pull and merge server trips.

        Args:
            force: Bypass the minimum interval between attempts.
        """
        now = self._clock()
        with self._guard:
            if self._sync_in_progress:
                logger.debug("Sync already in progress")
                return SyncResult(success=False, skipped=True)

            if (
                not force
                and self._last_sync_attempt is not None
                and now - self._last_sync_attempt < self._config.min_sync_interval
            ):
                logger.debug("Sync rate limited")
                return SyncResult(success=False, skipped=True)

            online = self._monitor.is_online()
            if online:
                self._sync_in_progress = True
                self._last_sync_attempt = now

        if not online:
            self._set_state(
                status=SyncStatus.OFFLINE,
                is_online=False,
                error="No network connection",
            )
            return SyncResult(success=False, errors=[SyncError("", "Offline")])

        self._set_state(status=SyncStatus.SYNCING, is_online=True, error=None)
        result = SyncResult(success=True)

        try:
            self._push(result)
            self._pull()

            if result.failed:
                meta = self._store.record_partial_sync()
            else:
                meta = self._store.record_successful_sync()

            result.success = result.failed == 0
            self._set_state(
                status=SyncStatus.ERROR if result.failed else SyncStatus.SUCCESS,
                last_sync_time=meta.last_sync_time,
                pending_count=len(self._store.get_pending_mutations()),
                error=f"{result.failed} items failed to sync" if result.failed else None,
            )
            logger.info(
                "Sync complete: synced=%d failed=%d",
                result.synced,
                result.failed,
            )
        except Exception as exc:
            logger.exception("Sync failed")
            result.success = False
            result.errors.append(SyncError("", str(exc)))
            self._set_state(status=SyncStatus.ERROR, error=str(exc))
            try:
                self._store.record_failed_sync()
            except StorageError:
                logger.exception("Could not record failed sync")
        finally:
            with self._guard:
                self._sync_in_progress = False

        return result

    # ----------------------------
    # Outbox writes
    # ----------------------------
    def queue_create(self, trip: Trip) -> PendingMutation:
        """Store the trip locally and queue its creation."""
        with self._outbox_lock:
            self._store.save_trip(trip)
            mutation = self._store.add_pending_mutation(
                MutationType.CREATE,
                trip.id,
                trip_to_input(trip),
            )
        self._refresh_pending_count()
        return mutation

    def queue_update(self, trip_id: str, updates: Mapping[str, Any]) -> PendingMutation:
        """Apply updates to the local copy (if cached) and queue them."""
        validate_trip_input(updates, partial=True)
        with self._outbox_lock:
            trip = self._store.get_trip(trip_id)
            if trip is not None:
                self._store.save_trip(trip.apply_input(updates))
            mutation = self._store.add_pending_mutation(MutationType.UPDATE, trip_id, updates)
        self._refresh_pending_count()
        return mutation

    def queue_delete(self, trip_id: str) -> PendingMutation:
        """Remove the local copy and queue the deletion."""
        with self._outbox_lock:
            self._store.delete_trip(trip_id)
            mutation = self._store.add_pending_mutation(MutationType.DELETE, trip_id)
        self._refresh_pending_count()
        return mutation

    def clear_pending(self) -> None:
        self._store.clear_pending_mutations()
        self._set_state(pending_count=0)

    def clear_all(self) -> None:
        """Drop every local document (logout)."""
        self._store.clear_all()
        self._set_state(
            status=SyncStatus.IDLE,
            last_sync_time=None,
            pending_count=0,
            error=None,
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _push(self, result: SyncResult) -> None:
        mutations = sorted(self._store.get_pending_mutations(), key=lambda m: m.timestamp)
        if not mutations:
            return

        logger.info("Pushing %d pending mutations", len(mutations))
        for mutation in mutations:
            try:
                created = self._execute_mutation(mutation)
            except StorageError:
                raise
            except Exception as exc:
                self._record_failure(mutation, exc, result)
                continue

            # Writes queued while the request was in flight must survive settling.
            with self._outbox_lock:
                self._store.complete_pending_mutation(mutation)
                if created is not None and is_local_id(mutation.trip_id):
                    self._rebind_created_trip(mutation.trip_id, created, result)
            result.synced += 1
            logger.debug("Mutation %s synced", mutation.id)

    def _record_failure(self, mutation: PendingMutation, exc: Exception, result: SyncResult) -> None:
        result.failed += 1
        with self._outbox_lock:
            retries = self._store.increment_mutation_retry(mutation.id)
            dropped = retries >= self._config.max_retry_count
            if dropped:
                self._store.remove_pending_mutation(mutation.id)

        if dropped:
            logger.warning(
                "Dropping mutation %s (%s %s) after %d attempts: %s",
                mutation.id,
                mutation.type.value,
                mutation.trip_id,
                retries,
                exc,
            )
            result.errors.append(SyncError(mutation.id, f"Max retries exceeded: {exc}"))
            return

        logger.debug("Mutation %s failed (attempt %d): %s", mutation.id, retries, exc)
        result.errors.append(SyncError(mutation.id, str(exc)))

    def _execute_mutation(self, mutation: PendingMutation) -> Optional[Trip]:
        """Send one mutation; returns the server record for a create."""
        if mutation.type is MutationType.CREATE:
            payload = mutation.data
            if payload is None:
                local = self._store.get_trip(mutation.trip_id)
                if local is None:
                    raise InvalidArgumentError(
                        "Create mutation has no payload",
                        details={"trip_id": mutation.trip_id},
                    )
                payload = trip_to_input(local)
            return self._controller.create_trip(payload)

        if mutation.type is MutationType.UPDATE:
            self._controller.update_trip(mutation.trip_id, mutation.data or {})
            return None

        if mutation.type is MutationType.DELETE:
            # A trip that never reached the server has nothing to delete remotely.
            if not is_local_id(mutation.trip_id):
                self._controller.delete_trip(mutation.trip_id)
            return None

        raise InvalidArgumentError("Unsupported mutation type", details={"type": mutation.type})

    def _rebind_created_trip(self, local_id: str, server_trip: Trip, result: SyncResult) -> None:
        """Swap a local trip for its server record, keeping edits still queued for it."""
        pending = self._store.get_pending_mutation_for_trip(local_id)

        if pending is None or pending.type is not MutationType.DELETE:
            trip = server_trip
            if pending is not None and pending.type is MutationType.UPDATE and pending.data:
                trip = server_trip.apply_input(pending.data)
            self._store.replace_trip(local_id, trip)

        self._store.rebind_trip_id(local_id, server_trip.id)
        result.id_map[local_id] = server_trip.id
        logger.info("Trip %s is now %s", local_id, server_trip.id)

    def _pull(self) -> None:
        try:
            server_trips = self._controller.list_trips()
        except AuthError:
            logger.info("Not authenticated, skipping pull")
            return

        with self._outbox_lock:
            merged = merge_trips(
                self._store.load_trips(),
                server_trips,
                pending=self._store.get_pending_mutations(),
            )
            self._store.save_trips(merged)
        logger.info("Pulled %d trips from server", len(server_trips))

    def _on_network_change(self, network: NetworkState) -> None:
        was_offline = not self.get_state().is_online
        online = network.is_online

        changes: dict[str, Any] = {"is_online": online}
        status = self.get_state().status
        if not online and status is not SyncStatus.SYNCING:
            changes["status"] = SyncStatus.OFFLINE
        elif online and status is SyncStatus.OFFLINE:
            changes["status"] = SyncStatus.IDLE
        self._set_state(**changes)

        if was_offline and online and self._auto_sync:
            logger.info("Network restored, triggering sync")
            self.sync()

    def _refresh_pending_count(self) -> None:
        self._set_state(pending_count=self._store.get_sync_meta().pending_count)

    def _set_state(self, **changes: Any) -> None:
        with self._state_lock:
            self._state = dataclasses.replace(self._state, **changes)
            state = self._state
        self._listeners.notify(state)
