import itertools
import threading
import unittest
from typing import Any, Callable, Mapping, Optional

from tripsync.config import SyncConfig
from tripsync.errors import ApiError, AuthError, NetworkError
from tripsync.models import MutationType, SyncStatus, Trip
from tripsync.network import ManualNetworkSource, NetworkMonitor
from tripsync.storage import MemoryBackend, OfflineStore
from tripsync.sync import SyncEngine


def _trip(trip_id: str, destination: str = "Rome") -> Trip:
    return Trip(
        id=trip_id,
        destination=destination,
        start_date="2024-06-01",
        end_date="2024-06-03",
        travelers=2,
        traveler_type="couple",
        vibes=["food"],
    )


class _FakeTripsController:
    """In-memory stand-in for TripsController."""

    def __init__(self) -> None:
        self.trips: dict[str, Trip] = {}
        self.calls: list[tuple[str, Any]] = []
        self.fail_with: dict[str, Exception] = {}
        self.list_gate: Optional[threading.Event] = None
        self.list_entered = threading.Event()
        self.during_create: Optional[Callable[[], None]] = None
        self._ids = itertools.count(1)

    def _maybe_fail(self, op: str) -> None:
        exc = self.fail_with.get(op)
        if exc is not None:
            raise exc

    def list_trips(self) -> list[Trip]:
        self.calls.append(("list", None))
        self.list_entered.set()
        if self.list_gate is not None:
            self.list_gate.wait(5.0)
        self._maybe_fail("list")
        return list(self.trips.values())

    def create_trip(self, payload: Mapping[str, Any]) -> Trip:
        self.calls.append(("create", dict(payload)))
        self._maybe_fail("create")
        if self.during_create is not None:
            hook, self.during_create = self.during_create, None
            hook()
        trip = Trip(id=f"srv_{next(self._ids)}", **dict(payload))
        self.trips[trip.id] = trip
        return trip

    def update_trip(self, trip_id: str, updates: Mapping[str, Any]) -> Optional[Trip]:
        self.calls.append(("update", trip_id))
        self._maybe_fail("update")
        trip = self.trips[trip_id].apply_input(updates)
        self.trips[trip_id] = trip
        return trip

    def delete_trip(self, trip_id: str) -> bool:
        self.calls.append(("delete", trip_id))
        self._maybe_fail("delete")
        return self.trips.pop(trip_id, None) is not None


class _EngineTestBase(unittest.TestCase):
    def setUp(self) -> None:
        self.now = 1000.0
        self.source = ManualNetworkSource(True, True)
        self.monitor = NetworkMonitor(self.source)
        self.store = OfflineStore(MemoryBackend())
        self.controller = _FakeTripsController()
        self.engine = SyncEngine(
            self.store,
            self.monitor,
            self.controller,  # type: ignore[arg-type]
            config=SyncConfig(auto_sync=False),
            clock=lambda: self.now,
        )
        self.engine.initialize()

    def tearDown(self) -> None:
        self.engine.cleanup()

    def _server_ops(self) -> list[str]:
        return [op for op, _ in self.controller.calls if op != "list"]


class TestSyncEngineGuards(_EngineTestBase):
    def test_rate_limited_within_interval(self) -> None:
        first = self.engine.sync()
        self.now += 1.0
        second = self.engine.sync()

        self.assertTrue(first.success)
        self.assertTrue(second.skipped)
        self.assertFalse(second.success)
        self.assertEqual(second.synced, 0)
        self.assertEqual(len(self.controller.calls), 1)

    def test_force_bypasses_rate_limit(self) -> None:
        self.engine.sync()
        self.now += 1.0
        result = self.engine.sync(force=True)
        self.assertFalse(result.skipped)
        self.assertEqual(len(self.controller.calls), 2)

    def test_sync_allowed_after_interval(self) -> None:
        self.engine.sync()
        self.now += 5.0
        self.assertFalse(self.engine.sync().skipped)

    def test_concurrent_call_is_skipped(self) -> None:
        self.controller.list_gate = threading.Event()
        results = []
        worker = threading.Thread(target=lambda: results.append(self.engine.sync()))
        worker.start()
        try:
            self.assertTrue(self.controller.list_entered.wait(5.0))
            self.assertTrue(self.engine.is_syncing)
            concurrent = self.engine.sync(force=True)
        finally:
            self.controller.list_gate.set()
            worker.join(5.0)

        self.assertTrue(concurrent.skipped)
        self.assertEqual(concurrent.synced, 0)
        self.assertTrue(results[0].success)
        self.assertFalse(self.engine.is_syncing)

    def test_offline_sync_reports_offline(self) -> None:
        self.source.go_offline()

        result = self.engine.sync(force=True)

        self.assertFalse(result.success)
        self.assertEqual([e.error for e in result.errors], ["Offline"])
        state = self.engine.get_state()
        self.assertEqual(state.status, SyncStatus.OFFLINE)
        self.assertFalse(state.is_online)
        self.assertEqual(state.error, "No network connection")
        self.assertEqual(self.controller.calls, [])


class TestSyncEnginePush(_EngineTestBase):
    def test_mutations_pushed_in_timestamp_order(self) -> None:
        self.controller.trips["srv_a"] = _trip("srv_a")
        self.controller.trips["srv_b"] = _trip("srv_b")
        self.engine.queue_delete("srv_b")
        self.engine.queue_update("srv_a", {"destination": "Milan"})

        result = self.engine.sync(force=True)

        self.assertEqual(result.synced, 2)
        self.assertEqual(self._server_ops(), ["delete", "update"])
        self.assertEqual(self.store.get_pending_mutations(), [])
        self.assertEqual(self.engine.get_state().pending_count, 0)

    def test_retry_ceiling_drops_mutation(self) -> None:
        self.controller.trips["srv_a"] = _trip("srv_a")
        self.controller.fail_with["update"] = NetworkError("timeout")
        self.engine.queue_update("srv_a", {"destination": "Milan"})

        first = self.engine.sync(force=True)
        second = self.engine.sync(force=True)
        self.assertEqual(self.store.get_pending_mutations()[0].retry_count, 2)
        self.assertEqual(self.engine.get_state().status, SyncStatus.ERROR)
        self.assertEqual(self.engine.get_state().error, "1 items failed to sync")

        with self.assertLogs("tripsync.sync.engine", level="WARNING"):
            third = self.engine.sync(force=True)

        for result in (first, second, third):
            self.assertFalse(result.success)
            self.assertEqual(result.failed, 1)
        self.assertTrue(third.errors[0].error.startswith("Max retries exceeded"))
        self.assertEqual(self.store.get_pending_mutations(), [])
        self.assertEqual(self.store.get_sync_meta().last_sync_status, "partial")

    def test_failure_does_not_block_other_mutations(self) -> None:
        self.controller.trips["srv_a"] = _trip("srv_a")
        self.controller.fail_with["delete"] = ApiError("boom", details={"status_code": 400})
        self.engine.queue_delete("srv_x")
        self.engine.queue_update("srv_a", {"budget": "low"})

        result = self.engine.sync(force=True)

        self.assertEqual((result.synced, result.failed), (1, 1))
        remaining = self.store.get_pending_mutations()
        self.assertEqual([m.type for m in remaining], [MutationType.DELETE])

    def test_delete_of_missing_server_trip_succeeds(self) -> None:
        self.engine.queue_delete("srv_missing")
        result = self.engine.sync(force=True)
        self.assertTrue(result.success)
        self.assertEqual(result.synced, 1)

    def test_delete_twice_is_idempotent(self) -> None:
        self.controller.trips["srv_a"] = _trip("srv_a")

        self.engine.queue_delete("srv_a")
        first = self.engine.sync(force=True)
        self.engine.queue_delete("srv_a")
        second = self.engine.sync(force=True)

        self.assertTrue(first.success)
        self.assertTrue(second.success)
        self.assertEqual(self._server_ops(), ["delete", "delete"])
        self.assertEqual(self.store.get_pending_mutations(), [])

    def test_delete_of_local_trip_skips_network(self) -> None:
        self.store.save_trip(_trip("local_9"))
        self.engine.queue_delete("local_9")

        result = self.engine.sync(force=True)

        self.assertEqual(result.synced, 1)
        self.assertEqual(self._server_ops(), [])

    def test_create_then_delete_offline_never_reaches_server(self) -> None:
        self.engine.queue_create(_trip("local_1"))
        self.engine.queue_delete("local_1")

        self.assertEqual(len(self.store.get_pending_mutations()), 1)
        self.engine.sync(force=True)

        self.assertEqual(self._server_ops(), [])
        self.assertEqual(self.store.load_trips(), [])

    def test_create_with_coalesced_update(self) -> None:
        self.engine.queue_create(_trip("local_1"))
        self.engine.queue_update("local_1", {"travelers": 5})

        result = self.engine.sync(force=True)

        self.assertEqual(result.synced, 1)
        op, payload = self.controller.calls[0]
        self.assertEqual(op, "create")
        self.assertEqual(payload["travelers"], 5)
        self.assertEqual(self.store.load_trips()[0].travelers, 5)


class TestSyncEngineInFlightWrites(_EngineTestBase):
    def test_update_queued_during_create_is_kept(self) -> None:
        self.engine.queue_create(_trip("local_1"))
        self.controller.during_create = lambda: self.engine.queue_update(
            "local_1", {"travelers": 7}
        )

        first = self.engine.sync(force=True)

        server_id = first.id_map["local_1"]
        pending = self.store.get_pending_mutations()
        self.assertEqual(
            [(m.type, m.trip_id, m.data) for m in pending],
            [(MutationType.UPDATE, server_id, {"travelers": 7})],
        )
        self.assertEqual(
            [(t.id, t.travelers) for t in self.store.load_trips()],
            [(server_id, 7)],
        )

        self.engine.sync(force=True)

        self.assertEqual(self.store.get_pending_mutations(), [])
        self.assertIn(("update", server_id), self.controller.calls)
        self.assertEqual(self.controller.trips[server_id].travelers, 7)
        self.assertEqual(
            [(t.id, t.travelers) for t in self.store.load_trips()],
            [(server_id, 7)],
        )

    def test_delete_queued_during_create_reaches_server(self) -> None:
        self.engine.queue_create(_trip("local_1"))
        self.controller.during_create = lambda: self.engine.queue_delete("local_1")

        first = self.engine.sync(force=True)

        server_id = first.id_map["local_1"]
        self.assertEqual(self.store.load_trips(), [])
        pending = self.store.get_pending_mutations()
        self.assertEqual([(m.type, m.trip_id) for m in pending], [(MutationType.DELETE, server_id)])

        self.engine.sync(force=True)

        self.assertEqual(self.controller.trips, {})
        self.assertEqual(self.store.get_pending_mutations(), [])
        self.assertEqual(self.store.load_trips(), [])

    def test_update_coalesced_into_in_flight_update_is_kept(self) -> None:
        self.controller.trips["srv_a"] = _trip("srv_a")
        self.store.save_trip(_trip("srv_a"))
        self.engine.queue_update("srv_a", {"destination": "Milan"})

        original_update = self.controller.update_trip

        def update_and_edit(trip_id, updates):
            trip = original_update(trip_id, updates)
            self.engine.queue_update("srv_a", {"budget": "low"})
            return trip

        self.controller.update_trip = update_and_edit  # type: ignore[method-assign]
        self.engine.sync(force=True)

        pending = self.store.get_pending_mutations()
        self.assertEqual([m.data for m in pending], [{"budget": "low"}])
        trip = self.store.get_trip("srv_a")
        self.assertEqual((trip.destination, trip.budget), ("Milan", "low"))


class TestSyncEnginePull(_EngineTestBase):
    def test_pull_merges_server_trips(self) -> None:
        self.store.save_trips([_trip("srv_old"), _trip("local_7")])
        self.controller.trips["srv_new"] = _trip("srv_new", "Paris")

        self.engine.sync(force=True)

        self.assertEqual([t.id for t in self.store.load_trips()], ["srv_new", "local_7"])

    def test_unauthenticated_pull_is_skipped(self) -> None:
        self.store.save_trips([_trip("srv_1")])
        self.controller.fail_with["list"] = AuthError("Unauthorized")

        result = self.engine.sync(force=True)

        self.assertTrue(result.success)
        self.assertEqual([t.id for t in self.store.load_trips()], ["srv_1"])
        self.assertEqual(self.engine.get_state().status, SyncStatus.SUCCESS)

    def test_pull_network_error_sets_error_state(self) -> None:
        self.controller.fail_with["list"] = NetworkError("reset")
        with self.assertLogs("tripsync.sync.engine", level="ERROR"):
            result = self.engine.sync(force=True)

        self.assertFalse(result.success)
        self.assertEqual(self.engine.get_state().status, SyncStatus.ERROR)
        self.assertEqual(self.store.get_sync_meta().last_sync_status, "failed")
        self.assertFalse(self.engine.is_syncing)


class TestSyncEngineState(_EngineTestBase):
    def test_subscribe_receives_transitions(self) -> None:
        seen: list[SyncStatus] = []
        self.engine.subscribe(lambda s: seen.append(s.status))

        self.engine.sync(force=True)

        self.assertEqual(seen, [SyncStatus.IDLE, SyncStatus.SYNCING, SyncStatus.SUCCESS])
        self.assertIsNotNone(self.engine.get_state().last_sync_time)

    def test_network_transitions_update_status(self) -> None:
        self.source.go_offline()
        self.assertEqual(self.engine.get_state().status, SyncStatus.OFFLINE)
        self.source.go_online()
        self.assertEqual(self.engine.get_state().status, SyncStatus.IDLE)
        self.assertEqual(self.controller.calls, [])

    def test_reconnect_triggers_auto_sync(self) -> None:
        self.engine.set_auto_sync(True)
        self.engine.queue_delete("srv_1")
        self.source.go_offline()

        self.source.go_online()

        self.assertIn(("delete", "srv_1"), self.controller.calls)
        self.assertEqual(self.engine.get_state().status, SyncStatus.SUCCESS)

    def test_queue_updates_pending_count(self) -> None:
        self.engine.queue_create(_trip("local_1"))
        self.assertEqual(self.engine.get_state().pending_count, 1)
        self.engine.clear_pending()
        self.assertEqual(self.engine.get_state().pending_count, 0)


class TestEndToEnd(_EngineTestBase):
    def test_offline_create_then_sync(self) -> None:
        self.source.go_offline()

        self.engine.queue_create(_trip("local_1", "Rome"))

        self.assertEqual([t.id for t in self.store.load_trips()], ["local_1"])
        pending = self.store.get_pending_mutations()
        self.assertEqual([m.type for m in pending], [MutationType.CREATE])

        self.source.go_online()
        result = self.engine.sync(force=True)

        self.assertEqual(self.store.get_pending_mutations(), [])
        server_id = result.id_map["local_1"]
        self.assertFalse(server_id.startswith("local_"))
        trips = self.store.load_trips()
        self.assertEqual([t.id for t in trips], [server_id])
        self.assertEqual(trips[0].destination, "Rome")
        self.assertEqual(self.engine.get_state().status, SyncStatus.SUCCESS)


if __name__ == "__main__":
    unittest.main()
