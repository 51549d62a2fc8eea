import os
import tempfile
import unittest

from tripsync import (
    ManualNetworkSource,
    StaticAuthProvider,
    SyncConfig,
    SyncStatus,
    TripSyncManager,
)


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


@unittest.skipUnless(_env("TRIPSYNC_IT_BASE_URL"), "TRIPSYNC_IT_BASE_URL not set")
class TestTripsServiceIntegration(unittest.TestCase):
    """
    Integration test against a running trips service.

    Required env vars:
        - TRIPSYNC_IT_BASE_URL: service root, e.g. http://localhost:3000
        - TRIPSYNC_IT_TOKEN: bearer token of a disposable test user
    """

    def test_offline_create_then_sync_smoke(self) -> None:
        token = _env("TRIPSYNC_IT_TOKEN")
        if not token:
            self.skipTest("TRIPSYNC_IT_TOKEN not set")

        source = ManualNetworkSource(False, False)
        with tempfile.TemporaryDirectory() as tmp:
            mgr = TripSyncManager.create(
                SyncConfig(
                    base_url=_env("TRIPSYNC_IT_BASE_URL"),
                    storage_dir=tmp,
                    auto_sync=False,
                ),
                auth=StaticAuthProvider(token),
                network_source=source,
            )
            try:
                mgr.start()
                local = mgr.trips.create_trip(
                    {
                        "destination": "tripsync_it_tmp",
                        "start_date": "2030-01-01",
                        "end_date": "2030-01-02",
                        "travelers": 1,
                        "traveler_type": "solo",
                        "vibes": ["test"],
                    }
                )
                self.assertTrue(local.id.startswith("local_"))

                source.go_online()
                result = mgr.sync(force=True)

                self.assertTrue(result.success, result.errors)
                server_id = result.id_map[local.id]
                self.assertEqual(mgr.sync_state.status, SyncStatus.SUCCESS)
                self.assertIsNotNone(mgr.store.get_trip(server_id))

                # cleanup
                mgr.trips.delete_trip(server_id)
            finally:
                mgr.close()


if __name__ == "__main__":
    unittest.main()
