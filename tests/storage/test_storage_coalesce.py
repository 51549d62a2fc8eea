import unittest
from datetime import datetime, timedelta, timezone

from tripsync.models import MutationType, PendingMutation
from tripsync.storage import coalesce_mutation

_T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _m(mid: str, mtype: MutationType, data=None, *, offset: int = 0, retries: int = 0) -> PendingMutation:
    return PendingMutation(
        id=mid,
        type=mtype,
        trip_id="t1",
        data=data,
        timestamp=_T0 + timedelta(seconds=offset),
        retry_count=retries,
    )


class TestCoalesceMutation(unittest.TestCase):
    def test_no_existing(self) -> None:
        incoming = _m("m1", MutationType.CREATE, {"destination": "Rome"})
        self.assertIs(coalesce_mutation(None, incoming), incoming)

    def test_create_then_update_stays_create(self) -> None:
        existing = _m("m1", MutationType.CREATE, {"destination": "Rome", "travelers": 2}, retries=1)
        incoming = _m("m2", MutationType.UPDATE, {"travelers": 4}, offset=10)

        out = coalesce_mutation(existing, incoming)

        self.assertEqual(out.type, MutationType.CREATE)
        self.assertEqual(out.id, "m1")
        self.assertEqual(out.retry_count, 1)
        self.assertEqual(out.data, {"destination": "Rome", "travelers": 4})
        self.assertEqual(out.timestamp, incoming.timestamp)

    def test_update_then_update_merges(self) -> None:
        existing = _m("m1", MutationType.UPDATE, {"destination": "Rome"})
        incoming = _m("m2", MutationType.UPDATE, {"budget": "low"}, offset=5)

        out = coalesce_mutation(existing, incoming)

        self.assertEqual(out.type, MutationType.UPDATE)
        self.assertEqual(out.data, {"destination": "Rome", "budget": "low"})

    def test_delete_supersedes(self) -> None:
        for prior in (MutationType.CREATE, MutationType.UPDATE):
            with self.subTest(prior=prior):
                existing = _m("m1", prior, {"destination": "Rome"})
                incoming = _m("m2", MutationType.DELETE, offset=1)
                self.assertIs(coalesce_mutation(existing, incoming), incoming)

    def test_create_after_delete_replaces(self) -> None:
        existing = _m("m1", MutationType.DELETE)
        incoming = _m("m2", MutationType.CREATE, {"destination": "Rome"}, offset=1)
        self.assertIs(coalesce_mutation(existing, incoming), incoming)

    def test_different_trips_rejected(self) -> None:
        existing = _m("m1", MutationType.UPDATE, {})
        incoming = PendingMutation(id="m2", type=MutationType.UPDATE, trip_id="t2", data={})
        with self.assertRaises(ValueError):
            coalesce_mutation(existing, incoming)


if __name__ == "__main__":
    unittest.main()
