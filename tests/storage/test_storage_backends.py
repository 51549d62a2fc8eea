import os
import tempfile
import unittest
from unittest.mock import patch

from tripsync.errors import InvalidArgumentError
from tripsync.storage import JsonFileBackend, MemoryBackend


class TestMemoryBackend(unittest.TestCase):
    def test_get_set_remove(self) -> None:
        backend = MemoryBackend()
        self.assertIsNone(backend.get("k"))
        backend.set("k", "v")
        self.assertEqual(backend.get("k"), "v")
        self.assertEqual(backend.keys(), ["k"])
        backend.remove("k")
        backend.remove("k")
        self.assertIsNone(backend.get("k"))


class TestJsonFileBackend(unittest.TestCase):
    def test_roundtrip_and_path_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            backend = JsonFileBackend(os.path.join(tmp, "store"))

            self.assertIsNone(backend.get("tripsync/trips"))
            backend.set("tripsync/trips", "[]")

            path = backend.path_for("tripsync/trips")
            self.assertEqual(os.path.basename(path), "tripsync__trips.json")
            self.assertTrue(os.path.exists(path))
            self.assertEqual(backend.get("tripsync/trips"), "[]")

            backend.set("tripsync/trips", '[{"id": "t1"}]')
            self.assertEqual(backend.get("tripsync/trips"), '[{"id": "t1"}]')
            self.assertEqual(
                [n for n in os.listdir(backend.directory) if n.startswith(".tmp-")],
                [],
            )

            backend.remove("tripsync/trips")
            self.assertIsNone(backend.get("tripsync/trips"))

    def test_failed_replace_keeps_old_document(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            backend = JsonFileBackend(tmp)
            backend.set("k", "old")

            with patch("os.replace", side_effect=OSError("disk full")):
                with self.assertRaises(OSError):
                    backend.set("k", "new")

            self.assertEqual(backend.get("k"), "old")
            self.assertEqual([n for n in os.listdir(tmp) if n.startswith(".tmp-")], [])

    def test_invalid_arguments(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            JsonFileBackend("")
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(InvalidArgumentError):
                JsonFileBackend(tmp).path_for("")


if __name__ == "__main__":
    unittest.main()
