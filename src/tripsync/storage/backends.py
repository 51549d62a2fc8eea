"""Document backends: whole-document key/value persistence."""

from __future__ import annotations

import os
import re
import tempfile
import threading
from typing import Optional, Protocol

from tripsync.errors import InvalidArgumentError


class DocumentBackend(Protocol):
    """Key/value store of whole serialized documents."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryBackend:
    """In-process backend (tests, ephemeral sessions)."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileBackend:
    """
    One file per key under `directory`.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so a crash leaves either the old or the new document.
    """

    def __init__(self, directory: str) -> None:
        if not directory or not isinstance(directory, str):
            raise InvalidArgumentError("directory must be a non-empty string")
        self._directory = directory

    @property
    def directory(self) -> str:
        return self._directory

    def path_for(self, key: str) -> str:
        if not key:
            raise InvalidArgumentError("key must be a non-empty string")
        name = _UNSAFE_CHARS.sub("_", key.replace("/", "__"))
        return os.path.join(self._directory, f"{name}.json")

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        os.makedirs(self._directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=self._directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        if os.path.exists(path):
            os.remove(path)
