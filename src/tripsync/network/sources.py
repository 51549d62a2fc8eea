"""
Network sources: adapters translating platform connectivity events into
ConnectivitySnapshot values for NetworkMonitor.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Optional, Protocol
from urllib.parse import urlparse

from tripsync.errors import InvalidArgumentError
from tripsync.util.listeners import ListenerRegistry, Unsubscribe

from .state import ConnectivitySnapshot

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[ConnectivitySnapshot], None]


class NetworkSource(Protocol):
    """Platform connectivity event source."""

    def fetch(self) -> ConnectivitySnapshot:
        """Query the current connectivity once."""
        ...

    def add_listener(self, callback: SnapshotCallback) -> Unsubscribe:
        """Register for change events; returns a callable that detaches."""
        ...


class ManualNetworkSource:
    """
    Source driven by the host application.

    Embedders that already receive connectivity events from their platform
    forward them with `set_state()`.
    """

    def __init__(
        self,
        is_connected: Optional[bool] = True,
        is_internet_reachable: Optional[bool] = True,
        type: str = "unknown",
    ) -> None:
        self._snapshot = ConnectivitySnapshot(is_connected, is_internet_reachable, type)
        self._listeners: ListenerRegistry[ConnectivitySnapshot] = ListenerRegistry(
            "ManualNetworkSource"
        )
        self._lock = threading.Lock()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def fetch(self) -> ConnectivitySnapshot:
        with self._lock:
            return self._snapshot

    def add_listener(self, callback: SnapshotCallback) -> Unsubscribe:
        return self._listeners.add(callback)

    def set_state(
        self,
        is_connected: Optional[bool],
        is_internet_reachable: Optional[bool] = None,
        type: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._snapshot = ConnectivitySnapshot(
                is_connected=is_connected,
                is_internet_reachable=is_internet_reachable,
                type=type if type is not None else self._snapshot.type,
            )
            snapshot = self._snapshot
        self._listeners.notify(snapshot)

    def go_online(self) -> None:
        self.set_state(True, True)

    def go_offline(self) -> None:
        self.set_state(False, False)


class SocketProbeSource:
    """
    Source that probes TCP reachability of a host in a daemon thread.

    The probe thread starts with the first listener and stops when the last
    one detaches. A snapshot is emitted only when reachability changes.
    """

    def __init__(
        self,
        host: str,
        port: int = 443,
        *,
        interval: float = 30.0,
        timeout: float = 5.0,
    ) -> None:
        if not host:
            raise InvalidArgumentError("probe host must be a non-empty string")
        self._host = host
        self._port = port
        self._interval = interval
        self._timeout = timeout

        self._listeners: ListenerRegistry[ConnectivitySnapshot] = ListenerRegistry(
            "SocketProbeSource"
        )
        self._last: Optional[ConnectivitySnapshot] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, url: str, **kwargs) -> SocketProbeSource:
        """Probe the host:port of an API base URL."""
        parsed = urlparse(url)
        if not parsed.hostname:
            raise InvalidArgumentError("URL has no host", details={"url": url})
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        return cls(parsed.hostname, port, **kwargs)

    def fetch(self) -> ConnectivitySnapshot:
        snapshot = self._probe()
        with self._lock:
            self._last = snapshot
        return snapshot

    def add_listener(self, callback: SnapshotCallback) -> Unsubscribe:
        remove = self._listeners.add(callback)
        self._start()

        def unsubscribe() -> None:
            remove()
            if len(self._listeners) == 0:
                self.stop()

        return unsubscribe

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._timeout + 1.0)
        self._thread = None

    def _start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._loop,
                daemon=True,
                name="tripsync-network-probe",
            )
            self._thread.start()
        logger.info(
            "Network probe started for %s:%d (interval=%.0fs)",
            self._host,
            self._port,
            self._interval,
        )

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            snapshot = self._probe()
            with self._lock:
                changed = snapshot != self._last
                self._last = snapshot
            if changed:
                self._listeners.notify(snapshot)

    def _probe(self) -> ConnectivitySnapshot:
        try:
            with socket.create_connection((self._host, self._port), timeout=self._timeout):
                pass
        except OSError as exc:
            logger.debug("Probe to %s:%d failed: %s", self._host, self._port, exc)
            return ConnectivitySnapshot(is_connected=False, is_internet_reachable=False)
        return ConnectivitySnapshot(is_connected=True, is_internet_reachable=True)
