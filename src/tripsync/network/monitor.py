"""NetworkMonitor: single source of truth for connectivity."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from tripsync.util.listeners import ListenerRegistry, Unsubscribe

from .sources import NetworkSource
from .state import (
    FAIL_OPEN_STATE,
    INITIAL_STATE,
    ConnectivitySnapshot,
    NetworkState,
    NetworkStatus,
    state_from_snapshot,
)

logger = logging.getLogger(__name__)

NetworkListener = Callable[[NetworkState], None]


class NetworkMonitor:
    """
    Tracks connectivity reported by a NetworkSource.

    Policy:
        - Fail open: when the source cannot be queried during initialize(),
          the monitor reports ONLINE and stays uninitialized, so a later
          initialize() tries the source again.
        - `unknown` is reported only before the first observation.
    """

    def __init__(self, source: NetworkSource) -> None:
        self._source = source
        self._state: NetworkState = INITIAL_STATE
        self._listeners: ListenerRegistry[NetworkState] = ListenerRegistry("NetworkMonitor")
        self._detach: Optional[Unsubscribe] = None
        self._initialized = False
        self._lock = threading.RLock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def initialize(self) -> NetworkState:
        """
        Fetch the current state once and subscribe to source changes.

        A second call returns the cached state without re-subscribing.
        """
        with self._lock:
            if self._initialized:
                return self._state

            try:
                snapshot = self._source.fetch()
                self._update(snapshot)
                self._detach = self._source.add_listener(self._handle_change)
            except Exception:
                logger.warning(
                    "Network source unavailable; assuming online",
                    exc_info=True,
                )
                self._state = FAIL_OPEN_STATE
                return self._state

            self._initialized = True
            logger.info("NetworkMonitor initialized: %s", self._state.status.value)
            return self._state

    def get_state(self) -> NetworkState:
        with self._lock:
            return self._state

    @property
    def status(self) -> NetworkStatus:
        return self.get_state().status

    def is_online(self) -> bool:
        return self.get_state().status is NetworkStatus.ONLINE

    def is_offline(self) -> bool:
        return self.get_state().status is NetworkStatus.OFFLINE

    def subscribe(self, listener: NetworkListener) -> Unsubscribe:
        """
        Register a listener and invoke it once with the current state.

        Returns:
            A callable that removes the listener.
        """
        unsubscribe = self._listeners.add(listener)
        self._listeners.deliver(listener, self.get_state())
        return unsubscribe

    def refresh(self) -> NetworkState:
        """Query the source again and notify subscribers even if unchanged."""
        try:
            snapshot = self._source.fetch()
        except Exception:
            logger.exception("Network refresh failed")
            return self.get_state()

        with self._lock:
            self._update(snapshot)
            state = self._state
        self._listeners.notify(state)
        return state

    def wait_for_connection(self, timeout: float = 30.0) -> bool:
        """
        Block until the monitor reports online.

        Returns:
            True once online (immediately if already online), False if the
            timeout elapses first.
        """
        if self.is_online():
            return True

        came_online = threading.Event()

        def on_change(state: NetworkState) -> None:
            if state.status is NetworkStatus.ONLINE:
                came_online.set()

        unsubscribe = self.subscribe(on_change)
        try:
            return came_online.wait(timeout)
        finally:
            unsubscribe()

    def cleanup(self) -> None:
        """Detach from the source and drop all listeners."""
        with self._lock:
            if self._detach is not None:
                self._detach()
                self._detach = None
            self._initialized = False
        self._listeners.clear()

    # ----------------------------
    # Internals
    # ----------------------------
    def _handle_change(self, snapshot: ConnectivitySnapshot) -> None:
        with self._lock:
            self._update(snapshot)
            state = self._state
        self._listeners.notify(state)

    def _update(self, snapshot: ConnectivitySnapshot) -> None:
        self._state = state_from_snapshot(snapshot)
        logger.debug(
            "Network state: %s (%s)",
            self._state.status.value,
            self._state.type,
        )
