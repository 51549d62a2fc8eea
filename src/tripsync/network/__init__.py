"""Public network exports for tripsync."""

from __future__ import annotations

from .monitor import NetworkListener, NetworkMonitor
from .sources import ManualNetworkSource, NetworkSource, SocketProbeSource
from .state import (
    ConnectivitySnapshot,
    NetworkState,
    NetworkStatus,
    derive_status,
    state_from_snapshot,
)

__all__ = [
    "NetworkMonitor",
    "NetworkListener",
    "NetworkSource",
    "ManualNetworkSource",
    "SocketProbeSource",
    "ConnectivitySnapshot",
    "NetworkState",
    "NetworkStatus",
    "derive_status",
    "state_from_snapshot",
]
