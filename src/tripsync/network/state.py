"""Connectivity value types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NetworkStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ConnectivitySnapshot:
    """
    Raw observation reported by a NetworkSource.

    `is_internet_reachable` is None when the platform has not determined
    reachability yet.
    """

    is_connected: Optional[bool]
    is_internet_reachable: Optional[bool] = None
    type: str = "unknown"


@dataclass(frozen=True, slots=True)
class NetworkState:
    """Derived connectivity state held by NetworkMonitor."""

    status: NetworkStatus
    is_connected: bool
    is_internet_reachable: Optional[bool]
    type: str = "unknown"
    details: Optional[ConnectivitySnapshot] = None

    @property
    def is_online(self) -> bool:
        return self.status is NetworkStatus.ONLINE


INITIAL_STATE = NetworkState(
    status=NetworkStatus.UNKNOWN,
    is_connected=True,
    is_internet_reachable=None,
)

# Used when the platform cannot be queried at all.
FAIL_OPEN_STATE = NetworkState(
    status=NetworkStatus.ONLINE,
    is_connected=True,
    is_internet_reachable=True,
)


def derive_status(snapshot: ConnectivitySnapshot) -> NetworkStatus:
    """
    Derive a NetworkStatus from a platform observation.

    - not connected -> OFFLINE
    - connected, reachability explicitly False -> OFFLINE
    - connected, reachability True or undetermined -> ONLINE
    """
    if not snapshot.is_connected:
        return NetworkStatus.OFFLINE
    if snapshot.is_internet_reachable is False:
        return NetworkStatus.OFFLINE
    return NetworkStatus.ONLINE


def state_from_snapshot(snapshot: ConnectivitySnapshot) -> NetworkState:
    return NetworkState(
        status=derive_status(snapshot),
        is_connected=bool(snapshot.is_connected),
        is_internet_reachable=snapshot.is_internet_reachable,
        type=snapshot.type,
        details=snapshot,
    )
