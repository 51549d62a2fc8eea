"""Public sync exports for tripsync."""

from __future__ import annotations

from .engine import SyncEngine, SyncListener
from .merge import merge_trips

__all__ = ["SyncEngine", "SyncListener", "merge_trips"]
