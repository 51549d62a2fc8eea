"""Merging pulled server trips with the local cache."""

from __future__ import annotations

from typing import Iterable

from tripsync.models import MutationType, PendingMutation, Trip
from tripsync.util.ids import is_local_id


def merge_trips(
    local: list[Trip],
    server: list[Trip],
    pending: Iterable[PendingMutation] = (),
) -> list[Trip]:
    """
    Merge local and server trip lists.

    Rules:
        - Server records are authoritative for every id they contain.
        - Local records with a local id that the server did not return are
          kept (created offline, not synced yet).
        - Local records with a server id that the server no longer returns
          are dropped (deleted remotely).
        - Mutations still queued win over the server record: a queued
          UPDATE is applied on top of it, a queued DELETE hides it.

    Order: server order first, then unsynced local trips in local order.
    """
    queued = {m.trip_id: m for m in pending}

    merged: dict[str, Trip] = {}
    for trip in server:
        mutation = queued.get(trip.id)
        if mutation is None:
            merged[trip.id] = trip
        elif mutation.type is MutationType.DELETE:
            continue
        elif mutation.type is MutationType.UPDATE and mutation.data:
            merged[trip.id] = trip.apply_input(mutation.data)
        else:
            merged[trip.id] = trip

    for trip in local:
        if is_local_id(trip.id) and trip.id not in merged:
            merged[trip.id] = trip

    return list(merged.values())
