"""Outbox coalescing rules."""

from __future__ import annotations

import dataclasses
from typing import Optional

from tripsync.models import MutationType, PendingMutation


def coalesce_mutation(
    existing: Optional[PendingMutation],
    incoming: PendingMutation,
) -> PendingMutation:
    """
    Merge an incoming mutation into the one already queued for the same trip.

    Rules:
        - no existing entry -> incoming
        - incoming DELETE -> incoming (delete supersedes create/update)
        - CREATE + UPDATE -> CREATE with merged payload, refreshed timestamp
        - UPDATE + UPDATE -> UPDATE with merged payload (incoming keys win),
          refreshed timestamp
        - anything else (e.g. DELETE + CREATE) -> incoming

    Merged entries keep the existing id and retry_count.
    """
    if existing is None:
        return incoming

    if existing.trip_id != incoming.trip_id:
        raise ValueError("Cannot coalesce mutations for different trips")

    if incoming.type is MutationType.DELETE:
        return incoming

    if incoming.type is MutationType.UPDATE and existing.type in (
        MutationType.CREATE,
        MutationType.UPDATE,
    ):
        merged = dict(existing.data or {})
        merged.update(incoming.data or {})
        return dataclasses.replace(
            existing,
            data=merged,
            timestamp=incoming.timestamp,
        )

    return incoming
