from __future__ import annotations

import secrets
import string
import time
import uuid

LOCAL_ID_PREFIX: str = "local_"

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def new_uuid() -> str:
    """Generate a UUID4 string."""
    return str(uuid.uuid4())


def new_mutation_id() -> str:
    """Generate a new PendingMutation ID."""
    return f"mutation_{new_uuid()}"


def new_local_trip_id() -> str:
    """
    Generate an ID for a trip created on this device.

    Format: local_<epoch millis>_<9 random chars>. The prefix is what marks
    the trip as not yet known to the server.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"{LOCAL_ID_PREFIX}{millis}_{suffix}"


def is_local_id(trip_id: str) -> bool:
    return trip_id.startswith(LOCAL_ID_PREFIX)
