from .ids import LOCAL_ID_PREFIX, is_local_id, new_local_trip_id, new_mutation_id, new_uuid
from .listeners import ListenerRegistry
from .time import now_utc, normalize_dt, parse_rfc3339, to_rfc3339

__all__ = [
    "new_uuid",
    "new_mutation_id",
    "new_local_trip_id",
    "is_local_id",
    "LOCAL_ID_PREFIX",
    "ListenerRegistry",
    "now_utc",
    "parse_rfc3339",
    "to_rfc3339",
    "normalize_dt",
]
