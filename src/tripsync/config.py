"""Runtime configuration for tripsync."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from tripsync.errors import InvalidArgumentError

ENV_PREFIX = "TRIPSYNC_"


@dataclass(frozen=True)
class SyncConfig:
    """
    Settings shared by the controller, sync engine and manager.

    Attributes:
        base_url: Trips service root, e.g. https://api.example.com
        request_timeout: Per-request timeout for trip CRUD (seconds).
        search_timeout: Timeout for itinerary generation calls (seconds).
        min_sync_interval: Non-forced syncs closer than this are no-ops.
        max_retry_count: A mutation failing this many times is dropped.
        auto_sync: Sync when the network comes back.
        sync_on_foreground: Sync when the app returns to the foreground.
        sync_on_mount: Sync once from TripSyncManager.start().
        storage_dir: Directory for JSON documents; None keeps them in memory.
        probe_interval: Seconds between connectivity probes.
    """

    base_url: str = "http://localhost:3000"
    request_timeout: float = 20.0
    search_timeout: float = 90.0
    min_sync_interval: float = 5.0
    max_retry_count: int = 3
    auto_sync: bool = True
    sync_on_foreground: bool = True
    sync_on_mount: bool = True
    storage_dir: Optional[str] = None
    probe_interval: float = 30.0

    def __post_init__(self) -> None:
        if not self.base_url:
            raise InvalidArgumentError("base_url must be a non-empty string")
        for name in ("request_timeout", "search_timeout", "probe_interval"):
            if getattr(self, name) <= 0:
                raise InvalidArgumentError(f"{name} must be positive")
        if self.min_sync_interval < 0:
            raise InvalidArgumentError("min_sync_interval must not be negative")
        if self.max_retry_count < 1:
            raise InvalidArgumentError("max_retry_count must be at least 1")

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        *,
        dotenv_path: Optional[str] = None,
    ) -> SyncConfig:
        """
        Build a config from TRIPSYNC_* variables.

        When `env` is None, a .env file is loaded into os.environ first
        (existing variables win) and os.environ is read.
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        kwargs: dict[str, object] = {}
        text_fields = {"BASE_URL": "base_url", "STORAGE_DIR": "storage_dir"}
        float_fields = {
            "REQUEST_TIMEOUT": "request_timeout",
            "SEARCH_TIMEOUT": "search_timeout",
            "MIN_SYNC_INTERVAL": "min_sync_interval",
            "PROBE_INTERVAL": "probe_interval",
        }
        bool_fields = {
            "AUTO_SYNC": "auto_sync",
            "SYNC_ON_FOREGROUND": "sync_on_foreground",
            "SYNC_ON_MOUNT": "sync_on_mount",
        }

        for var, field_name in text_fields.items():
            value = get(var)
            if value is not None:
                kwargs[field_name] = value

        for var, field_name in float_fields.items():
            value = get(var)
            if value is not None:
                kwargs[field_name] = _parse_float(ENV_PREFIX + var, value)

        value = get("MAX_RETRY_COUNT")
        if value is not None:
            try:
                kwargs["max_retry_count"] = int(value)
            except ValueError as exc:
                raise InvalidArgumentError(
                    "Invalid integer in environment",
                    details={"variable": ENV_PREFIX + "MAX_RETRY_COUNT", "value": value},
                    cause=exc,
                ) from exc

        for var, field_name in bool_fields.items():
            value = get(var)
            if value is not None:
                kwargs[field_name] = value.lower() in {"1", "true", "yes", "on"}

        return cls(**kwargs)  # type: ignore[arg-type]


def _parse_float(variable: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise InvalidArgumentError(
            "Invalid number in environment",
            details={"variable": variable, "value": value},
            cause=exc,
        ) from exc
