"""REST controller for the trips service (internal use only)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, TypeVar

import requests

from tripsync.auth import AuthProvider, StaticAuthProvider
from tripsync.errors import (
    ApiError,
    HttpErrorInfo,
    InvalidArgumentError,
    NetworkError,
    RateLimitError,
    TripSyncError,
    map_http_error,
)
from tripsync.models import DEFAULT_COVER_IMAGE, Trip, validate_trip_input

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRIPS_PATH: str = "/api/trips"
GENERATE_PATH: str = "/api/itinerary/generate"


@dataclass(frozen=True)
class _RetryPolicy:
    max_retries: int = 2
    initial_delay_sec: float = 0.5


class TripsController:
    """
    Trips CRUD client (internal only).

    Notes:
        - Every request carries the headers returned by the AuthProvider.
        - RateLimitError, NetworkError and 5xx ApiError are retried with
          exponential backoff; everything else raises immediately.
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthProvider,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 20.0,
        search_timeout: float = 90.0,
    ) -> None:
        if not base_url or not isinstance(base_url, str):
            raise InvalidArgumentError("base_url must be a non-empty string")
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout
        self._search_timeout = search_timeout
        self._retry_policy = _RetryPolicy()

    @classmethod
    def from_session(
        cls,
        session: Any,
        *,
        base_url: str = "http://localhost:3000",
        auth: Optional[AuthProvider] = None,
        retry_policy: Optional[_RetryPolicy] = None,
    ) -> "TripsController":
        """Create controller from a pre-built session object (useful for tests)."""
        obj = cls(base_url, auth or StaticAuthProvider(), session=session)
        if retry_policy is not None:
            obj._retry_policy = retry_policy
        return obj

    @property
    def base_url(self) -> str:
        return self._base_url

    # ----------------------------
    # Public API
    # ----------------------------
    def list_trips(self) -> list[Trip]:
        """
        Fetch all trips of the signed-in user.

        Raises:
            AuthError: if the session is not authenticated (HTTP 401).
        """
        data = self._execute(lambda: self._send("GET", TRIPS_PATH))
        return [api_trip_to_trip(t) for t in data.get("trips") or []]

    def get_trip(self, trip_id: str) -> Trip:
        data = self._execute(lambda: self._send("GET", _trip_path(trip_id)))
        return _require_trip(data)

    def create_trip(self, payload: Mapping[str, Any]) -> Trip:
        """Create a trip; the returned record carries the server-assigned id."""
        validate_trip_input(payload)
        body = {k: v for k, v in payload.items() if v is not None}
        data = self._execute(lambda: self._send("POST", TRIPS_PATH, body=body))
        return _require_trip(data)

    def update_trip(self, trip_id: str, updates: Mapping[str, Any]) -> Optional[Trip]:
        validate_trip_input(updates, partial=True)
        data = self._execute(
            lambda: self._send("PATCH", _trip_path(trip_id), body=dict(updates))
        )
        trip = data.get("trip")
        return api_trip_to_trip(trip) if isinstance(trip, Mapping) else None

    def delete_trip(self, trip_id: str) -> bool:
        """
        Delete a trip. HTTP 404 counts as success (already gone).

        Returns:
            True if the server deleted it now, False if it was already gone.
        """
        data = self._execute(
            lambda: self._send("DELETE", _trip_path(trip_id), allow_not_found=True)
        )
        return not data.get("_not_found", False)

    def generate_itinerary(self, trip_id: str) -> dict[str, Any]:
        """Ask the itinerary backend to (re)generate a trip's plan."""
        return self._execute(
            lambda: self._send(
                "POST",
                GENERATE_PATH,
                body={"tripId": trip_id},
                timeout=self._search_timeout,
            )
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _send(
        self,
        method: str,
        path: str,
        *,
        body: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any]:
        headers = self._auth.get_auth_headers()
        resp = self._session.request(
            method,
            f"{self._base_url}{path}",
            headers=headers,
            json=body,
            timeout=timeout if timeout is not None else self._timeout,
        )
        logger.debug("%s %s -> %s", method, path, resp.status_code)

        if allow_not_found and resp.status_code == 404:
            return {"_not_found": True}

        if not 200 <= resp.status_code < 300:
            raise map_http_error(_response_to_info(resp))

        if not resp.content:
            return {}
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ApiError(
                "Invalid JSON in response",
                details={"status_code": resp.status_code, "path": path},
                cause=exc,
            ) from exc
        return payload if isinstance(payload, dict) else {}

    def _execute(self, func: Callable[[], T]) -> T:
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return func()
            except Exception as exc:
                mapped = self._map_exception(exc)
                if self._should_retry(mapped) and attempt < self._retry_policy.max_retries:
                    logger.debug("Retrying after %s (attempt %d)", mapped, attempt + 1)
                    time.sleep(delay)
                    delay *= 2
                    continue
                if mapped is exc:
                    raise
                raise mapped from exc

        raise ApiError("Unexpected retry loop termination")

    def _should_retry(self, exc: Exception) -> bool:
        if isinstance(exc, RateLimitError):
            return True
        if isinstance(exc, NetworkError):
            return True
        if isinstance(exc, ApiError):
            status_code = getattr(exc, "details", {}).get("status_code")
            return isinstance(status_code, int) and 500 <= status_code <= 599
        return False

    def _map_exception(self, exc: Exception) -> Exception:
        if isinstance(exc, TripSyncError):
            return exc

        if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
            return NetworkError("Network error", cause=exc)

        if isinstance(exc, (OSError, TimeoutError)):
            return NetworkError("Network error", cause=exc)

        return ApiError("Trips API error", cause=exc)


def _trip_path(trip_id: str) -> str:
    if not trip_id:
        raise InvalidArgumentError("trip_id must be a non-empty string")
    return f"{TRIPS_PATH}/{trip_id}"


def _require_trip(data: dict[str, Any]) -> Trip:
    trip = data.get("trip")
    if not isinstance(trip, Mapping):
        raise ApiError("Response did not include a trip")
    return api_trip_to_trip(trip)


def api_trip_to_trip(data: Mapping[str, Any]) -> Trip:
    """Convert a wire trip (snake_case, days under itinerary) to a Trip."""
    itinerary = data.get("itinerary")
    days = itinerary.get("days") if isinstance(itinerary, Mapping) else None

    return Trip.from_dict(
        {
            "id": data.get("id"),
            "destination": data.get("destination", ""),
            "country": data.get("country") or "",
            "start_date": data.get("start_date", ""),
            "end_date": data.get("end_date", ""),
            "travelers": data.get("travelers") or 1,
            "traveler_type": data.get("traveler_type") or "solo",
            "vibes": data.get("vibes") or [],
            "budget": data.get("budget"),
            "days": [d for d in days or [] if isinstance(d, Mapping)],
            "hotel": data.get("hotel"),
            "cover_image": data.get("cover_image") or DEFAULT_COVER_IMAGE,
            "created_at": data.get("created_at", ""),
            "status": data.get("status"),
        }
    )


def _response_to_info(resp: Any) -> HttpErrorInfo:
    message = None
    try:
        payload = resp.json()
        if isinstance(payload, dict) and isinstance(payload.get("error"), str):
            message = payload["error"]
    except ValueError:
        message = None

    reason = getattr(resp, "reason", None)
    return HttpErrorInfo(
        status_code=resp.status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
    )
