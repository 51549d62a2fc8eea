"""Exception hierarchy and HTTP error mapping for tripsync."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class TripSyncError(Exception):
    """
    Base exception for tripsync.

    Attributes:
        details: Optional structured information (e.g., HTTP status, trip id).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class StorageError(TripSyncError):
    """Raised when the local document backend fails to persist a write."""


class InvalidStateError(TripSyncError):
    """Raised when the library is used in an invalid state (e.g., after close)."""


class AuthError(TripSyncError):
    """Raised when the session is not authenticated (HTTP 401) or auth fails."""


class PermissionError(TripSyncError):
    """Raised when access is denied (HTTP 403)."""


class InvalidArgumentError(TripSyncError):
    """Raised when arguments or payloads are invalid (HTTP 400, bad input, etc.)."""


class NotFoundError(TripSyncError):
    """Raised when a trip is not found (HTTP 404)."""


class ConflictError(TripSyncError):
    """Raised when a conflict occurs (HTTP 409/412)."""


class RateLimitError(TripSyncError):
    """Raised when rate-limited (HTTP 429)."""


class NetworkError(TripSyncError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(TripSyncError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to tripsync exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> TripSyncError:
    """
    Map an HTTP error to a tripsync exception.

    Policy:
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> PermissionError
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - 5xx and anything else -> ApiError

    The server-provided message (the `error` field of the JSON body) is kept
    as the exception message when present.
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP {info.status_code}"

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)
