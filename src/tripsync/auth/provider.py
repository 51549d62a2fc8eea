"""Auth provider interface consumed by the trips controller."""

from __future__ import annotations

from typing import Optional, Protocol

from tripsync.errors import InvalidArgumentError

from .auth_info import AuthInfo


class AuthProvider(Protocol):
    """Opaque session provider: supplies request headers and the signed-in user."""

    def get_auth_headers(self) -> dict[str, str]:
        ...

    def current_user_id(self) -> Optional[str]:
        ...


class StaticAuthProvider:
    """Provider for a pre-issued bearer token (or an anonymous session)."""

    def __init__(self, token: Optional[str] = None, user_id: Optional[str] = None) -> None:
        self._token = token
        self._user_id = user_id

    @classmethod
    def from_auth_info(cls, auth_info: AuthInfo) -> StaticAuthProvider:
        if auth_info.kind != "bearer":
            raise InvalidArgumentError("StaticAuthProvider requires AuthInfo(kind='bearer')")
        return cls(auth_info.token, auth_info.user_id)

    def get_auth_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def current_user_id(self) -> Optional[str]:
        return self._user_id
