"""Authentication information for tripsync."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

_REQUIRED_KEYS: dict[str, tuple[str, ...]] = {
    "oauth": ("client_secrets_file", "token_file"),
    "bearer": ("token",),
}


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Authentication information.

    Supported kinds:
        kind = "oauth"
            data must include:
                - client_secrets_file
                - token_file
        kind = "bearer"
            data must include:
                - token

    Both kinds accept an optional "user_id".
    """

    kind: str
    data: dict[str, Any]

    def __post_init__(self) -> None:
        if self.kind not in _REQUIRED_KEYS:
            raise ValueError("AuthInfo.kind must be 'oauth' or 'bearer'")

        if not isinstance(self.data, dict):
            raise TypeError("AuthInfo.data must be a dict")

        for key in _REQUIRED_KEYS[self.kind]:
            value = self.data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"AuthInfo.data['{key}'] must be a non-empty string")

    @property
    def client_secrets_file(self) -> str:
        """Path to OAuth client secrets JSON."""
        return str(self.data["client_secrets_file"])

    @property
    def token_file(self) -> str:
        """Path to OAuth token JSON (authorized user)."""
        return str(self.data["token_file"])

    @property
    def token(self) -> str:
        """Static bearer token."""
        return str(self.data["token"])

    @property
    def user_id(self) -> Optional[str]:
        value = self.data.get("user_id")
        return str(value) if value else None
