"""OAuth-backed auth provider for tripsync."""

from __future__ import annotations

import os
from typing import Optional, Sequence

from tripsync.errors import AuthError, InvalidArgumentError

from .auth_info import AuthInfo

DEFAULT_SCOPES: tuple[str, ...] = ("openid", "email")


class OAuthClient:
    """
    Load, refresh and persist OAuth credentials, and expose them as
    request headers (AuthProvider interface).
    """

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        scopes: Optional[Sequence[str]] = None,
    ) -> None:
        if auth_info.kind != "oauth":
            raise InvalidArgumentError("OAuthClient requires AuthInfo(kind='oauth')")
        self._auth_info = auth_info
        self._scopes = list(scopes) if scopes is not None else list(DEFAULT_SCOPES)
        self._creds = None

    def get_credentials(self, scopes: Sequence[str], ensure_valid: bool = True):
        """
        Return OAuth credentials for the given scopes.

        Args:
            scopes: OAuth scopes.
            ensure_valid: If True, refresh credentials when possible.

        Returns:
            google.oauth2.credentials.Credentials

        Raises:
            AuthError: on load/refresh/flow failures.
            InvalidArgumentError: if scopes is invalid.
        """
        if not scopes or not all(isinstance(s, str) and s.strip() for s in scopes):
            raise InvalidArgumentError("scopes must be a non-empty sequence of strings")

        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from google_auth_oauthlib.flow import InstalledAppFlow

        token_file = self._auth_info.token_file
        creds = None

        if os.path.exists(token_file):
            try:
                creds = Credentials.from_authorized_user_file(
                    token_file,
                    scopes=list(scopes),
                )
            except Exception as exc:
                raise AuthError(
                    "Failed to load token_file",
                    details={"token_file": token_file},
                    cause=exc,
                ) from exc

            # ensure_valid=False returns loaded credentials as-is.
            if not ensure_valid:
                return creds

            if not creds.valid and creds.refresh_token:
                try:
                    creds.refresh(Request())
                    self._save_credentials(creds)
                except Exception as exc:
                    raise AuthError(
                        "Failed to refresh OAuth credentials",
                        details={"token_file": token_file},
                        cause=exc,
                    ) from exc

            if creds.valid:
                return creds

        # No token, or token could not be validated/refreshed -> run OAuth flow.
        client_secrets = self._auth_info.client_secrets_file
        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                client_secrets,
                scopes=list(scopes),
            )
            creds = flow.run_local_server(port=0)
            self._save_credentials(creds)
            return creds
        except Exception as exc:
            raise AuthError(
                "OAuth authorization flow failed",
                details={
                    "client_secrets_file": client_secrets,
                    "token_file": token_file,
                },
                cause=exc,
            ) from exc

    def get_auth_headers(self) -> dict[str, str]:
        """Return JSON + Authorization headers, refreshing the token when expired."""
        if self._creds is None or not self._creds.valid:
            self._creds = self.get_credentials(self._scopes, ensure_valid=True)

        headers: dict[str, str] = {"Content-Type": "application/json"}
        self._creds.apply(headers)
        return headers

    def current_user_id(self) -> Optional[str]:
        return self._auth_info.user_id

    def _save_credentials(self, creds) -> None:
        token_file = self._auth_info.token_file
        token_dir = os.path.dirname(token_file)
        if token_dir:
            os.makedirs(token_dir, exist_ok=True)

        try:
            with open(token_file, "w", encoding="utf-8") as f:
                f.write(creds.to_json())
        except Exception as exc:
            raise AuthError(
                "Failed to save OAuth token file",
                details={"token_file": token_file},
                cause=exc,
            ) from exc
