"""Public auth exports for tripsync."""

from __future__ import annotations

from .auth_info import AuthInfo
from .oauth_client import OAuthClient
from .provider import AuthProvider, StaticAuthProvider

__all__ = ["AuthInfo", "AuthProvider", "OAuthClient", "StaticAuthProvider"]
