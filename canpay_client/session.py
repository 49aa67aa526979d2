"""
Canpay Client - Session State

In-memory holder for the access/refresh token pair. The pair is kept as
one immutable value and swapped under a lock, so readers always observe
both tokens from the same login, registration or renewal.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class Credentials:
    """An access token and the refresh token issued alongside it."""

    access_token: str = ""
    refresh_token: str = ""


class SessionState:
    """
    Current session credentials for one client instance.

    Nothing is persisted; the tokens live only as long as this object.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._credentials = Credentials()

    @property
    def access_token(self) -> str:
        return self._credentials.access_token

    @property
    def refresh_token(self) -> str:
        return self._credentials.refresh_token

    def snapshot(self) -> Credentials:
        """Return the current token pair."""
        return self._credentials

    def replace(self, access_token: str, refresh_token: str) -> Credentials:
        """
        Replace both tokens at once.

        Args:
            access_token: New access token (JWT).
            refresh_token: New refresh token.

        Returns:
            The credentials that were replaced.
        """
        new = Credentials(access_token=access_token, refresh_token=refresh_token)
        with self._lock:
            previous = self._credentials
            self._credentials = new
        return previous

    def is_authenticated(self) -> bool:
        """Any non-empty access token counts as a session."""
        return bool(self._credentials.access_token)
