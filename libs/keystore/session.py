"""Shared session state for the Vault key store.

The session is shared by three parties:
- the availability monitor, the only writer of ``sealed``
- the token renewal engine, the only writer of ``token``
- the key operations, which only read

Each field is guarded by its own lock so readers never see a torn value.
No operation needs both fields to be consistent at the same instant, so
there is no multi-field transaction.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class Lease:
    """Result of an AppRole login or a token renewal.

    Attributes:
        token: Vault client token.
        ttl_seconds: Remaining validity of the token. 0 means it cannot
            be renewed and must be replaced by a fresh login.
        renewable: Whether Vault allows renewing the token.
    """

    token: str
    ttl_seconds: int
    renewable: bool = True

    def __repr__(self) -> str:
        return (
            f"Lease(token='**********', ttl_seconds={self.ttl_seconds}, "
            f"renewable={self.renewable})"
        )


class SessionState:
    """Thread-safe token and seal status shared by the key store components."""

    def __init__(self) -> None:
        self._token: str | None = None
        self._sealed = False
        self._token_lock = threading.Lock()
        self._sealed_lock = threading.Lock()

    @property
    def token(self) -> str | None:
        """Current Vault token, or None before the first successful login."""
        with self._token_lock:
            return self._token

    @token.setter
    def token(self, token: str | None) -> None:
        with self._token_lock:
            self._token = token

    @property
    def sealed(self) -> bool:
        """Last known seal status of the Vault server."""
        with self._sealed_lock:
            return self._sealed

    @sealed.setter
    def sealed(self, sealed: bool) -> None:
        with self._sealed_lock:
            self._sealed = sealed

    def get_token(self) -> str | None:
        """Return the current token (usable as a token source callback)."""
        return self.token

    def __repr__(self) -> str:
        authenticated = self.token is not None
        return f"SessionState(authenticated={authenticated}, sealed={self.sealed})"
