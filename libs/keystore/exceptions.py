"""
Key Store Exception Hierarchy.

This module defines all exceptions raised by the Vault key store, giving
callers clear error semantics for key lookups, creation, deletion and
connection state.

Exception hierarchy:
    KeyStoreError (base)
    ├── NotConnectedError - authenticate() never succeeded
    │   └── NotAuthenticatedError - No valid token, login pending
    ├── SealedError - Vault is sealed, no operation is attempted
    ├── KeyNotFoundError - No entry exists for the key
    ├── KeyExistsError - create() refused to overwrite an entry
    ├── MalformedEntryError - Entry exists but does not hold a string value
    └── AuthFailureError - Login or token renewal rejected (internal only)

Transport failures raised by the Vault client (hvac.exceptions.VaultError,
requests.RequestException) are NOT wrapped: they propagate to callers
unchanged.

Every exception carries an HTTP-style status code so that a surrounding
API server can translate it directly into a response. No exception ever
includes a secret value.
"""

from http import HTTPStatus


class KeyStoreError(Exception):
    """
    Base exception for all key store errors.

    Attributes:
        message: Human-readable error message (MUST NOT include secret value)
        key: Key name the operation was about, if any
        backend: Backend type ("vault")
        status_code: HTTP status code that best describes the failure

    Example:
        >>> try:
        ...     value = store.get("my-key")
        ... except KeyStoreError as e:
        ...     logger.error("key store error", extra={"key": e.key})
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        key: str | None = None,
        backend: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.key = key
        self.backend = backend

    def __str__(self) -> str:
        """
        Format error message with context (key + backend).

        Example:
            >>> str(KeyStoreError("Timeout", "db-key", "vault"))
            'Timeout (key: db-key, backend: vault)'
        """
        context_parts = []
        if self.key:
            context_parts.append(f"key: {self.key}")
        if self.backend:
            context_parts.append(f"backend: {self.backend}")

        if context_parts:
            context = ", ".join(context_parts)
            return f"{self.message} ({context})"
        return self.message


class NotConnectedError(KeyStoreError):
    """
    Raised when a key operation runs before authenticate() succeeded.

    This usually means the surrounding application forgot to call
    VaultKeyStore.authenticate() or ignored its failure.
    """

    def __init__(self, backend: str = "vault") -> None:
        super().__init__(f"{backend}: no connection to {backend} server", backend=backend)


class NotAuthenticatedError(NotConnectedError):
    """
    Raised when the key store holds no valid token.

    The renewal engine drops the token as soon as a renewal fails and only
    publishes a new one after a successful login. Until then key operations
    fail fast instead of sending requests Vault would reject.
    """

    def __init__(self, key: str | None = None, backend: str = "vault") -> None:
        KeyStoreError.__init__(
            self,
            f"{backend}: no valid {backend} token, re-authentication pending",
            key=key,
            backend=backend,
        )


class SealedError(KeyStoreError):
    """
    Raised when Vault is sealed.

    Vault rejects every read and write while sealed, so the key store fails
    fast without issuing any request.
    """

    status_code = HTTPStatus.FORBIDDEN

    def __init__(self, key: str | None = None, backend: str = "vault") -> None:
        super().__init__("key store is sealed", key=key, backend=backend)


class KeyNotFoundError(KeyStoreError):
    """Raised when no entry exists for the requested key."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, key: str, backend: str = "vault") -> None:
        if not isinstance(key, str) or not key:
            raise TypeError("key must be a non-empty string")
        super().__init__(f"key '{key}' does not exist", key=key, backend=backend)


class KeyExistsError(KeyStoreError):
    """
    Raised by create() when an entry for the key already exists.

    Existing keys are never overwritten.
    """

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, key: str, backend: str = "vault") -> None:
        if not isinstance(key, str) or not key:
            raise TypeError("key must be a non-empty string")
        super().__init__(f"key '{key}' already exists", key=key, backend=backend)


class MalformedEntryError(KeyStoreError):
    """
    Raised when an entry exists but has no usable value.

    Either the field named after the key is missing (or null), or it holds
    something other than a string.

    Attributes:
        path: Vault path of the malformed entry
        reason: What is wrong with the entry
    """

    def __init__(self, key: str, path: str, reason: str, backend: str = "vault") -> None:
        super().__init__(f"{backend}: {reason}", key=key, backend=backend)
        self.path = path
        self.reason = reason


class AuthFailureError(KeyStoreError):
    """
    Raised by a backend when an AppRole login or a token renewal fails.

    Key operations never surface this error. It only drives the retry logic
    of the token renewal engine, and the initial authenticate() call.
    """

    status_code = HTTPStatus.UNAUTHORIZED

    def __init__(self, reason: str, backend: str = "vault") -> None:
        if not isinstance(reason, str) or not reason:
            raise TypeError("reason must be a non-empty string")
        super().__init__(f"Authentication failed: {reason}", backend=backend)
        self.reason = reason
