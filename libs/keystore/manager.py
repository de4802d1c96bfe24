"""
Abstract KeyStore interface.

A key store persists opaque secret keys under string names. Keys are
immutable once created: there is no update operation, a key has to be
deleted before a new value can be created under the same name.

Architecture:
    KeyStore (ABC)
    └── VaultKeyStore - HashiCorp Vault K/V backend (store.py)

Security Requirements:
    - Secret values are NEVER logged (only key names and paths)
    - Implementations MUST NOT persist secrets to local disk
"""

from abc import ABC, abstractmethod
from types import TracebackType

from libs.keystore.exceptions import (
    KeyExistsError,  # noqa: F401 - Used in docstrings for documentation
    KeyNotFoundError,  # noqa: F401 - Used in docstrings for documentation
    SealedError,  # noqa: F401 - Used in docstrings for documentation
)


class KeyStore(ABC):
    """
    Abstract base class for all key store backends.

    Thread Safety:
        Implementations MUST allow concurrent get/create/delete calls.

    Example:
        >>> class MyKeyStore(KeyStore):
        ...     def get(self, key: str) -> str: ...
        ...     def create(self, key: str, value: str) -> None: ...
        ...     def delete(self, key: str) -> None: ...
    """

    @abstractmethod
    def get(self, key: str) -> str:
        """
        Return the value stored under key.

        Raises:
            KeyNotFoundError: No entry exists for key
            SealedError: Backend is sealed
        """

    @abstractmethod
    def create(self, key: str, value: str) -> None:
        """
        Store value under key if and only if key does not exist yet.

        Raises:
            KeyExistsError: An entry for key already exists
            SealedError: Backend is sealed
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove the entry for key. Deleting a missing key is not an error.

        Raises:
            SealedError: Backend is sealed
        """

    def close(self) -> None:  # noqa: B027 - Intentionally optional hook with default no-op
        """Close connections and clean up resources (optional hook)."""

    def __enter__(self) -> "KeyStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
