"""
HashiCorp Vault Key Store.

This module implements VaultKeyStore, a key store that saves secret keys as
key-value entries on Vault's K/V secret engine and keeps its Vault session
alive on its own.

Architecture:
    - authenticate() connects, probes the seal status, logs in with AppRole
      credentials and starts two daemon threads:
        * AvailabilityMonitor - polls the seal status (monitor.py)
        * TokenRenewalEngine - renews / re-acquires the token (renewal.py)
    - Both threads share a SessionState with the key operations and stop
      when the cancellation event passed to authenticate() is set
    - get/create/delete check the session (connected? sealed? token?) before any
      request; the check is a snapshot, not a lock
    - Path convention: key "my-key" with location "my-app" is stored at
      <mount_point>/my-app/my-key as the entry {"my-key": <value>}

Security Considerations:
    - Secret values NEVER logged (only paths)
    - Tokens kept in memory only and never revoked on shutdown

Usage Example:
    >>> import threading
    >>> from libs.keystore import VaultConfig, VaultKeyStore
    >>> cancel = threading.Event()
    >>> store = VaultKeyStore(VaultConfig(location="my-app"))
    >>> store.authenticate(cancel)
    >>> store.create("db-key", "secret123")
    >>> store.get("db-key")
    'secret123'
    >>> cancel.set()  # stops the background threads
"""

import logging
import threading

from libs.keystore.backend import HvacBackend, ReadStatus, VaultBackend
from libs.keystore.config import VaultConfig
from libs.keystore.exceptions import (
    KeyExistsError,
    KeyNotFoundError,
    KeyStoreError,
    MalformedEntryError,
    NotAuthenticatedError,
    NotConnectedError,
    SealedError,
)
from libs.keystore.manager import KeyStore
from libs.keystore.monitor import AvailabilityMonitor
from libs.keystore.renewal import RenewalState, TokenRenewalEngine
from libs.keystore.session import SessionState

logger = logging.getLogger(__name__)


class VaultKeyStore(KeyStore):
    """
    Key store that persists keys on Vault's K/V secret engine.

    Args:
        config: Vault connection, location and AppRole settings
        backend: Vault backend to use. If None, authenticate() creates an
            HvacBackend from config.
        error_log: Logger for operation failures. Defaults to this
            module's logger.

    Thread Safety:
        get/create/delete may be called concurrently. They may observe the
        token from before or after a concurrent renewal; a request that
        fails because of that is not retried.
    """

    def __init__(
        self,
        config: VaultConfig,
        backend: VaultBackend | None = None,
        error_log: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._backend = backend
        self._log = error_log or logger
        self._session = SessionState()
        self._connected = False
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []
        self._renewal: TokenRenewalEngine | None = None

    @property
    def connected(self) -> bool:
        """True once authenticate() has succeeded."""
        return self._connected

    @property
    def sealed(self) -> bool:
        """Last known seal status of the Vault server."""
        return self._session.sealed

    @property
    def renewal_state(self) -> RenewalState | None:
        """State of the token renewal engine, None before authenticate()."""
        return self._renewal.state if self._renewal else None

    def authenticate(self, cancel: threading.Event) -> None:
        """
        Connect to Vault and start the background session management.

        Steps:
            1. Create the Vault client (unless a backend was injected)
            2. Read the seal status
            3. If unsealed, log in with the AppRole credentials
            4. Start the status monitor and token renewal threads

        If Vault is sealed no login is attempted; the renewal thread logs in
        as soon as Vault is unsealed.

        Args:
            cancel: Cancellation event shared by both background threads.
                Setting it stops them; there is no per-thread cancellation.

        Raises:
            KeyStoreError: Invalid TLS configuration, or already authenticated
            AuthFailureError: AppRole login rejected
            hvac.exceptions.VaultError, requests.RequestException: Vault
                unreachable or returned an error while reading the seal status
        """
        with self._lock:
            if any(thread.is_alive() for thread in self._threads):
                raise KeyStoreError("key store is already authenticated", backend="vault")

            # A failed attempt keeps the backend so authenticate() can be retried
            if self._backend is None:
                self._backend = HvacBackend.from_config(self._config, self._session.get_token)

            try:
                sealed = self._backend.is_sealed()
            except Exception as e:
                self._log.error(
                    "vault: failed to read seal status",
                    extra={
                        "vault_url": self._config.address,
                        "backend": "vault",
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                raise
            self._session.sealed = sealed

            credentials = self._config.credentials()
            ttl = 0
            if not sealed:
                lease = self._backend.login(credentials.role_id, credentials.secret_id)
                self._session.token = lease.token
                ttl = lease.ttl_seconds
            self._connected = True

            monitor = AvailabilityMonitor(
                self._backend,
                self._session,
                interval_seconds=self._config.status_interval,
            )
            self._renewal = TokenRenewalEngine(self._backend, self._session, credentials)
            self._threads = [
                threading.Thread(
                    target=monitor.run,
                    args=(cancel,),
                    name="vault-status-monitor",
                    daemon=True,
                ),
                threading.Thread(
                    target=self._renewal.run,
                    args=(cancel, ttl),
                    name="vault-token-renewal",
                    daemon=True,
                ),
            ]
            for thread in self._threads:
                thread.start()

        logger.info(
            "Connected to Vault",
            extra={
                "vault_url": self._config.address,
                "mount_point": self._config.mount_point,
                "sealed": sealed,
                "backend": "vault",
            },
        )

    def entry_path(self, key: str) -> str:
        """Path of the entry for key, relative to the mount point."""
        location = self._config.location.strip("/")
        return f"{location}/{key}" if location else key

    def get(self, key: str) -> str:
        """
        Return the value stored under key.

        Raises:
            NotConnectedError: authenticate() never succeeded
            NotAuthenticatedError: No valid token while re-authentication is pending
            SealedError: Vault is sealed
            KeyNotFoundError: No entry for key
            MalformedEntryError: Entry has no string value for key
            hvac.exceptions.VaultError, requests.RequestException: Read failed
        """
        backend = self._ready(key)
        path = self.entry_path(key)

        result = backend.read_path(path)
        if result.status is ReadStatus.ERROR:
            self._log_failure("read", path, result.error)
            raise result.error
        if result.status is ReadStatus.ABSENT:
            # Vault answers entries that never existed and deleted entries alike
            self._log.debug(
                "vault: key does not exist",
                extra={"path": self._location(path), "backend": "vault"},
            )
            raise KeyNotFoundError(key)

        value = result.data.get(key)
        if value is None:
            self._log.error(
                "vault: failed to read '%s': entry exists but no secret key is present",
                self._location(path),
                extra={"path": self._location(path), "backend": "vault"},
            )
            raise MalformedEntryError(key, path, "K/V entry does not contain any value")
        if not isinstance(value, str):
            self._log.error(
                "vault: failed to read '%s': invalid K/V format",
                self._location(path),
                extra={"path": self._location(path), "backend": "vault"},
            )
            raise MalformedEntryError(key, path, "invalid K/V entry format")
        return value

    def create(self, key: str, value: str) -> None:
        """
        Store value under key if and only if key does not exist.

        The existence check and the write are two separate requests: another
        key store sharing the same location may create the key in between,
        and its value would then be overwritten. Whoever is allowed to create
        keys must do so in a non-racy way (e.g. a single writer per location).

        Raises:
            NotConnectedError: authenticate() never succeeded
            NotAuthenticatedError: No valid token while re-authentication is pending
            SealedError: Vault is sealed
            KeyExistsError: An entry for key already exists
            hvac.exceptions.VaultError, requests.RequestException: Read or
                write failed. A failed read is never taken as "absent".
        """
        backend = self._ready(key)
        path = self.entry_path(key)

        result = backend.read_path(path)
        if result.status is ReadStatus.FOUND:
            self._log.debug(
                "vault: key already exists",
                extra={"path": self._location(path), "backend": "vault"},
            )
            raise KeyExistsError(key)
        if result.status is ReadStatus.ERROR:
            self._log_failure("create", path, result.error)
            raise result.error

        try:
            backend.write_path(path, {key: value})
        except Exception as e:
            self._log_failure("create", path, e)
            raise
        logger.info(
            "Key created in Vault",
            extra={"path": self._location(path), "backend": "vault"},
        )

    def delete(self, key: str) -> None:
        """
        Remove the entry for key, if it exists.

        Raises:
            NotConnectedError: authenticate() never succeeded
            NotAuthenticatedError: No valid token while re-authentication is pending
            SealedError: Vault is sealed
            hvac.exceptions.VaultError, requests.RequestException: Delete failed
        """
        backend = self._ready(key)
        path = self.entry_path(key)

        try:
            backend.delete_path(path)
        except Exception as e:
            self._log_failure("delete", path, e)
            raise
        logger.info(
            "Key deleted from Vault",
            extra={"path": self._location(path), "backend": "vault"},
        )

    def join(self, timeout: float | None = None) -> None:
        """Wait for the background threads to stop after cancellation."""
        for thread in self._threads:
            thread.join(timeout=timeout)

    def close(self) -> None:
        """Close the backend's HTTP connections. Tokens are not revoked."""
        if self._backend is not None:
            self._backend.close()

    def _ready(self, key: str) -> VaultBackend:
        if not self._connected or self._backend is None:
            error = NotConnectedError()
            self._log.error(str(error), extra={"key": key, "backend": "vault"})
            raise error
        if self._session.sealed:
            self._log.warning(
                "vault: key store is sealed",
                extra={"path": self._location(self.entry_path(key)), "backend": "vault"},
            )
            raise SealedError(key=key)
        if self._session.token is None:
            error = NotAuthenticatedError(key=key)
            self._log.error(
                str(error),
                extra={"path": self._location(self.entry_path(key)), "backend": "vault"},
            )
            raise error
        return self._backend

    def _location(self, path: str) -> str:
        return f"{self._config.mount_point}/{path}"

    def _log_failure(self, operation: str, path: str, error: BaseException | None) -> None:
        self._log.error(
            "vault: failed to %s '%s': %s",
            operation,
            self._location(path),
            error,
            extra={
                "path": self._location(path),
                "backend": "vault",
                "error_type": type(error).__name__,
            },
        )
