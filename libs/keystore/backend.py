"""
Vault backend adapter for the key store.

This module isolates every call the key store makes to Vault behind the
VaultBackend interface:

    - login(role_id, secret_id) -> Lease           (AppRole login)
    - renew_self(ttl_seconds) -> Lease | None       (token renewal)
    - is_sealed() -> bool                           (seal status)
    - read_path(path) -> ReadResult                 (K/V read)
    - write_path(path, data) -> None                (K/V write)
    - delete_path(path) -> None                     (K/V delete)

HvacBackend implements the interface with the hvac library against a K/V
version 1 secret engine. Tests inject a fake implementation instead.

Read results are tri-state (FOUND, ABSENT, ERROR). Vault answers a read of
a missing entry with 404, which hvac raises as InvalidPath; that case is an
ABSENT result, never an error. Any other failure is an ERROR result that
carries the original exception.

Security Considerations:
    - Secret values and tokens are NEVER logged (only paths)
    - The token lives in memory only; it is pulled from the session before
      every authenticated request
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import hvac
from hvac.exceptions import InvalidPath, VaultError
from requests.exceptions import RequestException

from libs.keystore.config import VaultConfig
from libs.keystore.exceptions import AuthFailureError, KeyStoreError
from libs.keystore.session import Lease

logger = logging.getLogger(__name__)

TokenSource = Callable[[], str | None]


class ReadStatus(str, Enum):
    """Outcome of a K/V read."""

    FOUND = "found"
    ABSENT = "absent"
    ERROR = "error"


@dataclass(frozen=True)
class ReadResult:
    """Tri-state result of VaultBackend.read_path()."""

    status: ReadStatus
    data: dict[str, Any] = field(default_factory=dict)
    error: Exception | None = None

    @classmethod
    def found(cls, data: dict[str, Any]) -> "ReadResult":
        return cls(status=ReadStatus.FOUND, data=data)

    @classmethod
    def absent(cls) -> "ReadResult":
        return cls(status=ReadStatus.ABSENT)

    @classmethod
    def failed(cls, error: Exception) -> "ReadResult":
        return cls(status=ReadStatus.ERROR, error=error)


class VaultBackend(ABC):
    """Capabilities the key store needs from a Vault server."""

    @abstractmethod
    def login(self, role_id: str, secret_id: str) -> Lease:
        """
        Exchange AppRole credentials for a token.

        Raises:
            AuthFailureError: Login rejected or Vault unreachable
        """

    @abstractmethod
    def renew_self(self, ttl_seconds: int) -> Lease | None:
        """
        Renew the current token by ttl_seconds.

        Returns:
            The renewed lease, or None if Vault returned no auth data.

        Raises:
            AuthFailureError: Renewal rejected or Vault unreachable
        """

    @abstractmethod
    def is_sealed(self) -> bool:
        """Report whether Vault is sealed. Transport errors propagate."""

    @abstractmethod
    def read_path(self, path: str) -> ReadResult:
        """Read the K/V entry at path."""

    @abstractmethod
    def write_path(self, path: str, data: dict[str, Any]) -> None:
        """Write data to the K/V entry at path. Transport errors propagate."""

    @abstractmethod
    def delete_path(self, path: str) -> None:
        """Delete the K/V entry at path. Deleting a missing entry is not an error."""

    def close(self) -> None:  # noqa: B027 - Intentionally optional hook with default no-op
        """Release connections held by the backend."""


class HvacBackend(VaultBackend):
    """
    VaultBackend implementation backed by hvac.

    Args:
        client: Configured hvac client (address and TLS material set)
        token_source: Callable returning the current session token
        mount_point: K/V v1 secret engine mount point. Default: "kv"

    Example:
        >>> session = SessionState()
        >>> backend = HvacBackend.from_config(VaultConfig(), session.get_token)
        >>> lease = backend.login("role-id", "secret-id")
    """

    def __init__(
        self,
        client: hvac.Client,
        token_source: TokenSource,
        mount_point: str = "kv",
    ) -> None:
        self._client = client
        self._token_source = token_source
        self._mount_point = mount_point

    @classmethod
    def from_config(cls, config: VaultConfig, token_source: TokenSource) -> "HvacBackend":
        """
        Create an hvac client from the key store configuration.

        Raises:
            KeyStoreError: The configured CA path does not exist
        """
        verify: bool | str = config.verify
        if config.verify and config.ca_path:
            if not os.path.exists(config.ca_path):
                raise KeyStoreError(
                    f"Failed to open '{config.ca_path}': no such file or directory",
                    backend="vault",
                )
            # requests accepts a CA bundle file as well as a c_rehash'd directory
            verify = config.ca_path

        cert: tuple[str, str] | None = None
        if config.client_cert_path and config.client_key_path:
            cert = (config.client_cert_path, config.client_key_path)

        client = hvac.Client(
            url=config.address,
            verify=verify,
            cert=cert,
            timeout=config.timeout_seconds,
        )
        return cls(client=client, token_source=token_source, mount_point=config.mount_point)

    @property
    def mount_point(self) -> str:
        return self._mount_point

    def _authorized(self) -> hvac.Client:
        self._client.token = self._token_source()
        return self._client

    def login(self, role_id: str, secret_id: str) -> Lease:
        try:
            response = self._client.auth.approle.login(
                role_id=role_id,
                secret_id=secret_id,
                use_token=False,
            )
        except (VaultError, RequestException) as e:
            raise AuthFailureError(f"AppRole login failed: {e}") from e

        lease = _lease_from_response(response)
        if lease is None:
            raise AuthFailureError("AppRole login returned no token")
        return lease

    def renew_self(self, ttl_seconds: int) -> Lease | None:
        try:
            response = self._authorized().auth.token.renew_self(increment=ttl_seconds)
        except (VaultError, RequestException) as e:
            raise AuthFailureError(f"Token renewal failed: {e}") from e
        return _lease_from_response(response)

    def is_sealed(self) -> bool:
        return bool(self._client.sys.is_sealed())

    def read_path(self, path: str) -> ReadResult:
        try:
            response = self._authorized().secrets.kv.v1.read_secret(
                path=path,
                mount_point=self._mount_point,
            )
        except InvalidPath:
            return ReadResult.absent()
        except (VaultError, RequestException) as e:
            return ReadResult.failed(e)

        if not isinstance(response, dict):
            return ReadResult.absent()
        data = response.get("data")
        if not data:
            # Vault answers 404 with an empty body for deleted entries
            return ReadResult.absent()
        return ReadResult.found(data)

    def write_path(self, path: str, data: dict[str, Any]) -> None:
        self._authorized().secrets.kv.v1.create_or_update_secret(
            path=path,
            secret=data,
            mount_point=self._mount_point,
        )

    def delete_path(self, path: str) -> None:
        self._authorized().secrets.kv.v1.delete_secret(
            path=path,
            mount_point=self._mount_point,
        )

    def close(self) -> None:
        adapter = getattr(self._client, "adapter", None)
        if adapter and hasattr(adapter, "close"):
            adapter.close()
        logger.info("Vault backend closed", extra={"backend": "vault"})


def _lease_from_response(response: Any) -> Lease | None:
    """Extract the lease from a login or renewal response."""
    if not isinstance(response, dict):
        return None
    auth = response.get("auth")
    if not auth or not auth.get("client_token"):
        return None
    return Lease(
        token=auth["client_token"],
        ttl_seconds=int(auth.get("lease_duration") or 0),
        renewable=bool(auth.get("renewable", False)),
    )
