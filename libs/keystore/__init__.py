"""
Vault Key Store Library.

This package stores opaque secret keys as entries on HashiCorp Vault's K/V
secret engine and manages the Vault session on its own: AppRole login,
seal status monitoring and token renewal run as background threads.

Architecture:
    - KeyStore: Abstract interface (manager.py)
    - VaultKeyStore: Vault implementation (store.py)
    - AvailabilityMonitor: Seal status polling (monitor.py)
    - TokenRenewalEngine: Token renewal / re-authentication (renewal.py)
    - VaultBackend / HvacBackend: Vault API adapter (backend.py)
    - Factory: create_key_store() builds a store from VAULT_* env vars

Quick Start:
    >>> import threading
    >>> from libs.keystore import create_key_store
    >>> cancel = threading.Event()
    >>> store = create_key_store()
    >>> store.authenticate(cancel)
    >>> store.create("db-key", "secret123")
    >>> store.get("db-key")
    'secret123'

Security Requirements:
    - Secret values NEVER logged (only paths)
    - Existing keys are never overwritten by create()
"""

from libs.keystore.backend import HvacBackend, ReadResult, ReadStatus, VaultBackend
from libs.keystore.config import AppRoleCredentials, VaultConfig, get_vault_config
from libs.keystore.exceptions import (
    AuthFailureError,
    KeyExistsError,
    KeyNotFoundError,
    KeyStoreError,
    MalformedEntryError,
    NotAuthenticatedError,
    NotConnectedError,
    SealedError,
)
from libs.keystore.factory import create_key_store
from libs.keystore.manager import KeyStore
from libs.keystore.monitor import AvailabilityMonitor
from libs.keystore.renewal import RenewalState, TokenRenewalEngine
from libs.keystore.session import Lease, SessionState
from libs.keystore.store import VaultKeyStore

# Package exports (PEP 8: __all__ defines public API)
__all__ = [
    # Core interface
    "KeyStore",
    "VaultKeyStore",
    # Factory (recommended for most use cases)
    "create_key_store",
    # Configuration
    "VaultConfig",
    "AppRoleCredentials",
    "get_vault_config",
    # Session lifecycle
    "SessionState",
    "Lease",
    "AvailabilityMonitor",
    "TokenRenewalEngine",
    "RenewalState",
    # Vault adapter
    "VaultBackend",
    "HvacBackend",
    "ReadResult",
    "ReadStatus",
    # Exceptions (callers should catch these)
    "KeyStoreError",
    "NotConnectedError",
    "NotAuthenticatedError",
    "SealedError",
    "KeyNotFoundError",
    "KeyExistsError",
    "MalformedEntryError",
    "AuthFailureError",
]
