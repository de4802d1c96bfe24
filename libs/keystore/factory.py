"""
Factory for creating the Vault key store from environment configuration.

Example Usage:
    >>> import os, threading
    >>> os.environ["VAULT_ADDRESS"] = "https://vault.example.com:8200"
    >>> os.environ["VAULT_APPROLE_ID"] = "db-role"
    >>> store = create_key_store()
    >>> store.authenticate(threading.Event())

See Also:
    - libs/keystore/config.py - VAULT_* environment variables
"""

import logging

from libs.keystore.config import VaultConfig, get_vault_config
from libs.keystore.exceptions import KeyStoreError
from libs.keystore.store import VaultKeyStore

logger = logging.getLogger(__name__)


def create_key_store(
    config: VaultConfig | None = None,
    error_log: logging.Logger | None = None,
) -> VaultKeyStore:
    """
    Create a VaultKeyStore.

    Args:
        config: Vault settings. If None, the cached settings from
            get_vault_config() (VAULT_* environment variables and .env) are
            used; they are read once per process.
        error_log: Optional logger for key operation failures.

    Returns:
        VaultKeyStore: Unauthenticated key store. Call authenticate() before
        using it.

    Raises:
        KeyStoreError: Vault address missing or AppRole ID missing
    """
    if config is None:
        config = get_vault_config()

    if not config.address.strip():
        raise KeyStoreError(
            "VAULT_ADDRESS is empty. Set it to your Vault server URL "
            "(e.g., 'https://vault.company.com:8200').",
            backend="vault",
        )
    if not config.approle_id.strip():
        raise KeyStoreError(
            "VAULT_APPROLE_ID is empty. The key store authenticates with AppRole credentials.",
            backend="vault",
        )

    if not config.verify:
        logger.warning(
            "Vault TLS verification disabled. Use only for local development.",
            extra={"vault_url": config.address, "backend": "vault"},
        )

    logger.info(
        "Initializing VaultKeyStore",
        extra={
            "vault_url": config.address,
            "mount_point": config.mount_point,
            "location": config.location,
            "backend": "vault",
        },
    )
    return VaultKeyStore(config, error_log=error_log)
