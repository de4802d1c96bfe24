"""
Tests for libs/keystore/factory.py.

Test Coverage:
    - Key store creation from an explicit config and from VAULT_* variables
    - Missing address / AppRole ID error handling
    - TLS verification warning
"""

import logging
import os
from unittest.mock import patch

import pytest

from libs.keystore import create_key_store
from libs.keystore.config import VaultConfig, get_vault_config
from libs.keystore.exceptions import KeyStoreError
from libs.keystore.store import VaultKeyStore


class TestCreateKeyStore:
    """Key store creation."""

    @pytest.mark.unit()
    def test_explicit_config(self, vault_config):
        store = create_key_store(vault_config)

        assert isinstance(store, VaultKeyStore)
        assert store.connected is False
        assert store.entry_path("db-key") == "my-app/db-key"

    @pytest.mark.unit()
    def test_config_from_environment(self):
        env = {
            "VAULT_ADDRESS": "https://vault.example.com:8200",
            "VAULT_APPROLE_ID": "role-id",
            "VAULT_LOCATION": "env-app",
        }
        with patch.dict(os.environ, env, clear=True):
            store = create_key_store()

        assert store.entry_path("db-key") == "env-app/db-key"

    @pytest.mark.unit()
    def test_uses_cached_config(self):
        env = {
            "VAULT_ADDRESS": "https://vault.example.com:8200",
            "VAULT_APPROLE_ID": "role-id",
        }
        with patch.dict(os.environ, env, clear=True):
            first = create_key_store()
            second = create_key_store()

        assert first._config is get_vault_config()
        assert second._config is first._config

    @pytest.mark.unit()
    def test_custom_error_log(self, vault_config):
        error_log = logging.getLogger("custom.keystore")

        store = create_key_store(vault_config, error_log=error_log)

        assert store._log is error_log


class TestCreateKeyStoreErrorHandling:
    """Invalid configurations fail fast."""

    @pytest.mark.unit()
    def test_empty_address(self):
        config = VaultConfig(_env_file=None, address="  ", approle_id="role-id")

        with pytest.raises(KeyStoreError, match="VAULT_ADDRESS"):
            create_key_store(config)

    @pytest.mark.unit()
    def test_missing_approle_id(self):
        config = VaultConfig(_env_file=None, address="https://vault.example.com:8200")

        with pytest.raises(KeyStoreError, match="VAULT_APPROLE_ID"):
            create_key_store(config)

    @pytest.mark.unit()
    def test_warns_when_verification_disabled(self, caplog):
        config = VaultConfig(
            _env_file=None,
            address="https://vault.example.com:8200",
            approle_id="role-id",
            verify=False,
        )

        with caplog.at_level(logging.WARNING, logger="libs.keystore.factory"):
            create_key_store(config)

        assert "TLS verification disabled" in caplog.text
