"""Shared fixtures for key store tests."""

import pytest

from libs.keystore.config import VaultConfig
from libs.keystore.session import SessionState
from tests.libs.keystore.fakes import FakeVaultBackend


@pytest.fixture()
def fake_backend() -> FakeVaultBackend:
    return FakeVaultBackend()


@pytest.fixture()
def session() -> SessionState:
    return SessionState()


@pytest.fixture()
def vault_config() -> VaultConfig:
    return VaultConfig(
        _env_file=None,
        address="https://vault.example.com:8200",
        mount_point="kv",
        location="my-app",
        approle_id="role-id",
        approle_secret="secret-id",
        approle_retry_seconds=2,
        status_ping_seconds=10,
    )
