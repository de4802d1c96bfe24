"""
Root conftest for all tests.

Vault settings are read from VAULT_* environment variables and cached by
get_vault_config(). Tests must not pick up a developer's real Vault
credentials, so the variables are removed before collection and the cache
is reset around every test.
"""

import os

import pytest

from libs.keystore.config import get_vault_config


def pytest_configure(config):
    """Hook that runs before test collection starts.

    Drop VAULT_* variables inherited from the shell.
    """
    for name in list(os.environ):
        if name.upper().startswith("VAULT_"):
            del os.environ[name]


@pytest.fixture(autouse=True)
def _reset_vault_config_cache():
    get_vault_config.cache_clear()
    yield
    get_vault_config.cache_clear()
