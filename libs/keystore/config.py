"""
Configuration for the Vault key store.

Settings are loaded with Pydantic Settings and can be overridden via
VAULT_* environment variables or a .env file.

Example:
    >>> from libs.keystore.config import get_vault_config
    >>> config = get_vault_config()
    >>> config.address
    'http://127.0.0.1:8200'

Environment Variables:
    VAULT_ADDRESS, VAULT_MOUNT_POINT, VAULT_LOCATION,
    VAULT_APPROLE_ID, VAULT_APPROLE_SECRET, VAULT_APPROLE_RETRY_SECONDS,
    VAULT_STATUS_PING_SECONDS, VAULT_CLIENT_KEY_PATH, VAULT_CLIENT_CERT_PATH,
    VAULT_CA_PATH, VAULT_VERIFY, VAULT_TIMEOUT_SECONDS
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Final

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RETRY_DELAY_SECONDS: Final[float] = 5.0
DEFAULT_STATUS_PING_SECONDS: Final[float] = 10.0


@dataclass(frozen=True)
class AppRoleCredentials:
    """
    Vault AppRole login credentials.

    The same credentials are used for the initial login and for every
    re-authentication after a token could not be renewed.

    Attributes:
        role_id: AppRole role ID
        secret_id: AppRole secret ID
        retry_delay_seconds: Delay between failed login attempts.
            0 selects the default of 5 seconds.
    """

    role_id: str
    secret_id: str = ""
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")

    @property
    def retry_delay(self) -> float:
        """Effective retry delay in seconds."""
        return self.retry_delay_seconds or DEFAULT_RETRY_DELAY_SECONDS

    def __repr__(self) -> str:
        return (
            f"AppRoleCredentials(role_id={self.role_id!r}, secret_id='**********', "
            f"retry_delay_seconds={self.retry_delay_seconds})"
        )


class VaultConfig(BaseSettings):
    """
    Vault key store configuration.

    Attributes:
        address: HTTP(S) address of the Vault server
        mount_point: Mount point of the K/V (v1) secret engine
        location: Prefix under the mount point where keys are stored.
            Several key stores can share a prefix, e.g. "my-app".
        approle_id: AppRole role ID
        approle_secret: AppRole secret ID
        approle_retry_seconds: Delay between failed AppRole logins (0 = 5s)
        status_ping_seconds: Interval between seal status checks (0 = 10s)
        client_key_path: mTLS client private key
        client_cert_path: mTLS client certificate
        ca_path: CA certificate file or directory used to verify the
            server. Empty uses the system trust store.
        verify: Verify the server TLS certificate
        timeout_seconds: HTTP request timeout
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    address: str = Field(
        default="http://127.0.0.1:8200",
        description="Vault server address",
    )
    mount_point: str = Field(
        default="kv",
        description="K/V secret engine mount point",
    )
    location: str = Field(
        default="",
        description="Path prefix under the mount point for all keys",
    )

    approle_id: str = Field(default="", description="AppRole role ID")
    approle_secret: SecretStr = Field(
        default=SecretStr(""),
        description="AppRole secret ID",
    )
    approle_retry_seconds: float = Field(
        default=DEFAULT_RETRY_DELAY_SECONDS,
        ge=0,
        description="Delay between failed AppRole login attempts (0 selects the default)",
    )

    status_ping_seconds: float = Field(
        default=DEFAULT_STATUS_PING_SECONDS,
        ge=0,
        description="Interval between Vault seal status checks (0 selects the default)",
    )

    client_key_path: str = Field(default="", description="mTLS client private key path")
    client_cert_path: str = Field(default="", description="mTLS client certificate path")
    ca_path: str = Field(default="", description="CA certificate file or directory")
    verify: bool = Field(
        default=True,
        description="Verify the Vault server certificate. Disable for local development only.",
    )
    timeout_seconds: int = Field(default=30, ge=1, description="HTTP request timeout")

    def credentials(self) -> AppRoleCredentials:
        """Build the AppRole credentials used for login and re-authentication."""
        return AppRoleCredentials(
            role_id=self.approle_id,
            secret_id=self.approle_secret.get_secret_value(),
            retry_delay_seconds=self.approle_retry_seconds,
        )

    @property
    def status_interval(self) -> float:
        """Effective seal status check interval in seconds."""
        return self.status_ping_seconds or DEFAULT_STATUS_PING_SECONDS


@lru_cache
def get_vault_config() -> VaultConfig:
    """
    Get cached Vault configuration.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return VaultConfig()
