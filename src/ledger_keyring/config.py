"""Keyring configuration using pydantic-settings.

Defaults target the Ubiq Ledger bridge. Every value can be overridden
through ``LEDGER_KEYRING_*`` environment variables or a ``.env`` file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HD_PATH = "m/44'/108'/0'/0"
DEFAULT_BRIDGE_URL = "https://ubiq.github.io/ubq-ledger-bridge-keyring"
DEFAULT_NETWORK = "mainnet"


class KeyringSettings(BaseSettings):
    """Keyring settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_KEYRING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Device
    # ======================
    hd_path: str = Field(
        default=DEFAULT_HD_PATH, description="Account root path on the device"
    )
    bridge_url: str = Field(
        default=DEFAULT_BRIDGE_URL, description="URL of the hosted Ledger bridge page"
    )

    # ======================
    # Account discovery
    # ======================
    per_page: int = Field(default=5, description="Accounts per discovery page")
    max_index: int = Field(
        default=1000, description="Upper bound for the fallback address scan"
    )

    # ======================
    # Timeouts (seconds, None = wait forever)
    # ======================
    request_timeout: Optional[float] = Field(
        default=120.0, description="Maximum wait for a single bridge reply"
    )
    queue_timeout: Optional[float] = Field(
        default=None, description="Maximum wait to enter the device queue"
    )

    # ======================
    # Transaction history API
    # ======================
    network: str = Field(default=DEFAULT_NETWORK, description="Active network name")
    network_api_urls: dict[str, str] = Field(
        default_factory=lambda: {DEFAULT_NETWORK: "https://rpc.octano.dev"},
        description="Network name -> explorer API base URL",
    )
    history_timeout: float = Field(
        default=30.0, description="HTTP timeout for history lookups"
    )

    @field_validator("per_page", "max_index")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("network_api_urls")
    @classmethod
    def _non_empty_urls(cls, value: dict[str, str]) -> dict[str, str]:
        if not value:
            raise ValueError("at least one network API URL is required")
        return value

    def api_url(self, network: Optional[str] = None) -> str:
        """Get the explorer API URL for a network.

        Unknown networks fall back to mainnet (or the first configured
        network when mainnet is absent).
        """
        name = network or self.network
        if name in self.network_api_urls:
            return self.network_api_urls[name]
        if DEFAULT_NETWORK in self.network_api_urls:
            return self.network_api_urls[DEFAULT_NETWORK]
        return next(iter(self.network_api_urls.values()))

    def get_safe_dict(self) -> dict:
        """Return settings as a plain dict for diagnostics."""
        return {
            "hd_path": self.hd_path,
            "bridge_url": self.bridge_url,
            "per_page": self.per_page,
            "max_index": self.max_index,
            "timeouts": {
                "request": self.request_timeout,
                "queue": self.queue_timeout,
                "history": self.history_timeout,
            },
            "network": self.network,
            "api_url": self.api_url(),
        }


@lru_cache
def get_settings() -> KeyringSettings:
    """Get cached settings instance."""
    return KeyringSettings()
