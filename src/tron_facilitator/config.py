"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup — if a setting is malformed, the app fails fast with a clear
error message.

The core (decoder, verifier, settlement) never reads settings directly; it
receives the frozen ``FacilitatorConfig`` built by ``facilitator_config()``.

Usage:
    from tron_facilitator.config import get_settings
    settings = get_settings()
    print(settings.facilitator_network_list)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tron_facilitator.chain.constants import DEFAULT_RPC_URLS, TRON_MAINNET
from tron_facilitator.domain.models import ConfirmationPolicy, FacilitatorConfig


class Settings(BaseSettings):
    """Central configuration for the Tron facilitator."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Facilitator ---
    # Comma-separated CAIP-2 identifiers, e.g. "tron:27Lqcw,tron:6FhfKq"
    facilitator_networks: str = TRON_MAINNET
    # Comma-separated base58 addresses the facilitator operates with
    facilitator_addresses: str = ""
    max_energy_fee_sun: int = 100_000_000  # 100 TRX
    energy_price_sun: int = 420
    reverify_oracles_on_settle: bool = True

    # --- Confirmation polling ---
    confirmation_max_attempts: int = 30
    confirmation_interval_seconds: float = 3.0
    confirmation_missing_receipt_threshold: int = 5

    # --- Tron RPC ---
    tron_rpc_mainnet: str = DEFAULT_RPC_URLS["tron:27Lqcw"]
    tron_rpc_shasta: str = DEFAULT_RPC_URLS["tron:4oPwXB"]
    tron_rpc_nile: str = DEFAULT_RPC_URLS["tron:6FhfKq"]
    trongrid_api_key: str = ""
    rpc_timeout_seconds: float = 10.0

    # --- Settled-transaction registry ---
    settlement_registry_backend: Literal["redis", "memory"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_settlement_ttl_seconds: int = 86400  # 24 hours

    @field_validator("max_energy_fee_sun", "energy_price_sun")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def facilitator_network_list(self) -> list[str]:
        """Parse comma-separated networks into a list."""
        return [n.strip() for n in self.facilitator_networks.split(",") if n.strip()]

    @property
    def facilitator_address_list(self) -> list[str]:
        """Parse comma-separated operating addresses into a list."""
        if not self.facilitator_addresses:
            return []
        return [a.strip() for a in self.facilitator_addresses.split(",") if a.strip()]

    @property
    def rpc_urls(self) -> dict[str, str]:
        """Map each known CAIP-2 network to its configured RPC endpoint."""
        return {
            "tron:27Lqcw": self.tron_rpc_mainnet,
            "tron:4oPwXB": self.tron_rpc_shasta,
            "tron:6FhfKq": self.tron_rpc_nile,
        }

    def facilitator_config(self) -> FacilitatorConfig:
        """Build the frozen config injected into the core components."""
        return FacilitatorConfig(
            networks=tuple(self.facilitator_network_list),
            max_energy_fee_sun=self.max_energy_fee_sun,
            energy_price_sun=self.energy_price_sun,
            confirmation=ConfirmationPolicy(
                max_attempts=self.confirmation_max_attempts,
                interval_seconds=self.confirmation_interval_seconds,
                missing_receipt_threshold=self.confirmation_missing_receipt_threshold,
            ),
            reverify_oracles_on_settle=self.reverify_oracles_on_settle,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
