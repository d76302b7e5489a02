"""Application configuration using pydantic-settings.

Credentials for the balance API are collected from numbered environment
variables (MORALIS_API_KEY_1, MORALIS_API_KEY_2, ...) so keys can be added
without touching code.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def collect_numbered_keys(prefix: str, environ: Optional[dict] = None) -> list[str]:
    """Collect PREFIX_1, PREFIX_2, ... until the first unset index.

    Blank values are skipped but do not stop the scan.
    """
    env = os.environ if environ is None else environ
    keys: list[str] = []
    index = 1
    while True:
        value = env.get(f"{prefix}_{index}")
        if value is None:
            break
        if value.strip():
            keys.append(value.strip())
        index += 1
    return keys


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    # ======================
    # Token Providers
    # ======================
    lifi_api_url: str = Field(
        default="https://li.quest/v1", description="LI.FI token/chain list API"
    )
    lifi_api_key: str = Field(default="", description="Optional LI.FI API key")
    dexscreener_api_url: str = Field(
        default="https://api.dexscreener.com", description="DexScreener API base URL"
    )
    dexscreener_search_deadline: float = Field(
        default=10.0, description="Upper bound in seconds on one DexScreener text search"
    )
    moralis_api_url: str = Field(
        default="https://deep-index.moralis.io/api/v2.2", description="Moralis EVM API"
    )
    moralis_solana_api_url: str = Field(
        default="https://solana-gateway.moralis.io", description="Moralis Solana gateway"
    )
    moralis_api_keys: str = Field(
        default="", description="Comma-separated Moralis API keys (in addition to MORALIS_API_KEY_N)"
    )
    http_timeout: float = Field(default=30.0, description="Outbound HTTP timeout in seconds")
    discover_chains: bool = Field(
        default=True, description="Register chains LI.FI lists beyond the built-in table at startup"
    )

    # ======================
    # Chain RPC Endpoints
    # ======================
    eth_rpc_url: str = Field(default="https://eth.llamarpc.com", description="Ethereum RPC URL")
    bsc_rpc_url: str = Field(
        default="https://bsc-dataseed.binance.org", description="BNB Chain RPC URL"
    )
    polygon_rpc_url: str = Field(default="https://polygon-rpc.com", description="Polygon RPC URL")
    arbitrum_rpc_url: str = Field(
        default="https://arb1.arbitrum.io/rpc", description="Arbitrum One RPC URL"
    )
    optimism_rpc_url: str = Field(
        default="https://mainnet.optimism.io", description="Optimism RPC URL"
    )
    base_rpc_url: str = Field(default="https://mainnet.base.org", description="Base RPC URL")
    avax_rpc_url: str = Field(
        default="https://api.avax.network/ext/bc/C/rpc", description="Avalanche RPC URL"
    )
    sol_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", description="Solana RPC URL"
    )

    # ======================
    # Cache & Key Rotation
    # ======================
    cache_sweep_interval: float = Field(
        default=60.0, description="Seconds between expired-entry sweeps"
    )
    key_rotation_max_attempts: int = Field(
        default=3, description="Attempts per request when rotating rate-limited keys"
    )
    key_rotation_delay: float = Field(
        default=0.1, description="Delay in seconds before retrying with the next key"
    )

    # ======================
    # Token Search
    # ======================
    default_token_limit: int = Field(default=30, description="Default number of tokens returned")
    similarity_threshold: float = Field(
        default=0.5, description="Minimum similarity for non-exact search matches"
    )
    mix_priority_chain_id: int = Field(
        default=56, description="Chain favoured when mixing all-network results"
    )
    mix_per_chain_cap: int = Field(default=3, description="Max tokens per ordinary chain")
    mix_priority_chain_cap: int = Field(default=6, description="Max tokens for the priority chain")
    enrichment_deadline: float = Field(
        default=2.0, description="Deadline in seconds for deadline-bound enrichment"
    )

    # ======================
    # Swap Execution
    # ======================
    approval_settle_delay: float = Field(
        default=3.0, description="Seconds to wait after an approval before the next step"
    )
    step_settle_delay: float = Field(
        default=3.0, description="Seconds to wait between route steps"
    )
    gas_buffer_percent: int = Field(
        default=20, description="Headroom added when a provided gas limit is below the estimate"
    )
    evm_confirmation_timeout: float = Field(
        default=120.0, description="EVM receipt wait timeout in seconds"
    )
    solana_confirmation_timeout: float = Field(
        default=60.0, description="Solana signature confirmation timeout in seconds"
    )
    confirmation_poll_interval: float = Field(
        default=2.0, description="Seconds between confirmation polls"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def moralis_keys(self) -> list[str]:
        """Balance API keys: numbered env vars first, then the comma-separated list."""
        keys = collect_numbered_keys("MORALIS_API_KEY")
        for key in self.moralis_api_keys.split(","):
            key = key.strip()
            if key and key not in keys:
                keys.append(key)
        return keys

    def get_rpc_url(self, chain_id: int) -> str:
        """Get RPC URL for a canonical chain id."""
        rpc_map = {
            1: self.eth_rpc_url,
            56: self.bsc_rpc_url,
            137: self.polygon_rpc_url,
            42161: self.arbitrum_rpc_url,
            10: self.optimism_rpc_url,
            8453: self.base_rpc_url,
            43114: self.avax_rpc_url,
            7565164: self.sol_rpc_url,
        }
        return rpc_map.get(chain_id, "")

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "providers": {
                "lifi": {
                    "url": self.lifi_api_url,
                    "api_key": "***" if self.lifi_api_key else "(not set)",
                },
                "dexscreener": {"url": self.dexscreener_api_url},
                "moralis": {
                    "url": self.moralis_api_url,
                    "keys": len(self.moralis_keys),
                },
            },
            "search": {
                "default_limit": self.default_token_limit,
                "similarity_threshold": self.similarity_threshold,
                "priority_chain": self.mix_priority_chain_id,
                "per_chain_cap": self.mix_per_chain_cap,
                "priority_chain_cap": self.mix_priority_chain_cap,
            },
            "execution": {
                "approval_settle_delay": self.approval_settle_delay,
                "step_settle_delay": self.step_settle_delay,
                "evm_confirmation_timeout": self.evm_confirmation_timeout,
                "solana_confirmation_timeout": self.solana_confirmation_timeout,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
