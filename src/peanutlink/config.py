"""Application configuration using pydantic-settings.

The custody wallet is derived from a 12-word seed phrase. The process must
refuse to start without one.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from peanutlink.errors import ConfigurationError

MNEMONIC_WORD_COUNT = 12

# Infura network slugs by chain id
INFURA_NETWORKS = {
    1: "mainnet",
    10: "optimism-mainnet",
    137: "polygon-mainnet",
    8453: "base-mainnet",
    42161: "arbitrum-mainnet",
    11155111: "sepolia",
}

# Public RPC (rate limited)
PUBLIC_RPC_URLS = {
    1: "https://eth.llamarpc.com",
    10: "https://mainnet.optimism.io",
    137: "https://polygon-rpc.com",
    8453: "https://mainnet.base.org",
    42161: "https://arb1.arbitrum.io/rpc",
    11155111: "https://rpc.sepolia.org",
}


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
    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=8001, description="API server port")
    api_key: str = Field(default="", description="Secret expected in the x-api-key header")
    admin_token: str = Field(default="", description="Admin API token for issuance listing")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")

    # ======================
    # Network / Wallet
    # ======================
    chain_id: int = Field(default=11155111, description="EVM chain id (Sepolia by default)")
    mnemonic: Optional[str] = Field(
        default=None, description="12 word seed phrase of the custody wallet"
    )
    rpc_url: str = Field(default="", description="Explicit RPC endpoint (overrides Infura)")
    infura_project_id: str = Field(default="", description="Infura project id")
    etherscan_api_key: str = Field(default="", description="Etherscan API key")

    # ======================
    # Link issuance
    # ======================
    token_decimals: int = Field(default=9, ge=0, description="Token precision used for every link")
    link_issuer_url: str = Field(default="", description="Base URL of the link issuing service")
    link_issuer_api_key: str = Field(default="", description="API key for the link issuing service")
    http_timeout: float = Field(default=30.0, description="Timeout for outbound HTTP calls")
    signing_lock_timeout: float = Field(
        default=60.0, description="Seconds to wait for the wallet signing lock"
    )

    # ======================
    # Rate limiting
    # ======================
    rate_limit_max: int = Field(default=100, description="Requests allowed per window per client")
    rate_limit_window_seconds: int = Field(default=15 * 60, description="Rate limit window")

    # ======================
    # Journal
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/peanutlink.db",
        description="Issuance journal database URL",
    )

    # ======================
    # Safety Guards
    # ======================
    dry_run: bool = Field(default=True, description="Simulate signing and link issuance")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def mnemonic_word_count(self) -> int:
        if not self.mnemonic:
            return 0
        return len(self.mnemonic.split())

    @property
    def has_valid_mnemonic(self) -> bool:
        """Check if the seed phrase has exactly twelve words."""
        return self.mnemonic_word_count == MNEMONIC_WORD_COUNT

    def require_mnemonic(self) -> str:
        """Return the normalized seed phrase or fail.

        Raises:
            ConfigurationError: If the phrase is missing or not 12 words
        """
        if not self.has_valid_mnemonic:
            raise ConfigurationError("Invalid or missing MNEMONIC in environment variables.")
        return " ".join(self.mnemonic.split())

    def get_rpc_url(self) -> str:
        """Resolve the RPC endpoint for the configured chain."""
        if self.rpc_url:
            return self.rpc_url

        network = INFURA_NETWORKS.get(self.chain_id)
        if self.infura_project_id and network:
            return f"https://{network}.infura.io/v3/{self.infura_project_id}"

        url = PUBLIC_RPC_URLS.get(self.chain_id)
        if not url:
            raise ConfigurationError(
                f"No RPC endpoint known for chain {self.chain_id}; set RPC_URL"
            )
        return url

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "host": self.host,
            "port": self.port,
            "chain_id": self.chain_id,
            "token_decimals": self.token_decimals,
            "wallet_configured": self.has_valid_mnemonic,
            "api_key": "***" if self.api_key else "(not set)",
            "admin_token": "***" if self.admin_token else "(not set)",
            "infura_project_id": "***" if self.infura_project_id else "(not set)",
            "etherscan_api_key": "***" if self.etherscan_api_key else "(not set)",
            "link_issuer_url": self.link_issuer_url or "(simulated)",
            "database_url": self._redact_url(self.database_url),
            "rate_limit": {
                "max": self.rate_limit_max,
                "window_seconds": self.rate_limit_window_seconds,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
