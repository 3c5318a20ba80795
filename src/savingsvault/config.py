"""Application configuration using pydantic-settings.

Defaults target the Injective EVM testnet deployment of the savings vault
(wINJ as the ledger asset, INJ as the native asset).
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChainBackend(str, Enum):
    """Which wallet provider backs the session."""

    SIMULATED = "simulated"  # In-process chain, dev and tests
    RPC = "rpc"              # JSON-RPC node + local signing key


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Chain
    # ======================
    chain_backend: ChainBackend = Field(
        default=ChainBackend.SIMULATED, description="simulated or rpc"
    )
    chain_id: int = Field(default=1439, description="EVM chain ID (0x59f)")
    chain_name: str = Field(default="Injective EVM", description="Chain display name")
    rpc_url: str = Field(
        default="https://k8s.testnet.json-rpc.injective.network/",
        description="JSON-RPC endpoint",
    )
    native_symbol: str = Field(default="INJ", description="Native asset symbol")
    native_name: str = Field(default="Injective", description="Native asset name")
    explorer_url: str = Field(
        default="https://testnet.blockscout.injective.network/",
        description="Block explorer (only passed along when adding the chain)",
    )

    # ======================
    # Contracts
    # ======================
    token_address: str = Field(
        default="0x0000000088827d2d103ee2d9A6b781773AE03FfB",
        description="Ledger asset (wINJ) contract",
    )
    token_symbol: str = Field(default="wINJ", description="Ledger asset symbol")
    token_decimals: int = Field(default=18, description="Ledger asset decimals")
    vault_address: str = Field(
        default="0x26292356C2b29291B46DdEB18C6B8973026933bF",
        description="SavingsVault contract",
    )

    # ======================
    # Signer (rpc backend only)
    # ======================
    signer_private_key: Optional[str] = Field(
        default=None, description="Hex private key used by the rpc backend"
    )

    # ======================
    # Authorization policy
    # ======================
    strict_allowance: bool = Field(
        default=False,
        description="Require allowance >= amount instead of allowance > 0",
    )

    # ======================
    # Simulated backend
    # ======================
    sim_account: str = Field(
        default="0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1",
        description="Dev account funded on the simulated chain",
    )
    sim_native_balance: str = Field(default="2.0", description="Opening native balance")
    sim_token_balance: str = Field(default="1.0", description="Opening wINJ balance")
    sim_wallet_chain_id: Optional[int] = Field(
        default=None,
        description="Chain the simulated wallet starts on (None = already on target)",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def chain_id_hex(self) -> str:
        """Chain ID in the 0x-prefixed form wallets expect."""
        return hex(self.chain_id)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "chain": {
                "backend": self.chain_backend.value,
                "chain_id": self.chain_id,
                "name": self.chain_name,
                "rpc": self.rpc_url,
                "native": self.native_symbol,
            },
            "contracts": {
                "token": self.token_address,
                "token_symbol": self.token_symbol,
                "vault": self.vault_address,
            },
            "signer_key": "***" if self.signer_private_key else "(not set)",
            "strict_allowance": self.strict_allowance,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
