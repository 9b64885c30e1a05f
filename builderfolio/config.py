"""
Builderfolio Configuration Management

Every tunable is read from the environment (or .env) into one validated
Settings object, cached for the life of the process.

SECURITY NOTE: OPERATOR_PRIVATE_KEY signs every tip and mint transaction.
Load it from a secrets manager in production; never commit it to .env.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from web3 import Web3


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ═══════════════════════════════════════════════════════════════
    # APPLICATION
    # ═══════════════════════════════════════════════════════════════
    app_name: str = Field(default="builderfolio", description="Application name")
    app_env: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3001, ge=1, le=65535, description="API port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated CORS origins (the frontend URL)",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Origins from the comma-separated setting; a wildcard is refused in production."""
        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        if self.app_env == "production" and "*" in origins:
            raise ValueError("Wildcard CORS origin not allowed in production")
        return origins

    # Rate limiting (fixed window, per client IP)
    rate_limit_requests: int = Field(
        default=100, ge=1, description="Requests allowed per window"
    )
    rate_limit_window_seconds: int = Field(
        default=900, ge=1, description="Rate limit window in seconds"
    )
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Maximum handler time before 504"
    )

    # ═══════════════════════════════════════════════════════════════
    # NEO4J DATABASE
    # ═══════════════════════════════════════════════════════════════
    neo4j_uri: str = Field(description="Bolt or neo4j:// URI of the profile graph")
    neo4j_user: str = Field(default="neo4j", description="Neo4j username")
    neo4j_password: str = Field(description="Neo4j password")
    neo4j_database: str = Field(default="neo4j", description="Neo4j database name")

    # Connection Pool
    neo4j_max_connection_lifetime: int = Field(
        default=3600, description="Seconds before a pooled connection is recycled"
    )
    neo4j_max_connection_pool_size: int = Field(
        default=50, ge=1, description="Driver connection pool size"
    )
    neo4j_connection_timeout: int = Field(
        default=30, ge=1, description="Seconds to wait when opening a connection"
    )

    # ═══════════════════════════════════════════════════════════════
    # BLOCKCHAIN
    # ═══════════════════════════════════════════════════════════════
    rpc_url: str = Field(
        default="http://localhost:8545", description="EVM JSON-RPC endpoint"
    )
    support_contract_address: str | None = Field(
        default=None, description="Support (tipping) contract address"
    )
    profile_nft_contract_address: str | None = Field(
        default=None, description="Profile NFT contract address"
    )
    operator_private_key: str | None = Field(
        default=None, description="Hex private key that signs tip and mint transactions"
    )
    tx_receipt_timeout_seconds: int = Field(
        default=120, ge=1, description="Max wait for one confirmation"
    )
    chain_read_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Per-profile timeout for on-chain reads"
    )

    # Trending
    trending_limit: int = Field(default=10, ge=1, le=10, description="Trending list size")
    trending_concurrency: int = Field(
        default=5, ge=1, description="Max concurrent on-chain enrichments"
    )

    @field_validator("support_contract_address", "profile_nft_contract_address")
    @classmethod
    def validate_contract_address(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        if not Web3.is_address(v):
            raise ValueError(f"Invalid contract address: {v}")
        return Web3.to_checksum_address(v)

    # ═══════════════════════════════════════════════════════════════
    # IPFS
    # ═══════════════════════════════════════════════════════════════
    ipfs_api_url: str = Field(
        default="https://ipfs.infura.io:5001", description="IPFS HTTP API base URL"
    )
    ipfs_project_id: str | None = Field(default=None, description="IPFS basic auth user")
    ipfs_project_secret: str | None = Field(
        default=None, description="IPFS basic auth secret"
    )
    ipfs_timeout_seconds: float = Field(
        default=30.0, gt=0, description="IPFS request timeout"
    )

    # ═══════════════════════════════════════════════════════════════
    # MONITORING
    # ═══════════════════════════════════════════════════════════════
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN")


@lru_cache
def get_settings() -> Settings:
    """Settings are parsed once per process."""
    return Settings()


# Singleton settings instance
settings = get_settings()
