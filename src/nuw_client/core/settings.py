"""Client settings and configuration.

Settings are loaded from environment variables (prefixed ``NUW_``) or an
optional ``.env`` file, with defaults suitable for a local node.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed settings for the NUW challenge client."""

    # Node connectivity
    node_url: str = Field(default="http://127.0.0.1:8545", alias="NUW_NODE_URL")
    rpc_timeout_seconds: float = Field(default=30.0, alias="NUW_RPC_TIMEOUT_SECONDS")
    health_timeout_seconds: float = Field(default=5.0, alias="NUW_HEALTH_TIMEOUT_SECONDS")

    # Proof-of-work search bounds
    pow_max_attempts: int = Field(default=10_000, ge=1, alias="NUW_POW_MAX_ATTEMPTS")

    # Cooperative scheduling: iterations between yields to the event loop
    pow_yield_interval: int = Field(default=10, ge=1, alias="NUW_POW_YIELD_INTERVAL")
    signature_yield_interval: int = Field(
        default=1, ge=1, alias="NUW_SIGNATURE_YIELD_INTERVAL"
    )
    merkle_yield_interval: int = Field(default=1, ge=1, alias="NUW_MERKLE_YIELD_INTERVAL")

    # Defaults applied to legacy challenge descriptors with missing fields
    default_difficulty: int = Field(default=16, ge=0, alias="NUW_DEFAULT_DIFFICULTY")
    default_memory_cost: int = Field(default=1024, alias="NUW_DEFAULT_MEMORY_COST")
    default_time_cost: int = Field(default=2, alias="NUW_DEFAULT_TIME_COST")

    # Useful-work verification
    merkle_hash_algorithm: Literal["sha256", "blake3"] = Field(
        default="sha256", alias="NUW_MERKLE_HASH_ALGORITHM"
    )
    zk_placeholder_valid: bool = Field(default=True, alias="NUW_ZK_PLACEHOLDER_VALID")

    # Transaction submission
    submit_max_challenge_retries: int = Field(
        default=1, ge=0, alias="NUW_SUBMIT_MAX_CHALLENGE_RETRIES"
    )

    log_level: str = Field(default="INFO", alias="NUW_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


settings = Settings()
