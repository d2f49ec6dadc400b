"""
Configuration management for agentregistry.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from agentregistry.core.exceptions import ConfigurationError
from agentregistry.core.pagination import PAGE_SIZE

# One full page costs two reads per item plus the length and a lookup
MIN_READ_BUDGET = 2 * PAGE_SIZE + 2


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {name} is not set")
    return value


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env_var(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Config:
    """Registry host configuration."""

    storage_backend: str = "memory"
    redis_url: str | None = None
    # Per-call metering
    read_budget: int = 64
    write_budget: int = 64
    # Signing domain
    chain_id: int = 1
    deployer: str = "deployer"

    # Environment & Logging
    log_level: str = "INFO"
    env: str = "development"

    def __post_init__(self) -> None:
        if self.read_budget < MIN_READ_BUDGET:
            raise ConfigurationError(
                f"read_budget must be at least {MIN_READ_BUDGET} to serve one page, "
                f"got {self.read_budget}"
            )
        if self.write_budget < 1:
            raise ConfigurationError("write_budget must be positive")
        if self.chain_id <= 0:
            raise ConfigurationError("chain_id must be positive")
        if not self.deployer:
            raise ConfigurationError("deployer is required")

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables."""
        storage_backend = overrides.get("storage_backend") or _get_env_var(
            "AGENTREGISTRY_STORAGE_BACKEND", default="memory"
        )
        redis_url = overrides.get("redis_url") or _get_env_var("AGENTREGISTRY_REDIS_URL")

        read_budget = overrides.get("read_budget") or _get_env_int(
            "AGENTREGISTRY_READ_BUDGET", cls.read_budget
        )
        write_budget = overrides.get("write_budget") or _get_env_int(
            "AGENTREGISTRY_WRITE_BUDGET", cls.write_budget
        )
        chain_id = overrides.get("chain_id") or _get_env_int("AGENTREGISTRY_CHAIN_ID", cls.chain_id)
        deployer = overrides.get("deployer") or _get_env_var(
            "AGENTREGISTRY_DEPLOYER", default=cls.deployer
        )

        log_level = overrides.get("log_level") or _get_env_var(
            "AGENTREGISTRY_LOG_LEVEL", default="INFO"
        )

        env = overrides.get("env") or _get_env_var("AGENTREGISTRY_ENV", default="development")

        return cls(
            storage_backend=storage_backend,  # type: ignore
            redis_url=redis_url,
            read_budget=read_budget,
            write_budget=write_budget,
            chain_id=chain_id,
            deployer=deployer,  # type: ignore
            log_level=log_level,  # type: ignore
            env=env,  # type: ignore
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {
            "storage_backend": self.storage_backend,
            "redis_url": self.redis_url,
            "read_budget": self.read_budget,
            "write_budget": self.write_budget,
            "chain_id": self.chain_id,
            "deployer": self.deployer,
            "log_level": self.log_level,
            "env": self.env,
        }
        current.update(updates)
        return Config(**current)

    def masked_redis_url(self) -> str | None:
        """Return the Redis URL with credentials masked for safe logging."""
        if not self.redis_url or "@" not in self.redis_url:
            return self.redis_url
        scheme, _, rest = self.redis_url.partition("://")
        _, _, host = rest.rpartition("@")
        return f"{scheme}://****@{host}"
