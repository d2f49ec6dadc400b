"""AgentRegistries - main entry point wiring the host and the three registries."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from agentregistry.core.config import Config
from agentregistry.core.logging import configure_logging, get_logger
from agentregistry.core.types import CallResult
from agentregistry.identity.registry import IdentityRegistry
from agentregistry.identity.resolver import RegistrationResolver
from agentregistry.reputation.registry import ReputationRegistry
from agentregistry.runtime.chain import Chain
from agentregistry.signing.verifier import Ed25519Verifier, SignatureVerifier
from agentregistry.storage import get_storage
from agentregistry.storage.base import StorageBackend
from agentregistry.validation.registry import ValidationRegistry

T = TypeVar("T")


class AgentRegistries:
    """
    Identity, reputation and validation registries on one host.

    Example:
        >>> registries = AgentRegistries.from_env()
        >>> agent_id = registries.identity.register("alice")
        >>> registries.reputation.give_feedback("bob", agent_id, 80, 0)
        1
        >>> registries.execute(registries.reputation.revoke_feedback, "carol", agent_id, 1).error
        3002
    """

    def __init__(
        self,
        config: Config | None = None,
        storage: StorageBackend | None = None,
        verifier: SignatureVerifier | None = None,
        clock: Callable[[], int] | None = None,
        configure_logs: bool = False,
    ) -> None:
        """
        Args:
            config: Host configuration (defaults to ``Config()``)
            storage: State backend; built from ``config`` when omitted
            verifier: Signature verifier shared by identity and reputation
            clock: Unix-seconds clock for signature deadlines
            configure_logs: Install the agentregistry log handler at ``config.log_level``
                (JSON lines when ``config.env`` is "production")
        """
        self._config = config or Config()
        if configure_logs:
            configure_logging(
                level=self._config.log_level,
                json_format=self._config.env == "production",
            )
        self._logger = get_logger("client")

        if storage is None:
            kwargs: dict[str, Any] = {}
            if self._config.storage_backend == "redis" and self._config.redis_url:
                kwargs["redis_url"] = self._config.redis_url
            storage = get_storage(self._config.storage_backend, **kwargs)

        self._verifier = verifier or Ed25519Verifier()
        self._chain = Chain(storage=storage, config=self._config, clock=clock)
        self._identity = IdentityRegistry(self._chain, verifier=self._verifier)
        self._reputation = ReputationRegistry(self._chain, self._identity, verifier=self._verifier)
        self._validation = ValidationRegistry(self._chain, self._identity)

        backend = self._config.storage_backend
        if backend == "redis" and self._config.redis_url:
            backend = f"redis at {self._config.masked_redis_url()}"
        self._logger.info(
            f"Registries ready (backend: {backend}, "
            f"chain id: {self._config.chain_id}, deployer: {self._config.deployer})"
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> AgentRegistries:
        """Build from AGENTREGISTRY_* environment variables."""
        return cls(config=Config.from_env(**overrides), configure_logs=True)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def chain(self) -> Chain:
        return self._chain

    @property
    def identity(self) -> IdentityRegistry:
        return self._identity

    @property
    def reputation(self) -> ReputationRegistry:
        return self._reputation

    @property
    def validation(self) -> ValidationRegistry:
        return self._validation

    @property
    def verifier(self) -> SignatureVerifier:
        return self._verifier

    def resolver(self, **kwargs: Any) -> RegistrationResolver:
        """Registration-file resolver bound to this identity registry."""
        return RegistrationResolver(self._identity, **kwargs)

    def execute(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> CallResult[T]:
        """Run an operation, returning the numeric error code instead of raising."""
        return self._chain.execute(fn, *args, **kwargs)

    def health_check(self) -> dict[str, Any]:
        """Backend reachability plus host position."""
        storage_ok = self._chain.storage.health_check()
        if not storage_ok:
            self._logger.warning("Storage backend is unreachable")
        return {
            "healthy": storage_ok,
            "storage_backend": self._config.storage_backend,
            "block_height": self._chain.block_height,
            "chain_id": self._config.chain_id,
            "versions": {
                IdentityRegistry.CONTRACT: self._identity.get_version(),
                ReputationRegistry.CONTRACT: self._reputation.get_version(),
                ValidationRegistry.CONTRACT: self._validation.get_version(),
            },
        }

    def close(self) -> None:
        self._chain.storage.close()

    def __enter__(self) -> AgentRegistries:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
