"""
agentregistry - identity, reputation and validation registries for autonomous agents.

Agents register an identity, collect client feedback and request third-party
validations. Every operation runs as one atomic call on a metered host, and
every list query pages through a bounded window.

Usage:
    >>> from agentregistry import AgentRegistries
    >>>
    >>> registries = AgentRegistries()
    >>> agent_id = registries.identity.register("alice")
    >>> registries.reputation.approve_client("alice", agent_id, "bob", 2)
    True
    >>> registries.reputation.give_feedback_approved("bob", agent_id, 80, 0)
    1
    >>> registries.reputation.get_summary(agent_id).summary_value
    80000000000000000000
"""

from agentregistry.client import AgentRegistries
from agentregistry.core.aggregate import WAD, RunningAggregate
from agentregistry.core.config import Config
from agentregistry.core.exceptions import (
    AlreadyExistsError,
    AlreadyRevokedError,
    ConfigurationError,
    ExpiredSignatureError,
    HostErrorCode,
    IdentityErrorCode,
    InvalidInputError,
    InvalidSignatureError,
    NotAuthorizedError,
    NotFoundError,
    QuotaExceededError,
    RegistryError,
    ReputationErrorCode,
    ReservedKeyError,
    ResourceBudgetError,
    SelfDealingError,
    ValidationErrorCode,
    WalletAlreadySetError,
    WalletConflictError,
)
from agentregistry.core.pagination import PAGE_SIZE, Page
from agentregistry.core.types import CallContext, CallResult, Event
from agentregistry.identity import (
    AgentAuthority,
    AgentRecord,
    AgentRegistration,
    IdentityRegistry,
    MetadataEntry,
    RegistrationResolver,
)
from agentregistry.reputation import (
    FeedbackRecord,
    FeedbackSummary,
    ReputationRegistry,
    ResponseRecord,
)
from agentregistry.runtime import Chain
from agentregistry.signing import Ed25519Signer, Ed25519Verifier, SignatureVerifier
from agentregistry.validation import (
    ValidationRecord,
    ValidationRegistry,
    ValidationStatus,
    ValidationSummary,
)

__version__ = "2.0.0"
__all__ = [
    # Main Client
    "AgentRegistries",
    # Host
    "Chain",
    "CallContext",
    "CallResult",
    "Event",
    "Config",
    # Registries
    "IdentityRegistry",
    "ReputationRegistry",
    "ValidationRegistry",
    "AgentAuthority",
    "RegistrationResolver",
    # Types
    "AgentRecord",
    "AgentRegistration",
    "MetadataEntry",
    "FeedbackRecord",
    "FeedbackSummary",
    "ResponseRecord",
    "ValidationRecord",
    "ValidationStatus",
    "ValidationSummary",
    "Page",
    "PAGE_SIZE",
    "RunningAggregate",
    "WAD",
    # Signing
    "SignatureVerifier",
    "Ed25519Signer",
    "Ed25519Verifier",
    # Exceptions
    "RegistryError",
    "ConfigurationError",
    "NotAuthorizedError",
    "NotFoundError",
    "AlreadyExistsError",
    "SelfDealingError",
    "QuotaExceededError",
    "AlreadyRevokedError",
    "ReservedKeyError",
    "WalletConflictError",
    "WalletAlreadySetError",
    "ExpiredSignatureError",
    "InvalidSignatureError",
    "InvalidInputError",
    "ResourceBudgetError",
    "IdentityErrorCode",
    "ReputationErrorCode",
    "ValidationErrorCode",
    "HostErrorCode",
]
