"""
Identity module - agent ownership, operators, wallet binding and metadata.
"""

from agentregistry.identity.authority import AgentAuthority
from agentregistry.identity.registry import IdentityRegistry
from agentregistry.identity.resolver import RegistrationResolver
from agentregistry.identity.types import (
    MAX_AGENT_ID,
    MAX_METADATA_ENTRIES,
    RESERVED_WALLET_KEY,
    AgentRecord,
    AgentRegistration,
    AgentService,
    MetadataEntry,
)

__all__ = [
    "AgentAuthority",
    "IdentityRegistry",
    "RegistrationResolver",
    "AgentRecord",
    "AgentRegistration",
    "AgentService",
    "MetadataEntry",
    "MAX_AGENT_ID",
    "MAX_METADATA_ENTRIES",
    "RESERVED_WALLET_KEY",
]
