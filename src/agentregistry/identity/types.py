"""
Identity registry types and data structures.

On-ledger records (agents, metadata entries) plus the off-ledger agent
registration file an agent's URI points at.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger("agentregistry.identity.types")

# Metadata key under which the wallet binding is kept; users may not write it
RESERVED_WALLET_KEY = "agentWallet"

MAX_METADATA_ENTRIES = 10
MAX_AGENT_ID = 2**128 - 1

REGISTRATION_TYPE = "https://eips.ethereum.org/EIPS/eip-8004#registration-v1"


# ---------------------------------------------------------------------------
# On-ledger records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetadataEntry:
    """One key/value pair for ``register_full``."""

    key: str
    value: bytes

    @classmethod
    def coerce(cls, entry: MetadataEntry | tuple[str, bytes | str]) -> MetadataEntry:
        if isinstance(entry, MetadataEntry):
            return entry
        key, value = entry
        return cls(key=key, value=value.encode("utf-8") if isinstance(value, str) else value)


@dataclass
class AgentRecord:
    """Snapshot of one agent's identity state."""

    agent_id: int
    owner: str
    wallet: str | None = None
    uri: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "owner": self.owner,
            "wallet": self.wallet,
            "uri": self.uri,
        }


# ---------------------------------------------------------------------------
# Off-ledger registration file
# ---------------------------------------------------------------------------

@dataclass
class AgentService:
    """A service endpoint advertised in the agent registration file."""

    name: str                # e.g. "A2A", "MCP", "web", "email"
    endpoint: str
    version: str | None = None


@dataclass
class AgentRegistration:
    """
    Agent identity joined with its registration file.

    On-ledger fields come from the identity registry; the rest from the JSON
    document fetched from the agent URI.
    """

    agent_id: int
    owner: str
    wallet: str | None = None
    uri: str = ""

    registration_type: str | None = None
    name: str | None = None
    description: str | None = None
    image: str | None = None
    services: list[AgentService] = field(default_factory=list)
    active: bool = True
    supported_trust: list[str] = field(default_factory=list)
    raw_metadata: dict[str, Any] = field(default_factory=dict)

    def has_service(self, name: str) -> bool:
        """Check if agent has a specific service type."""
        return any(s.name.lower() == name.lower() for s in self.services)

    @classmethod
    def from_registration_file(cls, record: AgentRecord, data: dict[str, Any]) -> AgentRegistration:
        """
        Parse a registration JSON file for ``record``.

        A missing or unexpected ``type`` is logged, not rejected: agents may
        publish older or custom registration formats.
        """
        reg_type = data.get("type")
        if not reg_type:
            logger.warning(
                "Agent %d registration file missing 'type' field (expected '%s')",
                record.agent_id,
                REGISTRATION_TYPE,
            )
        elif reg_type != REGISTRATION_TYPE:
            logger.warning(
                "Agent %d registration file has unexpected type '%s'",
                record.agent_id,
                reg_type,
            )

        services = [
            AgentService(
                name=s.get("name", ""),
                endpoint=s.get("endpoint", ""),
                version=s.get("version"),
            )
            for s in data.get("services", [])
            if isinstance(s, dict)
        ]

        return cls(
            agent_id=record.agent_id,
            owner=record.owner,
            wallet=record.wallet,
            uri=record.uri,
            registration_type=reg_type,
            name=data.get("name"),
            description=data.get("description"),
            image=data.get("image"),
            services=services,
            active=data.get("active", True),
            supported_trust=data.get("supportedTrust", []),
            raw_metadata=data,
        )
