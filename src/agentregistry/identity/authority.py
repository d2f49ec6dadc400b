"""
Authorization surface the feedback and validation ledgers depend on.

The ledgers never touch identity state directly; they ask an AgentAuthority
whether an agent exists, who owns it and whether a caller may act for it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AgentAuthority(Protocol):
    """Narrow read-only view of the identity registry."""

    @property
    def principal(self) -> str:
        """Contract principal of the identity registry."""
        ...

    def agent_exists(self, agent_id: int) -> bool: ...

    def owner_of(self, agent_id: int) -> str | None: ...

    def is_authorized_or_owner(self, caller: str, agent_id: int) -> bool:
        """True iff ``caller`` owns ``agent_id`` or is an approved operator."""
        ...
