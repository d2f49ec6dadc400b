"""
Reputation registry records.

Records are persisted as plain dicts through ``to_dict``/``from_dict``;
hashes travel as ``0x``-prefixed hex so any backend can store them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from agentregistry.core.aggregate import WAD_DECIMALS
from agentregistry.core.types import hash_to_hex, hex_to_hash

INT128_MIN = -(2**127)
INT128_MAX = 2**127 - 1


@dataclass
class FeedbackRecord:
    """
    One client's feedback about an agent.

    Keyed by (agent_id, client, index); index starts at 1 per client per
    agent. Only ``is_revoked`` ever changes after creation.
    """

    agent_id: int
    client: str
    index: int
    value: int
    value_decimals: int
    tag1: str = ""
    tag2: str = ""
    endpoint: str = ""
    feedback_uri: str = ""
    feedback_hash: bytes = b""
    is_revoked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "client": self.client,
            "index": self.index,
            "value": self.value,
            "value_decimals": self.value_decimals,
            "tag1": self.tag1,
            "tag2": self.tag2,
            "endpoint": self.endpoint,
            "feedback_uri": self.feedback_uri,
            "feedback_hash": hash_to_hex(self.feedback_hash),
            "is_revoked": self.is_revoked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeedbackRecord:
        return cls(
            agent_id=int(data["agent_id"]),
            client=data["client"],
            index=int(data["index"]),
            value=int(data["value"]),
            value_decimals=int(data["value_decimals"]),
            tag1=data.get("tag1", ""),
            tag2=data.get("tag2", ""),
            endpoint=data.get("endpoint", ""),
            feedback_uri=data.get("feedback_uri", ""),
            feedback_hash=hex_to_hash(data.get("feedback_hash", "0x")),
            is_revoked=bool(data.get("is_revoked", False)),
        )


@dataclass
class FeedbackApproval:
    """Approved-path quota of one client for one agent."""

    remaining: int = 0
    last_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"remaining": self.remaining, "last_index": self.last_index}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FeedbackApproval:
        if not data:
            return cls()
        return cls(remaining=int(data.get("remaining", 0)), last_index=int(data.get("last_index", 0)))


@dataclass
class ResponseRecord:
    """One entry of the response thread attached to a feedback record."""

    responder: str
    response_uri: str
    response_hash: bytes = b""
    block_height: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "responder": self.responder,
            "response_uri": self.response_uri,
            "response_hash": hash_to_hex(self.response_hash),
            "block_height": self.block_height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResponseRecord:
        return cls(
            responder=data["responder"],
            response_uri=data["response_uri"],
            response_hash=hex_to_hash(data.get("response_hash", "0x")),
            block_height=int(data.get("block_height", 0)),
        )


@dataclass(frozen=True)
class FeedbackSummary:
    """
    Aggregate over an agent's non-revoked feedback.

    ``summary_value`` is the WAD-scaled mean, truncated toward zero.
    """

    count: int
    summary_value: int
    summary_value_decimals: int = WAD_DECIMALS

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "summary_value": self.summary_value,
            "summary_value_decimals": self.summary_value_decimals,
        }
