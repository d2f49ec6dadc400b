"""
Validation registry records.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from agentregistry.core.types import hash_to_hex, hex_to_hash

MAX_RESPONSE = 100


class ValidationStatus(str, Enum):
    """Lifecycle of one validation request."""

    PENDING = "PENDING"
    RESPONDED = "RESPONDED"


@dataclass
class ValidationRecord:
    """
    A validation request and its latest response, keyed by request hash.

    ``response`` is 0 while pending; only records with ``has_response``
    count toward the agent's summary.
    """

    validator: str
    agent_id: int
    request_uri: str
    request_hash: bytes
    response: int = 0
    response_uri: str = ""
    response_hash: bytes = b""
    tag: str = ""
    has_response: bool = False
    last_update: int = 0

    @property
    def status(self) -> ValidationStatus:
        return ValidationStatus.RESPONDED if self.has_response else ValidationStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "validator": self.validator,
            "agent_id": self.agent_id,
            "request_uri": self.request_uri,
            "request_hash": hash_to_hex(self.request_hash),
            "response": self.response,
            "response_uri": self.response_uri,
            "response_hash": hash_to_hex(self.response_hash),
            "tag": self.tag,
            "has_response": self.has_response,
            "last_update": self.last_update,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationRecord:
        return cls(
            validator=data["validator"],
            agent_id=int(data["agent_id"]),
            request_uri=data.get("request_uri", ""),
            request_hash=hex_to_hash(data["request_hash"]),
            response=int(data.get("response", 0)),
            response_uri=data.get("response_uri", ""),
            response_hash=hex_to_hash(data.get("response_hash", "0x")),
            tag=data.get("tag", ""),
            has_response=bool(data.get("has_response", False)),
            last_update=int(data.get("last_update", 0)),
        )


@dataclass(frozen=True)
class ValidationSummary:
    """Count of responded validations and their truncated mean score."""

    count: int
    avg_response: int

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "avg_response": self.avg_response}
