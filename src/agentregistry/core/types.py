"""
Type definitions shared across the registries and the call host.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeAlias, TypeVar

# Accounts and contracts are both addressed by principal strings
Principal: TypeAlias = str

T = TypeVar("T")


@dataclass(frozen=True)
class CallContext:
    """Who is calling, and when, for the duration of one call."""

    sender: Principal
    block_height: int
    timestamp: int


@dataclass(frozen=True)
class Event:
    """
    Structured event emitted by a committed call.

    Events of an aborted call are discarded together with its writes.
    """

    contract: str
    name: str
    data: dict[str, Any] = field(default_factory=dict)
    block_height: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract,
            "name": self.name,
            "data": self.data,
            "block_height": self.block_height,
        }


@dataclass
class CallResult(Generic[T]):
    """
    Outcome of a call executed through ``Chain.execute``.

    Either ``ok`` with a ``value``, or not ``ok`` with the numeric ``error``
    code of the rejecting component.
    """

    ok: bool
    value: T | None = None
    error: int | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: T) -> "CallResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: int, message: str | None = None) -> "CallResult[T]":
        return cls(ok=False, error=error, message=message)

    def unwrap(self) -> T:
        """Return the value, or raise if the call failed."""
        if not self.ok:
            raise ValueError(f"call failed with error {self.error}: {self.message}")
        return self.value  # type: ignore[return-value]


def hash_to_hex(value: bytes) -> str:
    """Hashes are stored as ``0x``-prefixed hex."""
    return "0x" + bytes(value).hex()


def hex_to_hash(value: str) -> bytes:
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)
