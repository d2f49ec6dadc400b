"""
Typed state maps.

Registries declare their state as named maps keyed by composite keys
(agent id, principal, index, hash, ...). Keys are encoded as
``{contract}/{map}/{part}/{part}...`` so each contract owns a disjoint slice
of the backend and no component can reach another's state except through
its public reads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Union
from urllib.parse import quote

if TYPE_CHECKING:
    from agentregistry.storage.transaction import Transaction

KeyPart = Union[int, str, bytes]


def encode_part(part: KeyPart) -> str:
    """Encode one key component; separators inside strings are escaped."""
    if isinstance(part, bool):
        raise TypeError("bool is not a valid key part")
    if isinstance(part, int):
        return str(part)
    if isinstance(part, bytes):
        return "0x" + part.hex()
    if isinstance(part, str):
        return quote(part, safe="")
    raise TypeError(f"unsupported key part type: {type(part).__name__}")


class StateMap:
    """A named map inside one contract's slice of state."""

    def __init__(self, contract: str, name: str) -> None:
        self.contract = contract
        self.name = name
        self._prefix = f"{contract}/{name}"

    def key(self, *parts: KeyPart) -> str:
        if not parts:
            return self._prefix
        return self._prefix + "/" + "/".join(encode_part(p) for p in parts)

    def get(self, tx: Transaction, *parts: KeyPart, default: Any = None) -> Any:
        value = tx.get(self.key(*parts))
        return default if value is None else value

    def set(self, tx: Transaction, *parts: KeyPart, value: Any) -> None:
        tx.put(self.key(*parts), value)

    def delete(self, tx: Transaction, *parts: KeyPart) -> None:
        tx.delete(self.key(*parts))

    def contains(self, tx: Transaction, *parts: KeyPart) -> bool:
        return tx.get(self.key(*parts)) is not None

    def __repr__(self) -> str:
        return f"StateMap({self._prefix!r})"


class StateVar:
    """A single named value (counters, nonces)."""

    def __init__(self, contract: str, name: str, default: Any = None) -> None:
        self._map = StateMap(contract, name)
        self.default = default

    def get(self, tx: Transaction) -> Any:
        return self._map.get(tx, default=self.default)

    def set(self, tx: Transaction, value: Any) -> None:
        self._map.set(tx, value=value)


class IndexedList:
    """
    Dense append-only sequence, optionally scoped (per agent, per validator).

    Stored as a length entry plus one entry per item, so reading item ``i``
    costs exactly one read and appending costs one read and two writes.
    """

    def __init__(self, contract: str, name: str) -> None:
        self._length = StateMap(contract, f"{name}-len")
        self._items = StateMap(contract, f"{name}-item")

    def length(self, tx: Transaction, *scope: KeyPart) -> int:
        return int(self._length.get(tx, *scope, default=0))

    def item(self, tx: Transaction, *scope_and_index: KeyPart) -> Any:
        return self._items.get(tx, *scope_and_index)

    def append(self, tx: Transaction, *scope: KeyPart, value: Any) -> int:
        """Append and return the new item's index."""
        index = self.length(tx, *scope)
        self._items.set(tx, *scope, index, value=value)
        self._length.set(tx, *scope, value=index + 1)
        return index
