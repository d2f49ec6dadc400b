"""
Metered write-buffer transaction.

A Transaction is the only door a registry call has to state. Reads go
through the write buffer first and then to the committed backend; writes
stay in the buffer until ``commit``. Every read and every write is counted
against the per-call budget, which is what keeps any single call
cost-bounded regardless of how much state has accumulated.
"""

from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING, Any

from agentregistry.core.exceptions import HostErrorCode, ResourceBudgetError
from agentregistry.core.types import Event

if TYPE_CHECKING:
    from agentregistry.storage.base import StorageBackend

_DELETED = object()


class Transaction:
    """
    Buffered, metered view over a StorageBackend for one call.

    Attributes:
        reads: Metered reads performed so far
        writes: Metered writes performed so far
        events: Events emitted so far, published only on commit
    """

    def __init__(
        self,
        backend: StorageBackend,
        read_budget: int | None = None,
        write_budget: int | None = None,
    ) -> None:
        self._backend = backend
        self._buffer: dict[str, Any] = {}
        self._read_budget = read_budget
        self._write_budget = write_budget
        self._closed = False
        self.reads = 0
        self.writes = 0
        self.events: list[Event] = []

    @property
    def dirty(self) -> bool:
        return bool(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def _meter_read(self) -> None:
        self.reads += 1
        if self._read_budget is not None and self.reads > self._read_budget:
            raise ResourceBudgetError(
                "Call exceeded its read budget",
                HostErrorCode.ERR_READ_BUDGET_EXCEEDED,
                used=self.reads,
                budget=self._read_budget,
            )

    def _meter_write(self) -> None:
        self.writes += 1
        if self._write_budget is not None and self.writes > self._write_budget:
            raise ResourceBudgetError(
                "Call exceeded its write budget",
                HostErrorCode.ERR_WRITE_BUDGET_EXCEEDED,
                used=self.writes,
                budget=self._write_budget,
            )

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("transaction is closed")

    def get(self, key: str) -> Any | None:
        """Read a value, seeing this call's own uncommitted writes."""
        self._check_open()
        self._meter_read()
        if key in self._buffer:
            value = self._buffer[key]
            return None if value is _DELETED else deepcopy(value)
        return self._backend.get(key)

    def put(self, key: str, value: Any) -> None:
        """Buffer a write."""
        self._check_open()
        if value is None:
            raise ValueError("use delete() to remove a key")
        self._meter_write()
        self._buffer[key] = deepcopy(value)

    def delete(self, key: str) -> None:
        """Buffer a delete."""
        self._check_open()
        self._meter_write()
        self._buffer[key] = _DELETED

    def emit(self, event: Event) -> None:
        self._check_open()
        self.events.append(event)

    def changes(self) -> dict[str, Any | None]:
        """Buffered writes as the key -> value|None batch given to the backend."""
        return {
            key: (None if value is _DELETED else value)
            for key, value in self._buffer.items()
        }

    def commit(self) -> list[Event]:
        """Flush buffered writes in one batch and return the emitted events."""
        self._check_open()
        if self._buffer:
            self._backend.apply(self.changes())
        self._closed = True
        return self.events

    def rollback(self) -> None:
        """Discard buffered writes and events."""
        self._buffer.clear()
        self.events = []
        self._closed = True
