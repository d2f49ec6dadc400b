"""
In-Memory Storage Backend.

Default storage backend that keeps all state in a Python dict.
Suitable for development, simulation and testing.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from contextlib import AbstractContextManager
from copy import deepcopy
from typing import Any

from agentregistry.storage.base import StorageBackend, register_storage_backend


class InMemoryStorage(StorageBackend):
    """
    In-memory storage backend.

    Values are deep-copied on the way in and out so callers can never
    mutate committed state by holding a reference.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Any | None:
        """Get a committed value."""
        value = self._data.get(key)
        return deepcopy(value) if value is not None else None

    def apply(self, changes: Mapping[str, Any | None]) -> None:
        """Apply a batch of writes (dict updates cannot fail halfway)."""
        staged = {key: deepcopy(value) for key, value in changes.items()}
        for key, value in staged.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def scan(self, prefix: str) -> dict[str, Any]:
        """Return committed keys under prefix."""
        return {
            key: deepcopy(value)
            for key, value in self._data.items()
            if key.startswith(prefix)
        }

    def clear(self) -> int:
        """Drop all state."""
        count = len(self._data)
        self._data.clear()
        return count

    def lock(self) -> AbstractContextManager[Any]:
        """Process-wide lock shared by every host on this store."""
        return self._lock

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the full state, for equality checks in tests."""
        return deepcopy(self._data)

    def __len__(self) -> int:
        return len(self._data)


# Register as default backend
register_storage_backend("memory", InMemoryStorage)
