"""
Abstract Storage Backend for agentregistry.

A backend is the committed state of the host: a flat key/value space of
JSON-serializable values. Registry calls never touch it directly; they read
and write through a Transaction which buffers writes and hands them to
``apply`` in one atomic batch when the call succeeds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Any


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    Implementations can use any persistence layer (memory, Redis, ...) as
    long as ``apply`` is all-or-nothing.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """
        Get a committed value.

        Args:
            key: Fully qualified state key

        Returns:
            Stored value or None if absent
        """
        ...

    @abstractmethod
    def apply(self, changes: Mapping[str, Any | None]) -> None:
        """
        Atomically apply a batch of writes.

        Args:
            changes: key -> new value, or key -> None to delete
        """
        ...

    @abstractmethod
    def scan(self, prefix: str) -> dict[str, Any]:
        """
        Return every committed key under ``prefix``.

        Unbounded; for diagnostics and tests, never for registry calls.
        """
        ...

    @abstractmethod
    def clear(self) -> int:
        """
        Drop all state.

        Returns:
            Number of keys removed
        """
        ...

    @abstractmethod
    def lock(self) -> AbstractContextManager[Any]:
        """
        Exclusive lock over the whole state.

        Held by a host for the duration of each top-level call, so hosts
        sharing one backend never interleave a read-modify-write.
        """
        ...

    def health_check(self) -> bool:
        """
        Check if storage is healthy and connected.

        Returns:
            True if healthy
        """
        return True

    def close(self) -> None:
        """Release any held connections."""
        return None


# Storage backend registry for dependency injection
_STORAGE_BACKENDS: dict[str, type[StorageBackend]] = {}


def register_storage_backend(name: str, backend_class: type[StorageBackend]) -> None:
    """Register a storage backend by name."""
    _STORAGE_BACKENDS[name] = backend_class


def get_storage_backend(name: str) -> type[StorageBackend] | None:
    """Get a registered storage backend by name."""
    return _STORAGE_BACKENDS.get(name)


def list_storage_backends() -> list[str]:
    """List all registered storage backend names."""
    return list(_STORAGE_BACKENDS.keys())
