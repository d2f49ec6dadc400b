"""
Storage backends for agentregistry.

Provides pluggable persistence for committed registry state, plus the
metered Transaction and typed maps registries read and write through.

Configuration via environment:
    AGENTREGISTRY_STORAGE_BACKEND=memory  # or 'redis'
    AGENTREGISTRY_REDIS_URL=redis://localhost:6379/0

Example:
    >>> from agentregistry.storage import get_storage, InMemoryStorage, RedisStorage
    >>>
    >>> # Get storage from environment
    >>> storage = get_storage()
    >>>
    >>> # Or create specific backend
    >>> storage = InMemoryStorage()
    >>> storage = RedisStorage(redis_url="redis://localhost:6379")
"""

from __future__ import annotations

import os
from typing import Any

from agentregistry.storage.base import (
    StorageBackend,
    get_storage_backend,
    list_storage_backends,
    register_storage_backend,
)
from agentregistry.storage.maps import IndexedList, StateMap, StateVar
from agentregistry.storage.memory import InMemoryStorage
from agentregistry.storage.redis import RedisStorage
from agentregistry.storage.transaction import Transaction


def get_storage(backend_name: str | None = None, **kwargs: Any) -> StorageBackend:
    """
    Get storage backend from environment or by name.

    Args:
        backend_name: Backend name, or None to read from AGENTREGISTRY_STORAGE_BACKEND env
        **kwargs: Passed to the backend constructor (e.g. redis_url)

    Returns:
        StorageBackend instance

    Raises:
        ValueError: If backend name is unknown
    """
    if backend_name is None:
        backend_name = os.environ.get("AGENTREGISTRY_STORAGE_BACKEND", "memory")

    backend_class = get_storage_backend(backend_name)

    if backend_class is None:
        available = list_storage_backends()
        raise ValueError(
            f"Unknown storage backend: '{backend_name}'. Available: {', '.join(available)}"
        )

    return backend_class(**kwargs)


__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "RedisStorage",
    "Transaction",
    "StateMap",
    "StateVar",
    "IndexedList",
    "get_storage",
    "get_storage_backend",
    "list_storage_backends",
    "register_storage_backend",
]
