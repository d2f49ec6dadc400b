"""
Redis Storage Backend.

Production storage backend keeping committed registry state in Redis.
Requires redis-py package.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Any

from agentregistry.core.logging import get_logger
from agentregistry.resilience.retry import execute_with_retry, retry_policy
from agentregistry.storage.base import StorageBackend, register_storage_backend

logger = get_logger("storage.redis")

CALL_LOCK_NAME = "call"


class RedisStorage(StorageBackend):
    """
    Redis storage backend.

    Each state key maps to one Redis string holding a JSON document.
    Batches are applied inside MULTI/EXEC so a call's writes land together
    or not at all.
    Requires: pip install redis
    """

    def __init__(
        self,
        redis_url: str | None = None,
        prefix: str = "agentregistry",
        client: Any | None = None,
        lock_timeout: float = 10.0,
        lock_blocking_timeout: float = 5.0,
    ) -> None:
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL (or from AGENTREGISTRY_REDIS_URL env)
            prefix: Key prefix for all storage keys
            client: Pre-built redis client (tests, shared pools)
            lock_timeout: Seconds before a held call lock expires on its own
            lock_blocking_timeout: Seconds to wait for the call lock before giving up
        """
        self._redis_url = redis_url or os.environ.get(
            "AGENTREGISTRY_REDIS_URL",
            "redis://localhost:6379/0",
        )
        self._prefix = prefix
        self._client = client
        self._lock_timeout = lock_timeout
        self._lock_blocking_timeout = lock_blocking_timeout

    def _get_client(self):
        """Lazy-load Redis client."""
        if self._client is None:
            import redis

            self._client = redis.Redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def _strip_key(self, redis_key: str) -> str:
        return redis_key[len(self._prefix) + 1 :]

    @retry_policy
    def get(self, key: str) -> Any | None:
        """Get a committed value."""
        client = self._get_client()
        data = client.get(self._make_key(key))
        if data is None:
            return None
        return json.loads(data)

    @retry_policy
    def apply(self, changes: Mapping[str, Any | None]) -> None:
        """Apply a batch of writes in one MULTI/EXEC transaction."""
        if not changes:
            return
        client = self._get_client()
        pipe = client.pipeline(transaction=True)
        for key, value in changes.items():
            redis_key = self._make_key(key)
            if value is None:
                pipe.delete(redis_key)
            else:
                pipe.set(redis_key, json.dumps(value))
        pipe.execute()
        logger.debug(f"Applied {len(changes)} changes")

    @retry_policy
    def scan(self, prefix: str) -> dict[str, Any]:
        """Return committed keys under prefix."""
        client = self._get_client()
        results: dict[str, Any] = {}
        for redis_key in client.scan_iter(match=f"{self._make_key(prefix)}*"):
            data = client.get(redis_key)
            if data is not None:
                results[self._strip_key(redis_key)] = json.loads(data)
        return results

    def _delete_prefixed(self) -> int:
        client = self._get_client()
        keys = list(client.scan_iter(match=f"{self._prefix}:*"))
        if keys:
            client.delete(*keys)
        return len(keys)

    def clear(self) -> int:
        """Delete every key under this backend's prefix."""
        count = execute_with_retry(self._delete_prefixed)
        logger.info(f"Cleared {count} keys under prefix {self._prefix}")
        return count

    def lock(self) -> AbstractContextManager[Any]:
        """
        Distributed call lock (redis-py Lock, SET NX with a token).

        The lock key lives outside the state prefix so scan and clear never
        see it.

        Raises redis.exceptions.LockError when it cannot be acquired within
        the blocking timeout.
        """
        client = self._get_client()
        return client.lock(
            f"{self._prefix}-locks:{CALL_LOCK_NAME}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_blocking_timeout,
        )

    def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            client = self._get_client()
            return bool(client.ping())
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    def close(self) -> None:
        """Close Redis connection."""
        if self._client is not None:
            self._client.close()
            self._client = None


# Register backend
register_storage_backend("redis", RedisStorage)
