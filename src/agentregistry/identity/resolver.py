"""
Agent registration resolver.

Joins an agent's on-ledger identity with the registration file its URI
points at. Runs outside any metered call: the registry reads happen first,
then the document is fetched over HTTP(S), from IPFS through a public
gateway, or decoded from a base64 ``data:`` URI.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import TYPE_CHECKING, Any

import httpx

from agentregistry.core.logging import get_logger
from agentregistry.identity.types import AgentRegistration

if TYPE_CHECKING:
    from agentregistry.identity.registry import IdentityRegistry

logger = get_logger("identity.resolver")


class RegistrationResolver:
    """
    Resolves agent registrations.

    Example:
        >>> resolver = RegistrationResolver(identity)
        >>> registration = await resolver.resolve(0)
        >>> registration.has_service("A2A")
        True
    """

    FETCH_TIMEOUT = 3.0  # seconds
    IPFS_GATEWAYS = [
        "https://ipfs.io/ipfs/",
        "https://dweb.link/ipfs/",
        "https://w3s.link/ipfs/",
    ]

    def __init__(
        self,
        identity: IdentityRegistry,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            identity: Registry the on-ledger fields are read from
            http_client: Shared httpx client for document fetches
        """
        self._identity = identity
        self._http_client = http_client
        self._owns_http_client = False

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.FETCH_TIMEOUT)
            self._owns_http_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_http_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_http_client = False

    async def __aenter__(self) -> RegistrationResolver:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def resolve(self, agent_id: int) -> AgentRegistration | None:
        """
        Resolve ``agent_id`` to its registration.

        Returns None for unknown agents. An agent without a URI, or whose
        document cannot be fetched, still resolves with on-ledger fields only.
        """
        record = self._identity.get_agent(agent_id)
        if record is None:
            logger.debug(f"Agent {agent_id} not registered")
            return None

        if not record.uri:
            return AgentRegistration.from_registration_file(record, {})

        data = await self.fetch_registration(record.uri)
        return AgentRegistration.from_registration_file(record, data or {})

    async def fetch_registration(self, uri: str) -> dict[str, Any] | None:
        """
        Fetch and parse a registration file.

        Supports:
        - HTTPS URLs
        - IPFS URIs (via public gateway with fallback)
        - Base64 data URIs (data:application/json;base64,...)
        """
        if uri.startswith("data:"):
            return self._parse_data_uri(uri)
        elif uri.startswith("ipfs://"):
            return await self._fetch_ipfs(uri)
        elif uri.startswith("http://") or uri.startswith("https://"):
            return await self._fetch_https(uri)
        else:
            logger.warning(f"Unsupported agent URI scheme: {uri[:50]}")
            return None

    def _parse_data_uri(self, uri: str) -> dict[str, Any] | None:
        """Parse base64-encoded data URI."""
        try:
            # Format: data:application/json;base64,eyJ0eXBlIjoi...
            _, encoded = uri.split(",", 1)
            decoded = json.loads(base64.b64decode(encoded))
        except (ValueError, binascii.Error) as e:
            logger.error(f"Failed to parse data URI: {e}")
            return None
        return decoded if isinstance(decoded, dict) else None

    async def _fetch_ipfs(self, uri: str) -> dict[str, Any] | None:
        """Fetch from IPFS via public gateway with multiple gateway fallback."""
        cid = uri.replace("ipfs://", "")
        for gateway in self.IPFS_GATEWAYS:
            result = await self._fetch_https(f"{gateway}{cid}")
            if result is not None:
                return result
        logger.warning(f"All IPFS gateways failed for CID: {cid[:40]}")
        return None

    async def _fetch_https(self, url: str) -> dict[str, Any] | None:
        """Fetch JSON from an HTTP(S) URL."""
        client = await self._get_http_client()
        try:
            response = await client.get(url, timeout=self.FETCH_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            logger.warning(f"Registration fetch timed out: {url}")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Registration fetch failed: {e}")
            return None
        return data if isinstance(data, dict) else None
