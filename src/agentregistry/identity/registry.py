"""
Identity registry.

Owns agent existence, ownership, operator approvals, the agent wallet
binding and per-agent metadata. Every entry point runs as one call on the
Chain: it either commits all of its writes or none of them.

One account -> agent reverse map serves both owner and wallet lookups
(``get_agent_id_by_owner``). It is single valued and last write wins, so an
account owning several agents only resolves to the one written most
recently, and transferring any of them clears the account's entry.
"""

from __future__ import annotations

from collections.abc import Sequence

from agentregistry.core.exceptions import (
    ExpiredSignatureError,
    IdentityErrorCode,
    InvalidInputError,
    InvalidSignatureError,
    NotAuthorizedError,
    NotFoundError,
    RegistryError,
    ReservedKeyError,
    WalletAlreadySetError,
    WalletConflictError,
)
from agentregistry.core.logging import get_logger
from agentregistry.identity.types import (
    MAX_AGENT_ID,
    MAX_METADATA_ENTRIES,
    RESERVED_WALLET_KEY,
    AgentRecord,
    MetadataEntry,
)
from agentregistry.runtime.chain import Call, Chain
from agentregistry.signing.verifier import (
    Ed25519Verifier,
    SignatureVerifier,
    SigningDomain,
    structured_message,
)
from agentregistry.storage.maps import StateMap, StateVar

logger = get_logger("identity.registry")

CONTRACT = "identity-registry"
VERSION = "2.0.0"


class IdentityRegistry:
    """
    Agent identity, ownership and wallet registry.

    Example:
        >>> identity = IdentityRegistry(chain)
        >>> agent_id = identity.register("alice")
        >>> identity.owner_of(agent_id)
        'alice'
    """

    CONTRACT = CONTRACT
    VERSION = VERSION

    def __init__(self, chain: Chain, verifier: SignatureVerifier | None = None) -> None:
        self._chain = chain
        self._verifier = verifier or Ed25519Verifier()
        self.domain = SigningDomain(name=CONTRACT, version=VERSION, chain_id=chain.chain_id)

        self._next_id = StateVar(CONTRACT, "next-id", default=0)
        self._owners = StateMap(CONTRACT, "owners")
        self._uris = StateMap(CONTRACT, "uris")
        self._metadata = StateMap(CONTRACT, "metadata")
        self._approvals = StateMap(CONTRACT, "approvals")
        self._wallets = StateMap(CONTRACT, "agent-wallets")
        self._reverse = StateMap(CONTRACT, "agent-by-account")

    @property
    def principal(self) -> str:
        return self._chain.principal(CONTRACT)

    # ─── Internal helpers ────────────────────────────────────────────

    def _require_owner(self, call: Call, agent_id: int) -> str:
        owner = self._owners.get(call.tx, agent_id)
        if owner is None:
            raise NotFoundError(
                f"Agent {agent_id} not found",
                IdentityErrorCode.ERR_AGENT_NOT_FOUND,
                {"agent_id": agent_id},
            )
        return owner

    def _is_authorized(self, call: Call, caller: str, agent_id: int, owner: str) -> bool:
        return caller == owner or bool(self._approvals.get(call.tx, agent_id, caller, default=False))

    def _require_authorized(self, call: Call, agent_id: int) -> str:
        owner = self._require_owner(call, agent_id)
        if not self._is_authorized(call, call.sender, agent_id, owner):
            raise NotAuthorizedError(
                f"{call.sender} is neither owner nor operator of agent {agent_id}",
                IdentityErrorCode.ERR_NOT_AUTHORIZED,
                {"agent_id": agent_id, "caller": call.sender},
            )
        return owner

    @staticmethod
    def _check_key(key: str) -> None:
        if key == RESERVED_WALLET_KEY:
            raise ReservedKeyError(
                f"Metadata key '{key}' is reserved",
                IdentityErrorCode.ERR_RESERVED_KEY,
                {"key": key},
            )

    def _write_metadata(self, call: Call, agent_id: int, key: str, value: bytes) -> None:
        self._check_key(key)
        self._metadata.set(call.tx, agent_id, key, value="0x" + bytes(value).hex())
        call.emit(CONTRACT, "MetadataSet", agent_id=agent_id, key=key)

    def _bind_wallet(self, call: Call, agent_id: int, new_wallet: str) -> None:
        """Shared rules of both wallet setters, run after authorization."""
        current = self._wallets.get(call.tx, agent_id)
        if current == new_wallet:
            raise WalletAlreadySetError(
                f"{new_wallet} is already the wallet of agent {agent_id}",
                IdentityErrorCode.ERR_WALLET_ALREADY_SET,
                {"agent_id": agent_id},
            )
        bound_to = self._reverse.get(call.tx, new_wallet)
        if bound_to is not None and bound_to != agent_id:
            raise WalletConflictError(
                f"{new_wallet} is already bound to agent {bound_to}",
                IdentityErrorCode.ERR_WALLET_CONFLICT,
                {"agent_id": agent_id, "bound_to": bound_to},
            )

        if current is not None:
            self._reverse.delete(call.tx, current)
        self._wallets.set(call.tx, agent_id, value=new_wallet)
        self._reverse.set(call.tx, new_wallet, value=agent_id)
        call.emit(CONTRACT, "WalletSet", agent_id=agent_id, wallet=new_wallet, previous=current)

    def _register(
        self,
        call: Call,
        uri: str,
        metadata: Sequence[MetadataEntry | tuple[str, bytes | str]] = (),
    ) -> int:
        entries = [MetadataEntry.coerce(e) for e in metadata]
        if len(entries) > MAX_METADATA_ENTRIES:
            raise InvalidInputError(
                f"At most {MAX_METADATA_ENTRIES} metadata entries per registration",
                IdentityErrorCode.ERR_METADATA_LIMIT,
                {"entries": len(entries)},
            )

        agent_id = int(self._next_id.get(call.tx))
        if agent_id > MAX_AGENT_ID:
            raise RegistryError("Agent id space exhausted", IdentityErrorCode.ERR_ID_OVERFLOW)

        owner = call.sender
        self._next_id.set(call.tx, agent_id + 1)
        self._owners.set(call.tx, agent_id, value=owner)
        self._uris.set(call.tx, agent_id, value=uri)
        self._wallets.set(call.tx, agent_id, value=owner)
        self._reverse.set(call.tx, owner, value=agent_id)
        call.emit(CONTRACT, "Registered", agent_id=agent_id, owner=owner, uri=uri)

        for entry in entries:
            self._write_metadata(call, agent_id, entry.key, entry.value)

        logger.info(f"Registered agent {agent_id} for {owner}")
        return agent_id

    # ─── Registration ────────────────────────────────────────────────

    def register(self, sender: str) -> int:
        """Register a new agent owned by ``sender``; returns its id."""
        with self._chain.call(sender) as call:
            return self._register(call, "")

    def register_with_uri(self, sender: str, uri: str) -> int:
        with self._chain.call(sender) as call:
            return self._register(call, uri)

    def register_full(
        self,
        sender: str,
        uri: str,
        metadata: Sequence[MetadataEntry | tuple[str, bytes | str]],
    ) -> int:
        """
        Register with URI and up to 10 metadata entries.

        Raises:
            InvalidInputError: More than 10 entries (ERR_METADATA_LIMIT)
            ReservedKeyError: An entry uses the reserved wallet key
        """
        with self._chain.call(sender) as call:
            return self._register(call, uri, metadata)

    # ─── Ownership ───────────────────────────────────────────────────

    def transfer(self, sender: str, agent_id: int, expected_owner: str, new_owner: str) -> bool:
        """
        Move ``agent_id`` from ``expected_owner`` to ``new_owner``.

        The wallet binding is cleared along with the reverse entries of the
        old wallet and the old owner; the new owner starts without a wallet.
        """
        with self._chain.call(sender) as call:
            if sender != expected_owner:
                raise InvalidInputError(
                    "Sender does not match the declared owner",
                    IdentityErrorCode.ERR_INVALID_SENDER,
                    {"sender": sender, "expected_owner": expected_owner},
                )
            owner = self._require_owner(call, agent_id)
            if owner != expected_owner:
                raise NotAuthorizedError(
                    f"{expected_owner} does not own agent {agent_id}",
                    IdentityErrorCode.ERR_NOT_AUTHORIZED,
                    {"agent_id": agent_id},
                )

            wallet = self._wallets.get(call.tx, agent_id)
            if wallet is not None:
                self._wallets.delete(call.tx, agent_id)
                self._reverse.delete(call.tx, wallet)
            self._reverse.delete(call.tx, owner)

            self._owners.set(call.tx, agent_id, value=new_owner)
            self._reverse.set(call.tx, new_owner, value=agent_id)
            call.emit(CONTRACT, "Transfer", agent_id=agent_id, sender=owner, recipient=new_owner)

        logger.info(f"Transferred agent {agent_id} from {owner} to {new_owner}")
        return True

    def set_approval_for_all(self, sender: str, agent_id: int, operator: str, approved: bool) -> bool:
        """Grant or revoke operator rights over ``agent_id`` (owner only)."""
        with self._chain.call(sender) as call:
            owner = self._require_owner(call, agent_id)
            if sender != owner:
                raise NotAuthorizedError(
                    f"Only the owner may manage operators of agent {agent_id}",
                    IdentityErrorCode.ERR_NOT_AUTHORIZED,
                    {"agent_id": agent_id, "caller": sender},
                )
            if approved:
                self._approvals.set(call.tx, agent_id, operator, value=True)
            else:
                self._approvals.delete(call.tx, agent_id, operator)
            call.emit(
                CONTRACT, "ApprovalForAll", agent_id=agent_id, operator=operator, approved=approved
            )
        return True

    # ─── Profile ─────────────────────────────────────────────────────

    def set_metadata(self, sender: str, agent_id: int, key: str, value: bytes | str) -> bool:
        with self._chain.call(sender) as call:
            self._require_authorized(call, agent_id)
            entry = MetadataEntry.coerce((key, value))
            self._write_metadata(call, agent_id, entry.key, entry.value)
        return True

    def set_agent_uri(self, sender: str, agent_id: int, uri: str) -> bool:
        with self._chain.call(sender) as call:
            self._require_authorized(call, agent_id)
            self._uris.set(call.tx, agent_id, value=uri)
            call.emit(CONTRACT, "UriUpdated", agent_id=agent_id, uri=uri, updated_by=sender)
        return True

    # ─── Wallet binding ──────────────────────────────────────────────

    def set_agent_wallet_direct(self, sender: str, agent_id: int) -> bool:
        """Bind the caller (owner or operator) as the agent's wallet."""
        with self._chain.call(sender) as call:
            self._require_authorized(call, agent_id)
            self._bind_wallet(call, agent_id, sender)
        return True

    def wallet_authorization_message(
        self, agent_id: int, new_wallet: str, owner: str, deadline: int
    ) -> bytes:
        """Bytes ``new_wallet`` signs to accept binding to ``agent_id``."""
        return structured_message(
            self.domain,
            "AgentWalletSet",
            {"agentId": agent_id, "newWallet": new_wallet, "owner": owner, "deadline": deadline},
        )

    def set_agent_wallet_signed(
        self,
        sender: str,
        agent_id: int,
        new_wallet: str,
        deadline: int,
        signature: bytes,
    ) -> bool:
        """
        Bind ``new_wallet`` on the strength of its signature.

        Raises:
            ExpiredSignatureError: Current time is past ``deadline``
            InvalidSignatureError: ``new_wallet`` did not sign the authorization
        """
        with self._chain.call(sender) as call:
            owner = self._require_authorized(call, agent_id)
            if call.ctx.timestamp > deadline:
                raise ExpiredSignatureError(
                    "Wallet authorization has expired",
                    IdentityErrorCode.ERR_EXPIRED_SIGNATURE,
                    {"deadline": deadline, "now": call.ctx.timestamp},
                )
            message = self.wallet_authorization_message(agent_id, new_wallet, owner, deadline)
            if not self._verifier.verify(message, signature, new_wallet):
                logger.warning(f"Rejected wallet signature for agent {agent_id}")
                raise InvalidSignatureError(
                    "Wallet authorization signature is invalid",
                    IdentityErrorCode.ERR_INVALID_SIGNATURE,
                    {"agent_id": agent_id},
                )
            self._bind_wallet(call, agent_id, new_wallet)
        return True

    def unset_agent_wallet(self, sender: str, agent_id: int) -> bool:
        """Clear the wallet binding; succeeds when none is set."""
        with self._chain.call(sender) as call:
            self._require_authorized(call, agent_id)
            wallet = self._wallets.get(call.tx, agent_id)
            if wallet is not None:
                self._wallets.delete(call.tx, agent_id)
                self._reverse.delete(call.tx, wallet)
                call.emit(CONTRACT, "WalletUnset", agent_id=agent_id, wallet=wallet)
        return True

    # ─── Reads ───────────────────────────────────────────────────────

    def owner_of(self, agent_id: int) -> str | None:
        with self._chain.read() as call:
            return self._owners.get(call.tx, agent_id)

    def agent_exists(self, agent_id: int) -> bool:
        with self._chain.read() as call:
            return self._owners.contains(call.tx, agent_id)

    def get_uri(self, agent_id: int) -> str | None:
        with self._chain.read() as call:
            return self._uris.get(call.tx, agent_id)

    def get_metadata(self, agent_id: int, key: str) -> bytes | None:
        with self._chain.read() as call:
            stored = self._metadata.get(call.tx, agent_id, key)
        return None if stored is None else bytes.fromhex(stored[2:])

    def is_approved_for_all(self, agent_id: int, operator: str) -> bool:
        with self._chain.read() as call:
            return bool(self._approvals.get(call.tx, agent_id, operator, default=False))

    def get_agent_wallet(self, agent_id: int) -> str | None:
        with self._chain.read() as call:
            return self._wallets.get(call.tx, agent_id)

    def get_agent_id_by_owner(self, account: str) -> int | None:
        """Agent most recently registered to, transferred to or bound as wallet by ``account``."""
        with self._chain.read() as call:
            return self._reverse.get(call.tx, account)

    def is_authorized_or_owner(self, caller: str, agent_id: int) -> bool:
        """
        True iff ``caller`` is the owner or an approved operator.

        Raises:
            NotFoundError: Agent does not exist (ERR_AGENT_NOT_FOUND)
        """
        with self._chain.read() as call:
            owner = self._require_owner(call, agent_id)
            return self._is_authorized(call, caller, agent_id, owner)

    def get_last_token_id(self) -> int | None:
        """Most recently allocated agent id, None before the first registration."""
        with self._chain.read() as call:
            next_id = int(self._next_id.get(call.tx))
        return next_id - 1 if next_id else None

    def get_agent(self, agent_id: int) -> AgentRecord | None:
        with self._chain.read() as call:
            owner = self._owners.get(call.tx, agent_id)
            if owner is None:
                return None
            return AgentRecord(
                agent_id=agent_id,
                owner=owner,
                wallet=self._wallets.get(call.tx, agent_id),
                uri=self._uris.get(call.tx, agent_id, default=""),
            )

    def get_version(self) -> str:
        return VERSION
