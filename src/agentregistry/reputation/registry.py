"""
Reputation registry.

Records client feedback about agents under three admission paths
(permissionless, approved quota, signed authorization), supports one-way
revocation and threaded responses, and keeps a WAD-scaled running
aggregate per agent so summaries never re-scan history.
"""

from __future__ import annotations

from agentregistry.core.aggregate import MAX_DECIMALS, RunningAggregate
from agentregistry.core.exceptions import (
    AlreadyRevokedError,
    ExpiredSignatureError,
    InvalidInputError,
    InvalidSignatureError,
    NotAuthorizedError,
    NotFoundError,
    QuotaExceededError,
    ReputationErrorCode,
    SelfDealingError,
)
from agentregistry.core.logging import get_logger
from agentregistry.core.pagination import Page, paginate, paginate_filtered
from agentregistry.core.types import hash_to_hex
from agentregistry.identity.authority import AgentAuthority
from agentregistry.reputation.types import (
    INT128_MAX,
    INT128_MIN,
    FeedbackApproval,
    FeedbackRecord,
    FeedbackSummary,
    ResponseRecord,
)
from agentregistry.runtime.chain import Call, Chain
from agentregistry.signing.verifier import (
    Ed25519Verifier,
    SignatureVerifier,
    SigningDomain,
    structured_message,
)
from agentregistry.storage.maps import IndexedList, StateMap

logger = get_logger("reputation.registry")

CONTRACT = "reputation-registry"
VERSION = "2.0.0"


class ReputationRegistry:
    """
    Feedback ledger for registered agents.

    Example:
        >>> reputation = ReputationRegistry(chain, identity)
        >>> reputation.give_feedback("carol", agent_id, 80, 0, "quality", "", "", "ipfs://fb", b"")
        1
        >>> reputation.get_summary(agent_id).count
        1
    """

    CONTRACT = CONTRACT
    VERSION = VERSION

    def __init__(
        self,
        chain: Chain,
        authority: AgentAuthority,
        verifier: SignatureVerifier | None = None,
    ) -> None:
        self._chain = chain
        self._authority = authority
        self._verifier = verifier or Ed25519Verifier()
        self.domain = SigningDomain(name=CONTRACT, version=VERSION, chain_id=chain.chain_id)

        self._feedback = StateMap(CONTRACT, "feedback")
        self._last_index = StateMap(CONTRACT, "last-index")
        self._approvals = StateMap(CONTRACT, "approvals")
        self._aggregates = StateMap(CONTRACT, "summary")
        self._client_known = StateMap(CONTRACT, "client-known")
        self._clients = IndexedList(CONTRACT, "clients")
        self._sequence = IndexedList(CONTRACT, "feedback-seq")
        self._responder_known = StateMap(CONTRACT, "responder-known")
        self._responders = IndexedList(CONTRACT, "responders")
        self._responses = IndexedList(CONTRACT, "responses")
        self._response_total = StateMap(CONTRACT, "response-total")

    @property
    def principal(self) -> str:
        return self._chain.principal(CONTRACT)

    # ─── Internal helpers ────────────────────────────────────────────

    def _check_submission(self, call: Call, agent_id: int, value: int, value_decimals: int) -> None:
        """Checks shared by every admission path, in order."""
        if not 0 <= value_decimals <= MAX_DECIMALS:
            raise InvalidInputError(
                f"value_decimals must be within 0..{MAX_DECIMALS}",
                ReputationErrorCode.ERR_INVALID_DECIMALS,
                {"value_decimals": value_decimals},
            )
        if not INT128_MIN <= value <= INT128_MAX:
            raise InvalidInputError(
                "Feedback value outside the signed 128-bit range",
                ReputationErrorCode.ERR_INVALID_VALUE,
                {"value": value},
            )
        if not self._authority.agent_exists(agent_id):
            raise NotFoundError(
                f"Agent {agent_id} not found",
                ReputationErrorCode.ERR_AGENT_NOT_FOUND,
                {"agent_id": agent_id},
            )
        if self._authority.is_authorized_or_owner(call.sender, agent_id):
            raise SelfDealingError(
                "Owners and operators cannot give feedback to their own agent",
                ReputationErrorCode.ERR_SELF_FEEDBACK,
                {"agent_id": agent_id, "client": call.sender},
            )

    def _record_feedback(
        self,
        call: Call,
        agent_id: int,
        value: int,
        value_decimals: int,
        tag1: str,
        tag2: str,
        endpoint: str,
        feedback_uri: str,
        feedback_hash: bytes,
        index: int,
    ) -> int:
        client = call.sender
        record = FeedbackRecord(
            agent_id=agent_id,
            client=client,
            index=index,
            value=value,
            value_decimals=value_decimals,
            tag1=tag1,
            tag2=tag2,
            endpoint=endpoint,
            feedback_uri=feedback_uri,
            feedback_hash=feedback_hash,
        )
        self._feedback.set(call.tx, agent_id, client, index, value=record.to_dict())
        self._last_index.set(call.tx, agent_id, client, value=index)

        if not self._client_known.contains(call.tx, agent_id, client):
            self._client_known.set(call.tx, agent_id, client, value=True)
            self._clients.append(call.tx, agent_id, value=client)
        self._sequence.append(call.tx, agent_id, value={"client": client, "index": index})

        aggregate = RunningAggregate.from_dict(self._aggregates.get(call.tx, agent_id))
        aggregate.add(value, value_decimals)
        self._aggregates.set(call.tx, agent_id, value=aggregate.to_dict())

        call.emit(
            CONTRACT,
            "NewFeedback",
            agent_id=agent_id,
            client=client,
            index=index,
            value=value,
            value_decimals=value_decimals,
            tag1=tag1,
            tag2=tag2,
            endpoint=endpoint,
            feedback_uri=feedback_uri,
            feedback_hash=hash_to_hex(feedback_hash),
        )
        logger.debug(f"Feedback {index} from {client} recorded for agent {agent_id}")
        return index

    def _next_index(self, call: Call, agent_id: int) -> int:
        return int(self._last_index.get(call.tx, agent_id, call.sender, default=0)) + 1

    def _require_feedback(self, call: Call, agent_id: int, client: str, index: int) -> FeedbackRecord:
        stored = self._feedback.get(call.tx, agent_id, client, index)
        if stored is None:
            raise NotFoundError(
                f"No feedback {index} from {client} for agent {agent_id}",
                ReputationErrorCode.ERR_FEEDBACK_NOT_FOUND,
                {"agent_id": agent_id, "client": client, "index": index},
            )
        return FeedbackRecord.from_dict(stored)

    # ─── Approvals ───────────────────────────────────────────────────

    def approve_client(self, sender: str, agent_id: int, client: str, quota: int) -> bool:
        """Set ``client``'s remaining approved-path quota (owner or operator)."""
        with self._chain.call(sender) as call:
            if not self._authority.agent_exists(agent_id):
                raise NotFoundError(
                    f"Agent {agent_id} not found",
                    ReputationErrorCode.ERR_AGENT_NOT_FOUND,
                    {"agent_id": agent_id},
                )
            if not self._authority.is_authorized_or_owner(sender, agent_id):
                raise NotAuthorizedError(
                    f"{sender} may not approve clients for agent {agent_id}",
                    ReputationErrorCode.ERR_NOT_AUTHORIZED,
                    {"agent_id": agent_id, "caller": sender},
                )
            if quota < 0:
                raise InvalidInputError(
                    "Quota cannot be negative",
                    ReputationErrorCode.ERR_INVALID_VALUE,
                    {"quota": quota},
                )
            approval = FeedbackApproval.from_dict(self._approvals.get(call.tx, agent_id, client))
            approval.remaining = quota
            self._approvals.set(call.tx, agent_id, client, value=approval.to_dict())
            call.emit(CONTRACT, "ClientApproved", agent_id=agent_id, client=client, quota=quota)
        return True

    # ─── Feedback submission ─────────────────────────────────────────

    def give_feedback(
        self,
        sender: str,
        agent_id: int,
        value: int,
        value_decimals: int,
        tag1: str = "",
        tag2: str = "",
        endpoint: str = "",
        feedback_uri: str = "",
        feedback_hash: bytes = b"",
    ) -> int:
        """
        Permissionless feedback; returns the new feedback index.

        Raises:
            InvalidInputError: Decimals above 18 or value outside int128
            NotFoundError: Agent does not exist
            SelfDealingError: Sender is the agent's owner or an operator
        """
        with self._chain.call(sender) as call:
            self._check_submission(call, agent_id, value, value_decimals)
            index = self._next_index(call, agent_id)
            return self._record_feedback(
                call, agent_id, value, value_decimals, tag1, tag2,
                endpoint, feedback_uri, feedback_hash, index,
            )

    def give_feedback_approved(
        self,
        sender: str,
        agent_id: int,
        value: int,
        value_decimals: int,
        tag1: str = "",
        tag2: str = "",
        endpoint: str = "",
        feedback_uri: str = "",
        feedback_hash: bytes = b"",
    ) -> int:
        """Feedback paid for with one unit of on-ledger quota."""
        with self._chain.call(sender) as call:
            self._check_submission(call, agent_id, value, value_decimals)
            approval = FeedbackApproval.from_dict(self._approvals.get(call.tx, agent_id, sender))
            if approval.remaining <= 0:
                raise QuotaExceededError(
                    f"{sender} has no approved feedback quota left for agent {agent_id}",
                    ReputationErrorCode.ERR_INDEX_LIMIT_EXCEEDED,
                    {"agent_id": agent_id, "client": sender},
                )
            index = self._next_index(call, agent_id)
            approval.remaining -= 1
            approval.last_index = index
            self._approvals.set(call.tx, agent_id, sender, value=approval.to_dict())
            return self._record_feedback(
                call, agent_id, value, value_decimals, tag1, tag2,
                endpoint, feedback_uri, feedback_hash, index,
            )

    def feedback_authorization_message(
        self, agent_id: int, client: str, index_limit: int, expiry: int
    ) -> bytes:
        """Bytes an owner or operator signs to pre-authorize ``client``."""
        return structured_message(
            self.domain,
            "FeedbackAuth",
            {"agentId": agent_id, "client": client, "indexLimit": index_limit, "expiry": expiry},
        )

    def give_feedback_signed(
        self,
        sender: str,
        agent_id: int,
        value: int,
        value_decimals: int,
        tag1: str,
        tag2: str,
        endpoint: str,
        feedback_uri: str,
        feedback_hash: bytes,
        signer: str,
        index_limit: int,
        expiry: int,
        signature: bytes,
    ) -> int:
        """
        Feedback pre-authorized off-ledger by the agent's owner or operator.

        Raises:
            NotAuthorizedError: ``signer`` is neither owner nor operator
            ExpiredSignatureError: Authorization past ``expiry`` (ERR_AUTH_EXPIRED)
            QuotaExceededError: New index above ``index_limit``
            InvalidSignatureError: ``signer`` did not sign the authorization
        """
        with self._chain.call(sender) as call:
            self._check_submission(call, agent_id, value, value_decimals)
            if not self._authority.is_authorized_or_owner(signer, agent_id):
                raise NotAuthorizedError(
                    f"Signer {signer} cannot authorize feedback for agent {agent_id}",
                    ReputationErrorCode.ERR_NOT_AUTHORIZED,
                    {"agent_id": agent_id, "signer": signer},
                )
            if call.ctx.timestamp > expiry:
                raise ExpiredSignatureError(
                    "Feedback authorization has expired",
                    ReputationErrorCode.ERR_AUTH_EXPIRED,
                    {"expiry": expiry, "now": call.ctx.timestamp},
                )
            index = self._next_index(call, agent_id)
            if index > index_limit:
                raise QuotaExceededError(
                    f"Feedback index {index} exceeds authorized limit {index_limit}",
                    ReputationErrorCode.ERR_INDEX_LIMIT_EXCEEDED,
                    {"index": index, "index_limit": index_limit},
                )
            message = self.feedback_authorization_message(agent_id, sender, index_limit, expiry)
            if not self._verifier.verify(message, signature, signer):
                logger.warning(f"Rejected feedback authorization for agent {agent_id} from {signer}")
                raise InvalidSignatureError(
                    "Feedback authorization signature is invalid",
                    ReputationErrorCode.ERR_INVALID_SIGNATURE,
                    {"agent_id": agent_id, "signer": signer},
                )
            return self._record_feedback(
                call, agent_id, value, value_decimals, tag1, tag2,
                endpoint, feedback_uri, feedback_hash, index,
            )

    # ─── Revocation and responses ────────────────────────────────────

    def revoke_feedback(self, sender: str, agent_id: int, index: int) -> bool:
        """Revoke the sender's own feedback; removes it from the summary."""
        with self._chain.call(sender) as call:
            record = self._require_feedback(call, agent_id, sender, index)
            if record.is_revoked:
                raise AlreadyRevokedError(
                    f"Feedback {index} already revoked",
                    ReputationErrorCode.ERR_ALREADY_REVOKED,
                    {"agent_id": agent_id, "index": index},
                )
            record.is_revoked = True
            self._feedback.set(call.tx, agent_id, sender, index, value=record.to_dict())

            aggregate = RunningAggregate.from_dict(self._aggregates.get(call.tx, agent_id))
            aggregate.remove(record.value, record.value_decimals)
            self._aggregates.set(call.tx, agent_id, value=aggregate.to_dict())

            call.emit(CONTRACT, "FeedbackRevoked", agent_id=agent_id, client=sender, index=index)
        return True

    def append_response(
        self,
        sender: str,
        agent_id: int,
        client: str,
        index: int,
        response_uri: str,
        response_hash: bytes = b"",
    ) -> int:
        """
        Append to a feedback record's response thread; anyone may respond.

        Returns the responder's response count for this feedback.
        """
        with self._chain.call(sender) as call:
            if not response_uri:
                raise InvalidInputError(
                    "Response URI cannot be empty",
                    ReputationErrorCode.ERR_EMPTY_URI,
                )
            self._require_feedback(call, agent_id, client, index)

            if not self._responder_known.contains(call.tx, agent_id, client, index, sender):
                self._responder_known.set(call.tx, agent_id, client, index, sender, value=True)
                self._responders.append(call.tx, agent_id, client, index, value=sender)

            response = ResponseRecord(
                responder=sender,
                response_uri=response_uri,
                response_hash=response_hash,
                block_height=call.ctx.block_height,
            )
            n = self._responses.append(call.tx, agent_id, client, index, sender, value=response.to_dict())
            total = int(self._response_total.get(call.tx, agent_id, client, index, default=0))
            self._response_total.set(call.tx, agent_id, client, index, value=total + 1)

            call.emit(
                CONTRACT,
                "ResponseAppended",
                agent_id=agent_id,
                client=client,
                index=index,
                responder=sender,
                response_uri=response_uri,
                response_hash=hash_to_hex(response_hash),
            )
        return n + 1

    # ─── Reads ───────────────────────────────────────────────────────

    def read_feedback(self, agent_id: int, client: str, index: int) -> FeedbackRecord | None:
        with self._chain.read() as call:
            stored = self._feedback.get(call.tx, agent_id, client, index)
        return None if stored is None else FeedbackRecord.from_dict(stored)

    def get_last_index(self, agent_id: int, client: str) -> int:
        with self._chain.read() as call:
            return int(self._last_index.get(call.tx, agent_id, client, default=0))

    def get_approved_limit(self, agent_id: int, client: str) -> int:
        """Remaining approved-path quota of ``client``."""
        with self._chain.read() as call:
            return FeedbackApproval.from_dict(self._approvals.get(call.tx, agent_id, client)).remaining

    def get_clients(self, agent_id: int, cursor: int | None = None) -> Page[str]:
        with self._chain.read() as call:
            return paginate(
                self._clients.length(call.tx, agent_id),
                cursor,
                lambda i: self._clients.item(call.tx, agent_id, i),
            )

    def read_all_feedback(
        self,
        agent_id: int,
        tag1: str | None = None,
        tag2: str | None = None,
        include_revoked: bool = False,
        cursor: int | None = None,
    ) -> Page[FeedbackRecord]:
        """
        Page through every feedback record of ``agent_id`` in submission order.

        Filters apply within the scanned window; a page may hold fewer items
        than the window (even none) while the cursor still advances.
        """

        def fetch(i: int) -> FeedbackRecord:
            ref = self._sequence.item(call.tx, agent_id, i)
            return FeedbackRecord.from_dict(self._feedback.get(call.tx, agent_id, ref["client"], ref["index"]))

        def keep(record: FeedbackRecord) -> bool:
            if record.is_revoked and not include_revoked:
                return False
            if tag1 is not None and record.tag1 != tag1:
                return False
            return tag2 is None or record.tag2 == tag2

        with self._chain.read() as call:
            page = paginate_filtered(self._sequence.length(call.tx, agent_id), cursor, fetch, keep)
        logger.debug(f"Feedback page for agent {agent_id}: {len(page)} items, next cursor {page.cursor}")
        return page

    def get_summary(self, agent_id: int) -> FeedbackSummary:
        with self._chain.read() as call:
            aggregate = RunningAggregate.from_dict(self._aggregates.get(call.tx, agent_id))
        return FeedbackSummary(count=aggregate.count, summary_value=aggregate.average())

    def get_agent_feedback_count(self, agent_id: int) -> int:
        """Feedback records ever submitted for ``agent_id``, revoked included."""
        with self._chain.read() as call:
            return self._sequence.length(call.tx, agent_id)

    def get_response_count_single(self, agent_id: int, client: str, index: int, responder: str) -> int:
        with self._chain.read() as call:
            return self._responses.length(call.tx, agent_id, client, index, responder)

    def get_response_count(self, agent_id: int, client: str, index: int) -> int:
        """Responses to one feedback record across all responders."""
        with self._chain.read() as call:
            return int(self._response_total.get(call.tx, agent_id, client, index, default=0))

    def get_responders(
        self, agent_id: int, client: str, index: int, cursor: int | None = None
    ) -> Page[str]:
        with self._chain.read() as call:
            return paginate(
                self._responders.length(call.tx, agent_id, client, index),
                cursor,
                lambda i: self._responders.item(call.tx, agent_id, client, index, i),
            )

    def read_response(
        self, agent_id: int, client: str, index: int, responder: str, n: int
    ) -> ResponseRecord | None:
        """The ``n``-th (0-based) response of ``responder`` to one feedback record."""
        with self._chain.read() as call:
            stored = self._responses.item(call.tx, agent_id, client, index, responder, n)
        return None if stored is None else ResponseRecord.from_dict(stored)

    def get_identity_registry(self) -> str:
        return self._authority.principal

    def get_version(self) -> str:
        return VERSION
