"""
Validation registry.

Two-phase protocol: an agent's owner or operator asks a validator to
attest (request), the validator answers with a 0-100 score (response) and
may answer again later. Each agent keeps a running aggregate of its latest
scores, counting a request once from its first response on.
"""

from __future__ import annotations

from agentregistry.core.aggregate import RunningAggregate
from agentregistry.core.exceptions import (
    AlreadyExistsError,
    InvalidInputError,
    NotAuthorizedError,
    NotFoundError,
    SelfDealingError,
    ValidationErrorCode,
)
from agentregistry.core.logging import get_logger
from agentregistry.core.pagination import Page, paginate
from agentregistry.core.types import hash_to_hex, hex_to_hash
from agentregistry.identity.authority import AgentAuthority
from agentregistry.runtime.chain import Chain
from agentregistry.storage.maps import IndexedList, StateMap
from agentregistry.validation.types import MAX_RESPONSE, ValidationRecord, ValidationSummary

logger = get_logger("validation.registry")

CONTRACT = "validation-registry"
VERSION = "2.0.0"


class ValidationRegistry:
    """Validation request/response ledger."""

    CONTRACT = CONTRACT
    VERSION = VERSION

    def __init__(self, chain: Chain, authority: AgentAuthority) -> None:
        self._chain = chain
        self._authority = authority

        self._validations = StateMap(CONTRACT, "validations")
        self._aggregates = StateMap(CONTRACT, "summary")
        self._agent_validations = IndexedList(CONTRACT, "agent-validations")
        self._validator_requests = IndexedList(CONTRACT, "validator-requests")

    @property
    def principal(self) -> str:
        return self._chain.principal(CONTRACT)

    def validation_request(
        self,
        sender: str,
        validator: str,
        agent_id: int,
        request_uri: str,
        request_hash: bytes,
    ) -> bool:
        """
        Open a validation request keyed by ``request_hash``.

        Raises:
            NotFoundError: Agent does not exist
            NotAuthorizedError: Sender is neither owner nor operator
            SelfDealingError: Validator is the owner or the sender
            AlreadyExistsError: ``request_hash`` was used before
        """
        with self._chain.call(sender) as call:
            if not self._authority.agent_exists(agent_id):
                raise NotFoundError(
                    f"Agent {agent_id} not found",
                    ValidationErrorCode.ERR_AGENT_NOT_FOUND,
                    {"agent_id": agent_id},
                )
            if not self._authority.is_authorized_or_owner(sender, agent_id):
                raise NotAuthorizedError(
                    f"{sender} may not request validations for agent {agent_id}",
                    ValidationErrorCode.ERR_NOT_AUTHORIZED,
                    {"agent_id": agent_id, "caller": sender},
                )
            if validator in (self._authority.owner_of(agent_id), sender):
                raise SelfDealingError(
                    "An agent cannot be validated by its owner or the requester",
                    ValidationErrorCode.ERR_INVALID_VALIDATOR,
                    {"agent_id": agent_id, "validator": validator},
                )
            if self._validations.contains(call.tx, request_hash):
                raise AlreadyExistsError(
                    f"Validation {hash_to_hex(request_hash)} already exists",
                    ValidationErrorCode.ERR_VALIDATION_EXISTS,
                )

            record = ValidationRecord(
                validator=validator,
                agent_id=agent_id,
                request_uri=request_uri,
                request_hash=request_hash,
                last_update=call.ctx.block_height,
            )
            self._validations.set(call.tx, request_hash, value=record.to_dict())
            self._agent_validations.append(call.tx, agent_id, value=hash_to_hex(request_hash))
            self._validator_requests.append(call.tx, validator, value=hash_to_hex(request_hash))
            call.emit(
                CONTRACT,
                "ValidationRequest",
                validator=validator,
                agent_id=agent_id,
                request_uri=request_uri,
                request_hash=hash_to_hex(request_hash),
            )
        logger.info(f"Validation requested from {validator} for agent {agent_id}")
        return True

    def validation_response(
        self,
        sender: str,
        request_hash: bytes,
        response: int,
        response_uri: str = "",
        response_hash: bytes = b"",
        tag: str = "",
    ) -> bool:
        """
        Record or overwrite the validator's answer.

        Raises:
            NotFoundError: Unknown ``request_hash``
            NotAuthorizedError: Sender is not the requested validator
            InvalidInputError: ``response`` outside 0..100
        """
        with self._chain.call(sender) as call:
            stored = self._validations.get(call.tx, request_hash)
            if stored is None:
                raise NotFoundError(
                    f"Validation {hash_to_hex(request_hash)} not found",
                    ValidationErrorCode.ERR_VALIDATION_NOT_FOUND,
                )
            record = ValidationRecord.from_dict(stored)
            if sender != record.validator:
                raise NotAuthorizedError(
                    "Only the requested validator may respond",
                    ValidationErrorCode.ERR_NOT_AUTHORIZED,
                    {"validator": record.validator, "caller": sender},
                )
            if not 0 <= response <= MAX_RESPONSE:
                raise InvalidInputError(
                    f"Response must be within 0..{MAX_RESPONSE}",
                    ValidationErrorCode.ERR_INVALID_RESPONSE,
                    {"response": response},
                )

            aggregate = RunningAggregate.from_dict(self._aggregates.get(call.tx, record.agent_id))
            if record.has_response:
                aggregate.adjust(record.response, response)
            else:
                aggregate.add_raw(response)
            self._aggregates.set(call.tx, record.agent_id, value=aggregate.to_dict())

            record.response = response
            record.response_uri = response_uri
            record.response_hash = response_hash
            record.tag = tag
            record.has_response = True
            record.last_update = call.ctx.block_height
            self._validations.set(call.tx, request_hash, value=record.to_dict())
            call.emit(
                CONTRACT,
                "ValidationResponse",
                validator=sender,
                agent_id=record.agent_id,
                request_hash=hash_to_hex(request_hash),
                response=response,
                response_uri=response_uri,
                response_hash=hash_to_hex(response_hash),
                tag=tag,
            )
        return True

    # ─── Reads ───────────────────────────────────────────────────────

    def get_validation_status(self, request_hash: bytes) -> ValidationRecord | None:
        with self._chain.read() as call:
            stored = self._validations.get(call.tx, request_hash)
        return None if stored is None else ValidationRecord.from_dict(stored)

    def get_agent_validations(self, agent_id: int, cursor: int | None = None) -> Page[bytes]:
        """Request hashes of ``agent_id`` in request order."""
        with self._chain.read() as call:
            return paginate(
                self._agent_validations.length(call.tx, agent_id),
                cursor,
                lambda i: hex_to_hash(self._agent_validations.item(call.tx, agent_id, i)),
            )

    def get_validator_requests(self, validator: str, cursor: int | None = None) -> Page[bytes]:
        """Request hashes addressed to ``validator`` in request order."""
        with self._chain.read() as call:
            return paginate(
                self._validator_requests.length(call.tx, validator),
                cursor,
                lambda i: hex_to_hash(self._validator_requests.item(call.tx, validator, i)),
            )

    def get_summary(self, agent_id: int) -> ValidationSummary:
        with self._chain.read() as call:
            aggregate = RunningAggregate.from_dict(self._aggregates.get(call.tx, agent_id))
        return ValidationSummary(count=aggregate.count, avg_response=aggregate.average())

    def get_identity_registry(self) -> str:
        return self._authority.principal

    def get_version(self) -> str:
        return VERSION
