"""
Tests for the validation registry.
"""

import pytest

from agentregistry.core.exceptions import (
    AlreadyExistsError,
    InvalidInputError,
    SelfDealingError,
    ValidationErrorCode,
)
from agentregistry.core.pagination import PAGE_SIZE
from agentregistry.validation import ValidationStatus

OWNER = "wallet_1"
CLIENT = "wallet_2"
OTHER = "wallet_3"
VALIDATOR = "wallet_4"

REQUEST_HASH = bytes.fromhex("ab" * 32)


def request(validation, agent_id, request_hash=REQUEST_HASH, validator=VALIDATOR, sender=OWNER):
    return validation.validation_request(sender, validator, agent_id, "ipfs://request", request_hash)


class TestValidationRequest:
    def test_creates_pending_record(self, validation, agent_id, chain):
        height = chain.block_height
        request(validation, agent_id)

        record = validation.get_validation_status(REQUEST_HASH)
        assert record.validator == VALIDATOR
        assert record.agent_id == agent_id
        assert record.request_uri == "ipfs://request"
        assert record.status == ValidationStatus.PENDING
        assert record.response == 0
        assert record.last_update == height

    def test_unknown_hash(self, validation):
        assert validation.get_validation_status(b"\x00" * 32) is None

    def test_operator_may_request(self, validation, identity, agent_id):
        identity.set_approval_for_all(OWNER, agent_id, OTHER, True)

        assert request(validation, agent_id, sender=OTHER)

    def test_stranger_cannot_request(self, validation, agent_id, chain):
        result = chain.execute(request, validation, agent_id, sender=CLIENT)
        assert result.error == ValidationErrorCode.ERR_NOT_AUTHORIZED

    def test_unknown_agent(self, validation, chain):
        result = chain.execute(request, validation, 5)
        assert result.error == ValidationErrorCode.ERR_AGENT_NOT_FOUND

    def test_owner_cannot_validate(self, validation, agent_id):
        with pytest.raises(SelfDealingError) as exc_info:
            request(validation, agent_id, validator=OWNER)
        assert exc_info.value.code == ValidationErrorCode.ERR_INVALID_VALIDATOR

    def test_requester_cannot_validate(self, validation, identity, agent_id, chain):
        identity.set_approval_for_all(OWNER, agent_id, OTHER, True)

        result = chain.execute(request, validation, agent_id, validator=OTHER, sender=OTHER)
        assert result.error == ValidationErrorCode.ERR_INVALID_VALIDATOR

    def test_duplicate_hash(self, validation, agent_id, storage):
        request(validation, agent_id)
        before = storage.snapshot()

        with pytest.raises(AlreadyExistsError) as exc_info:
            request(validation, agent_id, validator=OTHER)
        assert exc_info.value.code == ValidationErrorCode.ERR_VALIDATION_EXISTS
        assert storage.snapshot() == before

    def test_event(self, validation, agent_id, chain):
        request(validation, agent_id)

        (event,) = chain.events_for("validation-registry", "ValidationRequest")
        assert event.data["request_hash"] == "0x" + "ab" * 32
        assert event.data["validator"] == VALIDATOR


class TestValidationResponse:
    def test_respond(self, validation, agent_id, chain):
        request(validation, agent_id)
        chain.advance(blocks=3)

        validation.validation_response(VALIDATOR, REQUEST_HASH, 85, "ipfs://resp", b"\x01", "audit")

        record = validation.get_validation_status(REQUEST_HASH)
        assert record.status == ValidationStatus.RESPONDED
        assert record.response == 85
        assert record.response_uri == "ipfs://resp"
        assert record.response_hash == b"\x01"
        assert record.tag == "audit"
        assert record.last_update == chain.block_height - 1

        summary = validation.get_summary(agent_id)
        assert summary.count == 1
        assert summary.avg_response == 85

    def test_overwrite_adjusts_summary(self, validation, agent_id):
        request(validation, agent_id)
        validation.validation_response(VALIDATOR, REQUEST_HASH, 60)
        validation.validation_response(VALIDATOR, REQUEST_HASH, 90)

        summary = validation.get_summary(agent_id)
        assert summary.count == 1
        assert summary.avg_response == 90

    def test_zero_response_counts(self, validation, agent_id):
        request(validation, agent_id)
        validation.validation_response(VALIDATOR, REQUEST_HASH, 0)

        assert validation.get_summary(agent_id).count == 1

    def test_pending_excluded_from_summary(self, validation, agent_id):
        request(validation, agent_id, bytes(32))
        request(validation, agent_id, b"\x01" * 32)
        validation.validation_response(VALIDATOR, bytes(32), 70)

        summary = validation.get_summary(agent_id)
        assert summary.count == 1
        assert summary.avg_response == 70

    def test_mean_truncates(self, validation, agent_id):
        request(validation, agent_id, bytes(32))
        request(validation, agent_id, b"\x01" * 32)
        validation.validation_response(VALIDATOR, bytes(32), 50)
        validation.validation_response(VALIDATOR, b"\x01" * 32, 51)

        assert validation.get_summary(agent_id).avg_response == 50

    def test_only_validator_responds(self, validation, agent_id, chain):
        request(validation, agent_id)

        result = chain.execute(validation.validation_response, OWNER, REQUEST_HASH, 50)
        assert result.error == ValidationErrorCode.ERR_NOT_AUTHORIZED

    def test_unknown_request(self, validation, chain):
        result = chain.execute(validation.validation_response, VALIDATOR, REQUEST_HASH, 50)
        assert result.error == ValidationErrorCode.ERR_VALIDATION_NOT_FOUND

    @pytest.mark.parametrize("response", [-1, 101])
    def test_out_of_range(self, validation, agent_id, response):
        request(validation, agent_id)

        with pytest.raises(InvalidInputError) as exc_info:
            validation.validation_response(VALIDATOR, REQUEST_HASH, response)
        assert exc_info.value.code == ValidationErrorCode.ERR_INVALID_RESPONSE
        assert validation.get_validation_status(REQUEST_HASH).status == ValidationStatus.PENDING


class TestListings:
    def test_agent_and_validator_lists(self, validation, identity, agent_id):
        other_agent = identity.register(CLIENT)
        request(validation, agent_id, bytes(32))
        request(validation, other_agent, b"\x01" * 32, sender=CLIENT)
        request(validation, agent_id, b"\x02" * 32, validator=OTHER)

        assert validation.get_agent_validations(agent_id).items == [bytes(32), b"\x02" * 32]
        assert validation.get_validator_requests(VALIDATOR).items == [bytes(32), b"\x01" * 32]
        assert validation.get_validator_requests(OTHER).items == [b"\x02" * 32]

    def test_paging(self, validation, agent_id):
        hashes = [i.to_bytes(32, "big") for i in range(PAGE_SIZE + 2)]
        for h in hashes:
            request(validation, agent_id, h)

        first = validation.get_agent_validations(agent_id)
        second = validation.get_agent_validations(agent_id, cursor=first.cursor)

        assert first.items == hashes[:PAGE_SIZE]
        assert first.cursor == PAGE_SIZE
        assert second.items == hashes[PAGE_SIZE:]
        assert second.cursor is None

    def test_empty(self, validation):
        assert validation.get_validator_requests(VALIDATOR).items == []

    def test_registry_metadata(self, validation):
        assert validation.get_identity_registry() == "deployer.identity-registry"
        assert validation.get_version() == "2.0.0"
