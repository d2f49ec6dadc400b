"""
End-to-end tests through the AgentRegistries facade.
"""

from unittest.mock import MagicMock

import pytest

from agentregistry import (
    PAGE_SIZE,
    WAD,
    AgentRegistries,
    Config,
    ReputationErrorCode,
    ValidationStatus,
)
from agentregistry.storage.memory import InMemoryStorage

OWNER = "wallet_1"
CLIENT = "wallet_2"
VALIDATOR = "wallet_4"


@pytest.fixture
def registries(clock):
    return AgentRegistries(clock=clock)


class TestAgentRegistries:
    def test_default_wiring(self, registries):
        assert isinstance(registries.chain.storage, InMemoryStorage)
        assert registries.config.storage_backend == "memory"
        assert registries.reputation.get_identity_registry() == registries.identity.principal
        assert registries.validation.get_identity_registry() == registries.identity.principal

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AGENTREGISTRY_CHAIN_ID", "31337")
        monkeypatch.setenv("AGENTREGISTRY_DEPLOYER", "SP2DEPLOYER")
        monkeypatch.delenv("AGENTREGISTRY_STORAGE_BACKEND", raising=False)

        registries = AgentRegistries.from_env()

        assert registries.chain.chain_id == 31337
        assert registries.identity.principal == "SP2DEPLOYER.identity-registry"
        assert registries.identity.domain.chain_id == 31337

    def test_health_check(self, registries):
        registries.identity.register(OWNER)

        health = registries.health_check()
        assert health["healthy"] is True
        assert health["storage_backend"] == "memory"
        assert health["block_height"] == 1
        assert health["chain_id"] == 1
        assert health["versions"] == {
            "identity-registry": "2.0.0",
            "reputation-registry": "2.0.0",
            "validation-registry": "2.0.0",
        }

    def test_unhealthy_storage(self):
        storage = MagicMock()
        storage.health_check.return_value = False

        assert AgentRegistries(storage=storage).health_check()["healthy"] is False

    def test_context_manager_closes_storage(self):
        storage = MagicMock()
        with AgentRegistries(storage=storage):
            pass
        storage.close.assert_called_once()

    def test_resolver_is_bound_to_identity(self, registries):
        assert registries.resolver()._identity is registries.identity

    def test_execute(self, registries):
        agent_id = registries.identity.register(OWNER)

        result = registries.execute(registries.reputation.revoke_feedback, CLIENT, agent_id, 1)
        assert not result.ok
        assert result.error == ReputationErrorCode.ERR_FEEDBACK_NOT_FOUND


class TestEndToEnd:
    def test_approved_feedback_lifecycle(self, registries):
        identity, reputation = registries.identity, registries.reputation
        agent_id = identity.register(OWNER)
        reputation.approve_client(OWNER, agent_id, CLIENT, 2)

        reputation.give_feedback_approved(CLIENT, agent_id, 80, 0)
        reputation.give_feedback_approved(CLIENT, agent_id, 100, 0)

        summary = reputation.get_summary(agent_id)
        assert (summary.count, summary.summary_value) == (2, 90 * WAD)

        third = registries.execute(reputation.give_feedback_approved, CLIENT, agent_id, 50, 0)
        assert third.error == ReputationErrorCode.ERR_INDEX_LIMIT_EXCEEDED

        reputation.revoke_feedback(CLIENT, agent_id, 1)
        summary = reputation.get_summary(agent_id)
        assert (summary.count, summary.summary_value) == (1, 100 * WAD)

    def test_validation_lifecycle(self, registries):
        identity, validation = registries.identity, registries.validation
        agent_id = identity.register(OWNER)
        request_hash = bytes.fromhex("11" * 32)

        validation.validation_request(OWNER, VALIDATOR, agent_id, "ipfs://req", request_hash)
        assert validation.get_validation_status(request_hash).status == ValidationStatus.PENDING
        assert validation.get_summary(agent_id).count == 0

        validation.validation_response(VALIDATOR, request_hash, 85, "ipfs://resp", b"", "")

        summary = validation.get_summary(agent_id)
        assert (summary.count, summary.avg_response) == (1, 85)

    def test_rejected_call_leaves_no_trace(self, registries):
        agent_id = registries.identity.register(OWNER)
        before = registries.chain.storage.snapshot()
        height = registries.chain.block_height

        result = registries.execute(registries.reputation.give_feedback, OWNER, agent_id, 10, 0)

        assert result.error == ReputationErrorCode.ERR_SELF_FEEDBACK
        assert registries.chain.storage.snapshot() == before
        assert registries.chain.block_height == height


class TestBoundedReads:
    @pytest.fixture
    def busy_agent(self, registries):
        agent_id = registries.identity.register(OWNER)
        for i in range(3 * PAGE_SIZE + 2):
            registries.reputation.give_feedback(f"client_{i}", agent_id, i, 0)
        return agent_id

    def test_page_cost_is_bounded(self, registries, busy_agent):
        cursor = None
        pages = 0
        while True:
            page = registries.reputation.read_all_feedback(busy_agent, cursor=cursor)
            assert registries.chain.last_call.reads <= 2 * PAGE_SIZE + 2
            pages += 1
            cursor = page.cursor
            if cursor is None:
                break

        assert pages == 4

    def test_cursor_round_trip_visits_everything_once(self, registries, busy_agent):
        seen = []
        cursor = None
        while True:
            page = registries.reputation.read_all_feedback(busy_agent, cursor=cursor)
            seen.extend(r.client for r in page.items)
            cursor = page.cursor
            if cursor is None:
                break

        assert seen == [f"client_{i}" for i in range(3 * PAGE_SIZE + 2)]
        assert registries.reputation.get_agent_feedback_count(busy_agent) == len(seen)

    def test_summary_read_is_constant(self, registries, busy_agent):
        registries.reputation.get_summary(busy_agent)
        assert registries.chain.last_call.reads == 1

    def test_tight_budget_still_serves_pages(self, clock):
        tight = AgentRegistries(config=Config(read_budget=2 * PAGE_SIZE + 2), clock=clock)
        agent_id = tight.identity.register(OWNER)
        for i in range(PAGE_SIZE + 1):
            tight.reputation.give_feedback(f"client_{i}", agent_id, i, 0)

        page = tight.reputation.read_all_feedback(agent_id)
        assert len(page) == PAGE_SIZE
