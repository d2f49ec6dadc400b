"""
Tests for the call host: atomic commit/rollback, nesting, metering, events.
"""

import threading

import pytest

from agentregistry.core.config import Config
from agentregistry.core.exceptions import (
    HostErrorCode,
    IdentityErrorCode,
    NotFoundError,
    ResourceBudgetError,
)
from agentregistry.runtime.chain import Chain
from agentregistry.storage.maps import StateMap
from agentregistry.storage.memory import InMemoryStorage

COUNTER = StateMap("test-contract", "counter")


def bump(chain: Chain, sender: str, fail: bool = False) -> int:
    with chain.call(sender) as call:
        value = COUNTER.get(call.tx, default=0) + 1
        COUNTER.set(call.tx, value=value)
        call.emit("test-contract", "Bumped", value=value)
        if fail:
            raise NotFoundError("forced", IdentityErrorCode.ERR_AGENT_NOT_FOUND)
    return value


class TestCallAtomicity:
    def test_commit_applies_writes_and_events(self, chain, storage):
        assert bump(chain, "alice") == 1

        assert storage.get("test-contract/counter") == 1
        assert [e.name for e in chain.events] == ["Bumped"]
        assert chain.events[0].data == {"value": 1}
        assert chain.block_height == 1

    def test_failed_call_leaves_state_untouched(self, chain, storage):
        bump(chain, "alice")
        before = storage.snapshot()

        with pytest.raises(NotFoundError):
            bump(chain, "alice", fail=True)

        assert storage.snapshot() == before
        assert len(chain.events) == 1
        assert chain.block_height == 1
        assert chain.last_call.ok is False

    def test_unexpected_exception_also_rolls_back(self, chain, storage):
        with pytest.raises(ZeroDivisionError):
            with chain.call("alice") as call:
                COUNTER.set(call.tx, value=5)
                1 / 0

        assert storage.get("test-contract/counter") is None

    def test_read_only_call_does_not_advance_height(self, chain):
        with chain.read() as call:
            COUNTER.get(call.tx)

        assert chain.block_height == 0
        assert chain.last_call.reads == 1

    def test_nested_call_joins_outer_transaction(self, chain, storage):
        with chain.call("alice") as outer:
            COUNTER.set(outer.tx, value=7)
            with chain.call("bob") as inner:
                assert inner.nested
                assert inner.tx is outer.tx
                assert inner.sender == "bob"
                assert COUNTER.get(inner.tx) == 7
            assert storage.get("test-contract/counter") is None

        assert storage.get("test-contract/counter") == 7

    def test_nested_failure_aborts_outer(self, chain, storage):
        with pytest.raises(NotFoundError):
            with chain.call("alice") as outer:
                COUNTER.set(outer.tx, value=1)
                bump(chain, "bob", fail=True)

        assert storage.get("test-contract/counter") is None
        assert chain.events == []

    def test_empty_storage_is_used_as_given(self):
        storage = InMemoryStorage()
        chain = Chain(storage=storage)

        bump(chain, "alice")

        assert chain.storage is storage
        assert storage.get("test-contract/counter") == 1

    def test_hosts_on_one_storage_see_each_other(self, storage):
        first = Chain(storage=storage)
        second = Chain(storage=storage)

        bump(first, "alice")

        assert bump(second, "bob") == 2


class TestExecute:
    def test_success(self, chain):
        result = chain.execute(bump, chain, "alice")

        assert result.ok
        assert result.value == 1
        assert result.unwrap() == 1

    def test_failure_returns_code(self, chain):
        result = chain.execute(bump, chain, "alice", fail=True)

        assert not result.ok
        assert result.error == 1001
        assert result.message == "forced"
        with pytest.raises(ValueError):
            result.unwrap()

    def test_non_registry_errors_propagate(self, chain):
        def broken():
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            chain.execute(broken)


class TestMetering:
    def test_read_budget_aborts_call(self, storage):
        chain = Chain(storage=storage, config=Config(read_budget=32))

        def scan_too_much():
            with chain.call("alice") as call:
                COUNTER.set(call.tx, value=1)
                for i in range(40):
                    COUNTER.get(call.tx, i)

        result = chain.execute(scan_too_much)

        assert result.error == HostErrorCode.ERR_READ_BUDGET_EXCEEDED
        assert storage.get("test-contract/counter") is None

    def test_write_budget(self, storage):
        chain = Chain(storage=storage, config=Config(write_budget=2))

        with pytest.raises(ResourceBudgetError):
            with chain.call("alice") as call:
                for i in range(3):
                    COUNTER.set(call.tx, i, value=i)

        assert storage.snapshot() == {}

    def test_budget_is_per_call(self, storage):
        chain = Chain(storage=storage, config=Config(read_budget=32))
        for _ in range(40):
            bump(chain, "alice")

        assert storage.get("test-contract/counter") == 40


class TestClockAndHeight:
    def test_context_carries_height_and_time(self, chain, clock):
        with chain.call("alice") as call:
            assert call.ctx.block_height == 0
            assert call.ctx.timestamp == clock.now

    def test_advance(self, chain, clock):
        chain.advance(blocks=5, seconds=60)

        assert chain.block_height == 5
        assert chain.now() == clock.now + 60

    def test_advance_backwards_rejected(self, chain):
        with pytest.raises(ValueError):
            chain.advance(blocks=-1)

    def test_clock_is_read_per_call(self, chain, clock):
        start = clock.now
        clock.now += 100
        with chain.call("alice") as call:
            assert call.ctx.timestamp == start + 100


class TestPrincipals:
    def test_contract_principal(self):
        chain = Chain(storage=InMemoryStorage(), config=Config(deployer="SP1DEPLOYER"))
        assert chain.principal("identity-registry") == "SP1DEPLOYER.identity-registry"

    def test_events_for(self, chain):
        bump(chain, "alice")
        bump(chain, "bob")

        assert len(chain.events_for("test-contract", "Bumped")) == 2
        assert chain.events_for("other") == []


class TestConcurrency:
    def test_other_thread_waits_instead_of_joining(self, chain, storage):
        entered = threading.Event()
        release = threading.Event()

        def doomed_call():
            with pytest.raises(NotFoundError):
                with chain.call("alice") as call:
                    COUNTER.set(call.tx, value=100)
                    entered.set()
                    release.wait(timeout=5)
                    raise NotFoundError("forced", IdentityErrorCode.ERR_AGENT_NOT_FOUND)

        holder = threading.Thread(target=doomed_call)
        holder.start()
        assert entered.wait(timeout=5)

        waiter = threading.Thread(target=bump, args=(chain, "bob"))
        waiter.start()
        waiter.join(timeout=0.2)
        assert waiter.is_alive()

        release.set()
        holder.join(timeout=5)
        waiter.join(timeout=5)

        assert storage.get("test-contract/counter") == 1
        assert chain.last_call.sender == "bob"
        assert chain.last_call.ok is True

    def test_hosts_sharing_storage_do_not_lose_updates(self, storage, clock):
        first = Chain(storage=storage, clock=clock)
        second = Chain(storage=storage, clock=clock)
        entered = threading.Event()
        release = threading.Event()

        def slow_bump():
            with first.call("alice") as call:
                value = COUNTER.get(call.tx, default=0) + 1
                entered.set()
                release.wait(timeout=5)
                COUNTER.set(call.tx, value=value)

        holder = threading.Thread(target=slow_bump)
        holder.start()
        assert entered.wait(timeout=5)

        waiter = threading.Thread(target=bump, args=(second, "bob"))
        waiter.start()
        waiter.join(timeout=0.2)
        assert waiter.is_alive()

        release.set()
        holder.join(timeout=5)
        waiter.join(timeout=5)

        assert storage.get("test-contract/counter") == 2
        assert first.block_height == 1
        assert second.block_height == 1

    def test_nested_calls_on_one_thread_do_not_deadlock(self, chain):
        result = []

        def nested():
            with chain.call("alice") as outer:
                with chain.call("bob") as inner:
                    result.append(inner.tx is outer.tx)

        worker = threading.Thread(target=nested)
        worker.start()
        worker.join(timeout=5)

        assert result == [True]
