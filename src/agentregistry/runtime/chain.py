"""
Call host.

The Chain serializes registry calls the way a ledger does: one call at a
time, across threads and across hosts sharing a backend. Each call either
commits every one of its writes and events or leaves state exactly as it
found it. It also owns the per-call read/write meter,
the block height and the clock that signed deadlines are checked against.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from agentregistry.core.config import Config
from agentregistry.core.exceptions import RegistryError
from agentregistry.core.logging import get_logger
from agentregistry.core.types import CallContext, CallResult, Event, Principal
from agentregistry.storage.base import StorageBackend
from agentregistry.storage.memory import InMemoryStorage
from agentregistry.storage.transaction import Transaction

logger = get_logger("runtime.chain")

T = TypeVar("T")


@dataclass
class Call:
    """An open call: who/when plus the transaction it reads and writes."""

    ctx: CallContext
    tx: Transaction
    nested: bool = False

    @property
    def sender(self) -> Principal:
        return self.ctx.sender

    def emit(self, contract: str, name: str, **data: Any) -> None:
        self.tx.emit(Event(contract=contract, name=name, data=data, block_height=self.ctx.block_height))


@dataclass
class CallStats:
    """Metering of the most recently finished top-level call."""

    sender: Principal
    ok: bool
    reads: int = 0
    writes: int = 0
    events: list[Event] = field(default_factory=list)


class Chain:
    """
    In-process ledger host.

    Example:
        >>> chain = Chain()
        >>> identity = IdentityRegistry(chain)
        >>> agent_id = identity.register("alice")
        >>> chain.execute(identity.transfer, "bob", agent_id, "alice", "bob").error
        1005
    """

    def __init__(
        self,
        storage: StorageBackend | None = None,
        config: Config | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """
        Args:
            storage: Committed state backend (defaults to in-memory)
            config: Host configuration (budgets, deployer, chain id)
            clock: Unix-seconds clock used for deadlines
        """
        self.config = config or Config()
        self._storage = storage if storage is not None else InMemoryStorage()
        self._clock = clock or (lambda: int(time.time()))
        self._time_offset = 0
        self._lock = threading.RLock()
        self._local = threading.local()
        self.block_height = 0
        self.events: list[Event] = []
        self.last_call: CallStats | None = None

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    @property
    def deployer(self) -> Principal:
        return self.config.deployer

    @property
    def chain_id(self) -> int:
        return self.config.chain_id

    def principal(self, contract: str) -> Principal:
        """Contract principal, e.g. ``deployer.identity-registry``."""
        return f"{self.deployer}.{contract}"

    def now(self) -> int:
        return int(self._clock()) + self._time_offset

    def advance(self, blocks: int = 1, seconds: int = 0) -> None:
        """Move block height and clock forward (simulation and tests)."""
        if blocks < 0 or seconds < 0:
            raise ValueError("cannot move the chain backwards")
        with self._lock:
            self.block_height += blocks
            self._time_offset += seconds

    @contextmanager
    def call(self, sender: Principal) -> Iterator[Call]:
        """
        Open a call as ``sender``.

        A call opened while another is active on the same thread joins it and
        commits or rolls back together with it. Top-level calls hold the host
        lock and the backend lock until they finish, so calls from other
        threads or other hosts wait their turn.
        """
        active: Call | None = getattr(self._local, "active", None)
        if active is not None:
            ctx = CallContext(
                sender=sender,
                block_height=active.ctx.block_height,
                timestamp=active.ctx.timestamp,
            )
            yield Call(ctx=ctx, tx=active.tx, nested=True)
            return

        with self._lock, self._storage.lock():
            tx = Transaction(
                self._storage,
                read_budget=self.config.read_budget,
                write_budget=self.config.write_budget,
            )
            ctx = CallContext(sender=sender, block_height=self.block_height, timestamp=self.now())
            call = Call(ctx=ctx, tx=tx)
            self._local.active = call
            try:
                yield call
            except BaseException as e:
                reads, writes = tx.reads, tx.writes
                tx.rollback()
                self.last_call = CallStats(sender=sender, ok=False, reads=reads, writes=writes)
                if isinstance(e, RegistryError):
                    logger.debug(
                        f"Call by {sender} rolled back: {e}",
                        extra={"sender": sender, "code": int(e.code)},
                    )
                else:
                    logger.warning(f"Call by {sender} aborted by {type(e).__name__}: {e}")
                raise
            else:
                wrote = tx.dirty
                events = tx.commit()
                self.events.extend(events)
                self.last_call = CallStats(
                    sender=sender, ok=True, reads=tx.reads, writes=tx.writes, events=list(events)
                )
                if wrote:
                    self.block_height += 1
                    logger.debug(
                        f"Committed call by {sender}: {tx.writes} writes, {tx.reads} reads, "
                        f"{len(events)} events"
                    )
            finally:
                self._local.active = None

    def read(self) -> Any:
        """Open a read-only style call (sender is the deployer)."""
        return self.call(self.deployer)

    def execute(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> CallResult[T]:
        """
        Run a registry operation and return its outcome instead of raising.

        Rejections come back as ``CallResult(ok=False, error=<code>)``; state
        is untouched. Anything that is not a RegistryError still propagates.
        """
        try:
            return CallResult.success(fn(*args, **kwargs))
        except RegistryError as e:
            return CallResult.failure(int(e.code), e.message)

    def events_for(self, contract: str, name: str | None = None) -> list[Event]:
        """Committed events of one contract, optionally of one kind."""
        return [
            e for e in self.events
            if e.contract == contract and (name is None or e.name == name)
        ]
