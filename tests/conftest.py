import pytest

from agentregistry.core.config import Config
from agentregistry.identity.registry import IdentityRegistry
from agentregistry.reputation.registry import ReputationRegistry
from agentregistry.runtime.chain import Chain
from agentregistry.storage.memory import InMemoryStorage
from agentregistry.validation.registry import ValidationRegistry

OWNER = "wallet_1"
CLIENT = "wallet_2"
OTHER = "wallet_3"
VALIDATOR = "wallet_4"

START_TIME = 1_700_000_000


class FakeClock:
    """Settable unix-seconds clock."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def chain(storage, config, clock):
    return Chain(storage=storage, config=config, clock=clock)


@pytest.fixture
def identity(chain):
    return IdentityRegistry(chain)


@pytest.fixture
def reputation(chain, identity):
    return ReputationRegistry(chain, identity)


@pytest.fixture
def validation(chain, identity):
    return ValidationRegistry(chain, identity)


@pytest.fixture
def agent_id(identity):
    """Agent 0, owned by OWNER."""
    return identity.register(OWNER)
