import pytest

from lockbox_core.coordinator import AccessCoordinator
from lockbox_core.identity import new_signer
from lockbox_core.payments import InMemoryBank
from lockbox_core.relayer.relayer_local import LocalRelayer
from lockbox_core.storage import InMemoryStorage

PRICE = 100
DURATION = 30 * 24 * 60 * 60  # 2,592,000 seconds
T0 = 1_700_000_000


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Signer:
    def __init__(self):
        self.key, self.address = new_signer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def publisher():
    return Signer()


@pytest.fixture
def alice():
    return Signer()


@pytest.fixture
def bob():
    return Signer()


@pytest.fixture
def bank():
    return InMemoryBank()


@pytest.fixture
def relayer(clock):
    return LocalRelayer(clock=clock)


@pytest.fixture
def lock(publisher, bank, clock, relayer):
    """Deployed lock without a content key."""
    lock = AccessCoordinator.deploy(
        InMemoryStorage(), publisher.address, "Confidential Weekly", PRICE, DURATION,
        bank=bank, clock=clock, input_verifier=relayer.verify_input,
    )
    relayer.register_acl(lock.resource_id, lock)
    return lock


@pytest.fixture
def sample_key():
    return bytes.fromhex("0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")


@pytest.fixture
def keyed_lock(lock, relayer, publisher, sample_key):
    """Deployed lock with the sample content key deposited."""
    wrapped = relayer.encrypt_input(lock.resource_id, publisher.address, sample_key)
    lock.set_key(publisher.address, wrapped.handle, wrapped.input_proof)
    return lock
