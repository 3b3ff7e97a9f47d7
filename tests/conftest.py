"""Shared fixtures for hybrid_seal tests.

RSA generation is slow, so key material is created once per test session.
"""
import time
import pytest

from hybrid_seal.seal.config import generate_key_pair
from hybrid_seal.seal.engine import SealEngine
from hybrid_seal.seal.keys import KeyManager


class FakeClock:
    """Settable clock for replay window tests."""
    def __init__(self, now: float = None):
        self.now = float(int(time.time())) if now is None else now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def key_pair_pem():
    """(public_pem, private_pem) for a 2048-bit RSA key."""
    return generate_key_pair(2048)


@pytest.fixture(scope="session")
def other_key_pair_pem():
    """A second, unrelated key pair."""
    return generate_key_pair(2048)


@pytest.fixture(scope="session")
def key_manager(key_pair_pem):
    public_pem, private_pem = key_pair_pem
    return KeyManager.initialize(public_pem, private_pem)


@pytest.fixture(scope="session")
def other_key_manager(other_key_pair_pem):
    public_pem, private_pem = other_key_pair_pem
    return KeyManager.initialize(public_pem, private_pem)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(key_manager, clock):
    return SealEngine(key_manager, clock=clock)
