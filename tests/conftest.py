"""
Pytest configuration and fixtures for sharedmeta tests.

Provides identities, an in-process relay and a controllable clock for
unit and integration tests.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from sharedmeta.identity import Identity
from sharedmeta.protocol import MessageProtocol
from sharedmeta.relay import InMemoryRelay

ALICE_SEED = b"alice-test-seed-0123456789abcdef"
BOB_SEED = b"bob-test-seed-0123456789abcdefgh"
CAROL_SEED = b"carol-test-seed-0123456789abcdef"


class FakeClock:
    """Manually advanced wall clock in Unix seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test data.

    Yields:
        Path: Temporary directory path

    Cleanup:
        Automatically removes directory after test
    """
    tmp = Path(tempfile.mkdtemp(prefix="sharedmeta_test_"))
    try:
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def alice() -> Identity:
    return Identity.from_seed(ALICE_SEED)


@pytest.fixture
def bob() -> Identity:
    return Identity.from_seed(BOB_SEED)


@pytest.fixture
def carol() -> Identity:
    return Identity.from_seed(CAROL_SEED)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def relay(clock: FakeClock) -> InMemoryRelay:
    """Relay sharing the test clock, with one-hour tokens."""
    return InMemoryRelay(secret=b"relay-test-secret-0123456789abcd", token_lifetime=3600, clock=clock)


@pytest.fixture
def alice_client(alice: Identity, relay: InMemoryRelay, clock: FakeClock) -> MessageProtocol:
    return MessageProtocol(alice, relay, clock=clock)


@pytest.fixture
def bob_client(bob: Identity, relay: InMemoryRelay, clock: FakeClock) -> MessageProtocol:
    return MessageProtocol(bob, relay, clock=clock)


@pytest.fixture
def carol_client(carol: Identity, relay: InMemoryRelay, clock: FakeClock) -> MessageProtocol:
    return MessageProtocol(carol, relay, clock=clock)


# Pytest marks
def pytest_configure(config):
    """
    Configure pytest markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# Test collection hooks
def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to add markers based on test location.

    Args:
        config: Pytest configuration
        items: List of collected test items
    """
    for item in items:
        # Add unit marker to tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add integration marker to integration test modules
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
