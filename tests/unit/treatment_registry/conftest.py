"""Shared fixtures for registry tests."""

import pytest

from adapters.ledger import InMemoryLedger
from treatment_registry.services import EventDispatcher, InMemoryEventSink, Registry

ALICE = "0xa11ce"
MALLORY = "0x3a11"
DR_BOB = "0xb0b"
ADMIN = "0xad31"


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(opening_balance=0)


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def registry(ledger: InMemoryLedger, sink: InMemoryEventSink) -> Registry:
    """Fresh registry wired to an empty ledger and a recording sink."""
    return Registry(ledger=ledger, dispatcher=EventDispatcher(sinks=[sink]), name="test-registry")


@pytest.fixture
def alice_id(registry: Registry) -> int:
    return registry.register_patient("Alice", "1990-04-12", 62, 168, "F", ALICE)


@pytest.fixture
def bob_id(registry: Registry) -> int:
    return registry.register_practitioner("Dr. Bob", DR_BOB, "fillers", ADMIN)
