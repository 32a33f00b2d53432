"""
Tests for paid patient-to-practitioner linking.

A failed payment must roll back the patient-list append so the registry looks
exactly as it did before the call.
"""

import pytest

from adapters.ledger import InMemoryLedger
from treatment_registry.domain.errors import InvalidArgument, NotFound, TransferFailed, Unauthorized
from treatment_registry.domain.models import ZERO_IDENTITY
from treatment_registry.services import (
    EventDispatcher,
    InMemoryEventSink,
    Registry,
    Result,
    TransferReceipt,
)

from .conftest import ADMIN, ALICE, DR_BOB, MALLORY


class RaisingLedger:
    """Test double whose transfer blows up instead of returning a Result."""

    def transfer(
        self, sender: str, recipient: str, amount: int
    ) -> Result[TransferReceipt, Exception]:
        raise ConnectionError("ledger unreachable")


class TestLinkPatientToPractitioner:
    def test_successful_link_appends_and_pays(
        self, registry: Registry, ledger: InMemoryLedger, alice_id: int, bob_id: int
    ) -> None:
        ledger.deposit(ALICE, 100)

        registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, 40)

        assert registry.get_practitioner_patients(bob_id) == [alice_id]
        assert ledger.balance_of(ALICE) == 60
        assert ledger.balance_of(DR_BOB) == 40

    def test_repeated_links_append_duplicates(
        self, registry: Registry, ledger: InMemoryLedger, alice_id: int, bob_id: int
    ) -> None:
        ledger.deposit(ALICE, 10)

        registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, 5)
        registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, 5)

        assert registry.get_practitioner_patients(bob_id) == [alice_id, alice_id]

    def test_zero_amount_is_allowed(
        self, registry: Registry, alice_id: int, bob_id: int
    ) -> None:
        registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, 0)
        assert registry.get_practitioner_patients(bob_id) == [alice_id]

    def test_failed_transfer_rolls_back_append(
        self, registry: Registry, ledger: InMemoryLedger, alice_id: int, bob_id: int
    ) -> None:
        ledger.deposit(ALICE, 10)
        registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, 10)
        before = registry.snapshot()

        with pytest.raises(TransferFailed):
            registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, 1)

        assert registry.get_practitioner_patients(bob_id) == [alice_id]
        assert registry.snapshot().model_dump() == before.model_dump()
        assert ledger.balance_of(ALICE) == 0

    def test_raising_ledger_is_reported_as_transfer_failed(self, sink: InMemoryEventSink) -> None:
        registry = Registry(ledger=RaisingLedger(), dispatcher=EventDispatcher(sinks=[sink]))
        patient_id = registry.register_patient("Alice", "", 0, 0, "", ALICE)
        practitioner_id = registry.register_practitioner("Dr. Bob", DR_BOB, "", ADMIN)

        with pytest.raises(TransferFailed) as exc_info:
            registry.link_patient_to_practitioner(patient_id, practitioner_id, ALICE, 5)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert registry.get_practitioner_patients(practitioner_id) == []
        assert sink.of_type("patient_added_to_practitioner") == []

    def test_only_patient_may_link(
        self, registry: Registry, ledger: InMemoryLedger, alice_id: int, bob_id: int
    ) -> None:
        ledger.deposit(MALLORY, 100)

        with pytest.raises(Unauthorized):
            registry.link_patient_to_practitioner(alice_id, bob_id, MALLORY, 10)

        assert registry.get_practitioner_patients(bob_id) == []
        assert ledger.balance_of(MALLORY) == 100

    def test_unknown_practitioner_is_not_found(self, registry: Registry, alice_id: int) -> None:
        with pytest.raises(NotFound):
            registry.link_patient_to_practitioner(alice_id, 5, ALICE, 0)

    def test_zero_identity_practitioner_is_not_found(
        self, registry: Registry, alice_id: int
    ) -> None:
        practitioner_id = registry.register_practitioner("Nobody", ZERO_IDENTITY, "", ADMIN)

        with pytest.raises(NotFound):
            registry.link_patient_to_practitioner(alice_id, practitioner_id, ALICE, 0)

        assert registry.get_practitioner_patients(practitioner_id) == []

    def test_negative_amount_is_rejected(
        self, registry: Registry, alice_id: int, bob_id: int
    ) -> None:
        with pytest.raises(InvalidArgument):
            registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, -1)

        assert registry.get_practitioner_patients(bob_id) == []

    @pytest.mark.parametrize("amount", [2.5, True, "5"])
    def test_non_integer_amount_leaves_registry_and_ledger_unchanged(
        self,
        registry: Registry,
        sink: InMemoryEventSink,
        ledger: InMemoryLedger,
        alice_id: int,
        bob_id: int,
        amount: object,
    ) -> None:
        ledger.deposit(ALICE, 10)
        before = registry.snapshot()

        with pytest.raises(InvalidArgument):
            registry.link_patient_to_practitioner(
                alice_id, bob_id, ALICE, amount  # type: ignore[arg-type]
            )

        assert registry.snapshot().model_dump() == before.model_dump()
        assert ledger.balance_of(ALICE) == 10
        assert ledger.balance_of(DR_BOB) == 0
        assert sink.of_type("patient_added_to_practitioner") == []

    def test_emits_patient_added_event(
        self,
        registry: Registry,
        sink: InMemoryEventSink,
        ledger: InMemoryLedger,
        alice_id: int,
        bob_id: int,
    ) -> None:
        ledger.deposit(ALICE, 25)
        registry.link_patient_to_practitioner(alice_id, bob_id, ALICE, 25)

        (event,) = sink.of_type("patient_added_to_practitioner")
        assert event.payer == ALICE  # type: ignore[attr-defined]
        assert event.payee == DR_BOB  # type: ignore[attr-defined]
        assert event.amount == 25  # type: ignore[attr-defined]
