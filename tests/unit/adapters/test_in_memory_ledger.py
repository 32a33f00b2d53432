"""
Tests for the in-memory ledger adapter.

These tests verify that InMemoryLedger honors the ValueTransfer protocol:
all-or-nothing transfers reported through Result values.
"""

import pytest
from pydantic import ValidationError

from adapters.ledger import InMemoryLedger
from treatment_registry.services import InsufficientFunds, TransferReceipt


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Fixture that provides a funded ledger for testing."""
    ledger = InMemoryLedger(opening_balance=0, unit="credits")
    ledger.deposit("0xa11ce", 50)
    return ledger


def test_initialization() -> None:
    ledger = InMemoryLedger(opening_balance=10, unit="credits")

    assert ledger.balance_of("0xnew") == 10
    assert ledger.unit == "credits"
    assert ledger.receipts == []


def test_negative_opening_balance_is_rejected() -> None:
    with pytest.raises(ValueError):
        InMemoryLedger(opening_balance=-1)


def test_transfer_moves_balance(ledger: InMemoryLedger) -> None:
    result = ledger.transfer("0xa11ce", "0xb0b", 20)

    assert result.is_ok()
    receipt = result.unwrap()
    assert isinstance(receipt, TransferReceipt)
    assert (receipt.sender, receipt.recipient, receipt.amount) == ("0xa11ce", "0xb0b", 20)
    assert ledger.balance_of("0xa11ce") == 30
    assert ledger.balance_of("0xb0b") == 20
    assert ledger.receipts == [receipt]


def test_insufficient_funds_leaves_balances_untouched(ledger: InMemoryLedger) -> None:
    result = ledger.transfer("0xa11ce", "0xb0b", 51)

    assert result.is_err()
    assert isinstance(result.unwrap_err(), InsufficientFunds)
    assert ledger.balance_of("0xa11ce") == 50
    assert ledger.balance_of("0xb0b") == 0
    assert ledger.receipts == []


def test_negative_transfer_is_an_error_result(ledger: InMemoryLedger) -> None:
    result = ledger.transfer("0xa11ce", "0xb0b", -1)

    assert result.is_err()
    assert ledger.balance_of("0xa11ce") == 50


@pytest.mark.parametrize("amount", [2.5, True, "5"])
def test_non_integer_transfer_moves_nothing(ledger: InMemoryLedger, amount: object) -> None:
    result = ledger.transfer("0xa11ce", "0xb0b", amount)  # type: ignore[arg-type]

    assert result.is_err()
    assert ledger.balance_of("0xa11ce") == 50
    assert ledger.balance_of("0xb0b") == 0
    assert ledger.receipts == []


def test_invalid_receipt_is_an_error_result(ledger: InMemoryLedger) -> None:
    result = ledger.transfer("0xa11ce", None, 5)  # type: ignore[arg-type]

    assert result.is_err()
    assert isinstance(result.unwrap_err(), ValidationError)
    assert ledger.balance_of("0xa11ce") == 50
    assert ledger.receipts == []


def test_self_transfer_keeps_balance(ledger: InMemoryLedger) -> None:
    assert ledger.transfer("0xa11ce", "0xa11ce", 50).is_ok()
    assert ledger.balance_of("0xa11ce") == 50


def test_deposit_returns_new_balance(ledger: InMemoryLedger) -> None:
    assert ledger.deposit("0xa11ce", 5) == 55

    with pytest.raises(ValueError):
        ledger.deposit("0xa11ce", -5)
