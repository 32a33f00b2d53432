"""
In-memory ledger implementing the ValueTransfer protocol.

Stands in for an external payments service: integer balances per identity,
all-or-nothing transfers, and a history of completed receipts.
"""

import threading

import structlog
from pydantic import ValidationError

from treatment_registry.domain.models import Identity
from treatment_registry.services.payments import InsufficientFunds, TransferReceipt
from treatment_registry.services.results import Result

logger = structlog.get_logger(__name__)


class InMemoryLedger:
    """
    Balance book with synchronous transfers.

    Accounts that were never seen start at ``opening_balance``.
    """

    def __init__(self, opening_balance: int = 0, unit: str = "units") -> None:
        if opening_balance < 0:
            raise ValueError("opening_balance must be non-negative")
        self.opening_balance = opening_balance
        self.unit = unit
        self.receipts: list[TransferReceipt] = []
        self._balances: dict[Identity, int] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="in_memory_ledger", unit=unit)

    def balance_of(self, account: Identity) -> int:
        with self._lock:
            return self._balances.get(account, self.opening_balance)

    def deposit(self, account: Identity, amount: int) -> int:
        """Credit an account and return its new balance."""
        if amount < 0:
            raise ValueError("deposit amount must be non-negative")
        with self._lock:
            balance = self._balances.get(account, self.opening_balance) + amount
            self._balances[account] = balance
        self.logger.info("deposit_recorded", account=account, amount=amount, balance=balance)
        return balance

    def transfer(
        self, sender: Identity, recipient: Identity, amount: int
    ) -> Result[TransferReceipt, Exception]:
        if isinstance(amount, bool) or not isinstance(amount, int):
            return Result.err(TypeError(f"Transfer amount must be an integer, got {amount!r}"))
        if amount < 0:
            return Result.err(ValueError(f"Transfer amount must be non-negative, got {amount}"))
        try:
            receipt = TransferReceipt(sender=sender, recipient=recipient, amount=amount)
        except ValidationError as e:
            return Result.err(e)

        with self._lock:
            sender_balance = self._balances.get(sender, self.opening_balance)
            if sender_balance < amount:
                self.logger.warning(
                    "transfer_rejected",
                    sender=sender,
                    recipient=recipient,
                    amount=amount,
                    balance=sender_balance,
                )
                return Result.err(
                    InsufficientFunds(
                        f"{sender!r} holds {sender_balance} {self.unit}, needs {amount}"
                    )
                )

            self._balances[sender] = sender_balance - amount
            recipient_balance = self._balances.get(recipient, self.opening_balance)
            self._balances[recipient] = recipient_balance + amount
            self.receipts.append(receipt)

        self.logger.info("transfer_completed", sender=sender, recipient=recipient, amount=amount)
        return Result.ok(receipt)
