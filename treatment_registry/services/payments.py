"""
Value-transfer seam used when a patient pays to be linked to a practitioner.

The registry only needs a synchronous transfer call that reports success or
failure; ledgers, payment processors and test doubles all fit behind it.
"""

from datetime import UTC, datetime
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from treatment_registry.domain.models import Identity
from treatment_registry.services.results import Result


class TransferReceipt(BaseModel):
    """Proof that a transfer completed."""

    model_config = ConfigDict(frozen=True)

    sender: Identity
    recipient: Identity
    amount: int = Field(ge=0)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class InsufficientFunds(Exception):
    """Sender balance does not cover the requested amount."""


class ValueTransfer(Protocol):
    """
    Protocol for the external payments collaborator.

    Expected failures come back as ``Result.err``; anything raised is treated
    the same way by the registry.
    """

    def transfer(
        self, sender: Identity, recipient: Identity, amount: int
    ) -> Result[TransferReceipt, Exception]: ...
