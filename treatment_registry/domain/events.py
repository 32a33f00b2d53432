"""
Notification events emitted by registry mutations.

One event per successful mutating operation. Events are immutable so sinks
can keep or forward them without copying.
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from treatment_registry.domain.models import Identity


class RegistryEvent(BaseModel):
    """Common envelope for all registry events."""

    model_config = ConfigDict(frozen=True)

    event_type: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PatientRegistered(RegistryEvent):
    event_type: Literal["patient_registered"] = "patient_registered"
    patient_id: int
    identity: Identity
    name: str


class PractitionerRegistered(RegistryEvent):
    event_type: Literal["practitioner_registered"] = "practitioner_registered"
    practitioner_id: int
    identity: Identity
    name: str
    registered_by: Identity


class BeforeImageUploaded(RegistryEvent):
    event_type: Literal["before_image_uploaded"] = "before_image_uploaded"
    image_id: int
    patient_id: int
    before_cid: str


class AfterImageUploaded(RegistryEvent):
    event_type: Literal["after_image_uploaded"] = "after_image_uploaded"
    image_id: int
    patient_id: int
    after_cid: str


class ReviewSubmitted(RegistryEvent):
    """Carries the supplied patient id only as a label; it is never validated."""

    event_type: Literal["review_submitted"] = "review_submitted"
    practitioner_id: int
    patient_id: int
    reviewer: Identity
    rating: int
    comment: str
    star_rating: int = Field(description="Practitioner rating after this review")


class PatientAddedToPractitioner(RegistryEvent):
    event_type: Literal["patient_added_to_practitioner"] = "patient_added_to_practitioner"
    patient_id: int
    practitioner_id: int
    payer: Identity
    payee: Identity
    amount: int
