"""
Registry engine for patients, practitioners, treatment images and reviews.

Design principles:
- Owner-gated writes: every mutation starts with an explicit identity check
- All-or-nothing: validation happens before any write, and the single external
  failure (value transfer) is compensated by rolling back the in-memory append
- Serialized writes: one re-entrant lock guards the whole store, readers get copies
- Observable: one event per successful mutation, structured logs for rejections
"""

import threading

import structlog
from pydantic import ValidationError

from treatment_registry.config import AppConfig, get_config
from treatment_registry.domain.errors import (
    AlreadyExists,
    InvalidArgument,
    NotFound,
    TransferFailed,
    Unauthorized,
)
from treatment_registry.domain.events import (
    AfterImageUploaded,
    BeforeImageUploaded,
    PatientAddedToPractitioner,
    PatientRegistered,
    PractitionerRegistered,
    RegistryEvent,
    ReviewSubmitted,
)
from treatment_registry.domain.models import (
    MAX_RATING,
    MIN_RATING,
    ZERO_IDENTITY,
    Identity,
    Image,
    Patient,
    Practitioner,
    RegistrySnapshot,
    Review,
    ReviewListing,
)
from treatment_registry.services.events import (
    EventDispatcher,
    EventSink,
    InMemoryEventSink,
    StructlogEventSink,
)
from treatment_registry.services.payments import ValueTransfer
from treatment_registry.services.store import SparseTable

logger = structlog.get_logger(__name__)


def next_star_rating(current: int, review_count: int, rating: int) -> int:
    """
    Incremental floor average.

    ``current`` is itself a floored value, so the result drifts from the true
    mean over many reviews. Observable ratings depend on this exact formula.
    """
    if review_count == 0:
        return rating
    return (current * review_count + rating) // (review_count + 1)


class Registry:
    """
    In-memory registry with identity-gated mutations.

    One instance per deployment owns all collections and counters.
    """

    def __init__(
        self,
        ledger: ValueTransfer,
        dispatcher: EventDispatcher | None = None,
        name: str = "treatment-registry",
    ) -> None:
        self.name = name
        self.ledger = ledger
        self.dispatcher = dispatcher or EventDispatcher()
        self.logger = logger.bind(component="registry", registry=name)

        self._patients: SparseTable[Patient] = SparseTable(Patient)
        self._practitioners: SparseTable[Practitioner] = SparseTable(Practitioner)
        self._images: SparseTable[Image] = SparseTable(Image)
        self._reviews: dict[int, list[Review]] = {}
        self._lock = threading.RLock()

    def _authorize(self, owner: Identity, caller: Identity, operation: str, **context) -> None:
        if owner == ZERO_IDENTITY or owner != caller:
            self.logger.warning(
                "mutation_rejected",
                operation=operation,
                reason="unauthorized",
                caller=caller,
                **context,
            )
            raise Unauthorized(f"{caller!r} may not {operation.replace('_', ' ')}")

    def _reject(self, operation: str, message: str, **context) -> InvalidArgument:
        self.logger.warning(
            "mutation_rejected", operation=operation, reason="invalid_argument", **context
        )
        return InvalidArgument(message)

    def _emit(self, event: RegistryEvent) -> None:
        self.dispatcher.emit(event)

    def register_patient(
        self,
        name: str,
        birth_date: str,
        weight: int,
        height: int,
        sex: str,
        caller: Identity,
    ) -> int:
        """Register a patient owned by ``caller`` and return its id."""
        try:
            patient = Patient(
                identity=caller,
                name=name,
                birth_date=birth_date,
                weight=weight,
                height=height,
                sex=sex,
            )
        except ValidationError as e:
            raise self._reject("register_patient", str(e)) from e

        with self._lock:
            try:
                event = PatientRegistered(
                    patient_id=self._patients.counter + 1, identity=caller, name=name
                )
            except ValidationError as e:
                raise self._reject("register_patient", str(e)) from e

            patient_id = self._patients.insert(patient)
            self._emit(event)

        self.logger.info("patient_registered", patient_id=patient_id)
        return patient_id

    def register_practitioner(
        self,
        name: str,
        practitioner_identity: Identity,
        services_offered: str,
        caller: Identity,
    ) -> int:
        """
        Register a practitioner owned by ``practitioner_identity``.

        The owner is taken from the argument, not from ``caller``, so any caller
        can onboard a practitioner on behalf of another identity.
        """
        try:
            practitioner = Practitioner(
                identity=practitioner_identity,
                name=name,
                services_offered=services_offered,
            )
        except ValidationError as e:
            raise self._reject("register_practitioner", str(e)) from e

        with self._lock:
            try:
                event = PractitionerRegistered(
                    practitioner_id=self._practitioners.counter + 1,
                    identity=practitioner_identity,
                    name=name,
                    registered_by=caller,
                )
            except ValidationError as e:
                raise self._reject("register_practitioner", str(e)) from e

            practitioner_id = self._practitioners.insert(practitioner)
            self._reviews[practitioner_id] = []
            self._emit(event)

        self.logger.info(
            "practitioner_registered",
            practitioner_id=practitioner_id,
            on_behalf=practitioner_identity != caller,
        )
        return practitioner_id

    def upload_before_image(self, patient_id: int, before_cid: str, caller: Identity) -> int:
        """Create an image for ``patient_id`` holding its before CID."""
        with self._lock:
            patient = self._patients.get(patient_id)
            self._authorize(patient.identity, caller, "upload_before_image", patient_id=patient_id)
            if not before_cid:
                raise self._reject(
                    "upload_before_image", "before CID must not be empty", patient_id=patient_id
                )

            try:
                image = Image(patient_id=patient_id, before_cid=before_cid)
                event = BeforeImageUploaded(
                    image_id=self._images.counter + 1, patient_id=patient_id, before_cid=before_cid
                )
            except ValidationError as e:
                raise self._reject("upload_before_image", str(e), patient_id=patient_id) from e

            image_id = self._images.insert(image)
            patient.image_ids.append(image_id)
            self._emit(event)

        self.logger.info("before_image_uploaded", image_id=image_id, patient_id=patient_id)
        return image_id

    def upload_after_image(self, image_id: int, after_cid: str, caller: Identity) -> None:
        """Set the after CID of an image. Allowed once per image."""
        with self._lock:
            image = self._images.get(image_id)
            owner = self._patients.get(image.patient_id).identity
            self._authorize(owner, caller, "upload_after_image", image_id=image_id)
            if not after_cid:
                raise self._reject(
                    "upload_after_image", "after CID must not be empty", image_id=image_id
                )
            if image.after_cid or image.is_complete:
                self.logger.warning(
                    "mutation_rejected",
                    operation="upload_after_image",
                    reason="already_exists",
                    image_id=image_id,
                )
                raise AlreadyExists(f"Image {image_id} already has an after image")

            try:
                event = AfterImageUploaded(
                    image_id=image_id, patient_id=image.patient_id, after_cid=after_cid
                )
            except ValidationError as e:
                raise self._reject("upload_after_image", str(e), image_id=image_id) from e

            image.after_cid = after_cid
            image.is_complete = True
            self._emit(event)

        self.logger.info("after_image_uploaded", image_id=image_id)

    def submit_review(
        self,
        patient_id: int,
        practitioner_id: int,
        rating: int,
        comment: str,
        caller: Identity,
    ) -> None:
        """
        Append a review and update the practitioner's running rating.

        Only the practitioner's own identity may submit; the reviewer recorded
        is ``caller``. ``patient_id`` is carried on the event as a label only.
        """
        with self._lock:
            practitioner = self._practitioners.get(practitioner_id)
            self._authorize(
                practitioner.identity, caller, "submit_review", practitioner_id=practitioner_id
            )
            if isinstance(rating, bool) or not isinstance(rating, int):
                raise self._reject(
                    "submit_review", f"Rating must be an integer, got {rating!r}", rating=rating
                )
            if not MIN_RATING <= rating <= MAX_RATING:
                raise self._reject(
                    "submit_review",
                    f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}",
                    rating=rating,
                )

            reviews = self._reviews.get(practitioner_id, [])
            new_rating = next_star_rating(practitioner.star_rating, len(reviews), rating)
            try:
                review = Review(reviewer=caller, rating=rating, comment=comment)
                event = ReviewSubmitted(
                    practitioner_id=practitioner_id,
                    patient_id=patient_id,
                    reviewer=caller,
                    rating=rating,
                    comment=comment,
                    star_rating=new_rating,
                )
            except ValidationError as e:
                raise self._reject("submit_review", str(e)) from e

            reviews = self._reviews.setdefault(practitioner_id, [])
            reviews.append(review)
            practitioner.star_rating = new_rating
            self._emit(event)

        self.logger.info(
            "review_submitted",
            practitioner_id=practitioner_id,
            rating=rating,
            star_rating=new_rating,
            review_count=len(reviews),
        )

    def link_patient_to_practitioner(
        self,
        patient_id: int,
        practitioner_id: int,
        caller: Identity,
        amount: int,
    ) -> None:
        """
        Pay ``amount`` to a practitioner and add the patient to their list.

        Repeated calls append duplicates. A failed transfer leaves the patient
        list exactly as it was.
        """
        with self._lock:
            patient = self._patients.get(patient_id)
            self._authorize(
                patient.identity, caller, "link_patient_to_practitioner", patient_id=patient_id
            )
            practitioner = self._practitioners.get(practitioner_id)
            if practitioner.identity == ZERO_IDENTITY:
                self.logger.warning(
                    "mutation_rejected",
                    operation="link_patient_to_practitioner",
                    reason="not_found",
                    practitioner_id=practitioner_id,
                )
                raise NotFound(f"Practitioner {practitioner_id} not found")
            if isinstance(amount, bool) or not isinstance(amount, int):
                raise self._reject(
                    "link_patient_to_practitioner",
                    f"Amount must be an integer, got {amount!r}",
                    amount=amount,
                )
            if amount < 0:
                raise self._reject(
                    "link_patient_to_practitioner",
                    f"Amount must be non-negative, got {amount}",
                    amount=amount,
                )

            try:
                event = PatientAddedToPractitioner(
                    patient_id=patient_id,
                    practitioner_id=practitioner_id,
                    payer=caller,
                    payee=practitioner.identity,
                    amount=amount,
                )
            except ValidationError as e:
                raise self._reject("link_patient_to_practitioner", str(e)) from e

            practitioner.patient_ids.append(patient_id)
            try:
                result = self.ledger.transfer(caller, practitioner.identity, amount)
                if result.is_err():
                    raise result.unwrap_err()
            except Exception as e:
                practitioner.patient_ids.pop()
                self.logger.warning(
                    "transfer_failed",
                    patient_id=patient_id,
                    practitioner_id=practitioner_id,
                    amount=amount,
                    error=str(e),
                )
                raise TransferFailed(
                    f"Payment of {amount} to practitioner {practitioner_id} failed: {e}"
                ) from e

            self._emit(event)

        self.logger.info(
            "patient_linked", patient_id=patient_id, practitioner_id=practitioner_id, amount=amount
        )

    def get_patient(self, patient_id: int) -> Patient:
        """Raw read; unassigned ids yield a zero-valued patient."""
        with self._lock:
            return self._patients.get(patient_id).model_copy(deep=True)

    def get_practitioner(self, practitioner_id: int) -> Practitioner:
        """Raw read; unassigned ids yield a zero-valued practitioner."""
        with self._lock:
            return self._practitioners.get(practitioner_id).model_copy(deep=True)

    def get_image(self, image_id: int) -> Image:
        """Raw read; unassigned ids yield a zero-valued image."""
        with self._lock:
            return self._images.get(image_id).model_copy()

    def list_patient_ids(self) -> list[int]:
        with self._lock:
            return self._patients.ids()

    def list_practitioner_ids(self) -> list[int]:
        with self._lock:
            return self._practitioners.ids()

    def list_image_ids(self) -> list[int]:
        with self._lock:
            return self._images.ids()

    def get_reviews(self, practitioner_id: int) -> ReviewListing:
        with self._lock:
            return ReviewListing.from_reviews(self._reviews.get(practitioner_id, []))

    def get_review_count(self, practitioner_id: int) -> int:
        with self._lock:
            return len(self._reviews.get(practitioner_id, []))

    def get_patient_by_address(self, identity: Identity) -> tuple[int, Patient]:
        """First patient owned by ``identity``, scanning ids in ascending order."""
        with self._lock:
            for patient_id, patient in self._patients.items():
                if patient.identity == identity:
                    return patient_id, patient.model_copy(deep=True)
        raise NotFound(f"Patient not found for {identity!r}")

    def get_practitioner_by_address(self, identity: Identity) -> tuple[int, Practitioner]:
        """First practitioner owned by ``identity``, scanning ids in ascending order."""
        with self._lock:
            for practitioner_id, practitioner in self._practitioners.items():
                if practitioner.identity == identity:
                    return practitioner_id, practitioner.model_copy(deep=True)
        raise NotFound(f"Practitioner not found for {identity!r}")

    def get_patient_images(self, patient_id: int) -> list[Image]:
        """Images owned by a patient, in upload order."""
        with self._lock:
            patient = self._patients.get(patient_id)
            return [self._images.get(i).model_copy() for i in patient.image_ids]

    def get_practitioner_patients(self, practitioner_id: int) -> list[int]:
        with self._lock:
            return list(self._practitioners.get(practitioner_id).patient_ids)

    def snapshot(self) -> RegistrySnapshot:
        """Consistent copy of every counter and record."""
        with self._lock:
            return RegistrySnapshot(
                patient_count=self._patients.counter,
                practitioner_count=self._practitioners.counter,
                image_count=self._images.counter,
                patients={i: p.model_copy(deep=True) for i, p in self._patients.items()},
                practitioners={
                    i: p.model_copy(deep=True) for i, p in self._practitioners.items()
                },
                images={i: img.model_copy() for i, img in self._images.items()},
                reviews={i: tuple(r) for i, r in self._reviews.items()},
            )


def build_registry(
    config: AppConfig | None = None,
    ledger: ValueTransfer | None = None,
    sinks: list[EventSink] | None = None,
) -> Registry:
    """
    Wire a Registry from configuration.

    Without an explicit ledger an InMemoryLedger is created from
    ``config.ledger``. Without explicit sinks the sink named by
    ``config.registry.event_sink`` is used.
    """
    config = config or get_config()

    if ledger is None:
        from adapters.ledger import InMemoryLedger

        ledger = InMemoryLedger(
            opening_balance=config.ledger.opening_balance, unit=config.ledger.unit
        )

    if sinks is None:
        default_sink: EventSink = (
            InMemoryEventSink()
            if config.registry.event_sink == "memory"
            else StructlogEventSink(sink_name=f"{config.registry.name}-events")
        )
        sinks = [default_sink]

    dispatcher = EventDispatcher(sinks=sinks, enabled=config.registry.emit_events)
    registry = Registry(ledger=ledger, dispatcher=dispatcher, name=config.registry.name)
    logger.info(
        "registry_built",
        registry=config.registry.name,
        environment=config.environment,
        ledger_type=type(ledger).__name__,
        sink_types=[type(s).__name__ for s in sinks],
    )
    return registry
