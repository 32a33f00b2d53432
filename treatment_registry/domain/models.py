"""
Domain models for the treatment registry.

These models represent the records the registry owns. They are plain Pydantic
models so the registry can hand out validated copies to readers, while the
store itself mutates its own instances under lock.
"""

from pydantic import BaseModel, ConfigDict, Field

# Identities are opaque, pre-authenticated strings compared only for equality.
Identity = str

# Unset owning identity; never authorizes a mutation.
ZERO_IDENTITY: Identity = ""

MIN_RATING = 0
MAX_RATING = 5


class Patient(BaseModel):
    """A registered patient and the images they own."""

    identity: Identity = ZERO_IDENTITY
    name: str = ""
    birth_date: str = ""
    weight: int = 0
    height: int = 0
    sex: str = ""
    image_ids: list[int] = Field(default_factory=list)


class Practitioner(BaseModel):
    """A registered practitioner with a running star rating."""

    identity: Identity = ZERO_IDENTITY
    name: str = ""
    star_rating: int = Field(default=0, ge=MIN_RATING, le=MAX_RATING)
    services_offered: str = ""
    patient_ids: list[int] = Field(default_factory=list)


class Image(BaseModel):
    """Before/after content identifiers for one treatment."""

    patient_id: int = 0
    before_cid: str = ""
    after_cid: str = ""
    is_complete: bool = False

    def as_tuple(self) -> tuple[int, str, str, bool]:
        return (self.patient_id, self.before_cid, self.after_cid, self.is_complete)


class Review(BaseModel):
    """Single append-only review entry."""

    model_config = ConfigDict(frozen=True)

    reviewer: Identity
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    comment: str = ""


class ReviewListing(BaseModel):
    """Reviews for one practitioner as three index-aligned sequences."""

    model_config = ConfigDict(frozen=True)

    reviewers: tuple[Identity, ...] = ()
    ratings: tuple[int, ...] = ()
    comments: tuple[str, ...] = ()

    @classmethod
    def from_reviews(cls, reviews: list[Review]) -> "ReviewListing":
        return cls(
            reviewers=tuple(r.reviewer for r in reviews),
            ratings=tuple(r.rating for r in reviews),
            comments=tuple(r.comment for r in reviews),
        )

    def __len__(self) -> int:
        return len(self.reviewers)


class RegistrySnapshot(BaseModel):
    """Consistent point-in-time copy of the whole registry."""

    model_config = ConfigDict(frozen=True)

    patient_count: int
    practitioner_count: int
    image_count: int
    patients: dict[int, Patient]
    practitioners: dict[int, Practitioner]
    images: dict[int, Image]
    reviews: dict[int, tuple[Review, ...]]
