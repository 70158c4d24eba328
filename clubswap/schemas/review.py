"""Review-related Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

LISTING_SUB_RATINGS = (
    "equipment_quality_rating",
    "cleanliness_rating",
    "communication_rating",
    "accuracy_rating",
    "value_rating",
)
RENTER_SUB_RATINGS = (
    "communication_rating",
    "respect_rating",
    "timeliness_rating",
    "condition_on_return_rating",
)


class ReviewCreate(BaseModel):
    """Schema for submitting a review.

    ``listing`` reviews are written by the renter, ``renter`` reviews by the
    owner. Each type requires its own sub-ratings.
    """

    booking_id: UUID
    review_type: Literal["listing", "renter"]
    overall_rating: int = Field(..., ge=1, le=5)

    # listing reviews
    equipment_quality_rating: int | None = Field(None, ge=1, le=5)
    cleanliness_rating: int | None = Field(None, ge=1, le=5)
    accuracy_rating: int | None = Field(None, ge=1, le=5)
    value_rating: int | None = Field(None, ge=1, le=5)
    # both
    communication_rating: int | None = Field(None, ge=1, le=5)
    # renter reviews
    respect_rating: int | None = Field(None, ge=1, le=5)
    timeliness_rating: int | None = Field(None, ge=1, le=5)
    condition_on_return_rating: int | None = Field(None, ge=1, le=5)

    review_text: str | None = Field(None, min_length=50, max_length=500)
    private_feedback: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_sub_ratings(self) -> "ReviewCreate":
        required = LISTING_SUB_RATINGS if self.review_type == "listing" else RENTER_SUB_RATINGS
        missing = [name for name in required if getattr(self, name) is None]
        if missing:
            raise ValueError(f"Missing ratings for {self.review_type} review: {', '.join(missing)}")

        other = RENTER_SUB_RATINGS if self.review_type == "listing" else LISTING_SUB_RATINGS
        extra = [name for name in other if name not in required and getattr(self, name) is not None]
        if extra:
            raise ValueError(f"Ratings not allowed for {self.review_type} review: {', '.join(extra)}")
        return self


class OwnerResponseRequest(BaseModel):
    """Schema for an owner's public response to a review."""

    response: str = Field(..., min_length=10, max_length=500)


class ReviewFlagRequest(BaseModel):
    """Schema for flagging a review for moderation."""

    reason: str = Field(..., min_length=10, max_length=500)


class ReviewResponse(BaseModel):
    """Published review. Private feedback is never included."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    listing_id: UUID
    reviewer_id: UUID
    reviewee_id: UUID
    review_type: str

    overall_rating: int
    communication_rating: int | None
    equipment_quality_rating: int | None
    cleanliness_rating: int | None
    accuracy_rating: int | None
    value_rating: int | None
    respect_rating: int | None
    timeliness_rating: int | None
    condition_on_return_rating: int | None

    review_text: str | None
    owner_response: str | None
    response_created_at: datetime | None

    created_at: datetime | None
    published_at: datetime | None


class ReviewSubmitResponse(BaseModel):
    """Result of a review submission."""

    review_id: UUID
    published: bool
    published_at: datetime | None


class ReviewListResponse(BaseModel):
    """Schema for paginated review list."""

    reviews: list[ReviewResponse]
    total: int
    average_rating: float | None = None
