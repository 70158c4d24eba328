"""Review database model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from clubswap.database import Base

if TYPE_CHECKING:
    from clubswap.models.booking import Booking
    from clubswap.models.listing import Listing
    from clubswap.models.user import User


class Review(Base):
    """Double-blind review. ``listing`` reviews come from the renter, ``renter`` reviews from the owner."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint(
            "booking_id", "reviewer_id", "review_type", name="reviews_one_per_booking_reviewer_type"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=False, index=True
    )
    listing_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("listings.id"), nullable=False, index=True
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    reviewee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    review_type: Mapped[str] = mapped_column(String(10), nullable=False)  # listing, renter

    # Ratings (1-5)
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    communication_rating: Mapped[int | None] = mapped_column(Integer)
    # listing reviews
    equipment_quality_rating: Mapped[int | None] = mapped_column(Integer)
    cleanliness_rating: Mapped[int | None] = mapped_column(Integer)
    accuracy_rating: Mapped[int | None] = mapped_column(Integer)
    value_rating: Mapped[int | None] = mapped_column(Integer)
    # renter reviews
    respect_rating: Mapped[int | None] = mapped_column(Integer)
    timeliness_rating: Mapped[int | None] = mapped_column(Integer)
    condition_on_return_rating: Mapped[int | None] = mapped_column(Integer)

    # Content
    review_text: Mapped[str | None] = mapped_column(Text)
    private_feedback: Mapped[str | None] = mapped_column(Text)  # Only visible to the reviewee

    # Owner response
    owner_response: Mapped[str | None] = mapped_column(Text)
    response_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    response_locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Moderation
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False)
    flag_reason: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="reviews")
    listing: Mapped["Listing"] = relationship("Listing", back_populates="reviews")
    reviewer: Mapped["User"] = relationship("User", foreign_keys=[reviewer_id])
    reviewee: Mapped["User"] = relationship("User", foreign_keys=[reviewee_id])

    @property
    def is_published(self) -> bool:
        """Whether the publication gate has released this review."""
        return self.published_at is not None
