"""Listing database model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from clubswap.database import Base

if TYPE_CHECKING:
    from clubswap.models.booking import Booking
    from clubswap.models.review import Review
    from clubswap.models.user import User


class Listing(Base):
    """Golf equipment listing model."""

    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Basic Info
    title: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    # Club details
    club_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # driver, fairway_wood, hybrid, iron_set, wedge_set, putter, complete_set
    brand: Mapped[str] = mapped_column(String(100), nullable=False)
    handedness: Mapped[str] = mapped_column(String(10), nullable=False)  # right, left
    flex: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # extra_stiff, stiff, regular, senior, ladies
    condition: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # excellent, very_good, good, fair

    # Pricing
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    weekly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    security_deposit: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("100.00"))

    # Location (address is only shared once a booking is confirmed)
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    neighborhood: Mapped[str | None] = mapped_column(String(100))

    # Delivery
    delivery_available: Mapped[bool] = mapped_column(Boolean, default=False)
    delivery_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Rental window
    minimum_rental_days: Mapped[int] = mapped_column(Integer, default=1)
    maximum_rental_days: Mapped[int | None] = mapped_column(Integer)
    advance_notice_days: Mapped[int] = mapped_column(Integer, default=1)

    # Booking settings
    booking_mode: Mapped[str] = mapped_column(String(10), default="request")  # instant, request
    cancellation_policy: Mapped[str] = mapped_column(
        String(20), default="moderate"
    )  # flexible, moderate, strict

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_draft: Mapped[bool] = mapped_column(Boolean, default=False)

    # Aggregates (maintained by the booking core)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    booking_count: Mapped[int] = mapped_column(Integer, default=0)
    average_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=Decimal("0.00"))
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    last_booked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User", back_populates="listings", foreign_keys=[owner_id]
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="listing")
    reviews: Mapped[list["Review"]] = relationship("Review", back_populates="listing")

    @property
    def is_instant(self) -> bool:
        """Whether renters are confirmed without owner approval."""
        return self.booking_mode == "instant"

    @property
    def is_bookable(self) -> bool:
        """Whether the listing currently accepts bookings."""
        return self.is_active and not self.is_draft
