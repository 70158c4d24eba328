"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from clubswap.database import Base

if TYPE_CHECKING:
    from clubswap.models.listing import Listing
    from clubswap.models.review import Review
    from clubswap.models.user import User


class Booking(Base):
    """Booking model.

    Pricing columns are a snapshot taken at creation and are never recomputed
    from the listing. Status changes go through ``BookingService`` only.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("start_date < end_date", name="bookings_valid_date_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    listing_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("listings.id"), nullable=False, index=True
    )
    renter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    # Dates
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    rental_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing snapshot
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_rental_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    service_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    security_deposit: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False
    )  # total_rental_fee + service_fee + delivery_fee, deposit excluded
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    owner_earnings: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Payment references
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255))
    stripe_deposit_hold_id: Mapped[str | None] = mapped_column(String(255))
    stripe_refund_id: Mapped[str | None] = mapped_column(String(255))
    payment_released: Mapped[bool] = mapped_column(Boolean, default=False)  # charge given back on decline

    # Deposit lifecycle
    deposit_released: Mapped[bool] = mapped_column(Boolean, default=False)
    deposit_captured: Mapped[bool] = mapped_column(Boolean, default=False)
    deposit_captured_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    deposit_release_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="pending", index=True
    )  # pending, confirmed, in_progress, completed, cancelled, declined

    # Pickup/Delivery
    pickup_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="owner_location"
    )  # owner_location, delivery
    pickup_address: Mapped[str | None] = mapped_column(Text)
    delivery_address: Mapped[str | None] = mapped_column(Text)

    # Messages
    renter_message: Mapped[str | None] = mapped_column(Text)
    owner_decline_reason: Mapped[str | None] = mapped_column(Text)

    # Cancellation
    cancelled_by: Mapped[str | None] = mapped_column(String(10))  # renter, owner
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))

    # Reviews (content lives in the reviews table)
    renter_reviewed: Mapped[bool] = mapped_column(Boolean, default=False)
    owner_reviewed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    listing: Mapped["Listing"] = relationship("Listing", back_populates="bookings")
    renter: Mapped["User"] = relationship("User", foreign_keys=[renter_id])
    owner: Mapped["User"] = relationship("User", foreign_keys=[owner_id])
    reviews: Mapped[list["Review"]] = relationship("Review", back_populates="booking")

    def party_role(self, user_id: uuid.UUID) -> str | None:
        """Return ``"renter"``/``"owner"`` for a participant, else None."""
        if user_id == self.renter_id:
            return "renter"
        if user_id == self.owner_id:
            return "owner"
        return None
