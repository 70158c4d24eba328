"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookingBase(BaseModel):
    """Base booking schema."""

    listing_id: UUID
    start_date: date
    end_date: date
    pickup_method: Literal["owner_location", "delivery"] = "owner_location"

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: date, info) -> date:
        start_date = info.data.get("start_date")
        if start_date and v <= start_date:
            raise ValueError("end_date must be after start_date")
        return v


class BookingCreate(BookingBase):
    """Schema for creating a booking."""

    delivery_address: str | None = Field(None, max_length=500)
    renter_message: str | None = Field(None, max_length=500)
    payment_method_id: str = Field(..., min_length=1, max_length=255)


class BookingQuoteRequest(BookingBase):
    """Schema for pricing a booking without creating it."""


class BookingQuote(BaseModel):
    """Price breakdown for a prospective booking."""

    listing_id: UUID
    start_date: date
    end_date: date
    rental_days: int
    daily_rate: Decimal
    weekly_rate: Decimal | None
    total_rental_fee: Decimal
    service_fee: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    security_deposit: Decimal
    platform_fee: Decimal
    owner_earnings: Decimal
    available: bool
    cancellation_policy: str
    cancellation_policy_description: str


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    listing_id: UUID
    renter_id: UUID
    owner_id: UUID

    # Dates
    start_date: date
    end_date: date
    rental_days: int

    # Pricing
    daily_rate: Decimal
    total_rental_fee: Decimal
    service_fee: Decimal
    security_deposit: Decimal
    delivery_fee: Decimal
    total_amount: Decimal

    payment_released: bool

    # Deposit
    deposit_released: bool
    deposit_captured: bool
    deposit_captured_amount: Decimal
    deposit_release_date: datetime | None

    # Status
    status: str

    # Pickup/Delivery
    pickup_method: str
    pickup_address: str | None
    delivery_address: str | None

    # Messages
    renter_message: str | None
    owner_decline_reason: str | None

    # Cancellation
    cancelled_by: str | None
    cancellation_reason: str | None
    refund_amount: Decimal

    # Reviews
    renter_reviewed: bool
    owner_reviewed: bool

    # Owner-only (cleared for renters)
    platform_fee: Decimal | None = None
    owner_earnings: Decimal | None = None

    # Timestamps
    created_at: datetime | None
    confirmed_at: datetime | None
    started_at: datetime | None
    cancelled_at: datetime | None
    completed_at: datetime | None


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingDeclineRequest(BaseModel):
    """Schema for owner declining a booking."""

    reason: str | None = Field(None, max_length=500)


class BookingCancelRequest(BaseModel):
    """Schema for canceling a booking."""

    reason: str | None = Field(None, max_length=1000)


class DepositClaimRequest(BaseModel):
    """Schema for owner claiming part or all of the security deposit."""

    amount: Decimal | None = Field(None, gt=0, decimal_places=2)
    reason: str = Field(..., min_length=10, max_length=1000)
