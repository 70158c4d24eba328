"""Pydantic schemas for request/response validation."""

from clubswap.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingDeclineRequest,
    BookingListResponse,
    BookingQuote,
    BookingQuoteRequest,
    BookingResponse,
    DepositClaimRequest,
)
from clubswap.schemas.review import (
    OwnerResponseRequest,
    ReviewCreate,
    ReviewFlagRequest,
    ReviewListResponse,
    ReviewResponse,
    ReviewSubmitResponse,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingQuoteRequest",
    "BookingQuote",
    "BookingResponse",
    "BookingListResponse",
    "BookingDeclineRequest",
    "BookingCancelRequest",
    "DepositClaimRequest",
    # Review
    "ReviewCreate",
    "OwnerResponseRequest",
    "ReviewFlagRequest",
    "ReviewResponse",
    "ReviewSubmitResponse",
    "ReviewListResponse",
]
