"""Booking endpoints."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from clubswap.api.deps import CurrentUser, DbSession, get_booking_service
from clubswap.models.booking import Booking
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
from clubswap.services.booking_service import BookingService

router = APIRouter()

Bookings = Annotated[BookingService, Depends(get_booking_service)]


def _present(booking: Booking, user_id: UUID) -> BookingResponse:
    """Only owners see the platform fee and their earnings."""
    response = BookingResponse.model_validate(booking)
    if booking.owner_id != user_id:
        response.platform_fee = None
        response.owner_earnings = None
    return response


@router.post("/quote", response_model=BookingQuote)
async def quote_booking(
    data: BookingQuoteRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingQuote:
    """Price a booking without creating it."""
    return await service.quote(db, data.listing_id, data.start_date, data.end_date, data.pickup_method)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    """Create a booking; payment and deposit are authorized up front."""
    booking = await service.create_booking(db, current_user, data)
    return _present(booking, current_user.id)


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
    role: Literal["renter", "owner"] | None = None,
    booking_status: Literal[
        "pending", "confirmed", "in_progress", "completed", "cancelled", "declined"
    ] | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> BookingListResponse:
    """List the current user's bookings."""
    bookings, total = await service.list_bookings(
        db, current_user, role=role, status=booking_status, page=page, page_size=page_size
    )
    return BookingListResponse(
        bookings=[_present(b, current_user.id) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    booking = await service.get_booking_for_party(db, booking_id, current_user)
    return _present(booking, current_user.id)


@router.post("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    """Owner approves a pending request."""
    booking = await service.approve_booking(db, booking_id, current_user)
    return _present(booking, current_user.id)


@router.post("/{booking_id}/decline", response_model=BookingResponse)
async def decline_booking(
    booking_id: UUID,
    data: BookingDeclineRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    """Owner declines a pending request."""
    booking = await service.decline_booking(db, booking_id, current_user, data.reason)
    return _present(booking, current_user.id)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    data: BookingCancelRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    """Cancel a booking. Refund follows the listing's cancellation policy."""
    booking = await service.cancel_booking(db, booking_id, current_user, data.reason)
    return _present(booking, current_user.id)


@router.post("/{booking_id}/start", response_model=BookingResponse)
async def start_booking(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    """Owner hands over the equipment."""
    booking = await service.start_booking(db, booking_id, current_user)
    return _present(booking, current_user.id)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    """Owner confirms the equipment was returned."""
    booking = await service.complete_booking(db, booking_id, current_user)
    return _present(booking, current_user.id)


@router.post("/{booking_id}/deposit-claim", response_model=BookingResponse)
async def claim_deposit(
    booking_id: UUID,
    data: DepositClaimRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Bookings,
) -> BookingResponse:
    """Owner captures part or all of the security deposit."""
    booking = await service.claim_deposit(db, booking_id, current_user, data.amount, data.reason)
    return _present(booking, current_user.id)
