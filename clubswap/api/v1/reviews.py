"""Review endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from clubswap.api.deps import CurrentUser, DbSession, get_review_service
from clubswap.core.exceptions import NotFoundError
from clubswap.models.listing import Listing
from clubswap.models.user import User
from clubswap.schemas.review import (
    OwnerResponseRequest,
    ReviewCreate,
    ReviewFlagRequest,
    ReviewListResponse,
    ReviewResponse,
    ReviewSubmitResponse,
)
from clubswap.services.review_service import ReviewService

router = APIRouter()

Reviews = Annotated[ReviewService, Depends(get_review_service)]


@router.post("/", response_model=ReviewSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_review(
    data: ReviewCreate,
    current_user: CurrentUser,
    db: DbSession,
    service: Reviews,
) -> ReviewSubmitResponse:
    """Submit a review for a completed booking.

    The review stays hidden until the other party reviews too or the
    publication window closes.
    """
    review = await service.submit_review(db, current_user, data)
    return ReviewSubmitResponse(
        review_id=review.id,
        published=review.published_at is not None,
        published_at=review.published_at,
    )


@router.get("/listings/{listing_id}", response_model=ReviewListResponse)
async def get_listing_reviews(
    listing_id: UUID,
    db: DbSession,
    service: Reviews,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=50),
) -> ReviewListResponse:
    """Get published reviews for a listing."""
    listing = await db.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError("Listing", str(listing_id))

    reviews, total = await service.list_listing_reviews(
        db, listing_id, limit=page_size, offset=(page - 1) * page_size
    )
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=total,
        average_rating=float(listing.average_rating or 0),
    )


@router.get("/users/{user_id}", response_model=ReviewListResponse)
async def get_user_reviews(
    user_id: UUID,
    db: DbSession,
    service: Reviews,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=50),
) -> ReviewListResponse:
    """Get published reviews about a user."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", str(user_id))

    reviews, total = await service.list_user_reviews(
        db, user_id, limit=page_size, offset=(page - 1) * page_size
    )
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=total,
        average_rating=float(user.overall_rating or 0),
    )


@router.post("/{review_id}/response", response_model=ReviewResponse)
async def respond_to_review(
    review_id: UUID,
    data: OwnerResponseRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Reviews,
) -> ReviewResponse:
    """Listing owner responds publicly to a review (once)."""
    review = await service.respond_to_review(db, current_user, review_id, data.response)
    return ReviewResponse.model_validate(review)


@router.patch("/{review_id}/response", response_model=ReviewResponse)
async def update_review_response(
    review_id: UUID,
    data: OwnerResponseRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Reviews,
) -> ReviewResponse:
    """Edit the owner response before it locks."""
    review = await service.update_review_response(db, current_user, review_id, data.response)
    return ReviewResponse.model_validate(review)


@router.post("/{review_id}/flag", status_code=status.HTTP_204_NO_CONTENT)
async def flag_review(
    review_id: UUID,
    data: ReviewFlagRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Reviews,
) -> None:
    """Flag a review for moderation."""
    await service.flag_review(db, current_user, review_id, data.reason)
