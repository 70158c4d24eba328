"""Double-blind reviews.

A submitted review stays private until the counterpart review exists or the
publication window after the rental's end date has elapsed. Both sides of a
booking are then published by one UPDATE with the same ``published_at``.
"""

import logging
from datetime import UTC, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubswap.config import settings
from clubswap.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateReview,
    InvalidBookingStatus,
    NotFoundError,
    ValidationError,
)
from clubswap.domain.booking_state import BookingStatus
from clubswap.models.booking import Booking
from clubswap.models.listing import Listing
from clubswap.models.review import Review
from clubswap.models.user import User
from clubswap.schemas.review import ReviewCreate
from clubswap.services.notification_service import NotificationService, notification_service
from clubswap.services.rating_service import RatingService, rating_service

logger = logging.getLogger(__name__)

# review_type -> (reviewer role, reviewed-flag on the booking)
REVIEW_TYPES = {
    "listing": ("renter", "renter_reviewed"),
    "renter": ("owner", "owner_reviewed"),
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class ReviewService:
    """Service coordinating review submission and publication."""

    def __init__(
        self,
        ratings: RatingService | None = None,
        notifier: NotificationService | None = None,
        publish_window_days: int | None = None,
        response_lock_hours: int | None = None,
    ) -> None:
        self.ratings = ratings or rating_service
        self.notifier = notifier or notification_service
        self.publish_window = timedelta(
            days=publish_window_days or settings.review_publish_window_days
        )
        self.response_lock = timedelta(
            hours=response_lock_hours or settings.review_response_lock_hours
        )

    async def _get_review(self, db: AsyncSession, review_id: UUID) -> Review:
        review = await db.get(Review, review_id)
        if review is None:
            raise NotFoundError("Review", str(review_id))
        return review

    # ==================== SUBMISSION ====================

    async def submit_review(
        self,
        db: AsyncSession,
        reviewer: User,
        data: ReviewCreate,
        now: datetime | None = None,
    ) -> Review:
        """Submit a review of either type, then run the publication gate.

        Raises:
            NotFoundError: Booking does not exist
            AuthorizationError: Reviewer is not the right party for the review type
            InvalidBookingStatus: Booking is not completed
            DuplicateReview: This reviewer already reviewed the booking
        """
        now = now or _utcnow()
        booking = await db.get(Booking, data.booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(data.booking_id))

        reviewer_role, reviewed_flag = REVIEW_TYPES[data.review_type]
        if booking.party_role(reviewer.id) != reviewer_role:
            raise AuthorizationError(
                "Only the renter can review this listing"
                if reviewer_role == "renter"
                else "Only the owner can review this renter"
            )

        if booking.status != BookingStatus.COMPLETED.value:
            raise InvalidBookingStatus("Can only review completed bookings")

        existing = await db.execute(
            select(Review.id).where(
                Review.booking_id == booking.id,
                Review.reviewer_id == reviewer.id,
                Review.review_type == data.review_type,
            )
        )
        if existing.first() is not None:
            raise DuplicateReview()

        reviewee_id = booking.owner_id if reviewer_role == "renter" else booking.renter_id
        review = Review(
            booking_id=booking.id,
            listing_id=booking.listing_id,
            reviewer_id=reviewer.id,
            reviewee_id=reviewee_id,
            created_at=now,
            **data.model_dump(exclude={"booking_id"}),
        )
        db.add(review)
        setattr(booking, reviewed_flag, True)

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise DuplicateReview() from e

        logger.info(f"Review {review.id} ({data.review_type}) submitted for booking {booking.id}")

        await self.evaluate_publication(db, booking, now)
        await db.refresh(review)
        return review

    async def evaluate_publication(
        self,
        db: AsyncSession,
        booking: Booking,
        now: datetime | None = None,
    ) -> bool:
        """Publish every unpublished review of a booking if the gate is open.

        The gate opens once both review types exist or the publication window
        after ``end_date`` has elapsed. Returns True if anything was published.
        """
        now = now or _utcnow()
        result = await db.execute(select(Review).where(Review.booking_id == booking.id))
        reviews = list(result.scalars().all())
        pending = [r for r in reviews if r.published_at is None]
        if not pending:
            return False

        both_submitted = {r.review_type for r in reviews} >= set(REVIEW_TYPES)
        ended_at = datetime.combine(booking.end_date, time.min, tzinfo=UTC)
        window_elapsed = _as_utc(now) - ended_at >= self.publish_window
        if not (both_submitted or window_elapsed):
            return False

        published = await db.execute(
            update(Review)
            .where(Review.booking_id == booking.id, Review.published_at.is_(None))
            .values(published_at=now)
            .execution_options(synchronize_session=False)
        )
        if published.rowcount == 0:
            # Another submission published them first
            return False

        if any(r.review_type == "listing" for r in pending):
            await self.ratings.update_listing_rating(db, booking.listing_id)
        for reviewee_id in {r.reviewee_id for r in pending}:
            await self.ratings.update_user_rating(db, reviewee_id)
        await db.commit()

        logger.info(
            f"Published {published.rowcount} review(s) for booking {booking.id} "
            f"({'both submitted' if both_submitted else 'window elapsed'})"
        )

        listing = await db.get(Listing, booking.listing_id)
        for reviewee_id in {r.reviewee_id for r in pending}:
            await self.notifier.notify(
                db,
                reviewee_id,
                NotificationService.REVIEW_PUBLISHED,
                {"booking_id": booking.id, "listing_title": listing.title if listing else ""},
            )
        await db.commit()
        return True

    # ==================== OWNER RESPONSES ====================

    async def _get_respondable_review(self, db: AsyncSession, owner: User, review_id: UUID) -> Review:
        review = await self._get_review(db, review_id)
        if review.review_type != "listing":
            raise ValidationError("Only listing reviews can receive an owner response")
        listing = await db.get(Listing, review.listing_id)
        if listing is None or listing.owner_id != owner.id:
            raise AuthorizationError("Only the listing owner can respond to this review")
        if review.published_at is None:
            raise ConflictError("Review is not published yet")
        return review

    async def respond_to_review(
        self,
        db: AsyncSession,
        owner: User,
        review_id: UUID,
        response: str,
        now: datetime | None = None,
    ) -> Review:
        """Attach the owner's single public response to a published listing review."""
        now = now or _utcnow()
        review = await self._get_respondable_review(db, owner, review_id)
        if review.owner_response is not None:
            raise ConflictError("You have already responded to this review")

        result = await db.execute(
            update(Review)
            .where(Review.id == review.id, Review.owner_response.is_(None))
            .values(
                owner_response=response,
                response_created_at=now,
                response_locked_at=now + self.response_lock,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("You have already responded to this review")
        await db.commit()
        await db.refresh(review)
        logger.info(f"Owner response added to review {review.id}")
        return review

    async def update_review_response(
        self,
        db: AsyncSession,
        owner: User,
        review_id: UUID,
        response: str,
        now: datetime | None = None,
    ) -> Review:
        """Edit the owner response until it locks."""
        now = now or _utcnow()
        review = await self._get_respondable_review(db, owner, review_id)
        if review.owner_response is None or review.response_locked_at is None:
            raise ConflictError("There is no response to update")
        if _as_utc(now) >= _as_utc(review.response_locked_at):
            raise ConflictError("This response can no longer be edited")

        review.owner_response = response
        await db.commit()
        await db.refresh(review)
        return review

    # ==================== MODERATION ====================

    async def flag_review(self, db: AsyncSession, user: User, review_id: UUID, reason: str) -> Review:
        """A party to the booking flags a review for moderation."""
        review = await self._get_review(db, review_id)
        booking = await db.get(Booking, review.booking_id)
        if booking is None or booking.party_role(user.id) is None:
            raise AuthorizationError("Only parties to the booking can flag this review")

        if not review.is_flagged:
            review.is_flagged = True
            review.flag_reason = reason
            await db.commit()
            logger.warning(f"Review {review.id} flagged by user {user.id}: {reason}")
        return review

    # ==================== LISTINGS ====================

    async def _list_published(
        self, db: AsyncSession, *criteria, limit: int, offset: int
    ) -> tuple[list[Review], int]:
        query = select(Review).where(
            Review.published_at.is_not(None), Review.is_public.is_(True), *criteria
        )
        total = (
            await db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar_one()
        result = await db.execute(
            query.order_by(Review.published_at.desc(), Review.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_listing_reviews(
        self, db: AsyncSession, listing_id: UUID, limit: int = 10, offset: int = 0
    ) -> tuple[list[Review], int]:
        """Published public reviews of a listing."""
        return await self._list_published(
            db, Review.listing_id == listing_id, Review.review_type == "listing",
            limit=limit, offset=offset,
        )

    async def list_user_reviews(
        self, db: AsyncSession, user_id: UUID, limit: int = 10, offset: int = 0
    ) -> tuple[list[Review], int]:
        """Published public reviews about a user, as owner or renter."""
        return await self._list_published(
            db, Review.reviewee_id == user_id, limit=limit, offset=offset
        )

    # ==================== SCHEDULED ====================

    async def publish_expired_reviews(self, db: AsyncSession, now: datetime | None = None) -> int:
        """Publish lone reviews whose booking's publication window has elapsed."""
        now = now or _utcnow()
        cutoff = (_as_utc(now) - self.publish_window).date()
        result = await db.execute(
            select(Booking)
            .where(
                Booking.id.in_(select(Review.booking_id).where(Review.published_at.is_(None))),
                Booking.end_date <= cutoff,
            )
        )
        published = 0
        for booking in result.scalars().all():
            if await self.evaluate_publication(db, booking, now):
                published += 1
        return published

    async def send_review_reminders(self, db: AsyncSession, now: datetime | None = None) -> int:
        """Remind both parties of bookings completed yesterday to leave a review."""
        now = _as_utc(now or _utcnow())
        day_end = datetime.combine(now.date(), time.min, tzinfo=UTC)
        day_start = day_end - timedelta(days=1)
        result = await db.execute(
            select(Booking, Listing.title)
            .join(Listing, Listing.id == Booking.listing_id)
            .where(
                Booking.status == BookingStatus.COMPLETED.value,
                Booking.completed_at >= day_start,
                Booking.completed_at < day_end,
            )
        )
        sent = 0
        for booking, title in result.all():
            data = {"booking_id": booking.id, "listing_title": title}
            if not booking.renter_reviewed:
                sent += await self.notifier.notify(
                    db, booking.renter_id, NotificationService.REVIEW_REMINDER, data
                )
            if not booking.owner_reviewed:
                sent += await self.notifier.notify(
                    db, booking.owner_id, NotificationService.REVIEW_REMINDER, data
                )
        await db.commit()
        return sent


# Singleton instance
review_service = ReviewService()
