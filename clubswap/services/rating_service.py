"""Rating aggregation.

Aggregates are always recomputed from the full published review set, so
re-running an update is harmless.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clubswap.models.listing import Listing
from clubswap.models.review import Review
from clubswap.models.user import User

logger = logging.getLogger(__name__)


def average(total: int | None, count: int) -> Decimal:
    """Mean of integer ratings rounded half-up to 2 decimals (0.00 when empty)."""
    if not count:
        return Decimal("0.00")
    return (Decimal(total or 0) / Decimal(count)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class RatingService:
    """Service recomputing listing and user ratings."""

    async def _aggregate(self, db: AsyncSession, *criteria) -> tuple[Decimal, int]:
        result = await db.execute(
            select(func.sum(Review.overall_rating), func.count(Review.id)).where(
                Review.published_at.is_not(None), *criteria
            )
        )
        total, count = result.one()
        return average(total, count), count

    async def update_listing_rating(self, db: AsyncSession, listing_id: UUID) -> tuple[Decimal, int]:
        """Recompute a listing's average from its published listing reviews."""
        avg, count = await self._aggregate(
            db, Review.listing_id == listing_id, Review.review_type == "listing"
        )
        await db.execute(
            update(Listing)
            .where(Listing.id == listing_id)
            .values(average_rating=avg, total_reviews=count)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Listing {listing_id} rating: {avg} ({count} reviews)")
        return avg, count

    async def update_user_rating(self, db: AsyncSession, user_id: UUID) -> tuple[Decimal, int]:
        """Recompute a user's overall rating from every published review about them."""
        avg, count = await self._aggregate(db, Review.reviewee_id == user_id)
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(overall_rating=avg, total_reviews=count)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"User {user_id} rating: {avg} ({count} reviews)")
        return avg, count


# Singleton instance
rating_service = RatingService()
