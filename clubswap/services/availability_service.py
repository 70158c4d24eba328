"""Listing availability checks.

Only confirmed and in-progress bookings hold a listing's dates. Two ranges
conflict when ``existing.start_date <= end_date`` and
``existing.end_date >= start_date``.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubswap.domain.booking_state import BLOCKING_STATUSES
from clubswap.models.booking import Booking
from clubswap.models.listing import Listing

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "bookings_no_overlap_per_listing"


def is_overlap_violation(error: IntegrityError) -> bool:
    """Whether an IntegrityError came from the booking exclusion constraint."""
    return OVERLAP_CONSTRAINT in str(error.orig)


class AvailabilityService:
    """Service answering whether a listing is free for a date range."""

    def __init__(self) -> None:
        # Entries live only while someone holds or waits for the lock
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._holders: Counter[UUID] = Counter()

    async def find_conflicts(
        self,
        db: AsyncSession,
        listing_id: UUID,
        start_date: date,
        end_date: date,
        exclude_booking_id: UUID | None = None,
    ) -> list[Booking]:
        """Return bookings holding any day of the requested range."""
        query = select(Booking).where(
            Booking.listing_id == listing_id,
            Booking.status.in_([s.value for s in BLOCKING_STATUSES]),
            Booking.start_date <= end_date,
            Booking.end_date >= start_date,
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)

        result = await db.execute(query.order_by(Booking.start_date))
        return list(result.scalars().all())

    async def is_available(
        self,
        db: AsyncSession,
        listing_id: UUID,
        start_date: date,
        end_date: date,
        exclude_booking_id: UUID | None = None,
    ) -> bool:
        conflicts = await self.find_conflicts(
            db, listing_id, start_date, end_date, exclude_booking_id
        )
        if conflicts:
            logger.info(
                f"Listing {listing_id} unavailable {start_date}..{end_date}: "
                f"{len(conflicts)} conflicting booking(s)"
            )
        return not conflicts

    @asynccontextmanager
    async def listing_lock(self, db: AsyncSession, listing_id: UUID) -> AsyncIterator[None]:
        """Serialize availability check + write for one listing.

        In-process writers queue on an asyncio.Lock; on PostgreSQL the
        listing row is also locked FOR UPDATE until the caller commits, which
        serializes writers in other processes. The exclusion constraint on
        bookings backs both.
        """
        lock = self._locks.setdefault(listing_id, asyncio.Lock())
        self._holders[listing_id] += 1
        try:
            async with lock:
                if db.get_bind().dialect.name == "postgresql":
                    await db.execute(
                        select(Listing.id).where(Listing.id == listing_id).with_for_update()
                    )
                yield
        finally:
            self._holders[listing_id] -= 1
            if not self._holders[listing_id]:
                del self._holders[listing_id]
                del self._locks[listing_id]


# Singleton instance
availability_service = AvailabilityService()
