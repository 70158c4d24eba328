"""Listing availability."""

import asyncio
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from clubswap.services.availability_service import AvailabilityService, is_overlap_violation
from tests.factories import make_booking, make_listing, make_user


@pytest.fixture
async def listing_with_booking(db):
    owner = await make_user(db)
    renter = await make_user(db)
    listing = await make_listing(db, owner)
    booking = await make_booking(db, listing, renter, date(2026, 6, 10), date(2026, 6, 15))
    return listing, booking, renter


class TestIsAvailable:
    @pytest.mark.parametrize(
        "start, end, available",
        [
            (date(2026, 6, 1), date(2026, 6, 9), True),
            (date(2026, 6, 1), date(2026, 6, 10), False),
            (date(2026, 6, 12), date(2026, 6, 13), False),
            (date(2026, 6, 8), date(2026, 6, 20), False),
            (date(2026, 6, 15), date(2026, 6, 18), False),
            (date(2026, 6, 16), date(2026, 6, 20), True),
        ],
    )
    async def test_overlap_is_inclusive(self, db, listing_with_booking, start, end, available):
        listing, _, _ = listing_with_booking
        service = AvailabilityService()
        assert await service.is_available(db, listing.id, start, end) is available

    async def test_only_confirmed_and_in_progress_block(self, db, listing_with_booking):
        listing, booking, renter = listing_with_booking
        service = AvailabilityService()
        for status in ("pending", "cancelled", "declined", "completed"):
            booking.status = status
            await db.commit()
            assert await service.is_available(db, listing.id, date(2026, 6, 11), date(2026, 6, 12))

        booking.status = "in_progress"
        await db.commit()
        assert not await service.is_available(db, listing.id, date(2026, 6, 11), date(2026, 6, 12))

    async def test_exclude_booking(self, db, listing_with_booking):
        listing, booking, _ = listing_with_booking
        service = AvailabilityService()
        assert await service.is_available(
            db, listing.id, booking.start_date, booking.end_date, exclude_booking_id=booking.id
        )

    async def test_other_listing_unaffected(self, db, listing_with_booking):
        listing, _, _ = listing_with_booking
        other = await make_listing(db, await make_user(db))
        service = AvailabilityService()
        assert await service.is_available(db, other.id, date(2026, 6, 10), date(2026, 6, 15))

    async def test_find_conflicts(self, db, listing_with_booking):
        listing, booking, _ = listing_with_booking
        conflicts = await AvailabilityService().find_conflicts(
            db, listing.id, date(2026, 6, 14), date(2026, 6, 16)
        )
        assert [b.id for b in conflicts] == [booking.id]


async def test_listing_lock_is_reentrant_per_listing_sequentially(db, listing_with_booking):
    listing, _, _ = listing_with_booking
    service = AvailabilityService()
    async with service.listing_lock(db, listing.id):
        assert service._locks[listing.id].locked()
    async with service.listing_lock(db, listing.id):
        pass
    assert service._locks == {}


async def test_listing_lock_entry_outlives_waiters_only(db, listing_with_booking):
    """The lock entry stays while a second writer waits and is dropped after both."""
    listing, _, _ = listing_with_booking
    service = AvailabilityService()
    order = []

    async def writer(name, hold):
        async with service.listing_lock(db, listing.id):
            order.append(f"{name}-in")
            await hold.wait()
            order.append(f"{name}-out")

    first_done, second_done = asyncio.Event(), asyncio.Event()
    first = asyncio.create_task(writer("first", first_done))
    await asyncio.sleep(0)
    second = asyncio.create_task(writer("second", second_done))
    await asyncio.sleep(0)

    assert service._holders[listing.id] == 2
    first_done.set()
    second_done.set()
    await asyncio.gather(first, second)

    assert order == ["first-in", "first-out", "second-in", "second-out"]
    assert service._locks == {}
    assert not service._holders


def test_is_overlap_violation():
    exclusion = IntegrityError(
        "INSERT INTO bookings ...",
        {},
        Exception('conflicting key value violates exclusion constraint "bookings_no_overlap_per_listing"'),
    )
    other = IntegrityError("INSERT INTO bookings ...", {}, Exception("NOT NULL constraint failed"))
    assert is_overlap_violation(exclusion)
    assert not is_overlap_violation(other)
