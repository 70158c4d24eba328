"""Rating aggregation."""

from datetime import UTC, date, datetime
from decimal import Decimal

from clubswap.models.review import Review
from clubswap.services.rating_service import RatingService, average
from tests.factories import make_booking, make_listing, make_user

PUBLISHED = datetime(2026, 6, 20, tzinfo=UTC)


async def add_review(db, booking, reviewer, reviewee, review_type, overall, published=True) -> Review:
    review = Review(
        booking_id=booking.id,
        listing_id=booking.listing_id,
        reviewer_id=reviewer.id,
        reviewee_id=reviewee.id,
        review_type=review_type,
        overall_rating=overall,
        published_at=PUBLISHED if published else None,
    )
    db.add(review)
    await db.commit()
    return review


def test_average():
    assert average(14, 3) == Decimal("4.67")
    assert average(9, 2) == Decimal("4.50")
    assert average(None, 0) == Decimal("0.00")


async def test_listing_rating_counts_published_listing_reviews_only(db):
    owner = await make_user(db)
    listing = await make_listing(db, owner)
    service = RatingService()
    for overall, published in ((5, True), (4, True), (5, True), (1, False)):
        renter = await make_user(db)
        booking = await make_booking(db, listing, renter, date(2026, 5, 1), date(2026, 5, 3), status="completed")
        await add_review(db, booking, renter, owner, "listing", overall, published)
        # Owner's review of the renter never counts toward the listing
        await add_review(db, booking, owner, renter, "renter", 1)

    avg, count = await service.update_listing_rating(db, listing.id)
    await db.commit()

    assert (avg, count) == (Decimal("4.67"), 3)
    await db.refresh(listing)
    assert listing.average_rating == Decimal("4.67")
    assert listing.total_reviews == 3


async def test_user_rating_spans_both_roles(db):
    person = await make_user(db)
    other = await make_user(db)
    own_listing = await make_listing(db, person)
    their_listing = await make_listing(db, other)
    as_owner = await make_booking(db, own_listing, other, date(2026, 5, 1), date(2026, 5, 3), status="completed")
    as_renter = await make_booking(db, their_listing, person, date(2026, 5, 5), date(2026, 5, 7), status="completed")
    await add_review(db, as_owner, other, person, "listing", 3)
    await add_review(db, as_renter, other, person, "renter", 5)

    avg, count = await RatingService().update_user_rating(db, person.id)

    assert (avg, count) == (Decimal("4.00"), 2)


async def test_update_is_idempotent(db):
    owner = await make_user(db)
    renter = await make_user(db)
    listing = await make_listing(db, owner)
    booking = await make_booking(db, listing, renter, date(2026, 5, 1), date(2026, 5, 3), status="completed")
    await add_review(db, booking, renter, owner, "listing", 4)
    service = RatingService()

    first = await service.update_listing_rating(db, listing.id)
    second = await service.update_listing_rating(db, listing.id)
    await db.commit()

    assert first == second == (Decimal("4.00"), 1)


async def test_no_reviews_resets_to_zero(db):
    owner = await make_user(db, overall_rating=Decimal("3.50"), total_reviews=2)

    avg, count = await RatingService().update_user_rating(db, owner.id)
    await db.commit()

    await db.refresh(owner)
    assert (avg, count) == (Decimal("0.00"), 0)
    assert owner.overall_rating == Decimal("0.00")
    assert owner.total_reviews == 0
