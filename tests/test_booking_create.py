"""Booking creation: validation, pricing snapshot, payment authorization, races."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from clubswap.core.exceptions import (
    ListingNotAvailable,
    NotFoundError,
    PaymentDeclined,
    PaymentGatewayUnavailable,
    ValidationError,
)
from clubswap.core.idempotency import generate_idempotency_key
from clubswap.models.booking import Booking
from clubswap.models.listing import Listing
from clubswap.models.notification import Notification
from clubswap.schemas.booking import BookingCreate
from clubswap.services.availability_service import AvailabilityService
from clubswap.services.booking_service import BookingService
from tests.factories import NOW, make_booking, make_listing, make_user


def request(listing, start=date(2026, 6, 10), end=date(2026, 6, 19), **overrides) -> BookingCreate:
    values = {
        "listing_id": listing.id,
        "start_date": start,
        "end_date": end,
        "payment_method_id": "pm_card_visa",
    }
    values.update(overrides)
    return BookingCreate(**values)


@pytest.fixture
async def parties(db):
    owner = await make_user(db, first_name="Olive")
    renter = await make_user(db, first_name="Rory")
    return owner, renter


async def booking_count(db) -> int:
    return (await db.execute(select(func.count(Booking.id)))).scalar_one()


class TestInstantBooking:
    async def test_creates_confirmed_booking_with_price_snapshot(self, db, parties, booking_svc, gateway):
        owner, renter = parties
        listing = await make_listing(db, owner)

        booking = await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        assert booking.status == "confirmed"
        assert booking.confirmed_at is not None
        assert booking.rental_days == 9
        assert booking.total_rental_fee == Decimal("610.00")
        assert booking.service_fee == Decimal("17.99")
        assert booking.total_amount == Decimal("627.99")
        assert booking.platform_fee == Decimal("73.20")
        assert booking.owner_earnings == Decimal("536.80")
        assert booking.security_deposit == Decimal("100.00")
        assert booking.pickup_address == listing.address
        assert booking.total_amount == booking.total_rental_fee + booking.service_fee + booking.delivery_fee

        (charge,) = gateway.called("authorize_charge")
        (hold,) = gateway.called("authorize_hold")
        assert charge[0] == Decimal("627.99")
        assert charge[3] == generate_idempotency_key("authorize_charge", booking.id)
        assert hold[0] == Decimal("100.00")
        assert hold[3] == generate_idempotency_key("authorize_hold", booking.id)
        assert booking.stripe_payment_intent_id and booking.stripe_deposit_hold_id

    async def test_updates_listing_counters(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner)

        await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        await db.refresh(listing)
        assert listing.booking_count == 1
        assert listing.last_booked_at is not None

    async def test_notifies_both_parties(self, db, parties, booking_svc, notifier):
        owner, renter = parties
        listing = await make_listing(db, owner)

        booking = await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        assert notifier.templates_for(renter.id) == ["booking_confirmed"]
        assert notifier.templates_for(owner.id) == ["booking_confirmed"]
        rows = (await db.execute(select(Notification).where(Notification.booking_id == booking.id))).scalars().all()
        assert len(rows) == 2

    async def test_zero_deposit_skips_hold(self, db, parties, booking_svc, gateway):
        owner, renter = parties
        listing = await make_listing(db, owner, security_deposit=Decimal("0.00"))

        booking = await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        assert gateway.called("authorize_hold") == []
        assert booking.stripe_deposit_hold_id is None

    async def test_delivery_adds_fee(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner, delivery_available=True, delivery_fee=Decimal("15.00"))

        booking = await booking_svc.create_booking(
            db,
            renter,
            request(listing, pickup_method="delivery", delivery_address="1 Tee Box Ln"),
            now=NOW,
        )

        assert booking.delivery_fee == Decimal("15.00")
        assert booking.total_amount == Decimal("642.99")
        assert booking.pickup_address is None
        assert booking.delivery_address == "1 Tee Box Ln"


class TestRequestBooking:
    async def test_creates_pending_and_notifies_owner(self, db, parties, booking_svc, notifier):
        owner, renter = parties
        listing = await make_listing(db, owner, booking_mode="request")

        booking = await booking_svc.create_booking(
            db, renter, request(listing, renter_message="First time in Toronto"), now=NOW
        )

        assert booking.status == "pending"
        assert booking.confirmed_at is None
        assert booking.renter_message == "First time in Toronto"
        assert notifier.templates_for(owner.id) == ["booking_request"]
        assert notifier.templates_for(renter.id) == []
        _, _, data = notifier.sent[0]
        assert data["renter_name"] == renter.full_name

    async def test_pending_bookings_do_not_block_dates(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner, booking_mode="request")
        other = await make_user(db)

        await booking_svc.create_booking(db, renter, request(listing), now=NOW)
        second = await booking_svc.create_booking(db, other, request(listing), now=NOW)

        assert second.status == "pending"


class TestValidation:
    async def test_missing_listing(self, db, parties, booking_svc):
        _, renter = parties
        listing = await make_listing(db, parties[0])
        await db.delete(listing)
        await db.commit()

        with pytest.raises(NotFoundError):
            await booking_svc.create_booking(db, renter, request(listing), now=NOW)

    async def test_cannot_book_own_listing(self, db, parties, booking_svc):
        owner, _ = parties
        listing = await make_listing(db, owner)

        with pytest.raises(ValidationError, match="your own listing"):
            await booking_svc.create_booking(db, owner, request(listing), now=NOW)

    @pytest.mark.parametrize("overrides", [{"is_active": False}, {"is_draft": True}])
    async def test_listing_not_bookable(self, db, parties, booking_svc, overrides):
        owner, renter = parties
        listing = await make_listing(db, owner, **overrides)

        with pytest.raises(ValidationError, match="not available for booking"):
            await booking_svc.create_booking(db, renter, request(listing), now=NOW)

    async def test_advance_notice(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner, advance_notice_days=3)

        with pytest.raises(ValidationError, match="requires 3 days advance notice"):
            await booking_svc.create_booking(
                db, renter, request(listing, date(2026, 6, 3), date(2026, 6, 5)), now=NOW
            )

    async def test_minimum_rental_days(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner, minimum_rental_days=3)

        with pytest.raises(ValidationError, match="Minimum rental period is 3 days"):
            await booking_svc.create_booking(
                db, renter, request(listing, date(2026, 6, 10), date(2026, 6, 12)), now=NOW
            )

    async def test_maximum_rental_days(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner, maximum_rental_days=7)

        with pytest.raises(ValidationError, match="Maximum rental period is 7 days"):
            await booking_svc.create_booking(db, renter, request(listing), now=NOW)

    async def test_delivery_not_offered(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner)

        with pytest.raises(ValidationError, match="Delivery is not available"):
            await booking_svc.create_booking(
                db, renter, request(listing, pickup_method="delivery", delivery_address="x"), now=NOW
            )

    async def test_delivery_requires_address(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner, delivery_available=True, delivery_fee=Decimal("10"))

        with pytest.raises(ValidationError, match="Delivery address is required"):
            await booking_svc.create_booking(
                db, renter, request(listing, pickup_method="delivery"), now=NOW
            )

    async def test_validation_failures_never_touch_gateway(self, db, parties, booking_svc, gateway):
        owner, _ = parties
        listing = await make_listing(db, owner)

        with pytest.raises(ValidationError):
            await booking_svc.create_booking(db, owner, request(listing), now=NOW)
        assert gateway.calls == []


class TestAvailabilityAndPayments:
    async def test_unavailable_dates(self, db, parties, booking_svc, gateway):
        owner, renter = parties
        listing = await make_listing(db, owner)
        await make_booking(db, listing, await make_user(db), date(2026, 6, 15), date(2026, 6, 17))

        with pytest.raises(ListingNotAvailable):
            await booking_svc.create_booking(db, renter, request(listing), now=NOW)
        assert gateway.calls == []

    async def test_charge_declined(self, db, parties, booking_svc, gateway):
        owner, renter = parties
        listing = await make_listing(db, owner)
        gateway.fail("authorize_charge")

        with pytest.raises(PaymentDeclined):
            await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        assert await booking_count(db) == 0
        assert gateway.called("authorize_hold") == []

    async def test_hold_failure_releases_charge(self, db, parties, booking_svc, gateway):
        owner, renter = parties
        listing = await make_listing(db, owner)
        gateway.fail("authorize_hold", retryable=True)

        with pytest.raises(PaymentGatewayUnavailable):
            await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        assert await booking_count(db) == 0
        assert gateway.called("release_hold") == ["pi_1"]

    async def test_unreleased_charge_is_kept_for_the_sweep(self, db, parties, booking_svc, gateway, notifier):
        """A charge the gateway refuses to give back is stored on a declined booking."""
        owner, renter = parties
        listing = await make_listing(db, owner)
        gateway.fail("authorize_hold")
        gateway.fail("release_hold")

        with pytest.raises(PaymentDeclined):
            await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        stored = (await db.execute(select(Booking))).scalar_one()
        assert stored.status == "declined"
        assert stored.stripe_payment_intent_id == "pi_1"
        assert stored.stripe_deposit_hold_id is None
        assert stored.payment_released is False
        assert notifier.sent == []
        await db.refresh(listing)
        assert listing.booking_count == 0

        assert await booking_svc.retry_deposit_releases(db, now=NOW) == 1
        assert gateway.called("release_hold") == ["pi_1", "pi_1"]
        await db.refresh(stored)
        assert stored.payment_released is True
        assert await booking_svc.retry_deposit_releases(db, now=NOW) == 0

    async def test_lost_race_with_unreleased_charge(self, db, parties, gateway, notifier):
        """Dates taken between the pre-check and the insert, and the charge release fails."""
        owner, renter = parties
        listing = await make_listing(db, owner)

        class TakenUnderLock(AvailabilityService):
            checks = 0

            async def is_available(self, *args, **kwargs):
                self.checks += 1
                return self.checks == 1

        service = BookingService(gateway=gateway, notifier=notifier, availability=TakenUnderLock())
        gateway.fail("release_hold")

        with pytest.raises(ListingNotAvailable):
            await service.create_booking(db, renter, request(listing), now=NOW)

        stored = (await db.execute(select(Booking))).scalar_one()
        assert stored.status == "declined"
        assert stored.payment_released is False
        assert stored.deposit_released is True
        assert gateway.called("release_hold") == [stored.stripe_payment_intent_id, stored.stripe_deposit_hold_id]

        assert await service.retry_deposit_releases(db, now=NOW) == 1
        await db.refresh(stored)
        assert stored.payment_released is True

    async def test_listing_locks_are_dropped_after_create(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner)

        await booking_svc.create_booking(db, renter, request(listing), now=NOW)

        assert booking_svc.availability._locks == {}

    async def test_concurrent_requests_for_same_dates(self, session_maker, gateway, notifier):
        """Two renters race for the same dates: exactly one booking is created."""
        async with session_maker() as setup:
            owner = await make_user(setup)
            first = await make_user(setup)
            second = await make_user(setup)
            listing = await make_listing(setup, owner)

        service = BookingService(gateway=gateway, notifier=notifier, availability=AvailabilityService())

        async def attempt(renter):
            async with session_maker() as session:
                return await service.create_booking(session, renter, request(listing), now=NOW)

        results = await asyncio.gather(attempt(first), attempt(second), return_exceptions=True)

        created = [r for r in results if isinstance(r, Booking)]
        rejected = [r for r in results if isinstance(r, ListingNotAvailable)]
        assert len(created) == 1
        assert len(rejected) == 1

        async with session_maker() as check:
            assert await booking_count(check) == 1
            count = (
                await check.execute(select(Listing.booking_count).where(Listing.id == listing.id))
            ).scalar_one()
            assert count == 1

        # A loser that got past the pre-check had its charge and hold released
        losers_authorized = len(gateway.called("authorize_charge")) - 1
        assert len(gateway.called("release_hold")) == 2 * losers_authorized
        winner = created[0]
        assert winner.stripe_payment_intent_id not in gateway.called("release_hold")


class TestQuote:
    async def test_quote_has_no_side_effects(self, db, parties, booking_svc, gateway):
        owner, _ = parties
        listing = await make_listing(db, owner, cancellation_policy="strict")

        quote = await booking_svc.quote(db, listing.id, date(2026, 6, 10), date(2026, 6, 19), now=NOW)

        assert quote.rental_days == 9
        assert quote.total_amount == Decimal("627.99")
        assert quote.security_deposit == Decimal("100.00")
        assert quote.available is True
        assert quote.cancellation_policy == "strict"
        assert "50%" in quote.cancellation_policy_description
        assert gateway.calls == []
        assert await booking_count(db) == 0

    async def test_quote_reports_unavailable(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner)
        await make_booking(db, listing, renter, date(2026, 6, 12), date(2026, 6, 14))

        quote = await booking_svc.quote(db, listing.id, date(2026, 6, 10), date(2026, 6, 19), now=NOW)
        assert quote.available is False


class TestListing:
    async def test_list_by_role_and_status(self, db, parties, booking_svc):
        owner, renter = parties
        listing = await make_listing(db, owner)
        await make_booking(db, listing, renter, date(2026, 6, 10), date(2026, 6, 12))
        await make_booking(db, listing, renter, date(2026, 7, 10), date(2026, 7, 12), status="cancelled")

        as_renter, total = await booking_svc.list_bookings(db, renter, role="renter")
        assert total == 2
        assert [b.start_date for b in as_renter] == [date(2026, 7, 10), date(2026, 6, 10)]

        as_owner, total = await booking_svc.list_bookings(db, owner, role="owner", status="confirmed")
        assert total == 1

        as_renter_owning, total = await booking_svc.list_bookings(db, renter, role="owner")
        assert total == 0 and as_renter_owning == []

        page, total = await booking_svc.list_bookings(db, renter, page=2, page_size=1)
        assert total == 2 and len(page) == 1
