"""Booking engine.

Creation: validate -> price -> authorize payment and deposit hold -> insert
under the listing lock -> notify.

Transitions: guards are checked, the new status is claimed with a
compare-and-swap UPDATE and committed, then gateway side effects run. No
database lock is held across a gateway call. A failed refund reverts the
claim; charge and deposit releases are idempotent and retried later if they
fail.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clubswap.config import settings
from clubswap.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidBookingStatus,
    ListingNotAvailable,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from clubswap.core.idempotency import generate_idempotency_key
from clubswap.domain.booking_state import (
    BookingEvent,
    BookingStatus,
    TERMINAL_STATUSES,
    initial_status,
    is_allowed_actor,
    next_status,
)
from clubswap.domain.cancellation_policy import calculate_refund_amount, get_policy_description
from clubswap.gateways.base import PaymentGateway
from clubswap.models.booking import Booking
from clubswap.models.listing import Listing
from clubswap.models.user import User
from clubswap.schemas.booking import BookingCreate, BookingQuote
from clubswap.services.availability_service import (
    AvailabilityService,
    availability_service,
    is_overlap_violation,
)
from clubswap.services.fee_service import (
    FeeBreakdown,
    FeeCalculator,
    FeeConfig,
    calculate_rental_fee,
    to_cents,
)
from clubswap.services.gateway_service import gateway_service, raise_for_result
from clubswap.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class BookingPrice:
    """Pricing snapshot for one booking request."""

    rental_days: int
    daily_rate: Decimal
    total_rental_fee: Decimal
    fees: FeeBreakdown
    delivery_fee: Decimal
    security_deposit: Decimal

    @property
    def service_fee(self) -> Decimal:
        return self.fees.service_fee

    @property
    def total_amount(self) -> Decimal:
        # Deposit is held, not charged
        return self.total_rental_fee + self.service_fee + self.delivery_fee


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BookingService:
    """Service for creating bookings and driving them through their lifecycle."""

    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        notifier: NotificationService | None = None,
        availability: AvailabilityService | None = None,
        fee_calculator: FeeCalculator | None = None,
    ) -> None:
        self.gateway = gateway or gateway_service
        self.notifier = notifier or notification_service
        self.availability = availability or availability_service
        self.fees = fee_calculator or FeeCalculator(FeeConfig.from_settings(settings))

    # ==================== LOOKUPS ====================

    async def _get_listing(self, db: AsyncSession, listing_id: UUID) -> Listing:
        listing = await db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError("Listing", str(listing_id))
        return listing

    async def _get_booking(self, db: AsyncSession, booking_id: UUID) -> Booking:
        booking = await db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_booking_for_party(self, db: AsyncSession, booking_id: UUID, user: User) -> Booking:
        """Load a booking visible to its renter or owner only."""
        booking = await self._get_booking(db, booking_id)
        if booking.party_role(user.id) is None:
            raise AuthorizationError("You are not a party to this booking")
        return booking

    async def list_bookings(
        self,
        db: AsyncSession,
        user: User,
        role: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        """List the user's bookings as renter, owner, or both."""
        if role == "renter":
            query = select(Booking).where(Booking.renter_id == user.id)
        elif role == "owner":
            query = select(Booking).where(Booking.owner_id == user.id)
        else:
            query = select(Booking).where(
                (Booking.renter_id == user.id) | (Booking.owner_id == user.id)
            )

        if status:
            query = query.where(Booking.status == BookingStatus(status).value)

        total = (
            await db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar_one()

        query = (
            query.order_by(Booking.start_date.desc(), Booking.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    # ==================== PRICING ====================

    def _validate_request(
        self,
        listing: Listing,
        start_date: date,
        end_date: date,
        pickup_method: str,
        today: date,
    ) -> int:
        """Check the rental window and pickup rules. Returns rental days."""
        if not listing.is_bookable:
            raise ValidationError("Listing is not available for booking")

        if start_date >= end_date:
            raise ValidationError("End date must be after start date")

        earliest = today + timedelta(days=listing.advance_notice_days or 0)
        if start_date < earliest:
            raise ValidationError(
                f"This listing requires {listing.advance_notice_days} days advance notice"
            )

        rental_days = (end_date - start_date).days
        if rental_days < listing.minimum_rental_days:
            raise ValidationError(f"Minimum rental period is {listing.minimum_rental_days} days")
        if listing.maximum_rental_days and rental_days > listing.maximum_rental_days:
            raise ValidationError(f"Maximum rental period is {listing.maximum_rental_days} days")

        if pickup_method == "delivery" and not listing.delivery_available:
            raise ValidationError("Delivery is not available for this listing")

        return rental_days

    def price_booking(self, listing: Listing, rental_days: int, pickup_method: str) -> BookingPrice:
        """Price a rental from the listing's current rates."""
        total_rental_fee = calculate_rental_fee(
            listing.daily_rate, listing.weekly_rate, rental_days
        )
        fees = self.fees.calculate_fees(total_rental_fee)
        delivery_fee = ZERO
        if pickup_method == "delivery":
            delivery_fee = to_cents(listing.delivery_fee or ZERO)

        return BookingPrice(
            rental_days=rental_days,
            daily_rate=to_cents(listing.daily_rate),
            total_rental_fee=fees.rental_amount,
            fees=fees,
            delivery_fee=delivery_fee,
            security_deposit=to_cents(listing.security_deposit or ZERO),
        )

    async def quote(
        self,
        db: AsyncSession,
        listing_id: UUID,
        start_date: date,
        end_date: date,
        pickup_method: str = "owner_location",
        now: datetime | None = None,
    ) -> BookingQuote:
        """Price a prospective booking without side effects."""
        now = now or _utcnow()
        listing = await self._get_listing(db, listing_id)
        rental_days = self._validate_request(listing, start_date, end_date, pickup_method, now.date())
        price = self.price_booking(listing, rental_days, pickup_method)
        available = await self.availability.is_available(db, listing.id, start_date, end_date)

        return BookingQuote(
            listing_id=listing.id,
            start_date=start_date,
            end_date=end_date,
            rental_days=rental_days,
            daily_rate=price.daily_rate,
            weekly_rate=listing.weekly_rate,
            total_rental_fee=price.total_rental_fee,
            service_fee=price.service_fee,
            delivery_fee=price.delivery_fee,
            total_amount=price.total_amount,
            security_deposit=price.security_deposit,
            platform_fee=price.fees.platform_fee,
            owner_earnings=price.fees.owner_earnings,
            available=available,
            cancellation_policy=listing.cancellation_policy,
            cancellation_policy_description=get_policy_description(listing.cancellation_policy),
        )

    # ==================== PAYMENTS ====================

    async def _release_authorization(self, ref: str, label: str) -> bool:
        """Release a charge or hold. Retried once on transient failure."""
        result = await self.gateway.release_hold(ref)
        if not result.success and result.retryable:
            logger.info(f"Retrying {label} release for {ref}")
            result = await self.gateway.release_hold(ref)
        if not result.success:
            logger.error(f"Failed to release {label} {ref}: {result.error_message}")
        return result.success

    async def _authorize_payments(
        self,
        booking: Booking,
        listing: Listing,
        renter: User,
        payer_ref: str,
        price: BookingPrice,
    ) -> None:
        """Authorize the renter's charge and deposit hold onto ``booking``.

        Raises on the first failure; whatever was authorized so far is left on
        the booking for the caller to unwind.
        """
        metadata = {
            "booking_id": str(booking.id),
            "listing_id": str(listing.id),
            "renter_id": str(renter.id),
            "owner_id": str(listing.owner_id),
        }

        charge = await self.gateway.authorize_charge(
            price.total_amount,
            payer_ref,
            metadata,
            generate_idempotency_key("authorize_charge", booking.id),
        )
        raise_for_result(charge, "authorize_charge")
        booking.stripe_payment_intent_id = charge.transaction_id
        logger.info(f"Authorized {price.total_amount} for booking {booking.id}: {charge.transaction_id}")

        if price.security_deposit > 0:
            hold = await self.gateway.authorize_hold(
                price.security_deposit,
                payer_ref,
                metadata,
                generate_idempotency_key("authorize_hold", booking.id),
            )
            raise_for_result(hold, "authorize_hold")
            booking.stripe_deposit_hold_id = hold.transaction_id
            logger.info(f"Deposit hold {hold.transaction_id} for booking {booking.id}")

    async def _unwind_payments(self, db: AsyncSession, booking: Booking, now: datetime) -> None:
        """Release the charge and hold of a booking that was never placed.

        If a release fails the booking is stored as declined with its
        ``payment_released``/``deposit_released`` flags unset, so
        ``retry_deposit_releases`` keeps re-issuing it.
        """
        charge_released = True
        if booking.stripe_payment_intent_id:
            charge_released = await self._release_authorization(booking.stripe_payment_intent_id, "charge")
        hold_released = True
        if booking.stripe_deposit_hold_id:
            hold_released = await self._release_authorization(booking.stripe_deposit_hold_id, "deposit hold")
        if charge_released and hold_released:
            return

        booking.status = BookingStatus.DECLINED.value
        booking.confirmed_at = None
        booking.cancellation_reason = "Booking could not be placed"
        booking.payment_released = charge_released and booking.stripe_payment_intent_id is not None
        if booking.stripe_deposit_hold_id and hold_released:
            booking.deposit_released = True
            booking.deposit_release_date = now
        db.add(booking)
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(
                f"Could not record unreleased payments of booking {booking.id}: "
                f"charge={booking.stripe_payment_intent_id} hold={booking.stripe_deposit_hold_id}"
            )
            return
        logger.warning(f"Booking {booking.id} stored as declined until its payments are released")

    async def _release_charge(self, booking: Booking) -> None:
        """Give back the charge of a booking that was never accepted."""
        if not booking.stripe_payment_intent_id or booking.payment_released:
            return
        if await self._release_authorization(booking.stripe_payment_intent_id, "charge"):
            booking.payment_released = True

    async def _release_deposit(self, booking: Booking, now: datetime) -> None:
        """Release the deposit hold unless it was already released or captured."""
        if not booking.stripe_deposit_hold_id or booking.deposit_released or booking.deposit_captured:
            return
        if await self._release_authorization(booking.stripe_deposit_hold_id, "deposit hold"):
            booking.deposit_released = True
            booking.deposit_release_date = now

    # ==================== CREATE ====================

    async def create_booking(
        self,
        db: AsyncSession,
        renter: User,
        data: BookingCreate,
        now: datetime | None = None,
    ) -> Booking:
        """Create a booking.

        Payment authorizations happen before the booking row exists and are
        released again if a later step fails or the insert loses a race for
        the dates. A release the gateway refuses is recorded on a declined
        booking for the release sweep.

        Raises:
            NotFoundError: Listing does not exist
            ValidationError: Rental window, pickup or ownership rules violated
            ListingNotAvailable: Dates overlap a confirmed booking
            PaymentDeclined / PaymentGatewayUnavailable: Authorization failed
        """
        now = now or _utcnow()
        listing = await self._get_listing(db, data.listing_id)
        if listing.owner_id == renter.id:
            raise ValidationError("You cannot book your own listing")

        rental_days = self._validate_request(
            listing, data.start_date, data.end_date, data.pickup_method, now.date()
        )
        if data.pickup_method == "delivery" and not (data.delivery_address or "").strip():
            raise ValidationError("Delivery address is required for delivery")

        if not await self.availability.is_available(db, listing.id, data.start_date, data.end_date):
            raise ListingNotAvailable()

        price = self.price_booking(listing, rental_days, data.pickup_method)
        status = initial_status(listing.booking_mode)
        booking_id = uuid4()

        booking = Booking(
            id=booking_id,
            listing_id=listing.id,
            renter_id=renter.id,
            owner_id=listing.owner_id,
            start_date=data.start_date,
            end_date=data.end_date,
            rental_days=rental_days,
            daily_rate=price.daily_rate,
            total_rental_fee=price.total_rental_fee,
            service_fee=price.service_fee,
            security_deposit=price.security_deposit,
            delivery_fee=price.delivery_fee,
            total_amount=price.total_amount,
            platform_fee=price.fees.platform_fee,
            owner_earnings=price.fees.owner_earnings,
            status=status.value,
            pickup_method=data.pickup_method,
            pickup_address=listing.address if data.pickup_method == "owner_location" else None,
            delivery_address=data.delivery_address if data.pickup_method == "delivery" else None,
            renter_message=data.renter_message,
            confirmed_at=now if status == BookingStatus.CONFIRMED else None,
        )
        listing_id, listing_title = listing.id, listing.title

        try:
            await self._authorize_payments(booking, listing, renter, data.payment_method_id, price)
        except PaymentError:
            await self._unwind_payments(db, booking, now)
            raise

        try:
            async with self.availability.listing_lock(db, listing_id):
                if not await self.availability.is_available(
                    db, listing_id, data.start_date, data.end_date
                ):
                    raise ListingNotAvailable()
                db.add(booking)
                await db.execute(
                    update(Listing)
                    .where(Listing.id == listing_id)
                    .values(booking_count=Listing.booking_count + 1, last_booked_at=now)
                )
                await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning(f"Booking {booking_id} not persisted ({type(e).__name__}), releasing authorizations")
            await self._unwind_payments(db, booking, now)
            if isinstance(e, IntegrityError) and is_overlap_violation(e):
                raise ListingNotAvailable() from e
            raise

        logger.info(f"Booking {booking_id} created as {status.value} for listing {listing_id}")

        data_out = self._notification_data(booking, listing_title)
        if status == BookingStatus.CONFIRMED:
            await self.notifier.notify(db, booking.renter_id, NotificationService.BOOKING_CONFIRMED, data_out)
            await self.notifier.notify(db, booking.owner_id, NotificationService.BOOKING_CONFIRMED, data_out)
        else:
            await self.notifier.notify(
                db,
                booking.owner_id,
                NotificationService.BOOKING_REQUEST,
                {**data_out, "renter_name": renter.full_name},
            )
        await db.commit()
        return booking

    # ==================== TRANSITIONS ====================

    def _actor_role(self, booking: Booking, actor: User | None) -> str | None:
        return "system" if actor is None else booking.party_role(actor.id)

    def _check_guards(self, booking: Booking, actor: User | None, event: BookingEvent) -> BookingStatus:
        role = self._actor_role(booking, actor)
        if not is_allowed_actor(event, role):
            raise AuthorizationError(f"You are not allowed to {event.value} this booking")
        return next_status(booking.status, event)

    async def _claim_status(
        self,
        db: AsyncSession,
        booking: Booking,
        expected: str,
        target: str,
        **values: Any,
    ) -> None:
        """Compare-and-swap the booking status and commit."""
        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == expected)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Booking status changed, please reload and try again")
        await db.commit()
        await db.refresh(booking)
        logger.info(f"Booking {booking.id}: {expected} -> {target}")

    async def _transition(
        self,
        db: AsyncSession,
        booking: Booking,
        actor: User | None,
        event: BookingEvent,
        **values: Any,
    ) -> str:
        """Check guards and claim the transition. Returns the previous status."""
        target = self._check_guards(booking, actor, event)
        previous = booking.status
        await self._claim_status(db, booking, previous, target.value, **values)
        return previous

    def _notification_data(self, booking: Booking, listing_title: str) -> dict[str, Any]:
        return {
            "booking_id": booking.id,
            "listing_title": listing_title,
            "start_date": booking.start_date.isoformat(),
            "end_date": booking.end_date.isoformat(),
        }

    async def _listing_title(self, db: AsyncSession, booking: Booking) -> str:
        listing = await db.get(Listing, booking.listing_id)
        return listing.title if listing else ""

    async def approve_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        owner: User,
        now: datetime | None = None,
    ) -> Booking:
        """Owner approves a pending request. The dates must still be free."""
        now = now or _utcnow()
        booking = await self._get_booking(db, booking_id)
        self._check_guards(booking, owner, BookingEvent.APPROVE)

        try:
            async with self.availability.listing_lock(db, booking.listing_id):
                if not await self.availability.is_available(
                    db, booking.listing_id, booking.start_date, booking.end_date,
                    exclude_booking_id=booking.id,
                ):
                    raise ListingNotAvailable()
                await self._transition(db, booking, owner, BookingEvent.APPROVE, confirmed_at=now)
        except IntegrityError as e:
            await db.rollback()
            if is_overlap_violation(e):
                raise ListingNotAvailable() from e
            raise

        await self.notifier.notify(
            db,
            booking.renter_id,
            NotificationService.BOOKING_CONFIRMED,
            self._notification_data(booking, await self._listing_title(db, booking)),
        )
        await db.commit()
        return booking

    async def decline_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        owner: User,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Owner declines a pending request; authorizations are released."""
        now = now or _utcnow()
        booking = await self._get_booking(db, booking_id)
        await self._transition(db, booking, owner, BookingEvent.DECLINE, owner_decline_reason=reason)

        await self._release_charge(booking)
        await self._release_deposit(booking, now)

        await self.notifier.notify(
            db,
            booking.renter_id,
            NotificationService.BOOKING_DECLINED,
            {**self._notification_data(booking, await self._listing_title(db, booking)), "reason": reason},
        )
        await db.commit()
        return booking

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: User,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Renter or owner cancels; refund follows the listing's cancellation policy.

        If the refund fails the cancellation is reverted and the payment
        error is raised.
        """
        now = now or _utcnow()
        booking = await self._get_booking(db, booking_id)
        role = self._actor_role(booking, actor)
        self._check_guards(booking, actor, BookingEvent.CANCEL)

        listing = await self._get_listing(db, booking.listing_id)
        refund_amount = ZERO
        if booking.stripe_payment_intent_id:
            refund_amount = calculate_refund_amount(
                listing.cancellation_policy, booking.start_date, now, booking.total_amount
            )

        previous = await self._transition(
            db,
            booking,
            actor,
            BookingEvent.CANCEL,
            cancelled_at=now,
            cancelled_by=role,
            cancellation_reason=reason,
            refund_amount=refund_amount,
        )

        if refund_amount > 0:
            result = await self.gateway.refund(
                booking.stripe_payment_intent_id,
                refund_amount,
                reason or "Booking cancelled",
                generate_idempotency_key("refund", booking.id, {"amount": refund_amount}),
            )
            if not result.success:
                logger.warning(f"Refund failed for booking {booking.id}, reverting cancellation")
                await self._claim_status(
                    db,
                    booking,
                    BookingStatus.CANCELLED.value,
                    previous,
                    cancelled_at=None,
                    cancelled_by=None,
                    cancellation_reason=None,
                    refund_amount=ZERO,
                )
                raise_for_result(result, "refund")
            booking.stripe_refund_id = result.refund_id
            logger.info(f"Refunded {refund_amount} for booking {booking.id}: {result.refund_id}")

        await self._release_deposit(booking, now)

        counterparty = booking.owner_id if role == "renter" else booking.renter_id
        await self.notifier.notify(
            db,
            counterparty,
            NotificationService.BOOKING_CANCELLED,
            {
                **self._notification_data(booking, listing.title),
                "refund_amount": str(refund_amount),
                "reason": reason,
            },
        )
        await db.commit()
        return booking

    async def start_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: User | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Hand-over: confirmed -> in_progress. ``actor=None`` is the scheduler."""
        now = now or _utcnow()
        booking = await self._get_booking(db, booking_id)
        await self._transition(db, booking, actor, BookingEvent.START, started_at=now)
        return booking

    async def complete_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        owner: User,
        now: datetime | None = None,
    ) -> Booking:
        """Owner marks the rental returned; the deposit hold is released."""
        now = now or _utcnow()
        booking = await self._get_booking(db, booking_id)
        await self._transition(db, booking, owner, BookingEvent.COMPLETE, completed_at=now)

        await self._release_deposit(booking, now)

        await self.notifier.notify(
            db,
            booking.owner_id,
            NotificationService.PAYOUT,
            {
                **self._notification_data(booking, await self._listing_title(db, booking)),
                "owner_earnings": str(booking.owner_earnings),
            },
        )
        await db.commit()
        return booking

    async def claim_deposit(
        self,
        db: AsyncSession,
        booking_id: UUID,
        owner: User,
        amount: Decimal | None = None,
        reason: str = "",
    ) -> Booking:
        """Owner captures part or all of the deposit hold (damage, late return)."""
        booking = await self._get_booking(db, booking_id)
        if booking.party_role(owner.id) != "owner":
            raise AuthorizationError("Only the owner can claim the security deposit")
        if booking.status not in (BookingStatus.CONFIRMED.value, BookingStatus.IN_PROGRESS.value):
            raise InvalidBookingStatus(f"Cannot claim the deposit of a booking that is {booking.status}")
        if not booking.stripe_deposit_hold_id or booking.deposit_released or booking.deposit_captured:
            raise InvalidBookingStatus("There is no deposit hold to claim")

        capture_amount = to_cents(amount) if amount is not None else booking.security_deposit
        if capture_amount <= 0 or capture_amount > booking.security_deposit:
            raise ValidationError(
                f"Claim amount must be between 0.01 and {booking.security_deposit}"
            )

        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.deposit_captured.is_(False),
                Booking.deposit_released.is_(False),
            )
            .values(deposit_captured=True, deposit_captured_amount=capture_amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Deposit was already settled")
        await db.commit()

        capture = await self.gateway.capture_hold(booking.stripe_deposit_hold_id, capture_amount)
        if not capture.success:
            await db.execute(
                update(Booking)
                .where(Booking.id == booking.id)
                .values(deposit_captured=False, deposit_captured_amount=ZERO)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            await db.refresh(booking)
            raise_for_result(capture, "capture_hold")

        await db.refresh(booking)
        logger.info(f"Captured {capture_amount} of deposit for booking {booking.id}: {reason}")
        return booking

    # ==================== SCHEDULED ====================

    async def retry_deposit_releases(self, db: AsyncSession, now: datetime | None = None) -> int:
        """Re-issue releases that failed earlier.

        Covers charges of declined bookings and deposit holds of any finished
        booking. Returns the number of releases that went through.
        """
        now = now or _utcnow()
        released = 0

        charges = await db.execute(
            select(Booking).where(
                Booking.status == BookingStatus.DECLINED.value,
                Booking.stripe_payment_intent_id.is_not(None),
                Booking.payment_released.is_(False),
            )
        )
        for booking in charges.scalars().all():
            await self._release_charge(booking)
            if booking.payment_released:
                released += 1

        result = await db.execute(
            select(Booking).where(
                Booking.status.in_([s.value for s in TERMINAL_STATUSES]),
                Booking.stripe_deposit_hold_id.is_not(None),
                Booking.deposit_released.is_(False),
                Booking.deposit_captured.is_(False),
            )
        )
        for booking in result.scalars().all():
            await self._release_deposit(booking, now)
            if booking.deposit_released:
                released += 1
        await db.commit()
        return released

    async def start_due_rentals(self, db: AsyncSession, now: datetime | None = None) -> int:
        """Move confirmed bookings whose start date has arrived to in_progress."""
        now = now or _utcnow()
        result = await db.execute(
            select(Booking.id).where(
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.start_date <= now.date(),
            )
        )
        started = 0
        for booking_id in result.scalars().all():
            try:
                await self.start_booking(db, booking_id, actor=None, now=now)
                started += 1
            except ConflictError as e:
                # Cancelled or started concurrently
                logger.info(f"Skipping start of booking {booking_id}: {e.detail}")
        return started


# Singleton instance
booking_service = BookingService()
