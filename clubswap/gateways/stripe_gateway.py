"""Stripe payment gateway adapter."""

import asyncio
import logging
from decimal import ROUND_HALF_UP, Decimal

import stripe

from clubswap.config import settings
from clubswap.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)

# Errors worth retrying with the same idempotency key
TRANSIENT_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


def to_minor_units(amount: Decimal) -> int:
    """Convert currency units to cents."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _failure(error: stripe.StripeError, result_cls=PaymentResult):
    retryable = isinstance(error, TRANSIENT_ERRORS)
    message = str(error)
    if isinstance(error, stripe.CardError) and error.user_message:
        message = error.user_message
    return result_cls(
        success=False,
        error_message=message,
        retryable=retryable,
        raw_response={"code": getattr(error, "code", None)},
    )


class StripeGateway(PaymentGateway):
    """Stripe payment gateway implementation (PaymentIntents API)."""

    def __init__(self, secret_key: str | None = None, webhook_secret: str | None = None):
        self.secret_key = secret_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.currency = settings.payment_currency.lower()

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.STRIPE

    async def _call(self, func, *args, idempotency_key: str | None = None, **kwargs):
        # The Stripe SDK is synchronous
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key
        return await asyncio.to_thread(func, *args, api_key=self.secret_key, **kwargs)

    async def _create_intent(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None,
        idempotency_key: str | None,
        capture_method: str,
    ) -> PaymentResult:
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Stripe not configured")

        try:
            intent = await self._call(
                stripe.PaymentIntent.create,
                amount=to_minor_units(amount),
                currency=self.currency,
                payment_method=payer_ref,
                confirm=True,
                capture_method=capture_method,
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
                metadata={k: str(v) for k, v in (metadata or {}).items()},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            logger.warning(f"Stripe {capture_method} intent failed: {e}")
            return _failure(e)

        if intent.status not in ("succeeded", "requires_capture", "processing"):
            return PaymentResult(
                success=False,
                transaction_id=intent.id,
                error_message=f"Payment requires further action ({intent.status})",
                raw_response={"id": intent.id, "status": intent.status},
            )

        return PaymentResult(
            success=True,
            transaction_id=intent.id,
            raw_response={"id": intent.id, "status": intent.status},
        )

    async def authorize_charge(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        """Create and confirm a PaymentIntent for the booking total."""
        return await self._create_intent(amount, payer_ref, metadata, idempotency_key, "automatic")

    async def authorize_hold(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        """Create a manual-capture PaymentIntent for the security deposit."""
        metadata = {**(metadata or {}), "type": "security_deposit"}
        return await self._create_intent(amount, payer_ref, metadata, idempotency_key, "manual")

    async def capture_hold(
        self,
        hold_ref: str,
        amount: Decimal | None = None,
    ) -> PaymentResult:
        """Capture an authorized deposit hold."""
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Stripe not configured")

        params = {}
        if amount is not None:
            params["amount_to_capture"] = to_minor_units(amount)

        try:
            intent = await self._call(stripe.PaymentIntent.capture, hold_ref, **params)
        except stripe.StripeError as e:
            logger.warning(f"Stripe capture failed for {hold_ref}: {e}")
            return _failure(e)

        return PaymentResult(
            success=intent.status == "succeeded",
            transaction_id=intent.id,
            raw_response={"id": intent.id, "status": intent.status},
        )

    async def release_hold(self, hold_ref: str) -> PaymentResult:
        """Cancel an uncaptured intent or refund a captured one."""
        if not self.secret_key:
            return PaymentResult(success=False, error_message="Stripe not configured")

        try:
            intent = await self._call(stripe.PaymentIntent.retrieve, hold_ref)
            if intent.status == "canceled":
                return PaymentResult(
                    success=True,
                    transaction_id=intent.id,
                    raw_response={"id": intent.id, "status": intent.status},
                )
            if intent.status == "succeeded":
                refund = await self._call(
                    stripe.Refund.create,
                    payment_intent=hold_ref,
                    idempotency_key=f"release_{hold_ref}",
                )
                return PaymentResult(
                    success=refund.status in ("succeeded", "pending"),
                    transaction_id=intent.id,
                    raw_response={"id": intent.id, "refund_id": refund.id, "status": refund.status},
                )
            intent = await self._call(stripe.PaymentIntent.cancel, hold_ref)
        except stripe.StripeError as e:
            logger.warning(f"Stripe release failed for {hold_ref}: {e}")
            return _failure(e)

        return PaymentResult(
            success=intent.status == "canceled",
            transaction_id=intent.id,
            raw_response={"id": intent.id, "status": intent.status},
        )

    async def refund(
        self,
        payment_ref: str,
        amount: Decimal,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Process Stripe refund."""
        if not self.secret_key:
            return RefundResult(success=False, error_message="Stripe not configured")

        try:
            refund = await self._call(
                stripe.Refund.create,
                payment_intent=payment_ref,
                amount=to_minor_units(amount),
                reason="requested_by_customer",
                metadata={"reason": reason[:500]},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            logger.warning(f"Stripe refund failed for {payment_ref}: {e}")
            return _failure(e, RefundResult)

        return RefundResult(
            success=refund.status in ("succeeded", "pending"),
            refund_id=refund.id,
            raw_response={"status": refund.status, "id": refund.id},
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify Stripe webhook signature."""
        if not self.webhook_secret:
            return None

        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError):
            return None
