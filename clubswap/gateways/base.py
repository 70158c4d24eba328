"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
Adapters never raise; failures come back as results with ``retryable`` set
when the failure is transient (network, rate limit, processor outage).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    STRIPE = "stripe"
    MANUAL = "manual"


@dataclass
class PaymentResult:
    """Result of an authorize, capture or release operation."""

    success: bool
    transaction_id: str | None = None
    error_message: str | None = None
    retryable: bool = False
    raw_response: dict | None = None


@dataclass
class RefundResult:
    """Result of a refund operation."""

    success: bool
    refund_id: str | None = None
    error_message: str | None = None
    retryable: bool = False
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways.

    All amounts are Decimal currency units; adapters convert to the
    processor's minor units.
    """

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def authorize_charge(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        """Authorize the renter's payment for a booking.

        Args:
            amount: Amount to charge
            payer_ref: Processor reference for the payer's payment method
            metadata: Additional metadata (booking_id, listing_id, ...)
            idempotency_key: Key deduplicating retries of this call

        Returns:
            PaymentResult whose transaction_id is the payment reference
        """
        pass

    @abstractmethod
    async def authorize_hold(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        """Reserve funds without charging them (manual capture).

        Returns:
            PaymentResult whose transaction_id is the hold reference
        """
        pass

    @abstractmethod
    async def capture_hold(
        self,
        hold_ref: str,
        amount: Decimal | None = None,
    ) -> PaymentResult:
        """Charge part or all of a hold. ``None`` captures the full amount."""
        pass

    @abstractmethod
    async def release_hold(self, hold_ref: str) -> PaymentResult:
        """Release an authorization.

        Must be safe to re-issue: releasing an already-released
        authorization succeeds.
        """
        pass

    @abstractmethod
    async def refund(
        self,
        payment_ref: str,
        amount: Decimal,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Refund part or all of a captured payment.

        Args:
            payment_ref: Original payment reference
            amount: Refund amount
            reason: Refund reason
            idempotency_key: Key deduplicating retries of this call

        Returns:
            RefundResult with refund details
        """
        pass

    @abstractmethod
    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify webhook signature and parse payload.

        Args:
            payload: Raw request body
            signature: Webhook signature header

        Returns:
            Parsed event dict if valid, None if invalid
        """
        pass
