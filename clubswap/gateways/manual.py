"""Manual payment gateway adapter for offline and development use."""

import uuid
from decimal import Decimal

from clubswap.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentResult,
    RefundResult,
)


class ManualGateway(PaymentGateway):
    """Manual payment gateway.

    All operations succeed with ``manual_`` references; money is settled
    out of band by an admin.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    @staticmethod
    def _reference(prefix: str, idempotency_key: str | None) -> str:
        # Same key, same reference
        suffix = idempotency_key[:24] if idempotency_key else uuid.uuid4().hex[:24]
        return f"manual_{prefix}_{suffix}"

    async def authorize_charge(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        """Record a payment to be settled manually (always succeeds)."""
        return PaymentResult(
            success=True,
            transaction_id=self._reference("pay", idempotency_key),
            raw_response={"type": "manual", "status": "pending_verification", "amount": str(amount)},
        )

    async def authorize_hold(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        """Record a deposit hold (always succeeds)."""
        return PaymentResult(
            success=True,
            transaction_id=self._reference("hold", idempotency_key),
            raw_response={"type": "manual", "status": "held", "amount": str(amount)},
        )

    async def capture_hold(
        self,
        hold_ref: str,
        amount: Decimal | None = None,
    ) -> PaymentResult:
        return PaymentResult(
            success=True,
            transaction_id=hold_ref,
            raw_response={"type": "manual", "status": "captured", "amount": str(amount) if amount else None},
        )

    async def release_hold(self, hold_ref: str) -> PaymentResult:
        return PaymentResult(
            success=True,
            transaction_id=hold_ref,
            raw_response={"type": "manual", "status": "released"},
        )

    async def refund(
        self,
        payment_ref: str,
        amount: Decimal,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Process manual refund (requires admin action)."""
        return RefundResult(
            success=True,
            refund_id=self._reference("refund", idempotency_key),
            raw_response={
                "type": "manual_refund",
                "status": "pending",
                "note": "Admin must settle the refund manually",
                "amount": str(amount),
                "reason": reason,
            },
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Manual gateway doesn't have webhooks."""
        return None
