"""Payment gateway service.

Routes payment operations to the configured gateway adapter and turns
failed results into payment exceptions.
No business logic here - only gateway coordination.
"""

import logging
from decimal import Decimal

from clubswap.config import settings
from clubswap.core.exceptions import PaymentDeclined, PaymentGatewayUnavailable
from clubswap.gateways.base import (
    GatewayType,
    PaymentGateway,
    PaymentResult,
    RefundResult,
)
from clubswap.gateways.manual import ManualGateway
from clubswap.gateways.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def _assert_production_for_real_gateway(gateway_type: GatewayType) -> None:
    """Block live gateway operations in non-production environments.

    Stripe test keys (``sk_test_``) are always allowed.

    Raises:
        RuntimeError: If attempting real gateway operation outside production
    """
    if gateway_type != GatewayType.STRIPE or _is_production():
        return
    if (settings.stripe_secret_key or "").startswith("sk_test_"):
        return
    raise RuntimeError(
        f"Cannot execute live {gateway_type.value} gateway operations "
        f"in {settings.environment} environment. Set ENVIRONMENT=production or use a test key."
    )


def raise_for_result(result: PaymentResult | RefundResult, action: str) -> None:
    """Translate a failed gateway result into PaymentDeclined/PaymentGatewayUnavailable."""
    if result.success:
        return
    logger.warning(f"Gateway {action} failed (retryable={result.retryable}): {result.error_message}")
    if result.retryable:
        raise PaymentGatewayUnavailable()
    raise PaymentDeclined(result.error_message or "Your payment method was declined")


class GatewayService(PaymentGateway):
    """Service delegating payment operations to the configured adapter."""

    def __init__(self, gateway_type: str | GatewayType | None = None):
        self._gateway_type = gateway_type or settings.payment_gateway
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    def _get_gateway(self, gateway_type: str | GatewayType) -> PaymentGateway:
        """Get or create gateway instance."""
        if isinstance(gateway_type, str):
            try:
                gateway_type = GatewayType(gateway_type)
            except ValueError:
                gateway_type = GatewayType.MANUAL

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.STRIPE:
                self._gateways[gateway_type] = StripeGateway()
            else:
                self._gateways[gateway_type] = ManualGateway()

        return self._gateways[gateway_type]

    @property
    def gateway(self) -> PaymentGateway:
        return self._get_gateway(self._gateway_type)

    @property
    def gateway_type(self) -> GatewayType:
        return self.gateway.gateway_type

    async def authorize_charge(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        gateway = self.gateway
        # Environment safety: block real gateway in non-production
        _assert_production_for_real_gateway(gateway.gateway_type)
        return await gateway.authorize_charge(amount, payer_ref, metadata, idempotency_key)

    async def authorize_hold(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        gateway = self.gateway
        _assert_production_for_real_gateway(gateway.gateway_type)
        return await gateway.authorize_hold(amount, payer_ref, metadata, idempotency_key)

    async def capture_hold(self, hold_ref: str, amount: Decimal | None = None) -> PaymentResult:
        gateway = self.gateway
        _assert_production_for_real_gateway(gateway.gateway_type)
        return await gateway.capture_hold(hold_ref, amount)

    async def release_hold(self, hold_ref: str) -> PaymentResult:
        return await self.gateway.release_hold(hold_ref)

    async def refund(
        self,
        payment_ref: str,
        amount: Decimal,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        gateway = self.gateway
        _assert_production_for_real_gateway(gateway.gateway_type)
        return await gateway.refund(payment_ref, amount, reason, idempotency_key)

    def verify_webhook(self, payload: bytes, signature: str) -> dict | None:
        return self.gateway.verify_webhook(payload, signature)


# Singleton instance
gateway_service = GatewayService()
