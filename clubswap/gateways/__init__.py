"""Payment gateway adapters."""

from clubswap.gateways.base import GatewayType, PaymentGateway, PaymentResult, RefundResult

__all__ = ["GatewayType", "PaymentGateway", "PaymentResult", "RefundResult"]
