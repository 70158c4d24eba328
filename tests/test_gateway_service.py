"""Gateway selection, environment guard and result translation."""

from decimal import Decimal

import pytest

from clubswap.config import settings
from clubswap.core.exceptions import PaymentDeclined, PaymentGatewayUnavailable
from clubswap.gateways.base import GatewayType, PaymentResult, RefundResult
from clubswap.gateways.manual import ManualGateway
from clubswap.gateways.stripe_gateway import StripeGateway
from clubswap.services.gateway_service import GatewayService, raise_for_result


class TestRaiseForResult:
    def test_success_passes(self):
        raise_for_result(PaymentResult(success=True, transaction_id="pi_1"), "authorize_charge")

    def test_terminal_failure(self):
        with pytest.raises(PaymentDeclined, match="Insufficient funds"):
            raise_for_result(PaymentResult(success=False, error_message="Insufficient funds"), "authorize_charge")

    def test_transient_failure(self):
        with pytest.raises(PaymentGatewayUnavailable) as exc_info:
            raise_for_result(RefundResult(success=False, retryable=True), "refund")
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503


class TestGatewayService:
    def test_selects_adapter(self):
        assert isinstance(GatewayService("manual").gateway, ManualGateway)
        assert isinstance(GatewayService("stripe").gateway, StripeGateway)
        assert GatewayService(GatewayType.STRIPE).gateway_type == GatewayType.STRIPE

    def test_unknown_type_falls_back_to_manual(self):
        assert GatewayService("payfast").gateway_type == GatewayType.MANUAL

    async def test_live_stripe_blocked_outside_production(self, monkeypatch):
        monkeypatch.setattr(settings, "environment", "development")
        monkeypatch.setattr(settings, "stripe_secret_key", "sk_live_abc")

        with pytest.raises(RuntimeError, match="Cannot execute live stripe"):
            await GatewayService("stripe").authorize_charge(Decimal("10"), "pm_card_visa")

    async def test_manual_gateway_delegation(self):
        service = GatewayService("manual")

        charge = await service.authorize_charge(Decimal("10"), "pm", None, "abcdef" * 8)
        again = await service.authorize_charge(Decimal("10"), "pm", None, "abcdef" * 8)
        assert charge.success and charge.transaction_id == again.transaction_id
        assert charge.transaction_id.startswith("manual_pay_")

        hold = await service.authorize_hold(Decimal("100"), "pm", None, "hold-key")
        assert hold.transaction_id == "manual_hold_hold-key"
        assert (await service.capture_hold(hold.transaction_id, Decimal("10"))).success
        assert (await service.release_hold(hold.transaction_id)).success

        refund = await service.refund(charge.transaction_id, Decimal("5"), "reason", "refund-key")
        assert refund.success and refund.refund_id == "manual_refund_refund-key"
        assert service.verify_webhook(b"{}", "sig") is None
