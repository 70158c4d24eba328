"""Test doubles for the payment gateway and notification dispatcher."""

import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Any

from clubswap.gateways.base import GatewayType, PaymentGateway, PaymentResult, RefundResult
from clubswap.services.notification_service import NotificationService


class FakeGateway(PaymentGateway):
    """In-memory gateway that records every call.

    ``fail(method, times, retryable)`` queues failures for the next calls of
    ``method``; once the queue is empty calls succeed again.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self._failures: dict[str, list[bool]] = defaultdict(list)
        self._refs: dict[str, str] = {}

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    def fail(self, method: str, times: int = 1, retryable: bool = False) -> None:
        self._failures[method].extend([retryable] * times)

    def called(self, method: str) -> list[Any]:
        return [args for name, args in self.calls if name == method]

    def _failure(self, method: str, result_cls=PaymentResult):
        if not self._failures[method]:
            return None
        retryable = self._failures[method].pop(0)
        return result_cls(
            success=False,
            error_message="Processor timeout" if retryable else "Card declined",
            retryable=retryable,
        )

    def _ref(self, prefix: str, idempotency_key: str | None) -> str:
        key = idempotency_key or uuid.uuid4().hex
        if key not in self._refs:
            self._refs[key] = f"{prefix}_{len(self._refs) + 1}"
        return self._refs[key]

    async def authorize_charge(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        self.calls.append(("authorize_charge", (amount, payer_ref, metadata, idempotency_key)))
        return self._failure("authorize_charge") or PaymentResult(
            success=True, transaction_id=self._ref("pi", idempotency_key)
        )

    async def authorize_hold(
        self,
        amount: Decimal,
        payer_ref: str,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        self.calls.append(("authorize_hold", (amount, payer_ref, metadata, idempotency_key)))
        return self._failure("authorize_hold") or PaymentResult(
            success=True, transaction_id=self._ref("hold", idempotency_key)
        )

    async def capture_hold(self, hold_ref: str, amount: Decimal | None = None) -> PaymentResult:
        self.calls.append(("capture_hold", (hold_ref, amount)))
        return self._failure("capture_hold") or PaymentResult(success=True, transaction_id=hold_ref)

    async def release_hold(self, hold_ref: str) -> PaymentResult:
        self.calls.append(("release_hold", hold_ref))
        return self._failure("release_hold") or PaymentResult(success=True, transaction_id=hold_ref)

    async def refund(
        self,
        payment_ref: str,
        amount: Decimal,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        self.calls.append(("refund", (payment_ref, amount, reason, idempotency_key)))
        return self._failure("refund", RefundResult) or RefundResult(
            success=True, refund_id=self._ref("re", idempotency_key)
        )

    def verify_webhook(self, payload: bytes, signature: str) -> dict | None:
        return None


class RecordingNotifier(NotificationService):
    """Real dispatcher (in-app rows, no email/SMS credentials) that remembers what it sent."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[tuple[uuid.UUID, str, dict]] = []

    async def notify(self, db, user_id, template, data) -> bool:
        self.sent.append((user_id, template, data))
        return await super().notify(db, user_id, template, data)

    def templates_for(self, user_id: uuid.UUID) -> list[str]:
        return [template for uid, template, _ in self.sent if uid == user_id]
