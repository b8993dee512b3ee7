from __future__ import annotations

import sys
from pathlib import Path
from urllib.parse import parse_qs

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from rsv.application.ports.payments import RefundReasonCode
from rsv.infrastructure.payments.stripe_gateway import StripeRefundGateway


def _gateway(handler) -> StripeRefundGateway:
    return StripeRefundGateway(
        secret_key="sk_test_123",
        api_base="https://stripe.test/",
        transport=httpx.MockTransport(handler),
    )


def test_successful_refund_posts_form_with_idempotency_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "re_123", "amount": 5000, "status": "succeeded"})

    result = _gateway(handler).refund(
        payment_reference="pi_001",
        amount_cents=5000,
        reason_code=RefundReasonCode.DUPLICATE,
        idempotency_key="refund-rsv_001",
    )

    assert result.success is True
    assert result.refund_reference == "re_123"
    assert result.amount_cents == 5000
    assert result.status == "succeeded"

    request = seen[0]
    assert str(request.url) == "https://stripe.test/v1/refunds"
    assert request.headers["Authorization"] == "Bearer sk_test_123"
    assert request.headers["Idempotency-Key"] == "refund-rsv_001"
    form = parse_qs(request.content.decode())
    assert form == {"payment_intent": ["pi_001"], "amount": ["5000"], "reason": ["duplicate"]}


def test_stripe_error_message_is_passed_through() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"error": {"message": "Charge ch_1 has already been refunded."}}
        )

    result = _gateway(handler).refund(
        "pi_001", 5000, RefundReasonCode.REQUESTED_BY_CUSTOMER, "refund-rsv_001"
    )

    assert result.success is False
    assert result.error == "Charge ch_1 has already been refunded."


def test_failed_refund_status_is_unsuccessful() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"id": "re_9", "status": "failed", "failure_reason": "expired_or_canceled_card"},
        )

    result = _gateway(handler).refund("pi_001", 5000, RefundReasonCode.FRAUDULENT, "refund-x")

    assert result.success is False
    assert result.refund_reference == "re_9"
    assert result.error == "expired_or_canceled_card"


def test_transport_error_is_reported_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _gateway(handler).refund("pi_001", 5000, RefundReasonCode.DUPLICATE, "refund-x")

    assert result.success is False
    assert result.error == "connection refused"


def test_missing_secret_key_fails_without_network(monkeypatch) -> None:
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    calls: list[httpx.Request] = []

    gateway = StripeRefundGateway(
        transport=httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200))
    )
    result = gateway.refund("pi_001", 5000, RefundReasonCode.DUPLICATE, "refund-x")

    assert result.success is False
    assert result.error == "payment gateway is not configured"
    assert calls == []
