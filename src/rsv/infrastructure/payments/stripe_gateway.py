from __future__ import annotations

import logging
import os

import httpx

from rsv.application.ports.payments import PaymentGateway, RefundReasonCode, RefundResult

logger = logging.getLogger(__name__)

DEFAULT_STRIPE_API_BASE = "https://api.stripe.com"
_ACCEPTED_REFUND_STATUSES = frozenset({"succeeded", "pending"})


class StripeRefundGateway(PaymentGateway):
    """Refunds captured deposits through the Stripe REST API.

    Failures come back as an unsuccessful RefundResult carrying Stripe's own
    message; nothing is raised to the caller.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        api_base: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._secret_key = secret_key if secret_key is not None else os.getenv("STRIPE_SECRET_KEY")
        self._api_base = (api_base or os.getenv("STRIPE_API_BASE", DEFAULT_STRIPE_API_BASE)).rstrip(
            "/"
        )
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def refund(
        self,
        payment_reference: str,
        amount_cents: int,
        reason_code: RefundReasonCode,
        idempotency_key: str,
    ) -> RefundResult:
        if not self._secret_key:
            return RefundResult(success=False, error="payment gateway is not configured")

        data = {
            "payment_intent": payment_reference,
            "amount": str(amount_cents),
            "reason": reason_code.value,
        }
        headers = {
            "Authorization": f"Bearer {self._secret_key}",
            "Idempotency-Key": idempotency_key,
        }
        try:
            with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = client.post(f"{self._api_base}/v1/refunds", data=data, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("stripe_refund_request_failed", exc_info=True)
            return RefundResult(success=False, error=str(exc) or "payment gateway unreachable")

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if not response.is_success:
            error = body.get("error") if isinstance(body, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            return RefundResult(
                success=False,
                error=message or f"payment gateway returned {response.status_code}",
            )

        status = body.get("status")
        if status not in _ACCEPTED_REFUND_STATUSES:
            return RefundResult(
                success=False,
                refund_reference=body.get("id"),
                status=status,
                error=body.get("failure_reason") or f"refund {status or 'not accepted'}",
            )
        return RefundResult(
            success=True,
            refund_reference=body.get("id"),
            amount_cents=body.get("amount", amount_cents),
            status=status,
        )
