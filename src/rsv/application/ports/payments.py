from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class RefundReasonCode(str, Enum):
    DUPLICATE = "duplicate"
    FRAUDULENT = "fraudulent"
    REQUESTED_BY_CUSTOMER = "requested_by_customer"


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_reference: str | None = None
    amount_cents: int | None = None
    status: str | None = None
    error: str | None = None


class PaymentGateway(Protocol):
    def refund(
        self,
        payment_reference: str,
        amount_cents: int,
        reason_code: RefundReasonCode,
        idempotency_key: str,
    ) -> RefundResult: ...
