from __future__ import annotations

import logging
from datetime import datetime

from rsv.application.booking_policy import BookingPolicy
from rsv.application.dto.requests import RefundReservationRequest
from rsv.application.dto.responses import RefundDetailsResponse, RefundResponse
from rsv.application.mappers.reservation_mapper import to_money_response, to_reservation_response
from rsv.application.metrics.reservation_lifecycle import record_refund, record_transition
from rsv.application.ports.payments import PaymentGateway, RefundReasonCode
from rsv.application.ports.publisher import EventPublisher
from rsv.application.ports.repositories import (
    OptimisticConcurrencyError,
    PaymentLogEntry,
    PaymentLogRepository,
    RefundAlreadyRecordedError,
    ReservationRepository,
)
from rsv.application.use_cases.audit import new_modification
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.create_reservation import BookingValidationError
from rsv.application.use_cases.get_reservation import (
    ReservationChangedError,
    load_reservation,
)
from rsv.application.use_cases.notifications import announce_modification
from rsv.domain.common.ids import ReservationId
from rsv.domain.common.money import Money
from rsv.domain.reservation.entities import (
    RefundStateError,
    Reservation,
    ReservationModification,
)

logger = logging.getLogger(__name__)

PAYMENT_STATUS_REFUNDED = "REFUNDED"
PAYMENT_STATUS_REFUND_FAILED = "REFUND_FAILED"

_RECORD_ATTEMPTS = 3


class AlreadyRefundedError(Exception):
    pass


class NotRefundableError(Exception):
    pass


class PaymentCollaboratorError(Exception):
    pass


def map_refund_reason(reason: str | None) -> RefundReasonCode:
    text = (reason or "").lower()
    if "duplicate" in text or "double" in text:
        return RefundReasonCode.DUPLICATE
    if "fraud" in text or "suspicious" in text:
        return RefundReasonCode.FRAUDULENT
    return RefundReasonCode.REQUESTED_BY_CUSTOMER


def refund_idempotency_key(reservation_id: ReservationId, amount_cents: int, attempt: int) -> str:
    """Key for one refund attempt.

    A retry after a recorded gateway failure gets a fresh key, as does a
    different amount, so the gateway never replays an earlier outcome.
    """
    return f"refund-{reservation_id}-{amount_cents}-{attempt}"


def _ensure_refundable(reservation: Reservation) -> None:
    if reservation.deposit_refunded:
        raise AlreadyRefundedError(f"deposit for {reservation.reference} has already been refunded")
    try:
        reservation.ensure_refundable()
    except RefundStateError as exc:
        raise NotRefundableError(str(exc)) from exc


class RefundReservation:
    """Refunds a paid deposit through the payment gateway.

    No lock is held while the gateway call is in flight. The result is recorded
    with a write that only succeeds while the deposit is still unrefunded, so
    the losing side of a double refund sees AlreadyRefundedError. When another
    change lands during the gateway call the refund is re-applied to the fresh
    row, keeping that change.
    """

    def __init__(
        self,
        reservation_repository: ReservationRepository,
        payment_gateway: PaymentGateway,
        payment_log_repository: PaymentLogRepository,
        publisher: EventPublisher,
        policy: BookingPolicy | None = None,
    ) -> None:
        self._reservation_repository = reservation_repository
        self._payment_gateway = payment_gateway
        self._payment_log_repository = payment_log_repository
        self._publisher = publisher
        self._policy = policy or BookingPolicy()

    def execute(
        self,
        reservation_id: ReservationId,
        request_dto: RefundReservationRequest,
        trace_ctx: TraceContext,
    ) -> RefundResponse:
        reservation = load_reservation(self._reservation_repository, reservation_id)
        _ensure_refundable(reservation)

        amount_cents = request_dto.amount_cents
        if amount_cents is None:
            amount_cents = reservation.deposit.amount_cents
        if not 0 < amount_cents <= reservation.deposit.amount_cents:
            raise BookingValidationError(
                f"refund amount must be between 1 and {reservation.deposit.amount_cents}",
                constraint="REFUND_AMOUNT",
            )

        reason_code = map_refund_reason(request_dto.reason)
        payment_reference = reservation.payment_reference or ""
        failed_attempts = self._payment_log_repository.count_with_status(
            reservation.reservation_id, PAYMENT_STATUS_REFUND_FAILED
        )
        result = self._payment_gateway.refund(
            payment_reference=payment_reference,
            amount_cents=amount_cents,
            reason_code=reason_code,
            idempotency_key=refund_idempotency_key(
                reservation.reservation_id, amount_cents, failed_attempts
            ),
        )

        now = self._policy.now()
        if not result.success:
            record_refund("failed")
            self._payment_log_repository.record(
                PaymentLogEntry(
                    reservation_id=reservation.reservation_id,
                    external_reference=payment_reference,
                    amount_cents=amount_cents,
                    currency=reservation.deposit.currency,
                    status=PAYMENT_STATUS_REFUND_FAILED,
                    created_at=now,
                    error_message=result.error,
                    metadata={"reasonCode": reason_code.value, "reason": request_dto.reason},
                )
            )
            logger.warning(
                "refund_failed",
                extra={"reservation_id": str(reservation.reservation_id), "error": result.error},
            )
            raise PaymentCollaboratorError(result.error or "refund failed")

        amount = Money(amount_cents=amount_cents, currency=reservation.deposit.currency)
        previous, refunded, modification = self._record(
            reservation, amount, now, actor=trace_ctx.actor, reason=request_dto.reason
        )

        self._payment_log_repository.record(
            PaymentLogEntry(
                reservation_id=reservation.reservation_id,
                external_reference=result.refund_reference or payment_reference,
                amount_cents=amount_cents,
                currency=amount.currency,
                status=PAYMENT_STATUS_REFUNDED,
                created_at=now,
                metadata={
                    "reasonCode": reason_code.value,
                    "reason": request_dto.reason,
                    "paymentReference": payment_reference,
                    "gatewayStatus": result.status,
                },
            )
        )
        record_refund("succeeded")
        record_transition(from_status=previous.status, to_status=refunded.status)
        logger.info(
            "reservation_refunded",
            extra={"reservation_id": str(refunded.reservation_id), "amount_cents": amount_cents},
        )
        if request_dto.notify:
            announce_modification(
                self._publisher,
                self._reservation_repository,
                modification,
                event_type="reservation.refunded",
                occurred_at=now,
                reservation=refunded,
                trace_ctx=trace_ctx,
                extra={"refundReference": result.refund_reference, "amountCents": amount_cents},
            )

        return RefundResponse(
            refund=RefundDetailsResponse(
                refundReference=result.refund_reference,
                amount=to_money_response(amount),
                status=result.status,
                refundedAt=now,
            ),
            reservation=to_reservation_response(refunded),
        )

    def _record(
        self,
        reservation: Reservation,
        amount: Money,
        now: datetime,
        *,
        actor: str,
        reason: str | None,
    ) -> tuple[Reservation, Reservation, ReservationModification]:
        current = reservation
        for _ in range(_RECORD_ATTEMPTS):
            refunded = current.apply_refund(amount, now)
            modification = new_modification(
                current, refunded, actor=actor, reason=reason, now=now
            )
            try:
                persisted = self._reservation_repository.save_refund(refunded, modification)
            except RefundAlreadyRecordedError as exc:
                record_refund("already_refunded")
                raise AlreadyRefundedError(
                    f"deposit for {reservation.reference} has already been refunded"
                ) from exc
            except OptimisticConcurrencyError:
                current = load_reservation(
                    self._reservation_repository, reservation.reservation_id
                )
                logger.info(
                    "refund_record_retry",
                    extra={
                        "reservation_id": str(reservation.reservation_id),
                        "status": current.status.value,
                    },
                )
                try:
                    current.ensure_refundable()
                except RefundStateError as exc:
                    logger.error(
                        "refund_unrecorded",
                        extra={"reservation_id": str(reservation.reservation_id)},
                    )
                    if current.deposit_refunded:
                        record_refund("already_refunded")
                        raise AlreadyRefundedError(str(exc)) from exc
                    raise NotRefundableError(str(exc)) from exc
                continue
            return current, persisted, modification
        raise ReservationChangedError(
            f"reservation {reservation.reference} kept changing while recording its refund"
        )
