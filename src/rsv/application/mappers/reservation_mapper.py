from __future__ import annotations

from rsv.application.dto.responses import (
    ModificationResponse,
    MoneyResponse,
    ReservationResponse,
)
from rsv.domain.calendar.slots import format_slot
from rsv.domain.common.money import Money
from rsv.domain.reservation.entities import Reservation, ReservationModification


def to_money_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=money.amount_cents, currency=money.currency)


def to_reservation_response(reservation: Reservation) -> ReservationResponse:
    return ReservationResponse(
        reservationId=str(reservation.reservation_id),
        reference=reservation.reference,
        tableId=str(reservation.table_id),
        combinedTableId=(
            str(reservation.combined_table_id) if reservation.combined_table_id else None
        ),
        customerId=str(reservation.customer_id),
        date=reservation.reservation_date,
        timeSlot=format_slot(reservation.arrival_time),
        partySize=reservation.party_size,
        status=reservation.status.value,
        deposit=to_money_response(reservation.deposit),
        depositPaid=reservation.deposit_paid,
        depositRefunded=reservation.deposit_refunded,
        refundAmount=(
            to_money_response(reservation.refund_amount) if reservation.refund_amount else None
        ),
        refundDate=reservation.refund_date,
        specialRequests=reservation.special_requests,
        createdAt=reservation.created_at,
        updatedAt=reservation.updated_at,
    )


def to_modification_response(modification: ReservationModification) -> ModificationResponse:
    return ModificationResponse(
        modificationId=str(modification.modification_id),
        reservationId=str(modification.reservation_id),
        actor=modification.actor,
        previousValues=dict(modification.previous_values),
        newValues=dict(modification.new_values),
        reason=modification.reason,
        notificationSent=modification.notification_sent,
        createdAt=modification.created_at,
    )
