from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from rsv.domain.calendar.slots import format_slot
from rsv.domain.reservation.entities import Reservation

VENUE_SCOPE = "venue"


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    payload: dict[str, Any],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "scope": VENUE_SCOPE,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def _reservation_payload(reservation: Reservation) -> dict[str, Any]:
    return {
        "reservationId": str(reservation.reservation_id),
        "reference": reservation.reference,
        "tableId": str(reservation.table_id),
        "combinedTableId": (
            str(reservation.combined_table_id) if reservation.combined_table_id else None
        ),
        "customerId": str(reservation.customer_id),
        "date": reservation.reservation_date.isoformat(),
        "timeSlot": format_slot(reservation.arrival_time),
        "partySize": reservation.party_size,
        "status": reservation.status.value,
        "deposit": {
            "amountCents": reservation.deposit.amount_cents,
            "currency": reservation.deposit.currency,
        },
        "depositPaid": reservation.deposit_paid,
        "depositRefunded": reservation.deposit_refunded,
    }


def serialize_reservation_event(
    *,
    event_type: str,
    occurred_at: datetime,
    reservation: Reservation,
    trace_id: str | None,
    request_id: str | None,
    extra: dict[str, Any] | None = None,
) -> str:
    payload = _reservation_payload(reservation)
    if extra:
        payload.update(extra)
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        payload=payload,
        trace_id=trace_id,
        request_id=request_id,
    )
