from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from rsv.application.mappers.event_envelope import serialize_reservation_event
from rsv.application.metrics.reservation_lifecycle import record_notification_failure
from rsv.application.ports.publisher import RESERVATION_EVENTS_CHANNEL, EventPublisher
from rsv.application.ports.repositories import ReservationRepository
from rsv.application.use_cases.context import TraceContext
from rsv.domain.reservation.entities import Reservation, ReservationModification

logger = logging.getLogger(__name__)


def publish_reservation_event(
    publisher: EventPublisher,
    *,
    event_type: str,
    occurred_at: datetime,
    reservation: Reservation,
    trace_ctx: TraceContext,
    extra: dict[str, Any] | None = None,
) -> bool:
    """Publish a reservation event; returns False instead of raising on failure."""
    message = serialize_reservation_event(
        event_type=event_type,
        occurred_at=occurred_at,
        reservation=reservation,
        trace_id=trace_ctx.trace_id,
        request_id=trace_ctx.request_id,
        extra=extra,
    )
    try:
        publisher.publish(channel=RESERVATION_EVENTS_CHANNEL, message=message)
    except Exception:
        record_notification_failure(event_type)
        logger.warning(
            "notification_failed",
            exc_info=True,
            extra={
                "event_type": event_type,
                "reservation_id": str(reservation.reservation_id),
            },
        )
        return False
    return True


def announce_modification(
    publisher: EventPublisher,
    reservation_repository: ReservationRepository,
    modification: ReservationModification,
    *,
    event_type: str,
    occurred_at: datetime,
    reservation: Reservation,
    trace_ctx: TraceContext,
    extra: dict[str, Any] | None = None,
) -> bool:
    """Publish for a committed change and flag its audit record once delivered."""
    sent = publish_reservation_event(
        publisher,
        event_type=event_type,
        occurred_at=occurred_at,
        reservation=reservation,
        trace_ctx=trace_ctx,
        extra=extra,
    )
    if sent:
        reservation_repository.mark_notification_sent(modification.modification_id)
    return sent
