from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from rsv.domain.common.ids import ModificationId
from rsv.domain.reservation.entities import (
    Reservation,
    ReservationModification,
    diff_reservations,
)


def new_modification(
    before: Reservation,
    after: Reservation,
    *,
    actor: str,
    reason: str | None,
    now: datetime,
    notification_sent: bool = False,
) -> ReservationModification:
    """Audit record holding pre/post images of the fields that changed."""
    diff = diff_reservations(before, after)
    return ReservationModification(
        modification_id=ModificationId(f"mod_{uuid4().hex[:12]}"),
        reservation_id=before.reservation_id,
        actor=actor,
        previous_values=diff.previous,
        new_values=diff.new,
        reason=reason,
        created_at=now,
        notification_sent=notification_sent,
    )
