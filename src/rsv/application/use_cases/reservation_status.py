from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from rsv.application.booking_policy import BookingPolicy
from rsv.application.dto.responses import ReservationResponse
from rsv.application.mappers.reservation_mapper import to_reservation_response
from rsv.application.metrics.reservation_lifecycle import record_transition
from rsv.application.ports.publisher import EventPublisher
from rsv.application.ports.repositories import (
    OptimisticConcurrencyError,
    ReservationRepository,
)
from rsv.application.use_cases.audit import new_modification
from rsv.application.use_cases.cancel_reservation import InvalidReservationTransitionError
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.get_reservation import (
    ReservationChangedError,
    load_reservation,
)
from rsv.application.use_cases.notifications import announce_modification
from rsv.domain.common.ids import ReservationId
from rsv.domain.reservation.entities import Reservation, ReservationTransitionError

logger = logging.getLogger(__name__)


class ReservationStatusService:
    """Deposit confirmation and end-of-night outcomes."""

    def __init__(
        self,
        reservation_repository: ReservationRepository,
        publisher: EventPublisher,
        policy: BookingPolicy | None = None,
    ) -> None:
        self._reservation_repository = reservation_repository
        self._publisher = publisher
        self._policy = policy or BookingPolicy()

    def confirm_deposit(
        self,
        reservation_id: ReservationId,
        payment_reference: str,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        return self._apply(
            reservation_id,
            lambda reservation, now: reservation.confirm_deposit(payment_reference, now),
            event_type="reservation.confirmed",
            reason="deposit captured",
            trace_ctx=trace_ctx,
        )

    def complete(
        self,
        reservation_id: ReservationId,
        trace_ctx: TraceContext,
        reason: str | None = None,
    ) -> ReservationResponse:
        return self._apply(
            reservation_id,
            lambda reservation, now: reservation.complete(now),
            event_type="reservation.completed",
            reason=reason,
            trace_ctx=trace_ctx,
        )

    def mark_no_show(
        self,
        reservation_id: ReservationId,
        trace_ctx: TraceContext,
        reason: str | None = None,
    ) -> ReservationResponse:
        return self._apply(
            reservation_id,
            lambda reservation, now: reservation.mark_no_show(now),
            event_type="reservation.no_show",
            reason=reason,
            trace_ctx=trace_ctx,
        )

    def _apply(
        self,
        reservation_id: ReservationId,
        change: Callable[[Reservation, datetime], Reservation],
        *,
        event_type: str,
        reason: str | None,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        reservation = load_reservation(self._reservation_repository, reservation_id)
        now = self._policy.now()
        try:
            updated = change(reservation, now)
        except ReservationTransitionError as exc:
            raise InvalidReservationTransitionError(str(exc)) from exc

        modification = new_modification(
            reservation, updated, actor=trace_ctx.actor, reason=reason, now=now
        )
        try:
            updated = self._reservation_repository.save(updated, modification)
        except OptimisticConcurrencyError as exc:
            current = load_reservation(self._reservation_repository, reservation_id)
            try:
                change(current, now)
            except ReservationTransitionError as transition_exc:
                raise InvalidReservationTransitionError(str(transition_exc)) from exc
            raise ReservationChangedError(
                f"reservation {reservation.reference} changed while updating its status"
            ) from exc

        record_transition(from_status=reservation.status, to_status=updated.status)
        logger.info(
            "reservation_status_changed",
            extra={
                "reservation_id": str(updated.reservation_id),
                "status": updated.status.value,
            },
        )
        announce_modification(
            self._publisher,
            self._reservation_repository,
            modification,
            event_type=event_type,
            occurred_at=now,
            reservation=updated,
            trace_ctx=trace_ctx,
        )
        return to_reservation_response(updated)
