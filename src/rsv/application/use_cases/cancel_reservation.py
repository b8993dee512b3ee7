from __future__ import annotations

import logging

from rsv.application.booking_policy import BookingPolicy
from rsv.application.dto.requests import CancelReservationRequest
from rsv.application.dto.responses import ReservationResponse
from rsv.application.mappers.reservation_mapper import to_reservation_response
from rsv.application.metrics.reservation_lifecycle import record_transition
from rsv.application.ports.publisher import EventPublisher
from rsv.application.ports.repositories import (
    OptimisticConcurrencyError,
    ReservationRepository,
)
from rsv.application.use_cases.audit import new_modification
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.get_reservation import (
    ReservationChangedError,
    load_reservation,
)
from rsv.application.use_cases.notifications import announce_modification
from rsv.domain.common.ids import ReservationId
from rsv.domain.reservation.entities import ReservationTransitionError

logger = logging.getLogger(__name__)


class InvalidReservationTransitionError(Exception):
    pass


class CancelReservation:
    def __init__(
        self,
        reservation_repository: ReservationRepository,
        publisher: EventPublisher,
        policy: BookingPolicy | None = None,
    ) -> None:
        self._reservation_repository = reservation_repository
        self._publisher = publisher
        self._policy = policy or BookingPolicy()

    def execute(
        self,
        reservation_id: ReservationId,
        request_dto: CancelReservationRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        reservation = load_reservation(self._reservation_repository, reservation_id)
        now = self._policy.now()
        try:
            cancelled = reservation.cancel(now)
        except ReservationTransitionError as exc:
            raise InvalidReservationTransitionError(str(exc)) from exc

        modification = new_modification(
            reservation,
            cancelled,
            actor=trace_ctx.actor,
            reason=request_dto.reason,
            now=now,
        )
        try:
            cancelled = self._reservation_repository.save(cancelled, modification)
        except OptimisticConcurrencyError as exc:
            current = load_reservation(self._reservation_repository, reservation_id)
            try:
                current.cancel(now)
            except ReservationTransitionError as transition_exc:
                raise InvalidReservationTransitionError(str(transition_exc)) from exc
            raise ReservationChangedError(
                f"reservation {reservation.reference} changed while cancelling"
            ) from exc

        record_transition(from_status=reservation.status, to_status=cancelled.status)
        logger.info(
            "reservation_cancelled",
            extra={
                "reservation_id": str(cancelled.reservation_id),
                "table_id": str(cancelled.table_id),
                "reservation_date": cancelled.reservation_date.isoformat(),
            },
        )
        if request_dto.notify:
            announce_modification(
                self._publisher,
                self._reservation_repository,
                modification,
                event_type="reservation.cancelled",
                occurred_at=now,
                reservation=cancelled,
                trace_ctx=trace_ctx,
                extra={"reason": request_dto.reason},
            )
        return to_reservation_response(cancelled)
