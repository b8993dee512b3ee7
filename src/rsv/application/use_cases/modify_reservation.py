from __future__ import annotations

import logging
from dataclasses import replace

from rsv.application.booking_policy import BookingPolicy
from rsv.application.dto.requests import ModifyReservationRequest
from rsv.application.dto.responses import ReservationResponse
from rsv.application.locks import TableNightLocks, default_table_night_locks
from rsv.application.mappers.reservation_mapper import to_reservation_response
from rsv.application.metrics.reservation_lifecycle import (
    record_availability_conflict,
    record_modification,
)
from rsv.application.ports.publisher import EventPublisher
from rsv.application.ports.repositories import (
    ClaimConflictError,
    CustomerDirectory,
    OptimisticConcurrencyError,
    ReservationRepository,
)
from rsv.application.use_cases.audit import new_modification
from rsv.application.use_cases.availability import AvailabilityResolver
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.create_reservation import (
    build_conflict,
    ensure_not_blocked,
    validate_arrival,
    validate_booking_date,
    validate_capacity,
)
from rsv.application.use_cases.get_reservation import (
    ReservationChangedError,
    load_reservation,
)
from rsv.application.use_cases.notifications import announce_modification
from rsv.domain.calendar.hours import OperatingHoursCalendar
from rsv.domain.calendar.slots import format_slot
from rsv.domain.common.ids import ReservationId
from rsv.domain.reservation.entities import Reservation

logger = logging.getLogger(__name__)


class ReservationNotModifiableError(Exception):
    pass


def _not_modifiable(reservation: Reservation) -> ReservationNotModifiableError:
    return ReservationNotModifiableError(
        f"reservation {reservation.reference} is {reservation.status.value} "
        "and can no longer be modified"
    )


class ModifyReservation:
    """Moves an active reservation to another date, slot, party size or table.

    The proposed table night is checked while every affected key is locked,
    excluding the reservation's own claim, and the change and its audit record
    are written together against the version that was read. Subscribers hear
    about it only after that write commits.
    """

    def __init__(
        self,
        resolver: AvailabilityResolver,
        reservation_repository: ReservationRepository,
        customer_directory: CustomerDirectory,
        publisher: EventPublisher,
        calendar: OperatingHoursCalendar,
        policy: BookingPolicy | None = None,
        locks: TableNightLocks | None = None,
    ) -> None:
        self._resolver = resolver
        self._reservation_repository = reservation_repository
        self._customer_directory = customer_directory
        self._publisher = publisher
        self._calendar = calendar
        self._policy = policy or BookingPolicy()
        self._locks = locks or default_table_night_locks()

    def execute(
        self,
        reservation_id: ReservationId,
        request_dto: ModifyReservationRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        reservation = load_reservation(self._reservation_repository, reservation_id)
        if not reservation.is_active:
            raise _not_modifiable(reservation)

        on_date = request_dto.date or reservation.reservation_date
        time_slot = request_dto.time_slot or format_slot(reservation.arrival_time)
        party_size = request_dto.party_size or reservation.party_size

        arrival = validate_arrival(self._calendar, on_date, time_slot)
        if on_date != reservation.reservation_date:
            validate_booking_date(self._policy, on_date)

        if request_dto.table_id is not None:
            candidate = self._resolver.resolve(request_dto.table_id)
        else:
            candidate = self._resolver.resolve_held(
                reservation.table_id, reservation.combined_table_id
            )
        validate_capacity(candidate, party_size)

        now = self._policy.now()
        table_ids = candidate.table_ids
        updated = replace(
            reservation,
            table_id=table_ids[0],
            combined_table_id=table_ids[1] if len(table_ids) > 1 else None,
            reservation_date=on_date,
            arrival_time=arrival,
            party_size=party_size,
            updated_at=now,
        )

        with self._locks.hold((table_id, on_date) for table_id in table_ids):
            ensure_not_blocked(self._resolver, candidate, on_date)
            holder_id = self._resolver.holder_of(
                candidate, on_date, exclude_reservation_id=reservation.reservation_id
            )
            if holder_id is not None:
                record_availability_conflict("modify")
                raise build_conflict(
                    self._reservation_repository, self._customer_directory, holder_id, on_date
                )

            modification = new_modification(
                reservation,
                updated,
                actor=trace_ctx.actor,
                reason=request_dto.reason,
                now=now,
            )
            try:
                updated = self._reservation_repository.save(updated, modification)
            except ClaimConflictError as exc:
                record_availability_conflict("modify")
                raise build_conflict(
                    self._reservation_repository,
                    self._customer_directory,
                    exc.reservation_id,
                    on_date,
                ) from exc
            except OptimisticConcurrencyError as exc:
                current = load_reservation(self._reservation_repository, reservation_id)
                if not current.is_active:
                    raise _not_modifiable(current) from exc
                raise ReservationChangedError(
                    f"reservation {reservation.reference} changed while being modified"
                ) from exc

        record_modification()
        logger.info(
            "reservation_modified",
            extra={
                "reservation_id": str(updated.reservation_id),
                "table_id": str(updated.table_id),
                "reservation_date": on_date.isoformat(),
            },
        )
        if request_dto.notify:
            announce_modification(
                self._publisher,
                self._reservation_repository,
                modification,
                event_type="reservation.modified",
                occurred_at=now,
                reservation=updated,
                trace_ctx=trace_ctx,
                extra={"previous": modification.previous_values},
            )
        return to_reservation_response(updated)
