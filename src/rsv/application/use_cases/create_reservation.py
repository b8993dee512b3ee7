from __future__ import annotations

import logging
from datetime import date, time
from uuid import uuid4

from rsv.application.booking_policy import BookingPolicy
from rsv.application.dto.requests import CreateReservationRequest
from rsv.application.dto.responses import ReservationResponse
from rsv.application.locks import TableNightLocks, default_table_night_locks
from rsv.application.mappers.reservation_mapper import to_reservation_response
from rsv.application.metrics.reservation_lifecycle import (
    record_availability_conflict,
    record_reservation_created,
)
from rsv.application.ports.publisher import EventPublisher
from rsv.application.ports.repositories import (
    ClaimConflictError,
    CustomerDirectory,
    ReservationRepository,
)
from rsv.application.use_cases.availability import AvailabilityResolver
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.notifications import publish_reservation_event
from rsv.domain.calendar.hours import OperatingHoursCalendar
from rsv.domain.calendar.slots import InvalidSlotFormatError, is_valid_slot, parse_slot
from rsv.domain.common.ids import ReservationId
from rsv.domain.reservation.entities import Reservation, ReservationStatus, generate_reference
from rsv.domain.table.entities import AvailabilityCandidate, CombinedTables

logger = logging.getLogger(__name__)

_REFERENCE_ATTEMPTS = 10


class BookingValidationError(Exception):
    def __init__(self, message: str, constraint: str) -> None:
        super().__init__(message)
        self.constraint = constraint
        self.details = {"constraint": constraint}


class AvailabilityConflictError(Exception):
    """The table (or one of a combined pair) is already taken for that night."""

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        customer_name: str | None = None,
        party_size: int | None = None,
    ) -> None:
        super().__init__(message)
        self.reference = reference
        self.customer_name = customer_name
        self.party_size = party_size
        self.details = {
            "reference": reference,
            "customerName": customer_name,
            "partySize": party_size,
        }


def validate_arrival(calendar: OperatingHoursCalendar, on_date: date, time_slot: str) -> time:
    try:
        arrival = parse_slot(time_slot)
    except InvalidSlotFormatError as exc:
        raise BookingValidationError(str(exc), constraint="TIME_SLOT") from exc
    if not is_valid_slot(calendar, on_date, arrival):
        window = calendar.resolve_window(on_date)
        prefix = f"{window.label}: " if window.label else ""
        raise BookingValidationError(
            f"{prefix}arrival {time_slot} is not a bookable slot for {on_date.isoformat()}",
            constraint="TIME_SLOT",
        )
    return arrival


def validate_booking_date(policy: BookingPolicy, on_date: date) -> None:
    if not policy.within_booking_window(on_date):
        raise BookingValidationError(
            f"reservations can only be made from today up to {policy.max_days_ahead} days ahead",
            constraint="BOOKING_WINDOW",
        )


def validate_capacity(candidate: AvailabilityCandidate, party_size: int) -> None:
    if isinstance(candidate, CombinedTables):
        if not all(table.is_active for table in (candidate.primary, candidate.partner)):
            raise BookingValidationError(
                f"{candidate.description} are not available for booking",
                constraint="TABLE_INACTIVE",
            )
        if not candidate.seats(party_size):
            raise BookingValidationError(
                f"party size must be between {candidate.capacity_min} and "
                f"{candidate.capacity_max} for combined tables",
                constraint="CAPACITY",
            )
        return

    table = candidate.table
    if not table.is_active:
        raise BookingValidationError(
            f"table {table.table_number} is not available for booking",
            constraint="TABLE_INACTIVE",
        )
    if not table.seats(party_size):
        raise BookingValidationError(
            f"party size must be between {table.capacity_min} and {table.capacity_max} "
            f"for table {table.table_number}",
            constraint="CAPACITY",
        )


def ensure_not_blocked(
    resolver: AvailabilityResolver,
    candidate: AvailabilityCandidate,
    on_date: date,
) -> None:
    for table_id in candidate.table_ids:
        if resolver.is_blocked(table_id, on_date):
            record_availability_conflict("blocked")
            raise AvailabilityConflictError(
                f"table {table_id} is blocked on {on_date.isoformat()}"
            )


def build_conflict(
    reservation_repository: ReservationRepository,
    customer_directory: CustomerDirectory,
    holder_id: ReservationId | None,
    on_date: date,
) -> AvailabilityConflictError:
    message = f"table is no longer available on {on_date.isoformat()}"
    holder = reservation_repository.get(holder_id) if holder_id else None
    if holder is None:
        return AvailabilityConflictError(message)
    customer = customer_directory.get(holder.customer_id)
    return AvailabilityConflictError(
        f"{message}: already held by {holder.reference}",
        reference=holder.reference,
        customer_name=customer.display_name if customer else None,
        party_size=holder.party_size,
    )


class CreateReservation:
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
        request_dto: CreateReservationRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        on_date = request_dto.date
        arrival = validate_arrival(self._calendar, on_date, request_dto.time_slot)
        validate_booking_date(self._policy, on_date)

        candidate = self._resolver.resolve(request_dto.table_id)
        validate_capacity(candidate, request_dto.party_size)

        customer = self._customer_directory.find_or_create(
            name=request_dto.customer.name,
            email=request_dto.customer.email,
            phone=request_dto.customer.phone,
        )

        now = self._policy.now()
        captured = request_dto.deposit.captured
        table_ids = candidate.table_ids
        reservation = Reservation(
            reservation_id=ReservationId(f"rsv_{uuid4().hex[:12]}"),
            reference=self._new_reference(),
            table_id=table_ids[0],
            combined_table_id=table_ids[1] if len(table_ids) > 1 else None,
            customer_id=customer.customer_id,
            reservation_date=on_date,
            arrival_time=arrival,
            party_size=request_dto.party_size,
            status=ReservationStatus.CONFIRMED if captured else ReservationStatus.PENDING,
            deposit=self._policy.deposit,
            deposit_paid=captured,
            payment_reference=request_dto.deposit.payment_reference,
            special_requests=request_dto.special_requests,
            created_at=now,
            updated_at=now,
        )

        with self._locks.hold((table_id, on_date) for table_id in table_ids):
            ensure_not_blocked(self._resolver, candidate, on_date)
            holder_id = self._resolver.holder_of(candidate, on_date)
            if holder_id is not None:
                record_availability_conflict("create")
                raise build_conflict(
                    self._reservation_repository, self._customer_directory, holder_id, on_date
                )
            try:
                self._reservation_repository.add(reservation)
            except ClaimConflictError as exc:
                record_availability_conflict("create")
                raise build_conflict(
                    self._reservation_repository,
                    self._customer_directory,
                    exc.reservation_id,
                    on_date,
                ) from exc

        record_reservation_created(reservation)
        logger.info(
            "reservation_created",
            extra={
                "reservation_id": str(reservation.reservation_id),
                "table_id": str(reservation.table_id),
                "reservation_date": on_date.isoformat(),
            },
        )
        publish_reservation_event(
            self._publisher,
            event_type="reservation.created",
            occurred_at=now,
            reservation=reservation,
            trace_ctx=trace_ctx,
        )
        return to_reservation_response(reservation)

    def _new_reference(self) -> str:
        for _ in range(_REFERENCE_ATTEMPTS):
            reference = generate_reference()
            if not self._reservation_repository.reference_exists(reference):
                return reference
        raise RuntimeError("could not allocate a unique reservation reference")
