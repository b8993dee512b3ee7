from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from rsv.application.dto.responses import (
    AvailabilityResponse,
    DayAvailabilityResponse,
    SlotsResponse,
    TableAvailabilityResponse,
    TableListResponse,
)
from rsv.application.mappers.table_mapper import (
    to_candidate_response,
    to_table_response,
    to_window_response,
)
from rsv.application.metrics.reservation_lifecycle import record_free_candidates
from rsv.application.ports.repositories import (
    ReservationRepository,
    TableBlockRepository,
    TableRepository,
)
from rsv.domain.calendar.hours import OperatingHoursCalendar
from rsv.domain.calendar.slots import format_slot, generate_slots
from rsv.domain.common.ids import ReservationId, TableId
from rsv.domain.table.entities import (
    COMBINED_PARTY_MAX,
    COMBINED_PARTY_MIN,
    AvailabilityCandidate,
    CombinedTables,
    SingleTable,
    Table,
    combine_tables,
    parse_combined_candidate_id,
)

logger = logging.getLogger(__name__)


class TableNotFoundError(Exception):
    pass


class InvalidPartySizeError(Exception):
    pass


@dataclass(frozen=True)
class NightOccupancy:
    held: dict[TableId, ReservationId]
    blocked: set[TableId]

    def is_free(self, table_id: TableId) -> bool:
        return table_id not in self.held and table_id not in self.blocked


class AvailabilityResolver:
    """Answers which tables are free on a night.

    A table is taken for the whole night by any pending or confirmed
    reservation, whatever its arrival slot, and by any blackout window
    covering the date.
    """

    def __init__(
        self,
        table_repository: TableRepository,
        block_repository: TableBlockRepository,
        reservation_repository: ReservationRepository,
    ) -> None:
        self._table_repository = table_repository
        self._block_repository = block_repository
        self._reservation_repository = reservation_repository

    def occupancy(
        self,
        on_date: date,
        exclude_reservation_id: ReservationId | None = None,
    ) -> NightOccupancy:
        return NightOccupancy(
            held=self._reservation_repository.held_on(
                on_date, exclude_reservation_id=exclude_reservation_id
            ),
            blocked=self._block_repository.blocked_table_ids(on_date),
        )

    def is_blocked(self, table_id: TableId, on_date: date) -> bool:
        return table_id in self._block_repository.blocked_table_ids(on_date)

    def free_candidates(self, on_date: date, party_size: int) -> list[AvailabilityCandidate]:
        tables = sorted(
            (table for table in self._table_repository.list_all() if table.is_active),
            key=lambda table: table.table_number,
        )
        occupancy = self.occupancy(on_date)

        candidates: list[AvailabilityCandidate] = [
            SingleTable(table)
            for table in tables
            if table.seats(party_size) and occupancy.is_free(table.table_id)
        ]
        if COMBINED_PARTY_MIN <= party_size <= COMBINED_PARTY_MAX:
            candidates.extend(self._combined_candidates(tables, occupancy, party_size))
        return candidates

    def resolve(self, table_ref: str) -> AvailabilityCandidate:
        numbers = parse_combined_candidate_id(table_ref)
        if numbers is None:
            table = self._table_repository.get(TableId(table_ref))
            if table is None:
                raise TableNotFoundError(f"table not found: {table_ref}")
            return SingleTable(table)

        first = self._table_repository.get_by_number(numbers[0])
        second = self._table_repository.get_by_number(numbers[1])
        if first is None or second is None or not first.can_combine_with(second):
            raise TableNotFoundError(f"combined table not found: {table_ref}")
        return combine_tables(first, second)

    def resolve_held(
        self,
        table_id: TableId,
        combined_table_id: TableId | None,
    ) -> AvailabilityCandidate:
        table = self._table_repository.get(table_id)
        if table is None:
            raise TableNotFoundError(f"table not found: {table_id}")
        if combined_table_id is None:
            return SingleTable(table)
        partner = self._table_repository.get(combined_table_id)
        if partner is None:
            raise TableNotFoundError(f"table not found: {combined_table_id}")
        return combine_tables(table, partner)

    def is_free(
        self,
        candidate: AvailabilityCandidate,
        on_date: date,
        exclude_reservation_id: ReservationId | None = None,
    ) -> bool:
        occupancy = self.occupancy(on_date, exclude_reservation_id=exclude_reservation_id)
        return all(occupancy.is_free(table_id) for table_id in candidate.table_ids)

    def holder_of(
        self,
        candidate: AvailabilityCandidate,
        on_date: date,
        exclude_reservation_id: ReservationId | None = None,
    ) -> ReservationId | None:
        held = self._reservation_repository.held_on(
            on_date, exclude_reservation_id=exclude_reservation_id
        )
        for table_id in candidate.table_ids:
            if table_id in held:
                return held[table_id]
        return None

    def _combined_candidates(
        self,
        tables: list[Table],
        occupancy: NightOccupancy,
        party_size: int,
    ) -> list[CombinedTables]:
        combined: list[CombinedTables] = []
        for index, first in enumerate(tables):
            for second in tables[index + 1 :]:
                if not first.can_combine_with(second):
                    continue
                if not (occupancy.is_free(first.table_id) and occupancy.is_free(second.table_id)):
                    continue
                candidate = combine_tables(first, second)
                if candidate.seats(party_size):
                    combined.append(candidate)
        return combined


class FindFreeTables:
    def __init__(self, resolver: AvailabilityResolver) -> None:
        self._resolver = resolver

    def execute(self, on_date: date, party_size: int) -> AvailabilityResponse:
        if party_size < 1:
            raise InvalidPartySizeError("party size must be >= 1")
        candidates = self._resolver.free_candidates(on_date, party_size)
        record_free_candidates(len(candidates))
        logger.info(
            "availability_resolved",
            extra={"reservation_date": on_date.isoformat(), "candidates": len(candidates)},
        )
        return AvailabilityResponse(
            date=on_date,
            partySize=party_size,
            candidates=[to_candidate_response(candidate) for candidate in candidates],
        )


class CheckTableAvailability:
    def __init__(self, resolver: AvailabilityResolver) -> None:
        self._resolver = resolver

    def execute(
        self,
        table_id: str,
        on_date: date,
        exclude_reservation_id: ReservationId | None = None,
    ) -> TableAvailabilityResponse:
        candidate = self._resolver.resolve(table_id)
        available = self._resolver.is_free(
            candidate, on_date, exclude_reservation_id=exclude_reservation_id
        )
        return TableAvailabilityResponse(tableId=table_id, date=on_date, available=available)


class GetTimeSlots:
    def __init__(self, calendar: OperatingHoursCalendar) -> None:
        self._calendar = calendar

    def execute(self, on_date: date) -> SlotsResponse:
        return SlotsResponse(
            date=on_date,
            window=to_window_response(self._calendar.resolve_window(on_date)),
            slots=[format_slot(slot) for slot in generate_slots(self._calendar, on_date)],
        )


class GetDayAvailability:
    def __init__(
        self,
        table_repository: TableRepository,
        resolver: AvailabilityResolver,
        calendar: OperatingHoursCalendar,
    ) -> None:
        self._table_repository = table_repository
        self._resolver = resolver
        self._calendar = calendar

    def execute(self, on_date: date) -> DayAvailabilityResponse:
        tables = sorted(
            (table for table in self._table_repository.list_all() if table.is_active),
            key=lambda table: table.table_number,
        )
        occupancy = self._resolver.occupancy(on_date)
        available = [table for table in tables if occupancy.is_free(table.table_id)]
        can_combine = any(
            first.can_combine_with(second)
            for index, first in enumerate(available)
            for second in available[index + 1 :]
        )
        return DayAvailabilityResponse(
            date=on_date,
            window=to_window_response(self._calendar.resolve_window(on_date)),
            totalTables=len(tables),
            bookedTableNumbers=[t.table_number for t in tables if t.table_id in occupancy.held],
            blockedTableNumbers=[t.table_number for t in tables if t.table_id in occupancy.blocked],
            availableTableNumbers=[table.table_number for table in available],
            canCombineTables=can_combine,
        )


class ListTables:
    def __init__(self, table_repository: TableRepository) -> None:
        self._table_repository = table_repository

    def execute(self, include_inactive: bool = False) -> TableListResponse:
        tables = sorted(self._table_repository.list_all(), key=lambda table: table.table_number)
        return TableListResponse(
            tables=[
                to_table_response(table)
                for table in tables
                if include_inactive or table.is_active
            ]
        )
