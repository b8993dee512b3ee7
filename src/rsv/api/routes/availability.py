from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query

from rsv.application.dto.responses import (
    AvailabilityResponse,
    DayAvailabilityResponse,
    SlotsResponse,
    TableAvailabilityResponse,
    TableListResponse,
)
from rsv.application.use_cases.availability import (
    AvailabilityResolver,
    CheckTableAvailability,
    FindFreeTables,
    GetDayAvailability,
    GetTimeSlots,
    ListTables,
)
from rsv.domain.common.ids import ReservationId
from rsv.infrastructure.config.settings import get_calendar
from rsv.infrastructure.db.repositories.block_repo import SqlAlchemyTableBlockRepository
from rsv.infrastructure.db.repositories.reservation_repo import SqlAlchemyReservationRepository
from rsv.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository

router = APIRouter(tags=["availability"])


def _resolver() -> AvailabilityResolver:
    return AvailabilityResolver(
        table_repository=SqlAlchemyTableRepository(),
        block_repository=SqlAlchemyTableBlockRepository(),
        reservation_repository=SqlAlchemyReservationRepository(),
    )


def _list_tables_use_case() -> ListTables:
    return ListTables(table_repository=SqlAlchemyTableRepository())


def _get_time_slots_use_case() -> GetTimeSlots:
    return GetTimeSlots(calendar=get_calendar())


def _find_free_tables_use_case() -> FindFreeTables:
    return FindFreeTables(resolver=_resolver())


def _get_day_availability_use_case() -> GetDayAvailability:
    return GetDayAvailability(
        table_repository=SqlAlchemyTableRepository(),
        resolver=_resolver(),
        calendar=get_calendar(),
    )


def _check_table_availability_use_case() -> CheckTableAvailability:
    return CheckTableAvailability(resolver=_resolver())


@router.get("/v1/tables", response_model=TableListResponse)
def list_tables(
    include_inactive: bool = Query(default=False, alias="includeInactive"),
) -> TableListResponse:
    return _list_tables_use_case().execute(include_inactive=include_inactive)


@router.get("/v1/slots/{reservation_date}", response_model=SlotsResponse)
def get_time_slots(reservation_date: date) -> SlotsResponse:
    return _get_time_slots_use_case().execute(on_date=reservation_date)


@router.get("/v1/availability/{reservation_date}", response_model=AvailabilityResponse)
def find_free_tables(
    reservation_date: date,
    party_size: int = Query(alias="partySize", ge=1, le=50),
) -> AvailabilityResponse:
    return _find_free_tables_use_case().execute(on_date=reservation_date, party_size=party_size)


@router.get(
    "/v1/availability/{reservation_date}/summary",
    response_model=DayAvailabilityResponse,
)
def get_day_availability(reservation_date: date) -> DayAvailabilityResponse:
    return _get_day_availability_use_case().execute(on_date=reservation_date)


@router.get(
    "/v1/tables/{table_id}/availability/{reservation_date}",
    response_model=TableAvailabilityResponse,
)
def check_table_availability(
    table_id: str,
    reservation_date: date,
    exclude_reservation_id: str | None = Query(default=None, alias="excludeReservationId"),
) -> TableAvailabilityResponse:
    return _check_table_availability_use_case().execute(
        table_id=table_id,
        on_date=reservation_date,
        exclude_reservation_id=(
            ReservationId(exclude_reservation_id) if exclude_reservation_id else None
        ),
    )
