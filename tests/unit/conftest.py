from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rsv.application.booking_policy import BookingPolicy
from rsv.application.dto.requests import CreateReservationRequest
from rsv.application.locks import TableNightLocks
from rsv.application.ports.payments import RefundReasonCode, RefundResult
from rsv.application.ports.repositories import (
    ClaimConflictError,
    CustomerRecord,
    OptimisticConcurrencyError,
    PaymentLogEntry,
    RefundAlreadyRecordedError,
)
from rsv.application.use_cases.availability import AvailabilityResolver
from rsv.application.use_cases.cancel_reservation import CancelReservation
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.create_reservation import CreateReservation
from rsv.application.use_cases.modify_reservation import ModifyReservation
from rsv.application.use_cases.refund_reservation import RefundReservation
from rsv.application.use_cases.reservation_status import ReservationStatusService
from rsv.application.use_cases.table_blocks import CreateTableBlock
from rsv.domain.calendar.hours import default_calendar
from rsv.domain.common.ids import (
    CustomerId,
    ModificationId,
    ReservationId,
    TableBlockId,
    TableId,
)
from rsv.domain.reservation.entities import Reservation, ReservationModification
from rsv.domain.table.entities import Floor, Table, TableBlock

NOW = datetime(2025, 12, 1, 12, 0, tzinfo=timezone.utc)
NIGHT = date(2025, 12, 5)


class FakeTableRepository:
    def __init__(self, tables: list[Table]) -> None:
        self.tables = {table.table_id: table for table in tables}

    def get(self, table_id: TableId) -> Table | None:
        return self.tables.get(table_id)

    def get_by_number(self, table_number: int) -> Table | None:
        for table in self.tables.values():
            if table.table_number == table_number:
                return table
        return None

    def list_all(self) -> list[Table]:
        return list(self.tables.values())


class FakeTableBlockRepository:
    def __init__(self) -> None:
        self.blocks: dict[TableBlockId, TableBlock] = {}

    def add(self, block: TableBlock) -> None:
        self.blocks[block.block_id] = block

    def get(self, block_id: TableBlockId) -> TableBlock | None:
        return self.blocks.get(block_id)

    def delete(self, block_id: TableBlockId) -> bool:
        return self.blocks.pop(block_id, None) is not None

    def list_blocks(
        self,
        table_id: TableId | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[TableBlock]:
        return [
            block
            for block in self.blocks.values()
            if (table_id is None or block.table_id == table_id)
            and (start is None or block.end_date >= start)
            and (end is None or block.start_date <= end)
        ]

    def blocked_table_ids(self, on_date: date) -> set[TableId]:
        return {block.table_id for block in self.blocks.values() if block.covers(on_date)}


class FakeReservationRepository:
    """In-memory ledger that enforces the one-holder-per-table-night rule on write."""

    def __init__(self) -> None:
        self.reservations: dict[ReservationId, Reservation] = {}
        self.modifications: list[ReservationModification] = []
        self.writes = 0
        self._stale_reads: dict[ReservationId, Reservation] = {}

    def serve_once(self, reservation: Reservation) -> None:
        """Hand out this copy on the next get, as a request that read it earlier would."""
        self._stale_reads[reservation.reservation_id] = reservation

    def get(self, reservation_id: ReservationId) -> Reservation | None:
        if reservation_id in self._stale_reads:
            return self._stale_reads.pop(reservation_id)
        return self.reservations.get(reservation_id)

    def get_by_reference(self, reference: str) -> Reservation | None:
        for reservation in self.reservations.values():
            if reservation.reference == reference:
                return reservation
        return None

    def reference_exists(self, reference: str) -> bool:
        return self.get_by_reference(reference) is not None

    def held_on(
        self,
        on_date: date,
        exclude_reservation_id: ReservationId | None = None,
    ) -> dict[TableId, ReservationId]:
        held: dict[TableId, ReservationId] = {}
        for reservation in self.reservations.values():
            if reservation.reservation_id == exclude_reservation_id:
                continue
            if reservation.is_active and reservation.reservation_date == on_date:
                for table_id in reservation.held_table_ids:
                    held[table_id] = reservation.reservation_id
        return held

    def active_in_range(self, table_id: TableId, start: date, end: date) -> list[Reservation]:
        return [
            reservation
            for reservation in self.reservations.values()
            if reservation.is_active
            and table_id in reservation.held_table_ids
            and start <= reservation.reservation_date <= end
        ]

    def add(self, reservation: Reservation) -> None:
        self._check_claims(reservation)
        self.reservations[reservation.reservation_id] = reservation
        self.writes += 1

    def save(
        self,
        reservation: Reservation,
        modification: ReservationModification | None = None,
    ) -> Reservation:
        self._check_version(reservation)
        self._check_claims(reservation)
        return self._store(reservation, modification)

    def save_refund(
        self,
        reservation: Reservation,
        modification: ReservationModification,
    ) -> Reservation:
        stored = self.reservations[reservation.reservation_id]
        if stored.deposit_refunded:
            raise RefundAlreadyRecordedError("refund already recorded")
        self._check_version(reservation)
        return self._store(reservation, modification)

    def mark_notification_sent(self, modification_id: ModificationId) -> None:
        self.modifications = [
            replace(item, notification_sent=True)
            if item.modification_id == modification_id
            else item
            for item in self.modifications
        ]

    def _store(
        self,
        reservation: Reservation,
        modification: ReservationModification | None,
    ) -> Reservation:
        persisted = replace(reservation, version=reservation.version + 1)
        self.reservations[reservation.reservation_id] = persisted
        if modification is not None:
            self.modifications.append(modification)
        self.writes += 1
        return persisted

    def _check_version(self, reservation: Reservation) -> None:
        stored = self.reservations.get(reservation.reservation_id)
        if stored is None or stored.version != reservation.version:
            raise OptimisticConcurrencyError("reservation version conflict")

    def list_modifications(self, reservation_id: ReservationId) -> list[ReservationModification]:
        return [item for item in self.modifications if item.reservation_id == reservation_id]

    def _check_claims(self, reservation: Reservation) -> None:
        if not reservation.is_active:
            return
        held = self.held_on(
            reservation.reservation_date, exclude_reservation_id=reservation.reservation_id
        )
        for table_id in reservation.held_table_ids:
            if table_id in held:
                raise ClaimConflictError("table night already claimed", held[table_id])


class FakeCustomerDirectory:
    def __init__(self) -> None:
        self.customers: dict[str, CustomerRecord] = {}

    def find_or_create(self, name: str, email: str, phone: str | None) -> CustomerRecord:
        key = email.lower()
        if key not in self.customers:
            first, _, last = name.partition(" ")
            self.customers[key] = CustomerRecord(
                customer_id=CustomerId(f"cus_{len(self.customers) + 1:03d}"),
                first_name=first,
                last_name=last,
                email=key,
                phone=phone,
            )
        return self.customers[key]

    def get(self, customer_id: CustomerId) -> CustomerRecord | None:
        for customer in self.customers.values():
            if customer.customer_id == customer_id:
                return customer
        return None


class RecordingPublisher:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[tuple[str, str]] = []

    def publish(self, channel: str, message: str) -> None:
        if self.fail:
            raise RuntimeError("redis unavailable")
        self.messages.append((channel, message))


class FakePaymentGateway:
    def __init__(self, result: RefundResult | None = None) -> None:
        self.result = result or RefundResult(
            success=True, refund_reference="re_001", amount_cents=5000, status="succeeded"
        )
        self.calls: list[dict[str, Any]] = []

    def refund(
        self,
        payment_reference: str,
        amount_cents: int,
        reason_code: RefundReasonCode,
        idempotency_key: str,
    ) -> RefundResult:
        self.calls.append(
            {
                "payment_reference": payment_reference,
                "amount_cents": amount_cents,
                "reason_code": reason_code,
                "idempotency_key": idempotency_key,
            }
        )
        return self.result


class FakePaymentLogRepository:
    def __init__(self) -> None:
        self.entries: list[PaymentLogEntry] = []

    def record(self, entry: PaymentLogEntry) -> None:
        self.entries.append(entry)

    def count_with_status(self, reservation_id: ReservationId, status: str) -> int:
        return sum(
            1
            for entry in self.entries
            if entry.reservation_id == reservation_id and entry.status == status
        )


def venue_tables() -> list[Table]:
    return [
        Table(
            table_id=TableId("tbl_01"),
            table_number=1,
            floor=Floor.UPSTAIRS,
            capacity_min=4,
            capacity_max=12,
            is_vip=True,
        ),
        Table(
            table_id=TableId("tbl_02"),
            table_number=2,
            floor=Floor.UPSTAIRS,
            capacity_min=4,
            capacity_max=8,
        ),
        Table(
            table_id=TableId("tbl_06"),
            table_number=6,
            floor=Floor.UPSTAIRS,
            capacity_min=2,
            capacity_max=4,
        ),
        Table(
            table_id=TableId("tbl_15"),
            table_number=15,
            floor=Floor.DOWNSTAIRS,
            capacity_min=2,
            capacity_max=6,
            combinable_with=(16,),
            features=("Next to bar",),
        ),
        Table(
            table_id=TableId("tbl_16"),
            table_number=16,
            floor=Floor.DOWNSTAIRS,
            capacity_min=2,
            capacity_max=6,
            combinable_with=(15,),
            features=("Next to bar",),
        ),
    ]


@dataclass
class Venue:
    tables: FakeTableRepository
    blocks: FakeTableBlockRepository = field(default_factory=FakeTableBlockRepository)
    reservations: FakeReservationRepository = field(default_factory=FakeReservationRepository)
    customers: FakeCustomerDirectory = field(default_factory=FakeCustomerDirectory)
    publisher: RecordingPublisher = field(default_factory=RecordingPublisher)
    gateway: FakePaymentGateway = field(default_factory=FakePaymentGateway)
    payment_logs: FakePaymentLogRepository = field(default_factory=FakePaymentLogRepository)
    locks: TableNightLocks = field(default_factory=TableNightLocks)
    policy: BookingPolicy = field(default_factory=lambda: BookingPolicy(clock=lambda: NOW))
    calendar: Any = field(default_factory=default_calendar)

    @property
    def resolver(self) -> AvailabilityResolver:
        return AvailabilityResolver(
            table_repository=self.tables,
            block_repository=self.blocks,
            reservation_repository=self.reservations,
        )

    def create_reservation(self) -> CreateReservation:
        return CreateReservation(
            resolver=self.resolver,
            reservation_repository=self.reservations,
            customer_directory=self.customers,
            publisher=self.publisher,
            calendar=self.calendar,
            policy=self.policy,
            locks=self.locks,
        )

    def modify_reservation(self) -> ModifyReservation:
        return ModifyReservation(
            resolver=self.resolver,
            reservation_repository=self.reservations,
            customer_directory=self.customers,
            publisher=self.publisher,
            calendar=self.calendar,
            policy=self.policy,
            locks=self.locks,
        )

    def cancel_reservation(self) -> CancelReservation:
        return CancelReservation(
            reservation_repository=self.reservations,
            publisher=self.publisher,
            policy=self.policy,
        )

    def refund_reservation(self) -> RefundReservation:
        return RefundReservation(
            reservation_repository=self.reservations,
            payment_gateway=self.gateway,
            payment_log_repository=self.payment_logs,
            publisher=self.publisher,
            policy=self.policy,
        )

    def status_service(self) -> ReservationStatusService:
        return ReservationStatusService(
            reservation_repository=self.reservations,
            publisher=self.publisher,
            policy=self.policy,
        )

    def create_table_block(self) -> CreateTableBlock:
        return CreateTableBlock(
            table_repository=self.tables,
            block_repository=self.blocks,
            reservation_repository=self.reservations,
            policy=self.policy,
            locks=self.locks,
        )

    def stored(self, reservation_id: str) -> Reservation:
        reservation = self.reservations.get(ReservationId(reservation_id))
        assert reservation is not None
        return reservation

    def mark_paid(self, reservation_id: str, payment_reference: str = "pi_001") -> Reservation:
        reservation = replace(
            self.stored(reservation_id), deposit_paid=True, payment_reference=payment_reference
        )
        self.reservations.reservations[reservation.reservation_id] = reservation
        return reservation


@pytest.fixture
def venue() -> Venue:
    return Venue(tables=FakeTableRepository(venue_tables()))


@pytest.fixture
def trace_ctx() -> TraceContext:
    return TraceContext(trace_id="trace-1", request_id="req-1", actor="host@venue")


@pytest.fixture
def booking_request() -> Callable[..., CreateReservationRequest]:
    def build(
        table_id: str = "tbl_02",
        on_date: date = NIGHT,
        time_slot: str = "23:00",
        party_size: int = 4,
        email: str = "ada@example.com",
        name: str = "Ada Lovelace",
        captured: bool = False,
        payment_reference: str | None = None,
    ) -> CreateReservationRequest:
        return CreateReservationRequest(
            table_id=table_id,
            date=on_date,
            time_slot=time_slot,
            party_size=party_size,
            customer={"name": name, "email": email, "phone": "+44 7700 900000"},
            deposit={"captured": captured, "payment_reference": payment_reference},
        )

    return build
