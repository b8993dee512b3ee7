from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Protocol

from rsv.domain.common.ids import (
    CustomerId,
    ModificationId,
    ReservationId,
    TableBlockId,
    TableId,
)
from rsv.domain.reservation.entities import Reservation, ReservationModification
from rsv.domain.table.entities import Table, TableBlock


class TableRepository(Protocol):
    def get(self, table_id: TableId) -> Table | None: ...

    def get_by_number(self, table_number: int) -> Table | None: ...

    def list_all(self) -> list[Table]: ...


class TableBlockRepository(Protocol):
    def add(self, block: TableBlock) -> None: ...

    def get(self, block_id: TableBlockId) -> TableBlock | None: ...

    def delete(self, block_id: TableBlockId) -> bool: ...

    def list_blocks(
        self,
        table_id: TableId | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[TableBlock]: ...

    def blocked_table_ids(self, on_date: date) -> set[TableId]: ...


class ReservationRepository(Protocol):
    def get(self, reservation_id: ReservationId) -> Reservation | None: ...

    def get_by_reference(self, reference: str) -> Reservation | None: ...

    def reference_exists(self, reference: str) -> bool: ...

    def held_on(
        self,
        on_date: date,
        exclude_reservation_id: ReservationId | None = None,
    ) -> dict[TableId, ReservationId]: ...

    def active_in_range(self, table_id: TableId, start: date, end: date) -> list[Reservation]: ...

    def add(self, reservation: Reservation) -> None: ...

    def save(
        self,
        reservation: Reservation,
        modification: ReservationModification | None = None,
    ) -> Reservation: ...

    def save_refund(
        self,
        reservation: Reservation,
        modification: ReservationModification,
    ) -> Reservation: ...

    def list_modifications(
        self, reservation_id: ReservationId
    ) -> list[ReservationModification]: ...

    def mark_notification_sent(self, modification_id: ModificationId) -> None: ...


class CustomerDirectory(Protocol):
    def find_or_create(
        self,
        name: str,
        email: str,
        phone: str | None,
    ) -> CustomerRecord: ...

    def get(self, customer_id: CustomerId) -> CustomerRecord | None: ...


class PaymentLogRepository(Protocol):
    def record(self, entry: PaymentLogEntry) -> None: ...

    def count_with_status(self, reservation_id: ReservationId, status: str) -> int: ...


class ClaimConflictError(Exception):
    """Another active reservation already holds one of the table nights."""

    def __init__(self, message: str, reservation_id: ReservationId | None = None) -> None:
        super().__init__(message)
        self.reservation_id = reservation_id


class RefundAlreadyRecordedError(Exception):
    pass


class OptimisticConcurrencyError(Exception):
    """The stored reservation no longer has the version the write was based on."""


@dataclass(frozen=True)
class CustomerRecord:
    customer_id: CustomerId
    first_name: str
    last_name: str
    email: str
    phone: str | None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class PaymentLogEntry:
    reservation_id: ReservationId
    external_reference: str
    amount_cents: int
    currency: str
    status: str
    created_at: datetime
    error_message: str | None = None
    metadata: dict[str, Any] | None = None
