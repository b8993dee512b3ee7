from __future__ import annotations

import secrets
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from rsv.domain.common.ids import CustomerId, ModificationId, ReservationId, TableId
from rsv.domain.common.money import Money

REFERENCE_PREFIX = "BR-"
REFERENCE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFERENCE_LENGTH = 6


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})

_ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.CANCELLED, ReservationStatus.COMPLETED, ReservationStatus.NO_SHOW}
    ),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}


class ReservationTransitionError(Exception):
    pass


class RefundStateError(Exception):
    pass


@dataclass(frozen=True)
class Reservation:
    reservation_id: ReservationId
    reference: str
    table_id: TableId
    customer_id: CustomerId
    reservation_date: date
    arrival_time: time
    party_size: int
    status: ReservationStatus
    deposit: Money
    deposit_paid: bool
    created_at: datetime
    updated_at: datetime
    combined_table_id: TableId | None = None
    payment_reference: str | None = None
    deposit_refunded: bool = False
    refund_amount: Money | None = None
    refund_date: datetime | None = None
    special_requests: str | None = None
    internal_notes: str | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if self.party_size < 1:
            raise ValueError("party_size must be >= 1")
        if self.version < 1:
            raise ValueError("version must be >= 1")
        if self.combined_table_id is not None and self.combined_table_id == self.table_id:
            raise ValueError("combined_table_id must differ from table_id")
        if self.deposit_refunded:
            if self.refund_amount is None or self.refund_date is None:
                raise ValueError("refunded reservations must carry refund_amount and refund_date")
        if self.refund_amount is not None:
            if self.refund_amount.currency != self.deposit.currency:
                raise ValueError("refund currency must match deposit currency")
            if not self.refund_amount <= self.deposit:
                raise ValueError("refund_amount must not exceed the deposit")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def held_table_ids(self) -> tuple[TableId, ...]:
        if self.combined_table_id is None:
            return (self.table_id,)
        return (self.table_id, self.combined_table_id)

    def transition_to(self, status: ReservationStatus, now: datetime) -> Reservation:
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ReservationTransitionError(
                f"cannot move reservation {self.reference} "
                f"from {self.status.value} to {status.value}"
            )
        return replace(self, status=status, updated_at=now)

    def confirm_deposit(self, payment_reference: str, now: datetime) -> Reservation:
        confirmed = self.transition_to(ReservationStatus.CONFIRMED, now)
        return replace(confirmed, deposit_paid=True, payment_reference=payment_reference)

    def cancel(self, now: datetime) -> Reservation:
        return self.transition_to(ReservationStatus.CANCELLED, now)

    def complete(self, now: datetime) -> Reservation:
        return self.transition_to(ReservationStatus.COMPLETED, now)

    def mark_no_show(self, now: datetime) -> Reservation:
        return self.transition_to(ReservationStatus.NO_SHOW, now)

    def ensure_refundable(self) -> None:
        if self.deposit_refunded:
            raise RefundStateError(f"deposit for {self.reference} has already been refunded")
        if not self.deposit_paid:
            raise RefundStateError(f"no deposit has been paid for {self.reference}")
        if not self.payment_reference:
            raise RefundStateError(f"no payment reference recorded for {self.reference}")
        if self.status == ReservationStatus.COMPLETED:
            raise RefundStateError(f"cannot refund completed reservation {self.reference}")

    def apply_refund(self, amount: Money, now: datetime) -> Reservation:
        """Record a successful refund.

        A pending reservation is cancelled by its refund. A confirmed one keeps
        its status and still holds the table.
        """
        self.ensure_refundable()
        status = self.status
        if status == ReservationStatus.PENDING:
            status = ReservationStatus.CANCELLED
        return replace(
            self,
            status=status,
            deposit_refunded=True,
            refund_amount=amount,
            refund_date=now,
            updated_at=now,
        )


@dataclass(frozen=True)
class ReservationModification:
    modification_id: ModificationId
    reservation_id: ReservationId
    actor: str
    previous_values: dict[str, Any]
    new_values: dict[str, Any]
    reason: str | None
    created_at: datetime
    notification_sent: bool = False


@dataclass(frozen=True)
class FieldDiff:
    previous: dict[str, Any] = field(default_factory=dict)
    new: dict[str, Any] = field(default_factory=dict)


def diff_reservations(before: Reservation, after: Reservation) -> FieldDiff:
    tracked = {
        "reservationDate": (
            before.reservation_date.isoformat(),
            after.reservation_date.isoformat(),
        ),
        "arrivalTime": (
            before.arrival_time.strftime("%H:%M"),
            after.arrival_time.strftime("%H:%M"),
        ),
        "partySize": (before.party_size, after.party_size),
        "tableId": (str(before.table_id), str(after.table_id)),
        "combinedTableId": (
            str(before.combined_table_id) if before.combined_table_id else None,
            str(after.combined_table_id) if after.combined_table_id else None,
        ),
        "status": (before.status.value, after.status.value),
    }
    diff = FieldDiff()
    for key, (old, new) in tracked.items():
        if old != new:
            diff.previous[key] = old
            diff.new[key] = new
    return diff


def generate_reference() -> str:
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))
    return f"{REFERENCE_PREFIX}{suffix}"
