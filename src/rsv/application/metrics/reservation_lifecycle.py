from __future__ import annotations

from prometheus_client import Counter, Histogram

from rsv.domain.reservation.entities import Reservation, ReservationStatus

RESERVATIONS_TOTAL = Counter(
    "rsv_reservations_total",
    "Total number of reservations created by initial status.",
    ["status"],
)

RESERVATION_TRANSITION_TOTAL = Counter(
    "rsv_reservation_transition_total",
    "Total number of reservation status transitions.",
    ["from", "to"],
)

RESERVATION_MODIFICATIONS_TOTAL = Counter(
    "rsv_reservation_modifications_total",
    "Total number of applied reservation modifications.",
)

AVAILABILITY_CONFLICTS_TOTAL = Counter(
    "rsv_availability_conflicts_total",
    "Total number of create/modify attempts rejected because a table night was taken.",
    ["operation"],
)

REFUNDS_TOTAL = Counter(
    "rsv_refunds_total",
    "Total number of refund attempts by outcome.",
    ["outcome"],
)

TABLE_BLOCKS_CREATED_TOTAL = Counter(
    "rsv_table_blocks_created_total",
    "Total number of table blackout windows created.",
)

NOTIFICATION_FAILURES_TOTAL = Counter(
    "rsv_notification_failures_total",
    "Total number of reservation events that could not be published.",
    ["event_type"],
)

FREE_CANDIDATES = Histogram(
    "rsv_free_candidates",
    "Number of free candidates returned per availability query.",
    buckets=(0, 1, 2, 4, 8, 12, 16, 24),
)


def record_reservation_created(reservation: Reservation) -> None:
    RESERVATIONS_TOTAL.labels(status=reservation.status.value).inc()


def record_transition(from_status: ReservationStatus, to_status: ReservationStatus) -> None:
    if from_status == to_status:
        return
    RESERVATION_TRANSITION_TOTAL.labels(**{"from": from_status.value, "to": to_status.value}).inc()


def record_modification() -> None:
    RESERVATION_MODIFICATIONS_TOTAL.inc()


def record_availability_conflict(operation: str) -> None:
    AVAILABILITY_CONFLICTS_TOTAL.labels(operation=operation).inc()


def record_refund(outcome: str) -> None:
    REFUNDS_TOTAL.labels(outcome=outcome).inc()


def record_table_block_created() -> None:
    TABLE_BLOCKS_CREATED_TOTAL.inc()


def record_notification_failure(event_type: str) -> None:
    NOTIFICATION_FAILURES_TOTAL.labels(event_type=event_type).inc()


def record_free_candidates(count: int) -> None:
    FREE_CANDIDATES.observe(count)
