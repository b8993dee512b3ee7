from __future__ import annotations

import json
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from rsv.application.dto.requests import CancelReservationRequest, ModifyReservationRequest
from rsv.application.use_cases.cancel_reservation import InvalidReservationTransitionError
from rsv.application.use_cases.get_reservation import (
    GetReservation,
    ReservationChangedError,
    ReservationNotFoundError,
)
from rsv.domain.common.ids import ReservationId, TableId

NIGHT = date(2025, 12, 5)


def _book(venue, booking_request, trace_ctx, **kwargs) -> ReservationId:
    response = venue.create_reservation().execute(booking_request(**kwargs), trace_ctx)
    return ReservationId(response.reservationId)


def test_cancel_releases_table_and_records_status(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)

    response = venue.cancel_reservation().execute(
        reservation_id, CancelReservationRequest(reason="guest called"), trace_ctx
    )

    assert response.status == "CANCELLED"
    assert venue.reservations.held_on(NIGHT) == {}
    record = venue.reservations.list_modifications(reservation_id)[0]
    assert record.previous_values == {"status": "PENDING"}
    assert record.new_values == {"status": "CANCELLED"}
    assert record.reason == "guest called"
    assert record.notification_sent is True
    envelope = json.loads(venue.publisher.messages[-1][1])
    assert envelope["event_type"] == "reservation.cancelled"
    assert envelope["payload"]["reason"] == "guest called"


def test_cancel_without_notify_publishes_nothing(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)
    published = len(venue.publisher.messages)

    venue.cancel_reservation().execute(
        reservation_id, CancelReservationRequest(notify=False), trace_ctx
    )

    assert len(venue.publisher.messages) == published
    assert venue.reservations.list_modifications(reservation_id)[0].notification_sent is False


def test_cancel_leaves_deposit_fields_alone(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(
        venue, booking_request, trace_ctx, captured=True, payment_reference="pi_001"
    )

    venue.cancel_reservation().execute(reservation_id, CancelReservationRequest(), trace_ctx)

    stored = venue.stored(reservation_id)
    assert stored.deposit_paid is True
    assert stored.deposit_refunded is False
    assert stored.payment_reference == "pi_001"


def test_cancelling_twice_is_an_invalid_transition(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)
    use_case = venue.cancel_reservation()
    use_case.execute(reservation_id, CancelReservationRequest(), trace_ctx)

    with pytest.raises(InvalidReservationTransitionError):
        use_case.execute(reservation_id, CancelReservationRequest(), trace_ctx)


def test_confirm_deposit_moves_pending_to_confirmed(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)

    response = venue.status_service().confirm_deposit(reservation_id, "pi_777", trace_ctx)

    assert response.status == "CONFIRMED"
    assert response.depositPaid is True
    assert venue.stored(reservation_id).payment_reference == "pi_777"
    assert json.loads(venue.publisher.messages[-1][1])["event_type"] == "reservation.confirmed"


def test_complete_and_no_show_release_the_table(venue, booking_request, trace_ctx) -> None:
    service = venue.status_service()
    first = _book(venue, booking_request, trace_ctx, captured=True, payment_reference="pi_1")
    second = _book(
        venue,
        booking_request,
        trace_ctx,
        table_id="tbl_01",
        email="grace@example.com",
        captured=True,
        payment_reference="pi_2",
    )

    assert service.complete(first, trace_ctx).status == "COMPLETED"
    assert service.mark_no_show(second, trace_ctx, reason="never arrived").status == "NO_SHOW"
    assert venue.reservations.held_on(NIGHT) == {}
    assert venue.reservations.list_modifications(second)[0].reason == "never arrived"


def test_pending_reservation_cannot_complete(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)

    with pytest.raises(InvalidReservationTransitionError):
        venue.status_service().complete(reservation_id, trace_ctx)
    with pytest.raises(InvalidReservationTransitionError):
        venue.status_service().mark_no_show(reservation_id, trace_ctx)


def test_completed_reservation_cannot_be_cancelled(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(
        venue, booking_request, trace_ctx, captured=True, payment_reference="pi_1"
    )
    venue.status_service().complete(reservation_id, trace_ctx)

    with pytest.raises(InvalidReservationTransitionError):
        venue.cancel_reservation().execute(reservation_id, CancelReservationRequest(), trace_ctx)


def test_get_reservation_by_id_and_reference(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)
    use_case = GetReservation(venue.reservations)

    by_id = use_case.execute(reservation_id)
    by_reference = use_case.by_reference(f" {by_id.reference.lower()} ")

    assert by_reference.reservationId == str(reservation_id)


def test_get_reservation_unknown_reference(venue) -> None:
    with pytest.raises(ReservationNotFoundError):
        GetReservation(venue.reservations).by_reference("BR-NOPE00")


def test_status_change_marks_record_once_published(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)

    venue.status_service().confirm_deposit(reservation_id, "pi_777", trace_ctx)

    record = venue.reservations.list_modifications(reservation_id)[0]
    assert record.new_values == {"status": "CONFIRMED"}
    assert record.notification_sent is True


def test_status_change_survives_publisher_failure(venue, booking_request, trace_ctx) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)
    venue.publisher.fail = True

    response = venue.status_service().confirm_deposit(reservation_id, "pi_777", trace_ctx)

    assert response.status == "CONFIRMED"
    assert venue.reservations.list_modifications(reservation_id)[0].notification_sent is False


def test_cancel_losing_to_completion_is_an_invalid_transition(
    venue, booking_request, trace_ctx
) -> None:
    reservation_id = _book(
        venue, booking_request, trace_ctx, captured=True, payment_reference="pi_1"
    )
    read_before_completion = venue.stored(reservation_id)
    venue.status_service().complete(reservation_id, trace_ctx)
    published = len(venue.publisher.messages)
    venue.reservations.serve_once(read_before_completion)

    with pytest.raises(InvalidReservationTransitionError):
        venue.cancel_reservation().execute(reservation_id, CancelReservationRequest(), trace_ctx)

    assert venue.stored(reservation_id).status.value == "COMPLETED"
    assert len(venue.publisher.messages) == published
    assert len(venue.reservations.list_modifications(reservation_id)) == 1


def test_cancel_losing_to_a_modification_reports_the_change(
    venue, booking_request, trace_ctx
) -> None:
    reservation_id = _book(venue, booking_request, trace_ctx)
    read_before_move = venue.stored(reservation_id)
    venue.modify_reservation().execute(
        reservation_id, ModifyReservationRequest(party_size=5), trace_ctx
    )
    venue.reservations.serve_once(read_before_move)

    with pytest.raises(ReservationChangedError):
        venue.cancel_reservation().execute(reservation_id, CancelReservationRequest(), trace_ctx)

    stored = venue.stored(reservation_id)
    assert stored.status.value == "PENDING"
    assert stored.party_size == 5
    assert venue.reservations.held_on(NIGHT) == {TableId("tbl_02"): reservation_id}
