from __future__ import annotations

import concurrent.futures
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rsv.api.main import app
from rsv.application.ports.publisher import RESERVATION_EVENTS_CHANNEL


def _night(days_ahead: int = 3) -> str:
    return (datetime.now(timezone.utc).date() + timedelta(days=days_ahead)).isoformat()


def _booking(table_id: str, night: str, email: str, **extra) -> dict:
    body = {
        "tableId": table_id,
        "date": night,
        "timeSlot": "23:00",
        "partySize": 4,
        "customer": {"name": "Ada Lovelace", "email": email, "phone": "+44 7700 900000"},
    }
    body.update(extra)
    return body


def test_booking_lifecycle_over_http(published_events) -> None:
    night = _night()
    with TestClient(app) as client:
        created = client.post(
            "/v1/reservations",
            json=_booking("tbl_04", night, "ada@example.com"),
            headers={"X-Actor": "web"},
        )
        assert created.status_code == 201
        reservation_id = created.json()["reservationId"]

        availability = client.get(f"/v1/availability/{night}", params={"partySize": 4}).json()
        assert "tbl_04" not in [item["candidateId"] for item in availability["candidates"]]

        moved = client.patch(
            f"/v1/reservations/{reservation_id}",
            json={"tableId": "tbl_05", "timeSlot": "00:30", "notify": True},
            headers={"X-Actor": "host@venue"},
        )
        assert moved.status_code == 200
        assert moved.json()["tableId"] == "tbl_05"

        summary = client.get(f"/v1/availability/{night}/summary").json()
        assert 5 in summary["bookedTableNumbers"]
        assert 4 in summary["availableTableNumbers"]

        audit = client.get(f"/v1/reservations/{reservation_id}/modifications").json()
        assert audit["modifications"][0]["actor"] == "host@venue"
        assert audit["modifications"][0]["newValues"] == {
            "arrivalTime": "00:30",
            "tableId": "tbl_05",
        }
        assert audit["modifications"][0]["notificationSent"] is True

        cancelled = client.post(f"/v1/reservations/{reservation_id}/cancel")
        assert cancelled.json()["status"] == "CANCELLED"

    event_types = [json.loads(message)["event_type"] for _, message in published_events]
    assert event_types == ["reservation.created", "reservation.modified", "reservation.cancelled"]
    assert {channel for channel, _ in published_events} == {RESERVATION_EVENTS_CHANNEL}


def test_double_booking_is_rejected_with_holder_details() -> None:
    night = _night(4)
    with TestClient(app) as client:
        first = client.post("/v1/reservations", json=_booking("tbl_02", night, "ada@example.com"))
        second = client.post(
            "/v1/reservations",
            json=_booking(
                "tbl_02",
                night,
                "grace@example.com",
                customer={"name": "Grace Hopper", "email": "grace@example.com"},
            ),
        )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["error"]["details"] == {
        "reference": first.json()["reference"],
        "customerName": "Ada Lovelace",
        "partySize": 4,
    }


def test_concurrent_bookings_for_one_table_night_admit_one() -> None:
    night = _night(5)

    client = TestClient(app)

    def _book(index: int) -> int:
        response = client.post(
            "/v1/reservations",
            json=_booking("tbl_09", night, f"guest{index}@example.com"),
        )
        return response.status_code

    with concurrent.futures.ThreadPoolExecutor(max_workers=4) as executor:
        results = list(executor.map(_book, range(4)))

    assert sorted(results) == [201, 409, 409, 409]


def test_refund_without_gateway_configuration_is_payment_failure() -> None:
    night = _night(6)
    with TestClient(app) as client:
        created = client.post(
            "/v1/reservations",
            json=_booking(
                "tbl_10",
                night,
                "ada@example.com",
                deposit={"captured": True, "paymentReference": "pi_123"},
            ),
        ).json()

        refund = client.post(f"/v1/reservations/{created['reservationId']}/refund")
        reservation = client.get(f"/v1/reservations/{created['reservationId']}").json()

    assert refund.status_code == 502
    assert refund.json()["error"]["message"] == "payment gateway is not configured"
    assert reservation["depositRefunded"] is False
    assert reservation["status"] == "CONFIRMED"


def test_table_block_hides_table_from_availability() -> None:
    night = _night(7)
    with TestClient(app) as client:
        block = client.post(
            "/v1/table-blocks",
            json={"tableId": "tbl_11", "startDate": night, "endDate": night, "reason": "Repair"},
            headers={"X-Actor": "manager@venue"},
        )
        availability = client.get(f"/v1/availability/{night}", params={"partySize": 2}).json()
        blocked_booking = client.post(
            "/v1/reservations",
            json=_booking("tbl_11", night, "ada@example.com", partySize=2),
        )

    assert block.status_code == 201
    assert "tbl_11" not in [item["candidateId"] for item in availability["candidates"]]
    assert blocked_booking.status_code == 409
