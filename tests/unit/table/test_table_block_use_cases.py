from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from rsv.application.dto.requests import CancelReservationRequest, CreateTableBlockRequest
from rsv.application.use_cases.availability import TableNotFoundError
from rsv.application.use_cases.create_reservation import BookingValidationError
from rsv.application.use_cases.table_blocks import (
    DeleteTableBlock,
    ListTableBlocks,
    TableBlockConflictError,
    TableBlockNotFoundError,
)
from rsv.domain.common.ids import ReservationId, TableBlockId, TableId


def _block(table_id: str, start: date, end: date, reason: str | None = None):
    return CreateTableBlockRequest(
        table_id=table_id, start_date=start, end_date=end, reason=reason
    )


def test_create_block_records_actor_and_marks_table_blocked(venue, trace_ctx) -> None:
    response = venue.create_table_block().execute(
        _block("tbl_06", date(2025, 12, 10), date(2025, 12, 12), "Repainting"), trace_ctx
    )

    assert response.blockId.startswith("blk_")
    assert response.createdBy == "host@venue"
    assert response.reason == "Repainting"
    resolver = venue.resolver
    assert resolver.is_blocked(TableId("tbl_06"), date(2025, 12, 10))
    assert resolver.is_blocked(TableId("tbl_06"), date(2025, 12, 12))
    assert not resolver.is_blocked(TableId("tbl_06"), date(2025, 12, 13))
    assert not resolver.is_blocked(TableId("tbl_02"), date(2025, 12, 10))


def test_reversed_range_is_rejected(venue, trace_ctx) -> None:
    with pytest.raises(BookingValidationError) as exc_info:
        venue.create_table_block().execute(
            _block("tbl_06", date(2025, 12, 12), date(2025, 12, 10)), trace_ctx
        )

    assert exc_info.value.constraint == "BLOCK_RANGE"


def test_unknown_table_cannot_be_blocked(venue, trace_ctx) -> None:
    with pytest.raises(TableNotFoundError):
        venue.create_table_block().execute(
            _block("tbl_99", date(2025, 12, 10), date(2025, 12, 10)), trace_ctx
        )


def test_block_over_active_reservation_lists_references(
    venue, booking_request, trace_ctx
) -> None:
    booked = venue.create_reservation().execute(
        booking_request(table_id="combined-15-16", party_size=8, on_date=date(2025, 12, 11)),
        trace_ctx,
    )

    with pytest.raises(TableBlockConflictError) as exc_info:
        venue.create_table_block().execute(
            _block("tbl_16", date(2025, 12, 10), date(2025, 12, 12)), trace_ctx
        )

    assert exc_info.value.references == [booked.reference]
    assert venue.blocks.blocks == {}


def test_cancelled_reservation_does_not_prevent_block(venue, booking_request, trace_ctx) -> None:
    booked = venue.create_reservation().execute(
        booking_request(on_date=date(2025, 12, 11)), trace_ctx
    )
    venue.cancel_reservation().execute(
        ReservationId(booked.reservationId), CancelReservationRequest(), trace_ctx
    )

    response = venue.create_table_block().execute(
        _block("tbl_02", date(2025, 12, 10), date(2025, 12, 12)), trace_ctx
    )

    assert response.tableId == "tbl_02"


def test_delete_block_frees_the_table(venue, trace_ctx) -> None:
    created = venue.create_table_block().execute(
        _block("tbl_06", date(2025, 12, 10), date(2025, 12, 10)), trace_ctx
    )

    DeleteTableBlock(venue.blocks).execute(TableBlockId(created.blockId))

    assert not venue.resolver.is_blocked(TableId("tbl_06"), date(2025, 12, 10))
    with pytest.raises(TableBlockNotFoundError):
        DeleteTableBlock(venue.blocks).execute(TableBlockId(created.blockId))


def test_list_blocks_orders_by_start_then_table_number(venue, trace_ctx) -> None:
    use_case = venue.create_table_block()
    use_case.execute(_block("tbl_15", date(2025, 12, 10), date(2025, 12, 10)), trace_ctx)
    use_case.execute(_block("tbl_02", date(2025, 12, 10), date(2025, 12, 11)), trace_ctx)
    use_case.execute(_block("tbl_01", date(2025, 12, 20), date(2025, 12, 21)), trace_ctx)

    listing = ListTableBlocks(venue.tables, venue.blocks)

    assert [item.tableId for item in listing.execute().blocks] == ["tbl_02", "tbl_15", "tbl_01"]
    assert [
        item.tableId
        for item in listing.execute(start=date(2025, 12, 11), end=date(2025, 12, 31)).blocks
    ] == ["tbl_02", "tbl_01"]
    assert [item.tableId for item in listing.execute(table_id=TableId("tbl_15")).blocks] == [
        "tbl_15"
    ]
