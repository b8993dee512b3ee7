from __future__ import annotations

import logging
from datetime import date, timedelta
from uuid import uuid4

from rsv.application.booking_policy import BookingPolicy
from rsv.application.dto.requests import CreateTableBlockRequest
from rsv.application.dto.responses import TableBlockListResponse, TableBlockResponse
from rsv.application.locks import TableNightLocks, default_table_night_locks
from rsv.application.mappers.table_mapper import to_table_block_response
from rsv.application.metrics.reservation_lifecycle import record_table_block_created
from rsv.application.ports.repositories import (
    ReservationRepository,
    TableBlockRepository,
    TableRepository,
)
from rsv.application.use_cases.availability import TableNotFoundError
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.create_reservation import BookingValidationError
from rsv.domain.common.ids import TableBlockId, TableId
from rsv.domain.table.entities import TableBlock

logger = logging.getLogger(__name__)


class TableBlockNotFoundError(Exception):
    pass


class TableBlockConflictError(Exception):
    def __init__(self, message: str, references: list[str]) -> None:
        super().__init__(message)
        self.references = references
        self.details = {"references": references}


def _nights(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


class CreateTableBlock:
    def __init__(
        self,
        table_repository: TableRepository,
        block_repository: TableBlockRepository,
        reservation_repository: ReservationRepository,
        policy: BookingPolicy | None = None,
        locks: TableNightLocks | None = None,
    ) -> None:
        self._table_repository = table_repository
        self._block_repository = block_repository
        self._reservation_repository = reservation_repository
        self._policy = policy or BookingPolicy()
        self._locks = locks or default_table_night_locks()

    def execute(
        self,
        request_dto: CreateTableBlockRequest,
        trace_ctx: TraceContext,
    ) -> TableBlockResponse:
        if request_dto.start_date > request_dto.end_date:
            raise BookingValidationError(
                "block start date must not be after its end date",
                constraint="BLOCK_RANGE",
            )
        table_id = TableId(request_dto.table_id)
        table = self._table_repository.get(table_id)
        if table is None:
            raise TableNotFoundError(f"table not found: {request_dto.table_id}")

        block = TableBlock(
            block_id=TableBlockId(f"blk_{uuid4().hex[:12]}"),
            table_id=table_id,
            start_date=request_dto.start_date,
            end_date=request_dto.end_date,
            reason=request_dto.reason,
            created_by=trace_ctx.actor,
            created_at=self._policy.now(),
        )

        nights = _nights(block.start_date, block.end_date)
        with self._locks.hold((table_id, night) for night in nights):
            clashing = self._reservation_repository.active_in_range(
                table_id, block.start_date, block.end_date
            )
            if clashing:
                references = [reservation.reference for reservation in clashing]
                raise TableBlockConflictError(
                    f"table {table.table_number} has active reservations in that range: "
                    + ", ".join(references),
                    references=references,
                )
            self._block_repository.add(block)

        record_table_block_created()
        logger.info(
            "table_block_created",
            extra={"table_id": str(table_id), "block_id": str(block.block_id)},
        )
        return to_table_block_response(block)


class DeleteTableBlock:
    def __init__(self, block_repository: TableBlockRepository) -> None:
        self._block_repository = block_repository

    def execute(self, block_id: TableBlockId) -> None:
        if not self._block_repository.delete(block_id):
            raise TableBlockNotFoundError(f"table block {block_id} not found")
        logger.info("table_block_deleted", extra={"block_id": str(block_id)})


class ListTableBlocks:
    def __init__(
        self,
        table_repository: TableRepository,
        block_repository: TableBlockRepository,
    ) -> None:
        self._table_repository = table_repository
        self._block_repository = block_repository

    def execute(
        self,
        table_id: TableId | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> TableBlockListResponse:
        numbers = {
            table.table_id: table.table_number for table in self._table_repository.list_all()
        }
        blocks = sorted(
            self._block_repository.list_blocks(table_id=table_id, start=start, end=end),
            key=lambda block: (block.start_date, numbers.get(block.table_id, 0)),
        )
        return TableBlockListResponse(blocks=[to_table_block_response(block) for block in blocks])
