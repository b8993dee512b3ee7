from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query, Response, status
from opentelemetry import trace

from rsv.api.middleware.request_id import get_actor, get_request_id
from rsv.application.dto.requests import CreateTableBlockRequest
from rsv.application.dto.responses import TableBlockListResponse, TableBlockResponse
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.table_blocks import (
    CreateTableBlock,
    DeleteTableBlock,
    ListTableBlocks,
)
from rsv.domain.common.ids import TableBlockId, TableId
from rsv.infrastructure.db.repositories.block_repo import SqlAlchemyTableBlockRepository
from rsv.infrastructure.db.repositories.reservation_repo import SqlAlchemyReservationRepository
from rsv.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository

router = APIRouter(tags=["table-blocks"])


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def _create_table_block_use_case() -> CreateTableBlock:
    return CreateTableBlock(
        table_repository=SqlAlchemyTableRepository(),
        block_repository=SqlAlchemyTableBlockRepository(),
        reservation_repository=SqlAlchemyReservationRepository(),
    )


def _delete_table_block_use_case() -> DeleteTableBlock:
    return DeleteTableBlock(block_repository=SqlAlchemyTableBlockRepository())


def _list_table_blocks_use_case() -> ListTableBlocks:
    return ListTableBlocks(
        table_repository=SqlAlchemyTableRepository(),
        block_repository=SqlAlchemyTableBlockRepository(),
    )


@router.get("/v1/table-blocks", response_model=TableBlockListResponse)
def list_table_blocks(
    table_id: str | None = Query(default=None, alias="tableId"),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
) -> TableBlockListResponse:
    return _list_table_blocks_use_case().execute(
        table_id=TableId(table_id) if table_id else None,
        start=start,
        end=end,
    )


@router.post(
    "/v1/table-blocks",
    response_model=TableBlockResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_table_block(request_dto: CreateTableBlockRequest) -> TableBlockResponse:
    return _create_table_block_use_case().execute(
        request_dto=request_dto,
        trace_ctx=TraceContext(
            trace_id=_current_trace_id(),
            request_id=get_request_id(),
            actor=get_actor(),
        ),
    )


@router.delete("/v1/table-blocks/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_table_block(block_id: str) -> Response:
    _delete_table_block_use_case().execute(block_id=TableBlockId(block_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
