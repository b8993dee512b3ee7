from __future__ import annotations

from rsv.application.dto.responses import (
    CandidateResponse,
    OperatingWindowResponse,
    TableBlockResponse,
    TableResponse,
)
from rsv.domain.calendar.hours import OperatingWindow
from rsv.domain.calendar.slots import format_slot
from rsv.domain.table.entities import AvailabilityCandidate, CombinedTables, Table, TableBlock


def to_table_response(table: Table) -> TableResponse:
    return TableResponse(
        tableId=str(table.table_id),
        tableNumber=table.table_number,
        floor=table.floor.value,
        capacityMin=table.capacity_min,
        capacityMax=table.capacity_max,
        isVip=table.is_vip,
        isActive=table.is_active,
        combinableWith=list(table.combinable_with),
        description=table.description,
        features=list(table.features),
    )


def to_candidate_response(candidate: AvailabilityCandidate) -> CandidateResponse:
    if isinstance(candidate, CombinedTables):
        return CandidateResponse(
            candidateId=candidate.candidate_id,
            kind="COMBINED",
            tableIds=[str(table_id) for table_id in candidate.table_ids],
            tableNumbers=[candidate.primary.table_number, candidate.partner.table_number],
            floor=candidate.primary.floor.value,
            capacityMin=candidate.capacity_min,
            capacityMax=candidate.capacity_max,
            isVip=False,
            description=candidate.description,
            features=list(candidate.features),
        )
    table = candidate.table
    return CandidateResponse(
        candidateId=candidate.candidate_id,
        kind="SINGLE",
        tableIds=[str(table.table_id)],
        tableNumbers=[table.table_number],
        floor=table.floor.value,
        capacityMin=table.capacity_min,
        capacityMax=table.capacity_max,
        isVip=table.is_vip,
        description=table.description,
        features=list(table.features),
    )


def to_window_response(window: OperatingWindow) -> OperatingWindowResponse:
    return OperatingWindowResponse(
        startTime=format_slot(window.start_time),
        endTime=format_slot(window.end_time),
        lastArrivalTime=format_slot(window.last_arrival_time),
        isSpecial=window.is_special,
        label=window.label,
    )


def to_table_block_response(block: TableBlock) -> TableBlockResponse:
    return TableBlockResponse(
        blockId=str(block.block_id),
        tableId=str(block.table_id),
        startDate=block.start_date,
        endDate=block.end_date,
        reason=block.reason,
        createdBy=block.created_by,
        createdAt=block.created_at,
    )
