from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from rsv.domain.common.ids import TableBlockId, TableId

COMBINED_PARTY_MIN = 7
COMBINED_PARTY_MAX = 12
COMBINED_SEATING_FEATURE = "Combined seating"


class Floor(str, Enum):
    UPSTAIRS = "UPSTAIRS"
    DOWNSTAIRS = "DOWNSTAIRS"


@dataclass(frozen=True)
class Table:
    table_id: TableId
    table_number: int
    floor: Floor
    capacity_min: int
    capacity_max: int
    is_vip: bool = False
    is_active: bool = True
    combinable_with: tuple[int, ...] = ()
    description: str | None = None
    features: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.table_number < 1:
            raise ValueError("table_number must be >= 1")
        if self.capacity_min < 1:
            raise ValueError("capacity_min must be >= 1")
        if self.capacity_min > self.capacity_max:
            raise ValueError("capacity_min must be <= capacity_max")

    def seats(self, party_size: int) -> bool:
        return self.capacity_min <= party_size <= self.capacity_max

    def can_combine_with(self, other: Table) -> bool:
        return (
            other.table_number in self.combinable_with
            and self.table_number in other.combinable_with
        )


@dataclass(frozen=True)
class TableBlock:
    block_id: TableBlockId
    table_id: TableId
    start_date: date
    end_date: date
    reason: str | None
    created_by: str
    created_at: datetime

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError("start_date must be <= end_date")

    def covers(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date


@dataclass(frozen=True)
class SingleTable:
    table: Table

    @property
    def candidate_id(self) -> str:
        return str(self.table.table_id)

    @property
    def table_ids(self) -> tuple[TableId, ...]:
        return (self.table.table_id,)

    @property
    def capacity_min(self) -> int:
        return self.table.capacity_min

    @property
    def capacity_max(self) -> int:
        return self.table.capacity_max


@dataclass(frozen=True)
class CombinedTables:
    """Two joinable tables offered together to a larger party.

    Only ever produced as an availability answer; there is no table row for it.
    """

    primary: Table
    partner: Table
    capacity_min: int
    capacity_max: int
    description: str
    features: tuple[str, ...] = field(default_factory=tuple)

    @property
    def candidate_id(self) -> str:
        return combined_candidate_id(self.primary.table_number, self.partner.table_number)

    @property
    def table_ids(self) -> tuple[TableId, ...]:
        return (self.primary.table_id, self.partner.table_id)

    def seats(self, party_size: int) -> bool:
        return self.capacity_min <= party_size <= self.capacity_max


AvailabilityCandidate = SingleTable | CombinedTables


def combine_tables(first: Table, second: Table) -> CombinedTables:
    if not first.can_combine_with(second):
        raise ValueError(
            f"tables {first.table_number} and {second.table_number} are not combinable"
        )
    primary, partner = sorted((first, second), key=lambda table: table.table_number)

    features: list[str] = []
    for feature in (*primary.features, *partner.features, COMBINED_SEATING_FEATURE):
        if feature not in features:
            features.append(feature)

    return CombinedTables(
        primary=primary,
        partner=partner,
        capacity_min=max(COMBINED_PARTY_MIN, min(primary.capacity_min, partner.capacity_min)),
        capacity_max=min(COMBINED_PARTY_MAX, primary.capacity_max + partner.capacity_max),
        description=f"Combined Tables {primary.table_number} & {partner.table_number}",
        features=tuple(features),
    )


def combined_candidate_id(first_number: int, second_number: int) -> str:
    low, high = sorted((first_number, second_number))
    return f"combined-{low}-{high}"


def parse_combined_candidate_id(value: str) -> tuple[int, int] | None:
    parts = value.split("-")
    if len(parts) != 3 or parts[0] != "combined":
        return None
    if not (parts[1].isdigit() and parts[2].isdigit()):
        return None
    low, high = int(parts[1]), int(parts[2])
    if low >= high:
        return None
    return low, high
