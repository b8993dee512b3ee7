from __future__ import annotations

from sqlalchemy import inspect

from rsv.domain.common.ids import TableId
from rsv.domain.table.entities import Floor, Table
from rsv.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository
from rsv.infrastructure.db.session import get_engine

_UPSTAIRS = [
    (1, 4, 12, "Dance floor premium booth", ("Prime location", "Dance floor view"), True),
    (2, 4, 8, "Dance floor side high table", ("Great views", "Side position"), False),
    (3, 4, 8, "Dance floor side high table", ("Next to DJ", "Side position"), False),
    (4, 4, 8, "Dance floor front high table", ("Next to DJ", "Front position"), False),
    (5, 4, 10, "Dance floor front large high table", ("Central location", "Large table"), False),
    (6, 2, 4, "Barrel bar area", ("Intimate setting", "Bar area"), False),
    (7, 2, 4, "Barrel bar area", ("Intimate setting", "Bar area"), False),
    (8, 2, 4, "Barrel bar area", ("Intimate setting", "Bar area"), False),
    (9, 4, 10, "Large booth", ("Near bar", "Terrace access", "Near ladies"), False),
    (10, 4, 12, "Premium Ciroc booth", ("Bar area VIP", "Premium location"), True),
]

_DOWNSTAIRS = [
    (11, 2, 8, "Intimate booth", ("Opposite bar", "Cozy atmosphere"), False),
    (12, 2, 8, "Intimate booth", ("Opposite bar", "Cozy atmosphere"), False),
    (13, 2, 8, "Dancefloor booth", ("Next to DJ", "Dance floor view"), False),
    (14, 2, 8, "Dance floor booth", ("Near facilities", "Dance floor view"), False),
    (15, 2, 6, "Curved seating", ("Next to bar", "Can combine with table 16"), False),
    (16, 2, 6, "Curved seating", ("Next to bar", "Can combine with table 15"), False),
]

_COMBINABLE = {15: (16,), 16: (15,)}


def venue_tables() -> list[Table]:
    tables: list[Table] = []
    for floor, rows in ((Floor.UPSTAIRS, _UPSTAIRS), (Floor.DOWNSTAIRS, _DOWNSTAIRS)):
        for number, capacity_min, capacity_max, description, features, is_vip in rows:
            tables.append(
                Table(
                    table_id=TableId(f"tbl_{number:02d}"),
                    table_number=number,
                    floor=floor,
                    capacity_min=capacity_min,
                    capacity_max=capacity_max,
                    is_vip=is_vip,
                    combinable_with=_COMBINABLE.get(number, ()),
                    description=description,
                    features=features,
                )
            )
    return tables


def main() -> None:
    engine = get_engine(timeout_seconds=2.0)
    if "tables" not in set(inspect(engine).get_table_names()):
        print("no schema yet")
        return

    repository = SqlAlchemyTableRepository(engine)
    for table in venue_tables():
        repository.upsert(table)
    print("seed complete")


if __name__ == "__main__":
    main()
