from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from rsv.application.ports.repositories import TableRepository
from rsv.domain.common.ids import TableId
from rsv.domain.table.entities import Floor, Table
from rsv.infrastructure.db.models.table import TableModel
from rsv.infrastructure.db.session import get_engine


class SqlAlchemyTableRepository(TableRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, table_id: TableId) -> Table | None:
        statement = select(TableModel).where(TableModel.id == str(table_id))
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def get_by_number(self, table_number: int) -> Table | None:
        statement = select(TableModel).where(TableModel.table_number == table_number)
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def list_all(self) -> list[Table]:
        statement = select(TableModel).order_by(TableModel.table_number)
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def upsert(self, table: Table) -> None:
        with Session(self._engine) as session:
            session.merge(
                TableModel(
                    id=str(table.table_id),
                    table_number=table.table_number,
                    floor=table.floor.value,
                    capacity_min=table.capacity_min,
                    capacity_max=table.capacity_max,
                    is_vip=table.is_vip,
                    is_active=table.is_active,
                    combinable_with=list(table.combinable_with),
                    description=table.description,
                    features=list(table.features),
                )
            )
            session.commit()

    def _to_domain(self, model: TableModel) -> Table:
        return Table(
            table_id=TableId(model.id),
            table_number=model.table_number,
            floor=Floor(model.floor),
            capacity_min=model.capacity_min,
            capacity_max=model.capacity_max,
            is_vip=model.is_vip,
            is_active=model.is_active,
            combinable_with=tuple(model.combinable_with or ()),
            description=model.description,
            features=tuple(model.features or ()),
        )
