from __future__ import annotations

from datetime import date, timezone

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from rsv.application.ports.repositories import TableBlockRepository
from rsv.domain.common.ids import TableBlockId, TableId
from rsv.domain.table.entities import TableBlock
from rsv.infrastructure.db.models.table import TableBlockModel
from rsv.infrastructure.db.session import get_engine


class SqlAlchemyTableBlockRepository(TableBlockRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, block: TableBlock) -> None:
        with Session(self._engine) as session:
            session.add(
                TableBlockModel(
                    id=str(block.block_id),
                    table_id=str(block.table_id),
                    start_date=block.start_date,
                    end_date=block.end_date,
                    reason=block.reason,
                    created_by=block.created_by,
                    created_at=block.created_at,
                )
            )
            session.commit()

    def get(self, block_id: TableBlockId) -> TableBlock | None:
        statement = select(TableBlockModel).where(TableBlockModel.id == str(block_id))
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def delete(self, block_id: TableBlockId) -> bool:
        statement = delete(TableBlockModel).where(TableBlockModel.id == str(block_id))
        with Session(self._engine) as session:
            result = session.execute(statement)
            session.commit()
        return result.rowcount == 1

    def list_blocks(
        self,
        table_id: TableId | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[TableBlock]:
        statement = select(TableBlockModel)
        if table_id is not None:
            statement = statement.where(TableBlockModel.table_id == str(table_id))
        if start is not None:
            statement = statement.where(TableBlockModel.end_date >= start)
        if end is not None:
            statement = statement.where(TableBlockModel.start_date <= end)
        statement = statement.order_by(TableBlockModel.start_date, TableBlockModel.table_id)
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def blocked_table_ids(self, on_date: date) -> set[TableId]:
        statement = select(TableBlockModel.table_id).where(
            TableBlockModel.start_date <= on_date,
            TableBlockModel.end_date >= on_date,
        )
        with Session(self._engine) as session:
            rows = session.execute(statement).scalars().all()
        return {TableId(table_id) for table_id in rows}

    def _to_domain(self, model: TableBlockModel) -> TableBlock:
        created_at = model.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return TableBlock(
            block_id=TableBlockId(model.id),
            table_id=TableId(model.table_id),
            start_date=model.start_date,
            end_date=model.end_date,
            reason=model.reason,
            created_by=model.created_by,
            created_at=created_at,
        )
