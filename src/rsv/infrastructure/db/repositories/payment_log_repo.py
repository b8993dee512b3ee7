from __future__ import annotations

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from rsv.application.ports.repositories import PaymentLogEntry, PaymentLogRepository
from rsv.domain.common.ids import ReservationId
from rsv.infrastructure.db.models.reservation import PaymentLogModel
from rsv.infrastructure.db.session import get_engine


class SqlAlchemyPaymentLogRepository(PaymentLogRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def record(self, entry: PaymentLogEntry) -> None:
        with Session(self._engine) as session:
            session.add(
                PaymentLogModel(
                    reservation_id=str(entry.reservation_id),
                    external_reference=entry.external_reference,
                    amount_cents=entry.amount_cents,
                    currency=entry.currency,
                    status=entry.status,
                    error_message=entry.error_message,
                    metadata_json=dict(entry.metadata) if entry.metadata else None,
                    created_at=entry.created_at,
                )
            )
            session.commit()

    def count_with_status(self, reservation_id: ReservationId, status: str) -> int:
        statement = select(func.count(PaymentLogModel.id)).where(
            PaymentLogModel.reservation_id == str(reservation_id),
            PaymentLogModel.status == status,
        )
        with Session(self._engine) as session:
            return int(session.execute(statement).scalar_one())
