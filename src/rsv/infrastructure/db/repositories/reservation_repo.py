from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone

from sqlalchemy import Engine, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rsv.application.ports.repositories import (
    ClaimConflictError,
    OptimisticConcurrencyError,
    RefundAlreadyRecordedError,
    ReservationRepository,
)
from rsv.domain.common.ids import CustomerId, ModificationId, ReservationId, TableId
from rsv.domain.common.money import Money
from rsv.domain.reservation.entities import (
    ACTIVE_STATUSES,
    Reservation,
    ReservationModification,
    ReservationStatus,
)
from rsv.infrastructure.db.models.reservation import (
    ReservationModel,
    ReservationModificationModel,
    TableNightModel,
)
from rsv.infrastructure.db.session import get_engine

_ACTIVE_VALUES = [status.value for status in ACTIVE_STATUSES]


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAlchemyReservationRepository(ReservationRepository):
    """Reservations plus their table-night claim rows.

    A claim row exists for every table an active reservation holds. The
    unique (table_id, reservation_date) constraint on claims is what rejects a
    second writer that got past the in-process lock.

    Updates are guarded on the version the caller read and bump it by one, so
    a write based on a stale copy raises OptimisticConcurrencyError.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, reservation_id: ReservationId) -> Reservation | None:
        statement = select(ReservationModel).where(ReservationModel.id == str(reservation_id))
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def get_by_reference(self, reference: str) -> Reservation | None:
        statement = select(ReservationModel).where(ReservationModel.reference == reference)
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def reference_exists(self, reference: str) -> bool:
        statement = (
            select(ReservationModel.id).where(ReservationModel.reference == reference).limit(1)
        )
        with Session(self._engine) as session:
            value = session.execute(statement).scalar_one_or_none()
        return value is not None

    def held_on(
        self,
        on_date: date,
        exclude_reservation_id: ReservationId | None = None,
    ) -> dict[TableId, ReservationId]:
        statement = select(TableNightModel.table_id, TableNightModel.reservation_id).where(
            TableNightModel.reservation_date == on_date
        )
        if exclude_reservation_id is not None:
            statement = statement.where(
                TableNightModel.reservation_id != str(exclude_reservation_id)
            )
        with Session(self._engine) as session:
            rows = session.execute(statement).all()
        return {TableId(row[0]): ReservationId(row[1]) for row in rows}

    def active_in_range(self, table_id: TableId, start: date, end: date) -> list[Reservation]:
        statement = (
            select(ReservationModel)
            .where(
                or_(
                    ReservationModel.table_id == str(table_id),
                    ReservationModel.combined_table_id == str(table_id),
                ),
                ReservationModel.reservation_date >= start,
                ReservationModel.reservation_date <= end,
                ReservationModel.status.in_(_ACTIVE_VALUES),
            )
            .order_by(ReservationModel.reservation_date, ReservationModel.reference)
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def add(self, reservation: Reservation) -> None:
        with Session(self._engine) as session:
            session.add(self._to_model(reservation))
            session.flush()
            session.add_all(self._claims(reservation))
            self._commit_claims(session, reservation)

    def save(
        self,
        reservation: Reservation,
        modification: ReservationModification | None = None,
    ) -> Reservation:
        statement = (
            update(ReservationModel)
            .where(
                ReservationModel.id == str(reservation.reservation_id),
                ReservationModel.version == reservation.version,
            )
            .values(**self._mutable_values(reservation), version=ReservationModel.version + 1)
        )
        with Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OptimisticConcurrencyError(
                    f"reservation {reservation.reservation_id} version conflict"
                )
            self._replace_claims(session, reservation)
            if modification is not None:
                session.add(self._modification_model(modification))
            self._commit_claims(session, reservation)
        return replace(reservation, version=reservation.version + 1)

    def save_refund(
        self,
        reservation: Reservation,
        modification: ReservationModification,
    ) -> Reservation:
        if reservation.refund_amount is None:
            raise ValueError("refund amount is required to record a refund")
        values: dict[str, object] = {
            "deposit_refunded": True,
            "refund_cents": reservation.refund_amount.amount_cents,
            "refund_date": reservation.refund_date,
            "updated_at": reservation.updated_at,
            "version": ReservationModel.version + 1,
        }
        if reservation.status is ReservationStatus.CANCELLED:
            values["status"] = reservation.status.value
        statement = (
            update(ReservationModel)
            .where(
                ReservationModel.id == str(reservation.reservation_id),
                ReservationModel.version == reservation.version,
                ReservationModel.deposit_refunded.is_(False),
            )
            .values(**values)
        )
        with Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                refunded = session.execute(
                    select(ReservationModel.deposit_refunded).where(
                        ReservationModel.id == str(reservation.reservation_id)
                    )
                ).scalar_one_or_none()
                if refunded:
                    raise RefundAlreadyRecordedError(
                        f"reservation {reservation.reservation_id} refund already recorded"
                    )
                raise OptimisticConcurrencyError(
                    f"reservation {reservation.reservation_id} version conflict"
                )
            if not reservation.is_active:
                session.execute(
                    delete(TableNightModel).where(
                        TableNightModel.reservation_id == str(reservation.reservation_id)
                    )
                )
            session.add(self._modification_model(modification))
            session.commit()
        return replace(reservation, version=reservation.version + 1)

    def list_modifications(self, reservation_id: ReservationId) -> list[ReservationModification]:
        statement = (
            select(ReservationModificationModel)
            .where(ReservationModificationModel.reservation_id == str(reservation_id))
            .order_by(ReservationModificationModel.created_at, ReservationModificationModel.id)
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [
            ReservationModification(
                modification_id=ModificationId(model.id),
                reservation_id=ReservationId(model.reservation_id),
                actor=model.actor,
                previous_values=dict(model.previous_values or {}),
                new_values=dict(model.new_values or {}),
                reason=model.reason,
                created_at=_aware(model.created_at),
                notification_sent=model.notification_sent,
            )
            for model in models
        ]

    def mark_notification_sent(self, modification_id: ModificationId) -> None:
        with Session(self._engine) as session:
            session.execute(
                update(ReservationModificationModel)
                .where(ReservationModificationModel.id == str(modification_id))
                .values(notification_sent=True)
            )
            session.commit()

    def _replace_claims(self, session: Session, reservation: Reservation) -> None:
        session.execute(
            delete(TableNightModel).where(
                TableNightModel.reservation_id == str(reservation.reservation_id)
            )
        )
        session.add_all(self._claims(reservation))

    def _commit_claims(self, session: Session, reservation: Reservation) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            holder = self._claim_holder(session, reservation)
            if holder is None:
                raise
            raise ClaimConflictError(
                f"table night already claimed for {reservation.reservation_date.isoformat()}",
                reservation_id=holder,
            ) from exc

    def _claim_holder(self, session: Session, reservation: Reservation) -> ReservationId | None:
        statement = (
            select(TableNightModel.reservation_id)
            .where(
                TableNightModel.table_id.in_([str(t) for t in reservation.held_table_ids]),
                TableNightModel.reservation_date == reservation.reservation_date,
                TableNightModel.reservation_id != str(reservation.reservation_id),
            )
            .limit(1)
        )
        value = session.execute(statement).scalar_one_or_none()
        return ReservationId(value) if value is not None else None

    def _claims(self, reservation: Reservation) -> list[TableNightModel]:
        if not reservation.is_active:
            return []
        return [
            TableNightModel(
                table_id=str(table_id),
                reservation_date=reservation.reservation_date,
                reservation_id=str(reservation.reservation_id),
            )
            for table_id in reservation.held_table_ids
        ]

    def _mutable_values(self, reservation: Reservation) -> dict[str, object]:
        return {
            "table_id": str(reservation.table_id),
            "combined_table_id": (
                str(reservation.combined_table_id) if reservation.combined_table_id else None
            ),
            "reservation_date": reservation.reservation_date,
            "arrival_time": reservation.arrival_time,
            "party_size": reservation.party_size,
            "status": reservation.status.value,
            "deposit_paid": reservation.deposit_paid,
            "payment_reference": reservation.payment_reference,
            "special_requests": reservation.special_requests,
            "internal_notes": reservation.internal_notes,
            "updated_at": reservation.updated_at,
        }

    def _modification_model(
        self,
        modification: ReservationModification,
    ) -> ReservationModificationModel:
        return ReservationModificationModel(
            id=str(modification.modification_id),
            reservation_id=str(modification.reservation_id),
            actor=modification.actor,
            previous_values=dict(modification.previous_values),
            new_values=dict(modification.new_values),
            reason=modification.reason,
            notification_sent=modification.notification_sent,
            created_at=modification.created_at,
        )

    def _to_model(self, reservation: Reservation) -> ReservationModel:
        return ReservationModel(
            id=str(reservation.reservation_id),
            reference=reservation.reference,
            customer_id=str(reservation.customer_id),
            deposit_cents=reservation.deposit.amount_cents,
            currency=reservation.deposit.currency,
            deposit_refunded=reservation.deposit_refunded,
            refund_cents=(
                reservation.refund_amount.amount_cents if reservation.refund_amount else None
            ),
            refund_date=reservation.refund_date,
            version=reservation.version,
            created_at=reservation.created_at,
            **self._mutable_values(reservation),
        )

    def _to_domain(self, model: ReservationModel) -> Reservation:
        created_at = _aware(model.created_at)
        updated_at = _aware(model.updated_at)
        refund_amount = None
        if model.refund_cents is not None:
            refund_amount = Money(amount_cents=model.refund_cents, currency=model.currency)
        return Reservation(
            reservation_id=ReservationId(model.id),
            reference=model.reference,
            table_id=TableId(model.table_id),
            combined_table_id=(
                TableId(model.combined_table_id) if model.combined_table_id else None
            ),
            customer_id=CustomerId(model.customer_id),
            reservation_date=model.reservation_date,
            arrival_time=model.arrival_time,
            party_size=model.party_size,
            status=ReservationStatus(model.status),
            deposit=Money(amount_cents=model.deposit_cents, currency=model.currency),
            deposit_paid=model.deposit_paid,
            payment_reference=model.payment_reference,
            deposit_refunded=model.deposit_refunded,
            refund_amount=refund_amount,
            refund_date=_aware(model.refund_date) if model.refund_date else None,
            special_requests=model.special_requests,
            internal_notes=model.internal_notes,
            version=model.version,
            created_at=created_at,
            updated_at=updated_at,
        )
