from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rsv.application.ports.repositories import CustomerDirectory, CustomerRecord
from rsv.domain.common.ids import CustomerId
from rsv.infrastructure.db.models.reservation import CustomerModel
from rsv.infrastructure.db.session import get_engine


def split_name(name: str) -> tuple[str, str]:
    first, _, last = name.strip().partition(" ")
    return first, last.strip()


class SqlAlchemyCustomerDirectory(CustomerDirectory):
    """Customers keyed by lower-cased email; the first booking creates the record."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def find_or_create(
        self,
        name: str,
        email: str,
        phone: str | None,
    ) -> CustomerRecord:
        normalized = email.strip().lower()
        statement = select(CustomerModel).where(CustomerModel.email == normalized).limit(1)

        with Session(self._engine) as session:
            existing = session.execute(statement).scalar_one_or_none()
            if existing is not None:
                if phone and not existing.phone:
                    existing.phone = phone
                    session.commit()
                return self._to_record(existing)

            first_name, last_name = split_name(name)
            model = CustomerModel(
                id=f"cus_{uuid4().hex[:12]}",
                first_name=first_name,
                last_name=last_name,
                email=normalized,
                phone=phone,
            )
            session.add(model)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                existing = session.execute(statement).scalar_one_or_none()
                if existing is None:
                    raise
                return self._to_record(existing)
            return self._to_record(model)

    def get(self, customer_id: CustomerId) -> CustomerRecord | None:
        statement = select(CustomerModel).where(CustomerModel.id == str(customer_id))
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return self._to_record(model)

    def _to_record(self, model: CustomerModel) -> CustomerRecord:
        return CustomerRecord(
            customer_id=CustomerId(model.id),
            first_name=model.first_name,
            last_name=model.last_name,
            email=model.email,
            phone=model.phone,
        )
