from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from rsv.infrastructure.db.models.table import Base


class CustomerModel(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class ReservationModel(Base):
    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    reference: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    table_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("tables.id"),
        nullable=False,
    )
    combined_table_id: Mapped[str | None] = mapped_column(
        String(50),
        ForeignKey("tables.id"),
        nullable=True,
    )
    customer_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("customers.id"),
        nullable=False,
        index=True,
    )
    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    arrival_time: Mapped[time] = mapped_column(Time, nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    deposit_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    deposit_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deposit_refunded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false()
    )
    refund_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    refund_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_reservations_date_status", "reservation_date", "status"),
        Index("ix_reservations_table_date", "table_id", "reservation_date"),
    )


class TableNightModel(Base):
    """Claim row for one table on one night, present while the holder is active."""

    __tablename__ = "table_nights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("tables.id"),
        nullable=False,
    )
    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    reservation_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("table_id", "reservation_date", name="uq_table_nights_table_date"),
    )


class ReservationModificationModel(Base):
    __tablename__ = "reservation_modifications"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    reservation_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    previous_values: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    new_values: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notification_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_reservation_modifications_reservation_created", "reservation_id", "created_at"),
    )


class PaymentLogModel(Base):
    __tablename__ = "payment_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reservation_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_reference: Mapped[str] = mapped_column(String(255), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
