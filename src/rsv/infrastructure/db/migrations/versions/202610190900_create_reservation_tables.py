"""create reservation tables

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tables",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("table_number", sa.Integer(), nullable=False),
        sa.Column("floor", sa.String(length=20), nullable=False),
        sa.Column("capacity_min", sa.Integer(), nullable=False),
        sa.Column("capacity_max", sa.Integer(), nullable=False),
        sa.Column("is_vip", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("combinable_with", sa.JSON(), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("table_number"),
    )

    op.create_table(
        "table_blocks",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("table_id", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["table_id"], ["tables.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_table_blocks_table_range",
        "table_blocks",
        ["table_id", "start_date", "end_date"],
        unique=False,
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("reference", sa.String(length=20), nullable=False),
        sa.Column("table_id", sa.String(length=50), nullable=False),
        sa.Column("combined_table_id", sa.String(length=50), nullable=True),
        sa.Column("customer_id", sa.String(length=50), nullable=False),
        sa.Column("reservation_date", sa.Date(), nullable=False),
        sa.Column("arrival_time", sa.Time(), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("deposit_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("deposit_paid", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("payment_reference", sa.String(length=255), nullable=True),
        sa.Column("deposit_refunded", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("refund_cents", sa.Integer(), nullable=True),
        sa.Column("refund_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["table_id"], ["tables.id"]),
        sa.ForeignKeyConstraint(["combined_table_id"], ["tables.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reference"),
    )
    op.create_index("ix_reservations_customer_id", "reservations", ["customer_id"], unique=False)
    op.create_index(
        "ix_reservations_date_status",
        "reservations",
        ["reservation_date", "status"],
        unique=False,
    )
    op.create_index(
        "ix_reservations_table_date",
        "reservations",
        ["table_id", "reservation_date"],
        unique=False,
    )

    op.create_table(
        "table_nights",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("table_id", sa.String(length=50), nullable=False),
        sa.Column("reservation_date", sa.Date(), nullable=False),
        sa.Column("reservation_id", sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(["table_id"], ["tables.id"]),
        sa.ForeignKeyConstraint(["reservation_id"], ["reservations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("table_id", "reservation_date", name="uq_table_nights_table_date"),
    )
    op.create_index(
        "ix_table_nights_reservation_id", "table_nights", ["reservation_id"], unique=False
    )

    op.create_table(
        "reservation_modifications",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("reservation_id", sa.String(length=50), nullable=False),
        sa.Column("actor", sa.String(length=100), nullable=False),
        sa.Column("previous_values", sa.JSON(), nullable=False),
        sa.Column("new_values", sa.JSON(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column(
            "notification_sent", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["reservation_id"], ["reservations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_reservation_modifications_reservation_created",
        "reservation_modifications",
        ["reservation_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "payment_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reservation_id", sa.String(length=50), nullable=False),
        sa.Column("external_reference", sa.String(length=255), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["reservation_id"], ["reservations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_logs_reservation_id", "payment_logs", ["reservation_id"])


def downgrade() -> None:
    op.drop_index("ix_payment_logs_reservation_id", table_name="payment_logs")
    op.drop_table("payment_logs")
    op.drop_index(
        "ix_reservation_modifications_reservation_created",
        table_name="reservation_modifications",
    )
    op.drop_table("reservation_modifications")
    op.drop_index("ix_table_nights_reservation_id", table_name="table_nights")
    op.drop_table("table_nights")
    op.drop_index("ix_reservations_table_date", table_name="reservations")
    op.drop_index("ix_reservations_date_status", table_name="reservations")
    op.drop_index("ix_reservations_customer_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("customers")
    op.drop_index("ix_table_blocks_table_range", table_name="table_blocks")
    op.drop_table("table_blocks")
    op.drop_table("tables")
