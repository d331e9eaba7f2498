"""
Marketplace core: profiles, centers, services, bookings, transactions, platform config

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.sql import func


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_SLOT_PREDICATE = sa.text("status <> 'cancelled' AND deleted_at IS NULL AND service_id IS NOT NULL")
NOT_DELETED = sa.text("deleted_at IS NULL")


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("profile_id", sa.String(length=36), primary_key=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="diver"),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "centers",
        sa.Column("center_id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("profiles.profile_id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=True, server_default="EUR"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("stripe_account_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_onboarding_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_centers_stripe_account_id", "centers", ["stripe_account_id"])

    op.create_table(
        "center_members",
        sa.Column("profile_id", sa.String(length=36), sa.ForeignKey("profiles.profile_id"), primary_key=True),
        sa.Column(
            "center_id",
            sa.String(length=36),
            sa.ForeignKey("centers.center_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role_in_center", sa.String(length=32), nullable=False, server_default="staff"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    )
    op.create_index("ix_center_members_center", "center_members", ["center_id"])

    op.create_table(
        "services",
        sa.Column("service_id", sa.String(length=36), primary_key=True),
        sa.Column("center_id", sa.String(length=36), sa.ForeignKey("centers.center_id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="EUR"),
        sa.Column("max_capacity", sa.Integer(), nullable=True),
        sa.Column("min_participants", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_services_center_id", "services", ["center_id"])

    op.create_table(
        "blocked_dates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "center_id",
            sa.String(length=36),
            sa.ForeignKey("centers.center_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("blocked_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.UniqueConstraint("center_id", "blocked_date", name="uq_blocked_dates_center_date"),
    )

    op.create_table(
        "bookings",
        sa.Column("booking_id", sa.String(length=36), primary_key=True),
        sa.Column("client_id", sa.String(length=36), sa.ForeignKey("profiles.profile_id"), nullable=False),
        sa.Column("center_id", sa.String(length=36), sa.ForeignKey("centers.center_id"), nullable=False),
        sa.Column("service_id", sa.String(length=36), sa.ForeignKey("services.service_id"), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.Time(), nullable=False),
        sa.Column("participants", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="EUR"),
        sa.Column("client_note", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "confirmed",
                "cancelled",
                "completed",
                name="booking_status",
                native_enum=False,
                length=16,
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])
    op.create_index("ix_bookings_center_id", "bookings", ["center_id"])
    op.create_index("ix_bookings_center_status", "bookings", ["center_id", "status"])
    op.create_index("ix_bookings_service_date", "bookings", ["service_id", "booking_date"])
    op.create_index(
        "uq_bookings_active_slot",
        "bookings",
        ["service_id", "booking_date", "time_slot"],
        unique=True,
        postgresql_where=ACTIVE_SLOT_PREDICATE,
        sqlite_where=ACTIVE_SLOT_PREDICATE,
    )

    op.create_table(
        "transactions",
        sa.Column("transaction_id", sa.String(length=36), primary_key=True),
        sa.Column("booking_id", sa.String(length=36), sa.ForeignKey("bookings.booking_id"), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("platform_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column("vendor_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="succeeded"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_transactions_booking_id", "transactions", ["booking_id"])
    op.create_index(
        "uq_transactions_payment_intent",
        "transactions",
        ["stripe_payment_intent_id"],
        unique=True,
        postgresql_where=NOT_DELETED,
        sqlite_where=NOT_DELETED,
    )

    op.create_table(
        "platform_config",
        sa.Column("key", sa.String(length=100), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False, server_default="global"),
        sa.Column("is_secret", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
        sa.Column("updated_by", sa.String(length=36), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("platform_config")
    op.drop_index("uq_transactions_payment_intent", table_name="transactions")
    op.drop_index("ix_transactions_booking_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("uq_bookings_active_slot", table_name="bookings")
    op.drop_index("ix_bookings_service_date", table_name="bookings")
    op.drop_index("ix_bookings_center_status", table_name="bookings")
    op.drop_index("ix_bookings_center_id", table_name="bookings")
    op.drop_index("ix_bookings_client_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("blocked_dates")
    op.drop_index("ix_services_center_id", table_name="services")
    op.drop_table("services")
    op.drop_index("ix_center_members_center", table_name="center_members")
    op.drop_table("center_members")
    op.drop_index("ix_centers_stripe_account_id", table_name="centers")
    op.drop_table("centers")
    op.drop_table("profiles")
