"""Initial schema: spaces, areas, bookings, settlements, notifications.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BOOKING_STATUSES = (
    "'pending', 'confirmed', 'rejected', 'expired', 'cancelled', "
    "'checkedin', 'checkedout', 'completed', 'noshow'"
)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "spaces",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("partner_id", sa.String(64), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_spaces_partner_id", "spaces", ["partner_id"])

    op.create_table(
        "areas",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("space_id", sa.String(36), sa.ForeignKey("spaces.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("max_capacity", sa.Integer(), nullable=True),
        sa.Column("automatic_booking_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("request_approval_at_capacity", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.CheckConstraint("max_capacity IS NULL OR max_capacity >= 0", name="check_area_max_capacity"),
    )
    op.create_index("ix_areas_space_id", "areas", ["space_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("space_id", sa.String(36), sa.ForeignKey("spaces.id"), nullable=False),
        sa.Column("space_name", sa.String(255), nullable=False),
        sa.Column("area_id", sa.String(36), sa.ForeignKey("areas.id"), nullable=False),
        sa.Column("area_name", sa.String(255), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("partner_id", sa.String(64), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("booking_hours", sa.Integer(), nullable=False),
        sa.Column("guest_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("area_max_capacity", sa.Integer(), nullable=True),
        sa.Column("price_minor", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'PHP'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        *_timestamps(),
        sa.CheckConstraint("guest_count > 0", name="check_booking_guest_count_positive"),
        sa.CheckConstraint("expires_at > start_at", name="check_booking_window"),
        sa.CheckConstraint(f"status IN ({BOOKING_STATUSES})", name="check_booking_status"),
    )
    op.create_index("ix_bookings_space_id", "bookings", ["space_id"])
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    op.create_index("ix_bookings_partner_id", "bookings", ["partner_id"])
    # Occupancy counting filters on area and active status, then on the window
    op.create_index("ix_bookings_area_status", "bookings", ["area_id", "status"])
    # Reconciliation passes scan pending bookings by age and by start time
    op.create_index("ix_bookings_status_created", "bookings", ["status", "created_at"])
    op.create_index("ix_bookings_status_start", "bookings", ["status", "start_at"])

    op.create_table(
        "settlements",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("booking_id", sa.String(36), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'succeeded'")),
        sa.Column("amount_minor", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'PHP'")),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default=sa.text("'paymongo'")),
        sa.Column("external_reference", sa.String(128), nullable=True, unique=True),
        sa.Column("is_live", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_settlements_booking_id", "settlements", ["booking_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipient_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.String(1000), nullable=False),
        sa.Column("href", sa.String(500), nullable=True),
        sa.Column("booking_id", sa.String(36), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("space_id", sa.String(36), nullable=True),
        sa.Column("area_id", sa.String(36), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
    # Idempotency lookups: one notification per (booking, type)
    op.create_index("ix_notifications_booking_type", "notifications", ["booking_id", "type"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("settlements")
    op.drop_table("bookings")
    op.drop_table("areas")
    op.drop_table("spaces")
