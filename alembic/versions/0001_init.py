"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

VOUCHER_STATUSES = ("active", "used", "expired", "exchanged", "transferred")
BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def upgrade() -> None:
    inspector = _inspector()
    existing_tables = set(inspector.get_table_names())

    def existing_indexes(table: str) -> set[str]:
        if table not in existing_tables:
            return set()
        return {idx["name"] for idx in inspector.get_indexes(table)}

    if "experiences" not in existing_tables:
        op.create_table(
            "experiences",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("experiences")
    if "ix_experiences_id" not in idxs:
        op.create_index("ix_experiences_id", "experiences", ["id"])

    if "vouchers" not in existing_tables:
        op.create_table(
            "vouchers",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("code", sa.String(32), nullable=False),
            sa.Column("experience_id", sa.String(36), sa.ForeignKey("experiences.id"), nullable=False),
            sa.Column("owner_user_id", sa.String(), nullable=True),
            sa.Column("purchase_price", sa.Numeric(10, 2), nullable=False),
            sa.Column("status", sa.Enum(*VOUCHER_STATUSES, name="voucher_status"), nullable=False, server_default="active"),
            sa.Column("issue_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("redemption_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("linked_booking_id", sa.String(36), nullable=True),
            sa.Column("qr_code_data", sa.String(32), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("vouchers")
    if "ix_vouchers_id" not in idxs:
        op.create_index("ix_vouchers_id", "vouchers", ["id"])
    if "ix_vouchers_code" not in idxs:
        op.create_index("ix_vouchers_code", "vouchers", ["code"], unique=True)
    if "ix_vouchers_experience_id" not in idxs:
        op.create_index("ix_vouchers_experience_id", "vouchers", ["experience_id"])
    if "ix_vouchers_owner_user_id" not in idxs:
        op.create_index("ix_vouchers_owner_user_id", "vouchers", ["owner_user_id"])
    if "ix_vouchers_status" not in idxs:
        op.create_index("ix_vouchers_status", "vouchers", ["status"])
    if "ix_vouchers_expiry_date" not in idxs:
        op.create_index("ix_vouchers_expiry_date", "vouchers", ["expiry_date"])

    if "bookings" not in existing_tables:
        op.create_table(
            "bookings",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("voucher_id", sa.String(36), sa.ForeignKey("vouchers.id"), nullable=True),
            sa.Column("experience_id", sa.String(36), sa.ForeignKey("experiences.id"), nullable=False),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("participants", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
            sa.Column("special_requests", sa.Text(), nullable=True),
            sa.Column("status", sa.Enum(*BOOKING_STATUSES, name="booking_status"), nullable=False, server_default="pending"),
            sa.Column("cancellation_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("cancellation_reason", sa.Text(), nullable=True),
            sa.Column("rescheduled_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.UniqueConstraint("voucher_id", name="uq_bookings_voucher_id"),
            sa.CheckConstraint("rescheduled_count >= 0", name="ck_bookings_rescheduled_count"),
        )
    idxs = existing_indexes("bookings")
    if "ix_bookings_id" not in idxs:
        op.create_index("ix_bookings_id", "bookings", ["id"])
    if "ix_bookings_experience_id" not in idxs:
        op.create_index("ix_bookings_experience_id", "bookings", ["experience_id"])
    if "ix_bookings_user_id" not in idxs:
        op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    if "ix_bookings_booking_date" not in idxs:
        op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])
    if "ix_bookings_status" not in idxs:
        op.create_index("ix_bookings_status", "bookings", ["status"])


def downgrade() -> None:
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_booking_date", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_index("ix_bookings_experience_id", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")
    sa.Enum(name="booking_status").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_vouchers_expiry_date", table_name="vouchers")
    op.drop_index("ix_vouchers_status", table_name="vouchers")
    op.drop_index("ix_vouchers_owner_user_id", table_name="vouchers")
    op.drop_index("ix_vouchers_experience_id", table_name="vouchers")
    op.drop_index("ix_vouchers_code", table_name="vouchers")
    op.drop_index("ix_vouchers_id", table_name="vouchers")
    op.drop_table("vouchers")
    sa.Enum(name="voucher_status").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_experiences_id", table_name="experiences")
    op.drop_table("experiences")
