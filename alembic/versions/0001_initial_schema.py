"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


USER_STATUS = ("pending_verification", "active", "suspended", "deactivated")
ORDER_STATUS = ("pending", "processing", "shipped", "delivered", "cancelled")
REVIEW_STATUS = ("pending", "in_review", "completed")
PRESCRIPTION_STATUS = ("draft", "submitted", "processing", "shipped", "delivered", "cancelled")
LOG_STATUS = ("success", "error", "warning", "info")
VITAL_TYPE = ("weight", "blood_pressure")
VITAL_SOURCE = ("manual", "device")


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("phone", sa.String(20)),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("avatar_url", sa.Text()),
        sa.Column("role_patient", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role_provider", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.Enum(*USER_STATUS, name="user_status"), nullable=False),
        sa.Column("stripe_customer_id", sa.String(255)),
        sa.Column("junction_user_id", sa.String(255)),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="America/New_York"),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        "provider_profiles",
        _id(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("npi_number", sa.String(10)),
        sa.Column("specialty", sa.String(100)),
        sa.Column("licensed_state", sa.String(2), nullable=False),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="America/New_York"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "provider_availability",
        _id(),
        sa.Column(
            "provider_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("provider_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="America/New_York"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day"),
        sa.CheckConstraint("end_time > start_time", name="ck_availability_range"),
    )
    op.create_index(
        "ix_provider_availability_provider_day",
        "provider_availability",
        ["provider_id", "day_of_week"],
    )

    op.create_table(
        "provider_availability_exceptions",
        _id(),
        sa.Column(
            "provider_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("provider_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("exception_date", sa.Date(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("start_time", sa.Time()),
        sa.Column("end_time", sa.Time()),
        sa.Column("reason", sa.Text()),
        *_timestamps(),
    )
    op.create_index(
        "ix_provider_availability_exceptions_provider_id",
        "provider_availability_exceptions",
        ["provider_id"],
    )

    op.create_table(
        "orders",
        _id(),
        sa.Column("order_number", sa.String(20), nullable=False, unique=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("patient_name", sa.String(200), nullable=False),
        sa.Column("patient_email", sa.String(320)),
        sa.Column("state", sa.String(2), nullable=False),
        sa.Column("shipping_address", postgresql.JSONB()),
        sa.Column("billing_address", postgresql.JSONB()),
        sa.Column("line_items", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("questionnaire_data", postgresql.JSONB()),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.Enum(*ORDER_STATUS, name="order_status"), nullable=False),
        sa.Column("review_status", sa.Enum(*REVIEW_STATUS, name="review_status"), nullable=False),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("review_started_at", sa.DateTime(timezone=True)),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("stripe_checkout_session_id", sa.String(255), unique=True),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_orders_state_created", "orders", ["state", "created_at"])
    op.create_index("ix_orders_review_status", "orders", ["review_status"])

    op.create_table(
        "prescriptions",
        _id(),
        sa.Column("order_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="SET NULL")),
        sa.Column("patient_name", sa.String(200), nullable=False),
        sa.Column("medication", sa.String(200), nullable=False),
        sa.Column("dosage", sa.String(100)),
        sa.Column("sig", sa.Text()),
        sa.Column("status", sa.Enum(*PRESCRIPTION_STATUS, name="prescription_status"), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_prescriptions_submitted_at", "prescriptions", ["submitted_at"])

    op.create_table(
        "system_logs",
        _id(),
        sa.Column("user_email", sa.String(320)),
        sa.Column("user_name", sa.String(200)),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("details", sa.Text()),
        sa.Column("status", sa.Enum(*LOG_STATUS, name="log_status"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_system_logs_action", "system_logs", ["action"])
    op.create_index("ix_system_logs_status", "system_logs", ["status"])

    op.create_table(
        "medication_catalog",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("strength", sa.String(50)),
        sa.Column("form", sa.String(50)),
        sa.Column("category", sa.String(100)),
        sa.Column("description", sa.Text()),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stripe_price_id", sa.String(255)),
        sa.Column("requires_prescription", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_medication_catalog_name", "medication_catalog", ["name"])
    op.create_index("ix_medication_catalog_category", "medication_catalog", ["category"])

    op.create_table(
        "vital_readings",
        _id(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("vital_type", sa.Enum(*VITAL_TYPE, name="vital_type"), nullable=False),
        sa.Column("value", sa.Numeric(7, 2)),
        sa.Column("systolic", sa.Integer()),
        sa.Column("diastolic", sa.Integer()),
        sa.Column("unit", sa.String(20), nullable=False),
        sa.Column("source", sa.Enum(*VITAL_SOURCE, name="vital_source"), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_vital_readings_user_id", "vital_readings", ["user_id"])


def downgrade() -> None:
    for table in (
        "vital_readings",
        "medication_catalog",
        "system_logs",
        "prescriptions",
        "orders",
        "provider_availability_exceptions",
        "provider_availability",
        "provider_profiles",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in (
        "vital_source",
        "vital_type",
        "log_status",
        "prescription_status",
        "review_status",
        "order_status",
        "user_status",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
