"""initial marketplace schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "userrole": ("user", "provider", "admin"),
    "approvalstatus": ("pending", "approved", "rejected"),
    "appointmentstatus": ("pending", "confirmed", "completed", "cancelled", "no_show"),
    "complaintcategory": (
        "service_quality",
        "professional_conduct",
        "billing_issues",
        "scheduling_problems",
        "communication_issues",
        "safety_concerns",
        "other",
    ),
    "complaintseverity": ("low", "medium", "high", "critical"),
    "complaintstatus": ("pending", "investigating", "resolved", "dismissed", "escalated"),
    "notificationtype": ("appointment", "review", "complaint", "quality", "system"),
    "qualityperiod": ("daily", "weekly", "monthly", "quarterly", "yearly"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("role", _enum("userrole"), nullable=False, server_default="user"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )

    op.create_table(
        "service_categories",
        _uuid_pk(),
        sa.Column("name", sa.String(120), nullable=False, unique=True),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(80), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("provider_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )

    op.create_table(
        "service_providers",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(40), nullable=False),
        sa.Column("subcategory", sa.String(120), nullable=True),
        sa.Column("location", sa.String(160), nullable=False),
        sa.Column("country", sa.String(80), nullable=False),
        sa.Column("experience_years", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("price_unit", sa.String(40), nullable=True),
        sa.Column("rating", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("review_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("approval_status", _enum("approvalstatus"), nullable=False, server_default="pending"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["service_categories.id"]),
    )
    op.create_index("ix_service_providers_category", "service_providers", ["category_id"])
    op.create_index("ix_service_providers_location", "service_providers", ["location", "country"])
    op.create_index("ix_service_providers_rating", "service_providers", ["rating"])
    op.create_index("ix_service_providers_active_approval", "service_providers", ["is_active", "approval_status"])

    op.create_table(
        "appointments",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("service_type", sa.String(160), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", _enum("appointmentstatus"), nullable=False, server_default="pending"),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("has_review", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", sa.String(20), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["provider_id"], ["service_providers.id"]),
    )
    op.create_index("ix_appointments_user_scheduled", "appointments", ["user_id", "scheduled_at"])
    op.create_index("ix_appointments_provider_scheduled", "appointments", ["provider_id", "scheduled_at"])
    op.create_index("ix_appointments_provider_created", "appointments", ["provider_id", "created_at"])
    op.create_index("ix_appointments_status", "appointments", ["status"])

    op.create_table(
        "reviews",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("report_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_reported", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("response_text", sa.Text(), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["provider_id"], ["service_providers.id"]),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"]),
        sa.UniqueConstraint("appointment_id", name="uq_reviews_appointment"),
    )
    op.create_index("ix_reviews_provider_created", "reviews", ["provider_id", "created_at"])
    op.create_index("ix_reviews_visible", "reviews", ["is_visible"])

    op.create_table(
        "review_reports",
        _uuid_pk(),
        sa.Column("review_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["review_id"], ["reviews.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("review_id", "user_id", name="uq_review_reports_review_user"),
    )

    op.create_table(
        "complaints",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category", _enum("complaintcategory"), nullable=False),
        sa.Column("severity", _enum("complaintseverity"), nullable=False, server_default="medium"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", _enum("complaintstatus"), nullable=False, server_default="pending"),
        sa.Column("resolution_text", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["provider_id"], ["service_providers.id"]),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"]),
    )
    op.create_index("ix_complaints_provider_created", "complaints", ["provider_id", "created_at"])
    op.create_index("ix_complaints_status", "complaints", ["status"])

    op.create_table(
        "notifications",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", _enum("notificationtype"), nullable=False, server_default="system"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])

    op.create_table(
        "quality_scores",
        _uuid_pk(),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sqi", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("review_rating", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("appointment_completion_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("response_speed", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("complaint_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("total_appointments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_appointments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("responded_appointments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_complaints", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("period", _enum("qualityperiod"), nullable=False, server_default="monthly"),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["provider_id"], ["service_providers.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index(
        "ix_quality_scores_provider_period_start", "quality_scores", ["provider_id", "period", "period_start"]
    )
    op.create_index(
        "ix_quality_scores_provider_period_active", "quality_scores", ["provider_id", "period", "is_active"]
    )
    op.create_index("ix_quality_scores_sqi", "quality_scores", ["sqi"])
    op.create_index("ix_quality_scores_window", "quality_scores", ["period_start", "period_end"])


def downgrade() -> None:
    op.drop_index("ix_quality_scores_window", table_name="quality_scores")
    op.drop_index("ix_quality_scores_sqi", table_name="quality_scores")
    op.drop_index("ix_quality_scores_provider_period_active", table_name="quality_scores")
    op.drop_index("ix_quality_scores_provider_period_start", table_name="quality_scores")
    op.drop_table("quality_scores")

    op.drop_index("ix_notifications_user_read", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_complaints_status", table_name="complaints")
    op.drop_index("ix_complaints_provider_created", table_name="complaints")
    op.drop_table("complaints")

    op.drop_table("review_reports")
    op.drop_index("ix_reviews_visible", table_name="reviews")
    op.drop_index("ix_reviews_provider_created", table_name="reviews")
    op.drop_table("reviews")

    op.drop_index("ix_appointments_status", table_name="appointments")
    op.drop_index("ix_appointments_provider_created", table_name="appointments")
    op.drop_index("ix_appointments_provider_scheduled", table_name="appointments")
    op.drop_index("ix_appointments_user_scheduled", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_service_providers_active_approval", table_name="service_providers")
    op.drop_index("ix_service_providers_rating", table_name="service_providers")
    op.drop_index("ix_service_providers_location", table_name="service_providers")
    op.drop_index("ix_service_providers_category", table_name="service_providers")
    op.drop_table("service_providers")

    op.drop_table("service_categories")
    op.drop_table("users")

    for name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
