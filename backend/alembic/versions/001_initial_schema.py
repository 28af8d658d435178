"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    ]


def _soft_delete() -> sa.Column:
    return sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True)


def upgrade() -> None:
    op.create_table(
        "organizations",
        _uuid("id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)

    op.create_table(
        "users",
        _uuid("id"),
        _uuid("org_id", nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('ENGINEER', 'PM', 'SUPERVISOR', 'QC', 'ACCOUNTANT', 'ADMIN')",
            name="chk_user_role",
        ),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_org_id", "users", ["org_id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "projects",
        _uuid("id"),
        _uuid("org_id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="planning"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("budget_total", sa.Numeric(15, 2), nullable=True),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="VND"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("scale", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("investor_name", sa.String(length=255), nullable=True),
        sa.Column("investor_phone", sa.String(length=50), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.CheckConstraint(
            "status IN ('planning', 'in_progress', 'on_hold', 'completed')",
            name="chk_project_status",
        ),
        sa.CheckConstraint("budget_total IS NULL OR budget_total >= 0", name="chk_project_budget_non_negative"),
        sa.CheckConstraint("end_date IS NULL OR start_date <= end_date", name="chk_project_dates"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_org_id", "projects", ["org_id"], unique=False)
    op.create_index("ix_projects_status", "projects", ["status"], unique=False)
    op.create_index("ix_projects_created_at", "projects", ["created_at"], unique=False)

    op.create_table(
        "categories",
        _uuid("id"),
        _uuid("org_id"),
        _uuid("project_id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("budget", sa.Numeric(15, 2), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        _soft_delete(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_categories_org_id", "categories", ["org_id"], unique=False)
    op.create_index("ix_categories_project_id", "categories", ["project_id"], unique=False)

    op.create_table(
        "tasks",
        _uuid("id"),
        _uuid("org_id"),
        _uuid("project_id"),
        _uuid("category_id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="WAITING"),
        sa.Column("priority", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("estimated_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("actual_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        _uuid("assigned_to", nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        _soft_delete(),
        sa.CheckConstraint("status IN ('WAITING', 'IN_PROGRESS', 'DONE', 'CANCELLED')", name="chk_task_status"),
        sa.CheckConstraint("priority BETWEEN 0 AND 2", name="chk_task_priority"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_to"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_org_id", "tasks", ["org_id"], unique=False)
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"], unique=False)
    op.create_index("ix_tasks_category_id", "tasks", ["category_id"], unique=False)
    op.create_index("ix_tasks_status", "tasks", ["status"], unique=False)

    op.create_table(
        "daily_logs",
        _uuid("id"),
        _uuid("org_id"),
        _uuid("project_id"),
        _uuid("category_id"),
        sa.Column("date", sa.Date(), nullable=False),
        _uuid("reporter_id"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("media", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="DRAFT"),
        sa.Column("review_comment", sa.Text(), nullable=True),
        sa.Column("qc_rating", sa.SmallInteger(), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.CheckConstraint(
            "status IN ('DRAFT', 'SUBMITTED', 'APPROVED', 'DECLINED')",
            name="chk_daily_log_status",
        ),
        sa.CheckConstraint("qc_rating IS NULL OR (qc_rating BETWEEN 1 AND 5)", name="chk_daily_log_qc_rating"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_daily_logs_org_id", "daily_logs", ["org_id"], unique=False)
    op.create_index("ix_daily_logs_project_id", "daily_logs", ["project_id"], unique=False)
    op.create_index("ix_daily_logs_category_id", "daily_logs", ["category_id"], unique=False)
    op.create_index("ix_daily_logs_date", "daily_logs", ["date"], unique=False)
    op.create_index("ix_daily_logs_status", "daily_logs", ["status"], unique=False)
    op.create_index("ix_daily_logs_created_at", "daily_logs", ["created_at"], unique=False)
    op.create_index(
        "idx_daily_logs_project_status_date",
        "daily_logs",
        ["project_id", "status", "date"],
        unique=False,
    )

    op.create_table(
        "daily_log_tasks",
        _uuid("id"),
        _uuid("org_id"),
        _uuid("daily_log_id"),
        _uuid("task_id"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="WAITING"),
        sa.Column("progress", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("hours_worked", sa.Numeric(8, 2), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.CheckConstraint(
            "status IN ('WAITING', 'IN_PROGRESS', 'DONE', 'CANCELLED')",
            name="chk_daily_log_task_status",
        ),
        sa.CheckConstraint("progress BETWEEN 0 AND 100", name="chk_daily_log_task_progress"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["daily_log_id"], ["daily_logs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("daily_log_id", "task_id", name="uq_daily_log_task"),
    )
    op.create_index("ix_daily_log_tasks_org_id", "daily_log_tasks", ["org_id"], unique=False)
    op.create_index("ix_daily_log_tasks_daily_log_id", "daily_log_tasks", ["daily_log_id"], unique=False)
    op.create_index("ix_daily_log_tasks_task_id", "daily_log_tasks", ["task_id"], unique=False)

    op.create_table(
        "media_assets",
        _uuid("id"),
        _uuid("org_id"),
        _uuid("project_id", nullable=True),
        _uuid("daily_log_id", nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.CheckConstraint("kind IN ('IMAGE', 'VIDEO', 'DOCUMENT', 'AUDIO')", name="chk_media_asset_kind"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["daily_log_id"], ["daily_logs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_media_assets_org_id", "media_assets", ["org_id"], unique=False)
    op.create_index("ix_media_assets_project_id", "media_assets", ["project_id"], unique=False)
    op.create_index("ix_media_assets_daily_log_id", "media_assets", ["daily_log_id"], unique=False)
    op.create_index("ix_media_assets_kind", "media_assets", ["kind"], unique=False)

    op.create_table(
        "transactions",
        _uuid("id"),
        _uuid("org_id"),
        _uuid("project_id"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="VND"),
        sa.Column("cost_type", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("invoice_no", sa.String(length=100), nullable=True),
        sa.Column("vendor", sa.String(length=255), nullable=True),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("paid_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("attachments", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.CheckConstraint("type IN ('ADVANCE', 'EXPENSE')", name="chk_transaction_type"),
        sa.CheckConstraint(
            "cost_type IN ('MATERIAL', 'LABOR', 'EQUIPMENT', 'OTHER')",
            name="chk_transaction_cost_type",
        ),
        sa.CheckConstraint(
            "payment_status IN ('PENDING', 'PARTIAL', 'PAID')",
            name="chk_transaction_payment_status",
        ),
        sa.CheckConstraint("amount >= 0", name="chk_transaction_amount_non_negative"),
        sa.CheckConstraint("paid_amount >= 0", name="chk_transaction_paid_non_negative"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transactions_org_id", "transactions", ["org_id"], unique=False)
    op.create_index("ix_transactions_project_id", "transactions", ["project_id"], unique=False)
    op.create_index("ix_transactions_date", "transactions", ["date"], unique=False)
    op.create_index("ix_transactions_type", "transactions", ["type"], unique=False)
    op.create_index("ix_transactions_payment_status", "transactions", ["payment_status"], unique=False)

    op.create_table(
        "share_links",
        _uuid("id"),
        _uuid("org_id"),
        _uuid("project_id"),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column("hide_finance", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("show_investor_contact", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("created_by"),
        *_timestamps(),
        _soft_delete(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_share_links_org_id", "share_links", ["org_id"], unique=False)
    op.create_index("ix_share_links_project_id", "share_links", ["project_id"], unique=False)
    op.create_index("ix_share_links_token", "share_links", ["token"], unique=True)

    op.create_table(
        "audit_events",
        _uuid("id"),
        _uuid("org_id", nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=30), nullable=False),
        _uuid("entity_id", nullable=True),
        _uuid("user_id", nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_events_org_id", "audit_events", ["org_id"], unique=False)
    op.create_index("ix_audit_events_action", "audit_events", ["action"], unique=False)
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"], unique=False)
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"], unique=False)
    op.create_index("idx_audit_events_entity", "audit_events", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    for table in (
        "audit_events",
        "share_links",
        "transactions",
        "media_assets",
        "daily_log_tasks",
        "daily_logs",
        "tasks",
        "categories",
        "projects",
        "users",
        "organizations",
    ):
        op.drop_table(table)
