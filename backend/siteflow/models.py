"""SQLAlchemy models for the SiteFlow schema."""
import enum
import uuid

from sqlalchemy import (
    Boolean, Column, String, Integer, SmallInteger, Date, DateTime, Text, Numeric,
    ForeignKey, CheckConstraint, Index, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Role(str, enum.Enum):
    ENGINEER = "ENGINEER"
    PM = "PM"
    SUPERVISOR = "SUPERVISOR"
    QC = "QC"
    ACCOUNTANT = "ACCOUNTANT"
    ADMIN = "ADMIN"


class ProjectStatus(str, enum.Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


class TaskStatus(str, enum.Enum):
    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


class DailyLogStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


class MediaKind(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    AUDIO = "AUDIO"


class TransactionType(str, enum.Enum):
    ADVANCE = "ADVANCE"
    EXPENSE = "EXPENSE"


class CostType(str, enum.Enum):
    MATERIAL = "MATERIAL"
    LABOR = "LABOR"
    EQUIPMENT = "EQUIPMENT"
    OTHER = "OTHER"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


def _values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Organization(Base):
    """Organization model (tenant root)."""
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    users = relationship("User", back_populates="organization")
    projects = relationship("Project", back_populates="organization")


class User(Base):
    """User model (one membership per organization)."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    # Monotonically increasing version used to revoke previously issued tokens.
    token_version = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(_values(Role)), name="chk_user_role"),
    )

    organization = relationship("Organization", back_populates="users")


class Project(Base):
    """Construction project."""
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=ProjectStatus.PLANNING.value, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    budget_total = Column(Numeric(15, 2), nullable=True)
    currency = Column(String(10), nullable=False, default="VND")
    description = Column(Text, nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    scale = Column(JSONB, nullable=True)
    investor_name = Column(String(255), nullable=True)
    investor_phone = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(status.in_(_values(ProjectStatus)), name="chk_project_status"),
        CheckConstraint("budget_total IS NULL OR budget_total >= 0", name="chk_project_budget_non_negative"),
        CheckConstraint("end_date IS NULL OR start_date <= end_date", name="chk_project_dates"),
    )

    organization = relationship("Organization", back_populates="projects")
    categories = relationship("Category", back_populates="project")


class Category(Base):
    """Work package inside a project; groups tasks and carries its own budget."""
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    budget = Column(Numeric(15, 2), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", back_populates="categories")
    tasks = relationship("Task", back_populates="category")


class Task(Base):
    """Unit of work inside a category."""
    __tablename__ = "tasks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TaskStatus.WAITING.value, index=True)
    priority = Column(SmallInteger, nullable=False, default=0)  # 0 = low, 1 = medium, 2 = high
    estimated_hours = Column(Numeric(8, 2), nullable=True)
    actual_hours = Column(Numeric(8, 2), nullable=True)
    due_date = Column(Date, nullable=True)
    assigned_to = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(status.in_(_values(TaskStatus)), name="chk_task_status"),
        CheckConstraint(priority.between(0, 2), name="chk_task_priority"),
    )

    category = relationship("Category", back_populates="tasks")


class DailyLog(Base):
    """Dated site report subject to the review workflow."""
    __tablename__ = "daily_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    reporter_id = Column(UUID(as_uuid=True), nullable=False)
    notes = Column(Text, nullable=True)
    media = Column(JSONB, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=DailyLogStatus.DRAFT.value, index=True)
    review_comment = Column(Text, nullable=True)
    qc_rating = Column(SmallInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(status.in_(_values(DailyLogStatus)), name="chk_daily_log_status"),
        CheckConstraint("qc_rating IS NULL OR (qc_rating BETWEEN 1 AND 5)", name="chk_daily_log_qc_rating"),
        Index("idx_daily_logs_project_status_date", "project_id", "status", "date"),
    )

    task_links = relationship("DailyLogTask", back_populates="daily_log", cascade="all, delete-orphan")


class DailyLogTask(Base):
    """Per-task progress reported on a daily log."""
    __tablename__ = "daily_log_tasks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    daily_log_id = Column(
        UUID(as_uuid=True),
        ForeignKey("daily_logs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=TaskStatus.WAITING.value)
    progress = Column(SmallInteger, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    hours_worked = Column(Numeric(8, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(status.in_(_values(TaskStatus)), name="chk_daily_log_task_status"),
        CheckConstraint(progress.between(0, 100), name="chk_daily_log_task_progress"),
        UniqueConstraint("daily_log_id", "task_id", name="uq_daily_log_task"),
    )

    daily_log = relationship("DailyLog", back_populates="task_links")


class MediaAsset(Base):
    """Attachment metadata referenced by projects and daily logs."""
    __tablename__ = "media_assets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    daily_log_id = Column(
        UUID(as_uuid=True),
        ForeignKey("daily_logs.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    url = Column(Text, nullable=False)
    kind = Column(String(20), nullable=False, index=True)
    # "metadata" is reserved on declarative classes.
    meta = Column("metadata", JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(kind.in_(_values(MediaKind)), name="chk_media_asset_kind"),
    )


class Transaction(Base):
    """Budget movement (advance or expense) on a project."""
    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    type = Column(String(20), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="VND")
    cost_type = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)
    invoice_no = Column(String(100), nullable=True)
    vendor = Column(String(255), nullable=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    paid_amount = Column(Numeric(15, 2), nullable=False, default=0)
    payment_date = Column(Date, nullable=True)
    attachments = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(type.in_(_values(TransactionType)), name="chk_transaction_type"),
        CheckConstraint(cost_type.in_(_values(CostType)), name="chk_transaction_cost_type"),
        CheckConstraint(payment_status.in_(_values(PaymentStatus)), name="chk_transaction_payment_status"),
        CheckConstraint(amount >= 0, name="chk_transaction_amount_non_negative"),
        CheckConstraint(paid_amount >= 0, name="chk_transaction_paid_non_negative"),
    )


class ShareLink(Base):
    """Token-gated public view of a project."""
    __tablename__ = "share_links"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(255), unique=True, nullable=False, index=True)
    hide_finance = Column(Boolean, nullable=False, default=False)
    show_investor_contact = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class AuditEvent(Base):
    """Append-only activity record."""
    __tablename__ = "audit_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), index=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=True)
    details = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        Index("idx_audit_events_entity", "entity_type", "entity_id"),
    )
