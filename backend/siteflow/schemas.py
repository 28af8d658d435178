"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Any, Literal, Optional
from datetime import date, datetime
from uuid import UUID

from .config import settings
from .models import (
    CostType,
    DailyLogStatus,
    MediaKind,
    PaymentStatus,
    ProjectStatus,
    Role,
    TaskStatus,
    TransactionType,
)
from .services.daily_log_workflow import WorkflowAction

URL_PATTERN = r"^https?://\S+$"


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


# Auth / user schemas
class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: UUID
    org_id: Optional[UUID] = None
    email: str
    name: str
    role: str
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class AuthUserResponse(UserResponse):
    permissions: dict[str, bool]


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AuthUserResponse


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    role: Role
    password: str


# Project schemas
class ProjectScale(BaseModel):
    area_m2: Optional[float] = None
    floors: Optional[int] = None
    notes: Optional[str] = None


def _check_date_order(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise ValueError("Start date must be before or equal to end date")


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    status: ProjectStatus = ProjectStatus.PLANNING
    start_date: date
    end_date: Optional[date] = None
    budget_total: Optional[float] = Field(default=None, ge=0)
    currency: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY, min_length=1, max_length=10)
    address: Optional[str] = None
    scale: Optional[ProjectScale] = None
    investor_name: Optional[str] = None
    investor_phone: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)

    @model_validator(mode="after")
    def _dates_in_order(self):
        _check_date_order(self.start_date, self.end_date)
        return self


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[ProjectStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget_total: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=10)
    address: Optional[str] = None
    scale: Optional[ProjectScale] = None
    investor_name: Optional[str] = None
    investor_phone: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)

    @model_validator(mode="after")
    def _dates_in_order(self):
        _check_date_order(self.start_date, self.end_date)
        return self


class ProjectResponse(BaseModel):
    id: UUID
    org_id: UUID
    name: str
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget_total: Optional[float] = None
    currency: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    address: Optional[str] = None
    scale: Optional[dict[str, Any]] = None
    investor_name: Optional[str] = None
    investor_phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Derived metrics
    progress_pct: float = 0.0
    budget_used: float = 0.0
    budget_used_pct: Optional[float] = None
    budget_remaining: Optional[float] = None
    is_over_budget: bool = False
    model_config = ConfigDict(from_attributes=True)


class ProjectEnvelope(BaseModel):
    ok: bool = True
    project: ProjectResponse


class ProjectListResponse(PageMeta):
    items: list[ProjectResponse]


class ProjectKpiResponse(BaseModel):
    total_projects: int
    active_projects: int
    avg_progress: float
    total_budget: float
    total_budget_used: float
    over_budget_count: int
    budget_basis: str


# Category schemas
class CategoryCreate(BaseModel):
    project_id: UUID
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    order: Optional[int] = None


class CategoryResponse(BaseModel):
    id: UUID
    org_id: UUID
    project_id: UUID
    name: str
    description: Optional[str] = None
    budget: Optional[float] = None
    order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CategoryEnvelope(BaseModel):
    ok: bool = True
    category: CategoryResponse


# Task schemas
class TaskCreate(BaseModel):
    category_id: UUID
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.WAITING
    priority: int = Field(default=0, ge=0, le=2)
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    assigned_to: Optional[UUID] = None
    order: int = 0


class TaskUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[int] = Field(default=None, ge=0, le=2)
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    assigned_to: Optional[UUID] = None
    order: Optional[int] = None


class TaskResponse(BaseModel):
    id: UUID
    org_id: UUID
    project_id: UUID
    category_id: UUID
    name: str
    description: Optional[str] = None
    status: str
    priority: int = 0
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    due_date: Optional[date] = None
    assigned_to: Optional[UUID] = None
    order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TaskEnvelope(BaseModel):
    ok: bool = True
    task: TaskResponse


class TaskListResponse(PageMeta):
    items: list[TaskResponse]


# Daily log schemas
class MediaItem(BaseModel):
    url: str = Field(pattern=URL_PATTERN)
    type: Literal["image", "video", "document"]
    caption: Optional[str] = None


class DailyLogTaskInput(BaseModel):
    task_id: UUID
    status: TaskStatus = TaskStatus.WAITING
    progress: int = Field(default=0, ge=0, le=100)
    hours_worked: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class DailyLogCreate(BaseModel):
    project_id: UUID
    category_id: UUID
    date: date
    notes: Optional[str] = None
    media: list[MediaItem]
    tasks: list[DailyLogTaskInput] = Field(default_factory=list)

    @field_validator("media")
    @classmethod
    def _media_not_empty(cls, value: list[MediaItem]) -> list[MediaItem]:
        if not value:
            raise ValueError("At least one media item is required")
        return value


class DailyLogActionRequest(BaseModel):
    """PATCH body; per-action payload rules are enforced after role checks."""
    action: WorkflowAction
    comment: Optional[Any] = None
    qc_rating: Optional[Any] = None


class DailyLogTaskResponse(BaseModel):
    id: UUID
    task_id: UUID
    status: str
    progress: int = 0
    hours_worked: Optional[float] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class DailyLogResponse(BaseModel):
    id: UUID
    org_id: UUID
    project_id: UUID
    category_id: UUID
    date: date
    reporter_id: UUID
    notes: Optional[str] = None
    media: list[dict[str, Any]] = Field(default_factory=list)
    status: DailyLogStatus
    review_comment: Optional[str] = None
    qc_rating: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tasks: list[DailyLogTaskResponse] = Field(default_factory=list)


class DailyLogEnvelope(BaseModel):
    ok: bool = True
    daily_log: DailyLogResponse


class DailyLogListResponse(PageMeta):
    items: list[DailyLogResponse]


# Transaction schemas
class TransactionCreate(BaseModel):
    project_id: UUID
    date: date
    type: TransactionType
    amount: float = Field(ge=0)
    currency: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY, min_length=1, max_length=10)
    cost_type: CostType
    description: Optional[str] = None
    invoice_no: Optional[str] = None
    vendor: Optional[str] = None


class PaymentAttachment(BaseModel):
    url: str = Field(pattern=URL_PATTERN)
    filename: Optional[str] = None


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    paid_amount: float = Field(ge=0)
    payment_date: date
    attachments: Optional[list[PaymentAttachment]] = None


class TransactionResponse(BaseModel):
    id: UUID
    org_id: UUID
    project_id: UUID
    date: date
    type: str
    amount: float
    currency: str
    cost_type: str
    description: Optional[str] = None
    invoice_no: Optional[str] = None
    vendor: Optional[str] = None
    payment_status: str
    paid_amount: float = 0.0
    payment_date: Optional[date] = None
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("attachments", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []

    model_config = ConfigDict(from_attributes=True)


class TransactionEnvelope(BaseModel):
    ok: bool = True
    transaction: TransactionResponse


class TransactionListResponse(PageMeta):
    items: list[TransactionResponse]


# Share link schemas
class ShareLinkCreate(BaseModel):
    project_id: UUID
    hide_finance: bool = False
    show_investor_contact: bool = False
    expires_at: Optional[datetime] = None


class ShareLinkResponse(BaseModel):
    id: UUID
    org_id: UUID
    project_id: UUID
    token: str
    hide_finance: bool
    show_investor_contact: bool
    expires_at: Optional[datetime] = None
    created_by: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ShareLinkEnvelope(BaseModel):
    ok: bool = True
    share_link: ShareLinkResponse


class ShareLinkListResponse(PageMeta):
    items: list[ShareLinkResponse]


# Media asset schemas
class MediaAssetCreate(BaseModel):
    project_id: UUID
    daily_log_id: Optional[UUID] = None
    url: str = Field(pattern=URL_PATTERN)
    kind: MediaKind
    metadata: Optional[dict[str, Any]] = None


class MediaAssetResponse(BaseModel):
    id: UUID
    org_id: UUID
    project_id: Optional[UUID] = None
    daily_log_id: Optional[UUID] = None
    url: str
    kind: str
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias="meta")
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MediaAssetEnvelope(BaseModel):
    ok: bool = True
    media_asset: MediaAssetResponse


class MediaAssetListResponse(PageMeta):
    items: list[MediaAssetResponse]
