"""Project progress and budget aggregation.

Weighting rules:
  * task weight is ``estimated_hours`` when positive, otherwise 1;
  * CANCELLED tasks do not count;
  * a DONE task is complete, any other task is as complete as the highest
    progress reported for it on an APPROVED daily log.

Aggregates are computed in SQL per page of projects (or per tenant for the
KPI rollup); the loaders below turn the aggregate rows into rounded metrics.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Numeric, and_, case, cast, func, literal
from sqlalchemy.orm import Session

from ..domain_errors import ValidationError
from ..models import (
    DailyLog,
    DailyLogStatus,
    DailyLogTask,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    Transaction,
    TransactionType,
)

BUDGET_BASIS_PAID = "paid"
BUDGET_BASIS_COMMITTED = "committed"
BUDGET_BASES = (BUDGET_BASIS_PAID, BUDGET_BASIS_COMMITTED)

ACTIVE_PROJECT_STATUSES = (ProjectStatus.PLANNING.value, ProjectStatus.IN_PROGRESS.value)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class BudgetMetrics:
    budget_used: Decimal
    budget_used_pct: Decimal | None
    budget_remaining: Decimal | None
    is_over_budget: bool


@dataclass(frozen=True)
class ProjectMetrics:
    progress_pct: float
    budget: BudgetMetrics

    def as_response_fields(self) -> dict[str, Any]:
        return {
            "progress_pct": self.progress_pct,
            "budget_used": float(self.budget.budget_used),
            "budget_used_pct": _as_float(self.budget.budget_used_pct),
            "budget_remaining": _as_float(self.budget.budget_remaining),
            "is_over_budget": self.budget.is_over_budget,
        }


def _as_float(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return value
    # str() keeps float inputs from dragging binary noise into Decimal.
    return Decimal(str(value))


def normalize_budget_basis(value: str | None) -> str:
    basis = (value or BUDGET_BASIS_PAID).strip().lower()
    if basis not in BUDGET_BASES:
        raise ValidationError(
            f"Invalid budget basis: {value}",
            code="INVALID_BUDGET_BASIS",
            errors={"budget_basis": f"Must be one of {', '.join(BUDGET_BASES)}"},
        )
    return basis


def round_progress(done_weight: Any, total_weight: Any) -> float:
    """100 * done / total to one decimal; 0 when nothing is weighted."""
    total = to_decimal(total_weight)
    if total <= 0:
        return 0.0
    pct = to_decimal(done_weight) * _HUNDRED / total
    return float(pct.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_budget_metrics(budget_total: Any, budget_used: Any) -> BudgetMetrics:
    """Budget usage; a null or zero budget means the project is unbudgeted.

    The percentage is rounded away from 100 on each side so that it exceeds
    100 exactly when the used amount exceeds the total.
    """
    used = to_decimal(budget_used)
    if budget_total is None or to_decimal(budget_total) == 0:
        return BudgetMetrics(
            budget_used=used,
            budget_used_pct=None,
            budget_remaining=None,
            is_over_budget=False,
        )

    total = to_decimal(budget_total)
    over = used > total
    raw_pct = used * _HUNDRED / total
    pct = raw_pct.quantize(Decimal("0.01"), rounding=ROUND_CEILING if over else ROUND_FLOOR)
    return BudgetMetrics(
        budget_used=used,
        budget_used_pct=pct,
        budget_remaining=total - used,
        is_over_budget=over,
    )


def _approved_progress_subquery(db: Session, *, org_id: UUID):
    """Highest progress per task over APPROVED, live daily logs."""
    return (
        db.query(
            DailyLogTask.task_id.label("task_id"),
            func.max(DailyLogTask.progress).label("max_progress"),
        )
        .join(DailyLog, DailyLog.id == DailyLogTask.daily_log_id)
        .filter(
            DailyLog.org_id == org_id,
            DailyLog.status == DailyLogStatus.APPROVED.value,
            DailyLog.deleted_at.is_(None),
            DailyLogTask.deleted_at.is_(None),
        )
        .group_by(DailyLogTask.task_id)
        .subquery()
    )


def _progress_query(db: Session, *, org_id: UUID):
    best = _approved_progress_subquery(db, org_id=org_id)
    weight = case((Task.estimated_hours > 0, Task.estimated_hours), else_=literal(1))
    completion = case(
        (Task.status == TaskStatus.DONE.value, literal(1)),
        else_=func.coalesce(best.c.max_progress, 0) / literal(100.0),
    )
    return (
        db.query(
            Task.project_id.label("project_id"),
            func.sum(weight * completion).label("done_weight"),
            func.sum(weight).label("total_weight"),
        )
        .outerjoin(best, best.c.task_id == Task.id)
        .filter(
            Task.org_id == org_id,
            Task.deleted_at.is_(None),
            Task.status != TaskStatus.CANCELLED.value,
        )
        .group_by(Task.project_id)
    )


def _budget_used_query(db: Session, *, org_id: UUID, basis: str):
    column = Transaction.paid_amount if basis == BUDGET_BASIS_PAID else Transaction.amount
    return (
        db.query(
            Transaction.project_id.label("project_id"),
            func.coalesce(func.sum(column), 0).label("budget_used"),
        )
        .filter(
            Transaction.org_id == org_id,
            Transaction.deleted_at.is_(None),
            Transaction.type == TransactionType.EXPENSE.value,
        )
        .group_by(Transaction.project_id)
    )


def load_progress(db: Session, *, org_id: UUID, project_ids: list[UUID]) -> dict[UUID, float]:
    if not project_ids:
        return {}
    rows = _progress_query(db, org_id=org_id).filter(Task.project_id.in_(project_ids)).all()
    return {row.project_id: round_progress(row.done_weight, row.total_weight) for row in rows}


def load_budget_used(
    db: Session,
    *,
    org_id: UUID,
    project_ids: list[UUID],
    basis: str = BUDGET_BASIS_PAID,
) -> dict[UUID, Decimal]:
    if not project_ids:
        return {}
    rows = (
        _budget_used_query(db, org_id=org_id, basis=basis)
        .filter(Transaction.project_id.in_(project_ids))
        .all()
    )
    return {row.project_id: to_decimal(row.budget_used) for row in rows}


def load_project_metrics(
    db: Session,
    projects: list[Project],
    *,
    org_id: UUID,
    basis: str = BUDGET_BASIS_PAID,
) -> dict[UUID, ProjectMetrics]:
    """Metrics for one page of projects: one progress and one budget query."""
    project_ids = [project.id for project in projects]
    progress = load_progress(db, org_id=org_id, project_ids=project_ids)
    used = load_budget_used(db, org_id=org_id, project_ids=project_ids, basis=basis)
    return {
        project.id: ProjectMetrics(
            progress_pct=progress.get(project.id, 0.0),
            budget=compute_budget_metrics(project.budget_total, used.get(project.id, _ZERO)),
        )
        for project in projects
    }


def _kpi_query(db: Session, *, org_id: UUID, basis: str):
    progress_sq = _progress_query(db, org_id=org_id).subquery()
    used_sq = _budget_used_query(db, org_id=org_id, basis=basis).subquery()

    # Averaged over the same one-decimal values the project list shows.
    project_pct = case(
        (
            progress_sq.c.total_weight > 0,
            func.round(cast(progress_sq.c.done_weight * 100 / progress_sq.c.total_weight, Numeric), 1),
        ),
        else_=literal(0),
    )
    used = func.coalesce(used_sq.c.budget_used, 0)
    return (
        db.query(
            func.count(Project.id).label("total_projects"),
            func.coalesce(
                func.sum(case((Project.status.in_(ACTIVE_PROJECT_STATUSES), 1), else_=0)), 0
            ).label("active_projects"),
            func.coalesce(func.avg(project_pct), 0).label("avg_progress"),
            func.coalesce(func.sum(Project.budget_total), 0).label("total_budget"),
            func.coalesce(func.sum(used), 0).label("total_budget_used"),
            func.coalesce(
                func.sum(case((and_(Project.budget_total > 0, used > Project.budget_total), 1), else_=0)), 0
            ).label("over_budget_count"),
        )
        .select_from(Project)
        .outerjoin(progress_sq, progress_sq.c.project_id == Project.id)
        .outerjoin(used_sq, used_sq.c.project_id == Project.id)
        .filter(Project.org_id == org_id, Project.deleted_at.is_(None))
    )


def load_project_kpis(db: Session, *, org_id: UUID, basis: str = BUDGET_BASIS_PAID) -> dict[str, Any]:
    """Tenant-wide dashboard rollup, aggregated in the database."""
    row = _kpi_query(db, org_id=org_id, basis=basis).one()
    return {
        "total_projects": int(row.total_projects or 0),
        "active_projects": int(row.active_projects or 0),
        "avg_progress": float(to_decimal(row.avg_progress).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)),
        "total_budget": float(to_decimal(row.total_budget)),
        "total_budget_used": float(to_decimal(row.total_budget_used)),
        "over_budget_count": int(row.over_budget_count or 0),
        "budget_basis": basis,
    }
