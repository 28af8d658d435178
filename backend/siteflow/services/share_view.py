"""Public (anonymous) project view behind a share link."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from ..domain_errors import GoneError
from ..models import DailyLog, Project, ShareLink
from .project_metrics import BudgetMetrics

PUBLIC_PROJECT_FIELDS = (
    "id",
    "name",
    "status",
    "start_date",
    "end_date",
    "description",
    "thumbnail_url",
    "address",
    "scale",
)
FINANCE_FIELDS = ("budget_total", "currency")
INVESTOR_FIELDS = ("investor_name", "investor_phone")
PUBLIC_DAILY_LOG_FIELDS = (
    "id",
    "category_id",
    "date",
    "notes",
    "media",
    "status",
    "qc_rating",
)


def is_expired(link: ShareLink, *, now: datetime | None = None) -> bool:
    if link.expires_at is None:
        return False
    current = now or datetime.now(timezone.utc)
    expires_at = link.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < current


def ensure_not_expired(link: ShareLink, *, now: datetime | None = None) -> None:
    if is_expired(link, now=now):
        raise GoneError("This share link has expired", code="SHARE_LINK_EXPIRED")


def build_public_project(
    project: Project,
    *,
    hide_finance: bool,
    show_investor_contact: bool,
    budget: BudgetMetrics | None = None,
) -> dict[str, Any]:
    """Project fields visible to anonymous viewers under the link's settings."""
    payload = {field: getattr(project, field) for field in PUBLIC_PROJECT_FIELDS}
    if not hide_finance:
        for field in FINANCE_FIELDS:
            payload[field] = getattr(project, field)
        payload["budget_total"] = None if project.budget_total is None else float(project.budget_total)
        if budget is not None:
            payload["budget_used"] = float(budget.budget_used)
            payload["budget_used_pct"] = None if budget.budget_used_pct is None else float(budget.budget_used_pct)
            payload["is_over_budget"] = budget.is_over_budget
    if show_investor_contact:
        for field in INVESTOR_FIELDS:
            payload[field] = getattr(project, field)
    return payload


def build_share_payload(
    link: ShareLink,
    project: Project,
    daily_logs: Iterable[DailyLog],
    *,
    progress_pct: float,
    budget: BudgetMetrics | None = None,
) -> dict[str, Any]:
    logs = [{field: getattr(log, field) for field in PUBLIC_DAILY_LOG_FIELDS} for log in daily_logs]
    return {
        "ok": True,
        "project": build_public_project(
            project,
            hide_finance=bool(link.hide_finance),
            show_investor_contact=bool(link.show_investor_contact),
            budget=budget,
        ),
        "daily_logs": logs,
        "progress": {
            "percentage": progress_pct,
            "approved_logs": len(logs),
        },
        "share_settings": {
            "hide_finance": bool(link.hide_finance),
            "show_investor_contact": bool(link.show_investor_contact),
            "expires_at": link.expires_at,
        },
    }
