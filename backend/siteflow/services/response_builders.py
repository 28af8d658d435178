"""Canonical response shapes for entities returned by several endpoints."""
from __future__ import annotations

from typing import Iterable

from ..models import DailyLog, DailyLogTask, Project
from ..schemas import DailyLogResponse, DailyLogTaskResponse, ProjectResponse
from .project_metrics import ProjectMetrics


def build_project_response(project: Project, metrics: ProjectMetrics | None = None) -> ProjectResponse:
    response = ProjectResponse.model_validate(project)
    if metrics is None:
        return response
    return response.model_copy(update=metrics.as_response_fields())


def build_daily_log_response(
    log: DailyLog,
    task_links: Iterable[DailyLogTask] = (),
) -> DailyLogResponse:
    return DailyLogResponse(
        id=log.id,
        org_id=log.org_id,
        project_id=log.project_id,
        category_id=log.category_id,
        date=log.date,
        reporter_id=log.reporter_id,
        notes=log.notes,
        media=list(log.media or []),
        status=log.status,
        review_comment=log.review_comment,
        qc_rating=log.qc_rating,
        created_at=log.created_at,
        updated_at=log.updated_at,
        tasks=[DailyLogTaskResponse.model_validate(link) for link in task_links],
    )
