"""Daily-log creation and review-workflow use-cases."""
from __future__ import annotations

import logging
import uuid
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import Actor, require_permission
from ..domain_errors import ConflictError, ForbiddenError, ValidationError
from ..models import (
    AuditEvent,
    Category,
    DailyLog,
    DailyLogStatus,
    DailyLogTask,
    MediaAsset,
    Project,
    Task,
)
from ..schemas import DailyLogCreate
from ..security import require_org_entity, scoped_query
from ..services.daily_log_workflow import (
    WorkflowAction,
    ensure_status,
    resolve_rule,
    role_allowed,
    validate_payload,
)

logger = logging.getLogger(__name__)

DAILY_LOG_NOT_FOUND = "Daily log not found or access denied"


def get_daily_log_or_404(*, db: Session, log_id: UUID, org_id: UUID) -> DailyLog:
    return require_org_entity(
        db,
        DailyLog,
        entity_id=log_id,
        org_id=org_id,
        not_found=DAILY_LOG_NOT_FOUND,
        code="DAILY_LOG_NOT_FOUND",
    )


def load_task_links(*, db: Session, log_id: UUID, org_id: UUID) -> list[DailyLogTask]:
    return (
        scoped_query(db, DailyLogTask, org_id=org_id)
        .filter(DailyLogTask.daily_log_id == log_id)
        .all()
    )


def _validate_task_entries(*, db: Session, payload: DailyLogCreate, category: Category, org_id: UUID) -> None:
    task_ids = [entry.task_id for entry in payload.tasks]
    if not task_ids:
        return
    if len(set(task_ids)) != len(task_ids):
        raise ValidationError(
            "Duplicate tasks in daily log",
            code="DUPLICATE_DAILY_LOG_TASK",
            errors={"tasks": "Each task can be reported once per log"},
        )
    tasks = scoped_query(db, Task, org_id=org_id).filter(Task.id.in_(task_ids)).all()
    in_category = {task.id for task in tasks if task.category_id == category.id}
    foreign = [str(task_id) for task_id in task_ids if task_id not in in_category]
    if foreign:
        raise ValidationError(
            "Tasks must belong to the selected category",
            code="TASK_CATEGORY_MISMATCH",
            errors={"tasks": "Task not found in category"},
            details={"taskIds": foreign},
        )


def create_daily_log_use_case(
    *,
    db: Session,
    payload: DailyLogCreate,
    actor: Actor,
) -> tuple[DailyLog, list[DailyLogTask]]:
    """Create a DRAFT daily log with its media and reported tasks."""
    require_permission(actor, "canCreateDailyLogs", message="Only engineers can create daily logs")

    project = require_org_entity(
        db,
        Project,
        entity_id=payload.project_id,
        org_id=actor.org_id,
        not_found="Project not found",
        code="PROJECT_NOT_FOUND",
    )
    category = require_org_entity(
        db,
        Category,
        entity_id=payload.category_id,
        org_id=actor.org_id,
        not_found="Category not found",
        code="CATEGORY_NOT_FOUND",
    )
    if category.project_id != project.id:
        raise ValidationError(
            "Category does not belong to project",
            code="CATEGORY_PROJECT_MISMATCH",
            errors={"category_id": "Category does not belong to project"},
        )
    if not payload.media:
        raise ValidationError("At least one media item is required", errors={"media": "required"})
    _validate_task_entries(db=db, payload=payload, category=category, org_id=actor.org_id)

    media = [item.model_dump() for item in payload.media]
    log = DailyLog(
        id=uuid.uuid4(),
        org_id=actor.org_id,
        project_id=project.id,
        category_id=category.id,
        date=payload.date,
        reporter_id=actor.user_id,
        notes=payload.notes,
        media=media,
        status=DailyLogStatus.DRAFT.value,
        review_comment=None,
        qc_rating=None,
    )
    db.add(log)

    links: list[DailyLogTask] = []
    for entry in payload.tasks:
        link = DailyLogTask(
            id=uuid.uuid4(),
            org_id=actor.org_id,
            daily_log_id=log.id,
            task_id=entry.task_id,
            status=entry.status.value,
            progress=entry.progress,
            hours_worked=entry.hours_worked,
            notes=entry.notes,
        )
        db.add(link)
        links.append(link)

    for item in media:
        db.add(
            MediaAsset(
                org_id=actor.org_id,
                project_id=project.id,
                daily_log_id=log.id,
                url=item["url"],
                kind=item["type"].upper(),
                meta={"caption": item["caption"]} if item.get("caption") else None,
            )
        )

    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action="daily_log_created",
            entity_type="daily_log",
            entity_id=log.id,
            user_id=actor.user_id,
            details={"projectId": str(project.id), "date": payload.date.isoformat(), "media": len(media)},
        )
    )
    db.commit()
    db.refresh(log)
    logger.info("daily_log.created id=%s project=%s reporter=%s", log.id, project.id, actor.user_id)
    return log, links


def transition_daily_log_use_case(
    *,
    db: Session,
    log_id: UUID,
    action: WorkflowAction | str,
    actor: Actor,
    comment: Any = None,
    qc_rating: Any = None,
) -> DailyLog:
    """Apply one workflow action.

    Checks run in a fixed order: action, existence, role, current status,
    payload. The write is an UPDATE guarded on the expected status; when
    another request moved the log first nothing is written and 409 is raised.
    """
    rule = resolve_rule(action)
    log = get_daily_log_or_404(db=db, log_id=log_id, org_id=actor.org_id)

    if not actor.bypass and not role_allowed(rule, actor.role):
        raise ForbiddenError(
            rule.forbidden_message,
            code="DAILY_LOG_ACTION_FORBIDDEN",
            details={"action": rule.action.value, "role": actor.role.value},
        )

    ensure_status(rule, log.status)
    values = validate_payload(rule, comment=comment, qc_rating=qc_rating)

    old_status = log.status
    updated = (
        db.query(DailyLog)
        .filter(
            DailyLog.id == log.id,
            DailyLog.org_id == actor.org_id,
            DailyLog.status == rule.required_status.value,
            DailyLog.deleted_at.is_(None),
        )
        .update({**values, "updated_at": func.now()}, synchronize_session=False)
    )
    if updated == 0:
        db.rollback()
        logger.warning(
            "daily_log.transition_conflict id=%s action=%s expected=%s",
            log.id,
            rule.action.value,
            rule.required_status.value,
        )
        raise ConflictError(
            "Daily log was modified by another request",
            code="DAILY_LOG_CONFLICT",
            details={"action": rule.action.value, "expectedStatus": rule.required_status.value},
        )

    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action=f"daily_log_{rule.action.value}",
            entity_type="daily_log",
            entity_id=log.id,
            user_id=actor.user_id,
            details={
                "oldStatus": old_status,
                "newStatus": values.get("status", old_status),
                **({"qcRating": values["qc_rating"]} if "qc_rating" in values else {}),
            },
        )
    )
    db.commit()
    db.refresh(log)
    logger.info(
        "daily_log.transition id=%s action=%s from=%s to=%s",
        log.id,
        rule.action.value,
        old_status,
        log.status,
    )
    return log


def get_daily_log_use_case(*, db: Session, log_id: UUID, actor: Actor) -> tuple[DailyLog, list[DailyLogTask]]:
    log = get_daily_log_or_404(db=db, log_id=log_id, org_id=actor.org_id)
    return log, load_task_links(db=db, log_id=log.id, org_id=actor.org_id)

