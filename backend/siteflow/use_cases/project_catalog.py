"""Project, category and task write use-cases."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import Actor, require_permission
from ..domain_errors import ValidationError
from ..models import AuditEvent, Category, Project, Task, User
from ..schemas import (
    CategoryCreate,
    CategoryUpdate,
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
)
from ..security import require_org_entity

logger = logging.getLogger(__name__)


def get_project_or_404(*, db: Session, project_id: UUID, org_id: UUID) -> Project:
    return require_org_entity(
        db,
        Project,
        entity_id=project_id,
        org_id=org_id,
        not_found="Project not found",
        code="PROJECT_NOT_FOUND",
    )


def get_category_or_404(*, db: Session, category_id: UUID, org_id: UUID) -> Category:
    return require_org_entity(
        db,
        Category,
        entity_id=category_id,
        org_id=org_id,
        not_found="Category not found",
        code="CATEGORY_NOT_FOUND",
    )


def get_task_or_404(*, db: Session, task_id: UUID, org_id: UUID) -> Task:
    return require_org_entity(
        db,
        Task,
        entity_id=task_id,
        org_id=org_id,
        not_found="Task not found",
        code="TASK_NOT_FOUND",
    )


def _audit(db: Session, *, actor: Actor, action: str, entity_type: str, entity_id: UUID, details: dict) -> None:
    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=actor.user_id,
            details=details,
        )
    )


def _dump_update(payload, *, required: tuple[str, ...] = ()) -> dict:
    data = payload.model_dump(exclude_unset=True)
    for key in required:
        if key in data and data[key] is None:
            raise ValidationError(f"{key} cannot be null", errors={key: "required"})
    # Nested models come back as dicts already; enums are stored by value.
    return {key: getattr(value, "value", value) for key, value in data.items()}


def create_project_use_case(*, db: Session, payload: ProjectCreate, actor: Actor) -> Project:
    require_permission(actor, "canManageProjects", message="Only PM and Admin can create projects")

    data = payload.model_dump()
    data["status"] = payload.status.value
    data["scale"] = payload.scale.model_dump(exclude_none=True) if payload.scale else None
    project = Project(org_id=actor.org_id, **data)
    db.add(project)
    db.flush()
    _audit(db, actor=actor, action="project_created", entity_type="project", entity_id=project.id,
           details={"name": project.name})
    db.commit()
    db.refresh(project)
    logger.info("project.created id=%s org=%s", project.id, actor.org_id)
    return project


def update_project_use_case(*, db: Session, project_id: UUID, payload: ProjectUpdate, actor: Actor) -> Project:
    require_permission(actor, "canManageProjects", message="Only PM and Admin can update projects")
    project = get_project_or_404(db=db, project_id=project_id, org_id=actor.org_id)

    changes = _dump_update(payload, required=("name", "status", "start_date", "currency"))
    start = changes.get("start_date", project.start_date)
    end = changes.get("end_date", project.end_date)
    if start and end and start > end:
        raise ValidationError(
            "Start date must be before or equal to end date",
            errors={"end_date": "must not be before start_date"},
        )

    for key, value in changes.items():
        setattr(project, key, value)
    project.updated_at = func.now()

    _audit(db, actor=actor, action="project_updated", entity_type="project", entity_id=project.id,
           details={"fields": sorted(changes)})
    db.commit()
    db.refresh(project)
    return project


def create_category_use_case(*, db: Session, payload: CategoryCreate, actor: Actor) -> Category:
    require_permission(actor, "canManageProjects", message="Only PM and Admin can manage categories")
    project = get_project_or_404(db=db, project_id=payload.project_id, org_id=actor.org_id)

    category = Category(
        org_id=actor.org_id,
        project_id=project.id,
        name=payload.name,
        description=payload.description,
        budget=payload.budget,
        order=payload.order,
    )
    db.add(category)
    db.flush()
    _audit(db, actor=actor, action="category_created", entity_type="category", entity_id=category.id,
           details={"projectId": str(project.id), "name": category.name})
    db.commit()
    db.refresh(category)
    return category


def update_category_use_case(*, db: Session, category_id: UUID, payload: CategoryUpdate, actor: Actor) -> Category:
    require_permission(actor, "canManageProjects", message="Only PM and Admin can manage categories")
    category = get_category_or_404(db=db, category_id=category_id, org_id=actor.org_id)

    changes = _dump_update(payload, required=("name", "order"))
    for key, value in changes.items():
        setattr(category, key, value)
    category.updated_at = func.now()

    db.commit()
    db.refresh(category)
    return category


def _ensure_assignee_in_org(db: Session, *, user_id: UUID | None, org_id: UUID) -> None:
    if user_id is None:
        return
    exists = db.query(User).filter(User.id == user_id, User.org_id == org_id).first()
    if not exists:
        raise ValidationError("Assignee not found in organization", errors={"assigned_to": "unknown user"})


def create_task_use_case(*, db: Session, payload: TaskCreate, actor: Actor) -> Task:
    require_permission(actor, "canManageTasks", message="Not allowed to manage tasks")
    category = get_category_or_404(db=db, category_id=payload.category_id, org_id=actor.org_id)
    # A category is only reachable through a live project of the tenant.
    get_project_or_404(db=db, project_id=category.project_id, org_id=actor.org_id)
    _ensure_assignee_in_org(db, user_id=payload.assigned_to, org_id=actor.org_id)

    task = Task(
        org_id=actor.org_id,
        project_id=category.project_id,
        category_id=category.id,
        name=payload.name,
        description=payload.description,
        status=payload.status.value,
        priority=payload.priority,
        estimated_hours=payload.estimated_hours,
        actual_hours=payload.actual_hours,
        due_date=payload.due_date,
        assigned_to=payload.assigned_to,
        order=payload.order,
    )
    db.add(task)
    db.flush()
    _audit(db, actor=actor, action="task_created", entity_type="task", entity_id=task.id,
           details={"categoryId": str(category.id), "name": task.name})
    db.commit()
    db.refresh(task)
    return task


def update_task_use_case(*, db: Session, task_id: UUID, payload: TaskUpdate, actor: Actor) -> Task:
    require_permission(actor, "canManageTasks", message="Not allowed to manage tasks")
    task = get_task_or_404(db=db, task_id=task_id, org_id=actor.org_id)

    changes = _dump_update(payload, required=("name", "status", "priority", "order"))
    if "assigned_to" in changes:
        _ensure_assignee_in_org(db, user_id=changes["assigned_to"], org_id=actor.org_id)
    old_status = task.status
    for key, value in changes.items():
        setattr(task, key, value)
    task.updated_at = func.now()

    if "status" in changes and changes["status"] != old_status:
        _audit(db, actor=actor, action="task_status_changed", entity_type="task", entity_id=task.id,
               details={"oldStatus": old_status, "newStatus": changes["status"]})
    db.commit()
    db.refresh(task)
    return task
