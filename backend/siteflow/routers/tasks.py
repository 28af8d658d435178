"""Task endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..config import settings
from ..database import get_db
from ..models import Task, TaskStatus
from ..schemas import TaskCreate, TaskEnvelope, TaskListResponse, TaskResponse, TaskUpdate
from ..security import scoped_query
from ..services.pagination import apply_search, paginate
from ..use_cases.project_catalog import create_task_use_case, update_task_use_case

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=TaskListResponse)
def get_tasks(
    project_id: Optional[UUID] = None,
    category_id: Optional[UUID] = None,
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Get list of tasks with filters."""
    query = scoped_query(db, Task, org_id=actor.org_id)
    if project_id:
        query = query.filter(Task.project_id == project_id)
    if category_id:
        query = query.filter(Task.category_id == category_id)
    if status_filter:
        query = query.filter(Task.status == status_filter.value)
    query = apply_search(query, q, Task.name, Task.description)

    tasks, meta = paginate(query, page=page, limit=limit, order_by=(Task.order, Task.created_at))
    return TaskListResponse(items=[TaskResponse.model_validate(t) for t in tasks], **meta)


@router.post("", response_model=TaskEnvelope, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    task = create_task_use_case(db=db, payload=payload, actor=actor)
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.patch("/{task_id}", response_model=TaskEnvelope)
def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    task = update_task_use_case(db=db, task_id=task_id, payload=payload, actor=actor)
    return TaskEnvelope(task=TaskResponse.model_validate(task))
