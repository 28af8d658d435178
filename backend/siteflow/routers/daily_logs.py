"""Daily log endpoints."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..config import settings
from ..database import get_db
from ..models import DailyLog, DailyLogStatus
from ..schemas import (
    DailyLogActionRequest,
    DailyLogCreate,
    DailyLogEnvelope,
    DailyLogListResponse,
)
from ..security import scoped_query
from ..services.pagination import paginate
from ..services.response_builders import build_daily_log_response
from ..use_cases.daily_log_transitions import (
    create_daily_log_use_case,
    get_daily_log_use_case,
    load_task_links,
    transition_daily_log_use_case,
)

router = APIRouter(prefix="/daily-logs", tags=["daily-logs"])


@router.get("", response_model=DailyLogListResponse)
def get_daily_logs(
    project_id: Optional[UUID] = None,
    category_id: Optional[UUID] = None,
    status_filter: Optional[DailyLogStatus] = Query(None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Get daily logs, newest first."""
    query = scoped_query(db, DailyLog, org_id=actor.org_id)
    if project_id:
        query = query.filter(DailyLog.project_id == project_id)
    if category_id:
        query = query.filter(DailyLog.category_id == category_id)
    if status_filter:
        query = query.filter(DailyLog.status == status_filter.value)
    if date_from:
        query = query.filter(DailyLog.date >= date_from)
    if date_to:
        query = query.filter(DailyLog.date <= date_to)

    logs, meta = paginate(
        query,
        page=page,
        limit=limit,
        order_by=(DailyLog.date.desc(), DailyLog.created_at.desc()),
    )
    return DailyLogListResponse(items=[build_daily_log_response(log) for log in logs], **meta)


@router.post("", response_model=DailyLogEnvelope, status_code=status.HTTP_201_CREATED)
def create_daily_log(
    payload: DailyLogCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Create a daily log in DRAFT."""
    log, links = create_daily_log_use_case(db=db, payload=payload, actor=actor)
    return DailyLogEnvelope(daily_log=build_daily_log_response(log, links))


@router.get("/{log_id}", response_model=DailyLogEnvelope)
def get_daily_log(
    log_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    log, links = get_daily_log_use_case(db=db, log_id=log_id, actor=actor)
    return DailyLogEnvelope(daily_log=build_daily_log_response(log, links))


@router.patch("/{log_id}", response_model=DailyLogEnvelope)
def transition_daily_log(
    log_id: UUID,
    payload: DailyLogActionRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Apply a workflow action: submit, approve, decline or qc."""
    log = transition_daily_log_use_case(
        db=db,
        log_id=log_id,
        action=payload.action,
        actor=actor,
        comment=payload.comment,
        qc_rating=payload.qc_rating,
    )
    links = load_task_links(db=db, log_id=log.id, org_id=actor.org_id)
    return DailyLogEnvelope(daily_log=build_daily_log_response(log, links))
