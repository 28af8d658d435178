"""Project endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..config import settings
from ..database import get_db
from ..models import Category, Project, ProjectStatus
from ..schemas import (
    CategoryResponse,
    ProjectCreate,
    ProjectEnvelope,
    ProjectKpiResponse,
    ProjectListResponse,
    ProjectUpdate,
)
from ..security import scoped_query
from ..services.pagination import apply_search, paginate
from ..services.project_metrics import (
    load_project_kpis,
    load_project_metrics,
    normalize_budget_basis,
)
from ..services.response_builders import build_project_response
from ..use_cases.project_catalog import (
    create_project_use_case,
    get_project_or_404,
    update_project_use_case,
)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=ProjectListResponse)
def get_projects(
    q: Optional[str] = None,
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    budget_basis: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """List projects with derived progress and budget metrics."""
    basis = normalize_budget_basis(budget_basis)
    query = scoped_query(db, Project, org_id=actor.org_id)
    if status_filter:
        query = query.filter(Project.status == status_filter.value)
    query = apply_search(query, q, Project.name, Project.description, Project.address)

    projects, meta = paginate(query, page=page, limit=limit, order_by=(Project.created_at.desc(),))
    metrics = load_project_metrics(db, projects, org_id=actor.org_id, basis=basis)
    items = [build_project_response(project, metrics.get(project.id)) for project in projects]
    return ProjectListResponse(items=items, **meta)


@router.get("/kpi", response_model=ProjectKpiResponse)
def get_project_kpis(
    budget_basis: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Dashboard rollup over every project of the organization."""
    basis = normalize_budget_basis(budget_basis)
    return ProjectKpiResponse(**load_project_kpis(db, org_id=actor.org_id, basis=basis))


@router.post("", response_model=ProjectEnvelope, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    project = create_project_use_case(db=db, payload=payload, actor=actor)
    metrics = load_project_metrics(db, [project], org_id=actor.org_id)
    return ProjectEnvelope(project=build_project_response(project, metrics.get(project.id)))


@router.get("/{project_id}", response_model=ProjectEnvelope)
def get_project(
    project_id: UUID,
    budget_basis: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Get project by ID with derived metrics."""
    basis = normalize_budget_basis(budget_basis)
    project = get_project_or_404(db=db, project_id=project_id, org_id=actor.org_id)
    metrics = load_project_metrics(db, [project], org_id=actor.org_id, basis=basis)
    return ProjectEnvelope(project=build_project_response(project, metrics.get(project.id)))


@router.patch("/{project_id}", response_model=ProjectEnvelope)
def update_project(
    project_id: UUID,
    payload: ProjectUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    project = update_project_use_case(db=db, project_id=project_id, payload=payload, actor=actor)
    metrics = load_project_metrics(db, [project], org_id=actor.org_id)
    return ProjectEnvelope(project=build_project_response(project, metrics.get(project.id)))


@router.get("/{project_id}/categories", response_model=list[CategoryResponse])
def get_project_categories(
    project_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Categories of a project in display order."""
    project = get_project_or_404(db=db, project_id=project_id, org_id=actor.org_id)
    categories = (
        scoped_query(db, Category, org_id=actor.org_id)
        .filter(Category.project_id == project.id)
        .order_by(Category.order, Category.name)
        .all()
    )
    return [CategoryResponse.model_validate(c) for c in categories]
