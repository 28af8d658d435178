"""Share link management endpoints and the public share view."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..config import settings
from ..database import get_db
from ..domain_errors import DomainError
from ..models import ShareLink
from ..problem_details import build_problem_details_response
from ..schemas import ShareLinkCreate, ShareLinkEnvelope, ShareLinkListResponse, ShareLinkResponse
from ..security import scoped_query
from ..services.pagination import paginate
from ..use_cases.share_links import (
    create_share_link_use_case,
    get_public_share_use_case,
    revoke_share_link_use_case,
)

router = APIRouter(prefix="/share-links", tags=["share-links"])
public_router = APIRouter(prefix="/share", tags=["share"])

PUBLIC_CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


@router.get("", response_model=ShareLinkListResponse)
def get_share_links(
    project_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    query = scoped_query(db, ShareLink, org_id=actor.org_id)
    if project_id:
        query = query.filter(ShareLink.project_id == project_id)
    links, meta = paginate(query, page=page, limit=limit, order_by=(ShareLink.created_at.desc(),))
    return ShareLinkListResponse(items=[ShareLinkResponse.model_validate(link) for link in links], **meta)


@router.post("", response_model=ShareLinkEnvelope, status_code=status.HTTP_201_CREATED)
def create_share_link(
    payload: ShareLinkCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    link = create_share_link_use_case(db=db, payload=payload, actor=actor)
    return ShareLinkEnvelope(share_link=ShareLinkResponse.model_validate(link))


@router.delete("/{link_id}", response_model=ShareLinkEnvelope)
def revoke_share_link(
    link_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Revoke a link (soft delete)."""
    link = revoke_share_link_use_case(db=db, link_id=link_id, actor=actor)
    return ShareLinkEnvelope(share_link=ShareLinkResponse.model_validate(link))


@public_router.get("/{token}")
def get_shared_project(token: str, request: Request, db: Session = Depends(get_db)):
    """Anonymous project view; readable from any origin."""
    try:
        payload = get_public_share_use_case(db=db, token=token)
    except DomainError as exc:
        response = build_problem_details_response(exc, instance=request.url.path)
        response.headers.update(PUBLIC_CORS_HEADERS)
        return response
    return JSONResponse(content=jsonable_encoder(payload), headers=PUBLIC_CORS_HEADERS)
