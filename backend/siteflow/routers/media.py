"""Media asset endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..config import settings
from ..database import get_db
from ..models import MediaAsset, MediaKind
from ..schemas import MediaAssetCreate, MediaAssetEnvelope, MediaAssetListResponse, MediaAssetResponse
from ..security import scoped_query
from ..services.pagination import paginate
from ..use_cases.media_assets import register_media_asset_use_case

router = APIRouter(prefix="/media-assets", tags=["media"])


@router.get("", response_model=MediaAssetListResponse)
def get_media_assets(
    project_id: Optional[UUID] = None,
    daily_log_id: Optional[UUID] = None,
    kind: Optional[MediaKind] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    query = scoped_query(db, MediaAsset, org_id=actor.org_id)
    if project_id:
        query = query.filter(MediaAsset.project_id == project_id)
    if daily_log_id:
        query = query.filter(MediaAsset.daily_log_id == daily_log_id)
    if kind:
        query = query.filter(MediaAsset.kind == kind.value)
    assets, meta = paginate(query, page=page, limit=limit, order_by=(MediaAsset.created_at.desc(),))
    return MediaAssetListResponse(items=[MediaAssetResponse.model_validate(a) for a in assets], **meta)


@router.post("", response_model=MediaAssetEnvelope, status_code=status.HTTP_201_CREATED)
def register_media_asset(
    payload: MediaAssetCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    asset = register_media_asset_use_case(db=db, payload=payload, actor=actor)
    return MediaAssetEnvelope(media_asset=MediaAssetResponse.model_validate(asset))
