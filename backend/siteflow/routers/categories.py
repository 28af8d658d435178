"""Category endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..database import get_db
from ..schemas import CategoryCreate, CategoryEnvelope, CategoryResponse, CategoryUpdate
from ..use_cases.project_catalog import create_category_use_case, update_category_use_case

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("", response_model=CategoryEnvelope, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    category = create_category_use_case(db=db, payload=payload, actor=actor)
    return CategoryEnvelope(category=CategoryResponse.model_validate(category))


@router.patch("/{category_id}", response_model=CategoryEnvelope)
def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    category = update_category_use_case(db=db, category_id=category_id, payload=payload, actor=actor)
    return CategoryEnvelope(category=CategoryResponse.model_validate(category))
