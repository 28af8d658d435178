"""Tenant scoping helpers shared by routers and use cases."""

from __future__ import annotations

from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from .domain_errors import NotFoundError

T = TypeVar("T")


def scoped_query(db: Session, model: type[T], *, org_id: UUID) -> Any:
    """Query over live (not soft-deleted) rows of one tenant."""
    return db.query(model).filter(  # type: ignore[arg-type]
        getattr(model, "org_id") == org_id,  # noqa: B009
        getattr(model, "deleted_at").is_(None),  # noqa: B009
    )


def require_org_entity(
    db: Session,
    model: type[T],
    *,
    entity_id: UUID,
    org_id: UUID,
    not_found: str,
    code: str = "NOT_FOUND",
) -> T:
    """Load a live entity by (id, org_id) or raise 404."""
    entity = scoped_query(db, model, org_id=org_id).filter(
        getattr(model, "id") == entity_id,  # noqa: B009
    ).first()
    if not entity:
        raise NotFoundError(not_found, code=code)
    return entity
