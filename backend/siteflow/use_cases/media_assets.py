"""Media asset registration."""
from __future__ import annotations

from sqlalchemy.orm import Session

from ..auth import Actor, require_permission
from ..domain_errors import ValidationError
from ..models import DailyLog, MediaAsset, Project
from ..schemas import MediaAssetCreate
from ..security import require_org_entity


def register_media_asset_use_case(*, db: Session, payload: MediaAssetCreate, actor: Actor) -> MediaAsset:
    require_permission(actor, "canRegisterMedia", message="Not allowed to register media")
    project = require_org_entity(
        db,
        Project,
        entity_id=payload.project_id,
        org_id=actor.org_id,
        not_found="Project not found",
        code="PROJECT_NOT_FOUND",
    )
    if payload.daily_log_id is not None:
        log = require_org_entity(
            db,
            DailyLog,
            entity_id=payload.daily_log_id,
            org_id=actor.org_id,
            not_found="Daily log not found or access denied",
            code="DAILY_LOG_NOT_FOUND",
        )
        if log.project_id != project.id:
            raise ValidationError(
                "Daily log does not belong to project",
                errors={"daily_log_id": "Daily log does not belong to project"},
            )

    asset = MediaAsset(
        org_id=actor.org_id,
        project_id=project.id,
        daily_log_id=payload.daily_log_id,
        url=payload.url,
        kind=payload.kind.value,
        meta=payload.metadata,
    )
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return asset
