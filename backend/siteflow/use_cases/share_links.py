"""Share link management and public share view use-cases."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import Actor, require_permission
from ..config import settings
from ..domain_errors import NotFoundError, ValidationError
from ..models import AuditEvent, DailyLog, DailyLogStatus, Project, ShareLink
from ..schemas import ShareLinkCreate
from ..security import require_org_entity
from ..services.project_metrics import compute_budget_metrics, load_budget_used, load_progress
from ..services.share_view import build_share_payload, ensure_not_expired

logger = logging.getLogger(__name__)


def generate_share_token() -> str:
    return secrets.token_hex(settings.SHARE_TOKEN_BYTES)


def create_share_link_use_case(*, db: Session, payload: ShareLinkCreate, actor: Actor) -> ShareLink:
    require_permission(actor, "canManageShareLinks", message="Only PM and Admin can create share links")
    project = require_org_entity(
        db,
        Project,
        entity_id=payload.project_id,
        org_id=actor.org_id,
        not_found="Project not found",
        code="PROJECT_NOT_FOUND",
    )

    expires_at = payload.expires_at
    if expires_at is not None:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            raise ValidationError(
                "Expiry must be in the future",
                errors={"expires_at": "must be in the future"},
            )

    link = ShareLink(
        org_id=actor.org_id,
        project_id=project.id,
        token=generate_share_token(),
        hide_finance=payload.hide_finance,
        show_investor_contact=payload.show_investor_contact,
        expires_at=expires_at,
        created_by=actor.user_id,
    )
    db.add(link)
    db.flush()
    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action="share_link_created",
            entity_type="share_link",
            entity_id=link.id,
            user_id=actor.user_id,
            details={"projectId": str(project.id), "hideFinance": link.hide_finance},
        )
    )
    db.commit()
    db.refresh(link)
    return link


def revoke_share_link_use_case(*, db: Session, link_id: UUID, actor: Actor) -> ShareLink:
    require_permission(actor, "canManageShareLinks", message="Only PM and Admin can revoke share links")
    link = require_org_entity(
        db,
        ShareLink,
        entity_id=link_id,
        org_id=actor.org_id,
        not_found="Share link not found",
        code="SHARE_LINK_NOT_FOUND",
    )
    link.deleted_at = func.now()
    link.updated_at = func.now()
    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action="share_link_revoked",
            entity_type="share_link",
            entity_id=link.id,
            user_id=actor.user_id,
            details={"projectId": str(link.project_id)},
        )
    )
    db.commit()
    db.refresh(link)
    return link


def get_public_share_use_case(*, db: Session, token: str) -> dict[str, Any]:
    """Anonymous project view; redaction follows the link's settings."""
    link = db.query(ShareLink).filter(
        ShareLink.token == token,
        ShareLink.deleted_at.is_(None),
    ).first()
    if not link:
        raise NotFoundError("Share link not found or expired", code="SHARE_LINK_NOT_FOUND")
    ensure_not_expired(link)

    project = db.query(Project).filter(
        Project.id == link.project_id,
        Project.org_id == link.org_id,
        Project.deleted_at.is_(None),
    ).first()
    if not project:
        raise NotFoundError("Associated project not found", code="PROJECT_NOT_FOUND")

    logs = (
        db.query(DailyLog)
        .filter(
            DailyLog.project_id == project.id,
            DailyLog.org_id == link.org_id,
            DailyLog.status == DailyLogStatus.APPROVED.value,
            DailyLog.deleted_at.is_(None),
        )
        .order_by(DailyLog.date.asc())
        .all()
    )

    progress = load_progress(db, org_id=link.org_id, project_ids=[project.id]).get(project.id, 0.0)
    budget = None
    if not link.hide_finance:
        used = load_budget_used(db, org_id=link.org_id, project_ids=[project.id]).get(project.id)
        budget = compute_budget_metrics(project.budget_total, used)

    logger.debug("share.view link=%s project=%s logs=%s", link.id, project.id, len(logs))
    return build_share_payload(link, project, logs, progress_pct=progress, budget=budget)
