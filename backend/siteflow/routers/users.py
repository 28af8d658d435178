"""User endpoints."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import Actor, PermissionChecker, get_password_hash, validate_new_password
from ..database import get_db
from ..domain_errors import ConflictError
from ..models import AuditEvent, User
from ..schemas import UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[UserResponse])
def get_users(
    actor: Actor = Depends(PermissionChecker("canManageUsers", "Only admins can manage users")),
    db: Session = Depends(get_db)
):
    """Get all users of the organization."""
    users = db.query(User).filter(User.org_id == actor.org_id).order_by(User.name).all()
    return [UserResponse.model_validate(u) for u in users]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    actor: Actor = Depends(PermissionChecker("canManageUsers", "Only admins can manage users")),
    db: Session = Depends(get_db)
):
    """Create a user in the caller's organization."""
    email = payload.email.strip().lower()
    validate_new_password(new_password=payload.password, email=email)

    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already registered", code="EMAIL_TAKEN")

    user = User(
        org_id=actor.org_id,
        email=email,
        name=payload.name,
        role=payload.role.value,
        password_hash=get_password_hash(payload.password),
        token_version=0,
        is_active=True,
    )
    db.add(user)
    db.flush()
    db.add(
        AuditEvent(
            org_id=actor.org_id,
            action="user_created",
            entity_type="user",
            entity_id=user.id,
            user_id=actor.user_id,
            details={"role": user.role},
        )
    )
    db.commit()
    db.refresh(user)
    logger.info("user.created id=%s role=%s", user.id, user.role)
    return UserResponse.model_validate(user)
