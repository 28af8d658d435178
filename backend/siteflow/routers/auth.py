"""Auth endpoints."""
import logging
import ipaddress

import redis
from redis.exceptions import RedisError
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..auth import (
    create_access_token,
    get_current_user,
    get_role_ui_permissions,
    verify_password,
)
from ..config import settings
from ..database import get_db
from ..models import AuditEvent, User
from ..schemas import AuthUserResponse, LoginRequest, TokenResponse, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


_redis_client = None


def _auth_user_response(user: User) -> AuthUserResponse:
    base = UserResponse.model_validate(user)
    return AuthUserResponse(**base.model_dump(), permissions=get_role_ui_permissions(user.role))


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def _get_client_ip(request: Request) -> str:
    if settings.TRUST_PROXY_HEADERS:
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            try:
                ipaddress.ip_address(real_ip)
                return real_ip
            except ValueError:
                pass

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # client, proxy1, proxy2
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass

    if request.client:
        return request.client.host
    return "unknown"


def _set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


def _incr_with_ttl(key: str, ttl_seconds: int) -> tuple[int, int]:
    """
    Increment a Redis counter and ensure it has an expiry.
    Returns (value, ttl_remaining_seconds).
    """
    r = _get_redis()
    value = r.incr(key)
    if value == 1:
        r.expire(key, ttl_seconds)
    ttl = r.ttl(key)
    if ttl is None or ttl < 0:
        ttl = ttl_seconds
    return int(value), int(ttl)


def _enforce_login_rate_limits(*, request: Request, email: str | None) -> None:
    ip = _get_client_ip(request)
    try:
        attempts, ttl = _incr_with_ttl(f"auth:rl:login:ip:{ip}", 60)
        if attempts > settings.AUTH_LOGIN_IP_LIMIT_PER_MINUTE:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many login attempts. Try again later.",
                headers={"Retry-After": str(ttl)},
            )

        if email:
            r = _get_redis()
            lock_ttl = r.ttl(f"auth:lock:login:user:{email}")
            if lock_ttl and lock_ttl > 0:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail="Account temporarily locked due to failed logins. Try again later.",
                    headers={"Retry-After": str(int(lock_ttl))},
                )
    except RedisError:
        # Fail open: a Redis outage must not lock everyone out.
        logger.exception("Redis error during login rate limiting (fail-open)")


def _register_login_failure(*, user: User | None, email: str | None) -> None:
    if not email or not user:
        return
    try:
        fails, _ = _incr_with_ttl(
            f"auth:fail:login:user:{email}",
            settings.AUTH_LOGIN_USER_LOCK_SECONDS,
        )
        if fails >= settings.AUTH_LOGIN_USER_FAIL_THRESHOLD:
            _get_redis().set(
                f"auth:lock:login:user:{email}",
                "1",
                ex=settings.AUTH_LOGIN_USER_LOCK_SECONDS,
            )
    except RedisError:
        logger.exception("Redis error during login failure tracking (fail-open)")


def _clear_login_failures(*, email: str | None) -> None:
    if not email:
        return
    try:
        r = _get_redis()
        r.delete(f"auth:fail:login:user:{email}")
        r.delete(f"auth:lock:login:user:{email}")
    except RedisError:
        logger.exception("Redis error during login failure cleanup (ignored)")


def _record_login_audit(db: Session, *, user: User, action: str, request: Request) -> None:
    # Best effort: audit failures never block the login response.
    try:
        db.add(
            AuditEvent(
                org_id=user.org_id,
                action=action,
                entity_type="user",
                entity_id=user.id,
                user_id=user.id,
                details={"ip": _get_client_ip(request)},
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write %s audit event", action)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """Login with email and password."""
    _set_no_store(response)

    email = (payload.email or "").strip().lower()

    try:
        _enforce_login_rate_limits(request=request, email=email or None)
    except HTTPException as exc:
        if exc.status_code == status.HTTP_429_TOO_MANY_REQUESTS and email:
            user = db.query(User).filter(User.email == email).first()
            if user:
                _record_login_audit(db, user=user, action="LOGIN_RATE_LIMITED", request=request)
        raise

    user = db.query(User).filter(
        User.email == email,
        User.is_active == True  # noqa: E712
    ).first()

    if not user or not verify_password(payload.password, user.password_hash):
        _register_login_failure(user=user, email=email or None)
        # Audit known users only, without revealing which emails exist.
        if user:
            _record_login_audit(db, user=user, action="LOGIN_FAILED", request=request)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    _clear_login_failures(email=email)

    access_token = create_access_token({"sub": str(user.id), "ver": user.token_version})
    _record_login_audit(db, user=user, action="LOGIN_SUCCEEDED", request=request)
    logger.info("auth.login user=%s org=%s", user.id, user.org_id)

    return TokenResponse(
        access_token=access_token,
        expires_in=int(settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES) * 60,
        user=_auth_user_response(user),
    )


@router.get("/me", response_model=AuthUserResponse)
def get_me(response: Response, current_user: User = Depends(get_current_user)):
    """Current user with the UI permission map for their role."""
    _set_no_store(response)
    return _auth_user_response(current_user)
