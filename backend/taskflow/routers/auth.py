"""Auth endpoints."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, Request, Response, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user, hash_password, validate_new_password, verify_password
from ..client_info import get_client_ip, get_device_name, is_request_https
from ..config import settings
from ..database import get_db
from ..domain_errors import DomainError, auth_error, internal_error
from ..models import User
from ..problem_details import build_problem_details_response
from ..rate_limit import enforce_ip_rate_limit
from ..results import Err
from ..schemas import (
    LoginRequest,
    LogoutAllResponse,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPairResponse,
    UserResponse,
)
from ..services.session_store import SessionStore
from ..services.token_codec import TokenCodec, get_token_codec
from ..use_cases.session_lifecycle import (
    TokenPair,
    issue_session_use_case,
    logout_all_use_case,
    logout_use_case,
    rotate_refresh_token_use_case,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _set_no_store(response: Response) -> None:
    # Reduce the chance of logging/caching secrets (tokens).
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


def _max_age(expires_at: datetime, now: datetime) -> int:
    return max(0, int((expires_at - now).total_seconds()))


def _set_auth_cookies(response: Response, *, request: Request, pair: TokenPair) -> None:
    secure = bool(settings.AUTH_COOKIE_SECURE or is_request_https(request))
    now = _utc_now()
    response.set_cookie(
        key=settings.AUTH_ACCESS_COOKIE_NAME,
        value=pair.access_token,
        httponly=True,
        secure=secure,
        samesite=settings.AUTH_COOKIE_SAMESITE,
        path=settings.AUTH_COOKIE_PATH,
        max_age=_max_age(pair.access_expires_at, now),
    )
    response.set_cookie(
        key=settings.AUTH_REFRESH_COOKIE_NAME,
        value=pair.refresh_token,
        httponly=True,
        secure=secure,
        samesite=settings.AUTH_COOKIE_SAMESITE,
        path=settings.AUTH_COOKIE_PATH,
        max_age=_max_age(pair.refresh_expires_at, now),
    )


def _clear_auth_cookies(response: Response, *, request: Request) -> None:
    secure = bool(settings.AUTH_COOKIE_SECURE or is_request_https(request))
    for key in (settings.AUTH_ACCESS_COOKIE_NAME, settings.AUTH_REFRESH_COOKIE_NAME):
        response.delete_cookie(
            key=key,
            path=settings.AUTH_COOKIE_PATH,
            secure=secure,
            httponly=True,
            samesite=settings.AUTH_COOKIE_SAMESITE,
        )


def _token_pair_response(pair: TokenPair) -> TokenPairResponse:
    now = _utc_now()
    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=_max_age(pair.access_expires_at, now),
        refresh_expires_in=_max_age(pair.refresh_expires_at, now),
    )


def _incoming_refresh_token(request: Request, payload: RefreshTokenRequest | None) -> str | None:
    """Body first, then the refresh cookie."""
    if payload and payload.refresh_token:
        return payload.refresh_token
    return request.cookies.get(settings.AUTH_REFRESH_COOKIE_NAME) or None


def _start_session(
    *,
    db: Session,
    codec: TokenCodec,
    user: User,
    request: Request,
    response: Response,
) -> TokenPairResponse:
    try:
        result = issue_session_use_case(
            store=SessionStore(db),
            codec=codec,
            subject_id=user.id,
            device_name=get_device_name(request),
            source_address=get_client_ip(request),
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to persist refresh session user=%s", user.id)
        raise internal_error("Failed to issue session")
    if isinstance(result, Err):
        raise auth_error(result)

    _set_auth_cookies(response, request=request, pair=result.value)
    return _token_pair_response(result.value)


@router.post("/register", response_model=TokenPairResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """Register a new user and start a session."""
    _set_no_store(response)
    enforce_ip_rate_limit(request, scope="register", limit_per_minute=settings.AUTH_REGISTER_IP_LIMIT_PER_MINUTE)

    email = payload.email.strip().lower()
    validate_new_password(new_password=payload.password, email=email)

    if db.query(User).filter(User.email == email).first():
        raise DomainError(code="USER_EXISTS", http_status=409, message="User already exists")

    user = User(
        email=email,
        name=payload.name.strip(),
        password_hash=hash_password(payload.password),
        last_login_at=_utc_now(),
    )
    try:
        db.add(user)
        db.flush()
    except IntegrityError:
        db.rollback()
        raise DomainError(code="USER_EXISTS", http_status=409, message="User already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create user")
        raise internal_error("Failed to register")

    return _start_session(db=db, codec=codec, user=user, request=request, response=response)


@router.post("/login", response_model=TokenPairResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """Login with email and password."""
    _set_no_store(response)
    enforce_ip_rate_limit(request, scope="login", limit_per_minute=settings.AUTH_LOGIN_IP_LIMIT_PER_MINUTE)

    email = payload.email.strip().lower()
    user = db.query(User).filter(
        User.email == email,
        User.is_active == True
    ).first()

    if not user or not verify_password(payload.password, user.password_hash):
        raise DomainError(code="INVALID_CREDENTIALS", http_status=401, message="Invalid email or password")

    user.last_login_at = _utc_now()
    return _start_session(db=db, codec=codec, user=user, request=request, response=response)


@router.post("/refresh", response_model=TokenPairResponse)
def refresh_token(
    request: Request,
    response: Response,
    payload: RefreshTokenRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """Rotate the refresh token and issue a new pair."""
    _set_no_store(response)
    enforce_ip_rate_limit(request, scope="refresh", limit_per_minute=settings.AUTH_REFRESH_IP_LIMIT_PER_MINUTE)

    try:
        result = rotate_refresh_token_use_case(
            store=SessionStore(db),
            codec=codec,
            refresh_token=_incoming_refresh_token(request, payload),
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to rotate refresh token")
        raise internal_error("Failed to refresh session")

    if isinstance(result, Err):
        error_response = build_problem_details_response(
            auth_error(result),
            headers={"Cache-Control": "no-store"},
        )
        _clear_auth_cookies(error_response, request=request)
        return error_response

    _set_auth_cookies(response, request=request, pair=result.value)
    return _token_pair_response(result.value)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    payload: RefreshTokenRequest | None = Body(default=None),
    db: Session = Depends(get_db),
):
    """Logout by deleting the session behind the presented refresh token."""
    _set_no_store(response)

    try:
        result = logout_use_case(store=SessionStore(db), refresh_token=_incoming_refresh_token(request, payload))
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to logout")
        raise internal_error("Failed to log out")

    _clear_auth_cookies(response, request=request)
    if not result.value:
        return MessageResponse(message="Already logged out or no token provided.")
    return MessageResponse(message="Logged out successfully.")


@router.post("/logout-all", response_model=LogoutAllResponse)
def logout_all(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Revoke every refresh session of the current user."""
    _set_no_store(response)

    try:
        result = logout_all_use_case(store=SessionStore(db), subject_id=current_user.id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to logout from all devices user=%s", current_user.id)
        raise internal_error("Failed to log out from all devices")

    _clear_auth_cookies(response, request=request)
    return LogoutAllResponse(
        message="Logged out from all devices successfully.",
        revoked_sessions=result.value,
    )


@router.get("/me", response_model=UserResponse)
def get_me(response: Response, current_user: User = Depends(get_current_user)):
    """Get current user info."""
    _set_no_store(response)
    return current_user
