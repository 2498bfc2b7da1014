"""Authentication: credential checks and the per-request access-token guard."""
from __future__ import annotations

import logging
from typing import Callable, Generic, Optional, TypeVar
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .domain_errors import DomainError, auth_error
from .models import User
from .results import AuthErrorKind, Err, Ok, Result
from .services.token_codec import TokenCodec, TokenKind, get_token_codec

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
logger = logging.getLogger(__name__)

# Bearer token scheme; a missing header falls back to the access cookie.
security = HTTPBearer(auto_error=False)

P = TypeVar("P")


def validate_new_password(*, new_password: str, email: str | None = None) -> None:
    """Server-side password policy validation."""
    pwd = (new_password or "").strip("\n")
    if len(pwd) < settings.PASSWORD_MIN_LENGTH:
        raise DomainError(
            code="PASSWORD_TOO_SHORT",
            http_status=400,
            message=f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
        )
    if len(pwd) > settings.PASSWORD_MAX_LENGTH:
        raise DomainError(
            code="PASSWORD_TOO_LONG",
            http_status=400,
            message=f"Password must be at most {settings.PASSWORD_MAX_LENGTH} characters",
        )
    if email and pwd.lower() == email.lower():
        raise DomainError(
            code="PASSWORD_MATCHES_EMAIL",
            http_status=400,
            message="Password must not match email",
        )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception:
        # Invalid/corrupted hash should not crash login flow.
        logger.exception("Password verification failed due to invalid hash format")
        return False


def hash_password(password: str) -> str:
    """Hash password."""
    return pwd_context.hash(password)


def find_active_user(db: Session, subject_id: UUID) -> Optional[User]:
    return db.query(User).filter(User.id == subject_id, User.is_active == True).first()


class SessionGateway(Generic[P]):
    """Stateless access-token check plus principal existence lookup."""

    def __init__(self, codec: TokenCodec, find_principal_by_id: Callable[[UUID], Optional[P]]) -> None:
        self._codec = codec
        self._find_principal_by_id = find_principal_by_id

    def authenticate(self, access_token: str | None) -> Result[P]:
        if not access_token:
            return Err(AuthErrorKind.NO_TOKEN)

        verified = self._codec.verify(access_token, TokenKind.ACCESS)
        if isinstance(verified, Err):
            return verified

        principal = self._find_principal_by_id(verified.value.subject_id)
        if principal is None:
            return Err(AuthErrorKind.UNKNOWN_SUBJECT)
        return Ok(principal)


def extract_access_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Authorization header first, then the access cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_ACCESS_COOKIE_NAME) or None


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> User:
    """Get current authenticated user."""
    gateway = SessionGateway(codec, lambda subject_id: find_active_user(db, subject_id))
    result = gateway.authenticate(extract_access_token(request, credentials))
    if isinstance(result, Err):
        raise auth_error(result)
    return result.value
