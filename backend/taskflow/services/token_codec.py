"""Signing and verification of access and refresh JWTs."""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from uuid import UUID, uuid4

from jose import JWTError, jwt

from ..config import settings
from ..results import AuthErrorKind, Err, Ok, Result


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    subject_id: UUID
    nonce: str
    issued_at: datetime
    expires_at: datetime
    kind: TokenKind


def _epoch(now: datetime | None) -> int:
    if now is None:
        return int(time.time())
    return int(now.timestamp())


def _from_epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class TokenCodec:
    """Issues and verifies bearer tokens; access and refresh use separate secrets."""

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        leeway_seconds: int = 0,
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("Token signing secrets must not be empty")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must be signed with different secrets")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self._ttls = {TokenKind.ACCESS: access_ttl, TokenKind.REFRESH: refresh_ttl}
        self._algorithm = algorithm
        self._leeway = int(leeway_seconds)

    def issue_access_token(self, subject_id: UUID, *, now: datetime | None = None) -> tuple[str, datetime]:
        return self._issue(subject_id, TokenKind.ACCESS, now=now)

    def issue_refresh_token(self, subject_id: UUID, *, now: datetime | None = None) -> tuple[str, datetime]:
        return self._issue(subject_id, TokenKind.REFRESH, now=now)

    def _issue(self, subject_id: UUID, kind: TokenKind, *, now: datetime | None) -> tuple[str, datetime]:
        iat = _epoch(now)
        exp = iat + int(self._ttls[kind].total_seconds())
        payload = {
            "sub": str(subject_id),
            # Per-issuance nonce: two tokens for the same subject in the same second still differ.
            "jti": uuid4().hex,
            "iat": iat,
            "exp": exp,
            "type": kind.value,
        }
        token = jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)
        return token, _from_epoch(exp)

    def verify(self, token: str, kind: TokenKind, *, now: datetime | None = None) -> Result[TokenClaims]:
        """Check signature, type and lifetime of a token issued for `kind`."""
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return Err(AuthErrorKind.TOKEN_INVALID, "bad signature or malformed token")

        if payload.get("type") != kind.value:
            return Err(AuthErrorKind.TOKEN_INVALID, "wrong token type")

        try:
            exp = int(payload["exp"])
            iat = int(payload["iat"])
            subject_id = UUID(str(payload["sub"]))
        except (KeyError, TypeError, ValueError):
            return Err(AuthErrorKind.TOKEN_INVALID, "malformed claims")

        nonce = payload.get("jti")
        if not nonce or not isinstance(nonce, str):
            return Err(AuthErrorKind.TOKEN_INVALID, "missing nonce")

        current = _epoch(now)
        # Reject tokens issued far in the future (clock skew / malicious tokens).
        if iat > current + self._leeway:
            return Err(AuthErrorKind.TOKEN_INVALID, "issued in the future")
        if current > exp + self._leeway:
            return Err(AuthErrorKind.TOKEN_EXPIRED)

        return Ok(
            TokenClaims(
                subject_id=subject_id,
                nonce=nonce,
                issued_at=_from_epoch(iat),
                expires_at=_from_epoch(exp),
                kind=kind,
            )
        )


@lru_cache()
def get_token_codec() -> TokenCodec:
    """Process-wide codec built once from settings."""
    return TokenCodec(
        access_secret=settings.JWT_ACCESS_SECRET_KEY,
        refresh_secret=settings.JWT_REFRESH_SECRET_KEY,
        access_ttl=timedelta(minutes=int(settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)),
        refresh_ttl=timedelta(days=int(settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS)),
        algorithm=settings.JWT_ALGORITHM,
        leeway_seconds=settings.JWT_LEEWAY_SECONDS,
    )
