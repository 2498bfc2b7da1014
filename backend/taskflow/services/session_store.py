"""Durable refresh-session records keyed by refresh token.

Expired rows are treated as absent by every read (lazy expiry), so callers
never depend on the background purge having run.
"""
from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import RefreshSession
from ..results import AuthErrorKind, Err, Ok, Result

logger = logging.getLogger(__name__)

REVOKED_ROTATED = "rotated"
REVOKED_LOGOUT_ALL = "logout_all"
REVOKED_REUSE_DETECTED = "reuse_detected"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionStore:
    """Refresh-session persistence over one SQLAlchemy session (one unit of work)."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(
        self,
        *,
        subject_id: UUID,
        token: str,
        previous_token: str | None,
        expires_at: datetime,
        device_name: str | None = None,
        source_address: str | None = None,
        now: datetime | None = None,
    ) -> Result[RefreshSession]:
        token_hash = hash_token(token)
        exists = self._db.execute(
            select(RefreshSession.id).where(RefreshSession.token_hash == token_hash)
        ).first()
        if exists is not None:
            return Err(AuthErrorKind.DUPLICATE_TOKEN)

        session = RefreshSession(
            user_id=subject_id,
            token_hash=token_hash,
            previous_token_hash=hash_token(previous_token) if previous_token else None,
            created_at=now or _utc_now(),
            expires_at=expires_at,
            is_revoked=False,
            device_name=(device_name or "")[:512] or None,
            source_address=source_address,
        )
        self._db.add(session)
        try:
            self._db.flush()
        except IntegrityError:
            # Lost an insert race on the unique token hash.
            self._db.rollback()
            logger.exception("Duplicate refresh token hash on insert user=%s", subject_id)
            return Err(AuthErrorKind.DUPLICATE_TOKEN)
        return Ok(session)

    def find_active(self, token: str, *, now: datetime | None = None) -> RefreshSession | None:
        return self._db.execute(
            select(RefreshSession).where(
                RefreshSession.token_hash == hash_token(token),
                RefreshSession.is_revoked.is_(False),
                RefreshSession.expires_at > (now or _utc_now()),
            )
        ).scalar_one_or_none()

    def find_by_previous_token(
        self,
        token: str,
        subject_id: UUID,
        *,
        now: datetime | None = None,
    ) -> RefreshSession | None:
        """Active session that was rotated from `token`, if any."""
        return self._db.execute(
            select(RefreshSession)
            .where(
                RefreshSession.previous_token_hash == hash_token(token),
                RefreshSession.user_id == subject_id,
                RefreshSession.is_revoked.is_(False),
                RefreshSession.expires_at > (now or _utc_now()),
            )
            .limit(1)
        ).scalar_one_or_none()

    def revoke(self, session_id: UUID, *, reason: str, now: datetime | None = None) -> bool:
        """Flip one session to revoked; True only for the caller that performed the flip."""
        result = self._db.execute(
            update(RefreshSession)
            .where(
                RefreshSession.id == session_id,
                RefreshSession.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=now or _utc_now(), revoked_reason=reason)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def revoke_all(self, subject_id: UUID, *, reason: str, now: datetime | None = None) -> int:
        result = self._db.execute(
            update(RefreshSession)
            .where(
                RefreshSession.user_id == subject_id,
                RefreshSession.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=now or _utc_now(), revoked_reason=reason)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def delete_by_token(self, token: str) -> bool:
        result = self._db.execute(
            delete(RefreshSession)
            .where(RefreshSession.token_hash == hash_token(token))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def purge_expired(self, *, now: datetime | None = None) -> int:
        result = self._db.execute(
            delete(RefreshSession)
            .where(RefreshSession.expires_at <= (now or _utc_now()))
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def commit(self) -> None:
        self._db.commit()

    def rollback(self) -> None:
        self._db.rollback()
