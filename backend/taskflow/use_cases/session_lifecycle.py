"""Refresh session use-cases: issue, rotate, logout and logout-all."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from ..results import AuthErrorKind, Err, Ok, Result
from ..services.session_store import (
    REVOKED_LOGOUT_ALL,
    REVOKED_REUSE_DETECTED,
    REVOKED_ROTATED,
    SessionStore,
)
from ..services.token_codec import TokenCodec, TokenKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    subject_id: UUID
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime


def _issue_pair(codec: TokenCodec, subject_id: UUID, now: datetime | None) -> TokenPair:
    access_token, access_expires_at = codec.issue_access_token(subject_id, now=now)
    refresh_token, refresh_expires_at = codec.issue_refresh_token(subject_id, now=now)
    return TokenPair(
        subject_id=subject_id,
        access_token=access_token,
        access_expires_at=access_expires_at,
        refresh_token=refresh_token,
        refresh_expires_at=refresh_expires_at,
    )


def issue_session_use_case(
    *,
    store: SessionStore,
    codec: TokenCodec,
    subject_id: UUID,
    device_name: str | None = None,
    source_address: str | None = None,
    now: datetime | None = None,
) -> Result[TokenPair]:
    """Start a new session chain (login/register)."""
    pair = _issue_pair(codec, subject_id, now)
    created = store.create(
        subject_id=subject_id,
        token=pair.refresh_token,
        previous_token=None,
        expires_at=pair.refresh_expires_at,
        device_name=device_name,
        source_address=source_address,
        now=now,
    )
    if isinstance(created, Err):
        store.rollback()
        logger.error("auth.session_issue_failed user=%s kind=%s", subject_id, created.kind.value)
        return created

    store.commit()
    logger.info("auth.session_issued user=%s session=%s", subject_id, created.value.id)
    return Ok(pair)


def rotate_refresh_token_use_case(
    *,
    store: SessionStore,
    codec: TokenCodec,
    refresh_token: str | None,
    now: datetime | None = None,
) -> Result[TokenPair]:
    """Exchange a refresh token for a new pair, or detect reuse of a rotated-away token.

    The old session is revoked with a conditional update after the new one is
    inserted. When two requests race on the same token only one update
    matches; the other rolls back its insert and is handled as reuse.
    """
    if not refresh_token:
        return Err(AuthErrorKind.NO_TOKEN)

    verified = codec.verify(refresh_token, TokenKind.REFRESH, now=now)
    if isinstance(verified, Err):
        return verified
    subject_id = verified.value.subject_id

    current = store.find_active(refresh_token, now=now)
    if current is not None:
        if current.user_id != subject_id:
            logger.warning("auth.refresh_subject_mismatch session=%s", current.id)
            return Err(AuthErrorKind.TOKEN_INVALID)

        pair = _issue_pair(codec, subject_id, now)
        created = store.create(
            subject_id=subject_id,
            token=pair.refresh_token,
            previous_token=refresh_token,
            expires_at=pair.refresh_expires_at,
            device_name=current.device_name,
            source_address=current.source_address,
            now=now,
        )
        if isinstance(created, Err):
            store.rollback()
            logger.error("auth.refresh_issue_failed user=%s kind=%s", subject_id, created.kind.value)
            return created

        old_session_id = current.id
        if store.revoke(old_session_id, reason=REVOKED_ROTATED, now=now):
            store.commit()
            logger.info(
                "auth.refresh_rotated user=%s from=%s to=%s",
                subject_id,
                old_session_id,
                created.value.id,
            )
            return Ok(pair)

        # Someone else rotated this session between our read and our update.
        store.rollback()
        logger.warning("auth.refresh_race_lost user=%s session=%s", subject_id, old_session_id)

    descendant = store.find_by_previous_token(refresh_token, subject_id, now=now)
    if descendant is None:
        return Err(AuthErrorKind.TOKEN_INVALID)

    revoked = store.revoke_all(subject_id, reason=REVOKED_REUSE_DETECTED, now=now)
    store.commit()
    logger.warning(
        "auth.refresh_reuse_detected user=%s descendant=%s revoked=%d",
        subject_id,
        descendant.id,
        revoked,
    )
    return Err(AuthErrorKind.REUSE_DETECTED)


def logout_use_case(*, store: SessionStore, refresh_token: str | None) -> Result[bool]:
    """Delete the session behind `refresh_token`; already logged out is not an error."""
    if not refresh_token:
        return Ok(False)
    deleted = store.delete_by_token(refresh_token)
    store.commit()
    return Ok(deleted)


def logout_all_use_case(
    *,
    store: SessionStore,
    subject_id: UUID,
    now: datetime | None = None,
) -> Result[int]:
    revoked = store.revoke_all(subject_id, reason=REVOKED_LOGOUT_ALL, now=now)
    store.commit()
    logger.info("auth.logout_all user=%s revoked=%d", subject_id, revoked)
    return Ok(revoked)


def purge_expired_sessions_use_case(*, store: SessionStore, now: datetime | None = None) -> int:
    purged = store.purge_expired(now=now)
    store.commit()
    return purged
