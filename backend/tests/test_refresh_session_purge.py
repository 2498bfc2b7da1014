from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from taskflow import celery_app as celery_module
from taskflow.models import RefreshSession
from taskflow.services.session_store import hash_token


def _seed(db, user, token: str, expires_at: datetime) -> None:
    db.add(
        RefreshSession(
            user_id=user.id,
            token_hash=hash_token(token),
            created_at=expires_at - timedelta(days=30),
            expires_at=expires_at,
        )
    )
    db.commit()


def test_purge_task_deletes_only_expired_sessions(monkeypatch, session_factory, db, user) -> None:
    now = datetime.now(timezone.utc)
    _seed(db, user, "expired", now - timedelta(hours=1))
    _seed(db, user, "live", now + timedelta(days=1))
    monkeypatch.setattr(celery_module, "SessionLocal", session_factory)

    result = celery_module.purge_expired_refresh_sessions()

    assert result == {"purged": 1}
    db.expire_all()
    remaining = db.execute(select(RefreshSession.token_hash)).scalars().all()
    assert remaining == [hash_token("live")]


def test_purge_task_is_registered_on_beat_schedule() -> None:
    schedule = celery_module.celery_app.conf.beat_schedule["purge-expired-refresh-sessions"]

    assert schedule["task"] == celery_module.purge_expired_refresh_sessions.name


def test_purge_task_rolls_back_and_reraises(monkeypatch) -> None:
    calls: list[str] = []

    class _BrokenSession:
        def execute(self, *_args, **_kwargs):
            raise RuntimeError("database unavailable")

        def rollback(self) -> None:
            calls.append("rollback")

        def close(self) -> None:
            calls.append("close")

    monkeypatch.setattr(celery_module, "SessionLocal", _BrokenSession)

    with pytest.raises(RuntimeError):
        celery_module.purge_expired_refresh_sessions()

    assert calls == ["rollback", "close"]
