from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

from taskflow.auth import SessionGateway, find_active_user
from taskflow.results import AuthErrorKind, Err, Ok


def _gateway(codec, principals: dict):
    return SessionGateway(codec, principals.get)


def test_missing_token_is_no_token(codec) -> None:
    assert _gateway(codec, {}).authenticate(None) == Err(AuthErrorKind.NO_TOKEN)
    assert _gateway(codec, {}).authenticate("") == Err(AuthErrorKind.NO_TOKEN)


def test_valid_access_token_resolves_principal(codec) -> None:
    principal = SimpleNamespace(id=uuid4(), email="ada@example.com")
    token, _ = codec.issue_access_token(principal.id)

    result = _gateway(codec, {principal.id: principal}).authenticate(token)

    assert result == Ok(principal)


def test_expired_access_token(codec) -> None:
    subject_id = uuid4()
    token, _ = codec.issue_access_token(subject_id, now=datetime.now(timezone.utc) - timedelta(hours=1))

    result = _gateway(codec, {subject_id: object()}).authenticate(token)

    assert isinstance(result, Err)
    assert result.kind is AuthErrorKind.TOKEN_EXPIRED


def test_refresh_token_is_not_an_access_token(codec) -> None:
    subject_id = uuid4()
    token, _ = codec.issue_refresh_token(subject_id)

    result = _gateway(codec, {subject_id: object()}).authenticate(token)

    assert isinstance(result, Err)
    assert result.kind is AuthErrorKind.TOKEN_INVALID


def test_unknown_subject(codec) -> None:
    token, _ = codec.issue_access_token(uuid4())

    assert _gateway(codec, {}).authenticate(token) == Err(AuthErrorKind.UNKNOWN_SUBJECT)


def test_deactivated_user_is_unknown_subject(db, codec, user_factory) -> None:
    inactive = user_factory(is_active=False)
    token, _ = codec.issue_access_token(inactive.id)

    result = SessionGateway(codec, lambda subject_id: find_active_user(db, subject_id)).authenticate(token)

    assert result == Err(AuthErrorKind.UNKNOWN_SUBJECT)


def test_gateway_does_not_consult_lookup_for_bad_token(codec) -> None:
    calls: list = []

    def _lookup(subject_id):
        calls.append(subject_id)
        return None

    result = SessionGateway(codec, _lookup).authenticate("garbage")

    assert isinstance(result, Err)
    assert calls == []
