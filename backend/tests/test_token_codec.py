from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from jose import jwt

from taskflow.results import AuthErrorKind, Err, Ok
from taskflow.services.token_codec import TokenCodec, TokenKind

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_access_token_round_trip_carries_subject_nonce_and_expiry(codec: TokenCodec) -> None:
    subject_id = uuid4()
    token, expires_at = codec.issue_access_token(subject_id, now=NOW)

    result = codec.verify(token, TokenKind.ACCESS, now=NOW)

    assert isinstance(result, Ok)
    assert result.value.subject_id == subject_id
    assert result.value.kind is TokenKind.ACCESS
    assert result.value.nonce
    assert result.value.expires_at == expires_at == NOW + timedelta(minutes=15)


def test_refresh_tokens_for_same_subject_and_instant_are_unique(codec: TokenCodec) -> None:
    subject_id = uuid4()
    first, _ = codec.issue_refresh_token(subject_id, now=NOW)
    second, _ = codec.issue_refresh_token(subject_id, now=NOW)

    assert first != second
    assert codec.verify(first, TokenKind.REFRESH, now=NOW).value.nonce != codec.verify(
        second, TokenKind.REFRESH, now=NOW
    ).value.nonce


def test_refresh_token_lifetime_is_days(codec: TokenCodec) -> None:
    _, expires_at = codec.issue_refresh_token(uuid4(), now=NOW)
    assert expires_at == NOW + timedelta(days=30)


def test_codec_refuses_shared_secret() -> None:
    with pytest.raises(ValueError):
        TokenCodec(
            access_secret="same",
            refresh_secret="same",
            access_ttl=timedelta(minutes=15),
            refresh_ttl=timedelta(days=30),
        )


def test_expired_token_is_reported_as_expired(codec: TokenCodec) -> None:
    token, _ = codec.issue_refresh_token(uuid4(), now=NOW - timedelta(days=31))

    result = codec.verify(token, TokenKind.REFRESH, now=NOW)

    assert result == Err(AuthErrorKind.TOKEN_EXPIRED)


def test_leeway_tolerates_small_clock_skew() -> None:
    lenient = TokenCodec(
        access_secret="a-secret",
        refresh_secret="r-secret",
        access_ttl=timedelta(minutes=1),
        refresh_ttl=timedelta(days=1),
        leeway_seconds=30,
    )
    token, _ = lenient.issue_access_token(uuid4(), now=NOW)

    assert isinstance(lenient.verify(token, TokenKind.ACCESS, now=NOW + timedelta(seconds=80)), Ok)
    assert isinstance(lenient.verify(token, TokenKind.ACCESS, now=NOW + timedelta(seconds=91)), Err)


def test_token_signed_with_another_refresh_secret_is_invalid(codec: TokenCodec) -> None:
    foreign = TokenCodec(
        access_secret="other-access",
        refresh_secret="other-refresh",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=30),
    )
    token, _ = foreign.issue_refresh_token(uuid4(), now=NOW)

    result = codec.verify(token, TokenKind.REFRESH, now=NOW)

    assert isinstance(result, Err)
    assert result.kind is AuthErrorKind.TOKEN_INVALID


def test_access_token_is_not_accepted_as_refresh_token(codec: TokenCodec) -> None:
    token, _ = codec.issue_access_token(uuid4(), now=NOW)

    result = codec.verify(token, TokenKind.REFRESH, now=NOW)

    assert isinstance(result, Err)
    assert result.kind is AuthErrorKind.TOKEN_INVALID


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_malformed_tokens_are_invalid(codec: TokenCodec, token: str) -> None:
    result = codec.verify(token, TokenKind.ACCESS, now=NOW)
    assert isinstance(result, Err)
    assert result.kind is AuthErrorKind.TOKEN_INVALID


def test_token_with_non_uuid_subject_is_invalid(codec: TokenCodec) -> None:
    iat = int(NOW.timestamp())
    token = jwt.encode(
        {"sub": "42", "jti": "n", "iat": iat, "exp": iat + 60, "type": "refresh"},
        "unit-refresh-secret",
        algorithm="HS256",
    )

    result = codec.verify(token, TokenKind.REFRESH, now=NOW)

    assert isinstance(result, Err)
    assert result.kind is AuthErrorKind.TOKEN_INVALID


def test_token_issued_in_the_future_is_invalid(codec: TokenCodec) -> None:
    token, _ = codec.issue_access_token(uuid4(), now=NOW + timedelta(hours=1))

    result = codec.verify(token, TokenKind.ACCESS, now=NOW)

    assert isinstance(result, Err)
    assert result.kind is AuthErrorKind.TOKEN_INVALID
