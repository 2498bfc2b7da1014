from __future__ import annotations

import os

# Settings are read once at import time; configure them before taskflow is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_ACCESS_SECRET_KEY", "test-access-secret-0123456789abcdef")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("AUTH_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("AUTH_COOKIE_SECURE", "false")

from datetime import timedelta  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from taskflow.database import Base  # noqa: E402
from taskflow.models import User  # noqa: E402
from taskflow.services.session_store import SessionStore  # noqa: E402
from taskflow.services.token_codec import TokenCodec  # noqa: E402

ACCESS_SECRET = "unit-access-secret"
REFRESH_SECRET = "unit-refresh-secret"


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'sessions.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return SessionStore(db)


@pytest.fixture
def codec():
    return TokenCodec(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=30),
    )


def _make_user(db, *, email: str | None = None, password_hash: str = "not-a-real-hash", is_active: bool = True) -> User:
    user = User(
        id=uuid4(),
        email=email or f"{uuid4().hex[:8]}@example.com",
        name="Test User",
        password_hash=password_hash,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def user_factory(db):
    def factory(**kwargs) -> User:
        return _make_user(db, **kwargs)

    return factory


@pytest.fixture
def user(user_factory):
    return user_factory()
