"""SQLAlchemy models."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from .database import Base


class User(Base):
    """User model (the authenticated principal)."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    refresh_sessions = relationship(
        "RefreshSession",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class RefreshSession(Base):
    """Refresh session for refresh-token rotation and reuse detection."""

    __tablename__ = "refresh_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # SHA-256 of the refresh token; the raw token is never stored.
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    # Chain link to the token this session was rotated from (NULL for login/register).
    previous_token_hash = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    is_revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_reason = Column(String(32), nullable=True)
    device_name = Column(String(512), nullable=True)
    source_address = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_refresh_sessions_user_id_is_revoked", "user_id", "is_revoked"),
    )

    # Relationships
    user = relationship("User", back_populates="refresh_sessions")
