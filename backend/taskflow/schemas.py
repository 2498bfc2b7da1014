"""Pydantic schemas for API."""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    is_active: bool
    last_login_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Auth schemas
class RegisterRequest(BaseModel):
    name: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = None


class TokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_expires_in: int


class MessageResponse(BaseModel):
    message: str


class LogoutAllResponse(MessageResponse):
    revoked_sessions: int
