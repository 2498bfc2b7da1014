"""Tagged results returned across the token, store and session boundaries."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class AuthErrorKind(str, Enum):
    NO_TOKEN = "NO_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"
    REUSE_DETECTED = "REUSE_DETECTED"
    UNKNOWN_SUBJECT = "UNKNOWN_SUBJECT"
    DUPLICATE_TOKEN = "DUPLICATE_TOKEN"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    kind: AuthErrorKind
    detail: str | None = None


Result = Union[Ok[T], Err]
