"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .results import AuthErrorKind, Err


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


SESSION_EXPIRED_MESSAGE = "Session expired or invalid, please log in again."

# Expired and invalid share one message so callers cannot probe which one applied.
_AUTH_ERRORS: dict[AuthErrorKind, tuple[str, int, str]] = {
    AuthErrorKind.NO_TOKEN: ("NO_TOKEN", 401, "Please log in."),
    AuthErrorKind.TOKEN_EXPIRED: ("TOKEN_EXPIRED", 401, SESSION_EXPIRED_MESSAGE),
    AuthErrorKind.TOKEN_INVALID: ("TOKEN_INVALID", 401, SESSION_EXPIRED_MESSAGE),
    AuthErrorKind.REUSE_DETECTED: (
        "REFRESH_TOKEN_REUSED",
        403,
        "Security alert: reused token detected, please log in again.",
    ),
    AuthErrorKind.UNKNOWN_SUBJECT: ("UNKNOWN_SUBJECT", 401, "Please log in."),
    AuthErrorKind.DUPLICATE_TOKEN: ("INTERNAL_ERROR", 500, "Failed to issue session"),
}


def auth_error(err: Err) -> DomainError:
    """Map a failed auth result onto the HTTP-facing domain error."""
    code, http_status, message = _AUTH_ERRORS[err.kind]
    return DomainError(code=code, http_status=http_status, message=message)


def internal_error(message: str) -> DomainError:
    return DomainError(code="INTERNAL_ERROR", http_status=500, message=message)
