"""FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import check_db_connection
from .domain_errors import DomainError
from .problem_details import build_problem_details_response
from .rate_limit import RateLimitExceeded
from .routers import auth

logger = logging.getLogger(__name__)

# Production safety checks (fail closed on insecure cookie / secret config).
if settings.is_production and not settings.AUTH_COOKIE_SECURE:
    raise RuntimeError("AUTH_COOKIE_SECURE must be true in production (requires HTTPS).")
if settings.is_production and settings.JWT_ACCESS_SECRET_KEY == settings.JWT_REFRESH_SECRET_KEY:
    raise RuntimeError("JWT_ACCESS_SECRET_KEY and JWT_REFRESH_SECRET_KEY must differ.")
if settings.is_production and any(origin == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")

# Create app
app = FastAPI(
    title="Taskflow",
    version="1.0.0",
    description="Task and project manager API: session and token lifecycle",
)

# CORS
cors_headers = ["Authorization", "Content-Type"]
if not settings.is_production:
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=cors_headers,
)


@app.exception_handler(DomainError)
async def handle_domain_error(_: Request, exc: DomainError):
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.http_status >= 500:
        logger.error("Request failed code=%s message=%s", exc.code, exc.message)
    return build_problem_details_response(exc, headers=headers)


# Include routers
app.include_router(auth.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "database": "ok" if check_db_connection() else "unavailable",
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Taskflow API",
        "version": "1.0.0",
        "docs": "/docs",
    }
