"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Taskflow"
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Database
    DATABASE_URL: str = "sqlite:///./taskflow.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Proxy / client IP handling
    # Only trust X-Forwarded-* headers when running behind a trusted reverse proxy (e.g. nginx).
    TRUST_PROXY_HEADERS: bool = False

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    REFRESH_SESSION_PURGE_INTERVAL_SECONDS: int = 60 * 60

    # JWT (access and refresh tokens MUST be signed with different secrets)
    JWT_ACCESS_SECRET_KEY: str
    JWT_REFRESH_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    JWT_LEEWAY_SECONDS: int = 30  # clock skew tolerance for exp validation

    # Password policy
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_MAX_LENGTH: int = 256

    # Auth hardening (rate limits)
    # NOTE: These are enforced in the API layer using Redis.
    AUTH_RATE_LIMIT_ENABLED: bool = True
    AUTH_LOGIN_IP_LIMIT_PER_MINUTE: int = 5
    AUTH_REGISTER_IP_LIMIT_PER_MINUTE: int = 5
    AUTH_REFRESH_IP_LIMIT_PER_MINUTE: int = 30

    # Auth cookies
    AUTH_ACCESS_COOKIE_NAME: str = "accessToken"
    AUTH_REFRESH_COOKIE_NAME: str = "refreshToken"
    AUTH_COOKIE_PATH: str = "/"
    AUTH_COOKIE_SAMESITE: str = "strict"
    # In production this MUST be True (requires HTTPS). In dev you may set False for localhost HTTP.
    AUTH_COOKIE_SECURE: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
