"""Per-IP fixed-window rate limits for auth endpoints, backed by Redis."""
import logging

import redis
from redis.exceptions import RedisError
from fastapi import Request

from .client_info import get_client_ip
from .config import settings
from .domain_errors import DomainError

logger = logging.getLogger(__name__)

_redis_client = None


class RateLimitExceeded(DomainError):
    def __init__(self, *, retry_after: int, message: str) -> None:
        super().__init__(
            code="RATE_LIMITED",
            http_status=429,
            message=message,
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def _incr_with_ttl(key: str, ttl_seconds: int) -> tuple[int, int]:
    """
    Increment a Redis counter and ensure it has an expiry.
    Returns (value, ttl_remaining_seconds).
    """
    r = _get_redis()
    value = r.incr(key)
    if value == 1:
        r.expire(key, ttl_seconds)
    ttl = r.ttl(key)
    if ttl is None or ttl < 0:
        ttl = ttl_seconds
    return int(value), int(ttl)


def enforce_ip_rate_limit(request: Request, *, scope: str, limit_per_minute: int) -> None:
    """Raise RateLimitExceeded past `limit_per_minute` hits per IP (fail-open if Redis is unavailable)."""
    if not settings.AUTH_RATE_LIMIT_ENABLED:
        return

    ip = get_client_ip(request)
    try:
        attempts, ttl = _incr_with_ttl(f"auth:rl:{scope}:ip:{ip}", 60)
    except RedisError:
        logger.exception("Redis error during %s rate limiting (fail-open)", scope)
        return

    if attempts > limit_per_minute:
        logger.warning("auth.rate_limited scope=%s ip=%s attempts=%d", scope, ip, attempts)
        raise RateLimitExceeded(
            retry_after=ttl,
            message=f"Too many {scope} attempts. Try again later.",
        )
