"""Per-client-IP request throttling backed by Redis counters."""
import ipaddress
import logging
from typing import Callable

from fastapi import Request
from redis.exceptions import RedisError

from . import redis_client
from .config import settings
from .domain_errors import ErrorCode, domain_error

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    if settings.TRUST_PROXY_HEADERS:
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            try:
                ipaddress.ip_address(real_ip)
                return real_ip
            except ValueError:
                pass

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For may contain a list: client, proxy1, proxy2
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass

    if request.client:
        return request.client.host
    return "unknown"


def _incr_with_ttl(key: str, ttl_seconds: int) -> tuple[int, int]:
    """
    Increment a Redis counter and ensure it has an expiry.
    Returns (value, ttl_remaining_seconds).
    """
    r = redis_client.get_redis()
    value = r.incr(key)
    if value == 1:
        r.expire(key, ttl_seconds)
    ttl = r.ttl(key)
    if ttl is None or ttl < 0:
        ttl = ttl_seconds
    return int(value), int(ttl)


class RateLimiter:
    """FastAPI dependency enforcing `limit` hits per `window` seconds for one scope."""

    def __init__(
        self,
        scope: str,
        *,
        limit: Callable[[], int],
        window_seconds: Callable[[], int],
        message: str = "Too many requests. Try again later.",
    ):
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message

    def __call__(self, request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        ip = get_client_ip(request)
        try:
            attempts, ttl = _incr_with_ttl(f"rl:{self.scope}:ip:{ip}", self.window_seconds())
        except RedisError:
            # Fail open if Redis is down to avoid a total API outage.
            logger.exception("Redis error during %s rate limiting (fail-open)", self.scope)
            return
        if attempts > self.limit():
            logger.warning("Rate limit hit: scope=%s ip=%s", self.scope, ip)
            raise domain_error(
                ErrorCode.RATE_LIMITED,
                self.message,
                details={"retryAfter": ttl},
                headers={"Retry-After": str(ttl)},
            )


api_rate_limit = RateLimiter(
    "api",
    limit=lambda: settings.RATE_LIMIT_REQUESTS,
    window_seconds=lambda: settings.RATE_LIMIT_WINDOW_SECONDS,
)
login_rate_limit = RateLimiter(
    "login",
    limit=lambda: settings.AUTH_LOGIN_IP_LIMIT,
    window_seconds=lambda: settings.RATE_LIMIT_WINDOW_SECONDS,
    message="Too many login attempts. Try again later.",
)
register_rate_limit = RateLimiter(
    "register",
    limit=lambda: settings.AUTH_REGISTER_IP_LIMIT_PER_HOUR,
    window_seconds=lambda: 3600,
    message="Too many accounts created from this address. Try again later.",
)
forgot_password_rate_limit = RateLimiter(
    "forgot-password",
    limit=lambda: settings.AUTH_FORGOT_PASSWORD_IP_LIMIT_PER_HOUR,
    window_seconds=lambda: 3600,
)
