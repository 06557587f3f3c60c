"""Single-use password reset tokens kept in Redis with a TTL."""

from __future__ import annotations

import json
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .. import redis_client
from ..config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "pwreset:"


@dataclass(frozen=True)
class ResetRequest:
    user_id: str
    email: str
    token: str
    expires_at: datetime
    reset_link: str


def _key(token: str) -> str:
    return f"{KEY_PREFIX}{token}"


def build_reset_link(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/reset-password?token={token}"


def create_reset_request(*, user_id: str, email: str, now: Optional[datetime] = None) -> ResetRequest:
    token = secrets.token_hex(20)
    ttl_seconds = int(settings.PASSWORD_RESET_EXPIRATION_MINUTES) * 60
    expires_at = (now or datetime.now(timezone.utc)) + timedelta(seconds=ttl_seconds)
    request = ResetRequest(
        user_id=user_id,
        email=email,
        token=token,
        expires_at=expires_at,
        reset_link=build_reset_link(token),
    )
    record = {"userId": user_id, "email": email, "expiresAt": expires_at.isoformat()}
    redis_client.get_redis().set(_key(token), json.dumps(record), ex=ttl_seconds)
    logger.info("Password reset token issued for user %s (expires %s)", user_id, expires_at.isoformat())
    return request


def consume_reset_token(token: str, now: Optional[datetime] = None) -> Optional[ResetRequest]:
    """Read and delete in one step; a token works at most once."""
    if not token:
        return None
    raw = redis_client.get_redis().getdel(_key(token))
    if raw is None:
        return None
    try:
        record = json.loads(raw)
        expires_at = datetime.fromisoformat(record["expiresAt"])
    except (ValueError, KeyError, TypeError):
        logger.warning("Discarding malformed password reset record")
        return None
    if expires_at < (now or datetime.now(timezone.utc)):
        return None
    return ResetRequest(
        user_id=record["userId"],
        email=record["email"],
        token=token,
        expires_at=expires_at,
        reset_link=build_reset_link(token),
    )
