"""Authentication and authorization."""
from datetime import timedelta
from typing import Optional
import logging
import time
from uuid import UUID
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from .config import settings
from .database import get_db
from .domain_errors import DomainError, ErrorCode, domain_error
from .models import User
from .schemas import PASSWORD_MAX_BYTES

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
logger = logging.getLogger(__name__)


# Bearer token scheme; a missing header is reported as TOKEN_MISSING instead of FastAPI's default 403.
security = HTTPBearer(auto_error=False)

_BEARER_HEADERS = {"WWW-Authenticate": "Bearer"}


def _credentials_error(code: ErrorCode = ErrorCode.TOKEN_INVALID, message: str = "Invalid token") -> DomainError:
    return domain_error(code, message, headers=_BEARER_HEADERS)


def validate_new_password(new_password: str | None) -> None:
    """Server-side password policy validation (length bounds)."""
    if not new_password or len(new_password) < settings.PASSWORD_MIN_LENGTH:
        raise domain_error(
            ErrorCode.WEAK_PASSWORD,
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
        )
    # Measured in bytes: bcrypt silently ignores anything past the limit.
    if len(new_password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise domain_error(
            ErrorCode.WEAK_PASSWORD,
            f"Password must be at most {PASSWORD_MAX_BYTES} bytes",
        )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception:
        # Invalid/corrupted hash should not crash login flow.
        logger.exception("Password verification failed due to invalid hash format")
        return False


def get_password_hash(password: str) -> str:
    """Hash password (fresh salt per call)."""
    return pwd_context.hash(password)


# Alias for convenience
hash_password = get_password_hash


def _jwt_secret() -> str:
    secret = settings.JWT_SECRET
    if not secret:
        logger.error("JWT_SECRET is not configured")
        raise domain_error(ErrorCode.SERVER_MISCONFIGURED, "Server configuration error")
    return secret


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    now: Optional[int] = None,
) -> str:
    """Create JWT access token."""
    secret = _jwt_secret()
    to_encode = data.copy()
    issued_at = int(time.time()) if now is None else int(now)
    if expires_delta:
        exp = issued_at + int(expires_delta.total_seconds())
    else:
        exp = issued_at + int(settings.JWT_EXPIRES_IN_MINUTES) * 60
    to_encode.update({"exp": exp, "iat": issued_at})
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def create_token_for_user(user: User, now: Optional[int] = None) -> str:
    return create_access_token(
        {"userId": str(user.id), "email": user.email, "role": user.role},
        now=now,
    )


def decode_token(token: str, now: Optional[int] = None) -> dict:
    """Decode JWT token; expiry is checked here so leeway and `now` stay under our control."""
    secret = _jwt_secret()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise _credentials_error()

    current = int(time.time()) if now is None else int(now)
    try:
        exp_int = int(payload["exp"])
    except (KeyError, TypeError, ValueError):
        raise _credentials_error()
    if current > exp_int + int(settings.JWT_LEEWAY_SECONDS):
        raise _credentials_error(ErrorCode.TOKEN_EXPIRED, "Token expired")
    return payload


def _parse_token_subject(payload: dict) -> UUID:
    """Parse and validate the token's userId claim as UUID."""
    sub = payload.get("userId")
    if not sub:
        raise _credentials_error()
    try:
        return UUID(str(sub))
    except ValueError:
        raise _credentials_error()


def resolve_user_from_token(db: Session, token: str, now: Optional[int] = None) -> User:
    """Verify token, then re-fetch the user so deactivation takes effect immediately."""
    payload = decode_token(token, now=now)
    user_id = _parse_token_subject(payload)
    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712
    if user is None:
        raise _credentials_error(message="User not found or inactive")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current authenticated user."""
    if credentials is None or not credentials.credentials:
        raise _credentials_error(ErrorCode.TOKEN_MISSING, "Access token required")
    return resolve_user_from_token(db, credentials.credentials)


# Role checks
class RoleChecker:
    """Allow the request only for the given roles."""

    def __init__(self, *roles: str):
        self.roles = frozenset(roles)

    def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in self.roles:
            raise domain_error(ErrorCode.FORBIDDEN, "Insufficient permissions")
        return current_user


require_auth = RoleChecker("USER", "ADMIN")
