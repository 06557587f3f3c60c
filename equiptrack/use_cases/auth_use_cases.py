"""Account use-cases: registration, login, profile, password rotation and reset."""
from __future__ import annotations

import logging
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import create_token_for_user, hash_password, pwd_context, validate_new_password, verify_password
from ..domain_errors import ErrorCode, domain_error
from ..models import Equipment, EquipmentEvent, User
from ..schemas import (
    AuthResult,
    ProfileCounts,
    RegisterRequest,
    UpdateProfileRequest,
    UserProfile,
    UserProfileWithCounts,
)
from ..services import password_reset

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Email or password incorrect"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _email_taken(db: Session, email: str, *, exclude_user_id: UUID | None = None) -> bool:
    query = db.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise domain_error(ErrorCode.USER_NOT_FOUND, "User not found")
    return user


def register_use_case(*, db: Session, data: RegisterRequest) -> AuthResult:
    email = normalize_email(data.email)
    if _email_taken(db, email):
        raise domain_error(ErrorCode.DUPLICATE_EMAIL, "A user with this email already exists")
    validate_new_password(data.password)

    user = User(
        email=email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role or "USER",
        is_active=True,
    )
    db.add(user)
    try:
        db.flush()
        token = create_token_for_user(user)
        db.commit()
    except IntegrityError as exc:
        # Concurrent registration with the same email.
        db.rollback()
        raise domain_error(ErrorCode.DUPLICATE_EMAIL, "A user with this email already exists") from exc
    except Exception:
        db.rollback()
        raise
    db.refresh(user)

    logger.info("User registered: %s (%s)", user.id, user.role)
    return AuthResult(user=UserProfile.model_validate(user), token=token)


def login_use_case(*, db: Session, email: str, password: str) -> AuthResult:
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None:
        # Keep response time comparable to a real hash check.
        pwd_context.dummy_verify()
        raise domain_error(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)
    if not verify_password(password, user.password_hash):
        logger.info("Failed login for user %s", user.id)
        raise domain_error(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)
    if not user.is_active:
        raise domain_error(ErrorCode.ACCOUNT_DISABLED, "Account disabled")

    token = create_token_for_user(user)
    logger.info("User logged in: %s", user.id)
    return AuthResult(user=UserProfile.model_validate(user), token=token)


def get_profile_use_case(*, db: Session, user_id: UUID) -> UserProfileWithCounts:
    user = _get_user_or_404(db, user_id)
    equipments_created = (
        db.query(func.count(Equipment.id)).filter(Equipment.created_by == user.id).scalar() or 0
    )
    events = db.query(func.count(EquipmentEvent.id)).filter(EquipmentEvent.user_id == user.id).scalar() or 0
    base = UserProfile.model_validate(user)
    return UserProfileWithCounts(
        **base.model_dump(),
        counts=ProfileCounts(equipments_created=int(equipments_created), events=int(events)),
    )


def update_profile_use_case(*, db: Session, user_id: UUID, data: UpdateProfileRequest) -> UserProfile:
    user = _get_user_or_404(db, user_id)

    if data.email is not None:
        email = normalize_email(data.email)
        if email != user.email:
            if _email_taken(db, email, exclude_user_id=user.id):
                raise domain_error(ErrorCode.DUPLICATE_EMAIL, "This email is already used by another account")
            user.email = email
    if data.first_name is not None:
        user.first_name = data.first_name
    if data.last_name is not None:
        user.last_name = data.last_name

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise domain_error(ErrorCode.DUPLICATE_EMAIL, "This email is already used by another account") from exc
    db.refresh(user)

    logger.info("Profile updated: %s", user.id)
    return UserProfile.model_validate(user)


def change_password_use_case(*, db: Session, user_id: UUID, current_password: str, new_password: str) -> None:
    user = _get_user_or_404(db, user_id)
    if not verify_password(current_password, user.password_hash):
        raise domain_error(ErrorCode.INVALID_CREDENTIALS, "Current password is incorrect")
    validate_new_password(new_password)

    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password changed: %s", user.id)


def request_password_reset_use_case(*, db: Session, email: str) -> None:
    """Issue a reset link when an active account matches; silent otherwise."""
    from ..celery_app import send_password_reset_email

    user = db.query(User).filter(User.email == normalize_email(email), User.is_active == True).first()  # noqa: E712
    if user is None:
        logger.info("Password reset requested for unknown or inactive email")
        return

    try:
        request = password_reset.create_reset_request(user_id=str(user.id), email=user.email)
    except RedisError:
        logger.exception("Redis error while storing password reset token (fail-open)")
        return

    try:
        send_password_reset_email.delay(
            to=user.email,
            reset_link=request.reset_link,
            expires_at=request.expires_at.isoformat(),
            first_name=user.first_name,
            last_name=user.last_name,
        )
    except Exception:
        # Broker unavailable; the token stays valid until it expires.
        logger.exception("Failed to enqueue password reset e-mail for user %s", user.id)


def reset_password_use_case(*, db: Session, token: str, new_password: str) -> None:
    validate_new_password(new_password)

    request = password_reset.consume_reset_token(token)
    if request is None:
        raise domain_error(ErrorCode.RESET_TOKEN_INVALID, "Invalid or expired reset token")

    try:
        user_id = UUID(request.user_id)
    except ValueError:
        raise domain_error(ErrorCode.RESET_TOKEN_INVALID, "Invalid or expired reset token")
    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712
    if user is None:
        raise domain_error(ErrorCode.RESET_TOKEN_INVALID, "Invalid or expired reset token")

    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password reset completed: %s", user.id)
