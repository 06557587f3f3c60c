"""Auth endpoints."""
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..rate_limit import forgot_password_rate_limit, login_rate_limit, register_rate_limit
from ..schemas import (
    AuthResult,
    ChangePasswordRequest,
    DataResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserProfile,
    UserProfileWithCounts,
)
from ..use_cases.auth_use_cases import (
    change_password_use_case,
    get_profile_use_case,
    login_use_case,
    register_use_case,
    request_password_reset_use_case,
    reset_password_use_case,
    update_profile_use_case,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a reset link has been sent"


def _set_no_store(response: Response) -> None:
    # Reduce the chance of logging/caching secrets (tokens).
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


@router.post(
    "/register",
    response_model=DataResponse[AuthResult],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(register_rate_limit)],
)
def register(data: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """Create an account and return a token for it."""
    result = register_use_case(db=db, data=data)
    _set_no_store(response)
    return DataResponse[AuthResult](message="User created successfully", data=result)


@router.post("/login", response_model=DataResponse[AuthResult], dependencies=[Depends(login_rate_limit)])
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    result = login_use_case(db=db, email=data.email, password=data.password)
    _set_no_store(response)
    return DataResponse[AuthResult](message="Login successful", data=result)


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client drops its copy. Recorded for audit only."""
    logger.info("User logged out: %s", current_user.id)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=DataResponse[UserProfileWithCounts])
def get_me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = get_profile_use_case(db=db, user_id=current_user.id)
    return DataResponse[UserProfileWithCounts](message="Profile retrieved successfully", data=profile)


@router.put("/me", response_model=DataResponse[UserProfile])
def update_me(
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = update_profile_use_case(db=db, user_id=current_user.id, data=data)
    return DataResponse[UserProfile](message="Profile updated successfully", data=profile)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    change_password_use_case(
        db=db,
        user_id=current_user.id,
        current_password=data.current_password,
        new_password=data.new_password,
    )
    return MessageResponse(message="Password changed successfully")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(forgot_password_rate_limit)],
)
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    # Same answer whether or not the account exists.
    request_password_reset_use_case(db=db, email=data.email)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    reset_password_use_case(db=db, token=data.token, new_password=data.new_password)
    return MessageResponse(message="Password has been reset")
