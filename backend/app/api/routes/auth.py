"""
Authentication API routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from app.core.auth import CurrentUser, get_current_user, require_admin
from app.core.database import get_db
from app.core.exceptions import CRMError, ValidationError
from app.core.logging_config import LoggingConfig
from app.models.user import User
from app.services.auth_service import AuthService
from app.utils.datetime_utils import to_iso

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = "If your email is registered, you will receive a password reset link"


# Request/Response models
class RegisterRequest(BaseModel):
    """User registration request"""
    email: EmailStr
    password: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """User login request"""
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = None


class TwoFactorRequest(BaseModel):
    enable: bool


class AuthResponse(BaseModel):
    """Returned by register and by login without a second factor"""
    id: str
    email: str
    name: Optional[str] = None
    token: str


class UserResponse(BaseModel):
    """User response model"""
    id: str
    email: str
    name: Optional[str] = None
    role: str
    two_factor_enabled: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        two_factor_enabled=user.two_factor_enabled,
        created_at=to_iso(user.created_at),
        updated_at=to_iso(user.updated_at),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db)
):
    """Register a new user and return an access token"""
    try:
        auth_service = AuthService(db)
        user = auth_service.register_user(
            email=request.email,
            password=request.password,
            name=request.name,
        )
        return AuthResponse(
            id=str(user.id),
            email=user.email,
            name=user.name,
            token=auth_service.issue_token(user),
        )
    except CRMError:
        raise
    except Exception as e:
        logger.error(f"Error registering user: {e}", exc_info=True)
        raise CRMError(
            "Something went wrong",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="internal_error"
        )


@router.post("/login")
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Check credentials

    Accounts with two-factor enabled get `{require_two_factor, user_id}`
    instead of a token.
    """
    try:
        auth_service = AuthService(db)
        user = auth_service.authenticate(request.email, request.password)

        if user.two_factor_enabled:
            return {"require_two_factor": True, "user_id": str(user.id)}

        return AuthResponse(
            id=str(user.id),
            email=user.email,
            name=user.name,
            token=auth_service.issue_token(user),
        )
    except CRMError:
        raise
    except Exception as e:
        logger.error(f"Error logging in: {e}", exc_info=True)
        raise CRMError(
            "Something went wrong",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="internal_error"
        )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: Session = Depends(get_db)
):
    """Email a reset link. The response does not reveal whether the email is registered."""
    if not request.email:
        raise ValidationError("Email is required")

    try:
        AuthService(db).request_password_reset(request.email)
        return MessageResponse(message=RESET_REQUESTED_MESSAGE)
    except CRMError:
        raise
    except Exception as e:
        logger.error(f"Error requesting password reset: {e}", exc_info=True)
        raise CRMError(
            "Something went wrong",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="internal_error"
        )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """Set a new password using a reset token"""
    if not request.token or not request.password:
        raise ValidationError("Token and password are required")

    try:
        AuthService(db).reset_password(request.token, request.password)
        return MessageResponse(message="Password has been reset successfully")
    except CRMError:
        raise
    except Exception as e:
        logger.error(f"Error resetting password: {e}", exc_info=True)
        raise CRMError(
            "Something went wrong",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="internal_error"
        )


@router.post("/logout", response_model=MessageResponse)
async def logout():
    """Tokens are stateless; the client discards its copy"""
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user information"""
    user = AuthService(db).get_user(current_user.id)
    return _user_response(user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    request: UpdateProfileRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update name and/or email"""
    try:
        user = AuthService(db).update_profile(
            current_user.id,
            name=request.name,
            email=request.email,
        )
        return _user_response(user)
    except CRMError:
        raise
    except Exception as e:
        logger.error(f"Error updating user {current_user.id}: {e}", exc_info=True)
        raise CRMError(
            "Something went wrong",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="internal_error"
        )


@router.post("/two-factor", response_model=UserResponse)
async def toggle_two_factor(
    request: TwoFactorRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Enable or disable two-factor authentication"""
    user = AuthService(db).set_two_factor(current_user.id, request.enable)
    return _user_response(user)


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List all accounts (admin only)"""
    users = db.query(User).order_by(User.created_at.asc()).all()
    return [_user_response(user) for user in users]
