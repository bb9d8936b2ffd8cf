"""
Authentication dependencies
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request

from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.logging_config import LoggingConfig
from app.core.security import decode_access_token
from app.models.user import UserRole

logger = LoggingConfig.get_logger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity carried by a verified access token"""
    id: UUID
    email: Optional[str]
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def _extract_bearer_token(request: Request) -> str:
    header = request.headers.get("authorization")
    if not header:
        raise UnauthorizedError("No token provided")

    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError("Token error")
    return parts[1]


async def get_current_user(request: Request) -> CurrentUser:
    """
    Require a valid `Authorization: Bearer <token>` header

    Raises:
        UnauthorizedError: "No token provided", "Token error" (malformed header)
            or "Invalid token" (bad signature, expired, missing subject)
    """
    token = _extract_bearer_token(request)
    payload = decode_access_token(token)

    try:
        user_id = UUID(str(payload.get("id") or payload["sub"]))
    except (KeyError, ValueError):
        raise UnauthorizedError("Invalid token")

    user = CurrentUser(
        id=user_id,
        email=payload.get("email"),
        role=payload.get("role") or UserRole.USER.value,
    )
    LoggingConfig.set_context(user_id=str(user.id))
    return user


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Require the ADMIN role"""
    if not current_user.is_admin:
        logger.warning(f"Admin access denied for user {current_user.id}")
        raise ForbiddenError("Access denied. Admin role required.")
    return current_user
