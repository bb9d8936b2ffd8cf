"""
Exception hierarchy raised by services and rendered by the API layer
"""
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from app.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


class CRMError(Exception):
    """Base application error with HTTP semantics"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(self, message: str, *, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message


class ValidationError(CRMError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class UnauthorizedError(CRMError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class ForbiddenError(CRMError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFoundError(CRMError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(CRMError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class RateLimitError(CRMError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"


async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
    """Render a CRMError as {"detail", "code"}"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.info(f"{exc.code}: {exc.message}", extra={"status_code": exc.status_code})

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )
