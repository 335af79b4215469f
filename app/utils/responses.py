"""
Standardized response utilities
"""

from typing import Any, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import GuestServiceError, ValidationError
from app.schemas.common import StandardResponse, ErrorResponse

INTERNAL_ERROR_MESSAGE = "Internal server error"

def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=data
    )
    return JSONResponse(
        content=jsonable_encoder(response),
        status_code=status_code
    )

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details
    )
    return JSONResponse(
        content=jsonable_encoder(response),
        status_code=status_code
    )

def guest_error_response(exc: GuestServiceError) -> JSONResponse:
    """Map a domain error onto its HTTP status; raw database text is hidden in production"""
    message = exc.message
    if exc.status_code >= 500 and settings.is_production:
        message = INTERNAL_ERROR_MESSAGE
    details = None
    if isinstance(exc, ValidationError) and exc.details:
        details = exc.details
    return error_response(
        message=message,
        error_code=exc.name,
        details=details,
        status_code=exc.status_code
    )

def internal_error_response(exc: Exception) -> JSONResponse:
    """Unexpected failure"""
    message = INTERNAL_ERROR_MESSAGE if settings.is_production else str(exc) or INTERNAL_ERROR_MESSAGE
    return error_response(
        message=message,
        error_code="InternalServerError",
        status_code=500
    )
