"""
Domain error taxonomy shared by the repository, service and API layers
"""

from typing import Any, Dict, List, Optional

from app.schemas.common import ValidationErrorDetail


class GuestServiceError(Exception):
    """Base class for errors surfaced to callers of the guest service"""

    name = "GuestServiceError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "message": self.message}


class ValidationError(GuestServiceError):
    """Client input is malformed; always correctable by the caller"""

    name = "ValidationError"
    status_code = 400

    def __init__(self, message: str, details: Optional[List[ValidationErrorDetail]] = None):
        super().__init__(message)
        self.details: List[ValidationErrorDetail] = list(details or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["details"] = [detail.model_dump(exclude_none=True) for detail in self.details]
        return data


class NotFoundError(GuestServiceError):
    name = "NotFoundError"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(f"{resource} with id {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(GuestServiceError):
    name = "ConflictError"
    status_code = 409


class DatabaseError(GuestServiceError):
    """Unexpected storage failure"""

    name = "DatabaseError"
    status_code = 500

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(f"Database error: {message}")
        self.original_error = original_error
