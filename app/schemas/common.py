"""
Common Pydantic schemas
"""

from typing import Any, List, Optional
from pydantic import BaseModel

class StandardResponse(BaseModel):
    """Standard API response"""
    success: bool
    message: str
    data: Optional[Any] = None

class ValidationErrorDetail(BaseModel):
    """Field-level validation failure"""
    field: str
    message: str
    code: str
    value: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Error response schema"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    details: Optional[List[ValidationErrorDetail]] = None
