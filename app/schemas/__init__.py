"""
Pydantic schemas package
"""

from .common import *
from .guest import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "ValidationErrorDetail",
    "CreateGuestRequest",
    "UpdateGuestRequest",
    "CheckInGuestRequest",
    "SearchGuestsRequest",
    "GuestFilters",
    "GuestResponse",
    "SearchResult",
    "GuestStatistics",
    "PaymentMethodBreakdown",
    "GuestDistribution",
    "ActivityLogResponse",
]
