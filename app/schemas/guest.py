"""
Guest-related Pydantic schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from app.core.config import settings
from app.core.enums import GuestOf, PaymentMethod, SearchType

class GuestRequest(BaseModel):
    """Base for request payloads; unknown keys are kept so validators can reject them"""
    model_config = ConfigDict(extra="allow", use_enum_values=True)

class CreateGuestRequest(GuestRequest):
    """Schema for creating a guest"""
    guest_id: str
    english_name: Optional[str] = None
    khmer_name: Optional[str] = None
    amount_khr: Optional[float] = None
    amount_usd: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    guest_of: GuestOf

class UpdateGuestRequest(GuestRequest):
    """Patch for a guest; only fields that were explicitly set are applied"""
    english_name: Optional[str] = None
    khmer_name: Optional[str] = None
    amount_khr: Optional[float] = None
    amount_usd: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    guest_of: Optional[GuestOf] = None
    is_duplicate: Optional[bool] = None

class CheckInGuestRequest(GuestRequest):
    """Guest check-in (payment) request"""
    amount_khr: Optional[float] = None
    amount_usd: Optional[float] = None
    payment_method: PaymentMethod

class SearchGuestsRequest(GuestRequest):
    """Guest search request"""
    query: str
    search_type: SearchType
    limit: int = settings.SEARCH_DEFAULT_LIMIT
    offset: int = 0

class GuestFilters(GuestRequest):
    """Filters for listing guests, AND-composed"""
    guest_of: Optional[GuestOf] = None
    payment_method: Optional[PaymentMethod] = None
    has_payment: Optional[bool] = None
    is_duplicate: Optional[bool] = None

class GuestResponse(BaseModel):
    """Guest response schema"""
    guest_id: str
    english_name: Optional[str] = None
    khmer_name: Optional[str] = None
    amount_khr: float = 0
    amount_usd: float = 0
    payment_method: Optional[str] = None
    guest_of: str
    is_duplicate: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class SearchResult(BaseModel):
    """One page of search results plus timing"""
    guests: List[GuestResponse]
    total_count: int
    search_time_ms: float
    query_used: str
    search_type: str

class PaymentMethodBreakdown(BaseModel):
    qr_code: int = 0
    cash: int = 0
    pending: int = 0

class GuestDistribution(BaseModel):
    bride: int = 0
    groom: int = 0
    bride_parents: int = 0
    groom_parents: int = 0

class GuestStatistics(BaseModel):
    """Aggregates over active (non-duplicate) guests"""
    total_guests: int = 0
    total_khr: float = 0
    total_usd: float = 0
    paid_guests: int = 0
    pending_guests: int = 0
    duplicates: int = 0
    payment_methods: PaymentMethodBreakdown = PaymentMethodBreakdown()
    guest_distribution: GuestDistribution = GuestDistribution()

class ActivityLogResponse(BaseModel):
    """Audit trail entry"""
    id: int
    guest_id: Optional[str] = None
    action: str
    old_amount_khr: Optional[float] = None
    new_amount_khr: Optional[float] = None
    old_amount_usd: Optional[float] = None
    new_amount_usd: Optional[float] = None
    details: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)
