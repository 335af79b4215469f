"""
Guest service: validation, orchestration and normalization on top of GuestRepository
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.guest import utcnow
from app.schemas.common import ValidationErrorDetail
from app.schemas.guest import (
    ActivityLogResponse,
    CheckInGuestRequest,
    CreateGuestRequest,
    GuestFilters,
    GuestResponse,
    GuestStatistics,
    SearchGuestsRequest,
    SearchResult,
    UpdateGuestRequest,
)
from app.services import validation
from app.services.repositories import GuestRepository

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)
Payload = Union[BaseModel, Mapping[str, Any]]


def _as_payload(request: Payload) -> Dict[str, Any]:
    """Raw keys of a request, as the caller sent them"""
    if isinstance(request, BaseModel):
        data = request.model_dump(exclude_unset=True)
        data.update(request.model_extra or {})
        return data
    return dict(request)


def _build(model: Type[RequestT], payload: Dict[str, Any]) -> RequestT:
    try:
        return model(**payload)
    except PydanticValidationError as exc:
        details = [
            ValidationErrorDetail(
                field=".".join(str(part) for part in error["loc"]) or "body",
                message=error["msg"],
                code=validation.INVALID_TYPE,
            )
            for error in exc.errors()
        ]
        raise ValidationError(validation.VALIDATION_FAILED, details) from exc


def _field(raw: Any, name: str, default: Any = None) -> Any:
    if isinstance(raw, Mapping):
        value = raw.get(name, default)
    else:
        value = getattr(raw, name, default)
    return default if value is None else value


def normalize_guest(raw: Any) -> GuestResponse:
    """Canonical guest shape: zero amounts, bool flags, timestamps always present"""
    now = utcnow()
    payment_method = _field(raw, "payment_method")
    return GuestResponse(
        guest_id=_field(raw, "guest_id"),
        english_name=_field(raw, "english_name"),
        khmer_name=_field(raw, "khmer_name"),
        amount_khr=float(_field(raw, "amount_khr", 0)),
        amount_usd=float(_field(raw, "amount_usd", 0)),
        payment_method=getattr(payment_method, "value", payment_method),
        guest_of=getattr(_field(raw, "guest_of"), "value", _field(raw, "guest_of")),
        is_duplicate=bool(_field(raw, "is_duplicate", False)),
        created_at=_field(raw, "created_at", now),
        updated_at=_field(raw, "updated_at", now),
    )


class GuestService:
    """Business rules for guest records; all storage goes through the repository"""

    def __init__(self, repository: GuestRepository):
        self.repository = repository

    def create_guest(self, request: Payload) -> GuestResponse:
        payload = _as_payload(request)
        validation.validate_create_guest(payload)
        guest = self.repository.create_guest(_build(CreateGuestRequest, payload))
        return normalize_guest(guest)

    def get_guest_by_id(self, guest_id: str) -> GuestResponse:
        validation.validate_guest_id(guest_id)
        return normalize_guest(self.repository.get_guest_by_id(guest_id))

    def get_all_guests(self, filters: Optional[Payload] = None) -> List[GuestResponse]:
        guest_filters = None
        if filters is not None:
            payload = {key: value for key, value in _as_payload(filters).items() if value is not None}
            validation.validate_filters(payload)
            guest_filters = _build(GuestFilters, payload)
        return [normalize_guest(guest) for guest in self.repository.get_all_guests(guest_filters)]

    def update_guest(self, guest_id: str, updates: Payload) -> GuestResponse:
        validation.validate_guest_id(guest_id)
        payload = _as_payload(updates)
        validation.validate_update_guest(payload)
        guest = self.repository.update_guest(guest_id, _build(UpdateGuestRequest, payload))
        return normalize_guest(guest)

    def check_in_guest(self, guest_id: str, payment: Payload) -> GuestResponse:
        """Record a payment; a repeated check-in replaces the previous amounts"""
        validation.validate_guest_id(guest_id)
        payload = _as_payload(payment)
        validation.validate_check_in(payload)
        guest = self.repository.check_in_guest(guest_id, _build(CheckInGuestRequest, payload))
        return normalize_guest(guest)

    def delete_guest(self, guest_id: str, soft: bool = True) -> bool:
        validation.validate_guest_id(guest_id)
        return self.repository.delete_guest(guest_id, soft=soft)

    def search_guests(self, request: Payload) -> SearchResult:
        payload = _as_payload(request)
        validation.validate_search(payload)
        search = _build(SearchGuestsRequest, payload)

        page = self.repository.search_guests(
            search.query,
            search.search_type,
            limit=search.limit,
            offset=search.offset,
        )
        if page.search_time_ms > settings.SLOW_SEARCH_THRESHOLD_MS:
            logger.warning(
                "Slow search detected: %sms for %s query '%s'",
                page.search_time_ms,
                page.search_type,
                page.query_used,
            )

        return SearchResult(
            guests=[normalize_guest(guest) for guest in page.guests],
            total_count=page.total_count,
            search_time_ms=page.search_time_ms,
            query_used=page.query_used,
            search_type=page.search_type,
        )

    def quick_search(self, query: str, search_type: str) -> List[GuestResponse]:
        """First page of a search, for type-ahead style lookups"""
        result = self.search_guests({
            "query": query,
            "search_type": search_type,
            "limit": settings.QUICK_SEARCH_LIMIT,
            "offset": 0,
        })
        return result.guests

    def get_statistics(self) -> GuestStatistics:
        return self.repository.get_guest_statistics()

    def get_activity_log(self, guest_id: Optional[str] = None, limit: int = 100) -> List[ActivityLogResponse]:
        if guest_id is not None:
            validation.validate_guest_id(guest_id)
        logs = self.repository.get_activity_logs(guest_id=guest_id, limit=limit)
        return [ActivityLogResponse.model_validate(log) for log in logs]
