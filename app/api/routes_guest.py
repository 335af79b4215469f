"""
Guest record API routes
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.core.enums import GuestOf, PaymentMethod
from app.services.guest_service import GuestService
from app.services.repositories import GuestRepository
from app.utils.responses import success_response

router = APIRouter()


def get_guest_service(db: Session = Depends(get_db)) -> GuestService:
    return GuestService(GuestRepository(db))


@router.post("")
async def create_guest(
    payload: Dict[str, Any] = Body(...),
    service: GuestService = Depends(get_guest_service)
):
    """Register a new guest"""
    guest = service.create_guest(payload)
    return success_response("Guest created successfully", data=guest, status_code=201)


@router.get("")
async def list_guests(
    guest_of: Optional[GuestOf] = None,
    payment_method: Optional[PaymentMethod] = None,
    has_payment: Optional[bool] = None,
    is_duplicate: Optional[bool] = None,
    service: GuestService = Depends(get_guest_service)
):
    """List guests, newest first"""
    guests = service.get_all_guests({
        "guest_of": guest_of,
        "payment_method": payment_method,
        "has_payment": has_payment,
        "is_duplicate": is_duplicate,
    })
    return success_response(f"Found {len(guests)} guests", data=guests)


@router.get("/search")
async def search_guests(
    query: str,
    search_type: str,
    limit: int = Query(settings.SEARCH_DEFAULT_LIMIT),
    offset: int = Query(0),
    service: GuestService = Depends(get_guest_service)
):
    """Search active guests by ID or name"""
    result = service.search_guests({
        "query": query,
        "search_type": search_type,
        "limit": limit,
        "offset": offset,
    })
    return success_response(f"Found {result.total_count} matching guests", data=result)


@router.get("/stats")
async def guest_statistics(service: GuestService = Depends(get_guest_service)):
    """Totals and breakdowns over active guests"""
    return success_response("Statistics retrieved", data=service.get_statistics())


@router.get("/{guest_id}")
async def get_guest(guest_id: str, service: GuestService = Depends(get_guest_service)):
    return success_response("Guest found", data=service.get_guest_by_id(guest_id))


@router.get("/{guest_id}/activity")
async def guest_activity(
    guest_id: str,
    limit: int = Query(100, ge=1, le=1000),
    service: GuestService = Depends(get_guest_service)
):
    """Audit trail for one guest, newest first"""
    service.get_guest_by_id(guest_id)
    logs = service.get_activity_log(guest_id=guest_id, limit=limit)
    return success_response(f"Found {len(logs)} activity entries", data=logs)


@router.patch("/{guest_id}")
async def update_guest(
    guest_id: str,
    payload: Dict[str, Any] = Body(...),
    service: GuestService = Depends(get_guest_service)
):
    guest = service.update_guest(guest_id, payload)
    return success_response("Guest updated successfully", data=guest)


@router.post("/{guest_id}/checkin")
async def check_in_guest(
    guest_id: str,
    payload: Dict[str, Any] = Body(...),
    service: GuestService = Depends(get_guest_service)
):
    """Record the guest's gift payment"""
    guest = service.check_in_guest(guest_id, payload)
    return success_response("Guest checked in successfully", data=guest)


@router.delete("/{guest_id}")
async def delete_guest(
    guest_id: str,
    hard: bool = False,
    service: GuestService = Depends(get_guest_service)
):
    """Soft delete by default; ?hard=true removes the row and its history"""
    service.delete_guest(guest_id, soft=not hard)
    message = "Guest permanently deleted" if hard else "Guest marked as duplicate"
    return success_response(message, data={"guest_id": guest_id, "hard": hard})
