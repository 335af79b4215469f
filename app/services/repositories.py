"""
Repository layer: every SQL statement for guests, activity logs and error logs.

Multi-statement writes run inside a single transaction. Unexpected failures are
rolled back, recorded to error_logs on a best-effort basis and re-raised
unchanged; domain errors (not found, conflict, validation) pass straight through.
"""

import json
import logging
import re
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import and_, case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.db import transaction
from app.core.enums import ActivityAction, GuestOf, PaymentMethod, SearchType, enum_values
from app.core.exceptions import ConflictError, GuestServiceError, NotFoundError, ValidationError
from app.models import ActivityLog, ErrorLog, Guest
from app.models.guest import utcnow
from app.schemas.common import ValidationErrorDetail
from app.schemas.guest import (
    CheckInGuestRequest,
    CreateGuestRequest,
    GuestDistribution,
    GuestFilters,
    GuestStatistics,
    PaymentMethodBreakdown,
    UpdateGuestRequest,
)

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 100
UPDATABLE_COLUMNS = (
    "english_name",
    "khmer_name",
    "amount_khr",
    "amount_usd",
    "payment_method",
    "guest_of",
    "is_duplicate",
)

_UNSAFE_QUERY_CHARS = re.compile(r"['\"`;\\]")
LIKE_ESCAPE = "/"
_LIKE_SPECIALS = re.compile(r"([%_/])")


def sanitize_search_query(query: Any) -> str:
    """Trim, drop SQL meta-characters and cap the length of a raw search query"""
    if not isinstance(query, str):
        return ""
    return _UNSAFE_QUERY_CHARS.sub("", query.strip())[:MAX_QUERY_LENGTH]


def escape_like(term: str) -> str:
    return _LIKE_SPECIALS.sub(lambda m: LIKE_ESCAPE + m.group(1), term)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


@dataclass
class SearchPage:
    """Raw search output handed to the service layer"""
    guests: List[Guest]
    total_count: int
    search_time_ms: float
    query_used: str
    search_type: str


class GuestRepository:
    """Parameterized SQL access for guest records and their audit trail"""

    def __init__(self, db: Session):
        self.db = db

    # -------- Guest CRUD --------

    def create_guest(self, data: CreateGuestRequest) -> Guest:
        with self._error_boundary("CREATE_GUEST_ERROR", guest_id=data.guest_id):
            existing = self.db.query(Guest.guest_id).filter(Guest.guest_id == data.guest_id).first()
            if existing:
                raise ConflictError(f"Guest with ID {data.guest_id} already exists")

            amount_khr = data.amount_khr or 0
            amount_usd = data.amount_usd or 0
            guest = Guest(
                guest_id=data.guest_id,
                english_name=data.english_name,
                khmer_name=data.khmer_name,
                amount_khr=amount_khr,
                amount_usd=amount_usd,
                payment_method=_enum_value(data.payment_method),
                guest_of=_enum_value(data.guest_of),
                is_duplicate=False,
            )

            with transaction(self.db):
                self.db.add(guest)
                self.db.flush()
                self._append_activity(
                    guest.guest_id,
                    ActivityAction.CREATED,
                    details=f"Guest created: {self._display_name(guest)} ({guest.guest_of})",
                )
                if amount_khr > 0 or amount_usd > 0:
                    self._append_activity(
                        guest.guest_id,
                        ActivityAction.PAYMENT_RECEIVED,
                        new_amount_khr=amount_khr,
                        new_amount_usd=amount_usd,
                        details=f"Initial payment: {amount_khr} KHR / {amount_usd} USD",
                    )

            return self.get_guest_by_id(data.guest_id)

    def get_guest_by_id(self, guest_id: str) -> Guest:
        with self._error_boundary("GET_GUEST_ERROR", guest_id=guest_id):
            guest = self.db.query(Guest).filter(Guest.guest_id == guest_id).first()
            if guest is None:
                raise NotFoundError("Guest", guest_id)
            return guest

    def get_all_guests(self, filters: Optional[GuestFilters] = None) -> List[Guest]:
        """List guests, newest first. Duplicates are only excluded when filtered out explicitly."""
        with self._error_boundary("GET_ALL_GUESTS_ERROR"):
            query = self.db.query(Guest)

            if filters is not None:
                if filters.guest_of:
                    query = query.filter(Guest.guest_of == _enum_value(filters.guest_of))
                if filters.payment_method:
                    query = query.filter(Guest.payment_method == _enum_value(filters.payment_method))
                if filters.has_payment is not None:
                    if filters.has_payment:
                        query = query.filter(or_(Guest.amount_khr > 0, Guest.amount_usd > 0))
                    else:
                        query = query.filter(and_(Guest.amount_khr == 0, Guest.amount_usd == 0))
                if filters.is_duplicate is not None:
                    query = query.filter(Guest.is_duplicate == filters.is_duplicate)

            return query.order_by(Guest.created_at.desc()).all()

    def update_guest(self, guest_id: str, updates: UpdateGuestRequest) -> Guest:
        with self._error_boundary("UPDATE_GUEST_ERROR", guest_id=guest_id):
            current = self.get_guest_by_id(guest_id)

            patch = {
                column: _enum_value(value)
                for column, value in updates.model_dump(exclude_unset=True).items()
                if column in UPDATABLE_COLUMNS
            }
            if not patch:
                raise ValidationError("No valid fields provided for update")

            old_khr = current.amount_khr or 0
            old_usd = current.amount_usd or 0
            new_khr = patch.get("amount_khr", old_khr) or 0
            new_usd = patch.get("amount_usd", old_usd) or 0
            new_method = patch.get("payment_method", current.payment_method)
            if (new_khr > 0 or new_usd > 0) and new_method is None:
                raise ValidationError(
                    "Payment method is required when amount is provided",
                    [ValidationErrorDetail(
                        field="payment_method",
                        message="Payment method is required when amount is provided",
                        code="REQUIRED",
                    )],
                )

            changed = [
                f"{column}: {getattr(current, column)} -> {value}"
                for column, value in patch.items()
                if getattr(current, column) != value
            ]

            with transaction(self.db):
                affected = (
                    self.db.query(Guest)
                    .filter(Guest.guest_id == guest_id)
                    .update({**patch, "updated_at": utcnow()}, synchronize_session=False)
                )
                if affected == 0:
                    raise NotFoundError("Guest", guest_id)

                self._append_activity(
                    guest_id,
                    ActivityAction.UPDATED,
                    old_amount_khr=old_khr if "amount_khr" in patch else None,
                    new_amount_khr=new_khr if "amount_khr" in patch else None,
                    old_amount_usd=old_usd if "amount_usd" in patch else None,
                    new_amount_usd=new_usd if "amount_usd" in patch else None,
                    details=f"Guest updated: {', '.join(changed) or 'no changes'}",
                )

            return self.get_guest_by_id(guest_id)

    def check_in_guest(self, guest_id: str, payment: CheckInGuestRequest) -> Guest:
        """Record a payment. Amounts and method are overwritten, never accumulated."""
        with self._error_boundary("CHECK_IN_GUEST_ERROR", guest_id=guest_id,
                                  payment_data=payment.model_dump()):
            current = self.get_guest_by_id(guest_id)

            old_khr = current.amount_khr or 0
            old_usd = current.amount_usd or 0
            already_paid = old_khr > 0 or old_usd > 0

            amount_khr = payment.amount_khr or 0
            amount_usd = payment.amount_usd or 0
            method = _enum_value(payment.payment_method)

            with transaction(self.db):
                affected = (
                    self.db.query(Guest)
                    .filter(Guest.guest_id == guest_id)
                    .update(
                        {
                            "amount_khr": amount_khr,
                            "amount_usd": amount_usd,
                            "payment_method": method,
                            "updated_at": utcnow(),
                        },
                        synchronize_session=False,
                    )
                )
                if affected == 0:
                    raise NotFoundError("Guest", guest_id)

                if already_paid:
                    action = ActivityAction.PAYMENT_UPDATED
                    details = f"Payment updated: {amount_khr} KHR / {amount_usd} USD via {method}"
                else:
                    action = ActivityAction.CHECKED_IN
                    details = f"Guest checked in: {amount_khr} KHR / {amount_usd} USD via {method}"

                self._append_activity(
                    guest_id,
                    action,
                    old_amount_khr=old_khr,
                    new_amount_khr=amount_khr,
                    old_amount_usd=old_usd,
                    new_amount_usd=amount_usd,
                    details=details,
                )

            return self.get_guest_by_id(guest_id)

    def delete_guest(self, guest_id: str, soft: bool = True) -> bool:
        """
        Soft delete flags the row as a duplicate and keeps its history.
        Hard delete removes the row; its activity logs go with it via ON DELETE CASCADE.
        """
        with self._error_boundary("DELETE_GUEST_ERROR", guest_id=guest_id, soft=soft):
            existing = self.get_guest_by_id(guest_id)
            display_name = self._display_name(existing)

            if soft:
                with transaction(self.db):
                    affected = (
                        self.db.query(Guest)
                        .filter(Guest.guest_id == guest_id)
                        .update({"is_duplicate": True, "updated_at": utcnow()}, synchronize_session=False)
                    )
                    if affected == 0:
                        raise NotFoundError("Guest", guest_id)
                    self._append_activity(
                        guest_id, ActivityAction.DELETED, details=f"Guest soft deleted: {display_name}"
                    )
            else:
                with transaction(self.db):
                    # Logged first; the cascade removes it together with the guest
                    self._append_activity(
                        guest_id, ActivityAction.DELETED, details=f"Guest hard deleted: {display_name}"
                    )
                    self.db.flush()
                    affected = (
                        self.db.query(Guest)
                        .filter(Guest.guest_id == guest_id)
                        .delete(synchronize_session=False)
                    )
                    if affected == 0:
                        raise NotFoundError("Guest", guest_id)
                self.db.expunge_all()
                logger.info("Guest %s hard deleted", guest_id)

            return True

    # -------- Search --------

    def search_guests(
        self,
        query: str,
        search_type: Any,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchPage:
        search_type = _enum_value(search_type)
        if search_type not in enum_values(SearchType):
            raise ValidationError(f"Invalid search type: {search_type}")

        started = time.perf_counter()
        with self._error_boundary("SEARCH_GUESTS_ERROR", query=query, search_type=search_type,
                                  limit=limit, offset=offset):
            term = sanitize_search_query(query)
            if not term:
                return SearchPage(
                    guests=[],
                    total_count=0,
                    search_time_ms=_elapsed_ms(started),
                    query_used=term,
                    search_type=search_type,
                )

            active = Guest.is_duplicate == False  # noqa: E712
            if search_type == SearchType.GUEST_ID.value:
                condition = func.lower(Guest.guest_id) == func.lower(term)
                ordering = [Guest.created_at.desc()]
            else:
                column = Guest.english_name if search_type == SearchType.ENGLISH_NAME.value else Guest.khmer_name
                lowered = func.lower(column)
                pattern = func.lower(f"%{escape_like(term)}%")
                condition = lowered.like(pattern, escape=LIKE_ESCAPE)
                # Exact match, then substring, then the rest
                rank = case(
                    (lowered == func.lower(term), 1),
                    (lowered.like(pattern, escape=LIKE_ESCAPE), 2),
                    else_=3,
                )
                ordering = [rank, Guest.created_at.desc()]

            guests = (
                self.db.query(Guest)
                .filter(condition, active)
                .order_by(*ordering)
                .limit(limit)
                .offset(offset)
                .all()
            )
            total_count = (
                self.db.query(func.count(Guest.guest_id))
                .filter(condition, active)
                .scalar()
            ) or 0
            search_time_ms = _elapsed_ms(started)

        # Detached rows keep their loaded state through the audit commit
        for guest in guests:
            self.db.expunge(guest)
        self._log_search_activity(term, search_type, total_count, search_time_ms)

        return SearchPage(
            guests=guests,
            total_count=total_count,
            search_time_ms=search_time_ms,
            query_used=term,
            search_type=search_type,
        )

    # -------- Statistics --------

    def get_guest_statistics(self) -> GuestStatistics:
        with self._error_boundary("GET_STATISTICS_ERROR"):
            active = Guest.is_duplicate == False  # noqa: E712
            paid = or_(Guest.amount_khr > 0, Guest.amount_usd > 0)

            def count_active(*conditions):
                return func.sum(case((and_(active, *conditions), 1), else_=0))

            def sum_active(column):
                return func.sum(case((active, column), else_=0))

            stats = self.db.query(
                count_active().label("total_guests"),
                sum_active(Guest.amount_khr).label("total_khr"),
                sum_active(Guest.amount_usd).label("total_usd"),
                count_active(paid).label("paid_guests"),
                count_active(Guest.amount_khr == 0, Guest.amount_usd == 0).label("pending_guests"),
                func.sum(case((Guest.is_duplicate == True, 1), else_=0)).label("duplicates"),  # noqa: E712
                count_active(Guest.payment_method == PaymentMethod.QR_CODE.value).label("qr_code"),
                count_active(Guest.payment_method == PaymentMethod.CASH.value).label("cash"),
                count_active(Guest.payment_method.is_(None)).label("pending_payment"),
                count_active(Guest.guest_of == GuestOf.BRIDE.value).label("bride"),
                count_active(Guest.guest_of == GuestOf.GROOM.value).label("groom"),
                count_active(Guest.guest_of == GuestOf.BRIDE_PARENTS.value).label("bride_parents"),
                count_active(Guest.guest_of == GuestOf.GROOM_PARENTS.value).label("groom_parents"),
            ).one()

            return GuestStatistics(
                total_guests=stats.total_guests or 0,
                total_khr=stats.total_khr or 0,
                total_usd=stats.total_usd or 0,
                paid_guests=stats.paid_guests or 0,
                pending_guests=stats.pending_guests or 0,
                duplicates=stats.duplicates or 0,
                payment_methods=PaymentMethodBreakdown(
                    qr_code=stats.qr_code or 0,
                    cash=stats.cash or 0,
                    pending=stats.pending_payment or 0,
                ),
                guest_distribution=GuestDistribution(
                    bride=stats.bride or 0,
                    groom=stats.groom or 0,
                    bride_parents=stats.bride_parents or 0,
                    groom_parents=stats.groom_parents or 0,
                ),
            )

    # -------- Audit trail --------

    def get_activity_logs(self, guest_id: Optional[str] = None, limit: int = 100) -> List[ActivityLog]:
        with self._error_boundary("GET_ACTIVITY_LOGS_ERROR", guest_id=guest_id):
            query = self.db.query(ActivityLog)
            if guest_id is not None:
                query = query.filter(ActivityLog.guest_id == guest_id)
            return query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()

    def log_error(self, error_type: str, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        """Best-effort write to error_logs; a failure here is reported to the logger only"""
        context = dict(context or {})
        message = str(error) or type(error).__name__
        if context:
            message = f"{message} Context: {json.dumps(context, default=str)}"
        stack_trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        try:
            with transaction(self.db):
                self.db.add(
                    ErrorLog(
                        error_type=error_type,
                        error_message=message,
                        stack_trace=stack_trace,
                        request_path=context.get("request_path"),
                        request_method=context.get("request_method"),
                        user_agent=context.get("user_agent"),
                        ip_address=context.get("ip_address"),
                    )
                )
        except Exception:
            logger.exception("Failed to log error to database. Original error: %s", error)

    # -------- Internals --------

    @contextmanager
    def _error_boundary(self, error_type: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except GuestServiceError:
            raise
        except Exception as exc:
            try:
                self.db.rollback()
            except Exception:
                logger.exception("Rollback failed while handling %s", error_type)
            self.log_error(error_type, exc, context)
            raise

    def _append_activity(self, guest_id: Optional[str], action: ActivityAction, **fields: Any) -> None:
        self.db.add(ActivityLog(guest_id=guest_id, action=action.value, **fields))

    def _log_search_activity(self, term: str, search_type: str, result_count: int, search_time_ms: float) -> None:
        details = json.dumps({
            "query": term,
            "search_type": search_type,
            "result_count": result_count,
            "search_time_ms": search_time_ms,
        }, ensure_ascii=False)
        try:
            with transaction(self.db):
                self._append_activity(None, ActivityAction.SEARCHED, details=details)
        except SQLAlchemyError:
            logger.warning("Failed to log search activity", exc_info=True)

    @staticmethod
    def _display_name(guest: Guest) -> str:
        return guest.english_name or guest.khmer_name or guest.guest_id
