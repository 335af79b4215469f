"""
Request validators for guest operations

Each ``*_errors`` function inspects a raw payload and returns a list of
field-level problems; the matching ``validate_*`` function raises
ValidationError when that list is not empty. All checks run before the
typed request model is built, so nothing here touches storage.
"""

import math
from decimal import Decimal
from typing import Any, List, Mapping

from app.core.enums import GuestOf, PaymentMethod, SearchType, enum_values
from app.core.exceptions import ValidationError
from app.schemas.common import ValidationErrorDetail

VALIDATION_FAILED = "Validation failed"
PAYMENT_METHOD_REQUIRED = "Payment method is required when amount is provided"
CHECK_IN_METHOD_REQUIRED = "Payment method is required for check-in"
EMPTY_UPDATE = "At least one field must be provided for update"
INVALID_GUEST_ID = "Valid guest ID is required"

# Error codes
REQUIRED = "REQUIRED"
INVALID_TYPE = "INVALID_TYPE"
INVALID_VALUE = "INVALID_VALUE"
FIELD_NOT_ALLOWED = "FIELD_NOT_ALLOWED"

CREATE_FIELDS = (
    "guest_id",
    "english_name",
    "khmer_name",
    "amount_khr",
    "amount_usd",
    "payment_method",
    "guest_of",
)
UPDATE_FIELDS = (
    "english_name",
    "khmer_name",
    "amount_khr",
    "amount_usd",
    "payment_method",
    "guest_of",
    "is_duplicate",
)
CHECK_IN_FIELDS = ("amount_khr", "amount_usd", "payment_method")
FILTER_FIELDS = ("guest_of", "payment_method", "has_payment", "is_duplicate")
SEARCH_FIELDS = ("query", "search_type", "limit", "offset")

AMOUNT_LABELS = {"amount_khr": "KHR", "amount_usd": "USD"}
MAX_QUERY_LENGTH = 100
MAX_SEARCH_LIMIT = 100


def _detail(field: str, message: str, code: str, value: Any = None) -> ValidationErrorDetail:
    return ValidationErrorDetail(field=field, message=message, code=code, value=value)


def _raise_if_any(errors: List[ValidationErrorDetail], message: str = VALIDATION_FAILED) -> None:
    if errors:
        raise ValidationError(message, errors)


def _value(value: Any) -> Any:
    """Unwrap enum members so they compare against their stored values"""
    return getattr(value, "value", value)


def is_number(value: Any) -> bool:
    """True for finite ints, floats and Decimals; bools are not amounts"""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _unknown_fields(payload: Mapping[str, Any], allowed) -> List[str]:
    return [key for key in payload if key not in allowed]


# -------- Identifiers --------

def validate_guest_id(guest_id: Any) -> str:
    if not isinstance(guest_id, str) or not guest_id.strip():
        raise ValidationError(INVALID_GUEST_ID, [_detail("guest_id", INVALID_GUEST_ID, REQUIRED, guest_id)])
    return guest_id


# -------- Create --------

def create_guest_errors(payload: Mapping[str, Any]) -> List[ValidationErrorDetail]:
    """Required fields and unknown keys"""
    errors = []

    guest_id = payload.get("guest_id")
    if not isinstance(guest_id, str) or not guest_id.strip():
        errors.append(_detail("guest_id", "Guest ID is required", REQUIRED, guest_id))

    if is_blank(payload.get("english_name")) and is_blank(payload.get("khmer_name")):
        errors.append(_detail("english_name", "Either English name or Khmer name is required", REQUIRED))

    guest_of = _value(payload.get("guest_of"))
    if guest_of is None:
        errors.append(_detail("guest_of", "Guest of is required", REQUIRED))
    elif guest_of not in enum_values(GuestOf):
        errors.append(_detail(
            "guest_of",
            f"Guest of must be one of: {', '.join(enum_values(GuestOf))}",
            INVALID_VALUE,
            guest_of,
        ))

    for field in _unknown_fields(payload, CREATE_FIELDS):
        errors.append(_detail(field, f"Field '{field}' is not allowed", FIELD_NOT_ALLOWED))

    return errors


def validate_create_guest(payload: Mapping[str, Any]) -> None:
    _raise_if_any(create_guest_errors(payload))

    has_amount = False
    for field, currency in AMOUNT_LABELS.items():
        amount = payload.get(field)
        if amount is None:
            continue
        if not is_number(amount):
            raise ValidationError(
                VALIDATION_FAILED,
                [_detail(field, f"{currency} amount must be a number", INVALID_TYPE, amount)],
            )
        if amount < 0:
            raise ValidationError(
                f"{currency} amount cannot be negative",
                [_detail(field, f"{currency} amount cannot be negative", INVALID_VALUE, amount)],
            )
        has_amount = has_amount or amount > 0

    payment_method = _value(payload.get("payment_method"))
    if has_amount and payment_method is None:
        raise ValidationError(
            PAYMENT_METHOD_REQUIRED,
            [_detail("payment_method", PAYMENT_METHOD_REQUIRED, REQUIRED)],
        )
    if payment_method is not None and payment_method not in enum_values(PaymentMethod):
        raise ValidationError(
            VALIDATION_FAILED,
            [_detail(
                "payment_method",
                f"Payment method must be one of: {', '.join(enum_values(PaymentMethod))}",
                INVALID_VALUE,
                payment_method,
            )],
        )


# -------- Update --------

def update_guest_errors(payload: Mapping[str, Any]) -> List[ValidationErrorDetail]:
    errors = []

    for field in AMOUNT_LABELS:
        if field in payload:
            amount = payload[field]
            if not is_number(amount) or amount < 0:
                errors.append(_detail(field, f"{field} must be a non-negative number", INVALID_TYPE, amount))

    for field in ("english_name", "khmer_name"):
        if field in payload and is_blank(payload[field]):
            errors.append(_detail(field, f"{field} cannot be empty", REQUIRED, payload[field]))

    if "payment_method" in payload:
        method = _value(payload["payment_method"])
        if method is not None and method not in enum_values(PaymentMethod):
            errors.append(_detail("payment_method", "Invalid payment method", INVALID_VALUE, method))

    if "guest_of" in payload:
        guest_of = _value(payload["guest_of"])
        if guest_of not in enum_values(GuestOf):
            errors.append(_detail("guest_of", "Invalid guest_of value", INVALID_VALUE, guest_of))

    if "is_duplicate" in payload and not isinstance(payload["is_duplicate"], bool):
        errors.append(_detail("is_duplicate", "is_duplicate must be a boolean", INVALID_TYPE, payload["is_duplicate"]))

    return errors


def validate_update_guest(payload: Mapping[str, Any]) -> None:
    if not payload:
        raise ValidationError(EMPTY_UPDATE)

    not_allowed = _unknown_fields(payload, UPDATE_FIELDS)
    if not_allowed:
        raise ValidationError(f"Field(s) not allowed for update: {', '.join(not_allowed)}")

    _raise_if_any(update_guest_errors(payload))


# -------- Check-in --------

def check_in_errors(payload: Mapping[str, Any]) -> List[ValidationErrorDetail]:
    errors = [
        _detail(field, f"Field '{field}' is not allowed for check-in", FIELD_NOT_ALLOWED)
        for field in _unknown_fields(payload, CHECK_IN_FIELDS)
    ]

    for field, currency in AMOUNT_LABELS.items():
        if field in payload and payload[field] is not None:
            amount = payload[field]
            if not is_number(amount) or amount < 0:
                errors.append(_detail(field, f"Amount {currency} must be non-negative", INVALID_TYPE, amount))

    method = _value(payload.get("payment_method"))
    if method not in enum_values(PaymentMethod):
        errors.append(_detail(
            "payment_method",
            f"Payment method must be one of: {', '.join(enum_values(PaymentMethod))}",
            INVALID_VALUE,
            method,
        ))

    return errors


def validate_check_in(payload: Mapping[str, Any]) -> None:
    if "payment_method" not in payload:
        raise ValidationError(
            CHECK_IN_METHOD_REQUIRED,
            [_detail("payment_method", CHECK_IN_METHOD_REQUIRED, REQUIRED)],
        )
    _raise_if_any(check_in_errors(payload))


# -------- Search & filters --------

def search_errors(payload: Mapping[str, Any]) -> List[ValidationErrorDetail]:
    errors = []

    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        errors.append(_detail("query", "Search query is required", REQUIRED, query))
    elif len(query) > MAX_QUERY_LENGTH:
        errors.append(_detail(
            "query", f"Search query must be at most {MAX_QUERY_LENGTH} characters", INVALID_VALUE
        ))

    search_type = _value(payload.get("search_type"))
    if search_type not in enum_values(SearchType):
        errors.append(_detail(
            "search_type",
            f"Search type must be one of: {', '.join(enum_values(SearchType))}",
            INVALID_VALUE,
            search_type,
        ))

    if payload.get("limit") is not None:
        limit = payload["limit"]
        if not is_int(limit) or not 1 <= limit <= MAX_SEARCH_LIMIT:
            errors.append(_detail(
                "limit", f"Limit must be an integer between 1 and {MAX_SEARCH_LIMIT}", INVALID_VALUE, limit
            ))

    if payload.get("offset") is not None:
        offset = payload["offset"]
        if not is_int(offset) or offset < 0:
            errors.append(_detail("offset", "Offset must be a non-negative integer", INVALID_VALUE, offset))

    for field in _unknown_fields(payload, SEARCH_FIELDS):
        errors.append(_detail(field, f"Field '{field}' is not allowed", FIELD_NOT_ALLOWED))

    return errors


def validate_search(payload: Mapping[str, Any]) -> None:
    _raise_if_any(search_errors(payload))


def filter_errors(payload: Mapping[str, Any]) -> List[ValidationErrorDetail]:
    errors = [
        _detail(field, f"Unknown filter '{field}'", FIELD_NOT_ALLOWED)
        for field in _unknown_fields(payload, FILTER_FIELDS)
    ]

    guest_of = _value(payload.get("guest_of"))
    if guest_of is not None and guest_of not in enum_values(GuestOf):
        errors.append(_detail("guest_of", "Invalid guest_of value", INVALID_VALUE, guest_of))

    method = _value(payload.get("payment_method"))
    if method is not None and method not in enum_values(PaymentMethod):
        errors.append(_detail("payment_method", "Invalid payment method", INVALID_VALUE, method))

    for field in ("has_payment", "is_duplicate"):
        value = payload.get(field)
        if value is not None and not isinstance(value, bool):
            errors.append(_detail(field, f"{field} must be a boolean", INVALID_TYPE, value))

    return errors


def validate_filters(payload: Mapping[str, Any]) -> None:
    _raise_if_any(filter_errors(payload))
