"""
Tests for request validation and guest normalization in the service layer
"""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.guest import CreateGuestRequest
from app.services import validation
from app.services.guest_service import GuestService, normalize_guest
from app.services.repositories import GuestRepository


@pytest.fixture
def repo():
    return MagicMock(spec=GuestRepository)


@pytest.fixture
def mock_service(repo):
    return GuestService(repo)


def _details(exc_info):
    return [(detail.field, detail.code) for detail in exc_info.value.details]


# -------- Create --------

def test_create_requires_fields(mock_service, repo):
    """Test missing required fields are reported together"""
    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest({})

    assert exc_info.value.message == "Validation failed"
    assert set(_details(exc_info)) == {
        ("guest_id", "REQUIRED"),
        ("english_name", "REQUIRED"),
        ("guest_of", "REQUIRED"),
    }
    repo.create_guest.assert_not_called()


def test_create_accepts_khmer_name_only(mock_service, repo):
    repo.create_guest.return_value = {"guest_id": "K-1", "khmer_name": "សុភា", "guest_of": "Groom"}

    guest = mock_service.create_guest({"guest_id": "K-1", "khmer_name": "សុភា", "guest_of": "Groom"})

    assert guest.khmer_name == "សុភា"
    request = repo.create_guest.call_args.args[0]
    assert isinstance(request, CreateGuestRequest)
    assert request.guest_of == "Groom"


def test_create_rejects_invalid_guest_of(mock_service):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest({"guest_id": "X", "english_name": "A", "guest_of": "Cousin"})

    assert ("guest_of", "INVALID_VALUE") in _details(exc_info)


def test_create_rejects_unknown_field(mock_service):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest({"guest_id": "X", "english_name": "A", "guest_of": "Bride", "table": "A1"})

    assert ("table", "FIELD_NOT_ALLOWED") in _details(exc_info)


@pytest.mark.parametrize("field,message", [
    ("amount_khr", "KHR amount cannot be negative"),
    ("amount_usd", "USD amount cannot be negative"),
])
def test_create_negative_amount_has_dedicated_message(mock_service, field, message):
    payload = {"guest_id": "X", "english_name": "A", "guest_of": "Bride", "payment_method": "Cash", field: -5}

    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest(payload)

    assert exc_info.value.message == message


def test_create_non_numeric_amount(mock_service):
    payload = {"guest_id": "X", "english_name": "A", "guest_of": "Bride", "amount_usd": "ten"}

    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest(payload)

    assert exc_info.value.message == "Validation failed"
    assert ("amount_usd", "INVALID_TYPE") in _details(exc_info)


def test_create_amount_requires_payment_method(mock_service, repo):
    """Test a positive amount without a payment method is refused"""
    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest({"guest_id": "X", "english_name": "A", "guest_of": "Bride", "amount_khr": 40000})

    assert exc_info.value.message == "Payment method is required when amount is provided"
    repo.create_guest.assert_not_called()


def test_create_rejects_invalid_payment_method(mock_service):
    payload = {"guest_id": "X", "english_name": "A", "guest_of": "Bride", "payment_method": "Card"}

    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest(payload)

    assert ("payment_method", "INVALID_VALUE") in _details(exc_info)


# -------- Update --------

def test_update_rejects_empty_payload(mock_service, repo):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.update_guest("G-1", {})

    assert exc_info.value.message == "At least one field must be provided for update"
    repo.update_guest.assert_not_called()


def test_update_rejects_fields_outside_whitelist(mock_service):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.update_guest("G-1", {"guest_id": "G-2", "created_at": "now"})

    assert exc_info.value.message == "Field(s) not allowed for update: guest_id, created_at"


def test_update_collects_field_errors(mock_service):
    payload = {
        "amount_khr": -1,
        "amount_usd": "5",
        "english_name": "  ",
        "payment_method": "Card",
        "guest_of": "Friend",
        "is_duplicate": "yes",
    }

    with pytest.raises(ValidationError) as exc_info:
        mock_service.update_guest("G-1", payload)

    assert exc_info.value.message == "Validation failed"
    assert set(_details(exc_info)) == {
        ("amount_khr", "INVALID_TYPE"),
        ("amount_usd", "INVALID_TYPE"),
        ("english_name", "REQUIRED"),
        ("payment_method", "INVALID_VALUE"),
        ("guest_of", "INVALID_VALUE"),
        ("is_duplicate", "INVALID_TYPE"),
    }


def test_update_passes_only_supplied_fields(mock_service, repo):
    repo.update_guest.return_value = {"guest_id": "G-1", "english_name": "New", "guest_of": "Bride"}

    mock_service.update_guest("G-1", {"english_name": "New"})

    guest_id, request = repo.update_guest.call_args.args
    assert guest_id == "G-1"
    assert request.model_dump(exclude_unset=True) == {"english_name": "New"}


# -------- Check-in --------

def test_check_in_requires_payment_method(mock_service):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.check_in_guest("G-1", {"amount_khr": 1000})

    assert exc_info.value.message == "Payment method is required for check-in"


def test_check_in_negative_amount(mock_service, repo):
    """Test a negative amount is reported as INVALID_TYPE"""
    with pytest.raises(ValidationError) as exc_info:
        mock_service.check_in_guest("G-1", {"amount_khr": -1, "payment_method": "Cash"})

    assert exc_info.value.message == "Validation failed"
    detail = exc_info.value.details[0]
    assert detail.field == "amount_khr"
    assert detail.code == "INVALID_TYPE"
    assert detail.message == "Amount KHR must be non-negative"
    repo.check_in_guest.assert_not_called()


def test_check_in_rejects_create_only_fields(mock_service):
    """Test guest_of is not accepted during check-in"""
    with pytest.raises(ValidationError) as exc_info:
        mock_service.check_in_guest("G-1", {"amount_khr": 500000, "payment_method": "Cash", "guest_of": "Bride"})

    assert ("guest_of", "FIELD_NOT_ALLOWED") in _details(exc_info)


def test_check_in_rejects_null_method(mock_service):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.check_in_guest("G-1", {"amount_usd": 10, "payment_method": None})

    assert ("payment_method", "INVALID_VALUE") in _details(exc_info)


def test_check_in_accepts_zero_amounts(mock_service, repo):
    repo.check_in_guest.return_value = {"guest_id": "G-1", "guest_of": "Bride", "payment_method": "Cash"}

    guest = mock_service.check_in_guest("G-1", {"amount_khr": 0, "payment_method": "Cash"})

    assert guest.payment_method == "Cash"
    repo.check_in_guest.assert_called_once()


# -------- Identifiers --------

@pytest.mark.parametrize("guest_id", ["", "   ", None])
def test_blank_guest_id_rejected(mock_service, repo, guest_id):
    """Test blank identifiers never reach the repository"""
    for call in (
        lambda: mock_service.get_guest_by_id(guest_id),
        lambda: mock_service.update_guest(guest_id, {"english_name": "A"}),
        lambda: mock_service.check_in_guest(guest_id, {"payment_method": "Cash"}),
        lambda: mock_service.delete_guest(guest_id),
    ):
        with pytest.raises(ValidationError) as exc_info:
            call()
        assert exc_info.value.message == "Valid guest ID is required"

    repo.get_guest_by_id.assert_not_called()
    repo.update_guest.assert_not_called()
    repo.check_in_guest.assert_not_called()
    repo.delete_guest.assert_not_called()


def test_not_found_propagates_unchanged(mock_service, repo):
    repo.update_guest.side_effect = NotFoundError("Guest", "G-404")

    with pytest.raises(NotFoundError) as exc_info:
        mock_service.update_guest("G-404", {"english_name": "A"})

    assert exc_info.value.status_code == 404


def test_filters_are_validated(mock_service):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.get_all_guests({"guest_of": "Uncle"})

    assert ("guest_of", "INVALID_VALUE") in _details(exc_info)


# -------- Normalization --------

def test_normalize_guest_fills_defaults():
    """Test missing amounts, method and timestamps get defaults"""
    guest = normalize_guest({
        "guest_id": "N-1",
        "english_name": "Nary",
        "amount_khr": None,
        "guest_of": "Bride",
        "is_duplicate": 0,
    })

    assert guest.amount_khr == 0
    assert guest.amount_usd == 0
    assert guest.payment_method is None
    assert guest.is_duplicate is False
    assert isinstance(guest.created_at, datetime)
    assert isinstance(guest.updated_at, datetime)


def test_normalize_guest_from_object():
    created = datetime(2024, 6, 15, 10, 30)
    raw = SimpleNamespace(
        guest_id="N-2",
        english_name=None,
        khmer_name="ណារី",
        amount_khr=1000.0,
        amount_usd=0.0,
        payment_method="QR_Code",
        guest_of="Groom",
        is_duplicate=1,
        created_at=created,
        updated_at=created,
    )

    guest = normalize_guest(raw)

    assert guest.khmer_name == "ណារី"
    assert guest.amount_khr == 1000
    assert guest.payment_method == "QR_Code"
    assert guest.is_duplicate is True
    assert guest.created_at == created


def test_validation_helpers():
    assert validation.is_number(3)
    assert validation.is_number(2.5)
    assert not validation.is_number(True)
    assert not validation.is_number("1")
    assert not validation.is_number(float("nan"))
    assert validation.check_in_errors({"payment_method": "Cash"}) == []


def test_create_rejects_amount_too_large_for_float(mock_service, repo):
    """Test an oversized integer amount is a validation error, not a crash"""
    payload = {"guest_id": "X", "english_name": "A", "guest_of": "Bride", "payment_method": "Cash",
               "amount_khr": 10 ** 400}

    with pytest.raises(ValidationError) as exc_info:
        mock_service.create_guest(payload)

    assert ("amount_khr", "INVALID_TYPE") in _details(exc_info)
    repo.create_guest.assert_not_called()


def test_check_in_rejects_amount_too_large_for_float(mock_service, repo):
    with pytest.raises(ValidationError) as exc_info:
        mock_service.check_in_guest("G-1", {"amount_usd": 10 ** 400, "payment_method": "Cash"})

    assert ("amount_usd", "INVALID_TYPE") in _details(exc_info)
    assert not validation.is_number(10 ** 400)
    repo.check_in_guest.assert_not_called()
