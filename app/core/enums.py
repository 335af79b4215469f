"""
Enumerations shared by the storage schema, request schemas and validators
"""

import enum


class PaymentMethod(str, enum.Enum):
    QR_CODE = "QR_Code"
    CASH = "Cash"


class GuestOf(str, enum.Enum):
    BRIDE = "Bride"
    GROOM = "Groom"
    BRIDE_PARENTS = "Bride_Parents"
    GROOM_PARENTS = "Groom_Parents"


class SearchType(str, enum.Enum):
    GUEST_ID = "guest_id"
    ENGLISH_NAME = "english_name"
    KHMER_NAME = "khmer_name"


class ActivityAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    PAYMENT_RECEIVED = "payment_received"
    CHECKED_IN = "checked_in"
    PAYMENT_UPDATED = "payment_updated"
    DUPLICATE_MARKED = "duplicate_marked"
    DUPLICATE_RESOLVED = "duplicate_resolved"
    SEARCHED = "searched"


def enum_values(enum_cls) -> list:
    return [member.value for member in enum_cls]
