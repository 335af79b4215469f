"""
Guest model
"""

from datetime import datetime, timezone
from sqlalchemy import (
    DDL,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Numeric,
    String,
    event,
    func,
    text,
)
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.core.enums import GuestOf, PaymentMethod, enum_values


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite stores DATETIME columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _in_list(column: str, values) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Guest(Base):
    __tablename__ = "guests"

    guest_id = Column(String(100), primary_key=True)
    english_name = Column(String(255), nullable=True)
    khmer_name = Column(String(255), nullable=True)
    amount_khr = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0, server_default="0")
    amount_usd = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0, server_default="0")
    payment_method = Column(String(20), nullable=True, index=True)  # NULL = not yet paid
    guest_of = Column(String(20), nullable=False, index=True)
    # Doubles as the soft-delete marker
    is_duplicate = Column(
        Boolean(create_constraint=True, name="ck_guests_is_duplicate"),
        nullable=False,
        default=False,
        server_default=text("0"),
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    activity_logs = relationship(
        "ActivityLog",
        back_populates="guest",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            f"payment_method IS NULL OR {_in_list('payment_method', enum_values(PaymentMethod))}",
            name="ck_guests_payment_method",
        ),
        CheckConstraint(_in_list("guest_of", enum_values(GuestOf)), name="ck_guests_guest_of"),
        CheckConstraint("amount_khr >= 0", name="ck_guests_amount_khr_non_negative"),
        CheckConstraint("amount_usd >= 0", name="ck_guests_amount_usd_non_negative"),
        CheckConstraint(
            "(amount_khr <= 0 AND amount_usd <= 0) OR payment_method IS NOT NULL",
            name="ck_guests_paid_requires_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<Guest {self.guest_id} ({self.guest_of})>"


# Case-insensitive lookups used by search
Index("idx_guests_guest_id_lower", func.lower(Guest.guest_id))
Index("idx_guests_english_name_lower", func.lower(Guest.english_name))
Index("idx_guests_khmer_name_lower", func.lower(Guest.khmer_name))
# Active rows ordered by creation
Index(
    "idx_guests_search_active",
    Guest.is_duplicate,
    Guest.created_at,
    sqlite_where=text("is_duplicate = 0"),
)

# Refreshes updated_at for writes that do not set it themselves (e.g. manual SQL).
# '%' is doubled because DDL text goes through %-formatting.
event.listen(
    Guest.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS update_guests_timestamp "
        "AFTER UPDATE ON guests "
        "FOR EACH ROW WHEN NEW.updated_at IS OLD.updated_at "
        "BEGIN "
        "UPDATE guests SET updated_at = strftime('%%Y-%%m-%%d %%H:%%M:%%f000', 'now') "
        "WHERE guest_id = NEW.guest_id; "
        "END"
    ).execute_if(dialect="sqlite"),
)
