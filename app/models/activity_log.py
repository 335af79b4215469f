"""
Activity log model - append-only audit trail of guest-affecting events
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.core.enums import ActivityAction, enum_values
from app.models.guest import utcnow


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # NULL for events that are not about a single guest (searches)
    guest_id = Column(
        String(100),
        ForeignKey("guests.guest_id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    action = Column(String(32), nullable=False, index=True)
    old_amount_khr = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    new_amount_khr = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    old_amount_usd = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    new_amount_usd = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Relationships
    guest = relationship("Guest", back_populates="activity_logs")

    __table_args__ = (
        CheckConstraint(
            "action IN ({})".format(", ".join(f"'{a}'" for a in enum_values(ActivityAction))),
            name="ck_activity_logs_action",
        ),
    )
