"""
Migration bookkeeping model, written by the external migration runner
"""

from sqlalchemy import Column, DateTime, String

from app.core.db import Base
from app.models.guest import utcnow


class Migration(Base):
    __tablename__ = "migrations"

    filename = Column(String(255), primary_key=True)
    applied_at = Column(DateTime, nullable=False, default=utcnow)
