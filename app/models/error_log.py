"""
Error log model - diagnostic record of repository failures
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from app.core.db import Base
from app.models.guest import utcnow


class ErrorLog(Base):
    __tablename__ = "error_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    error_type = Column(String(100), nullable=False, index=True)
    error_message = Column(Text, nullable=False)
    stack_trace = Column(Text, nullable=True)

    # Request context, when the failure happened while serving one
    request_path = Column(String(500), nullable=True)
    request_method = Column(String(10), nullable=True)
    user_agent = Column(String(500), nullable=True)
    ip_address = Column(String(64), nullable=True)

    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    resolved = Column(Boolean, nullable=False, default=False)
