"""
Database models package
"""

from .guest import Guest
from .activity_log import ActivityLog
from .error_log import ErrorLog
from .migration import Migration

__all__ = ["Guest", "ActivityLog", "ErrorLog", "Migration"]
