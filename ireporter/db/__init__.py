"""
Database Package - SQLAlchemy
=============================

Relational store for users, reports and notifications.
"""

from .models import (
    Base,
    User, RedFlag, Intervention, Notification,
    ReportKind, ReportStatus, REPORT_MODELS,
)
from .session import get_db, get_db_session, init_db, get_engine, reset_engine

__all__ = [
    # Base
    "Base",
    # Models
    "User", "RedFlag", "Intervention", "Notification", "REPORT_MODELS",
    # Enums
    "ReportKind", "ReportStatus",
    # Session
    "get_db", "get_db_session", "init_db", "get_engine", "reset_engine",
]
