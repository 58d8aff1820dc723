"""
SQLAlchemy Models for Database
==============================

Schema for the citizen-reporting backend:
- Users (citizens and administrators)
- Reports, one table per kind (red_flags, interventions) with identical columns
- Notifications produced by admin status changes

Supports both PostgreSQL/MySQL and SQLite via SQLAlchemy.
"""

import enum
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime, Enum, ForeignKey, Index
)
from sqlalchemy.orm import relationship, declarative_base, declared_attr

Base = declarative_base()


# =============================================================================
# ENUMS
# =============================================================================

class ReportKind(str, enum.Enum):
    """Report kinds; the kind selects a table, never behaviour"""
    RED_FLAG = "red-flag"
    INTERVENTION = "intervention"


class ReportStatus(str, enum.Enum):
    """Report lifecycle status"""
    DRAFT = "draft"
    UNDER_INVESTIGATION = "under-investigation"
    REJECTED = "rejected"
    RESOLVED = "resolved"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Registered user"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash
    phone = Column(String(50), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


# =============================================================================
# REPORTS
# =============================================================================

class ReportColumns:
    """Columns shared by every report table"""

    id = Column(Integer, primary_key=True, autoincrement=True)

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    status = Column(
        Enum(ReportStatus, values_callable=_enum_values, native_enum=False, length=32),
        default=ReportStatus.DRAFT,
        nullable=False,
    )
    # JSON-encoded filename lists; NULL means "no media"
    images = Column(Text, nullable=True)
    videos = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @declared_attr
    def owner(cls):
        return relationship("User")


class RedFlag(ReportColumns, Base):
    """Corruption report"""
    __tablename__ = "red_flags"
    kind = ReportKind.RED_FLAG

    __table_args__ = (
        Index("ix_red_flags_user_created", "user_id", "created_at"),
    )


class Intervention(ReportColumns, Base):
    """Infrastructure report"""
    __tablename__ = "interventions"
    kind = ReportKind.INTERVENTION

    __table_args__ = (
        Index("ix_interventions_user_created", "user_id", "created_at"),
    )


REPORT_MODELS = {
    ReportKind.RED_FLAG: RedFlag,
    ReportKind.INTERVENTION: Intervention,
}


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class Notification(Base):
    """In-app notification / created when an admin changes a report status"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), default="info", nullable=False)
    related_entity_type = Column(String(50), nullable=True)  # red-flag / intervention
    related_entity_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="notifications")

    __table_args__ = (
        Index("ix_notification_user_read", "user_id", "is_read"),
    )
