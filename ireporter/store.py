"""
Record Store
============

Per-kind access to the report tables. Every method is one round-trip
(plus commit for writes); there is no transaction spanning the engine's
read-check-write sequence.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .db.models import REPORT_MODELS, ReportKind, User
from .errors import Internal

logger = logging.getLogger(__name__)


class RecordStore:
    """Report persistence bound to one database session"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def model_for(kind: ReportKind):
        return REPORT_MODELS[ReportKind(kind)]

    def _fail(self, action: str, kind: ReportKind, message: str) -> Internal:
        self.db.rollback()
        logger.exception(f"Store failure during {action} on {ReportKind(kind).value}")
        return Internal(message)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find(self, kind: ReportKind, report_id: int):
        """Report with its owner loaded, or None"""
        model = self.model_for(kind)
        try:
            return (
                self.db.query(model)
                .options(joinedload(model.owner))
                .filter(model.id == report_id)
                .first()
            )
        except SQLAlchemyError:
            raise self._fail("find", kind, "Database error")

    def find_all(self, kind: ReportKind) -> List[Any]:
        model = self.model_for(kind)
        try:
            return (
                self.db.query(model)
                .options(joinedload(model.owner))
                .order_by(model.created_at.desc(), model.id.desc())
                .all()
            )
        except SQLAlchemyError:
            raise self._fail("find_all", kind, "Database error")

    def find_all_by_owner(self, kind: ReportKind, owner_id: int) -> List[Any]:
        model = self.model_for(kind)
        try:
            return (
                self.db.query(model)
                .options(joinedload(model.owner))
                .filter(model.user_id == owner_id)
                .order_by(model.created_at.desc(), model.id.desc())
                .all()
            )
        except SQLAlchemyError:
            raise self._fail("find_all_by_owner", kind, "Database error")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, kind: ReportKind, fields: Dict[str, Any]) -> int:
        model = self.model_for(kind)
        try:
            record = model(**fields)
            self.db.add(record)
            self.db.commit()
            return record.id
        except SQLAlchemyError:
            raise self._fail("insert", kind, f"Failed to create {ReportKind(kind).value} record")

    def update(self, kind: ReportKind, report_id: int, fields: Dict[str, Any],
               failure_message: str = "Failed to update record") -> int:
        """Returns the number of rows changed"""
        model = self.model_for(kind)
        try:
            affected = (
                self.db.query(model)
                .filter(model.id == report_id)
                .update(fields, synchronize_session="fetch")
            )
            self.db.commit()
            return affected
        except SQLAlchemyError:
            raise self._fail("update", kind, failure_message)

    def delete(self, kind: ReportKind, report_id: int) -> int:
        model = self.model_for(kind)
        try:
            affected = (
                self.db.query(model)
                .filter(model.id == report_id)
                .delete(synchronize_session="fetch")
            )
            self.db.commit()
            return affected
        except SQLAlchemyError:
            raise self._fail("delete", kind, f"Failed to delete {ReportKind(kind).value} record")

    def owner_email(self, user_id: int) -> Optional[str]:
        """Contact address for status emails"""
        user = self.db.query(User).filter(User.id == user_id).first()
        return user.email if user else None
