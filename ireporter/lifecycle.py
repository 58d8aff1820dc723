"""
Report Lifecycle Engine
=======================

One engine for both report kinds. The kind picks the table and the
wording of messages; the rules are identical.

States:
    draft -> under-investigation | rejected | resolved

Rules:
- Only the owner or an admin may change or delete a report.
- Fields, location, media and deletion require status == draft. Admins
  bypass ownership, never the draft gate.
- Status changes are admin-only (enforced by the API dependency) and are
  accepted from any current status.
- A status change commits first, then hands its side effects (notification
  row, email) to the dispatcher. Their failures never reach the caller.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .auth import AuthContext
from .db.models import ReportKind, ReportStatus
from . import media
from .media import MediaFile, decode_media
from .errors import AuthRequired, Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)

TRANSITION_TARGETS = (
    ReportStatus.UNDER_INVESTIGATION,
    ReportStatus.REJECTED,
    ReportStatus.RESOLVED,
)

INVALID_STATUS_MESSAGE = (
    "Invalid status. Must be one of: "
    + ", ".join(s.value for s in TRANSITION_TARGETS)
)
NOT_OWNER_MESSAGE = "Access denied. You can only modify your own records."
MODIFY_BLOCKED_MESSAGE = "Cannot modify record that is under investigation, rejected, or resolved"
DELETE_BLOCKED_MESSAGE = "Cannot delete record that is under investigation, rejected, or resolved"

# (lowercase label, sentence-case label)
KIND_LABELS = {
    ReportKind.RED_FLAG: ("red-flag", "Red-flag"),
    ReportKind.INTERVENTION: ("intervention", "Intervention"),
}


def _parse_coordinate(value, name: str, low: float, high: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not low <= number <= high:
        raise ValidationError(f"{name} must be between {low:g} and {high:g}")
    return number


def parse_location(latitude, longitude) -> Dict[str, float]:
    """Both coordinates are required together"""
    if latitude is None or longitude is None or latitude == "" or longitude == "":
        raise ValidationError("Latitude and longitude are required fields")
    return {
        "latitude": _parse_coordinate(latitude, "Latitude", -90.0, 90.0),
        "longitude": _parse_coordinate(longitude, "Longitude", -180.0, 180.0),
    }


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def serialize_report(report) -> Dict[str, Any]:
    """Report row plus owner display fields; media lists decoded"""
    owner = getattr(report, "owner", None)
    status = getattr(report.status, "value", report.status)
    return {
        "id": report.id,
        "kind": ReportKind(report.kind).value,
        "user_id": report.user_id,
        "title": report.title,
        "description": report.description,
        "latitude": report.latitude,
        "longitude": report.longitude,
        "status": status,
        "images": decode_media(report.images),
        "videos": decode_media(report.videos),
        "created_at": report.created_at.isoformat() if report.created_at else None,
        "updated_at": report.updated_at.isoformat() if report.updated_at else None,
        "first_name": owner.first_name if owner else None,
        "last_name": owner.last_name if owner else None,
        "email": owner.email if owner else None,
    }


class ReportLifecycleEngine:
    """Lifecycle rules for one report kind, over an injected store and dispatcher"""

    def __init__(self, kind: ReportKind, store, dispatcher=None):
        self.kind = ReportKind(kind)
        self.store = store
        self.dispatcher = dispatcher
        self.label, self.title_label = KIND_LABELS[self.kind]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _result(self, report_id: int, message: str) -> Dict[str, Any]:
        return {"id": report_id, "message": message}

    @staticmethod
    def _require_auth(auth: Optional[AuthContext]) -> AuthContext:
        if auth is None or not auth.user_id:
            raise AuthRequired()
        return auth

    def _load(self, report_id: int):
        report = self.store.find(self.kind, report_id)
        if report is None:
            raise NotFound(f"{self.title_label} record not found")
        return report

    def _load_for_change(self, report_id: int, auth: Optional[AuthContext],
                         blocked_message: str = MODIFY_BLOCKED_MESSAGE):
        """Load -> authorize (owner or admin) -> gate (draft only)"""
        auth = self._require_auth(auth)
        report = self._load(report_id)

        if not auth.owns(report.user_id) and not auth.is_admin:
            logger.warning(
                f"User {auth.user_id} denied change to {self.label} {report_id} owned by {report.user_id}"
            )
            raise Forbidden(NOT_OWNER_MESSAGE)

        if report.status != ReportStatus.DRAFT:
            raise Forbidden(blocked_message)

        return report

    def _apply(self, report_id: int, fields: Dict[str, Any], failure_message: str) -> None:
        fields["updated_at"] = datetime.utcnow()
        self.store.update(self.kind, report_id, fields, failure_message=failure_message)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, report_id: int) -> Dict[str, Any]:
        """Any authenticated caller may read any single report"""
        return serialize_report(self._load(report_id))

    def list(self, auth: Optional[AuthContext]) -> List[Dict[str, Any]]:
        """Admins see every report; everyone else only their own. Newest first."""
        auth = self._require_auth(auth)
        if auth.is_admin:
            reports = self.store.find_all(self.kind)
        else:
            reports = self.store.find_all_by_owner(self.kind, auth.user_id)
        return [serialize_report(r) for r in reports]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(
        self,
        auth: Optional[AuthContext],
        title: Optional[str],
        description: Optional[str],
        latitude,
        longitude,
        files: Optional[List[MediaFile]] = None,
    ) -> Dict[str, Any]:
        auth = self._require_auth(auth)

        if _blank(title) or _blank(description):
            raise ValidationError("Title and description are required fields")
        location = parse_location(latitude, longitude)

        fields = {
            "user_id": auth.user_id,
            "title": title.strip(),
            "description": description.strip(),
            "status": ReportStatus.DRAFT,
            **location,
            **media.initial(files or []),
        }
        report_id = self.store.insert(self.kind, fields)
        logger.info(f"User {auth.user_id} created {self.label} {report_id}")
        return self._result(report_id, f"Created {self.label} record")

    def update_comment(self, report_id: int, auth: Optional[AuthContext],
                       description: Optional[str]) -> Dict[str, Any]:
        self._load_for_change(report_id, auth)
        if _blank(description):
            raise ValidationError("Description is required")

        self._apply(report_id, {"description": description.strip()}, "Failed to update comment")
        return self._result(report_id, f"Updated {self.label} record's comment")

    def update_location(self, report_id: int, auth: Optional[AuthContext],
                        latitude, longitude) -> Dict[str, Any]:
        self._load_for_change(report_id, auth)
        location = parse_location(latitude, longitude)

        self._apply(report_id, location, "Failed to update location")
        return self._result(report_id, f"Updated {self.label} record's location")

    def update(
        self,
        report_id: int,
        auth: Optional[AuthContext],
        title: Optional[str] = None,
        description: Optional[str] = None,
        latitude=None,
        longitude=None,
        files: Optional[List[MediaFile]] = None,
    ) -> Dict[str, Any]:
        """
        Full update. Provided fields are applied; a location needs both
        coordinates. A non-empty upload batch replaces the media lists.

        A blank or whitespace-only field counts as not provided, the same
        way an empty form field reaches us as None.
        """
        report = self._load_for_change(report_id, auth)

        if _blank(latitude):
            latitude = None
        if _blank(longitude):
            longitude = None

        fields: Dict[str, Any] = {}
        if not _blank(title):
            fields["title"] = title.strip()
        if not _blank(description):
            fields["description"] = description.strip()
        if latitude is not None or longitude is not None:
            fields.update(parse_location(latitude, longitude))
        fields.update(media.replace(report, files or []))

        if fields:
            self._apply(report_id, fields, f"Failed to update {self.label} record")
        return self._result(report_id, f"Updated {self.label} record")

    def add_media(self, report_id: int, auth: Optional[AuthContext],
                  files: Optional[List[MediaFile]]) -> Dict[str, Any]:
        report = self._load_for_change(report_id, auth)
        fields = media.append(report, files or [])

        self._apply(report_id, fields, "Failed to add media")
        return self._result(report_id, f"Added media to {self.label} record")

    def delete(self, report_id: int, auth: Optional[AuthContext]) -> Dict[str, Any]:
        self._load_for_change(report_id, auth, blocked_message=DELETE_BLOCKED_MESSAGE)

        self.store.delete(self.kind, report_id)
        logger.info(f"{self.title_label} {report_id} deleted")
        return self._result(report_id, f"{self.title_label} record has been deleted")

    def transition_status(self, report_id: int, new_status) -> Dict[str, Any]:
        """
        Admin status change. Validation happens before any read; the write
        is unconditional with respect to the current status.
        """
        try:
            target = ReportStatus(getattr(new_status, "value", new_status))
        except ValueError:
            raise ValidationError(INVALID_STATUS_MESSAGE)
        if target not in TRANSITION_TARGETS:
            raise ValidationError(INVALID_STATUS_MESSAGE)

        report = self._load(report_id)
        old_status = report.status
        owner_id = report.user_id
        title = report.title

        fields = {"status": target, "updated_at": datetime.utcnow()}
        affected = self.store.update(self.kind, report_id, fields, failure_message="Failed to update status")
        if affected == 0:
            raise NotFound(f"{self.title_label} record not found")

        logger.info(
            f"{self.title_label} {report_id} status {getattr(old_status, 'value', old_status)} -> {target.value}"
        )

        if self.dispatcher is not None:
            try:
                self.dispatcher.notify_status_change(
                    kind=self.kind,
                    report_id=report_id,
                    owner_id=owner_id,
                    report_title=title,
                    old_status=old_status,
                    new_status=target,
                )
            except Exception as e:
                logger.error(f"Status notification for {self.label} {report_id} failed: {e}")

        return self._result(report_id, f"Updated {self.label} record status")
