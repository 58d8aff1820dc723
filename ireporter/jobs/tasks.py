"""
Job Tasks
=========

Side effects of an admin status change. Each task opens its own database
session and raises on failure so the queue's retry policy applies; the
report transition that triggered them has already committed.
"""

import logging
from typing import Dict, Any

from ..email_utils import kind_display_name, send_status_change_email

logger = logging.getLogger(__name__)

STATUS_NOTIFICATION_TITLE = "Report Status Updated"
STATUS_NOTIFICATION_TYPE = "status_update"


def status_change_message(kind: str, report_title: str, new_status: str) -> str:
    return f'Your {kind_display_name(kind)} "{report_title}" status changed to {new_status}'


def task_create_notification(
    kind: str,
    report_id: int,
    owner_id: int,
    report_title: str,
    old_status: str,
    new_status: str,
) -> Dict[str, Any]:
    """Write the in-app notification row for the report owner"""
    from ..db.session import get_db_session
    from ..notifications import NotificationService

    with get_db_session() as db:
        notification = NotificationService(db).create_notification(
            user_id=owner_id,
            title=STATUS_NOTIFICATION_TITLE,
            message=status_change_message(kind, report_title, new_status),
            type=STATUS_NOTIFICATION_TYPE,
            related_entity_type=kind,
            related_entity_id=report_id,
        )
        notification_id = notification.id

    logger.info(f"Notification {notification_id} created for user {owner_id} ({kind} {report_id}: {old_status} -> {new_status})")
    return {"notification_id": notification_id}


def task_send_status_email(
    kind: str,
    report_id: int,
    owner_id: int,
    report_title: str,
    old_status: str,
    new_status: str,
) -> Dict[str, Any]:
    """Email the report owner (and the admin copy) about the status change"""
    from ..db.session import get_db_session
    from ..store import RecordStore

    with get_db_session() as db:
        to_email = RecordStore(db).owner_email(owner_id)

    if not to_email:
        logger.warning(f"No email address for user {owner_id}; skipping status email")
        return {"sent": False, "reason": "no_email"}

    sent = send_status_change_email(
        to_email=to_email,
        kind=kind,
        report_title=report_title,
        old_status=old_status,
        new_status=new_status,
        report_id=report_id,
    )
    if not sent:
        raise RuntimeError(f"Status email to {to_email} was not sent")

    return {"sent": True, "to": to_email}
