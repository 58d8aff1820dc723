"""
Notifications
=============

- NotificationDispatcher: hands status-change side effects to the job queue
  (or to BackgroundTasks without Redis) after the transition has committed.
  Never raises.
- NotificationService: notification rows (create, list, mark read).
"""

import logging
from typing import Callable, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from .db.models import Notification, ReportKind
from .jobs.queue import enqueue_job
from .jobs.tasks import task_create_notification, task_send_status_email

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Fire-and-forget side channel for admin status transitions.

    The notification row and the email are separate jobs so one failing
    (or being retried) never affects the other. Without a Redis queue the
    jobs go to `background_tasks` and run after the response is sent.
    """

    def __init__(self, enqueue: Callable = enqueue_job, background_tasks: Optional[BackgroundTasks] = None):
        self._enqueue = enqueue
        self._background_tasks = background_tasks

    def notify_status_change(
        self,
        kind: ReportKind,
        report_id: int,
        owner_id: int,
        report_title: str,
        old_status,
        new_status,
    ) -> None:
        payload = dict(
            kind=ReportKind(kind).value,
            report_id=report_id,
            owner_id=owner_id,
            report_title=report_title,
            old_status=getattr(old_status, "value", old_status),
            new_status=getattr(new_status, "value", new_status),
        )

        options = {}
        if self._background_tasks is not None:
            options["defer"] = self._background_tasks.add_task

        for task in (task_create_notification, task_send_status_email):
            try:
                outcome = self._enqueue(task, **options, **payload)
            except Exception as e:
                logger.error(f"Could not dispatch {task.__name__} for {payload['kind']} {report_id}: {e}")
                continue

            if isinstance(outcome, dict) and outcome.get("status") == "failed":
                logger.error(
                    f"{task.__name__} failed for {payload['kind']} {report_id}: {outcome.get('error')}"
                )


class NotificationService:
    """Notification rows for one database session"""

    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        user_id: int,
        title: str,
        message: str,
        type: str = "info",
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_for_user(self, user_id: int) -> List[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )

    def unread_count(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .count()
        )

    def mark_all_read(self, user_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .update({"is_read": True}, synchronize_session=False)
        )
        self.db.commit()
        return updated


def serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "is_read": bool(n.is_read),
        "related_entity_type": n.related_entity_type,
        "related_entity_id": n.related_entity_id,
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }
