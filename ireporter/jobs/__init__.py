"""
Job Queue Package
=================

Status-change side effects processed with Redis Queue (RQ), or inline
when no Redis is configured.
"""

from .queue import enqueue_job, requeue_failed_jobs
from .tasks import task_create_notification, task_send_status_email

__all__ = [
    # Queue management
    "enqueue_job", "requeue_failed_jobs",
    # Tasks
    "task_create_notification",
    "task_send_status_email",
]
