"""
Notification Tests
==================

Dispatcher fan-out, the two status-change jobs, and notification rows.
"""

import asyncio
import os
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi import BackgroundTasks

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ireporter.config import Settings
from ireporter.db.models import Notification, ReportKind, ReportStatus, User
from ireporter.jobs.queue import enqueue_job, requeue_failed_jobs
from ireporter.jobs.worker import run_worker_cli
from ireporter.jobs.tasks import (
    STATUS_NOTIFICATION_TITLE,
    STATUS_NOTIFICATION_TYPE,
    status_change_message,
    task_create_notification,
    task_send_status_email,
)
from ireporter.notifications import NotificationDispatcher, NotificationService, serialize_notification


@pytest.fixture
def sqlalchemy_db(tmp_path):
    """Configure a fresh SQLAlchemy SQLite DB for tests."""
    from ireporter.db.session import reset_engine, init_db

    old_db_url = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = f"sqlite:///{tmp_path / 'notifications.db'}"
    reset_engine()
    init_db()

    yield

    if old_db_url is not None:
        os.environ["DATABASE_URL"] = old_db_url
    else:
        os.environ.pop("DATABASE_URL", None)
    reset_engine()


@pytest.fixture
def owner_id(sqlalchemy_db):
    from ireporter.db.session import get_db_session

    with get_db_session() as db:
        user = User(first_name="Ada", last_name="Owner", email="ada@example.com", password="x")
        db.add(user)
        db.flush()
        return user.id


def _payload(owner_id):
    return dict(
        kind="red-flag",
        report_id=7,
        owner_id=owner_id,
        report_title="Bribe at checkpoint",
        old_status="draft",
        new_status="resolved",
    )


# =============================================================================
# Dispatcher
# =============================================================================

class TestDispatcher:

    def test_enqueues_two_independent_jobs(self):
        calls = []

        def fake_enqueue(func, **kwargs):
            calls.append((func, kwargs))
            return {"status": "queued"}

        NotificationDispatcher(enqueue=fake_enqueue).notify_status_change(
            kind=ReportKind.INTERVENTION,
            report_id=3,
            owner_id=9,
            report_title="Pothole",
            old_status=ReportStatus.DRAFT,
            new_status=ReportStatus.UNDER_INVESTIGATION,
        )

        assert [func for func, _ in calls] == [task_create_notification, task_send_status_email]
        for _, kwargs in calls:
            assert kwargs["kind"] == "intervention"
            assert kwargs["old_status"] == "draft"
            assert kwargs["new_status"] == "under-investigation"

    def test_one_job_failing_does_not_stop_the_other(self):
        calls = []

        def flaky_enqueue(func, **kwargs):
            calls.append(func)
            if func is task_create_notification:
                raise ConnectionError("redis down")
            return {"status": "failed", "error": "smtp down"}

        NotificationDispatcher(enqueue=flaky_enqueue).notify_status_change(
            kind="red-flag", report_id=1, owner_id=1, report_title="t",
            old_status="draft", new_status="rejected",
        )
        assert calls == [task_create_notification, task_send_status_email]

    def test_slow_email_runs_after_status_change_returns(self, owner_id):
        background = BackgroundTasks()
        sent = []

        def slow_email(**kwargs):
            time.sleep(1.5)
            sent.append(kwargs["to_email"])
            return True

        with patch("ireporter.jobs.queue.get_queue", return_value=None), \
                patch("ireporter.jobs.tasks.send_status_change_email", side_effect=slow_email):
            started = time.monotonic()
            NotificationDispatcher(background_tasks=background).notify_status_change(**_payload(owner_id))
            elapsed = time.monotonic() - started

            assert elapsed < 1.0
            assert sent == []
            assert len(background.tasks) == 2

            asyncio.run(background())

        assert sent == ["ada@example.com"]

        from ireporter.db.session import get_db_session
        with get_db_session() as db:
            assert db.query(Notification).filter_by(user_id=owner_id).count() == 1

    def test_status_route_dispatcher_uses_request_background_tasks(self):
        from ireporter.api_reports import get_notification_dispatcher

        background = BackgroundTasks()
        with patch("ireporter.jobs.queue.get_queue", return_value=None):
            get_notification_dispatcher(background).notify_status_change(
                kind="intervention", report_id=2, owner_id=5, report_title="Flooded road",
                old_status="draft", new_status="resolved",
            )

        assert [task.args[0].__name__ for task in background.tasks] == ["_run_sync", "_run_sync"]


# =============================================================================
# Jobs
# =============================================================================

class TestStatusJobs:

    def test_message_wording(self):
        assert status_change_message("red-flag", "Bribe", "resolved") == (
            'Your Red Flag Report "Bribe" status changed to resolved'
        )
        assert status_change_message("intervention", "Pothole", "rejected") == (
            'Your Intervention Request "Pothole" status changed to rejected'
        )

    def test_create_notification_row(self, owner_id):
        from ireporter.db.session import get_db_session

        result = task_create_notification(**_payload(owner_id))
        assert result["notification_id"]

        with get_db_session() as db:
            row = db.query(Notification).one()
            assert row.user_id == owner_id
            assert row.title == STATUS_NOTIFICATION_TITLE
            assert row.type == STATUS_NOTIFICATION_TYPE
            assert row.related_entity_type == "red-flag"
            assert row.related_entity_id == 7
            assert row.is_read is False
            assert "status changed to resolved" in row.message

    def test_status_email_goes_to_owner(self, owner_id):
        with patch("ireporter.jobs.tasks.send_status_change_email", return_value=True) as send:
            result = task_send_status_email(**_payload(owner_id))

        assert result == {"sent": True, "to": "ada@example.com"}
        assert send.call_args.kwargs["to_email"] == "ada@example.com"
        assert send.call_args.kwargs["new_status"] == "resolved"

    def test_status_email_failure_raises_for_retry(self, owner_id):
        with patch("ireporter.jobs.tasks.send_status_change_email", return_value=False):
            with pytest.raises(RuntimeError):
                task_send_status_email(**_payload(owner_id))

    def test_status_email_skipped_for_unknown_owner(self, sqlalchemy_db):
        with patch("ireporter.jobs.tasks.send_status_change_email") as send:
            result = task_send_status_email(**_payload(424242))
        assert result["sent"] is False
        send.assert_not_called()


class TestEnqueueFallback:

    def test_runs_inline_without_queue(self):
        with patch("ireporter.jobs.queue.get_queue", return_value=None):
            result = enqueue_job(lambda x: x * 2, 21)
        assert result["status"] == "done"
        assert result["result"] == 42

    def test_inline_failure_is_reported_not_raised(self):
        def boom():
            raise ValueError("nope")

        with patch("ireporter.jobs.queue.get_queue", return_value=None):
            result = enqueue_job(boom)
        assert result["status"] == "failed"
        assert "nope" in result["error"]

    def test_enqueues_with_retry_policy_when_queue_configured(self):
        queue = MagicMock()
        queue.name = "notifications"
        queue.enqueue.return_value.id = "job-1"
        queue.enqueue.return_value.get_status.return_value = "queued"

        with patch("ireporter.jobs.queue.get_queue", return_value=queue):
            result = enqueue_job(task_create_notification, kind="red-flag", report_id=1, retry=2)

        assert result["job_id"] == "job-1"
        assert result["queue"] == "notifications"
        kwargs = queue.enqueue.call_args.kwargs
        assert kwargs["retry"].max == 2
        assert kwargs["kind"] == "red-flag"

    def test_unreachable_redis_runs_inline(self):
        queue = MagicMock()
        queue.enqueue.side_effect = ConnectionError("redis down")

        with patch("ireporter.jobs.queue.get_queue", return_value=queue):
            result = enqueue_job(lambda: "ran")
        assert result == {"job_id": "sync", "status": "done", "result": "ran"}

    def test_defers_without_queue_when_scheduler_given(self):
        scheduled = []
        ran = []

        with patch("ireporter.jobs.queue.get_queue", return_value=None):
            result = enqueue_job(ran.append, "x", defer=lambda fn, *a: scheduled.append((fn, a)))

        assert result == {"job_id": "deferred", "status": "deferred"}
        assert ran == []
        fn, args = scheduled[0]
        assert fn(*args) == {"job_id": "sync", "status": "done", "result": None}
        assert ran == ["x"]

    def test_unreachable_redis_defers_when_scheduler_given(self):
        queue = MagicMock()
        queue.enqueue.side_effect = ConnectionError("redis down")
        scheduled = []

        with patch("ireporter.jobs.queue.get_queue", return_value=queue):
            result = enqueue_job(lambda: "ran", defer=lambda fn, *a: scheduled.append((fn, a)))

        assert result["status"] == "deferred"
        fn, args = scheduled[0]
        assert fn(*args)["result"] == "ran"

    def test_requeue_failed_jobs(self):
        queue = MagicMock()
        queue.failed_job_registry.get_job_ids.return_value = ["a", "b"]

        with patch("ireporter.jobs.queue.get_queue", return_value=queue):
            assert requeue_failed_jobs() == 2
        assert queue.failed_job_registry.requeue.call_count == 2

    def test_requeue_without_queue(self):
        with patch("ireporter.jobs.queue.get_queue", return_value=None):
            assert requeue_failed_jobs() == 0


class TestWorkerCli:

    def test_worker_not_started_without_redis(self):
        with patch("ireporter.jobs.worker.get_settings", return_value=Settings(redis_url=None)), \
                patch("ireporter.jobs.worker.Worker") as worker:
            assert run_worker_cli(["--burst"]) == 1
        worker.assert_not_called()

    def test_requeue_flag(self):
        with patch("ireporter.jobs.worker.requeue_failed_jobs", return_value=3) as requeue:
            assert run_worker_cli(["--requeue-failed", "-q", "mail"]) == 0
        requeue.assert_called_once_with("mail")


# =============================================================================
# Notification rows
# =============================================================================

class TestNotificationService:

    def _seed(self, owner_id, count=2):
        from ireporter.db.session import get_db_session

        with get_db_session() as db:
            service = NotificationService(db)
            for i in range(count):
                service.create_notification(owner_id, f"Title {i}", f"Message {i}")

    def test_list_newest_first(self, owner_id):
        from ireporter.db.session import get_db_session

        self._seed(owner_id)
        with get_db_session() as db:
            rows = NotificationService(db).list_for_user(owner_id)
            titles = [serialize_notification(n)["title"] for n in rows]
        assert titles == ["Title 1", "Title 0"]

    def test_mark_all_read(self, owner_id):
        from ireporter.db.session import get_db_session

        self._seed(owner_id, count=3)
        with get_db_session() as db:
            service = NotificationService(db)
            assert service.unread_count(owner_id) == 3
            assert service.mark_all_read(owner_id) == 3
            assert service.unread_count(owner_id) == 0

    def test_other_users_rows_untouched(self, owner_id):
        from ireporter.db.session import get_db_session

        self._seed(owner_id, count=1)
        with get_db_session() as db:
            assert NotificationService(db).list_for_user(owner_id + 1) == []
