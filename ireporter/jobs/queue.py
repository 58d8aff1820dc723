"""
Job Queue Management
====================

Redis Queue (RQ) integration for side-effect jobs (notifications, email).

Without REDIS_URL (or when Redis refuses the job), jobs are handed to the
caller's `defer` scheduler, e.g. FastAPI BackgroundTasks, so they run after
the response; with no scheduler they run synchronously. Either way
enqueue_job never raises: failures come back in the returned status or
are logged by the deferred run.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, Callable

from redis import Redis
from rq import Queue, Retry

from ..config import get_settings

logger = logging.getLogger(__name__)


def get_redis_connection() -> Optional[Redis]:
    """Get Redis connection, or None when no queue is configured"""
    redis_url = get_settings().redis_url
    if not redis_url:
        return None
    return Redis.from_url(redis_url, socket_connect_timeout=2)


def get_queue(queue_name: Optional[str] = None) -> Optional[Queue]:
    """Get RQ queue by name"""
    conn = get_redis_connection()
    if conn is None:
        return None
    return Queue(queue_name or get_settings().notification_queue, connection=conn)


def enqueue_job(
    func: Callable,
    *args,
    queue_name: Optional[str] = None,
    job_id: Optional[str] = None,
    timeout: int = 120,
    retry: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
    defer: Optional[Callable] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Enqueue a job for async processing.

    Args:
        func: Function to execute
        *args: Positional arguments for function
        queue_name: Queue to use (default: settings.notification_queue)
        job_id: Optional custom job ID
        timeout: Job timeout in seconds
        retry: Number of retries on failure (default: settings.notification_retries)
        meta: Custom metadata for job
        defer: Scheduler for the no-queue fallback, e.g. BackgroundTasks.add_task.
            Given, the job runs after the caller returns instead of inline.
        **kwargs: Keyword arguments for function

    Returns:
        Dict with job_id and status
    """
    def _run_sync(reason: str) -> Dict[str, Any]:
        logger.info(f"Running job {func.__name__} synchronously ({reason})")
        try:
            result = func(*args, **kwargs)
            return {
                "job_id": job_id or "sync",
                "status": "done",
                "result": result
            }
        except Exception as e:
            logger.error(f"Synchronous job {func.__name__} failed: {e}")
            return {
                "job_id": job_id or "sync",
                "status": "failed",
                "error": str(e)
            }

    def _fallback(reason: str) -> Dict[str, Any]:
        if defer is None:
            return _run_sync(reason)
        logger.info(f"Deferring job {func.__name__} ({reason})")
        defer(_run_sync, reason)
        return {"job_id": job_id or "deferred", "status": "deferred"}

    queue = get_queue(queue_name)
    if queue is None:
        return _fallback("REDIS_URL not set")

    if retry is None:
        retry = get_settings().notification_retries
    retry_policy = Retry(max=retry, interval=[10, 30, 60]) if retry > 0 else None

    # Redis unreachable: fall back rather than lose the job
    try:
        job = queue.enqueue(
            func,
            *args,
            job_id=job_id,
            job_timeout=timeout,
            retry=retry_policy,
            meta=meta or {},
            **kwargs
        )
    except Exception as e:
        return _fallback(f"RQ enqueue failed: {e}")

    return {
        "job_id": job.id,
        "status": job.get_status(),
        "queue": queue.name,
        "enqueued_at": datetime.utcnow().isoformat()
    }


def requeue_failed_jobs(queue_name: Optional[str] = None, max_jobs: int = 100) -> int:
    """
    Put failed notification jobs back on the queue.

    Retries are exhausted by the time a job lands in the failed registry;
    this is the manual recovery path (`ireporter-worker --requeue-failed`).
    """
    queue = get_queue(queue_name)
    if queue is None:
        return 0

    registry = queue.failed_job_registry
    requeued = 0
    for failed_id in registry.get_job_ids()[:max_jobs]:
        try:
            registry.requeue(failed_id)
            requeued += 1
        except Exception as e:
            logger.warning(f"Could not requeue job {failed_id}: {e}")

    logger.info(f"Requeued {requeued} failed job(s) on {queue.name}")
    return requeued
