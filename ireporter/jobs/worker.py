"""
RQ Worker
=========

Processes notification rows and status emails queued by admin status
changes. Only needed when REDIS_URL is set.

Run with:
    ireporter-worker              # listen on NOTIFICATION_QUEUE
    ireporter-worker --burst      # drain and exit
    ireporter-worker --requeue-failed
"""

import argparse
import logging
from typing import List, Optional

from redis import Redis
from rq import Worker

from ..config import get_settings
from .queue import requeue_failed_jobs

logger = logging.getLogger(__name__)


def start_worker(queues: Optional[List[str]] = None, burst: bool = False) -> bool:
    """Run a worker until stopped (or until the queues drain, in burst mode)"""
    settings = get_settings()
    if not settings.redis_url:
        logger.error("REDIS_URL is not set; notification jobs run inline and no worker is needed")
        return False

    queues = queues or [settings.notification_queue]
    worker = Worker(queues, connection=Redis.from_url(settings.redis_url))

    logger.info(f"Worker listening on {', '.join(queues)}")
    worker.work(burst=burst)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="iReporter notification worker")
    parser.add_argument("--queues", "-q", nargs="+", default=None,
                        help="Queues to listen to (default: NOTIFICATION_QUEUE)")
    parser.add_argument("--burst", "-b", action="store_true",
                        help="Exit once the queues are empty")
    parser.add_argument("--requeue-failed", action="store_true",
                        help="Move failed jobs back onto the queue and exit")
    parser.add_argument("--log-level", "-l", default="INFO", help="Logging level")
    return parser


def run_worker_cli(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the worker"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    if args.requeue_failed:
        queue_name = args.queues[0] if args.queues else None
        print(f"Requeued {requeue_failed_jobs(queue_name)} job(s)")
        return 0

    return 0 if start_worker(queues=args.queues, burst=args.burst) else 1


if __name__ == "__main__":
    raise SystemExit(run_worker_cli())
