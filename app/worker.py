"""Standalone delivery worker process.

Runs the worker pool without the HTTP API. Use it with QUEUE_BACKEND=database
so that the API process enqueues and this process delivers.

Usage:
    cd app && python worker.py
"""

import signal
import threading

from dotenv import load_dotenv

load_dotenv()

from infrastructure.logging import configure_logging  # noqa: E402
from infrastructure.services import (  # noqa: E402
    get_database,
    get_delivery_worker,
    get_settings,
    get_template_repository,
    get_worker_pool,
)


def main() -> int:
    settings = get_settings()
    logger = configure_logging(settings.LOG_LEVEL, settings.is_production)

    if settings.queue.backend == "memory":
        logger.warning(
            "worker_memory_queue",
            message="In-memory queue is private to this process; nothing will be enqueued by the API",
        )

    database = get_database()
    if settings.database.auto_create:
        database.create_all()
    if settings.database.seed_templates:
        get_template_repository().seed_defaults()

    stop_requested = threading.Event()

    def _request_stop(signum, _frame):
        logger.info("worker_signal_received", signal=signal.Signals(signum).name)
        stop_requested.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    pool = get_worker_pool()
    pool.start()
    logger.info("worker_process_started", concurrency=settings.worker.concurrency)

    while not stop_requested.wait(timeout=1.0):
        pass

    stopped = pool.stop(grace_seconds=settings.worker.shutdown_grace_seconds)
    get_delivery_worker().shutdown(wait=False)
    database.dispose()
    logger.info("worker_process_stopped", clean=stopped, **pool.stats())
    return 0 if stopped else 1


if __name__ == "__main__":
    raise SystemExit(main())
