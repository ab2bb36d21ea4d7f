"""Durable retrying job queue for notification delivery.

Architecture:
- QueueJob: A delivery job keyed by notification id
- JobOptions / BackoffPolicy: Attempt budget and exponential backoff per job
- DispatchQueue: Storage interface with in-memory and database implementations
- DeliveryWorkerPool: Threads looping over claim, process, complete/fail
- JobProcessor: Protocol for the delivery logic run per job
- RateLimiter: Sliding window shared by the pool threads

Usage:
    from infrastructure.queue import (
        DeliveryWorkerPool,
        JobOptions,
        create_dispatch_queue,
    )

    queue = create_dispatch_queue(settings)
    queue.enqueue(notification_id, JobOptions.from_settings(settings))

    pool = DeliveryWorkerPool(queue, processor, concurrency=10)
    pool.start()
"""

from infrastructure.queue.config import BackoffPolicy, JobOptions
from infrastructure.queue.models import (
    JobOutcome,
    JobResult,
    JobStatus,
    QueueJob,
    as_utc,
    utcnow,
)
from infrastructure.queue.rate_limiter import RateLimiter
from infrastructure.queue.store import DispatchQueue, InMemoryDispatchQueue
from infrastructure.queue.sql_store import DispatchJobRecord, SqlDispatchQueue
from infrastructure.queue.worker import DeliveryWorkerPool, JobProcessor
from infrastructure.queue.factory import create_dispatch_queue

__all__ = [
    # Models
    "QueueJob",
    "JobStatus",
    "JobOutcome",
    "JobResult",
    "as_utc",
    "utcnow",
    # Configuration
    "BackoffPolicy",
    "JobOptions",
    # Store
    "DispatchQueue",
    "InMemoryDispatchQueue",
    "SqlDispatchQueue",
    "DispatchJobRecord",
    # Worker
    "DeliveryWorkerPool",
    "JobProcessor",
    "RateLimiter",
    # Factory
    "create_dispatch_queue",
]
