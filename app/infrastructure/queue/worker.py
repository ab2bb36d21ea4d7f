"""Worker pool draining the dispatch queue.

This module provides the threads that pull jobs from a DispatchQueue.
Delivery logic is implemented via the JobProcessor protocol.
"""

import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.queue.models import JobOutcome, JobResult, JobStatus, QueueJob
from infrastructure.queue.rate_limiter import RateLimiter
from infrastructure.queue.store import DispatchQueue

logger = get_module_logger()


class JobProcessor(Protocol):
    """Protocol for the logic run for every claimed job.

    Example:
        class NotificationJobProcessor:
            def process_job(self, job: QueueJob) -> JobResult:
                outcome = deliver(job.notification_id, job.attempt, job.max_attempts)
                if outcome.success:
                    return JobResult.succeeded()
                return JobResult.retry(outcome.error)
    """

    def process_job(self, job: QueueJob) -> JobResult:
        """Process one attempt of a job.

        Args:
            job: The claimed job, with `attempt` set to the current attempt number

        Returns:
            JobResult telling the queue to complete or fail the job
        """
        ...


class DeliveryWorkerPool:
    """Fixed-size pool of threads looping over claim, process, complete/fail.

    The queue's claim lease guarantees that a job is processed by a single
    thread at a time. A shared rate limiter caps attempts across all threads.
    Finished jobs are removed once older than their retention window, at
    most once per `clean_interval_seconds`.

    Attributes:
        queue: DispatchQueue to drain
        processor: JobProcessor invoked for each claimed job
        concurrency: Number of worker threads
        rate_limiter: Optional limiter applied to every attempt
        lease_seconds: Claim lease handed to the queue
        poll_interval_seconds: Idle wait when no job is due
        completed_retention_seconds: Age at which completed jobs are removed
            (None keeps them)
        failed_retention_seconds: Age at which failed jobs are removed
            (None keeps them)
        clean_interval_seconds: Minimum time between retention sweeps
    """

    def __init__(
        self,
        queue: DispatchQueue,
        processor: JobProcessor,
        concurrency: int = 10,
        rate_limiter: Optional[RateLimiter] = None,
        lease_seconds: int = 300,
        poll_interval_seconds: float = 0.5,
        name: str = "delivery-worker",
        completed_retention_seconds: Optional[float] = None,
        failed_retention_seconds: Optional[float] = None,
        clean_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.queue = queue
        self.processor = processor
        self.concurrency = concurrency
        self.rate_limiter = rate_limiter
        self.lease_seconds = lease_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.completed_retention_seconds = completed_retention_seconds
        self.failed_retention_seconds = failed_retention_seconds
        self.clean_interval_seconds = clean_interval_seconds
        self.name = name
        self.instance_id = uuid.uuid4().hex[:8]
        self.log = logger.bind(component="delivery_worker_pool", pool=name)

        self._threads: List[threading.Thread] = []
        self._stop_event = threading.Event()
        self._stats_lock = threading.Lock()
        self._clock = clock
        self._clean_lock = threading.Lock()
        self._last_clean: Optional[float] = None
        self._stats = {
            "processed": 0,
            "completed": 0,
            "retried": 0,
            "exhausted": 0,
            "ignored": 0,
            "errors": 0,
        }

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Start the worker threads. Calling start on a running pool is a no-op."""
        if self.is_running:
            self.log.warning("worker_pool_already_running")
            return

        self._stop_event = threading.Event()
        self._threads = []
        for index in range(self.concurrency):
            worker_id = f"{self.name}-{self.instance_id}-{index + 1}"
            thread = threading.Thread(
                target=self._run, args=(worker_id,), name=worker_id, daemon=True
            )
            self._threads.append(thread)
            thread.start()

        self.log.info(
            "worker_pool_started",
            concurrency=self.concurrency,
            lease_seconds=self.lease_seconds,
        )

    def stop(self, grace_seconds: float = 30.0) -> bool:
        """Stop claiming jobs and wait for in-flight attempts.

        Threads still busy at the deadline are abandoned; their jobs stay
        claimed until the lease expires and are then handed out again.

        Returns:
            True when every thread finished within the grace period.
        """
        self._stop_event.set()
        deadline = time.monotonic() + grace_seconds

        for thread in self._threads:
            remaining = max(0.0, deadline - time.monotonic())
            thread.join(timeout=remaining)

        alive = [thread.name for thread in self._threads if thread.is_alive()]
        if alive:
            self.log.warning(
                "worker_pool_stop_grace_exceeded",
                grace_seconds=grace_seconds,
                abandoned_threads=alive,
            )
            return False

        self.log.info("worker_pool_stopped", **self.stats())
        return True

    def run_once(self, worker_id: Optional[str] = None) -> Optional[JobOutcome]:
        """Claim and process a single job.

        Returns:
            The JobOutcome, or None when no job was due.
        """
        worker_id = worker_id or f"{self.name}-{self.instance_id}-sync"
        job = self.queue.claim(worker_id, self.lease_seconds)
        if job is None:
            return None

        if self.rate_limiter is not None and not self.rate_limiter.acquire(
            stop_event=self._stop_event
        ):
            # Stopping: leave the claim to lapse so the job is redelivered
            self.log.info(
                "dispatch_job_released_on_shutdown",
                job_id=job.id,
                worker_id=worker_id,
            )
            return None

        return self._handle(job, worker_id)

    def drain(self, max_jobs: Optional[int] = None) -> Dict[str, int]:
        """Process due jobs synchronously until none is left.

        Args:
            max_jobs: Optional cap on the number of jobs processed

        Returns:
            Counts of outcomes for this call.
        """
        counts = {outcome.value: 0 for outcome in JobOutcome}
        processed = 0
        while max_jobs is None or processed < max_jobs:
            outcome = self.run_once()
            if outcome is None:
                break
            counts[outcome.value] += 1
            processed += 1
        counts["processed"] = processed
        self._clean_if_due()
        return counts

    def clean_finished(self) -> Dict[str, int]:
        """Remove finished jobs older than their retention window.

        Returns:
            Number of jobs removed per status.
        """
        removed = {}
        for status, retention in (
            (JobStatus.COMPLETED, self.completed_retention_seconds),
            (JobStatus.FAILED, self.failed_retention_seconds),
        ):
            if retention is not None:
                removed[status.value] = self.queue.clean(retention, status=status)
        if any(removed.values()):
            self.log.info("dispatch_jobs_cleaned", **removed)
        return removed

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            stats = dict(self._stats)
        stats["threads_alive"] = sum(1 for thread in self._threads if thread.is_alive())
        return stats

    def _run(self, worker_id: str) -> None:
        log = self.log.bind(worker_id=worker_id)
        log.debug("worker_thread_started")

        while not self._stop_event.is_set():
            try:
                self._clean_if_due()
                outcome = self.run_once(worker_id)
            except Exception as e:
                # Queue backend unavailable; back off and keep polling
                log.error("worker_loop_error", error=str(e), exc_info=True)
                outcome = None

            if outcome is None:
                self._stop_event.wait(self.poll_interval_seconds)

        log.debug("worker_thread_stopped")

    def _handle(self, job: QueueJob, worker_id: str) -> JobOutcome:
        log = self.log.bind(
            worker_id=worker_id,
            job_id=job.id,
            notification_id=job.notification_id,
            attempt=job.attempt,
        )
        log.info("dispatch_job_processing", max_attempts=job.max_attempts)

        try:
            result = self.processor.process_job(job)
        except Exception as e:
            log.error("dispatch_job_processor_exception", error=str(e), exc_info=True)
            self._increment("errors")
            result = JobResult.retry(f"Processor exception: {e}")

        if result.success:
            outcome = self.queue.complete(job.id, worker_id)  # type: ignore
        else:
            outcome = self.queue.fail(
                job.id, result.error or "Delivery failed", worker_id  # type: ignore
            )

        self._increment("processed")
        self._increment(
            {
                JobOutcome.COMPLETED: "completed",
                JobOutcome.RETRY_SCHEDULED: "retried",
                JobOutcome.EXHAUSTED: "exhausted",
                JobOutcome.IGNORED: "ignored",
            }[outcome]
        )
        log.info("dispatch_job_processed", outcome=outcome.value)
        return outcome

    def _increment(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def _clean_if_due(self) -> None:
        with self._clean_lock:
            now = self._clock()
            if (
                self._last_clean is not None
                and now - self._last_clean < self.clean_interval_seconds
            ):
                return
            self._last_clean = now
        self.clean_finished()
