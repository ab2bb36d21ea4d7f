"""Dispatch queue storage.

This module provides the queue interface and its in-memory implementation.
The protocol-based design allows for multiple storage backends (in-memory,
relational database) while keeping claim and backoff semantics identical.
"""

import dataclasses
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.queue.config import JobOptions
from infrastructure.queue.models import (
    JobOutcome,
    JobStatus,
    QueueJob,
    utcnow,
)

logger = get_module_logger()

Clock = Callable[[], datetime]


class DispatchQueue(Protocol):
    """Storage interface for delivery jobs.

    Implementations must hand each job to at most one worker at a time: a
    claim holds the job until it is completed, failed, or its lease expires.
    Delivery is at-least-once; a job whose lease expired is handed out again.

    Methods:
        enqueue: Add a job for a notification (idempotent while a job is open)
        claim: Atomically take the next due job
        complete: Mark a claimed job as processed
        fail: Record a failed attempt and reschedule or exhaust the job
        get_stats: Counts per job state
        pause/resume/is_paused: Stop and restart handing out jobs
        drain: Remove jobs that are waiting to run
        clean: Purge old terminal jobs
    """

    def enqueue(self, notification_id: str, options: Optional[JobOptions] = None) -> str:
        """Add a job for `notification_id` and return the job id.

        If an open (waiting or active) job already exists for the
        notification, its id is returned and nothing is added.
        """
        ...

    def claim(self, worker_id: str, lease_seconds: int) -> Optional[QueueJob]:
        """Claim the next due job, or return None when nothing is due."""
        ...

    def complete(self, job_id: str, worker_id: Optional[str] = None) -> JobOutcome:
        """Mark a job as completed."""
        ...

    def fail(
        self, job_id: str, error: str, worker_id: Optional[str] = None
    ) -> JobOutcome:
        """Record a failed attempt.

        Returns RETRY_SCHEDULED with next_run_at pushed out by the job's
        backoff policy, or EXHAUSTED once max_attempts attempts were made.
        """
        ...

    def get(self, job_id: str) -> Optional[QueueJob]:
        ...

    def get_stats(self) -> Dict[str, int]:
        """Return counts of waiting, active, completed, failed, delayed and total jobs."""
        ...

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def is_paused(self) -> bool:
        ...

    def drain(self) -> int:
        """Remove every waiting job and return how many were removed."""
        ...

    def clean(
        self, older_than_seconds: float, status: JobStatus = JobStatus.COMPLETED
    ) -> int:
        """Remove terminal jobs finished more than `older_than_seconds` ago."""
        ...


class InMemoryDispatchQueue:
    """In-memory implementation of DispatchQueue.

    Thread-safe queue with claim leases, per-job exponential backoff and
    per-notification deduplication of open jobs.

    This implementation is suitable for single-instance deployments, local
    development and tests. Jobs are lost when the process exits; use the
    database backend when jobs must survive restarts.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._jobs: Dict[str, QueueJob] = {}
        self._open_by_notification: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._paused = False
        self._clock = clock

    def enqueue(self, notification_id: str, options: Optional[JobOptions] = None) -> str:
        options = options or JobOptions()
        with self._lock:
            existing_id = self._open_by_notification.get(notification_id)
            if existing_id is not None:
                logger.info(
                    "dispatch_job_deduplicated",
                    notification_id=notification_id,
                    job_id=existing_id,
                )
                return existing_id

            now = self._clock()
            job = QueueJob(
                notification_id=notification_id,
                max_attempts=options.max_attempts,
                backoff=options.backoff,
                id=str(uuid.uuid4()),
                next_run_at=now + timedelta(seconds=options.delay_seconds),
                created_at=now,
                updated_at=now,
            )
            self._jobs[job.id] = job
            self._open_by_notification[notification_id] = job.id

            logger.info(
                "dispatch_job_enqueued",
                job_id=job.id,
                notification_id=notification_id,
                max_attempts=job.max_attempts,
            )
            return job.id

    def claim(self, worker_id: str, lease_seconds: int) -> Optional[QueueJob]:
        with self._lock:
            if self._paused:
                return None

            now = self._clock()
            candidates = sorted(
                (job for job in self._jobs.values() if self._is_due(job, now)),
                key=lambda job: job.next_run_at,
            )
            if not candidates:
                return None

            job = candidates[0]
            if job.status == JobStatus.ACTIVE:
                logger.warning(
                    "dispatch_job_lease_expired",
                    job_id=job.id,
                    notification_id=job.notification_id,
                    previous_worker=job.claimed_by,
                )

            job.status = JobStatus.ACTIVE
            job.claimed_by = worker_id
            job.lease_expires_at = now + timedelta(seconds=lease_seconds)
            job.updated_at = now

            logger.debug(
                "dispatch_job_claimed",
                job_id=job.id,
                worker=worker_id,
                attempt=job.attempt,
            )
            return dataclasses.replace(job)

    def complete(self, job_id: str, worker_id: Optional[str] = None) -> JobOutcome:
        with self._lock:
            job = self._owned_job(job_id, worker_id)
            if job is None:
                return JobOutcome.IGNORED

            now = self._clock()
            job.attempts_made += 1
            job.status = JobStatus.COMPLETED
            job.claimed_by = None
            job.lease_expires_at = None
            job.updated_at = now
            job.finished_at = now
            self._open_by_notification.pop(job.notification_id, None)

            logger.info(
                "dispatch_job_completed",
                job_id=job_id,
                notification_id=job.notification_id,
                attempts=job.attempts_made,
            )
            return JobOutcome.COMPLETED

    def fail(
        self, job_id: str, error: str, worker_id: Optional[str] = None
    ) -> JobOutcome:
        with self._lock:
            job = self._owned_job(job_id, worker_id)
            if job is None:
                return JobOutcome.IGNORED

            now = self._clock()
            job.attempts_made += 1
            job.last_error = error
            job.claimed_by = None
            job.lease_expires_at = None
            job.updated_at = now

            if job.attempts_made >= job.max_attempts:
                job.status = JobStatus.FAILED
                job.finished_at = now
                self._open_by_notification.pop(job.notification_id, None)
                logger.warning(
                    "dispatch_job_exhausted",
                    job_id=job_id,
                    notification_id=job.notification_id,
                    attempts=job.attempts_made,
                    error=error,
                )
                return JobOutcome.EXHAUSTED

            delay = job.backoff.delay_for(job.attempts_made)
            job.status = JobStatus.WAITING
            job.next_run_at = now + timedelta(seconds=delay)

            logger.info(
                "dispatch_job_retry_scheduled",
                job_id=job_id,
                notification_id=job.notification_id,
                attempts=job.attempts_made,
                max_attempts=job.max_attempts,
                next_retry_in_seconds=delay,
            )
            return JobOutcome.RETRY_SCHEDULED

    def get(self, job_id: str) -> Optional[QueueJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return dataclasses.replace(job) if job else None

    def find_by_notification(self, notification_id: str) -> List[QueueJob]:
        """Return every job ever enqueued for a notification, oldest first."""
        with self._lock:
            jobs = [
                dataclasses.replace(job)
                for job in self._jobs.values()
                if job.notification_id == notification_id
            ]
        return sorted(jobs, key=lambda job: job.created_at)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            now = self._clock()
            stats = {
                "waiting": 0,
                "active": 0,
                "completed": 0,
                "failed": 0,
                "delayed": 0,
            }
            for job in self._jobs.values():
                if job.status == JobStatus.WAITING:
                    key = "waiting" if job.next_run_at <= now else "delayed"
                else:
                    key = job.status.value
                stats[key] += 1
            stats["total"] = len(self._jobs)
            return stats

    def pause(self) -> None:
        with self._lock:
            self._paused = True
        logger.info("dispatch_queue_paused")

    def resume(self) -> None:
        with self._lock:
            self._paused = False
        logger.info("dispatch_queue_resumed")

    def is_paused(self) -> bool:
        with self._lock:
            return self._paused

    def drain(self) -> int:
        with self._lock:
            waiting = [
                job for job in self._jobs.values() if job.status == JobStatus.WAITING
            ]
            for job in waiting:
                del self._jobs[job.id]
                self._open_by_notification.pop(job.notification_id, None)
        logger.info("dispatch_queue_drained", removed=len(waiting))
        return len(waiting)

    def clean(
        self, older_than_seconds: float, status: JobStatus = JobStatus.COMPLETED
    ) -> int:
        if status not in (JobStatus.COMPLETED, JobStatus.FAILED):
            raise ValueError("Only completed or failed jobs can be cleaned")
        with self._lock:
            cutoff = self._clock() - timedelta(seconds=older_than_seconds)
            stale = [
                job.id
                for job in self._jobs.values()
                if job.status == status
                and job.finished_at is not None
                and job.finished_at < cutoff
            ]
            for job_id in stale:
                del self._jobs[job_id]
        logger.info("dispatch_queue_cleaned", status=status.value, removed=len(stale))
        return len(stale)

    @staticmethod
    def _is_due(job: QueueJob, now: datetime) -> bool:
        if job.status == JobStatus.WAITING:
            return job.next_run_at <= now
        if job.status == JobStatus.ACTIVE:
            return job.lease_expires_at is not None and job.lease_expires_at < now
        return False

    def _owned_job(self, job_id: str, worker_id: Optional[str]) -> Optional[QueueJob]:
        """Return the job if it is active and (when given) held by worker_id. Lock must be held."""
        job = self._jobs.get(job_id)
        if job is None:
            logger.warning("dispatch_job_not_found", job_id=job_id)
            return None
        if job.status != JobStatus.ACTIVE:
            logger.warning(
                "dispatch_job_not_active", job_id=job_id, status=job.status.value
            )
            return None
        if worker_id is not None and job.claimed_by != worker_id:
            logger.warning(
                "dispatch_job_claim_lost",
                job_id=job_id,
                worker=worker_id,
                current_worker=job.claimed_by,
            )
            return None
        return job
