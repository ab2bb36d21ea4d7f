"""Dispatch queue models.

A job carries only the id of the notification to deliver; the notification
store stays authoritative for everything else.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from infrastructure.queue.config import BackoffPolicy


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class JobStatus(Enum):
    """Lifecycle of a queued job.

    Values:
        WAITING: Ready to run at next_run_at (delayed while next_run_at is in the future)
        ACTIVE: Claimed by a worker until lease_expires_at
        COMPLETED: Processed successfully
        FAILED: Attempts exhausted
    """

    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


OPEN_STATUSES = (JobStatus.WAITING, JobStatus.ACTIVE)


class JobOutcome(Enum):
    """What the queue did with a job after a processing attempt."""

    COMPLETED = "completed"
    RETRY_SCHEDULED = "retry_scheduled"
    EXHAUSTED = "exhausted"
    IGNORED = "ignored"


@dataclass
class QueueJob:
    """One delivery job.

    Fields:
        notification_id: Notification to deliver
        max_attempts: Attempts allowed before the job is exhausted
        backoff: Delay policy between attempts
        id: Unique identifier (assigned by the queue)
        status: Current JobStatus
        attempts_made: Attempts that have finished (success or failure)
        next_run_at: Earliest time the job may be claimed
        claimed_by: Worker currently holding the job
        lease_expires_at: When the current claim lapses
        last_error: Error reported by the last failed attempt
    """

    notification_id: str
    max_attempts: int = 3
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    id: Optional[str] = None
    status: JobStatus = JobStatus.WAITING
    attempts_made: int = 0
    next_run_at: datetime = field(default_factory=utcnow)
    claimed_by: Optional[str] = None
    lease_expires_at: Optional[datetime] = None
    last_error: Optional[str] = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.notification_id:
            raise ValueError("notification_id is required")

    @property
    def attempt(self) -> int:
        """1-based number of the attempt a worker is (or will be) running."""
        return self.attempts_made + 1

    @property
    def is_final_attempt(self) -> bool:
        return self.attempt >= self.max_attempts

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


@dataclass(frozen=True)
class JobResult:
    """Answer of a JobProcessor for one attempt."""

    success: bool
    error: Optional[str] = None

    @classmethod
    def succeeded(cls) -> "JobResult":
        return cls(success=True)

    @classmethod
    def retry(cls, error: str) -> "JobResult":
        return cls(success=False, error=error)
