"""Database-backed dispatch queue.

Jobs live in the `dispatch_jobs` table next to the notifications they refer
to, so they survive process restarts. Claims use a single conditional
UPDATE (claim only if still due) so that concurrent workers in any number of
processes never own the same job at the same time.
"""

import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    and_,
    case,
    delete,
    func,
    or_,
    select,
    text,
    update,
)
from sqlalchemy.exc import IntegrityError

from infrastructure.logging import get_module_logger
from infrastructure.persistence import Base, Database
from infrastructure.queue.config import BackoffPolicy, JobOptions
from infrastructure.queue.models import (
    JobOutcome,
    JobStatus,
    QueueJob,
    as_utc,
    utcnow,
)
from infrastructure.queue.store import Clock

logger = get_module_logger()

_OPEN_JOB_CONDITION = "status IN ('waiting', 'active')"


class DispatchJobRecord(Base):
    """Row in the dispatch_jobs table."""

    __tablename__ = "dispatch_jobs"

    id = Column(String(36), primary_key=True)
    notification_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=JobStatus.WAITING.value)
    attempts_made = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=3)
    backoff_base_seconds = Column(Float, nullable=False, default=2.0)
    backoff_multiplier = Column(Float, nullable=False, default=2.0)
    backoff_max_seconds = Column(Float, nullable=False, default=3600.0)
    next_run_at = Column(DateTime(timezone=True), nullable=False)
    claimed_by = Column(String(255), nullable=True)
    lease_expires_at = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_dispatch_jobs_status_next_run", "status", "next_run_at"),
        # At most one open job per notification
        Index(
            "uq_dispatch_jobs_open_notification",
            "notification_id",
            unique=True,
            sqlite_where=text(_OPEN_JOB_CONDITION),
            postgresql_where=text(_OPEN_JOB_CONDITION),
        ),
    )


def _to_job(record: DispatchJobRecord) -> QueueJob:
    return QueueJob(
        notification_id=record.notification_id,
        max_attempts=record.max_attempts,
        backoff=BackoffPolicy(
            base_delay_seconds=record.backoff_base_seconds,
            multiplier=record.backoff_multiplier,
            max_delay_seconds=record.backoff_max_seconds,
        ),
        id=record.id,
        status=JobStatus(record.status),
        attempts_made=record.attempts_made,
        next_run_at=as_utc(record.next_run_at),
        claimed_by=record.claimed_by,
        lease_expires_at=as_utc(record.lease_expires_at),
        last_error=record.last_error,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
        finished_at=as_utc(record.finished_at),
    )


class SqlDispatchQueue:
    """DispatchQueue implementation on top of the relational database.

    Pause state is held per queue instance: pausing stops this process from
    claiming jobs without affecting other worker processes.
    """

    def __init__(self, database: Database, clock: Clock = utcnow, batch_size: int = 10):
        self.database = database
        self.batch_size = batch_size
        self._clock = clock
        self._paused = False

    @staticmethod
    def _due_condition(now: datetime):
        return or_(
            and_(
                DispatchJobRecord.status == JobStatus.WAITING.value,
                DispatchJobRecord.next_run_at <= now,
            ),
            and_(
                DispatchJobRecord.status == JobStatus.ACTIVE.value,
                DispatchJobRecord.lease_expires_at < now,
            ),
        )

    def _find_open_job_id(self, notification_id: str) -> Optional[str]:
        with self.database.session() as session:
            return session.execute(
                select(DispatchJobRecord.id).where(
                    DispatchJobRecord.notification_id == notification_id,
                    DispatchJobRecord.status.in_(
                        [JobStatus.WAITING.value, JobStatus.ACTIVE.value]
                    ),
                )
            ).scalar_one_or_none()

    def enqueue(self, notification_id: str, options: Optional[JobOptions] = None) -> str:
        options = options or JobOptions()

        existing_id = self._find_open_job_id(notification_id)
        if existing_id is not None:
            logger.info(
                "dispatch_job_deduplicated",
                notification_id=notification_id,
                job_id=existing_id,
            )
            return existing_id

        now = self._clock()
        job_id = str(uuid.uuid4())
        try:
            with self.database.session() as session:
                session.add(
                    DispatchJobRecord(
                        id=job_id,
                        notification_id=notification_id,
                        status=JobStatus.WAITING.value,
                        attempts_made=0,
                        max_attempts=options.max_attempts,
                        backoff_base_seconds=options.backoff.base_delay_seconds,
                        backoff_multiplier=options.backoff.multiplier,
                        backoff_max_seconds=options.backoff.max_delay_seconds,
                        next_run_at=now + timedelta(seconds=options.delay_seconds),
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # Lost a race with a concurrent enqueue for the same notification
            existing_id = self._find_open_job_id(notification_id)
            if existing_id is None:
                raise
            logger.info(
                "dispatch_job_deduplicated",
                notification_id=notification_id,
                job_id=existing_id,
            )
            return existing_id

        logger.info(
            "dispatch_job_enqueued",
            job_id=job_id,
            notification_id=notification_id,
            max_attempts=options.max_attempts,
        )
        return job_id

    def claim(self, worker_id: str, lease_seconds: int) -> Optional[QueueJob]:
        if self._paused:
            return None

        now = self._clock()
        with self.database.session() as session:
            candidate_ids = (
                session.execute(
                    select(DispatchJobRecord.id)
                    .where(self._due_condition(now))
                    .order_by(DispatchJobRecord.next_run_at)
                    .limit(self.batch_size)
                )
                .scalars()
                .all()
            )

        for job_id in candidate_ids:
            with self.database.session() as session:
                result = session.execute(
                    update(DispatchJobRecord)
                    .where(DispatchJobRecord.id == job_id, self._due_condition(now))
                    .values(
                        status=JobStatus.ACTIVE.value,
                        claimed_by=worker_id,
                        lease_expires_at=now + timedelta(seconds=lease_seconds),
                        updated_at=now,
                    )
                )
                if result.rowcount != 1:
                    logger.debug(
                        "dispatch_job_claim_failed_already_claimed",
                        job_id=job_id,
                        worker=worker_id,
                    )
                    continue

                record = session.get(DispatchJobRecord, job_id)
                job = _to_job(record)

            logger.debug(
                "dispatch_job_claimed",
                job_id=job_id,
                worker=worker_id,
                attempt=job.attempt,
            )
            return job

        return None

    def _owned_condition(self, job_id: str, worker_id: Optional[str]):
        conditions = [
            DispatchJobRecord.id == job_id,
            DispatchJobRecord.status == JobStatus.ACTIVE.value,
        ]
        if worker_id is not None:
            conditions.append(DispatchJobRecord.claimed_by == worker_id)
        return and_(*conditions)

    def complete(self, job_id: str, worker_id: Optional[str] = None) -> JobOutcome:
        now = self._clock()
        with self.database.session() as session:
            result = session.execute(
                update(DispatchJobRecord)
                .where(self._owned_condition(job_id, worker_id))
                .values(
                    status=JobStatus.COMPLETED.value,
                    attempts_made=DispatchJobRecord.attempts_made + 1,
                    claimed_by=None,
                    lease_expires_at=None,
                    updated_at=now,
                    finished_at=now,
                )
            )

        if result.rowcount != 1:
            logger.warning("dispatch_job_claim_lost", job_id=job_id, worker=worker_id)
            return JobOutcome.IGNORED

        logger.info("dispatch_job_completed", job_id=job_id)
        return JobOutcome.COMPLETED

    def fail(
        self, job_id: str, error: str, worker_id: Optional[str] = None
    ) -> JobOutcome:
        now = self._clock()
        with self.database.session() as session:
            record = session.execute(
                select(DispatchJobRecord).where(self._owned_condition(job_id, worker_id))
            ).scalar_one_or_none()
            if record is None:
                logger.warning(
                    "dispatch_job_claim_lost", job_id=job_id, worker=worker_id
                )
                return JobOutcome.IGNORED

            job = _to_job(record)
            attempts_made = job.attempts_made + 1

            if attempts_made >= job.max_attempts:
                values = {
                    "status": JobStatus.FAILED.value,
                    "finished_at": now,
                }
                outcome = JobOutcome.EXHAUSTED
                delay = None
            else:
                delay = job.backoff.delay_for(attempts_made)
                values = {
                    "status": JobStatus.WAITING.value,
                    "next_run_at": now + timedelta(seconds=delay),
                }
                outcome = JobOutcome.RETRY_SCHEDULED

            # Only the attempt that is still on record may move the job on
            result = session.execute(
                update(DispatchJobRecord)
                .where(
                    self._owned_condition(job_id, worker_id),
                    DispatchJobRecord.attempts_made == job.attempts_made,
                )
                .values(
                    attempts_made=attempts_made,
                    last_error=error,
                    claimed_by=None,
                    lease_expires_at=None,
                    updated_at=now,
                    **values,
                )
            )
            if result.rowcount != 1:
                logger.warning(
                    "dispatch_job_claim_lost", job_id=job_id, worker=worker_id
                )
                return JobOutcome.IGNORED

        if outcome == JobOutcome.EXHAUSTED:
            logger.warning(
                "dispatch_job_exhausted",
                job_id=job_id,
                notification_id=job.notification_id,
                attempts=attempts_made,
                error=error,
            )
        else:
            logger.info(
                "dispatch_job_retry_scheduled",
                job_id=job_id,
                notification_id=job.notification_id,
                attempts=attempts_made,
                max_attempts=job.max_attempts,
                next_retry_in_seconds=delay,
            )
        return outcome

    def get(self, job_id: str) -> Optional[QueueJob]:
        with self.database.session() as session:
            record = session.get(DispatchJobRecord, job_id)
            return _to_job(record) if record else None

    def find_by_notification(self, notification_id: str) -> List[QueueJob]:
        """Return every job ever enqueued for a notification, oldest first."""
        with self.database.session() as session:
            records = (
                session.execute(
                    select(DispatchJobRecord)
                    .where(DispatchJobRecord.notification_id == notification_id)
                    .order_by(DispatchJobRecord.created_at)
                )
                .scalars()
                .all()
            )
            return [_to_job(record) for record in records]

    def get_stats(self) -> Dict[str, int]:
        now = self._clock()
        bucket = case(
            (
                and_(
                    DispatchJobRecord.status == JobStatus.WAITING.value,
                    DispatchJobRecord.next_run_at > now,
                ),
                "delayed",
            ),
            else_=DispatchJobRecord.status,
        )
        with self.database.session() as session:
            rows = session.execute(
                select(bucket.label("bucket"), func.count()).group_by(bucket)
            ).all()

        stats = {"waiting": 0, "active": 0, "completed": 0, "failed": 0, "delayed": 0}
        for name, count in rows:
            stats[name] = stats.get(name, 0) + count
        stats["total"] = sum(stats.values())
        return stats

    def pause(self) -> None:
        self._paused = True
        logger.info("dispatch_queue_paused")

    def resume(self) -> None:
        self._paused = False
        logger.info("dispatch_queue_resumed")

    def is_paused(self) -> bool:
        return self._paused

    def drain(self) -> int:
        with self.database.session() as session:
            result = session.execute(
                delete(DispatchJobRecord).where(
                    DispatchJobRecord.status == JobStatus.WAITING.value
                )
            )
        logger.info("dispatch_queue_drained", removed=result.rowcount)
        return result.rowcount

    def clean(
        self, older_than_seconds: float, status: JobStatus = JobStatus.COMPLETED
    ) -> int:
        if status not in (JobStatus.COMPLETED, JobStatus.FAILED):
            raise ValueError("Only completed or failed jobs can be cleaned")
        cutoff = self._clock() - timedelta(seconds=older_than_seconds)
        with self.database.session() as session:
            result = session.execute(
                delete(DispatchJobRecord).where(
                    DispatchJobRecord.status == status.value,
                    DispatchJobRecord.finished_at < cutoff,
                )
            )
        logger.info("dispatch_queue_cleaned", status=status.value, removed=result.rowcount)
        return result.rowcount
