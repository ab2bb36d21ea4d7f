"""Unit tests for the dispatch queue backends.

Every test runs against both the in-memory and the database queue.
"""

import pytest

from infrastructure.queue import JobOptions, JobOutcome, JobStatus


@pytest.mark.unit
class TestEnqueue:
    """Tests for enqueue."""

    def test_enqueue_creates_waiting_job(self, any_queue, options):
        """A new job waits for its first attempt."""
        job_id = any_queue.enqueue("n-1", options)

        job = any_queue.get(job_id)
        assert job.status == JobStatus.WAITING
        assert job.notification_id == "n-1"
        assert job.attempts_made == 0
        assert job.max_attempts == 3

    def test_enqueue_deduplicates_open_jobs(self, any_queue, options):
        """Enqueueing a notification that already has an open job returns that job."""
        first = any_queue.enqueue("n-1", options)
        second = any_queue.enqueue("n-1", options)

        assert first == second
        assert any_queue.get_stats()["total"] == 1

    def test_enqueue_after_completion_creates_new_job(self, any_queue, options):
        """Once the previous job is finished a new one can be enqueued."""
        first = any_queue.enqueue("n-1", options)
        job = any_queue.claim("w-1", 60)
        any_queue.complete(job.id, "w-1")

        second = any_queue.enqueue("n-1", options)

        assert second != first
        assert len(any_queue.find_by_notification("n-1")) == 2

    def test_initial_delay(self, any_queue, clock):
        """A delayed job is not claimable until its delay elapses."""
        any_queue.enqueue("n-1", JobOptions(delay_seconds=10))

        assert any_queue.claim("w-1", 60) is None
        assert any_queue.get_stats()["delayed"] == 1

        clock.advance(10)
        assert any_queue.claim("w-1", 60) is not None


@pytest.mark.unit
class TestClaim:
    """Tests for claim and leases."""

    def test_claim_returns_due_job(self, any_queue, options):
        job_id = any_queue.enqueue("n-1", options)

        job = any_queue.claim("w-1", 60)

        assert job.id == job_id
        assert job.status == JobStatus.ACTIVE
        assert job.claimed_by == "w-1"
        assert job.attempt == 1

    def test_claimed_job_is_not_handed_out_twice(self, any_queue, options):
        """A job held under a live lease belongs to one worker only."""
        any_queue.enqueue("n-1", options)

        assert any_queue.claim("w-1", 60) is not None
        assert any_queue.claim("w-2", 60) is None

    def test_expired_lease_is_redelivered(self, any_queue, options, clock):
        """A crashed worker's job is handed out again with the same attempt number."""
        any_queue.enqueue("n-1", options)
        first = any_queue.claim("w-1", 60)

        clock.advance(61)
        second = any_queue.claim("w-2", 60)

        assert second.id == first.id
        assert second.claimed_by == "w-2"
        assert second.attempt == first.attempt

    def test_claim_empty_queue(self, any_queue):
        assert any_queue.claim("w-1", 60) is None

    def test_oldest_due_job_first(self, any_queue, options, clock):
        first = any_queue.enqueue("n-1", options)
        clock.advance(1)
        any_queue.enqueue("n-2", options)

        assert any_queue.claim("w-1", 60).id == first


@pytest.mark.unit
class TestCompleteAndFail:
    """Tests for complete and fail."""

    def test_complete(self, any_queue, options):
        job_id = any_queue.enqueue("n-1", options)
        any_queue.claim("w-1", 60)

        outcome = any_queue.complete(job_id, "w-1")

        job = any_queue.get(job_id)
        assert outcome == JobOutcome.COMPLETED
        assert job.status == JobStatus.COMPLETED
        assert job.attempts_made == 1
        assert job.finished_at is not None

    def test_fail_schedules_retry_with_backoff(self, any_queue, options, clock):
        """First failure waits 2s, second waits 4s."""
        job_id = any_queue.enqueue("n-1", options)
        any_queue.claim("w-1", 60)

        assert any_queue.fail(job_id, "boom", "w-1") == JobOutcome.RETRY_SCHEDULED
        job = any_queue.get(job_id)
        assert job.status == JobStatus.WAITING
        assert job.attempts_made == 1
        assert job.last_error == "boom"
        assert any_queue.claim("w-1", 60) is None

        clock.advance(2)
        retried = any_queue.claim("w-1", 60)
        assert retried.attempt == 2

        any_queue.fail(job_id, "boom", "w-1")
        clock.advance(3)
        assert any_queue.claim("w-1", 60) is None
        clock.advance(1)
        assert any_queue.claim("w-1", 60).attempt == 3

    def test_fail_exhausts_after_max_attempts(self, any_queue, options, clock):
        job_id = any_queue.enqueue("n-1", options)
        outcomes = []
        for _ in range(3):
            any_queue.claim("w-1", 60)
            outcomes.append(any_queue.fail(job_id, "boom", "w-1"))
            clock.advance(60)

        assert outcomes == [
            JobOutcome.RETRY_SCHEDULED,
            JobOutcome.RETRY_SCHEDULED,
            JobOutcome.EXHAUSTED,
        ]
        job = any_queue.get(job_id)
        assert job.status == JobStatus.FAILED
        assert job.attempts_made == 3
        assert any_queue.claim("w-1", 60) is None

    def test_complete_by_other_worker_is_ignored(self, any_queue, options, clock):
        """A worker whose lease was taken over cannot complete the job."""
        job_id = any_queue.enqueue("n-1", options)
        any_queue.claim("w-1", 60)
        clock.advance(61)
        any_queue.claim("w-2", 60)

        assert any_queue.complete(job_id, "w-1") == JobOutcome.IGNORED
        assert any_queue.complete(job_id, "w-2") == JobOutcome.COMPLETED

    def test_fail_unclaimed_job_is_ignored(self, any_queue, options):
        job_id = any_queue.enqueue("n-1", options)

        assert any_queue.fail(job_id, "boom", "w-1") == JobOutcome.IGNORED

    def test_unknown_job_is_ignored(self, any_queue):
        assert any_queue.complete("missing") == JobOutcome.IGNORED
        assert any_queue.get("missing") is None


@pytest.mark.unit
class TestQueueAdministration:
    """Tests for stats, pause, drain and clean."""

    def test_stats(self, any_queue, options, clock):
        for notification_id in ("n-1", "n-2", "n-3", "n-4"):
            any_queue.enqueue(notification_id, options)

        first = any_queue.claim("w-1", 60)
        any_queue.complete(first.id, "w-1")
        any_queue.claim("w-1", 60)
        third = any_queue.claim("w-2", 60)
        any_queue.fail(third.id, "boom", "w-2")

        stats = any_queue.get_stats()

        assert stats == {
            "waiting": 1,
            "active": 1,
            "completed": 1,
            "failed": 0,
            "delayed": 1,
            "total": 4,
        }

    def test_pause_stops_claims(self, any_queue, options):
        any_queue.enqueue("n-1", options)

        any_queue.pause()
        assert any_queue.is_paused()
        assert any_queue.claim("w-1", 60) is None

        any_queue.resume()
        assert not any_queue.is_paused()
        assert any_queue.claim("w-1", 60) is not None

    def test_drain_removes_waiting_jobs(self, any_queue, options):
        any_queue.enqueue("n-1", options)
        any_queue.enqueue("n-2", options)
        any_queue.claim("w-1", 60)

        assert any_queue.drain() == 1
        stats = any_queue.get_stats()
        assert stats["waiting"] == 0
        assert stats["active"] == 1

    def test_clean_removes_old_completed_jobs(self, any_queue, options, clock):
        job_id = any_queue.enqueue("n-1", options)
        any_queue.claim("w-1", 60)
        any_queue.complete(job_id, "w-1")

        assert any_queue.clean(older_than_seconds=3600) == 0
        clock.advance(3601)
        assert any_queue.clean(older_than_seconds=3600) == 1
        assert any_queue.get(job_id) is None

    def test_clean_rejects_open_status(self, any_queue):
        with pytest.raises(ValueError):
            any_queue.clean(60, status=JobStatus.WAITING)
