"""Unit tests for backoff and job options."""

import pytest

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import QueueSettings
from infrastructure.queue import BackoffPolicy, JobOptions, QueueJob


@pytest.mark.unit
class TestBackoffPolicy:
    """Tests for BackoffPolicy."""

    def test_delay_doubles_per_failed_attempt(self):
        """Delays follow base * multiplier ^ (n - 1)."""
        policy = BackoffPolicy(base_delay_seconds=2, multiplier=2, max_delay_seconds=3600)

        assert policy.delay_for(1) == 2
        assert policy.delay_for(2) == 4
        assert policy.delay_for(3) == 8

    def test_delay_is_capped(self):
        """No single delay exceeds max_delay_seconds."""
        policy = BackoffPolicy(base_delay_seconds=10, multiplier=10, max_delay_seconds=60)

        assert policy.delay_for(3) == 60

    def test_no_delay_before_first_attempt(self):
        """delay_for(0) is zero."""
        assert BackoffPolicy().delay_for(0) == 0.0

    def test_rejects_invalid_values(self):
        """Negative base, shrinking multiplier and max below base are rejected."""
        with pytest.raises(ValueError):
            BackoffPolicy(base_delay_seconds=-1)
        with pytest.raises(ValueError):
            BackoffPolicy(multiplier=0.5)
        with pytest.raises(ValueError):
            BackoffPolicy(base_delay_seconds=10, max_delay_seconds=5)


@pytest.mark.unit
class TestJobOptions:
    """Tests for JobOptions."""

    def test_defaults(self):
        """Three attempts with a 2 second exponential backoff."""
        options = JobOptions()

        assert options.max_attempts == 3
        assert options.backoff.base_delay_seconds == 2.0
        assert options.delay_seconds == 0.0

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            JobOptions(max_attempts=0)

    def test_from_settings_uses_queue_settings(self):
        """The queue settings are the single source of the retry policy."""
        settings = Settings(
            queue=QueueSettings(
                QUEUE_MAX_ATTEMPTS=5,
                QUEUE_BACKOFF_BASE_SECONDS=1,
                QUEUE_BACKOFF_MULTIPLIER=3,
                QUEUE_BACKOFF_MAX_SECONDS=30,
            )
        )

        options = JobOptions.from_settings(settings)

        assert options.max_attempts == 5
        assert options.backoff.base_delay_seconds == 1
        assert options.backoff.multiplier == 3
        assert options.backoff.max_delay_seconds == 30


@pytest.mark.unit
class TestQueueJob:
    """Tests for QueueJob."""

    def test_attempt_is_one_based(self):
        job = QueueJob(notification_id="n-1", attempts_made=0)

        assert job.attempt == 1
        assert not job.is_final_attempt

    def test_final_attempt(self):
        job = QueueJob(notification_id="n-1", max_attempts=3, attempts_made=2)

        assert job.attempt == 3
        assert job.is_final_attempt

    def test_requires_notification_id(self):
        with pytest.raises(ValueError):
            QueueJob(notification_id="")
