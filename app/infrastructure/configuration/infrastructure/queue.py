"""Dispatch queue infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class QueueSettings(InfrastructureSettings):
    """Dispatch queue configuration for notification delivery jobs.

    This is the only place the retry policy is configured. Every job enqueued
    by the notification service carries these values.

    Environment Variables:
        QUEUE_BACKEND: Backend type - 'memory' or 'database' (default: memory)
        QUEUE_MAX_ATTEMPTS: Delivery attempts per job (default: 3)
        QUEUE_BACKOFF_BASE_SECONDS: Delay before the second attempt (default: 2s)
        QUEUE_BACKOFF_MULTIPLIER: Growth factor between delays (default: 2)
        QUEUE_BACKOFF_MAX_SECONDS: Upper bound for a single delay (default: 3600s)
        QUEUE_CLAIM_LEASE_SECONDS: How long a worker owns a claimed job (default: 300s)
        QUEUE_COMPLETED_RETENTION_SECONDS: Age at which completed jobs are removed (default: 3600s)
        QUEUE_FAILED_RETENTION_SECONDS: Age at which failed jobs are removed (default: 86400s)
        QUEUE_CLEAN_INTERVAL_SECONDS: Time between retention sweeps (default: 60s)

    Exponential Backoff:
        Delay after failed attempt n: min(base * multiplier ^ (n - 1), max)

        Example with defaults (base=2s, multiplier=2):
            After attempt 1: 2s
            After attempt 2: 4s
    """

    backend: str = Field(
        default="memory",
        alias="QUEUE_BACKEND",
        description="Queue backend: 'memory' or 'database'",
    )
    max_attempts: int = Field(
        default=3,
        alias="QUEUE_MAX_ATTEMPTS",
        description="Maximum delivery attempts per job",
    )
    backoff_base_seconds: float = Field(
        default=2.0,
        alias="QUEUE_BACKOFF_BASE_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        alias="QUEUE_BACKOFF_MULTIPLIER",
        description="Multiplier applied per failed attempt",
    )
    backoff_max_seconds: float = Field(
        default=3600.0,
        alias="QUEUE_BACKOFF_MAX_SECONDS",
        description="Maximum delay for exponential backoff (seconds, 1 hour)",
    )
    claim_lease_seconds: int = Field(
        default=300,
        alias="QUEUE_CLAIM_LEASE_SECONDS",
        description="Duration to hold a claim on a job (seconds, 5 minutes)",
    )
    completed_retention_seconds: float = Field(
        default=3600.0,
        alias="QUEUE_COMPLETED_RETENTION_SECONDS",
        description="Remove completed jobs once finished this long ago (seconds, 1 hour)",
    )
    failed_retention_seconds: float = Field(
        default=86400.0,
        alias="QUEUE_FAILED_RETENTION_SECONDS",
        description="Remove failed jobs once finished this long ago (seconds, 24 hours)",
    )
    clean_interval_seconds: float = Field(
        default=60.0,
        alias="QUEUE_CLEAN_INTERVAL_SECONDS",
        description="Minimum time between two retention sweeps (seconds)",
    )
