"""Delivery worker pool settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class WorkerSettings(InfrastructureSettings):
    """Delivery worker pool configuration.

    Environment Variables:
        WORKER_ENABLED: Run the worker pool inside the API process (default: True)
        WORKER_CONCURRENCY: Number of worker threads (default: 10)
        WORKER_RATE_LIMIT_MAX: Attempts allowed per rate limit period (default: 500)
        WORKER_RATE_LIMIT_PERIOD_SECONDS: Rate limit window (default: 60s)
        WORKER_POLL_INTERVAL_SECONDS: Idle wait between empty claims (default: 0.5s)
        WORKER_SEND_TIMEOUT_SECONDS: Hard timeout for one provider call (default: 10s)
        WORKER_SHUTDOWN_GRACE_SECONDS: Time allowed for in-flight attempts on stop (default: 30s)
    """

    enabled: bool = Field(default=True, alias="WORKER_ENABLED")
    concurrency: int = Field(default=10, alias="WORKER_CONCURRENCY")
    rate_limit_max: int = Field(default=500, alias="WORKER_RATE_LIMIT_MAX")
    rate_limit_period_seconds: float = Field(
        default=60.0, alias="WORKER_RATE_LIMIT_PERIOD_SECONDS"
    )
    poll_interval_seconds: float = Field(
        default=0.5, alias="WORKER_POLL_INTERVAL_SECONDS"
    )
    send_timeout_seconds: float = Field(
        default=10.0, alias="WORKER_SEND_TIMEOUT_SECONDS"
    )
    shutdown_grace_seconds: float = Field(
        default=30.0, alias="WORKER_SHUTDOWN_GRACE_SECONDS"
    )
