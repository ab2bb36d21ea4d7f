"""Dispatch queue job options.

This module defines the per-job retry policy carried by every queued job.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infrastructure.configuration import Settings


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff between delivery attempts.

    The delay after failed attempt n is
    ``min(base_delay_seconds * multiplier ** (n - 1), max_delay_seconds)``.

    Attributes:
        base_delay_seconds: Delay after the first failed attempt
        multiplier: Growth factor applied per further failure
        max_delay_seconds: Cap for a single delay
    """

    base_delay_seconds: float = 2.0
    multiplier: float = 2.0
    max_delay_seconds: float = 3600.0

    def __post_init__(self) -> None:
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")

    def delay_for(self, failed_attempt: int) -> float:
        """Seconds to wait after `failed_attempt` (1-based) before the next one."""
        if failed_attempt < 1:
            return 0.0
        delay = self.base_delay_seconds * (self.multiplier ** (failed_attempt - 1))
        return min(delay, self.max_delay_seconds)


@dataclass(frozen=True)
class JobOptions:
    """Options given to `enqueue`.

    Attributes:
        max_attempts: Total delivery attempts before the job is exhausted
        backoff: Backoff policy between attempts
        delay_seconds: Initial delay before the first attempt

    Example:
        options = JobOptions(max_attempts=3, backoff=BackoffPolicy(base_delay_seconds=2))
        queue.enqueue(notification_id, options)
    """

    max_attempts: int = 3
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    delay_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "JobOptions":
        """Build the job options from the queue settings (single source of the retry policy)."""
        queue = settings.queue
        return cls(
            max_attempts=queue.max_attempts,
            backoff=BackoffPolicy(
                base_delay_seconds=queue.backoff_base_seconds,
                multiplier=queue.backoff_multiplier,
                max_delay_seconds=queue.backoff_max_seconds,
            ),
        )
