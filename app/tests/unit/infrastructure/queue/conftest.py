"""Fixtures for dispatch queue tests.

Level: Component-level fixtures for the queue module
"""

from datetime import datetime, timedelta, timezone

import pytest

from infrastructure.queue import (
    BackoffPolicy,
    InMemoryDispatchQueue,
    JobOptions,
    JobResult,
    SqlDispatchQueue,
)


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


class RecordingProcessor:
    """JobProcessor returning scripted results and recording the jobs it saw."""

    def __init__(self):
        self.jobs = []
        self.results = []
        self.error = None

    def will_return(self, *results):
        self.results.extend(results)
        return self

    def process_job(self, job):
        self.jobs.append(job)
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return JobResult.succeeded()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def memory_queue(clock):
    return InMemoryDispatchQueue(clock=clock)


@pytest.fixture
def sql_queue(database, clock):
    return SqlDispatchQueue(database, clock=clock)


@pytest.fixture(params=["memory", "database"])
def any_queue(request, clock):
    """Both queue backends, for behaviour they must share."""
    if request.param == "memory":
        return InMemoryDispatchQueue(clock=clock)
    database = request.getfixturevalue("database")
    return SqlDispatchQueue(database, clock=clock)


@pytest.fixture
def options():
    """Three attempts, 2s base delay doubling per failure."""
    return JobOptions(
        max_attempts=3,
        backoff=BackoffPolicy(base_delay_seconds=2, multiplier=2, max_delay_seconds=60),
    )


@pytest.fixture
def processor():
    return RecordingProcessor()
