"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import Generator
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

# Use the in-process backend BEFORE any settings are loaded
os.environ["STORE_BACKEND"] = "memory"

from joblock.config import Settings  # noqa: E402
from joblock.coordinator import JobLockCoordinator  # noqa: E402
from joblock.errors import LockStoreError  # noqa: E402
from joblock.observability.metrics import MetricsCollector  # noqa: E402
from joblock.registry import add_job, unregister_job  # noqa: E402
from joblock.store.memory import MemoryStore  # noqa: E402
from joblock.types.job import JobDefinition  # noqa: E402
from joblock.worker.client import JobClient  # noqa: E402
from joblock.worker.main import Worker  # noqa: E402
from joblock.worker.queue import MemoryJobQueue  # noqa: E402


class FailingStore(MemoryStore):
    """Memory store whose selected operations fail like an unreachable backend."""

    def __init__(self, fail_on: set[str]):
        super().__init__()
        self.fail_on = fail_on

    async def set_if_absent(self, key: str, value: str) -> bool:
        if "set_if_absent" in self.fail_on:
            raise LockStoreError("set_if_absent", key, "connection refused")
        return await super().set_if_absent(key, value)

    async def get(self, key: str) -> str | None:
        if "get" in self.fail_on:
            raise LockStoreError("get", key, "connection refused")
        return await super().get(key)

    async def delete(self, key: str) -> None:
        if "delete" in self.fail_on:
            raise LockStoreError("delete", key, "connection refused")
        await super().delete(key)


class Recorder:
    """Collects calls made by test jobs and handlers."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        store_backend="memory",
        log_level="DEBUG",
        log_format="console",
        worker_poll_interval_seconds=0.01,
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on an isolated registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-process store."""
    return MemoryStore()


@pytest.fixture
def coordinator(store: MemoryStore, metrics: MetricsCollector) -> JobLockCoordinator:
    """Coordinator over the in-process store."""
    return JobLockCoordinator(store, metrics=metrics)


@pytest.fixture
def job_queue() -> MemoryJobQueue:
    """Empty in-process job queue."""
    return MemoryJobQueue()


@pytest.fixture
def client(
    coordinator: JobLockCoordinator,
    job_queue: MemoryJobQueue,
    metrics: MetricsCollector,
) -> JobClient:
    """Producer client enqueuing onto the in-process queue."""
    return JobClient(coordinator, job_queue, metrics=metrics)


@pytest.fixture
def worker(coordinator: JobLockCoordinator, job_queue: MemoryJobQueue) -> Worker:
    """Worker polling the default queue."""
    return Worker(
        coordinator,
        job_queue,
        queues=["default"],
        worker_id="test-worker",
        poll_interval=0.01,
    )


@pytest.fixture
def failing_store() -> type[FailingStore]:
    """The FailingStore class, for building stores that fail on demand."""
    return FailingStore


@pytest.fixture
def recorder() -> Recorder:
    """Fresh call recorder."""
    return Recorder()


@pytest.fixture
def performed() -> Recorder:
    """Records the arguments of every Report run."""
    return Recorder()


@pytest.fixture
def report_job(performed: Recorder) -> Generator[JobDefinition]:
    """Registered job that records its arguments."""

    async def perform(*args: Any) -> str:
        performed(*args)
        return "done"

    job = add_job(JobDefinition(name="Report", perform=perform))
    yield job
    unregister_job(job.name)


@pytest.fixture
def failing_job() -> Generator[JobDefinition]:
    """Registered job that always raises."""

    def perform(*args: Any) -> None:
        raise RuntimeError("Woah woah woah, that wasn't supposed to happen")

    job = add_job(JobDefinition(name="Failing", perform=perform))
    yield job
    unregister_job(job.name)
