"""
Integration tests for locked jobs flowing from client to worker.
"""

import asyncio
import logging
import uuid
from typing import Any

import pytest

from joblock.coordinator import raise_on_enqueue_failure
from joblock.errors import EnqueueFailureError, LockKeyError
from joblock.registry import add_job, unregister_job
from joblock.store.memory import MemoryStore
from joblock.types.job import JobDefinition, JobPayload
from joblock.types.lock import Enqueued, Rejected
from joblock.worker.client import JobClient
from joblock.worker.main import Worker
from joblock.worker.queue import MemoryJobQueue


class TestLockedJobLifecycle:
    """End-to-end lock lifecycle through the reference dispatcher."""

    async def test_only_one_job_enqueued(
        self,
        client: JobClient,
        job_queue: MemoryJobQueue,
        report_job: JobDefinition,
    ):
        """Test three enqueues of the same job put one payload on the queue."""
        results = [await client.enqueue(report_job, "acct-1") for _ in range(3)]

        assert results == [True, False, False]
        assert await job_queue.size("default") == 1

    async def test_concurrent_enqueues(
        self,
        client: JobClient,
        job_queue: MemoryJobQueue,
        report_job: JobDefinition,
    ):
        """Test concurrent producers enqueue the job exactly once."""
        results = await asyncio.gather(
            *(client.enqueue("Report", "acct-1") for _ in range(3))
        )

        assert sorted(results) == [False, False, True]
        assert await job_queue.size("default") == 1

    async def test_enqueue_failure_error(
        self,
        client: JobClient,
        job_queue: MemoryJobQueue,
    ):
        """Test a raising handler turns contention into EnqueueFailureError."""
        job = add_job(
            JobDefinition(
                name="Strict",
                perform=lambda: None,
                handle_enqueue_failure=raise_on_enqueue_failure,
            )
        )
        failure_count = 0
        try:
            for _ in range(3):
                try:
                    await client.enqueue(job)
                except EnqueueFailureError:
                    failure_count += 1
        finally:
            unregister_job("Strict")

        assert failure_count == 2
        assert await job_queue.size("default") == 1

    async def test_special_handler_error_reaches_caller(
        self,
        client: JobClient,
        job_queue: MemoryJobQueue,
    ):
        """Test the handler's own error object reaches the enqueue caller."""
        error = RuntimeError("special")

        def handle_enqueue_failure(lock_key: str, lock_timestamp: str | None) -> None:
            raise error

        job = JobDefinition(
            name="SpecialEnqueueFailureHandlingJob",
            perform=lambda: None,
            handle_enqueue_failure=handle_enqueue_failure,
        )
        raised = []
        for _ in range(3):
            try:
                await client.enqueue(job)
            except RuntimeError as e:
                raised.append(e)

        assert len(raised) == 2
        assert all(e is error for e in raised)
        assert await job_queue.size("default") == 1

    async def test_success_releases_lock(
        self,
        client: JobClient,
        worker: Worker,
        store: MemoryStore,
        report_job: JobDefinition,
        performed,
    ):
        """Test the fourth enqueue succeeds once the job has run."""
        for _ in range(3):
            await client.enqueue(report_job, "acct-1")

        assert await worker.work_once() is True
        assert performed.calls == [("acct-1",)]
        assert len(store) == 0

        assert await client.enqueue(report_job, "acct-1") is True

    async def test_failure_releases_lock(
        self,
        client: JobClient,
        worker: Worker,
        store: MemoryStore,
        failing_job: JobDefinition,
    ):
        """Test a job that raises leaves no lock and does not stop the worker."""
        await client.enqueue(failing_job)

        assert await worker.work_once() is True
        assert len(store) == 0
        assert await client.enqueue(failing_job) is True

    async def test_failure_hook_called(
        self,
        client: JobClient,
        worker: Worker,
        failing_job: JobDefinition,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """Test the worker reports failures through on_failure_lock."""
        reported: list[tuple[Any, ...]] = []
        original = worker.coordinator.on_failure_lock

        async def on_failure_lock(job, error, *args):
            reported.append((job.name, type(error), args))
            await original(job, error, *args)

        monkeypatch.setattr(worker.coordinator, "on_failure_lock", on_failure_lock)

        await client.enqueue(failing_job)
        await worker.work_once()

        assert reported == [("Failing", RuntimeError, ())]

    async def test_empty_queue(self, worker: Worker):
        """Test work_once reports an empty queue."""
        assert await worker.work_once() is False

    async def test_unknown_job_keeps_lock(
        self,
        worker: Worker,
        job_queue: MemoryJobQueue,
        store: MemoryStore,
    ):
        """Test a payload for an unregistered job is dropped without touching locks."""
        await store.set_if_absent("lock:Ghost-1", "t")
        await job_queue.push("default", JobPayload(job="Ghost", args=[1]))

        assert await worker.work_once() is True
        assert "lock:Ghost-1" in store

    async def test_try_enqueue(
        self,
        client: JobClient,
        job_queue: MemoryJobQueue,
        report_job: JobDefinition,
    ):
        """Test the value-returning enqueue."""
        first = await client.try_enqueue(report_job, "acct-1")
        second = await client.try_enqueue(report_job, "acct-1")

        assert isinstance(first, Enqueued)
        assert isinstance(second, Rejected)
        assert second.timestamp == first.timestamp
        assert await job_queue.size("default") == 1

    async def test_push_failure_releases_lock(
        self,
        client: JobClient,
        store: MemoryStore,
        report_job: JobDefinition,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """Test a lock is not left behind when the push fails."""

        async def broken_push(queue: str, payload: JobPayload) -> None:
            raise ConnectionError("queue unavailable")

        monkeypatch.setattr(client.queue, "push", broken_push)

        with pytest.raises(ConnectionError):
            await client.enqueue(report_job, "acct-1")

        assert len(store) == 0

    async def test_worker_loop_stops(
        self,
        client: JobClient,
        worker: Worker,
        report_job: JobDefinition,
        performed,
    ):
        """Test the polling loop drains the queue and stops on request."""
        await client.enqueue(report_job, "acct-1")
        await client.enqueue(report_job, "acct-2")

        task = asyncio.create_task(worker.start())
        for _ in range(100):
            if len(performed.calls) == 2:
                break
            await asyncio.sleep(0.01)
        await worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert sorted(performed.calls) == [("acct-1",), ("acct-2",)]

    async def test_work_once_at_info_level(
        self,
        client: JobClient,
        worker: Worker,
        store: MemoryStore,
        job_queue: MemoryJobQueue,
        report_job: JobDefinition,
        performed,
        caplog: pytest.LogCaptureFixture,
    ):
        """Test jobs run and locks are released with INFO records enabled."""
        caplog.set_level(logging.INFO, logger="joblock")

        await client.enqueue(report_job, "acct-1")
        await job_queue.push("default", JobPayload(job="Ghost", args=[1]))

        assert await worker.work_once() is True
        assert await worker.work_once() is True

        assert performed.calls == [("acct-1",)]
        assert len(store) == 0
        assert any(r.getMessage() == "Executing job" for r in caplog.records)
        assert any(r.getMessage() == "No job registered for payload" for r in caplog.records)

    async def test_nan_argument_refused_at_enqueue(
        self,
        client: JobClient,
        store: MemoryStore,
        job_queue: MemoryJobQueue,
        report_job: JobDefinition,
    ):
        """Test an argument that does not survive the queue is refused up front."""
        with pytest.raises(LockKeyError):
            await client.enqueue(report_job, float("nan"))

        assert len(store) == 0
        assert await job_queue.size("default") == 0

    async def test_uuid_argument_with_custom_lock(
        self,
        client: JobClient,
        worker: Worker,
        store: MemoryStore,
        recorder,
    ):
        """Test a custom lock sees the same arguments on both sides of the queue."""
        job = add_job(
            JobDefinition(
                name="Graph",
                perform=recorder,
                lock=lambda graph_id: f"network-{graph_id}",
            )
        )
        graph_id = uuid.uuid4()
        try:
            assert await client.enqueue(job, graph_id) is True
            assert f"network-{graph_id}" in store

            assert await worker.work_once() is True
        finally:
            unregister_job(job.name)

        assert recorder.calls == [(str(graph_id),)]
        assert len(store) == 0

    async def test_custom_lock_needing_raw_uuid_fails_at_enqueue(
        self,
        client: JobClient,
        store: MemoryStore,
        job_queue: MemoryJobQueue,
    ):
        """Test a lock that only works on the caller's objects fails before locking."""
        job = add_job(
            JobDefinition(
                name="Graph",
                perform=lambda graph_id: None,
                lock=lambda graph_id: f"network-{graph_id.hex}",
            )
        )
        try:
            with pytest.raises(AttributeError):
                await client.enqueue(job, uuid.uuid4())
        finally:
            unregister_job(job.name)

        assert len(store) == 0
        assert await job_queue.size("default") == 0

    async def test_unkeyable_payload_does_not_stop_worker(
        self,
        worker: Worker,
        job_queue: MemoryJobQueue,
        report_job: JobDefinition,
        performed,
    ):
        """Test a payload whose lock key cannot be computed is logged and skipped."""
        await job_queue.push("default", JobPayload(job="Report", args=[None]))

        assert await worker.work_once() is True
        assert performed.calls == []

    def test_zero_poll_interval_is_respected(self, worker: Worker):
        """Test an explicit zero poll interval is not replaced by the default."""
        assert Worker(worker.coordinator, worker.queue, poll_interval=0).poll_interval == 0
