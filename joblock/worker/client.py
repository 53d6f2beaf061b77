"""
Producer side of the reference dispatcher.

Acquires the job's lock before a payload reaches the queue and skips the
push when the lock is already held.
"""

import logging
from typing import Any

from joblock.coordinator import JobLockCoordinator
from joblock.observability.metrics import MetricsCollector, get_metrics
from joblock.registry import get_job
from joblock.types.job import JobDefinition, JobPayload
from joblock.types.lock import Enqueued, EnqueueResult, format_timestamp, utcnow
from joblock.worker.queue import JobQueue

logger = logging.getLogger(__name__)


class JobClient:
    """Enqueues locked jobs."""

    def __init__(
        self,
        coordinator: JobLockCoordinator,
        queue: JobQueue,
        metrics: MetricsCollector | None = None,
    ):
        self.coordinator = coordinator
        self.queue = queue
        self._metrics = metrics or get_metrics()

    @staticmethod
    def _resolve(job: JobDefinition | str) -> JobDefinition:
        return get_job(job) if isinstance(job, str) else job

    @staticmethod
    def _build_payload(job: JobDefinition, args: tuple[Any, ...]) -> JobPayload:
        """
        Build the payload as the worker will read it back.

        The lock key is computed from these decoded arguments, not the
        caller's, so producer and worker derive the same key. Arguments
        that change on the way through JSON (UUIDs become strings, NaN
        becomes null) are seen in their decoded form at enqueue time.
        """
        payload = JobPayload(
            job=job.name,
            args=list(args),
            enqueued_at=format_timestamp(utcnow()),
        )
        return JobPayload.model_validate_json(payload.model_dump_json())

    async def _push(self, job: JobDefinition, payload: JobPayload) -> None:
        try:
            await self.queue.push(job.queue, payload)
        except Exception as e:
            # The payload never reached the queue, so nothing will release
            # the lock we just took.
            logger.exception("Failed to push job", extra={"job": job.name})
            await self.coordinator.on_failure_lock(job, e, *payload.args)
            raise

        self._metrics.record_job_enqueued(job.queue)
        logger.info("Job enqueued", extra={"job": job.name, "queue": job.queue})

    async def enqueue(self, job: JobDefinition | str, *args: Any) -> bool:
        """
        Enqueue a job unless its lock is held.

        Returns:
            True if the job was enqueued, False if it was locked.

        Raises:
            LockKeyError: If the decoded arguments have no lock key.
            Exception: Whatever the job's enqueue failure handler raises.
        """
        job = self._resolve(job)
        payload = self._build_payload(job, args)
        if not await self.coordinator.before_enqueue_lock(job, *payload.args):
            return False
        await self._push(job, payload)
        return True

    async def try_enqueue(self, job: JobDefinition | str, *args: Any) -> EnqueueResult:
        """Enqueue a job unless its lock is held, reporting the outcome as a value."""
        job = self._resolve(job)
        payload = self._build_payload(job, args)
        result = await self.coordinator.try_enqueue(job, *payload.args)
        if isinstance(result, Enqueued):
            await self._push(job, payload)
        return result
