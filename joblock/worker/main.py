"""
Worker process for executing locked jobs.

The worker pops payloads from its queues, runs each job inside the lock
coordinator's cleanup region, and reports failures so the lock is released
on the failure path as well.
"""

import asyncio
import importlib
import logging
import os
import signal
from typing import Any

from prometheus_client import start_http_server

from joblock.config import get_settings
from joblock.coordinator import JobLockCoordinator
from joblock.errors import JobNotFoundError
from joblock.observability.logging import log_context, setup_logging
from joblock.registry import get_job
from joblock.store import RedisStore, close_store, init_store
from joblock.types.job import JobDefinition, JobPayload
from joblock.worker.queue import JobQueue, create_queue

logger = logging.getLogger(__name__)


class Worker:
    """
    Job worker that polls queues and executes jobs one at a time.

    Features:
    - Lock released after every run, whatever the outcome
    - Failure hook called for jobs that raise
    - Graceful shutdown on SIGTERM/SIGINT

    A job that raises inside the wrapped region is released twice: once by
    ``around_perform_lock`` and again by ``on_failure_lock``. A producer that
    takes the same lock between the two deletes loses it to the second one,
    and a duplicate of that job can then be enqueued.
    """

    def __init__(
        self,
        coordinator: JobLockCoordinator,
        queue: JobQueue,
        queues: list[str] | None = None,
        worker_id: str | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            coordinator: Lock coordinator shared with producers' store.
            queue: Source of job payloads.
            queues: Queue names to poll, in priority order.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            poll_interval: Seconds between polls when all queues are empty.
        """
        settings = get_settings()

        self.coordinator = coordinator
        self.queue = queue
        self.queues = queues or settings.worker_queues
        self.worker_id = worker_id or settings.worker_id or f"{os.uname().nodename}-{os.getpid()}"
        self.poll_interval = (
            settings.worker_poll_interval_seconds if poll_interval is None else poll_interval
        )

        self._running = False

    async def start(self) -> None:
        """Start the polling loop and run until stopped."""
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "queues": self.queues}
        )

        self._running = True

        while self._running:
            try:
                if not await self.work_once():
                    await asyncio.sleep(self.poll_interval)
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id}
                )
                await asyncio.sleep(self.poll_interval)

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})

    async def stop(self) -> None:
        """Stop the worker after the current job."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    async def work_once(self) -> bool:
        """
        Pop and execute a single job.

        Returns:
            True if a payload was taken from a queue, False if all were empty.
        """
        popped = await self.queue.pop(self.queues)
        if popped is None:
            return False

        queue_name, payload = popped
        try:
            job = get_job(payload.job)
        except JobNotFoundError:
            # Without the definition the lock key cannot be computed, so the
            # lock taken at enqueue time stays until released by hand.
            logger.error(
                "No job registered for payload",
                extra={"job": payload.job, "queue": queue_name, "job_args": payload.args},
            )
            return True

        await self.perform(job, payload)
        return True

    async def perform(self, job: JobDefinition, payload: JobPayload) -> Any:
        """
        Execute a job with its lock hooks.

        Errors raised by the job are logged and reported through the
        failure hook; they do not stop the worker.

        Returns:
            The job's return value, or None if it failed.
        """
        args = payload.args

        with log_context(worker_id=self.worker_id, job=job.name):
            logger.info("Executing job", extra={"job_args": args})

            try:
                result = await self.coordinator.around_perform_lock(job, *args)
            except Exception as e:
                logger.exception("Job failed", extra={"error": str(e)})
                try:
                    await self.coordinator.on_failure_lock(job, e, *args)
                except Exception:
                    logger.exception("Failure hook could not release lock")
                return None

            logger.info("Job completed successfully")
            return result


def load_job_modules(modules: list[str]) -> None:
    """Import the modules that register the worker's jobs."""
    for module in modules:
        importlib.import_module(module)
        logger.info(f"Loaded job module: {module}")


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    settings = get_settings()

    load_job_modules(settings.worker_job_modules)
    start_http_server(settings.prometheus_port)

    store = init_store()
    if isinstance(store, RedisStore) and not await store.ping():
        logger.warning("Redis not reachable at startup", extra={"redis_url": settings.redis_url})

    worker = Worker(JobLockCoordinator(store), create_queue())

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_store()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
