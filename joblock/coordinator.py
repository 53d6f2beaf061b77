"""
Job lock coordinator.

Implements the lock lifecycle around a job:

- ``before_enqueue_lock``: atomically create the lock record before the job
  is queued; refuse the enqueue if it already exists
- ``around_perform_lock``: run the job and always delete the record after
- ``on_failure_lock``: delete the record when a terminal failure is reported

The coordinator holds no state of its own. Every call recomputes the lock
key and makes a single round trip to the shared store. There is no waiting
and no expiry: a lock that is never released stays until removed by hand
(see ``joblock.inspector``).
"""

import inspect
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from joblock.config import get_settings
from joblock.constants import (
    SPAN_ACQUIRE_LOCK,
    SPAN_PERFORM_JOB,
    SPAN_RELEASE_LOCK,
    ReleasePath,
    StoreOperation,
)
from joblock.errors import EnqueueFailureError, LockStoreError
from joblock.keys import default_lock_key
from joblock.observability.logging import log_context
from joblock.observability.metrics import MetricsCollector, get_metrics
from joblock.observability.tracing import get_tracer
from joblock.store.base import KeyValueStore
from joblock.types.job import JobDefinition
from joblock.types.lock import Enqueued, EnqueueResult, Rejected, format_timestamp, utcnow

logger = logging.getLogger(__name__)


def default_handle_enqueue_failure(lock_key: str, lock_timestamp: str | None) -> None:
    """Default contention handler: do nothing, the enqueue reports False."""


def raise_on_enqueue_failure(lock_key: str, lock_timestamp: str | None) -> None:
    """Contention handler that escalates to EnqueueFailureError."""
    raise EnqueueFailureError(lock_key, lock_timestamp)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class JobLockCoordinator:
    """
    Lock hooks for job definitions, bound to a shared store.

    Example:
        coordinator = JobLockCoordinator(RedisStore(client))

        if await coordinator.before_enqueue_lock(job, "acct-1"):
            await queue.push(job, "acct-1")

        # in the worker
        await coordinator.around_perform_lock(job, "acct-1")
    """

    def __init__(
        self,
        store: KeyValueStore,
        metrics: MetricsCollector | None = None,
        key_prefix: str | None = None,
        key_separator: str | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            store: Shared store holding lock records.
            metrics: Metrics collector. Defaults to the global collector.
            key_prefix: Prefix for default lock keys.
            key_separator: Separator for default lock keys.
        """
        settings = get_settings()

        self.store = store
        self.key_prefix = settings.lock_key_prefix if key_prefix is None else key_prefix
        self.key_separator = (
            settings.lock_key_separator if key_separator is None else key_separator
        )
        self._metrics = metrics or get_metrics()

    def lock_key(self, job: JobDefinition, *args: Any) -> str:
        """
        Compute the lock key for a job and its enqueue arguments.

        Uses the job's own ``lock`` function when it has one, otherwise the
        default ``<prefix><name><sep><arg><sep><arg>...`` derivation.
        """
        if job.lock is not None:
            return job.lock(*args)
        return default_lock_key(job.name, args, self.key_prefix, self.key_separator)

    async def handle_enqueue_failure(
        self,
        job: JobDefinition,
        lock_key: str,
        lock_timestamp: str | None,
    ) -> None:
        """Invoke the job's contention handler, or the default no-op."""
        handler = job.handle_enqueue_failure or default_handle_enqueue_failure
        await _maybe_await(handler(lock_key, lock_timestamp))

    async def _acquire(self, job: JobDefinition, args: tuple[Any, ...]) -> EnqueueResult:
        """
        Try to create the lock record.

        Raises:
            LockStoreError: If the store fails. Nothing is enqueued then.
        """
        lock_key = self.lock_key(job, *args)
        timestamp = format_timestamp(utcnow())

        with get_tracer().start_as_current_span(SPAN_ACQUIRE_LOCK) as span:
            span.set_attribute("job", job.name)
            span.set_attribute("lock_key", lock_key)

            try:
                acquired = await self.store.set_if_absent(lock_key, timestamp)
                if acquired:
                    span.set_attribute("acquired", True)
                    self._metrics.record_lock_acquired(job.name)
                    logger.debug(
                        "Lock acquired",
                        extra={"job": job.name, "lock_key": lock_key},
                    )
                    return Enqueued(key=lock_key, timestamp=timestamp)

                lock_timestamp = await self.store.get(lock_key)
            except LockStoreError as e:
                self._metrics.record_store_error(e.operation)
                logger.error(
                    "Store error while acquiring lock",
                    extra={"job": job.name, "lock_key": lock_key},
                )
                raise

            span.set_attribute("acquired", False)

        self._metrics.record_lock_contention(job.name)
        logger.info(
            "Lock already held, enqueue refused",
            extra={"job": job.name, "lock_key": lock_key, "locked_since": lock_timestamp},
        )
        return Rejected(key=lock_key, timestamp=lock_timestamp)

    async def before_enqueue_lock(self, job: JobDefinition, *args: Any) -> bool:
        """
        Acquire the job's lock before it is enqueued.

        Returns:
            True if the lock was acquired and the job may be enqueued,
            False if another job holds the lock.

        Raises:
            LockStoreError: If the store fails.
            Exception: Whatever the job's enqueue failure handler raises,
                unchanged.
        """
        result = await self._acquire(job, args)
        if isinstance(result, Rejected):
            await self.handle_enqueue_failure(job, result.key, result.timestamp)
            return False
        return True

    async def try_enqueue(self, job: JobDefinition, *args: Any) -> EnqueueResult:
        """
        Acquire the job's lock and report the outcome as a value.

        Like ``before_enqueue_lock``, but an error raised by the contention
        handler is returned as ``Rejected.cause`` instead of propagating.
        Store errors still raise.
        """
        result = await self._acquire(job, args)
        if isinstance(result, Rejected):
            try:
                await self.handle_enqueue_failure(job, result.key, result.timestamp)
            except Exception as e:
                return Rejected(key=result.key, timestamp=result.timestamp, cause=e)
        return result

    async def _release(self, job: JobDefinition, lock_key: str, path: ReleasePath) -> None:
        """
        Delete the lock record.

        Store errors are logged and counted, never raised: a missed release
        can only leave a stuck lock, and must not mask the job's own outcome.
        """
        with get_tracer().start_as_current_span(SPAN_RELEASE_LOCK) as span:
            span.set_attribute("job", job.name)
            span.set_attribute("lock_key", lock_key)
            span.set_attribute("path", str(path))

            try:
                await self.store.delete(lock_key)
            except LockStoreError:
                self._metrics.record_store_error(StoreOperation.DELETE)
                logger.exception(
                    "Failed to release lock",
                    extra={"job": job.name, "lock_key": lock_key, "path": str(path)},
                )
                return

        self._metrics.record_lock_released(job.name, path)
        logger.debug(
            "Lock released",
            extra={"job": job.name, "lock_key": lock_key, "path": str(path)},
        )

    @asynccontextmanager
    async def locked(self, job: JobDefinition, *args: Any) -> AsyncIterator[str]:
        """
        Scope that releases the job's lock on every exit path.

        Records logged inside the scope carry the job name and lock key.

        Yields:
            The lock key.
        """
        lock_key = self.lock_key(job, *args)
        try:
            with log_context(job=job.name, lock_key=lock_key):
                yield lock_key
        finally:
            await self._release(job, lock_key, ReleasePath.PERFORM)

    async def around_perform_lock(self, job: JobDefinition, *args: Any) -> Any:
        """
        Run the job's ``perform`` and release its lock afterwards.

        The lock is released whether ``perform`` returns or raises; its
        error propagates unchanged after the release.

        Returns:
            Whatever ``perform`` returned.
        """
        start_time = time.monotonic()
        status = "failed"

        async with self.locked(job, *args) as lock_key:
            with get_tracer().start_as_current_span(SPAN_PERFORM_JOB) as span:
                span.set_attribute("job", job.name)
                span.set_attribute("lock_key", lock_key)
                try:
                    result = await _maybe_await(job.perform(*args))
                    status = "succeeded"
                    return result
                finally:
                    self._metrics.record_job_duration(
                        job.name, status, time.monotonic() - start_time
                    )

    async def on_failure_lock(self, job: JobDefinition, error: BaseException, *args: Any) -> None:
        """
        Release the job's lock after a reported terminal failure.

        Safe to call when the lock is already gone.
        """
        lock_key = self.lock_key(job, *args)
        logger.info(
            "Releasing lock after job failure",
            extra={"job": job.name, "lock_key": lock_key, "error": repr(error)},
        )
        await self._release(job, lock_key, ReleasePath.FAILURE)
