"""
Job definition registry.

Workers resolve queued payloads to job definitions by name, so every job
that can be enqueued must be registered in the worker process too.
"""

import logging
from collections.abc import Callable

from joblock.constants import DEFAULT_QUEUE
from joblock.coordinator import raise_on_enqueue_failure
from joblock.errors import JobNotFoundError
from joblock.types.job import (
    EnqueueFailureHandler,
    JobDefinition,
    JobPerform,
    LockKeyFunc,
)

logger = logging.getLogger(__name__)

# Job registry
_jobs: dict[str, JobDefinition] = {}


def register_job(
    name: str | None = None,
    *,
    queue: str = DEFAULT_QUEUE,
    lock: LockKeyFunc | None = None,
    handle_enqueue_failure: EnqueueFailureHandler | None = None,
    raise_on_contention: bool = False,
) -> Callable[[JobPerform], JobDefinition]:
    """
    Decorator that registers a perform function as a locked job.

    Args:
        name: Job name. Defaults to the function's ``__name__``.
        queue: Queue the job is placed on.
        lock: Custom lock key function, called with the enqueue arguments.
        handle_enqueue_failure: Custom contention handler.
        raise_on_contention: Use a handler that raises EnqueueFailureError.
            Ignored when ``handle_enqueue_failure`` is given.

    Returns:
        Decorator producing the registered JobDefinition.

    Example:
        # Only one network graph update at a time, whatever the repo
        @register_job("UpdateNetworkGraph", lock=lambda repo_id: "network-graph")
        async def update_network_graph(repo_id: int) -> None:
            ...
    """
    if handle_enqueue_failure is None and raise_on_contention:
        handle_enqueue_failure = raise_on_enqueue_failure

    def decorator(perform: JobPerform) -> JobDefinition:
        job = JobDefinition(
            name=name or perform.__name__,
            perform=perform,
            lock=lock,
            handle_enqueue_failure=handle_enqueue_failure,
            queue=queue,
        )
        add_job(job)
        return job

    return decorator


def add_job(job: JobDefinition) -> JobDefinition:
    """Register an already built job definition, replacing any with its name."""
    if job.name in _jobs:
        logger.warning(f"Replacing registered job: {job.name}")
    _jobs[job.name] = job
    logger.info(f"Registered job: {job.name}", extra={"queue": job.queue})
    return job


def get_job(name: str) -> JobDefinition:
    """
    Get a registered job by name.

    Raises:
        JobNotFoundError: If no job has that name.
    """
    try:
        return _jobs[name]
    except KeyError:
        raise JobNotFoundError(name) from None


def list_jobs() -> list[str]:
    """List all registered job names."""
    return list(_jobs.keys())


def unregister_job(name: str) -> None:
    """Remove a job from the registry, if present."""
    _jobs.pop(name, None)
