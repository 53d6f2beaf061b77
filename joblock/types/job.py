"""
Job-related type definitions.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from joblock.constants import DEFAULT_QUEUE

# perform(*args) may be a plain function or a coroutine function
JobPerform = Callable[..., Any | Awaitable[Any]]

# lock(*args) -> lock key
LockKeyFunc = Callable[..., str]

# handle_enqueue_failure(lock_key, lock_timestamp)
EnqueueFailureHandler = Callable[[str, str | None], Any | Awaitable[Any]]


@dataclass(frozen=True)
class JobDefinition:
    """
    A named, stateless description of executable work.

    ``lock`` and ``handle_enqueue_failure`` are optional overrides. When
    absent the coordinator falls back to the default key derivation and
    the no-op failure handler.
    """

    name: str
    perform: JobPerform
    lock: LockKeyFunc | None = None
    handle_enqueue_failure: EnqueueFailureHandler | None = None
    queue: str = DEFAULT_QUEUE


class JobPayload(BaseModel):
    """
    Job payload as stored on a queue.
    Identifies the job by name and carries its enqueue arguments.
    """

    job: str
    args: list[Any] = Field(default_factory=list)
    enqueued_at: str | None = None
