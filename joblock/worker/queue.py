"""
Job queues used by the reference dispatcher.

Payloads are stored as JSON in per-queue FIFO lists, ``queue:<name>`` on
Redis. The queue knows nothing about locks; the client and the worker
call the coordinator hooks around it.
"""

from collections import defaultdict, deque
from typing import Protocol

from redis.asyncio import Redis

from joblock.config import get_settings
from joblock.constants import DEFAULT_QUEUE_KEY_PREFIX, StoreBackend
from joblock.store.connection import get_redis
from joblock.types.job import JobPayload


class JobQueue(Protocol):
    """FIFO job payload queues, addressed by name."""

    async def push(self, queue: str, payload: JobPayload) -> None:
        ...

    async def pop(self, queues: list[str]) -> tuple[str, JobPayload] | None:
        """Pop the next payload from the first non-empty queue, in order."""
        ...

    async def size(self, queue: str) -> int:
        ...


class MemoryJobQueue:
    """In-process queues for tests and single-process use."""

    def __init__(self) -> None:
        self._queues: dict[str, deque[str]] = defaultdict(deque)

    async def push(self, queue: str, payload: JobPayload) -> None:
        self._queues[queue].append(payload.model_dump_json())

    async def pop(self, queues: list[str]) -> tuple[str, JobPayload] | None:
        for queue in queues:
            pending = self._queues.get(queue)
            if pending:
                return queue, JobPayload.model_validate_json(pending.popleft())
        return None

    async def size(self, queue: str) -> int:
        return len(self._queues.get(queue, ()))


class RedisJobQueue:
    """Redis list backed queues."""

    def __init__(self, client: Redis, key_prefix: str = DEFAULT_QUEUE_KEY_PREFIX):
        """
        Initialize the queue.

        Args:
            client: Async Redis client created with ``decode_responses=True``.
            key_prefix: Prefix of the Redis list keys.
        """
        self._client = client
        self._key_prefix = key_prefix

    def _key(self, queue: str) -> str:
        return f"{self._key_prefix}{queue}"

    async def push(self, queue: str, payload: JobPayload) -> None:
        await self._client.rpush(self._key(queue), payload.model_dump_json())

    async def pop(self, queues: list[str]) -> tuple[str, JobPayload] | None:
        for queue in queues:
            raw = await self._client.lpop(self._key(queue))
            if raw is not None:
                return queue, JobPayload.model_validate_json(raw)
        return None

    async def size(self, queue: str) -> int:
        return await self._client.llen(self._key(queue))


def create_queue(backend: str | None = None) -> JobQueue:
    """
    Create a job queue matching the store backend.

    Raises:
        ValueError: If the backend is unknown.
    """
    settings = get_settings()
    backend = backend or settings.store_backend
    if backend == StoreBackend.REDIS:
        return RedisJobQueue(get_redis(), settings.queue_key_prefix)
    if backend == StoreBackend.MEMORY:
        return MemoryJobQueue()
    raise ValueError(f"Unknown queue backend: {backend}")
