"""
Redis-backed key-value store.

Acquisition maps to ``SET key value NX``, which Redis executes atomically.
Redis client errors are re-raised as LockStoreError.
"""

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from joblock.constants import StoreOperation
from joblock.errors import LockStoreError

logger = logging.getLogger(__name__)


class RedisStore:
    """
    Store implementation over a ``redis.asyncio.Redis`` client.

    The client must be created with ``decode_responses=True``.
    """

    def __init__(self, client: Redis):
        """
        Initialize the store.

        Args:
            client: An async Redis client.
        """
        self._client = client

    @property
    def client(self) -> Redis:
        """The underlying Redis client."""
        return self._client

    async def set_if_absent(self, key: str, value: str) -> bool:
        try:
            created = await self._client.set(key, value, nx=True)
        except RedisError as e:
            raise LockStoreError(StoreOperation.SET_IF_ABSENT, key, str(e)) from e
        return bool(created)

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise LockStoreError(StoreOperation.GET, key, str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise LockStoreError(StoreOperation.DELETE, key, str(e)) from e

    async def scan(self, pattern: str) -> list[str]:
        try:
            return sorted([key async for key in self._client.scan_iter(match=pattern)])
        except RedisError as e:
            raise LockStoreError(StoreOperation.SCAN, pattern, str(e)) from e

    async def ping(self) -> bool:
        """Check connectivity to Redis."""
        try:
            return bool(await self._client.ping())
        except RedisError:
            logger.warning("Redis ping failed", exc_info=True)
            return False
