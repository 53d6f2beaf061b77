"""
Store connection management.
Creates the configured key-value store and the Redis client behind it.
"""

import logging

from redis.asyncio import Redis

from joblock.config import get_settings
from joblock.constants import StoreBackend
from joblock.store.base import KeyValueStore
from joblock.store.memory import MemoryStore
from joblock.store.redis import RedisStore

logger = logging.getLogger(__name__)

# Global instances
_redis: Redis | None = None
_store: KeyValueStore | None = None


def get_redis() -> Redis:
    """
    Get or create the async Redis client.

    Returns:
        Redis: The client, configured from settings.
    """
    global _redis
    if _redis is None:
        settings = get_settings()
        _redis = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )
    return _redis


def create_store(backend: str | None = None) -> KeyValueStore:
    """
    Create a store for the given backend.

    Args:
        backend: "redis" or "memory". Defaults to the configured backend.

    Raises:
        ValueError: If the backend is unknown.
    """
    backend = backend or get_settings().store_backend
    if backend == StoreBackend.REDIS:
        return RedisStore(get_redis())
    if backend == StoreBackend.MEMORY:
        return MemoryStore()
    raise ValueError(f"Unknown store backend: {backend}")


def init_store() -> KeyValueStore:
    """
    Initialize the process-wide store.
    Should be called on application startup.
    """
    global _store
    if _store is None:
        _store = create_store()
        logger.info(
            "Lock store initialized",
            extra={"backend": get_settings().store_backend},
        )
    return _store


def get_store() -> KeyValueStore:
    """
    Get the process-wide store.

    Raises:
        RuntimeError: If the store is not initialized.
    """
    if _store is None:
        raise RuntimeError("Store not initialized. Call init_store() first.")
    return _store


async def close_store() -> None:
    """
    Close the store connection.
    Should be called on application shutdown.
    """
    global _redis, _store
    if _redis is not None:
        await _redis.aclose()
        _redis = None
    if _store is not None:
        _store = None
        logger.info("Lock store closed")
