"""
Store module.
Contains the key-value store contract and its implementations.
"""

from joblock.store.base import KeyValueStore
from joblock.store.connection import (
    close_store,
    create_store,
    get_redis,
    get_store,
    init_store,
)
from joblock.store.memory import MemoryStore
from joblock.store.redis import RedisStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
    "create_store",
    "get_redis",
    "get_store",
    "init_store",
    "close_store",
]
