"""
Reference dispatcher.
Wires the lock hooks into a producer client and a polling worker.
"""

from joblock.worker.client import JobClient
from joblock.worker.main import Worker
from joblock.worker.queue import JobQueue, MemoryJobQueue, RedisJobQueue, create_queue

__all__ = [
    "JobClient",
    "Worker",
    "JobQueue",
    "MemoryJobQueue",
    "RedisJobQueue",
    "create_queue",
]
