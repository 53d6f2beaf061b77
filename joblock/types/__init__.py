"""
Type definitions for job locking.
"""

from joblock.types.job import (
    EnqueueFailureHandler,
    JobDefinition,
    JobPayload,
    JobPerform,
    LockKeyFunc,
)
from joblock.types.lock import (
    Enqueued,
    EnqueueResult,
    LockRecord,
    Rejected,
)

__all__ = [
    # Job types
    "JobDefinition",
    "JobPayload",
    "JobPerform",
    "LockKeyFunc",
    "EnqueueFailureHandler",
    # Lock types
    "LockRecord",
    "Enqueued",
    "Rejected",
    "EnqueueResult",
]
