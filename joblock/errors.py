"""
Exception hierarchy for job locking.
"""


class JobLockError(Exception):
    """Base class for all job lock errors."""


class EnqueueFailureError(JobLockError):
    """
    Raised when a job could not be enqueued because its lock is held.

    Not raised by the coordinator itself: contention is reported as a
    ``False`` return unless the job's enqueue failure handler raises this
    (or any other) error.
    """

    def __init__(self, lock_key: str, lock_timestamp: str | None = None):
        self.lock_key = lock_key
        self.lock_timestamp = lock_timestamp
        super().__init__(
            f"Job already locked: {lock_key} (since {lock_timestamp or 'unknown'})"
        )


class LockKeyError(JobLockError, TypeError):
    """Raised when an argument has no unambiguous string form for a lock key."""


class LockStoreError(JobLockError):
    """Raised when the key-value store fails during a lock operation."""

    def __init__(self, operation: str, key: str, message: str):
        self.operation = operation
        self.key = key
        super().__init__(f"Store {operation} failed for {key}: {message}")


class JobNotFoundError(JobLockError, LookupError):
    """Raised when a job name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No job registered with name: {name}")
