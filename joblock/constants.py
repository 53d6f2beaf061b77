"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class StoreBackend(StrEnum):
    """Supported key-value store backends."""

    REDIS = "redis"
    MEMORY = "memory"


class ReleasePath(StrEnum):
    """
    The two independent paths that delete a lock record.

    - PERFORM: cleanup after the wrapped execution region exits
    - FAILURE: terminal failure reported by the dispatch framework
    """

    PERFORM = "perform"
    FAILURE = "failure"


class StoreOperation(StrEnum):
    """Store operations, used to label store errors."""

    SET_IF_ABSENT = "set_if_absent"
    GET = "get"
    DELETE = "delete"
    SCAN = "scan"


# Default values
DEFAULT_LOCK_KEY_PREFIX = "lock:"
DEFAULT_LOCK_KEY_SEPARATOR = "-"
DEFAULT_QUEUE = "default"
DEFAULT_QUEUE_KEY_PREFIX = "queue:"

# Metrics names
METRIC_LOCKS_ACQUIRED = "locks_acquired_total"
METRIC_LOCK_CONTENTION = "lock_contention_total"
METRIC_LOCKS_RELEASED = "locks_released_total"
METRIC_LOCK_STORE_ERRORS = "lock_store_errors_total"
METRIC_JOBS_ENQUEUED = "jobs_enqueued_total"
METRIC_JOB_DURATION = "job_duration_seconds"

# Trace span names
SPAN_ACQUIRE_LOCK = "acquire_lock"
SPAN_RELEASE_LOCK = "release_lock"
SPAN_PERFORM_JOB = "perform_job"
