"""
Distributed Job Locks

Best-effort mutual exclusion for background jobs: at most one job per
lock key is queued or running at a time, across every producer and worker
sharing the same key-value store.
"""

__version__ = "1.0.0"
