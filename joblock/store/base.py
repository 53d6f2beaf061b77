"""
Key-value store contract required by the lock coordinator.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Minimal shared store used for lock records.

    ``set_if_absent`` must be a single atomic operation at the store;
    mutual exclusion depends on it. Implementations raise
    ``LockStoreError`` when the backend fails.
    """

    async def set_if_absent(self, key: str, value: str) -> bool:
        """Create ``key`` only if absent. Returns True iff it was created."""
        ...

    async def get(self, key: str) -> str | None:
        """Return the value of ``key`` or None if absent."""
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key``. Absent keys are not an error."""
        ...

    async def scan(self, pattern: str) -> list[str]:
        """Return keys matching a glob-style pattern."""
        ...
