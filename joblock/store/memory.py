"""
In-process key-value store.

Only provides mutual exclusion between tasks and threads of a single
process. Used for tests and single-process deployments.
"""

import fnmatch
import threading


class MemoryStore:
    """Dictionary-backed store with an atomic set-if-absent."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    async def set_if_absent(self, key: str, value: str) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    async def scan(self, pattern: str) -> list[str]:
        with self._lock:
            return sorted(k for k in self._data if fnmatch.fnmatchcase(k, pattern))

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def clear(self) -> None:
        """Remove every key."""
        with self._lock:
            self._data.clear()
