"""
Lock inspector.

Lock records never expire. A worker that dies before either release path
runs leaves its lock behind, and every later enqueue of that job is
refused. The inspector lists lock records with their age so an operator
can spot such locks and release them. It never releases anything on its
own.

Only keys under the lock key prefix are scanned. Jobs with a custom
``lock`` that returns keys outside the prefix need a matching pattern in
``INSPECTOR_PATTERNS`` (or the ``patterns`` argument) to be listed.
"""

import argparse
import asyncio
import logging

from joblock.config import get_settings
from joblock.observability.logging import setup_logging
from joblock.store import close_store, init_store
from joblock.store.base import KeyValueStore
from joblock.types.lock import LockRecord

logger = logging.getLogger(__name__)


class LockInspector:
    """Read-mostly view over the lock records in a store."""

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str | None = None,
        stale_after_seconds: int | None = None,
        patterns: list[str] | None = None,
    ):
        """
        Initialize the inspector.

        Args:
            store: Store holding the lock records.
            key_prefix: Prefix shared by lock keys.
            stale_after_seconds: Age after which a lock is reported as stale.
            patterns: Extra scan patterns for keys outside the prefix.
        """
        settings = get_settings()
        self.store = store
        self.key_prefix = settings.lock_key_prefix if key_prefix is None else key_prefix
        self.stale_after = (
            settings.inspector_stale_after_seconds
            if stale_after_seconds is None
            else stale_after_seconds
        )
        extra = settings.inspector_patterns if patterns is None else patterns
        self.patterns = [f"{self.key_prefix}*", *extra]

    async def list_locks(self) -> list[LockRecord]:
        """
        List every lock record matching the inspector's patterns.

        A key matched by several patterns is listed once. Records deleted
        between the scan and the read are skipped.
        """
        keys: dict[str, None] = {}
        for pattern in self.patterns:
            keys.update(dict.fromkeys(await self.store.scan(pattern)))

        records = []
        for key in keys:
            timestamp = await self.store.get(key)
            if timestamp is None:
                continue
            records.append(LockRecord(key=key, timestamp=timestamp))
        return records

    async def stale_locks(self, older_than_seconds: float | None = None) -> list[LockRecord]:
        """
        List lock records older than a threshold.

        Records whose value is not a timestamp are reported as stale, since
        their age cannot be known.
        """
        threshold = self.stale_after if older_than_seconds is None else older_than_seconds
        stale = []
        for record in await self.list_locks():
            age = record.age_seconds
            if age is None or age >= threshold:
                stale.append(record)
        return stale

    async def release(self, key: str) -> bool:
        """
        Delete a lock record by hand.

        Returns:
            True if a record existed.
        """
        existed = await self.store.get(key) is not None
        await self.store.delete(key)
        logger.warning("Lock released manually", extra={"lock_key": key, "existed": existed})
        return existed

    async def run_once(self) -> list[LockRecord]:
        """Log every stale lock once (for cron-style execution)."""
        stale = await self.stale_locks()
        for record in stale:
            logger.warning(
                "Stale lock",
                extra={
                    "lock_key": record.key,
                    "locked_since": record.timestamp,
                    "age_seconds": record.age_seconds,
                },
            )
        logger.info(f"Found {len(stale)} stale locks")
        return stale


async def run_async(release: list[str], older_than: float | None) -> None:
    """Report stale locks, or release the given keys."""
    setup_logging()
    store = init_store()
    inspector = LockInspector(store)

    try:
        if release:
            for key in release:
                await inspector.release(key)
        elif older_than is not None:
            for record in await inspector.stale_locks(older_than):
                logger.warning(
                    "Stale lock",
                    extra={"lock_key": record.key, "locked_since": record.timestamp},
                )
        else:
            await inspector.run_once()
    finally:
        await close_store()


def run() -> None:
    """Run the inspector."""
    parser = argparse.ArgumentParser(description="Inspect and release job locks")
    parser.add_argument("--release", nargs="*", default=[], metavar="KEY")
    parser.add_argument("--older-than", type=float, default=None, metavar="SECONDS")
    args = parser.parse_args()

    asyncio.run(run_async(args.release, args.older_than))


if __name__ == "__main__":
    run()
