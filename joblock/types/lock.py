"""
Lock-related type definitions.
"""

from dataclasses import dataclass
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render an acquisition timestamp the way it is stored."""
    return moment.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse a stored acquisition timestamp.

    Returns None for missing or unparseable values; records written by
    other tools may hold arbitrary strings.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class LockRecord:
    """
    A lock record as found in the store.

    The value is the acquisition timestamp. It is informational only and
    never used to expire the lock.
    """

    key: str
    timestamp: str | None

    @property
    def acquired_at(self) -> datetime | None:
        """Parsed acquisition time, if the stored value is a timestamp."""
        return parse_timestamp(self.timestamp)

    @property
    def age_seconds(self) -> float | None:
        """Seconds since acquisition, or None if unknown."""
        acquired_at = self.acquired_at
        if acquired_at is None:
            return None
        return max(0.0, (utcnow() - acquired_at).total_seconds())


@dataclass(frozen=True)
class Enqueued:
    """Lock acquired; the job may be placed on the queue."""

    key: str
    timestamp: str

    @property
    def accepted(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    """
    Lock already held; the job must not be enqueued.

    ``cause`` is the error raised by the enqueue failure handler, if any.
    """

    key: str
    timestamp: str | None
    cause: BaseException | None = None

    @property
    def accepted(self) -> bool:
        return False


EnqueueResult = Enqueued | Rejected
