"""
Lock key derivation.

The default key is the job name followed by the enqueue arguments joined
with a separator, e.g. ``lock:Report-acct-1``. Arguments are rendered with
``str()``, so only types whose string form is unambiguous are accepted.
The separator is not escaped: ``("a-b",)`` and ``("a", "b")`` map to the
same key. Jobs that need collision-free keys should supply their own
``lock`` function.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any
from uuid import UUID

from joblock.constants import DEFAULT_LOCK_KEY_PREFIX, DEFAULT_LOCK_KEY_SEPARATOR
from joblock.errors import LockKeyError

KEY_ARG_TYPES: tuple[type, ...] = (str, int, float, Decimal, UUID)


def format_key_arg(arg: Any) -> str:
    """
    Render one enqueue argument for use in a lock key.

    Raises:
        LockKeyError: If the argument is not a supported scalar type.
    """
    # bool is an int subclass; render it like the other scalars
    if isinstance(arg, KEY_ARG_TYPES):
        return str(arg)
    raise LockKeyError(
        f"Cannot derive a lock key from argument of type {type(arg).__name__}; "
        f"override the job's lock function"
    )


def default_lock_key(
    name: str,
    args: Iterable[Any],
    prefix: str = DEFAULT_LOCK_KEY_PREFIX,
    separator: str = DEFAULT_LOCK_KEY_SEPARATOR,
) -> str:
    """
    Derive the default lock key for a job and its arguments.

    Args:
        name: Job name.
        args: Enqueue arguments, in order.
        prefix: Key namespace prefix.
        separator: Joins the name and each argument.

    Returns:
        The lock key.

    Example:
        >>> default_lock_key("Report", ["acct-1"])
        'lock:Report-acct-1'
    """
    rendered = separator.join(format_key_arg(arg) for arg in args)
    return f"{prefix}{name}{separator}{rendered}"
