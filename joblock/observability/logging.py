"""
Structured logging using structlog.

Every record, whether it comes from structlog or from a stdlib logger with
``extra=`` fields, carries the job and lock key bound by ``log_context``.
Records that mention a held lock (``locked_since``) also get its age.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace

from joblock.config import get_settings
from joblock.types.lock import parse_timestamp, utcnow


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the current OpenTelemetry trace and span ids, if a span is recording."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_lock_age(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add ``locked_for_seconds`` next to a ``locked_since`` timestamp.

    Contention records then show how long the lock has been held, which is
    how stuck locks are noticed in the logs.
    """
    acquired_at = parse_timestamp(event_dict.get("locked_since"))
    if acquired_at is not None:
        event_dict["locked_for_seconds"] = round((utcnow() - acquired_at).total_seconds(), 3)
    return event_dict


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Route structlog and stdlib logging through one processor chain.

    Args:
        level: Log level name. Defaults to ``LOG_LEVEL``.
        log_format: "json" or "console". Defaults to ``LOG_FORMAT``.
    """
    settings = get_settings()
    level = level or settings.log_level
    log_format = log_format or settings.log_format

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        add_lock_age,
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("redis").setLevel(logging.WARNING)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """
    Bind fields such as ``job``, ``lock_key`` or ``worker_id`` to every
    record logged inside the block, including the job's own logs.

    Fields bound by an enclosing block are restored on exit.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
