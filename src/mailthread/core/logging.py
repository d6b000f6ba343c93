"""structlog setup for mailthread.

Library code only ever calls get_logger(); configure_logging() is for
applications (the CLI calls it once per invocation). Until it is called,
structlog's defaults apply.

Every event logged while a batch is threaded carries a ``threading_run_id``
field so the thread_created / thread_matched / threads_built events of one
run can be grouped. The ID lives in a contextvar and is managed by
run_scope():

    from mailthread.core.logging import get_logger, run_scope

    logger = get_logger(__name__)

    with run_scope() as run_id:
        logger.info("threads_built", thread_count=12, message_count=40)
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TextIO

import structlog

RUN_ID_KEY = "threading_run_id"

_correlation_id: ContextVar[str | None] = ContextVar("threading_run_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set (or clear, with None) the run ID for the current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get the current run ID, if set."""
    return _correlation_id.get()


@contextmanager
def run_scope() -> Iterator[str]:
    """Tag log events in the block with a threading run ID.

    A run ID the caller already set is kept and yielded unchanged, so a
    service threading several mailboxes under one request ID keeps that ID.
    Otherwise a fresh one is set for the block and cleared on exit.

    Yields:
        The run ID in effect inside the block
    """
    existing = _correlation_id.get()
    if existing is not None:
        yield existing
        return

    run_id = uuid.uuid4().hex
    token = _correlation_id.set(run_id)
    try:
        yield run_id
    finally:
        _correlation_id.reset(token)


def add_correlation_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor adding the run ID to each event."""
    run_id = _correlation_id.get()
    if run_id is not None:
        event_dict[RUN_ID_KEY] = run_id
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Route structlog through stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR. Per-message engine events
            are DEBUG, run summaries INFO, duplicate IDs WARNING.
        json_output: One JSON object per event if True, colored console
            lines otherwise
        stream: Defaults to stdout. The CLI passes stderr so thread tables
            and JSON output are not interleaved with log lines.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
    ]

    if json_output:
        renderers: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + renderers,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, normally get_logger(__name__).

    Example:
        logger = get_logger(__name__)
        logger.debug("thread_matched", thread_id="thread-ab12", method="references")
    """
    return structlog.get_logger(name)
