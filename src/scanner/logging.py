"""Structured logging configuration using structlog with async context propagation.

Every scan cycle runs inside ``cycle_context``, so all events logged while
the cycle runs (evaluator, client and sink included) carry the scan mode and
a short cycle id.
"""

import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

#: Third-party loggers that are noisy below WARNING.
_QUIET_LOGGERS = ("ccxt", "aiosqlite", "asyncio")


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog with JSON or console rendering.

    Uses structlog.contextvars so the per-cycle ``mode`` and ``cycle_id``
    bindings follow every coroutine spawned inside a scan cycle.
    Rendering format is controlled by the LOG_FORMAT environment variable:
    - "json" for production (machine-readable)
    - "console" for development (human-readable, default)
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)


@contextmanager
def cycle_context(mode: str, cycle_id: str | None = None) -> Iterator[str]:
    """Bind ``mode`` and ``cycle_id`` for everything logged inside the block.

    Yields the cycle id (a fresh 8-char hex id unless one is given).
    """
    cycle_id = cycle_id or uuid.uuid4().hex[:8]
    with structlog.contextvars.bound_contextvars(mode=mode, cycle_id=cycle_id):
        yield cycle_id
