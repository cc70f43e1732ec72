"""
Structured logging setup using structlog.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace

from readyq.config import get_settings


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Attach the active OpenTelemetry trace and span ids to a log record.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary, with trace ids when a span is recording.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structured logging for API, worker and reaper processes.

    Stdlib loggers (``logging.getLogger(__name__)``) and structlog loggers
    share one handler, so ``extra={...}`` fields end up as structured keys.

    Args:
        level: Log level override. Defaults to ``settings.log_level``.
        fmt: ``"json"`` or ``"console"``. Defaults to ``settings.log_format``.
    """
    settings = get_settings()
    level = level or settings.log_level
    fmt = fmt or settings.log_format

    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

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
    root_logger.setLevel(log_level)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__).

    Returns:
        BoundLogger: A structlog logger instance.
    """
    return structlog.get_logger(name)


@contextmanager
def task_log_context(task_id: str, task_type: str, **extra: Any) -> Iterator[None]:
    """Bind task identity to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(
        task_id=task_id, task_type=task_type, **extra
    ):
        yield
