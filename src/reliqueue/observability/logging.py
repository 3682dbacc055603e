"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from reliqueue.core.config import LogLevel, get_settings


class ClipLongValues:
    """
    Processor that shortens long string fields.

    Queue events carry payloads and dead letter records; these are cut to
    ``max_length`` characters with a marker giving the original length.
    The event name itself is never clipped.
    """

    def __init__(self, max_length: int) -> None:
        self.max_length = max_length

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in event_dict.items():
            if key == "event" or not isinstance(value, str):
                continue
            if len(value) > self.max_length:
                event_dict[key] = (
                    f"{value[: self.max_length]}...[{len(value)} chars]"
                )
        return event_dict


def configure_logging(
    level: LogLevel | str | None = None,
    format_type: str | None = None,
    service_name: str | None = None,
    max_value_length: int | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_type: Output format ("json" or "console").
        service_name: Service name for log entries.
        max_value_length: Longest string field kept intact in log events.
    """
    settings = get_settings()

    log_level = level or settings.observability.log_level
    if isinstance(log_level, str):
        log_level = LogLevel(log_level.upper())

    output_format = format_type or settings.observability.log_format
    svc_name = service_name or settings.observability.service_name
    max_length = max_value_length or settings.observability.log_value_max_length

    numeric_level = getattr(logging, log_level.value, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        ClipLongValues(max_length),
    ]

    if output_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=svc_name)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually module name).
        **initial_context: Initial context values to bind.

    Returns:
        A bound structlog logger.
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def get_queue_logger(queue_key: str) -> structlog.BoundLogger:
    """Get a logger bound to a queue's key."""
    return get_logger("reliqueue.queue", queue=queue_key)
