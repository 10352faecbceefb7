"""Structured logging for SRD Workshop.

structlog builds the event dictionaries; stdlib logging owns the handler
(stdout or a size-rotated file). Rendering happens once, in a
``structlog.stdlib.ProcessorFormatter`` attached to that handler, so an
exception logged with ``logger.exception`` ends up inside the JSON object
instead of trailing it.

Two kinds of context flow into every event:

- the workshop session (``bind_session_context``), bound by the session's
  background tasks
- a correlation id (``set_correlation_id``), set per generation task and per
  assistant turn so all lines of one unit of work can be grouped

Example usage:
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> bind_session_context("S-456")
    >>> get_logger(__name__).info("generation_admitted", section="Core Features")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog

from srdworkshop.config import LoggingConfig

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor adding the current correlation id, when one is set."""
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation id for the current asyncio task or thread.

    Tasks created afterwards inherit the value; setting it inside a task does
    not leak into the code that spawned it.
    """
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def bind_session_context(session_id: str, **extra: Any) -> None:
    """Bind the workshop session id (and any extra keys) to later events.

    Args:
        session_id: Workshop session identifier.
        **extra: Additional keys such as ``task_id`` or ``message_id``.
    """
    structlog.contextvars.bind_contextvars(session_id=session_id, **extra)


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog and the root stdlib logger.

    Replaces any handlers already on the root logger. Events coming from
    plain stdlib loggers are rendered by the same formatter, so third-party
    log lines share the workshop's format.

    Args:
        config: Logging section of WorkshopConfig.
    """
    log_level = getattr(logging, config.level)

    shared_processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
    ]

    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
        # Console rendering formats exceptions itself
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = _build_handler(config)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
