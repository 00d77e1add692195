from __future__ import annotations

import logging
import sys
from typing import Literal, TextIO

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


def configure_logging(*, level: LogLevel = "INFO", json_logs: bool = True, stream: TextIO | None = None) -> None:
    """Configure stdlib logging + structlog.

    Logs go to stderr by default so stdout stays free for piping. JSON is the
    default renderer; the console renderer is easier to read while watching a
    marionette live.
    """

    threshold = getattr(logging, level)
    logging.basicConfig(level=threshold, format="%(message)s")

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "vmc") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def component_logger(component: str, logger=None):
    """`logger` (or a fresh one) bound to `component`."""
    base = logger if logger is not None else get_logger()
    return base.bind(component=component)
