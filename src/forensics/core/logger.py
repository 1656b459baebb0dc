"""
Structured logging for the forensics engine.

structlog with ISO timestamps and log level; JSON output when
LOG_FORMAT=json, coloured console output otherwise. Modules call
get_logger(__name__) and log an event name plus keyword fields:

    logger.warning("threat_provider_failed", provider="Chainalysis", address=addr)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from forensics.config import settings


def configure_structlog(level: str = settings.LOG_LEVEL, fmt: str = settings.LOG_FORMAT) -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name).bind(logger=name)
