"""Structured logging configuration for the ledger services."""

import logging
import sys

import structlog

from clinic_ledger.config import settings


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog on top of the standard logging module.

    Args:
        level: Log level name, defaults to LOG_LEVEL
        log_format: "json" or "console", defaults to LOG_FORMAT
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    structlog.contextvars.bind_contextvars(
        app=settings.app_name,
        environment=settings.environment,
    )
