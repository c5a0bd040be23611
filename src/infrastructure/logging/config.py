"""Structured logging configuration."""

import logging
import sys
from typing import Any, cast

import structlog

from src.infrastructure.config import Settings
from src.utils.sanitizer import sanitize_dict


def sanitize_sensitive_data(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Sanitize sensitive fields from log events.

    Redacts passwords, password hashes, tokens and connection strings so
    they never reach log output.

    Uses shared sanitization logic from src.utils.sanitizer.

    Args:
        logger: Logger instance (unused)
        method_name: Method name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """
    return sanitize_dict(event_dict, recursive=True)


def service_context_processor(settings: Settings) -> structlog.types.Processor:
    """Build a processor that stamps every event with service name and environment."""

    def add_service_context(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("env", settings.app_env)
        return event_dict

    return add_service_context


def configure_logging(settings: Settings) -> None:
    """Configure structured logging with request context."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Configure standard logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # SQL echo goes through the sqlalchemy.engine logger
    if settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    # Configure structlog
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        service_context_processor(settings),
        sanitize_sensitive_data,  # Never log raw passwords or hashes
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.is_development:
        # Pretty console output for development
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        # JSON output for production
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=cast("Any", processors),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
