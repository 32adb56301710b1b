"""Structured logging configuration."""

import logging
import sys
from typing import Any
import structlog
from ..config import settings


def configure_logging() -> None:
    """Configure structured logging with structlog."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Configure standard library logging (uvicorn, sqlalchemy, botocore)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """Get structured logger instance."""
    return structlog.get_logger(name)
