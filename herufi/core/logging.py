"""
Structured logging configuration using structlog.

Logs are rendered as colored console output in debug mode and as JSON
otherwise, so the hosted runtime can ship them to a log aggregator.

Usage:
    from herufi.core.logging import setup_logging, get_logger
    setup_logging(get_settings())
    logger = get_logger(__name__)
    logger.info("student_created", school_id=school_id, admission_number="AHS/12")
"""

import logging
import sys
from typing import List

import structlog
from structlog.types import Processor

from herufi.core.config import Settings


def setup_logging(settings: Settings) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        settings: Application settings (log_level, debug)
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.debug:
        processors: List[Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    # Third-party loggers stay quiet unless something is wrong
    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy", "passlib"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)
