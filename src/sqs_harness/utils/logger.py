"""
Module: logger.py
Description: Structured logging configuration for the queue harness.

Configures structlog for JSON output so client calls, retries and
fixture cleanup can be followed line by line in test output.

Key Components:
- JSON output with timestamp and log level processors
- contextvars merging, so a scenario can bind its name once
- configure_logging() to re-apply the level filter
- get_logger() helper function

Dependencies: structlog, logging, datetime
Author: Queue Harness Team
"""

import logging
from datetime import datetime, timezone

import structlog

from sqs_harness.config.settings import settings


def _add_timestamp(logger, method_name, event_dict):
    """Add ISO 8601 UTC timestamp to log entries."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """
    Add log level to event dictionary.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Current log event dictionary

    Returns:
        Updated event dictionary with level
    """
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(level: str = settings.log_level) -> None:
    """
    Configure structlog for the harness.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_timestamp,
            _add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=False,
    )


configure_logging()


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Queue created", queue_name="TestQueue1a2b", queue_url="http://...")
    """
    return structlog.get_logger(name)
