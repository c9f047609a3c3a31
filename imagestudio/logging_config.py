"""
Structured logging configuration using structlog.

All logs are output as JSON with consistent context fields. Values under
sensitive keys (API keys, signatures, image payloads) never reach the output.
"""
import structlog
import logging
import sys

from imagestudio.config import settings

REDACTED_KEYS = frozenset({"api_key", "authorization", "signature", "stripe_signature", "image"})


def redact_sensitive(logger, method_name, event_dict):
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[Filtered]"
    return event_dict


def configure_logging(level_name: str = "INFO"):
    """Configure structlog for JSON output at the given level name."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger().bind(service=settings.APP_NAME)


logger = configure_logging(settings.LOG_LEVEL)


def get_logger(**context):
    """
    Get a logger with additional context bound.

    Usage:
        log = get_logger(user_id=user_id, order_no=order_no)
        log.info("message", extra_field=value)
    """
    return logger.bind(**context)
