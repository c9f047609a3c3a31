"""
Sentry configuration for error tracking.

Captures all unhandled exceptions with user context.
"""
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from imagestudio.config import Settings
from imagestudio.logging_config import get_logger

logger = get_logger(component="sentry")


def configure_sentry(settings: Settings) -> bool:
    """
    Initialize Sentry with FastAPI and SQLAlchemy integrations.

    Does nothing unless SENTRY_DSN is configured.
    """
    dsn = settings.SENTRY_DSN

    if not dsn:
        logger.info("sentry_disabled", reason="SENTRY_DSN not set")
        return False

    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        before_send=add_context,
        # Sample rate: capture 10% of transactions for performance monitoring
        traces_sample_rate=0.1,
        environment=settings.ENVIRONMENT,
        release=settings.APP_VERSION,
    )

    logger.info("sentry_initialized", environment=settings.ENVIRONMENT)
    return True


def add_context(event, hint):
    """
    Drop request bodies from error events.

    Generation requests carry base64 images and webhook bodies carry
    payment metadata; neither belongs in an error report.
    """
    request = event.get("request")
    if request and "data" in request:
        request["data"] = "[Filtered]"
    return event


def capture_exception(exc_info=None):
    """
    Capture an exception to Sentry.

    Usage:
        try:
            # some code
        except Exception:
            capture_exception()
    """
    if sentry_sdk.get_client().is_active():
        sentry_sdk.capture_exception(exc_info)


def capture_message(message, level="info"):
    """Capture a message to Sentry."""
    if sentry_sdk.get_client().is_active():
        sentry_sdk.capture_message(message, level=level)
