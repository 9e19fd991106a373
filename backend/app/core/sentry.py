"""
Sentry Integration Module.

Configures Sentry for error tracking, performance monitoring,
and logging integration for the benchmark service.
"""

import logging
from typing import Optional, Dict, Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from app.config import settings

logger = logging.getLogger(__name__)

# Transactions for these paths are dropped
IGNORED_TRANSACTIONS = ("/health", "/metrics", "/favicon.ico")


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    traces_sample_rate: Optional[float] = None,
) -> bool:
    """
    Initialize Sentry SDK for the FastAPI backend.

    Args:
        dsn: Sentry DSN. Falls back to ``settings.SENTRY_DSN``.
        environment: Environment name (production, staging, development).
        traces_sample_rate: Performance transaction sample rate.

    Returns:
        bool: True if Sentry was initialized.
    """
    sentry_dsn = dsn or settings.SENTRY_DSN

    if not sentry_dsn:
        logger.info("Sentry DSN not configured. Error tracking disabled.")
        return False

    env = environment or settings.SENTRY_ENVIRONMENT

    # Warnings become breadcrumbs, errors become events
    logging_integration = LoggingIntegration(
        level=logging.WARNING,
        event_level=logging.ERROR,
    )

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=env,
        release="medical-bill-benchmark@1.0.0",
        traces_sample_rate=(
            traces_sample_rate if traces_sample_rate is not None else settings.SENTRY_TRACES_SAMPLE_RATE
        ),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            logging_integration,
        ],
        send_default_pii=False,
        before_send=before_send_handler,
        before_send_transaction=before_send_transaction_handler,
        max_breadcrumbs=50,
    )

    logger.info(f"Sentry initialized for environment: {env}")
    return True


def before_send_handler(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Process events before sending to Sentry.

    Drops client disconnects and strips request bodies, which hold bill
    contents.
    """
    if "exc_info" in hint:
        exc_type, _, _ = hint["exc_info"]
        if exc_type.__name__ in ("ConnectionResetError", "BrokenPipeError", "ClientDisconnected"):
            return None

    request = event.get("request")
    if request and "data" in request:
        request["data"] = "[Filtered]"

    return event


def before_send_transaction_handler(
    event: Dict[str, Any],
    hint: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Filter out health check and metrics transactions."""
    transaction_name = event.get("transaction", "") or ""
    for endpoint in IGNORED_TRANSACTIONS:
        if endpoint in transaction_name:
            return None
    return event


def capture_exception(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Capture an exception with additional context.

    Args:
        error: The exception to capture.
        context: Additional context data.
        tags: Tags for categorization.

    Returns:
        Sentry event ID if captured, None otherwise.
    """
    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_context(key, value)
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)

        event_id = sentry_sdk.capture_exception(error)

    logger.error(f"Exception captured: {type(error).__name__} - {str(error)[:100]}")
    return event_id


def add_breadcrumb(
    message: str,
    category: str = "benchmark",
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """Add a breadcrumb for debugging context."""
    sentry_sdk.add_breadcrumb(
        message=message,
        category=category,
        level="info",
        data=data or {},
    )
