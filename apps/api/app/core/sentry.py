"""Sentry initialisation for the progress reporting API."""

import structlog
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from app.modules.progress_reports.exceptions import ValidationError

logger = structlog.get_logger()

_SENSITIVE_HEADERS = {"authorization", "cookie"}

# Bad milestone data is returned to the caller as a 422, not reported
_IGNORED_EXCEPTIONS = (ValidationError,)


def _before_send(event: dict, hint: dict) -> dict | None:
    exc_info = hint.get("exc_info")
    if exc_info and isinstance(exc_info[1], _IGNORED_EXCEPTIONS):
        return None

    headers = event.get("request", {}).get("headers", {})
    for header in list(headers):
        if header.lower() in _SENSITIVE_HEADERS:
            headers[header] = "[REDACTED]"
    return event


def init_sentry(
    dsn: str | None,
    environment: str = "development",
    release: str | None = None,
) -> None:
    """Initialise Sentry before the FastAPI app is created; no-op without a DSN."""
    if not dsn:
        logger.warning("sentry_disabled", reason="SENTRY_DSN not set")
        return

    traces_sample_rate = 0.1 if environment == "production" else 1.0
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            HttpxIntegration(),
        ],
        send_default_pii=False,
        before_send=_before_send,
    )
    sentry_sdk.set_tag("service", "pipetrak-reports")
    logger.info(
        "sentry_initialized",
        environment=environment,
        traces_sample_rate=traces_sample_rate,
    )
