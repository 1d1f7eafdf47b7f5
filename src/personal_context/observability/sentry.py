"""Sentry error reporting for the personal context service.

Errors reach Sentry through structlog-sentry only.  Every event passes through
``scrub_event`` first, which strips request bodies and redacts Gmail access
tokens and mailbox text from the event's extra data, so reports carry
structure and stack traces but no user mail.
"""

from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor

REDACTED = "[redacted]"

# Keys whose values may hold credentials or mailbox content
SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "authorization",
        "credential",
        "email_content",
        "user_reply",
        "body",
        "snippet",
    }
)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """``before_send`` hook: drop request bodies and redact sensitive keys."""
    request = event.get("request")
    if isinstance(request, dict):
        request.pop("data", None)
        if "headers" in request:
            request["headers"] = _redact(request["headers"])
    if "extra" in event:
        event["extra"] = _redact(event["extra"])
    return event


def init_sentry(dsn: str) -> bool:
    """Initialize the Sentry SDK.  No-op when *dsn* is empty.

    Returns:
        True if the SDK was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[
            # structlog-sentry reports errors; stdlib logging capture stays off
            LoggingIntegration(event_level=None, level=None),
        ],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry."""
    return SentryProcessor(event_level=logging.ERROR)
