"""Tests for Sentry SDK initialization and structlog-sentry bridge."""

from __future__ import annotations

from unittest.mock import patch

from personal_context.observability.sentry import (
    REDACTED,
    get_sentry_processor,
    init_sentry,
    scrub_event,
)


def test_init_sentry_noop_with_empty_dsn() -> None:
    """init_sentry('') returns False and does not call sentry_sdk.init."""
    with patch("personal_context.observability.sentry.sentry_sdk.init") as mock_init:
        assert init_sentry("") is False
        mock_init.assert_not_called()


def test_init_sentry_calls_sdk_with_dsn() -> None:
    """init_sentry with a DSN calls sentry_sdk.init with correct parameters."""
    test_dsn = "https://examplePublicKey@o0.ingest.sentry.io/0"
    with patch("personal_context.observability.sentry.sentry_sdk.init") as mock_init:
        assert init_sentry(test_dsn) is True
        mock_init.assert_called_once()
        call_kwargs = mock_init.call_args
        assert call_kwargs.kwargs["dsn"] == test_dsn
        assert call_kwargs.kwargs["send_default_pii"] is False
        assert call_kwargs.kwargs["traces_sample_rate"] == 0.1
        assert call_kwargs.kwargs["before_send"] is scrub_event


def test_get_sentry_processor_returns_callable() -> None:
    """get_sentry_processor() returns a callable (SentryProcessor instance)."""
    processor = get_sentry_processor()
    assert callable(processor)


def test_scrub_event_drops_request_body() -> None:
    event = {"request": {"url": "/personal-context/learn", "data": {"access_token": "ya29"}}}
    scrubbed = scrub_event(event, {})
    assert scrubbed["request"] == {"url": "/personal-context/learn"}


def test_scrub_event_redacts_nested_extra() -> None:
    event = {
        "request": {"headers": {"Authorization": "Bearer ya29", "Accept": "*/*"}},
        "extra": {"user_id": "u1", "thread": {"messages": [{"body": "hi", "id": "m1"}]}},
    }
    scrubbed = scrub_event(event, {})

    assert scrubbed["request"]["headers"] == {"Authorization": REDACTED, "Accept": "*/*"}
    assert scrubbed["extra"]["user_id"] == "u1"
    assert scrubbed["extra"]["thread"]["messages"] == [{"body": REDACTED, "id": "m1"}]
