"""Shared pytest fixtures for the personal context test suite."""

import sys
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
import structlog

from personal_context.domain.types import ThreadCategory
from personal_context.email.models import EmailThread, ThreadMessage

USER_EMAIL = "me@example.com"
CONTACT_EMAIL = "alice@example.com"
BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _clear_structlog_cache():
    """Reset structlog and drop loggers cached by an earlier configuration."""
    yield
    structlog.reset_defaults()
    for module in list(sys.modules.values()):
        if not getattr(module, "__name__", "").startswith("personal_context"):
            continue
        proxy = getattr(module, "logger", None)
        if isinstance(proxy, structlog._config.BoundLoggerLazyProxy):
            proxy.__dict__.pop("bind", None)


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def user_email() -> str:
    return USER_EMAIL


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed reference instant for clock-dependent code."""
    return datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_thread() -> Callable[..., EmailThread]:
    """Factory building an interactive thread: contact writes, user replies.

    ``senders`` lists message authors in chronological order; the user's
    address marks user-authored messages.
    """

    def _make(
        thread_id: str = "t1",
        subject: str = "Project kickoff",
        senders: list[str] | None = None,
        body: str = "Thanks, sounds good.",
    ) -> EmailThread:
        senders = senders if senders is not None else [CONTACT_EMAIL, USER_EMAIL]
        messages = [
            ThreadMessage(
                message_id=f"{thread_id}-m{index}",
                sender=sender,
                to=[USER_EMAIL] if sender != USER_EMAIL else [CONTACT_EMAIL],
                subject=subject,
                body=body,
                timestamp=BASE_TIME + timedelta(hours=index),
                is_from_user=sender == USER_EMAIL,
            )
            for index, sender in enumerate(senders)
        ]
        return EmailThread(
            thread_id=thread_id,
            subject=subject,
            participants=list(dict.fromkeys(senders)),
            message_count=len(messages),
            first_message_date=messages[0].timestamp,
            last_message_date=messages[-1].timestamp,
            messages=messages,
            thread_category=ThreadCategory.WORK,
        )

    return _make


@pytest.fixture
def sample_thread(make_thread: Callable[..., EmailThread]) -> EmailThread:
    """A representative two-message interactive thread."""
    return make_thread()
