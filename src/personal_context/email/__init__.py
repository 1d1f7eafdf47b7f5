"""Email domain: Gmail thread discovery, parsing, and models."""

from personal_context.email.models import (
    EmailThread,
    MailboxIdentity,
    ThreadBatch,
    ThreadMessage,
)
from personal_context.email.parser import extract_message_body, parse_gmail_message
from personal_context.email.source import GmailThreadSource, ThreadSource
from personal_context.email.threads import (
    analysis_start_date,
    build_email_thread,
    build_thread_query,
    categorize_thread,
    is_promotional,
    user_replied,
)

__all__ = [
    "EmailThread",
    "GmailThreadSource",
    "MailboxIdentity",
    "ThreadBatch",
    "ThreadMessage",
    "ThreadSource",
    "analysis_start_date",
    "build_email_thread",
    "build_thread_query",
    "categorize_thread",
    "extract_message_body",
    "is_promotional",
    "parse_gmail_message",
    "user_replied",
]
