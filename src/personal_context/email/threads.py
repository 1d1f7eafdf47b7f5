"""Interactive-thread filtering and categorization helpers.

Provides the pure functions used during thread discovery:
- ``user_replied``: the user sent a message after receiving one
- ``categorize_thread``: keyword heuristic over the first subject line
- ``is_promotional``: promotional-subject filter
- ``analysis_start_date`` / ``build_thread_query``: Gmail search window
- ``build_email_thread``: Gmail thread resource -> ``EmailThread``
"""

from __future__ import annotations

import calendar
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from personal_context.domain.types import ThreadCategory, TimeRange
from personal_context.email.models import EmailThread, ThreadMessage
from personal_context.email.parser import parse_gmail_message

WORK_KEYWORDS: tuple[str, ...] = (
    "meeting",
    "project",
    "deadline",
    "report",
    "team",
    "client",
    "proposal",
)
AUTOMATED_KEYWORDS: tuple[str, ...] = ("notification", "automated", "noreply", "alert", "update")
COMMERCIAL_KEYWORDS: tuple[str, ...] = ("order", "purchase", "invoice", "payment", "shipping")
PROMOTIONAL_KEYWORDS: tuple[str, ...] = (
    "sale",
    "offer",
    "discount",
    "promotion",
    "deal",
    "limited time",
    "newsletter",
    "unsubscribe",
    "marketing",
    "advertisement",
)

# Senders and Gmail categories excluded from the candidate search
EXCLUDED_QUERY_TERMS: tuple[str, ...] = (
    "-category:promotions",
    "-category:social",
    "-category:updates",
    "-from:noreply",
    "-from:no-reply",
    "-from:donotreply",
)

# Months subtracted from "now" per time range; None means the fixed all-time floor
_RANGE_MONTHS: dict[TimeRange, int | None] = {
    TimeRange.LAST_MONTH: 1,
    TimeRange.LAST_3_MONTHS: 3,
    TimeRange.LAST_6_MONTHS: 6,
    TimeRange.LAST_YEAR: 12,
    TimeRange.LAST_2_YEARS: 24,
    TimeRange.LAST_3_YEARS: 36,
    TimeRange.LAST_5_YEARS: 60,
    TimeRange.ALL_TIME: None,
}

ALL_TIME_START = datetime(2000, 1, 1, tzinfo=UTC)


def user_replied(senders: Sequence[str], user_email: str) -> bool:
    """Return True when the user sent a message after someone else wrote.

    Args:
        senders: Sender addresses in chronological order.
        user_email: The mailbox owner's address (compared case-insensitively).
    """
    user = user_email.lower()
    seen_other = False
    for sender in senders:
        if sender.lower() == user:
            if seen_other:
                return True
        else:
            seen_other = True
    return False


def categorize_thread(messages: Sequence[ThreadMessage]) -> ThreadCategory:
    """Assign a thread category from the first message's subject.

    Work keywords win over automated keywords, which win over commercial
    keywords.  Without a keyword hit, threads with at most three distinct
    senders are personal and larger ones unknown.
    """
    subject = messages[0].subject.lower() if messages else ""
    if any(keyword in subject for keyword in WORK_KEYWORDS):
        return ThreadCategory.WORK
    if any(keyword in subject for keyword in AUTOMATED_KEYWORDS):
        return ThreadCategory.AUTOMATED
    if any(keyword in subject for keyword in COMMERCIAL_KEYWORDS):
        return ThreadCategory.COMMERCIAL
    senders = {m.sender for m in messages}
    return ThreadCategory.PERSONAL if len(senders) <= 3 else ThreadCategory.UNKNOWN


def is_promotional(subject: str) -> bool:
    """Return True if *subject* contains a promotional keyword."""
    lowered = subject.lower()
    return any(keyword in lowered for keyword in PROMOTIONAL_KEYWORDS)


def _months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(
        year=year, month=month, day=day, hour=0, minute=0, second=0, microsecond=0
    )


def analysis_start_date(time_range: TimeRange, now: datetime | None = None) -> datetime:
    """Return the start of the discovery window for *time_range*.

    Month arithmetic clamps the day to the length of the target month
    (e.g. 31 March minus one month is 28/29 February).

    Args:
        time_range: The requested window.
        now: Reference instant.  Defaults to the current UTC time.
    """
    if now is None:
        now = datetime.now(tz=UTC)
    months = _RANGE_MONTHS[time_range]
    if months is None:
        return ALL_TIME_START
    return _months_before(now, months)


def build_thread_query(user_email: str, start: datetime) -> str:
    """Build the Gmail search query for messages the user sent since *start*."""
    return " ".join([f"from:{user_email}", f"after:{start:%Y/%m/%d}", *EXCLUDED_QUERY_TERMS])


def build_email_thread(thread: dict[str, Any], user_email: str) -> EmailThread:
    """Convert a Gmail thread resource (``format=full``) into an ``EmailThread``.

    Messages are ordered chronologically; participants are the distinct
    senders and ``To`` recipients in first-seen order.

    Raises:
        ValueError: If the thread has no messages.
    """
    raw_messages: list[dict[str, Any]] = thread.get("messages", [])
    if not raw_messages:
        raise ValueError(f"Thread {thread.get('id')} has no messages")

    messages = sorted(
        (parse_gmail_message(m, user_email) for m in raw_messages),
        key=lambda m: m.timestamp,
    )

    participants: list[str] = []
    for message in messages:
        for address in (message.sender, *message.to):
            if address and address not in participants:
                participants.append(address)

    return EmailThread(
        thread_id=thread["id"],
        subject=messages[0].subject,
        participants=participants,
        message_count=len(messages),
        first_message_date=messages[0].timestamp,
        last_message_date=messages[-1].timestamp,
        messages=messages,
        thread_category=categorize_thread(messages),
    )
