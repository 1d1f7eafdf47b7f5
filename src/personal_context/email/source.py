"""Interactive-thread discovery against the Gmail API.

Defines the ``ThreadSource`` protocol consumed by the learning coordinator and
``GmailThreadSource``, its Gmail implementation.  The Gmail client library is
synchronous, so every call runs through ``asyncio.to_thread``; calls are
awaited one after another to stay within Gmail rate limits.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

import structlog

from personal_context.domain.errors import IdentityLookupError, ThreadDiscoveryError
from personal_context.domain.models import LearningOptions
from personal_context.domain.types import DEPTH_THREAD_LIMITS
from personal_context.email.models import EmailThread, MailboxIdentity, ThreadBatch
from personal_context.email.parser import extract_email_address, header_value
from personal_context.email.threads import (
    analysis_start_date,
    build_email_thread,
    build_thread_query,
    is_promotional,
    user_replied,
)
from personal_context.observability.events import PipelineEvents
from personal_context.resilience.retry import resilient_api_call

logger = structlog.get_logger()

ServiceFactory = Callable[[str], Any]

# Gmail caps messages.list page size at 500
_PAGE_SIZE = 500


class ThreadSource(Protocol):
    """Provider of a user's interactive email threads."""

    async def test_connection(self, credential: str) -> bool: ...

    async def get_user_identity(self, credential: str) -> MailboxIdentity: ...

    async def fetch_interactive_threads(
        self,
        credential: str,
        email_address: str,
        options: LearningOptions,
    ) -> ThreadBatch: ...


@resilient_api_call("gmail.users.getProfile")
def _fetch_profile(service: Any) -> dict[str, Any]:
    result: dict[str, Any] = service.users().getProfile(userId="me").execute()
    return result


@resilient_api_call("gmail.users.messages.list")
def _list_message_page(service: Any, query: str, page_token: str | None) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"userId": "me", "q": query, "maxResults": _PAGE_SIZE}
    if page_token:
        kwargs["pageToken"] = page_token
    result: dict[str, Any] = service.users().messages().list(**kwargs).execute()
    return result


@resilient_api_call("gmail.users.threads.get")
def _fetch_thread(service: Any, thread_id: str) -> dict[str, Any]:
    result: dict[str, Any] = (
        service.users().threads().get(userId="me", id=thread_id, format="full").execute()
    )
    return result


def list_candidate_thread_ids(service: Any, query: str, limit: int) -> tuple[list[str], bool]:
    """Collect distinct thread ids of messages matching *query*.

    Pages through ``users.messages.list`` until *limit* distinct thread ids are
    collected or results run out.

    Args:
        service: An authenticated Gmail API v1 service resource.
        query: Gmail search query.
        limit: Maximum number of thread ids to return.

    Returns:
        A tuple ``(thread_ids, has_more)`` where *has_more* is True when
        further candidate threads exist beyond *limit*.
    """
    thread_ids: list[str] = []
    seen: set[str] = set()
    page_token: str | None = None

    while True:
        page = _list_message_page(service, query, page_token)
        for message in page.get("messages", []) or []:
            thread_id = message.get("threadId")
            if not thread_id or thread_id in seen:
                continue
            if len(thread_ids) >= limit:
                return thread_ids, True
            seen.add(thread_id)
            thread_ids.append(thread_id)
        page_token = page.get("nextPageToken")
        if not page_token:
            return thread_ids, False
        if len(thread_ids) >= limit:
            return thread_ids, True


def qualifies_as_interactive(
    thread: dict[str, Any],
    user_email: str,
    options: LearningOptions,
) -> bool:
    """Apply the length and participation filters to a raw Gmail thread."""
    messages: list[dict[str, Any]] = thread.get("messages", []) or []
    if len(messages) < options.min_thread_length:
        return False
    senders = [
        extract_email_address(header_value(m.get("payload", {}).get("headers", []), "From"))
        for m in sorted(messages, key=lambda m: int(m.get("internalDate", "0") or 0))
    ]
    return user_replied(senders, user_email)


class GmailThreadSource:
    """``ThreadSource`` backed by the Gmail API.

    Args:
        service_factory: Builds a Gmail service resource from an access
            token.  Defaults to ``build_gmail_service``.
        events: Progress emitter.  Defaults to a log-only emitter tagged
            ``gmail``.
        clock: Returns the current time; used for the discovery window.
    """

    def __init__(
        self,
        service_factory: ServiceFactory | None = None,
        events: PipelineEvents | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if service_factory is None:
            from personal_context.auth.credentials import build_gmail_service

            service_factory = build_gmail_service
        self._service_factory = service_factory
        self._events = events or PipelineEvents(source="gmail")
        self._clock = clock

    async def test_connection(self, credential: str) -> bool:
        """Return True if the credential can read the mailbox profile."""
        try:
            service = self._service_factory(credential)
            await asyncio.to_thread(_fetch_profile, service)
        except Exception:
            logger.warning("Gmail connection test failed", exc_info=True)
            return False
        return True

    async def get_user_identity(self, credential: str) -> MailboxIdentity:
        """Resolve the mailbox address and thread total for *credential*.

        Raises:
            IdentityLookupError: If the profile cannot be fetched.
        """
        try:
            service = self._service_factory(credential)
            profile = await asyncio.to_thread(_fetch_profile, service)
        except Exception as exc:
            raise IdentityLookupError(f"Failed to access Gmail profile: {exc}") from exc

        email_address = profile.get("emailAddress")
        if not email_address:
            raise IdentityLookupError("Gmail profile has no email address")
        return MailboxIdentity(
            email_address=email_address,
            thread_count=int(profile.get("threadsTotal", 0) or 0),
        )

    async def fetch_interactive_threads(
        self,
        credential: str,
        email_address: str,
        options: LearningOptions,
    ) -> ThreadBatch:
        """Discover threads the user both received and replied to.

        Candidate threads come from messages the user sent inside the time
        window, capped by the analysis depth.  Each candidate is fetched in
        full and kept when it meets ``min_thread_length``, contains a user
        reply, and (unless ``include_promotional``) has no promotional
        subject.  A candidate that fails to fetch or parse is skipped.

        Raises:
            ThreadDiscoveryError: If the candidate search itself fails.
        """
        now = self._clock() if self._clock is not None else None
        start = analysis_start_date(options.time_range, now)
        query = build_thread_query(email_address, start)
        limit = DEPTH_THREAD_LIMITS[options.analysis_depth]

        try:
            service = self._service_factory(credential)
            thread_ids, has_more = await asyncio.to_thread(
                list_candidate_thread_ids, service, query, limit
            )
        except Exception as exc:
            raise ThreadDiscoveryError(f"Failed to fetch Gmail threads: {exc}") from exc

        self._events.emit(
            f"Found {len(thread_ids)} threads with user participation",
            candidates=len(thread_ids),
            has_more=has_more,
        )

        threads: list[EmailThread] = []
        for thread_id in thread_ids:
            try:
                raw = await asyncio.to_thread(_fetch_thread, service, thread_id)
                if not qualifies_as_interactive(raw, email_address, options):
                    continue
                thread = build_email_thread(raw, email_address)
            except Exception:
                logger.warning("Failed to fetch thread", thread_id=thread_id, exc_info=True)
                continue
            if not options.include_promotional and is_promotional(thread.subject):
                continue
            threads.append(thread)

        self._events.emit(
            f"Successfully processed {len(threads)} interactive threads",
            threads=len(threads),
        )
        return ThreadBatch(
            threads=threads,
            total_threads=len(threads),
            has_more_threads=has_more,
        )
