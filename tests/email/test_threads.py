"""Tests for interactive-thread filtering and discovery-window helpers."""

from __future__ import annotations

import base64
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from personal_context.domain.types import ThreadCategory, TimeRange
from personal_context.email.models import EmailThread
from personal_context.email.threads import (
    ALL_TIME_START,
    analysis_start_date,
    build_email_thread,
    build_thread_query,
    categorize_thread,
    is_promotional,
    user_replied,
)

ME = "me@example.com"


def _raw_message(message_id: str, sender: str, internal_ms: int, subject: str) -> dict[str, Any]:
    data = base64.urlsafe_b64encode(b"body").decode("ascii").rstrip("=")
    return {
        "id": message_id,
        "internalDate": str(internal_ms),
        "payload": {
            "mimeType": "text/plain",
            "headers": [
                {"name": "From", "value": sender},
                {"name": "To", "value": ME if sender != ME else "ann@example.com"},
                {"name": "Subject", "value": subject},
            ],
            "body": {"data": data},
        },
    }


class TestUserReplied:
    def test_reply_after_other_sender(self) -> None:
        assert user_replied(["ann@example.com", ME], ME) is True

    def test_user_only_started_thread(self) -> None:
        assert user_replied([ME, "ann@example.com"], ME) is False

    def test_user_never_wrote(self) -> None:
        assert user_replied(["ann@example.com", "bob@example.com"], ME) is False

    def test_case_insensitive(self) -> None:
        assert user_replied(["ann@example.com", "Me@Example.COM"], ME) is True


class TestCategorizeThread:
    @pytest.mark.parametrize(
        ("subject", "expected"),
        [
            ("Project deadline moved", ThreadCategory.WORK),
            ("Your alert settings", ThreadCategory.AUTOMATED),
            ("Invoice #42", ThreadCategory.COMMERCIAL),
            ("Dinner on Friday?", ThreadCategory.PERSONAL),
        ],
    )
    def test_subject_keywords(
        self,
        make_thread: Callable[..., EmailThread],
        subject: str,
        expected: ThreadCategory,
    ) -> None:
        thread = make_thread(subject=subject)
        assert categorize_thread(thread.messages) is expected

    def test_work_beats_commercial(self, make_thread: Callable[..., EmailThread]) -> None:
        thread = make_thread(subject="Client invoice review meeting")
        assert categorize_thread(thread.messages) is ThreadCategory.WORK

    def test_many_senders_without_keywords_is_unknown(
        self, make_thread: Callable[..., EmailThread]
    ) -> None:
        senders = ["a@x.com", "b@x.com", "c@x.com", ME]
        thread = make_thread(subject="Hello", senders=senders)
        assert categorize_thread(thread.messages) is ThreadCategory.UNKNOWN


class TestIsPromotional:
    def test_keyword_match(self) -> None:
        assert is_promotional("Limited time DISCOUNT inside") is True

    def test_plain_subject(self) -> None:
        assert is_promotional("Re: lunch plans") is False


class TestAnalysisStartDate:
    NOW = datetime(2026, 3, 31, 15, 30, tzinfo=UTC)

    def test_last_month_clamps_day(self) -> None:
        assert analysis_start_date(TimeRange.LAST_MONTH, self.NOW) == datetime(
            2026, 2, 28, tzinfo=UTC
        )

    def test_last_3_months(self) -> None:
        assert analysis_start_date(TimeRange.LAST_3_MONTHS, self.NOW) == datetime(
            2025, 12, 31, tzinfo=UTC
        )

    def test_last_year(self) -> None:
        assert analysis_start_date(TimeRange.LAST_YEAR, self.NOW) == datetime(
            2025, 3, 31, tzinfo=UTC
        )

    def test_leap_day(self) -> None:
        now = datetime(2024, 2, 29, tzinfo=UTC)
        assert analysis_start_date(TimeRange.LAST_YEAR, now) == datetime(2023, 2, 28, tzinfo=UTC)

    def test_all_time_is_fixed(self) -> None:
        assert analysis_start_date(TimeRange.ALL_TIME, self.NOW) == ALL_TIME_START

    def test_every_range_is_before_now(self) -> None:
        for time_range in TimeRange:
            assert analysis_start_date(time_range, self.NOW) < self.NOW


class TestBuildThreadQuery:
    def test_query_terms(self) -> None:
        query = build_thread_query(ME, datetime(2026, 1, 5, tzinfo=UTC))
        assert query.startswith("from:me@example.com after:2026/01/05")
        assert "-category:promotions" in query
        assert "-from:noreply" in query


class TestBuildEmailThread:
    def test_orders_messages_and_collects_participants(self) -> None:
        raw = {
            "id": "t1",
            "messages": [
                _raw_message("m2", ME, 2_000, "Re: Team sync"),
                _raw_message("m1", "Ann <ann@example.com>", 1_000, "Team sync"),
            ],
        }
        thread = build_email_thread(raw, ME)
        assert [m.message_id for m in thread.messages] == ["m1", "m2"]
        assert thread.subject == "Team sync"
        assert thread.participants == ["ann@example.com", ME]
        assert thread.message_count == 2
        assert thread.first_message_date < thread.last_message_date
        assert thread.thread_category is ThreadCategory.WORK
        assert thread.is_interactive

    def test_empty_thread_rejected(self) -> None:
        with pytest.raises(ValueError, match="no messages"):
            build_email_thread({"id": "t1", "messages": []}, ME)
