"""Tests for batched, rate-limited thread analysis."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from personal_context.domain.insights import RelationshipInsight, ThreadAnalysisResult
from personal_context.email.models import EmailThread
from personal_context.llm.batch import BatchOrchestrator, partition
from personal_context.observability.events import PipelineEvents

ME = "me@example.com"


class TestPartition:
    def test_sizes(self) -> None:
        assert [len(chunk) for chunk in partition(list(range(12)), 5)] == [5, 5, 2]

    def test_empty(self) -> None:
        assert partition([], 5) == []

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            partition([1], 0)


def _extractor(side_effect: Callable[..., object] | None = None) -> MagicMock:
    extractor = MagicMock()

    async def analyze(thread: EmailThread, user_email: str) -> ThreadAnalysisResult:
        return ThreadAnalysisResult(thread_id=thread.thread_id, confidence=0.5)

    extractor.analyze_thread = AsyncMock(side_effect=side_effect or analyze)
    return extractor


@pytest.fixture
def threads(make_thread: Callable[..., EmailThread]) -> list[EmailThread]:
    return [make_thread(thread_id=f"t{i}") for i in range(12)]


class TestBatchOrchestrator:
    @pytest.mark.anyio()
    async def test_order_and_length_preserved(self, threads: list[EmailThread]) -> None:
        sleep = AsyncMock()
        orchestrator = BatchOrchestrator(_extractor(), batch_size=5, sleep=sleep)

        results = await orchestrator.analyze_threads(threads, ME)

        assert [r.thread_id for r in results] == [t.thread_id for t in threads]

    @pytest.mark.anyio()
    async def test_sleeps_between_batches_only(self, threads: list[EmailThread]) -> None:
        sleep = AsyncMock()
        orchestrator = BatchOrchestrator(
            _extractor(), batch_size=5, batch_delay_seconds=0.25, sleep=sleep
        )

        await orchestrator.analyze_threads(threads, ME)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.25)

    @pytest.mark.anyio()
    async def test_batches_reported(self, threads: list[EmailThread]) -> None:
        sink = MagicMock()
        orchestrator = BatchOrchestrator(
            _extractor(),
            batch_size=5,
            events=PipelineEvents(on_log=sink, source="analysis"),
            sleep=AsyncMock(),
        )

        await orchestrator.analyze_threads(threads, ME)

        messages = [c.args[0] for c in sink.call_args_list]
        assert "Starting AI analysis of 12 email threads..." in messages
        assert "Analyzing batch 3/3 (2 threads)" in messages

    @pytest.mark.anyio()
    async def test_analyses_within_batch_run_concurrently(
        self, threads: list[EmailThread]
    ) -> None:
        running = 0
        peak = 0

        async def analyze(thread: EmailThread, user_email: str) -> ThreadAnalysisResult:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0)
            running -= 1
            return ThreadAnalysisResult.empty(thread.thread_id)

        orchestrator = BatchOrchestrator(_extractor(analyze), batch_size=5, sleep=AsyncMock())
        await orchestrator.analyze_threads(threads, ME)

        assert peak == 5

    @pytest.mark.anyio()
    async def test_unexpected_error_becomes_empty_result(
        self, threads: list[EmailThread]
    ) -> None:
        async def analyze(thread: EmailThread, user_email: str) -> ThreadAnalysisResult:
            if thread.thread_id == "t3":
                raise RuntimeError("boom")
            return ThreadAnalysisResult(thread_id=thread.thread_id, confidence=0.9)

        orchestrator = BatchOrchestrator(_extractor(analyze), batch_size=5, sleep=AsyncMock())
        results = await orchestrator.analyze_threads(threads, ME)

        assert len(results) == 12
        assert results[3].thread_id == "t3"
        assert results[3].is_empty
        assert results[4].confidence == 0.9

    @pytest.mark.anyio()
    async def test_relationship_contacts_reported(
        self, make_thread: Callable[..., EmailThread]
    ) -> None:
        async def analyze(thread: EmailThread, user_email: str) -> ThreadAnalysisResult:
            return ThreadAnalysisResult(
                thread_id=thread.thread_id,
                relationship_insights=[
                    RelationshipInsight(
                        contact_email="alice@example.com", suggested_category="family"
                    )
                ],
            )

        sink = MagicMock()
        orchestrator = BatchOrchestrator(
            _extractor(analyze),
            events=PipelineEvents(on_log=sink, source="analysis"),
            sleep=AsyncMock(),
        )
        await orchestrator.analyze_threads([make_thread()], ME)

        sink.assert_any_call("Found relationship insights for: alice@example.com", "analysis")

    @pytest.mark.anyio()
    async def test_no_threads(self) -> None:
        sleep = AsyncMock()
        orchestrator = BatchOrchestrator(_extractor(), sleep=sleep)
        assert await orchestrator.analyze_threads([], ME) == []
        sleep.assert_not_awaited()

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            BatchOrchestrator(_extractor(), batch_size=0)
