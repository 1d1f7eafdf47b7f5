"""Batched, rate-limited fan-out of thread analyses."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from personal_context.domain.insights import ThreadAnalysisResult
from personal_context.email.models import EmailThread
from personal_context.llm.extractor import ThreadInsightExtractor
from personal_context.observability.events import PipelineEvents
from personal_context.observability.metrics import THREADS_ANALYZED

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 0.5


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split *items* into consecutive chunks of at most *size* elements.

    Raises:
        ValueError: If *size* is less than 1.
    """
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchOrchestrator:
    """Drive a ``ThreadInsightExtractor`` over many threads.

    Threads are analyzed in fixed-size batches.  Analyses inside a batch run
    concurrently; batches run one after another with a delay between them
    (none after the last).  The output has one result per input thread, in
    input order.

    Args:
        extractor: The per-thread analyzer.
        batch_size: Threads per batch.
        batch_delay_seconds: Pause between consecutive batches.
        events: Progress emitter.  Defaults to a log-only emitter tagged
            ``analysis``.
        sleep: Awaitable sleep used for the inter-batch delay.
    """

    def __init__(
        self,
        extractor: ThreadInsightExtractor,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS,
        events: PipelineEvents | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._extractor = extractor
        self._batch_size = batch_size
        self._delay = batch_delay_seconds
        self._events = events or PipelineEvents(source="analysis")
        self._sleep = sleep

    async def _analyze_one(self, thread: EmailThread, user_email: str) -> ThreadAnalysisResult:
        try:
            return await self._extractor.analyze_thread(thread, user_email)
        except Exception:
            logger.warning(
                "Unexpected thread analysis error", thread_id=thread.thread_id, exc_info=True
            )
            return ThreadAnalysisResult.empty(thread.thread_id)

    async def analyze_threads(
        self,
        threads: Sequence[EmailThread],
        user_email: str,
    ) -> list[ThreadAnalysisResult]:
        """Analyze every thread and return results in input order."""
        batches = partition(threads, self._batch_size)
        self._events.emit(f"Starting AI analysis of {len(threads)} email threads...")

        results: list[ThreadAnalysisResult] = []
        for index, batch in enumerate(batches, start=1):
            self._events.emit(
                f"Analyzing batch {index}/{len(batches)} ({len(batch)} threads)",
                batch=index,
            )
            batch_results = await asyncio.gather(
                *(self._analyze_one(thread, user_email) for thread in batch)
            )
            results.extend(batch_results)

            for result in batch_results:
                if result.relationship_insights:
                    contacts = ", ".join(r.contact_email for r in result.relationship_insights)
                    self._events.emit(
                        f"Found relationship insights for: {contacts}",
                        thread_id=result.thread_id,
                    )

            if index < len(batches):
                await self._sleep(self._delay)

        THREADS_ANALYZED.inc(len(threads))
        return results
