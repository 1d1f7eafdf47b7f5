"""Tests for the bounded progress message buffer."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from personal_context.observability.events import PipelineEvents
from personal_context.observability.server_logs import MAX_ENTRIES, ServerLogBuffer


def test_default_capacity() -> None:
    buffer = ServerLogBuffer()
    for n in range(MAX_ENTRIES + 5):
        buffer.append(f"m{n}")

    assert len(buffer) == MAX_ENTRIES
    entries = buffer.recent(limit=MAX_ENTRIES)
    assert entries[0].message == f"m{MAX_ENTRIES + 4}"
    assert entries[-1].message == "m5"


def test_recent_is_newest_first() -> None:
    buffer = ServerLogBuffer(max_entries=10)
    for n in range(3):
        buffer.append(f"m{n}")
    assert [e.message for e in buffer.recent()] == ["m2", "m1", "m0"]


def test_naive_after_is_utc() -> None:
    buffer = ServerLogBuffer()
    buffer.append("kept")

    cutoff = datetime.now(tz=UTC) - timedelta(minutes=1)
    assert [e.message for e in buffer.recent(after=cutoff.replace(tzinfo=None))] == ["kept"]
    assert buffer.recent(after=datetime.now(tz=UTC) + timedelta(minutes=1)) == []


def test_clear() -> None:
    buffer = ServerLogBuffer()
    buffer.append("gone")
    buffer.clear()
    assert buffer.recent() == []


def test_pipeline_events_sink() -> None:
    buffer = ServerLogBuffer()
    events = PipelineEvents(on_log=buffer.append, source="service")

    events.for_source("gmail").emit("Fetched 3 threads")

    [entry] = buffer.recent()
    assert entry.message == "Fetched 3 threads"
    assert entry.source == "gmail"
