"""Bounded in-memory buffer of learning-run progress messages.

The buffer is the ``on_log`` sink of the service's ``PipelineEvents`` so a UI
can poll ``/personal-context/server-logs`` while a run is in progress.  Only
the most recent ``MAX_ENTRIES`` messages are kept and nothing survives a
restart.
"""

from __future__ import annotations

import threading
from collections import deque
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

MAX_ENTRIES = 1000


class ServerLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    message: str
    source: str = "service"


class ServerLogBuffer:
    """Thread-safe ring buffer of ``ServerLogEntry`` records.

    Usage::

        buffer = ServerLogBuffer()
        events = PipelineEvents(on_log=buffer.append)
        buffer.recent(limit=50)
    """

    def __init__(self, max_entries: int = MAX_ENTRIES) -> None:
        self._entries: deque[ServerLogEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, message: str, source: str = "service") -> ServerLogEntry:
        """Record *message*; the oldest entry is evicted when the buffer is full."""
        entry = ServerLogEntry(message=message, source=source)
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent(self, limit: int = 100, after: datetime | None = None) -> list[ServerLogEntry]:
        """Return up to *limit* entries newer than *after*, most recent first.

        A naive *after* is taken to be UTC.
        """
        if after is not None and after.tzinfo is None:
            after = after.replace(tzinfo=UTC)
        with self._lock:
            entries = list(self._entries)
        if after is not None:
            entries = [entry for entry in entries if entry.timestamp > after]
        return entries[-limit:][::-1] if limit > 0 else []

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
