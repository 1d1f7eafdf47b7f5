"""Progress event emission for learning runs.

``PipelineEvents`` writes every progress message to structlog and, when a
sink is supplied, forwards it to ``on_log(message, source)`` so a UI can
stream the run.  A failing sink is logged and never interrupts the run.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger()

LogSink = Callable[[str, str], None]


class PipelineEvents:
    """Emit human-readable progress messages tagged with a source name.

    Usage::

        events = PipelineEvents(on_log=print_sink, source="service")
        events.emit("Discovered 12 interactive threads", threads=12)
        gmail_events = events.for_source("gmail")
    """

    def __init__(self, on_log: LogSink | None = None, source: str = "service") -> None:
        self._on_log = on_log
        self._source = source

    @property
    def source(self) -> str:
        return self._source

    def for_source(self, source: str) -> PipelineEvents:
        """Return an emitter sharing this sink but tagged with *source*."""
        return PipelineEvents(self._on_log, source)

    def emit(self, message: str, **fields: Any) -> None:
        """Log *message* and forward it to the sink, if any.

        Args:
            message: The progress message shown to the user.
            **fields: Extra structured fields for the log entry only.
        """
        logger.info(message, source=self._source, **fields)
        if self._on_log is None:
            return
        try:
            self._on_log(message, self._source)
        except Exception:
            logger.warning("Log sink failed", source=self._source, exc_info=True)
