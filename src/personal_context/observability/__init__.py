"""Logging events, metrics, Sentry, and request tracing."""

from personal_context.observability.events import LogSink, PipelineEvents
from personal_context.observability.metrics import (
    EXTRACTION_FAILURES,
    LEARNING_RUNS,
    THREADS_ANALYZED,
    setup_metrics,
)

__all__ = [
    "EXTRACTION_FAILURES",
    "LEARNING_RUNS",
    "THREADS_ANALYZED",
    "LogSink",
    "PipelineEvents",
    "setup_metrics",
]
