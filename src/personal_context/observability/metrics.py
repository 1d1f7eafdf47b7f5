"""Prometheus metrics instrumentation for the personal context engine.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count.
- ``LEARNING_RUNS``: Counter of finished learning runs labelled by outcome.
- ``THREADS_ANALYZED``: Counter of threads handed to the insight extractor.
- ``EXTRACTION_FAILURES``: Counter of thread analyses that fell back to an
  empty result.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

LEARNING_RUNS: Counter = Counter(
    "personal_context_learning_runs_total",
    "Learning runs by outcome (success, no_threads, failed)",
    ["outcome"],
)

THREADS_ANALYZED: Counter = Counter(
    "personal_context_threads_analyzed_total",
    "Threads sent through the insight extractor",
)

EXTRACTION_FAILURES: Counter = Counter(
    "personal_context_extraction_failures_total",
    "Thread analyses that returned an empty result because of an error",
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
