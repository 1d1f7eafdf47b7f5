"""Resilient API call decorator with tenacity retry.

Retries 3 times with exponential backoff and jitter, logs each retry, and
re-raises the original exception once attempts are exhausted.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

MAX_ATTEMPTS = 3


def _api_name(retry_state: RetryCallState) -> str:
    return getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"


def log_final_failure(retry_state: RetryCallState) -> Any:
    """Log exhaustion of all attempts, then re-raise the last exception.

    Args:
        retry_state: Tenacity retry state with attempt info and outcome.
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.error(
        "API call failed after all retries",
        api_name=_api_name(retry_state),
        attempts=retry_state.attempt_number,
        exception=str(exception),
    )
    if retry_state.outcome is not None:
        # Raises the original exception
        return retry_state.outcome.result()
    return None


def _before_sleep_log(retry_state: RetryCallState) -> None:
    """Log a warning before each retry attempt.

    Args:
        retry_state: Tenacity retry state with attempt info.
    """
    logger.warning(
        "Retrying API call",
        api_name=_api_name(retry_state),
        attempt=retry_state.attempt_number,
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def resilient_api_call(api_name: str) -> Callable[[F], F]:
    """Create a retry decorator for a synchronous API call.

    Returns a tenacity retry decorator configured with:
    - 3 attempts maximum
    - Exponential backoff with jitter (1s initial, 30s max, 5s jitter)
    - Warning log before each retry
    - Error log and re-raise of the original exception on final failure

    Args:
        api_name: Human-readable name for the API (used in logs).

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def decorator(func: F) -> F:
        func._api_name = api_name  # type: ignore[attr-defined]

        wrapped = retry(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=wait_exponential_jitter(initial=1, max=30, jitter=5),
            before_sleep=_before_sleep_log,
            retry_error_callback=log_final_failure,
        )(func)

        return wrapped  # type: ignore[return-value]

    return decorator
