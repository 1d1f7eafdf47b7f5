"""Resilience infrastructure for external API calls."""

from personal_context.resilience.retry import resilient_api_call

__all__ = [
    "resilient_api_call",
]
