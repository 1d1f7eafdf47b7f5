"""Anthropic client factory and the text-completion seam used by the extractor."""

from __future__ import annotations

import asyncio
from typing import Protocol

from anthropic import Anthropic

ANALYSIS_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_MAX_TOKENS = 4096


class Completer(Protocol):
    """Single-shot prompt -> text completion."""

    async def complete(self, prompt: str) -> str: ...


def get_anthropic_client() -> Anthropic:
    """Create an Anthropic client using API key from environment.

    The Anthropic() constructor reads ANTHROPIC_API_KEY from the environment
    automatically.

    Returns:
        Configured Anthropic client instance.
    """
    return Anthropic()


class AnthropicCompleter:
    """``Completer`` backed by the Anthropic Messages API.

    The SDK client is synchronous; each request runs in a worker thread so
    several completions can be in flight at once.

    Args:
        client: An ``anthropic.Anthropic`` instance (or compatible mock).
        model: The model ID to use.
        max_tokens: Upper bound on the completion length.
    """

    def __init__(
        self,
        client: Anthropic,
        *,
        model: str = ANALYSIS_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

    async def complete(self, prompt: str) -> str:
        """Send *prompt* as a single user turn and return the text reply."""
        response = await asyncio.to_thread(
            self._client.messages.create,
            model=self._model,
            max_tokens=self._max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
