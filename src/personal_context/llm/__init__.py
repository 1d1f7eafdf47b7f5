"""LLM-backed thread insight extraction and batching."""

from personal_context.llm.batch import BatchOrchestrator, partition
from personal_context.llm.client import (
    ANALYSIS_MODEL,
    AnthropicCompleter,
    Completer,
    get_anthropic_client,
)
from personal_context.llm.extractor import (
    ThreadInsightExtractor,
    build_thread_analysis_prompt,
    extract_json_span,
    parse_analysis_response,
)
from personal_context.llm.prompts import THREAD_ANALYSIS_PROMPT

__all__ = [
    "ANALYSIS_MODEL",
    "THREAD_ANALYSIS_PROMPT",
    "AnthropicCompleter",
    "BatchOrchestrator",
    "Completer",
    "ThreadInsightExtractor",
    "build_thread_analysis_prompt",
    "extract_json_span",
    "get_anthropic_client",
    "parse_analysis_response",
    "partition",
]
