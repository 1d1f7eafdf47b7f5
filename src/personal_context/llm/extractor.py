"""Per-thread insight extraction.

Builds a bounded prompt summarizing one interactive thread, sends it as a
single completion request, and parses the reply leniently into a
``ThreadAnalysisResult``.  Any failure (timeout, transport error, missing or
invalid JSON) yields the empty result for that thread instead of an
exception.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from personal_context.domain.insights import (
    BehavioralPattern,
    CommunicationInsight,
    ContextualResponse,
    KnowledgeArea,
    PersonalInsight,
    ProfessionalInsight,
    RelationshipInsight,
    TemporalPattern,
    ThreadAnalysisResult,
    mean_confidence,
)
from personal_context.domain.types import (
    CommunicationFrequency,
    CommunicationInsightType,
    ContactCategory,
    ExpertiseLevel,
    FormalityLevel,
    ManagementLevel,
    PersonalInsightType,
    ProfessionalInsightType,
)
from personal_context.email.models import EmailThread, ThreadMessage
from personal_context.llm.client import Completer
from personal_context.llm.prompts import THREAD_ANALYSIS_PROMPT
from personal_context.observability.events import PipelineEvents
from personal_context.observability.metrics import EXTRACTION_FAILURES

logger = structlog.get_logger()

MAX_PARTICIPANTS = 3
MAX_USER_SAMPLES = 3
MAX_OTHER_SAMPLES = 2
MAX_RECIPIENTS = 2
BODY_CHAR_LIMIT = 500
DEFAULT_TIMEOUT_SECONDS = 60.0

# Result field -> (camelCase key also accepted, insight model)
_SECTIONS: dict[str, tuple[str, type[BaseModel]]] = {
    "communication_insights": ("communicationInsights", CommunicationInsight),
    "relationship_insights": ("relationshipInsights", RelationshipInsight),
    "professional_insights": ("professionalInsights", ProfessionalInsight),
    "personal_insights": ("personalInsights", PersonalInsight),
    "behavioral_patterns": ("behavioralPatterns", BehavioralPattern),
    "contextual_responses": ("contextualResponses", ContextualResponse),
    "temporal_patterns": ("temporalPatterns", TemporalPattern),
    "knowledge_areas": ("knowledgeAreas", KnowledgeArea),
}


def truncate_body(body: str, limit: int = BODY_CHAR_LIMIT) -> str:
    """Cut *body* to *limit* characters, appending ``...`` when cut."""
    if len(body) <= limit:
        return body
    return body[:limit] + "..."


def _choices(enum_cls: Any) -> str:
    return "|".join(member.value for member in enum_cls)


def _sample(message: ThreadMessage, *, include_recipients: bool) -> dict[str, Any]:
    sample: dict[str, Any] = {}
    if include_recipients:
        sample["to"] = message.to[:MAX_RECIPIENTS]
    else:
        sample["from"] = message.sender
    sample["body"] = truncate_body(message.body)
    sample["timestamp"] = message.timestamp.isoformat()
    return sample


def build_thread_analysis_prompt(thread: EmailThread, user_email: str) -> str:
    """Render the extraction prompt for *thread*.

    Includes the subject, up to three non-user participants, message counts,
    the date span, the category, up to three user messages and up to two
    messages from other participants, each truncated to 500 characters.
    """
    user = user_email.lower()
    others = [p for p in thread.participants if p.lower() != user]
    summary = {
        "subject": thread.subject,
        "participants": others[:MAX_PARTICIPANTS],
        "message_count": thread.message_count,
        "user_message_count": len(thread.user_messages),
        "time_span": (
            f"{thread.first_message_date:%a %b %d %Y} to {thread.last_message_date:%a %b %d %Y}"
        ),
        "category": thread.thread_category.value,
    }
    user_samples = [
        _sample(m, include_recipients=True) for m in thread.user_messages[:MAX_USER_SAMPLES]
    ]
    other_samples = [
        _sample(m, include_recipients=False) for m in thread.other_messages[:MAX_OTHER_SAMPLES]
    ]

    return THREAD_ANALYSIS_PROMPT.format(
        thread_summary=json.dumps(summary, indent=2),
        user_messages=json.dumps(user_samples, indent=2),
        other_messages=json.dumps(other_samples, indent=2),
        communication_types=_choices(CommunicationInsightType),
        contact_categories=_choices(ContactCategory),
        communication_frequencies=_choices(CommunicationFrequency),
        professional_types=_choices(ProfessionalInsightType),
        personal_types=_choices(PersonalInsightType),
        formality_levels=_choices(FormalityLevel),
        expertise_levels=_choices(ExpertiseLevel),
        management_levels=", ".join(level.value for level in ManagementLevel),
    )


def extract_json_span(text: str) -> str | None:
    """Return the text from the first ``{`` to the last ``}``, or None."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def parse_analysis_response(text: str, thread_id: str) -> ThreadAnalysisResult:
    """Parse an LLM reply into a ``ThreadAnalysisResult``.

    Entries that fail validation are dropped individually; the rest of the
    reply is kept.  A reply without a JSON object, with invalid JSON, or whose
    top level is not an object yields the empty result.

    Args:
        text: The raw completion text.
        thread_id: The analyzed thread's id.

    Returns:
        The parsed result, with confidence set to the rounded mean of every
        kept insight's confidence.
    """
    span = extract_json_span(text)
    if span is None:
        logger.warning("No JSON found in analysis result", thread_id=thread_id)
        return ThreadAnalysisResult.empty(thread_id)

    try:
        parsed = json.loads(span)
    except json.JSONDecodeError as exc:
        logger.warning("Invalid JSON in analysis result", thread_id=thread_id, error=str(exc))
        return ThreadAnalysisResult.empty(thread_id)

    if not isinstance(parsed, dict):
        logger.warning("Analysis result is not a JSON object", thread_id=thread_id)
        return ThreadAnalysisResult.empty(thread_id)

    sections: dict[str, list[Any]] = {}
    for field, (camel_key, model) in _SECTIONS.items():
        raw = parsed.get(field, parsed.get(camel_key))
        entries: list[Any] = []
        if isinstance(raw, list):
            for item in raw:
                if not isinstance(item, dict):
                    continue
                try:
                    entries.append(model.model_validate(item))
                except ValidationError as exc:
                    logger.debug(
                        "Dropped invalid insight",
                        thread_id=thread_id,
                        section=field,
                        errors=exc.error_count(),
                    )
                except TypeError as exc:
                    logger.debug(
                        "Dropped malformed insight",
                        thread_id=thread_id,
                        section=field,
                        error=str(exc),
                    )
        sections[field] = entries

    confidences = [insight.confidence for entries in sections.values() for insight in entries]
    return ThreadAnalysisResult(
        thread_id=thread_id,
        confidence=mean_confidence(confidences),
        **sections,
    )


class ThreadInsightExtractor:
    """Extract a typed insight bundle from one thread with a single LLM call.

    Args:
        completer: The text-completion backend.
        timeout_seconds: Per-call timeout; expiry counts as a failure.
        events: Progress emitter.  Defaults to a log-only emitter tagged
            ``analysis``.
    """

    def __init__(
        self,
        completer: Completer,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        events: PipelineEvents | None = None,
    ) -> None:
        self._completer = completer
        self._timeout = timeout_seconds
        self._events = events or PipelineEvents(source="analysis")

    async def analyze_thread(self, thread: EmailThread, user_email: str) -> ThreadAnalysisResult:
        """Analyze *thread* and never raise.

        A thread without any user-authored message returns the empty result
        without contacting the LLM.
        """
        if not thread.user_messages:
            return ThreadAnalysisResult.empty(thread.thread_id)

        subject = thread.subject[:30] + ("..." if len(thread.subject) > 30 else "")
        self._events.emit(
            f'Analyzing thread: "{subject}" ({len(thread.messages)} messages)',
            thread_id=thread.thread_id,
        )

        prompt = build_thread_analysis_prompt(thread, user_email)
        try:
            text = await asyncio.wait_for(self._completer.complete(prompt), timeout=self._timeout)
        except TimeoutError:
            EXTRACTION_FAILURES.inc()
            logger.warning(
                "Thread analysis timed out",
                thread_id=thread.thread_id,
                timeout_seconds=self._timeout,
            )
            self._events.emit("Failed to analyze thread: timed out", thread_id=thread.thread_id)
            return ThreadAnalysisResult.empty(thread.thread_id)
        except Exception as exc:
            EXTRACTION_FAILURES.inc()
            logger.warning("Thread analysis failed", thread_id=thread.thread_id, exc_info=True)
            self._events.emit(f"Failed to analyze thread: {exc}", thread_id=thread.thread_id)
            return ThreadAnalysisResult.empty(thread.thread_id)

        try:
            return parse_analysis_response(text, thread.thread_id)
        except Exception as exc:
            EXTRACTION_FAILURES.inc()
            logger.warning(
                "Thread analysis result could not be parsed",
                thread_id=thread.thread_id,
                exc_info=True,
            )
            self._events.emit(f"Failed to analyze thread: {exc}", thread_id=thread.thread_id)
            return ThreadAnalysisResult.empty(thread.thread_id)
