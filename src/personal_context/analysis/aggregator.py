"""Fold many per-thread analyses into one profile-shaped summary.

Aggregation is a pure function of its input: nothing here performs I/O.
Every insight kind feeds at least one field of the result.
"""

from __future__ import annotations

import statistics
from collections import Counter
from collections.abc import Callable, Hashable, Iterable, Sequence
from itertools import chain
from typing import TypeVar

import structlog

from personal_context.analysis.heuristics import (
    estimate_formality,
    infer_management_level,
    infer_meeting_patterns,
    infer_response_timing,
    infer_working_hours,
    pooled_text,
)
from personal_context.analysis.models import (
    AggregatedInsights,
    ContactRelationshipSummary,
    ContactStyleSummary,
    PreferenceSummary,
    ProfessionalSummary,
)
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
    unique_strings,
)
from personal_context.domain.profile import CommunicationStyle
from personal_context.domain.types import (
    CommunicationFrequency,
    CommunicationInsightType,
    PersonalInsightType,
    ProfessionalInsightType,
)

logger = structlog.get_logger()

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

DEFAULT_TONE = "professional"
DEFAULT_DECISION_STYLE = "deliberate"
MAX_GREETINGS = 3
MAX_CLOSINGS = 3
MAX_RELATIONSHIP_EVIDENCE = 5
MAX_EXPERTISE = 5
MAX_RESPONSIBILITIES = 10
MAX_AUTHORITY = 5
MAX_INTERESTS = 10
MAX_PATTERN_EVIDENCE = 3
MAX_TRIGGERS = 5
MAX_KEY_PHRASES = 6
MAX_SPECIFIC_TIMES = 5
SCENARIO_KEY_LENGTH = 20


def plurality(values: Iterable[str]) -> str | None:
    """Most frequent non-blank value; ties go to the first one seen."""
    counts = Counter(v for v in values if v and v.strip())
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def group_by(items: Iterable[T], key: Callable[[T], K]) -> dict[K, list[T]]:
    """Group *items* by *key*, keeping first-seen group order."""
    groups: dict[K, list[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def _representative(group: Sequence[T]) -> T:
    # max() keeps the first of equal elements
    return max(group, key=lambda item: item.confidence)  # type: ignore[attr-defined]


def _group_confidence(group: Sequence[T]) -> float:
    return statistics.fmean(item.confidence for item in group)  # type: ignore[attr-defined]


def _merged(group: Sequence[T], attr: str, limit: int) -> list[str]:
    return unique_strings(chain.from_iterable(getattr(item, attr) for item in group), limit)


def _style_from(insights: Sequence[CommunicationInsight], default_tone: str) -> CommunicationStyle:
    tones = [i.description for i in insights if i.type is CommunicationInsightType.TONE]
    formality = [i.description for i in insights if i.type is CommunicationInsightType.FORMALITY]
    greetings = chain.from_iterable(
        i.evidence for i in insights if "greeting" in i.description.lower()
    )
    closings = chain.from_iterable(
        i.evidence for i in insights if "closing" in i.description.lower()
    )
    return CommunicationStyle(
        tone=plurality(tones) or default_tone,
        formality=estimate_formality(formality),
        greeting_style=unique_strings(greetings, MAX_GREETINGS),
        closing_style=unique_strings(closings, MAX_CLOSINGS),
    )


def _frequency(values: Iterable[str | None]) -> CommunicationFrequency | None:
    known = {f.value for f in CommunicationFrequency}
    winner = plurality(
        v.strip().lower() for v in values if v and v.strip().lower() in known
    )
    return CommunicationFrequency(winner) if winner else None


class InsightAggregator:
    """Combine thread analyses into an ``AggregatedInsights`` summary."""

    def aggregate(self, analyses: Sequence[ThreadAnalysisResult]) -> AggregatedInsights:
        """Aggregate *analyses*.

        Overall confidence is the rounded mean of the per-thread
        confidences, counting threads that produced no insights.
        """
        communication = [i for a in analyses for i in a.communication_insights]
        relationships = [i for a in analyses for i in a.relationship_insights]
        professional = [i for a in analyses for i in a.professional_insights]
        personal = [i for a in analyses for i in a.personal_insights]

        style = _style_from(communication, DEFAULT_TONE)
        result = AggregatedInsights(
            communication_style=style,
            contact_relationships=self.aggregate_relationships(relationships),
            contact_styles=self.aggregate_contact_styles(communication, style.tone),
            professional_profile=self.aggregate_professional(professional),
            personal_preferences=self.aggregate_preferences(personal),
            behavioral_patterns=self.merge_behavioral(
                [p for a in analyses for p in a.behavioral_patterns]
            ),
            contextual_responses=self.merge_contextual(
                [r for a in analyses for r in a.contextual_responses]
            ),
            temporal_patterns=self.merge_temporal(
                [p for a in analyses for p in a.temporal_patterns]
            ),
            knowledge_areas=self.merge_knowledge([k for a in analyses for k in a.knowledge_areas]),
            confidence=mean_confidence([a.confidence for a in analyses]),
        )
        logger.info(
            "Insights aggregated",
            threads=len(analyses),
            contacts=len(result.contact_relationships),
            confidence=result.confidence,
        )
        return result

    def aggregate_relationships(
        self, insights: Sequence[RelationshipInsight]
    ) -> list[ContactRelationshipSummary]:
        """One summary per contact: plurality category with the mean confidence."""
        summaries = []
        for email, group in group_by(insights, lambda i: i.contact_email).items():
            category = Counter(i.suggested_category for i in group).most_common(1)[0][0]
            summaries.append(
                ContactRelationshipSummary(
                    contact_email=email,
                    category=category,
                    confidence=_group_confidence(group),
                    evidence=_merged(group, "evidence", MAX_RELATIONSHIP_EVIDENCE),
                    relationship_dynamics=plurality(
                        i.relationship_dynamics or "" for i in group
                    ),
                    communication_frequency=_frequency(i.communication_frequency for i in group),
                    interaction_count=len(group),
                )
            )
        return summaries

    def aggregate_contact_styles(
        self, insights: Sequence[CommunicationInsight], default_tone: str
    ) -> list[ContactStyleSummary]:
        """Per-contact styles from communication insights tagged with a contact."""
        tagged = [i for i in insights if i.contact_email and i.contact_email.strip()]
        groups = group_by(tagged, lambda i: i.contact_email.strip().lower())  # type: ignore[union-attr]
        return [
            ContactStyleSummary(
                contact_email=email,
                style=_style_from(group, default_tone),
                confidence=mean_confidence([i.confidence for i in group]),
                sample_count=len(group),
            )
            for email, group in groups.items()
        ]

    def aggregate_professional(
        self, insights: Sequence[ProfessionalInsight]
    ) -> ProfessionalSummary:
        by_type = group_by(insights, lambda i: i.type)

        def values(kind: ProfessionalInsightType) -> list[str]:
            return [i.value for i in by_type.get(kind, [])]

        def pooled(kind: ProfessionalInsightType) -> str:
            return pooled_text(
                chain.from_iterable([i.value, *i.evidence] for i in by_type.get(kind, []))
            )

        authority = values(ProfessionalInsightType.AUTHORITY)
        responsibilities = values(ProfessionalInsightType.RESPONSIBILITY)
        return ProfessionalSummary(
            job_title=plurality(values(ProfessionalInsightType.ROLE)),
            company=plurality(values(ProfessionalInsightType.COMPANY)),
            department=plurality(values(ProfessionalInsightType.DEPARTMENT)),
            management_level=infer_management_level([*authority, *responsibilities]),
            expertise=unique_strings(values(ProfessionalInsightType.EXPERTISE), MAX_EXPERTISE),
            projects_and_responsibilities=unique_strings(responsibilities, MAX_RESPONSIBILITIES),
            decision_making_authority=unique_strings(authority, MAX_AUTHORITY),
            meeting_patterns=infer_meeting_patterns(
                pooled(ProfessionalInsightType.MEETING_PATTERN)
            ),
            working_hours=infer_working_hours(pooled(ProfessionalInsightType.WORKING_HOURS)),
        )

    def aggregate_preferences(self, insights: Sequence[PersonalInsight]) -> PreferenceSummary:
        by_type = group_by(insights, lambda i: i.type)

        def values(kind: PersonalInsightType) -> list[str]:
            return [i.value for i in by_type.get(kind, [])]

        schedule_evidence = pooled_text(
            chain.from_iterable(i.evidence for i in by_type.get(PersonalInsightType.SCHEDULE, []))
        )
        return PreferenceSummary(
            decision_making_style=(
                plurality(values(PersonalInsightType.DECISION_STYLE)) or DEFAULT_DECISION_STYLE
            ),
            personal_interests=unique_strings(
                values(PersonalInsightType.PREFERENCE), MAX_INTERESTS
            ),
            topic_preferences=unique_strings(values(PersonalInsightType.INTEREST), MAX_INTERESTS),
            response_timing_patterns=infer_response_timing(schedule_evidence),
        )

    def merge_behavioral(self, patterns: Sequence[BehavioralPattern]) -> list[BehavioralPattern]:
        return [
            _representative(group).model_copy(
                update={
                    "triggers": _merged(group, "triggers", MAX_TRIGGERS),
                    "evidence": _merged(group, "evidence", MAX_PATTERN_EVIDENCE),
                    "confidence": _group_confidence(group),
                }
            )
            for group in group_by(patterns, lambda p: p.type).values()
        ]

    def merge_contextual(
        self, responses: Sequence[ContextualResponse]
    ) -> list[ContextualResponse]:
        """Merge responses whose scenarios share the same lower-cased prefix."""
        groups = group_by(responses, lambda r: r.scenario.lower()[:SCENARIO_KEY_LENGTH])
        return [
            _representative(group).model_copy(
                update={
                    "key_phrases": _merged(group, "key_phrases", MAX_KEY_PHRASES),
                    "evidence": _merged(group, "evidence", MAX_PATTERN_EVIDENCE),
                    "confidence": _group_confidence(group),
                }
            )
            for group in groups.values()
        ]

    def merge_temporal(self, patterns: Sequence[TemporalPattern]) -> list[TemporalPattern]:
        return [
            _representative(group).model_copy(
                update={
                    "specific_times": _merged(group, "specific_times", MAX_SPECIFIC_TIMES),
                    "evidence": _merged(group, "evidence", MAX_PATTERN_EVIDENCE),
                    "confidence": _group_confidence(group),
                }
            )
            for group in group_by(patterns, lambda p: p.type).values()
        ]

    def merge_knowledge(self, areas: Sequence[KnowledgeArea]) -> list[KnowledgeArea]:
        """Merge areas by normalized domain, keeping the highest expertise level."""
        groups = group_by(areas, lambda k: k.domain.strip().lower())
        return [
            _representative(group).model_copy(
                update={
                    "expertise_level": max(
                        (k.expertise_level for k in group), key=lambda level: level.rank
                    ),
                    "evidence": _merged(group, "evidence", MAX_PATTERN_EVIDENCE),
                    "confidence": _group_confidence(group),
                }
            )
            for group in groups.values()
        ]
