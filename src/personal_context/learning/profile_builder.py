"""Merge aggregation output into the persisted profile shape."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from personal_context.analysis.models import (
    AggregatedInsights,
    ContactRelationshipSummary,
    ContactStyleSummary,
    PreferenceSummary,
    ProfessionalSummary,
)
from personal_context.domain.insights import unique_strings
from personal_context.domain.profile import (
    AnalysisTimeRange,
    CommunicationPatterns,
    CommunicationPreferences,
    ConfidenceScores,
    ContactCommunicationStyle,
    ContactRelationship,
    LearningMetadata,
    PersonalContextProfile,
    PersonalPreferences,
    ProfessionalProfile,
    Relationships,
    SchedulingPreferences,
)
from personal_context.domain.types import CommunicationFrequency, LearningSource


def build_contact_relationships(
    summaries: Sequence[ContactRelationshipSummary], now: datetime
) -> dict[str, ContactRelationship]:
    """One relationship record per classified contact, keyed by address."""
    return {
        summary.contact_email: ContactRelationship(
            contact_email=summary.contact_email,
            relationship_type=summary.category,
            confidence=summary.confidence,
            communication_frequency=(
                summary.communication_frequency or CommunicationFrequency.MONTHLY
            ),
            shared_contexts=summary.evidence,
            relationship_dynamics=summary.relationship_dynamics,
            last_interaction=now,
            total_interactions=summary.interaction_count,
        )
        for summary in summaries
    }


def build_contact_styles(
    summaries: Sequence[ContactStyleSummary], now: datetime
) -> dict[str, ContactCommunicationStyle]:
    return {
        summary.contact_email: ContactCommunicationStyle(
            contact_email=summary.contact_email,
            style=summary.style,
            confidence=summary.confidence,
            last_updated=now,
            sample_count=summary.sample_count,
        )
        for summary in summaries
    }


def build_professional_profile(summary: ProfessionalSummary) -> ProfessionalProfile:
    """Fill every field the aggregation left unset with its default."""
    defaults = ProfessionalProfile()
    return ProfessionalProfile(
        job_title=summary.job_title or defaults.job_title,
        company=summary.company or defaults.company,
        department=summary.department or defaults.department,
        management_level=summary.management_level,
        expertise=summary.expertise,
        working_hours=summary.working_hours,
        meeting_patterns=summary.meeting_patterns,
        projects_and_responsibilities=summary.projects_and_responsibilities,
        decision_making_authority=summary.decision_making_authority,
    )


def build_personal_preferences(summary: PreferenceSummary) -> PersonalPreferences:
    return PersonalPreferences(
        response_timing_patterns=summary.response_timing_patterns,
        communication_preferences=CommunicationPreferences(
            topic_preferences=summary.topic_preferences,
        ),
        decision_making_style=summary.decision_making_style,
        scheduling_preferences=SchedulingPreferences(),
        personal_interests=summary.personal_interests,
    )


def build_profile(
    *,
    user_id: str,
    aggregated: AggregatedInsights,
    version: int,
    now: datetime,
    analysis_start: datetime,
    threads_analyzed: int,
    emails_analyzed: int,
) -> PersonalContextProfile:
    """Assemble a complete profile from aggregated insights.

    Args:
        user_id: Owner of the profile.
        aggregated: Output of ``InsightAggregator.aggregate``.
        version: Version number to stamp; callers pass previous + 1.
        now: Timestamp used for every "last" field.
        analysis_start: Start of the analyzed time range.
        threads_analyzed: Number of threads handed to the analyzer.
        emails_analyzed: Total messages across those threads.

    Returns:
        The new profile.  Every per-dimension confidence score mirrors the
        overall aggregation confidence.
    """
    contacts = build_contact_relationships(aggregated.contact_relationships, now)
    metadata = LearningMetadata(
        emails_analyzed=emails_analyzed,
        threads_analyzed=threads_analyzed,
        contacts_classified=len(aggregated.contact_relationships),
        last_full_analysis=now,
        analysis_time_range=AnalysisTimeRange(start_date=analysis_start, end_date=now),
        confidence_scores=ConfidenceScores.mirrored(aggregated.confidence),
        learning_source=LearningSource.HISTORICAL_ANALYSIS,
    )
    return PersonalContextProfile(
        user_id=user_id,
        version=version,
        confidence=aggregated.confidence,
        last_analyzed=now,
        last_updated=now,
        communication_patterns=CommunicationPatterns(
            global_style=aggregated.communication_style,
            contact_specific_styles=build_contact_styles(aggregated.contact_styles, now),
        ),
        relationships=Relationships(
            contacts=contacts,
            relationship_types=unique_strings(c.relationship_type for c in contacts.values()),
        ),
        professional_profile=build_professional_profile(aggregated.professional_profile),
        personal_preferences=build_personal_preferences(aggregated.personal_preferences),
        behavioral_patterns=aggregated.behavioral_patterns,
        contextual_responses=aggregated.contextual_responses,
        temporal_patterns=aggregated.temporal_patterns,
        knowledge_areas=aggregated.knowledge_areas,
        learning_metadata=metadata,
    )
