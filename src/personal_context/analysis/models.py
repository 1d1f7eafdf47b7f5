"""Pydantic v2 models for aggregated insight summaries."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from personal_context.domain.insights import (
    BehavioralPattern,
    ContextualResponse,
    KnowledgeArea,
    TemporalPattern,
)
from personal_context.domain.profile import (
    CommunicationStyle,
    MeetingPatterns,
    ResponseTimingPatterns,
    WorkingHours,
)
from personal_context.domain.types import CommunicationFrequency, ContactCategory, ManagementLevel


class ContactRelationshipSummary(BaseModel):
    """Voted relationship category for one contact seen in relationship insights."""

    model_config = ConfigDict(frozen=True)

    contact_email: str
    category: ContactCategory
    confidence: float
    evidence: list[str] = Field(default_factory=list)
    relationship_dynamics: str | None = None
    communication_frequency: CommunicationFrequency | None = None
    interaction_count: int = 1


class ContactStyleSummary(BaseModel):
    """Communication style towards one contact, from contact-tagged insights."""

    model_config = ConfigDict(frozen=True)

    contact_email: str
    style: CommunicationStyle
    confidence: float
    sample_count: int


class ProfessionalSummary(BaseModel):
    """Professional facts voted from insights.

    Text fields are ``None`` when no insight supplied a value; the profile
    builder substitutes the documented defaults.
    """

    model_config = ConfigDict(frozen=True)

    job_title: str | None = None
    company: str | None = None
    department: str | None = None
    management_level: ManagementLevel = ManagementLevel.INDIVIDUAL
    expertise: list[str] = Field(default_factory=list)
    projects_and_responsibilities: list[str] = Field(default_factory=list)
    decision_making_authority: list[str] = Field(default_factory=list)
    meeting_patterns: MeetingPatterns = Field(default_factory=MeetingPatterns)
    working_hours: WorkingHours = Field(default_factory=WorkingHours)


class PreferenceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision_making_style: str = "deliberate"
    personal_interests: list[str] = Field(default_factory=list)
    topic_preferences: list[str] = Field(default_factory=list)
    response_timing_patterns: ResponseTimingPatterns = Field(
        default_factory=ResponseTimingPatterns
    )


class AggregatedInsights(BaseModel):
    """Profile-shaped summary of many thread analyses.

    Every collection is present (possibly empty) even when no insight of
    that kind was extracted.
    """

    model_config = ConfigDict(frozen=True)

    communication_style: CommunicationStyle = Field(default_factory=CommunicationStyle)
    contact_relationships: list[ContactRelationshipSummary] = Field(default_factory=list)
    contact_styles: list[ContactStyleSummary] = Field(default_factory=list)
    professional_profile: ProfessionalSummary = Field(default_factory=ProfessionalSummary)
    personal_preferences: PreferenceSummary = Field(default_factory=PreferenceSummary)
    behavioral_patterns: list[BehavioralPattern] = Field(default_factory=list)
    contextual_responses: list[ContextualResponse] = Field(default_factory=list)
    temporal_patterns: list[TemporalPattern] = Field(default_factory=list)
    knowledge_areas: list[KnowledgeArea] = Field(default_factory=list)
    confidence: float = 0.0
