"""Pydantic v2 models for the persisted personal context profile.

Defaults on these models are the documented fallbacks used when analysis
produced no signal for a field.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from personal_context.domain.insights import (
    BehavioralPattern,
    ContextualResponse,
    KnowledgeArea,
    TemporalPattern,
)
from personal_context.domain.types import (
    CommunicationFrequency,
    ContactCategory,
    LearningSource,
    ManagementLevel,
)

DEFAULT_MEETING_TIMES: list[str] = ["10:00 AM", "2:00 PM"]


class CommunicationStyle(BaseModel):
    """How the user writes, either globally or towards one contact."""

    model_config = ConfigDict(frozen=True)

    tone: str = "professional"
    formality: int = Field(default=5, ge=1, le=10)
    greeting_style: list[str] = Field(default_factory=list)
    closing_style: list[str] = Field(default_factory=list)
    sentence_structure: str = "medium"
    emoji_usage: str = "minimal"
    punctuation_style: str = "standard"
    response_length: str = "moderate"
    language_preferences: list[str] = Field(default_factory=lambda: ["English"])


class ContactCommunicationStyle(BaseModel):
    """Communication style observed towards a specific contact."""

    model_config = ConfigDict(frozen=True)

    contact_email: str
    style: CommunicationStyle
    confidence: float = Field(ge=0.0, le=1.0)
    last_updated: datetime
    sample_count: int = Field(default=1, ge=0)


class ContactRelationship(BaseModel):
    """Relationship record for one contact."""

    model_config = ConfigDict(frozen=True)

    contact_email: str
    contact_name: str | None = None
    relationship_type: ContactCategory
    confidence: float = Field(ge=0.0, le=1.0)
    communication_frequency: CommunicationFrequency = CommunicationFrequency.MONTHLY
    response_time_pattern: str = "business_hours"
    communication_initiator: str = "mutual"
    shared_contexts: list[str] = Field(default_factory=list)
    relationship_dynamics: str | None = None
    last_interaction: datetime
    total_interactions: int = 1
    # Minutes
    average_response_time: int = 1440

    @field_validator("contact_email")
    @classmethod
    def email_must_not_be_empty(cls, v: str) -> str:
        """Ensure contact_email is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("contact_email must not be empty")
        return v


class WorkingHours(BaseModel):
    model_config = ConfigDict(frozen=True)

    timezone: str = "UTC"
    start_hour: int = Field(default=9, ge=0, le=23)
    end_hour: int = Field(default=17, ge=0, le=24)
    # 0 = Sunday ... 6 = Saturday
    work_days: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])


class MeetingPatterns(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Minutes
    preferred_duration: int = 30
    preferred_times: list[str] = Field(default_factory=lambda: list(DEFAULT_MEETING_TIMES))
    meeting_style: str = "formal"


class ProfessionalProfile(BaseModel):
    """The user's job, employer, and working habits."""

    model_config = ConfigDict(frozen=True)

    job_title: str = "Professional"
    company: str = "Unknown Company"
    industry: str = "Technology"
    department: str = "General"
    management_level: ManagementLevel = ManagementLevel.INDIVIDUAL
    expertise: list[str] = Field(default_factory=list)
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    meeting_patterns: MeetingPatterns = Field(default_factory=MeetingPatterns)
    projects_and_responsibilities: list[str] = Field(default_factory=list)
    networking_style: str = "selective"
    decision_making_authority: list[str] = Field(default_factory=list)


class ResponseTimingPatterns(BaseModel):
    model_config = ConfigDict(frozen=True)

    business_hours: bool = True
    evening_emails: bool = False
    weekend_emails: bool = False
    # Hours
    urgent_response_time: int = 4
    normal_response_time: int = 24


class CommunicationPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    preferred_channels: list[str] = Field(default_factory=lambda: ["email"])
    formality_by_context: dict[str, int] = Field(default_factory=dict)
    topic_preferences: list[str] = Field(default_factory=list)
    avoidance_topics: list[str] = Field(default_factory=list)


class SchedulingPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    preferred_meeting_times: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MEETING_TIMES)
    )
    # Minutes
    buffer_time_needed: int = 15
    back_to_back_tolerance: bool = False


class PersonalPreferences(BaseModel):
    """Personal habits and preferences inferred from the mailbox."""

    model_config = ConfigDict(frozen=True)

    response_timing_patterns: ResponseTimingPatterns = Field(
        default_factory=ResponseTimingPatterns
    )
    communication_preferences: CommunicationPreferences = Field(
        default_factory=CommunicationPreferences
    )
    decision_making_style: str = "deliberate"
    conflict_resolution_approach: str = "diplomatic"
    scheduling_preferences: SchedulingPreferences = Field(default_factory=SchedulingPreferences)
    personal_interests: list[str] = Field(default_factory=list)
    values_and_beliefs: list[str] = Field(default_factory=list)


class AnalysisTimeRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: datetime
    end_date: datetime


class ConfidenceScores(BaseModel):
    """Per-dimension confidence.  Every dimension currently mirrors ``overall``."""

    model_config = ConfigDict(frozen=True)

    overall: float = 0.0
    communication_style: float = 0.0
    relationships: float = 0.0
    professional_profile: float = 0.0
    personal_preferences: float = 0.0

    @classmethod
    def mirrored(cls, overall: float) -> ConfidenceScores:
        """Build scores where every dimension equals *overall*."""
        return cls(
            overall=overall,
            communication_style=overall,
            relationships=overall,
            professional_profile=overall,
            personal_preferences=overall,
        )


class LearningMetadata(BaseModel):
    """Counts and provenance stamped onto a profile by a learning run."""

    model_config = ConfigDict(frozen=True)

    emails_analyzed: int = 0
    threads_analyzed: int = 0
    contacts_classified: int = 0
    last_full_analysis: datetime | None = None
    analysis_time_range: AnalysisTimeRange
    confidence_scores: ConfidenceScores = Field(default_factory=ConfidenceScores)
    learning_source: LearningSource = LearningSource.HISTORICAL_ANALYSIS


class CommunicationPatterns(BaseModel):
    model_config = ConfigDict(frozen=True)

    global_style: CommunicationStyle = Field(default_factory=CommunicationStyle)
    contact_specific_styles: dict[str, ContactCommunicationStyle] = Field(default_factory=dict)


class Relationships(BaseModel):
    model_config = ConfigDict(frozen=True)

    contacts: dict[str, ContactRelationship] = Field(default_factory=dict)
    relationship_types: list[ContactCategory] = Field(default_factory=list)


class PersonalContextProfile(BaseModel):
    """The aggregated personal context of one user.

    A learning run always produces a complete new version; the store persists
    only whole profiles.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    version: int = Field(default=1, ge=1)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    last_analyzed: datetime
    last_updated: datetime
    communication_patterns: CommunicationPatterns = Field(default_factory=CommunicationPatterns)
    relationships: Relationships = Field(default_factory=Relationships)
    professional_profile: ProfessionalProfile = Field(default_factory=ProfessionalProfile)
    personal_preferences: PersonalPreferences = Field(default_factory=PersonalPreferences)
    behavioral_patterns: list[BehavioralPattern] = Field(default_factory=list)
    contextual_responses: list[ContextualResponse] = Field(default_factory=list)
    temporal_patterns: list[TemporalPattern] = Field(default_factory=list)
    knowledge_areas: list[KnowledgeArea] = Field(default_factory=list)
    learning_metadata: LearningMetadata

    @field_validator("user_id")
    @classmethod
    def user_id_must_not_be_empty(cls, v: str) -> str:
        """Ensure user_id is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("user_id must not be empty")
        return v
