"""Insight models extracted from a single thread analysis.

Every insight variant carries a literal ``kind`` tag so the variants combine
into the discriminated union :data:`Insight`.  The models are lenient about the
shape of LLM output (camelCase keys, scalar evidence, out-of-range confidence)
but strict about enumerated values: an entry with an unknown category or
level fails validation and is dropped by the extractor.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from personal_context.domain.types import (
    CommunicationInsightType,
    ContactCategory,
    ExpertiseLevel,
    FormalityLevel,
    PersonalInsightType,
    ProfessionalInsightType,
)


def unique_strings(values: Iterable[Any], limit: int | None = None) -> list[str]:
    """De-duplicate non-blank strings, keeping first-seen order.

    Args:
        values: Candidate values.  Non-string values are converted with ``str``.
        limit: Optional maximum number of values to keep.

    Returns:
        The de-duplicated list, truncated to *limit* when given.
    """
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value is None:
            continue
        text = value if isinstance(value, str) else str(value)
        if not text.strip() or text in seen:
            continue
        seen.add(text)
        result.append(text)
        if limit is not None and len(result) >= limit:
            break
    return result


class _InsightBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    evidence: list[str] = Field(default_factory=list)
    confidence: float = 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: object) -> float:
        """Coerce to float and clamp into [0, 1]; a missing value counts as 0."""
        if v is None or v == "":
            return 0.0
        try:
            value = float(v)  # type: ignore[arg-type]
        except TypeError as exc:
            raise ValueError(f"confidence must be a number, got {type(v).__name__}") from exc
        if math.isnan(value):
            return 0.0
        return min(max(value, 0.0), 1.0)

    @field_validator("evidence", mode="before")
    @classmethod
    def normalize_evidence(cls, v: object) -> list[str]:
        """Accept a scalar or a list, and drop blanks and duplicates."""
        return _string_list(v)


def _lower_enum(v: object) -> object:
    if isinstance(v, str):
        return v.strip().lower().replace(" ", "_").replace("-", "_")
    return v


def _string_list(v: object) -> list[str]:
    if v is None:
        return []
    if isinstance(v, list | tuple | set | frozenset):
        return unique_strings(v)
    # Scalars such as numbers or booleans count as a single value.
    return unique_strings([v])


class CommunicationInsight(_InsightBase):
    """An observation about how the user writes."""

    kind: Literal["communication"] = "communication"
    type: CommunicationInsightType
    description: str
    contact_email: str | None = Field(
        default=None, validation_alias=AliasChoices("contact_email", "contactEmail")
    )

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> object:
        return _lower_enum(v)


class RelationshipInsight(_InsightBase):
    """A suggested relationship category for one contact."""

    kind: Literal["relationship"] = "relationship"
    contact_email: str = Field(validation_alias=AliasChoices("contact_email", "contactEmail"))
    suggested_category: ContactCategory = Field(
        validation_alias=AliasChoices("suggested_category", "suggestedCategory")
    )
    relationship_dynamics: str | None = Field(
        default=None,
        validation_alias=AliasChoices("relationship_dynamics", "relationshipDynamics"),
    )
    communication_frequency: str | None = Field(
        default=None,
        validation_alias=AliasChoices("communication_frequency", "communicationFrequency"),
    )
    communication_pattern: str | None = Field(
        default=None,
        validation_alias=AliasChoices("communication_pattern", "communicationPattern"),
    )

    @field_validator("suggested_category", mode="before")
    @classmethod
    def normalize_category(cls, v: object) -> object:
        return _lower_enum(v)

    @field_validator("contact_email")
    @classmethod
    def contact_email_must_not_be_blank(cls, v: str) -> str:
        """Normalize the address and reject blank values."""
        v = v.strip().lower()
        if not v:
            raise ValueError("contact_email must not be empty")
        return v


class ProfessionalInsight(_InsightBase):
    """A fact about the user's job, employer, or way of working."""

    kind: Literal["professional"] = "professional"
    type: ProfessionalInsightType
    value: str
    context: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> object:
        return _lower_enum(v)


class PersonalInsight(_InsightBase):
    """A personal preference, interest, or habit."""

    kind: Literal["personal"] = "personal"
    type: PersonalInsightType
    value: str
    category: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> object:
        return _lower_enum(v)


class BehavioralPattern(_InsightBase):
    """A recurring behavior and the situations that trigger it."""

    kind: Literal["behavioral"] = "behavioral"
    type: str
    pattern: str
    triggers: list[str] = Field(default_factory=list)

    @field_validator("triggers", mode="before")
    @classmethod
    def normalize_triggers(cls, v: object) -> list[str]:
        return _string_list(v)


class ContextualResponse(_InsightBase):
    """How the user typically responds in a given scenario."""

    kind: Literal["contextual"] = "contextual"
    scenario: str
    typical_response_style: str = Field(
        validation_alias=AliasChoices("typical_response_style", "typicalResponseStyle")
    )
    formality_level: FormalityLevel = Field(
        default=FormalityLevel.NEUTRAL,
        validation_alias=AliasChoices("formality_level", "formalityLevel"),
    )
    key_phrases: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("key_phrases", "keyPhrases")
    )

    @field_validator("formality_level", mode="before")
    @classmethod
    def normalize_formality(cls, v: object) -> object:
        return _lower_enum(v)

    @field_validator("key_phrases", mode="before")
    @classmethod
    def normalize_phrases(cls, v: object) -> list[str]:
        return _string_list(v)


class TemporalPattern(_InsightBase):
    """A timing habit such as when the user replies or schedules."""

    kind: Literal["temporal"] = "temporal"
    type: str
    pattern: str
    specific_times: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("specific_times", "specificTimes"),
    )

    @field_validator("specific_times", mode="before")
    @classmethod
    def normalize_times(cls, v: object) -> list[str]:
        return _string_list(v)


class KnowledgeArea(_InsightBase):
    """A subject the user demonstrates knowledge of."""

    kind: Literal["knowledge"] = "knowledge"
    domain: str
    expertise_level: ExpertiseLevel = Field(
        default=ExpertiseLevel.INTERMEDIATE,
        validation_alias=AliasChoices("expertise_level", "expertiseLevel"),
    )
    context: str | None = None

    @field_validator("expertise_level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return _lower_enum(v)


Insight = Annotated[
    CommunicationInsight
    | RelationshipInsight
    | ProfessionalInsight
    | PersonalInsight
    | BehavioralPattern
    | ContextualResponse
    | TemporalPattern
    | KnowledgeArea,
    Field(discriminator="kind"),
]


def mean_confidence(values: Sequence[float]) -> float:
    """Arithmetic mean rounded to two decimals, 0 for an empty sequence."""
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


class ThreadAnalysisResult(BaseModel):
    """All insights extracted from one thread, plus their mean confidence."""

    model_config = ConfigDict(frozen=True)

    thread_id: str
    communication_insights: list[CommunicationInsight] = Field(default_factory=list)
    relationship_insights: list[RelationshipInsight] = Field(default_factory=list)
    professional_insights: list[ProfessionalInsight] = Field(default_factory=list)
    personal_insights: list[PersonalInsight] = Field(default_factory=list)
    behavioral_patterns: list[BehavioralPattern] = Field(default_factory=list)
    contextual_responses: list[ContextualResponse] = Field(default_factory=list)
    temporal_patterns: list[TemporalPattern] = Field(default_factory=list)
    knowledge_areas: list[KnowledgeArea] = Field(default_factory=list)
    confidence: float = 0.0

    @classmethod
    def empty(cls, thread_id: str) -> ThreadAnalysisResult:
        """Build a result with no insights and zero confidence."""
        return cls(thread_id=thread_id)

    def all_insights(self) -> list[Insight]:
        """Every insight of every variant, in field order."""
        return [
            *self.communication_insights,
            *self.relationship_insights,
            *self.professional_insights,
            *self.personal_insights,
            *self.behavioral_patterns,
            *self.contextual_responses,
            *self.temporal_patterns,
            *self.knowledge_areas,
        ]

    @property
    def is_empty(self) -> bool:
        return not self.all_insights()
