"""Pydantic v2 models for learning-run inputs, outputs, and progress."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from personal_context.domain.profile import PersonalContextProfile
from personal_context.domain.types import (
    AnalysisDepth,
    LearningPhase,
    LearningStatus,
    TimeRange,
)


class LearningOptions(BaseModel):
    """Caller-supplied knobs for thread discovery."""

    model_config = ConfigDict(frozen=True)

    time_range: TimeRange = TimeRange.LAST_3_MONTHS
    analysis_depth: AnalysisDepth = AnalysisDepth.STANDARD
    include_promotional: bool = False
    min_thread_length: int = 2

    @field_validator("min_thread_length")
    @classmethod
    def min_thread_length_must_be_positive(cls, v: int) -> int:
        """Ensure min_thread_length is at least 1."""
        if v < 1:
            raise ValueError("min_thread_length must be at least 1")
        return v


class LearningInput(BaseModel):
    """Input to a full learning run."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    access_token: SecretStr
    options: LearningOptions = Field(default_factory=LearningOptions)

    @field_validator("user_id")
    @classmethod
    def user_id_must_not_be_empty(cls, v: str) -> str:
        """Ensure user_id is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("user_id must not be empty")
        return v


class LearningResult(BaseModel):
    """Outcome of a learning run.

    ``persisted`` is False when the profile was computed but could not be
    written; ``warnings`` lists every swallowed persistence failure.
    """

    success: bool
    profile: PersonalContextProfile | None = None
    error: str | None = None
    persisted: bool = False
    warnings: list[str] = Field(default_factory=list)


class LearningProgress(BaseModel):
    """The single active progress record of a user's learning run.

    Mutated in place by the coordinator as phases advance.
    """

    model_config = ConfigDict(validate_assignment=True)

    user_id: str
    current_phase: LearningPhase = LearningPhase.DISCOVERY
    progress: int = Field(default=0, ge=0, le=100)
    threads_discovered: int = 0
    threads_analyzed: int = 0
    emails_analyzed: int = 0
    contacts_classified: int = 0
    start_time: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    estimated_completion: datetime | None = None
    status: LearningStatus = LearningStatus.IDLE
    last_error: str | None = None


class ProfileStatistics(BaseModel):
    """Summary counts for a user's stored personal context."""

    has_personal_context: bool = False
    contact_count: int = 0
    pattern_count: int = 0
    last_updated: datetime | None = None
    confidence: float | None = None


class OperationResult(BaseModel):
    """Success flag plus an optional error message."""

    success: bool
    error: str | None = None

