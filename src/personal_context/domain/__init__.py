"""Domain types, models, and errors for the personal context engine."""

from personal_context.domain.errors import (
    IdentityLookupError,
    InvalidPhaseTransitionError,
    PersonalContextError,
    StoreError,
    ThreadDiscoveryError,
)
from personal_context.domain.insights import (
    BehavioralPattern,
    CommunicationInsight,
    ContextualResponse,
    Insight,
    KnowledgeArea,
    PersonalInsight,
    ProfessionalInsight,
    RelationshipInsight,
    TemporalPattern,
    ThreadAnalysisResult,
)
from personal_context.domain.models import (
    LearningInput,
    LearningOptions,
    LearningProgress,
    LearningResult,
    OperationResult,
    ProfileStatistics,
)
from personal_context.domain.profile import (
    CommunicationStyle,
    ContactCommunicationStyle,
    ContactRelationship,
    PersonalContextProfile,
    PersonalPreferences,
    ProfessionalProfile,
)
from personal_context.domain.types import (
    DEPTH_THREAD_LIMITS,
    AnalysisDepth,
    ContactCategory,
    ExpertiseLevel,
    FormalityLevel,
    LearningPhase,
    LearningStatus,
    ManagementLevel,
    ThreadCategory,
    TimeRange,
)

__all__ = [
    "DEPTH_THREAD_LIMITS",
    "AnalysisDepth",
    "BehavioralPattern",
    "CommunicationInsight",
    "CommunicationStyle",
    "ContactCategory",
    "ContactCommunicationStyle",
    "ContactRelationship",
    "ContextualResponse",
    "ExpertiseLevel",
    "FormalityLevel",
    "IdentityLookupError",
    "Insight",
    "InvalidPhaseTransitionError",
    "KnowledgeArea",
    "LearningInput",
    "LearningOptions",
    "LearningPhase",
    "LearningProgress",
    "LearningResult",
    "LearningStatus",
    "ManagementLevel",
    "OperationResult",
    "PersonalContextError",
    "PersonalContextProfile",
    "PersonalInsight",
    "PersonalPreferences",
    "ProfessionalInsight",
    "ProfessionalProfile",
    "ProfileStatistics",
    "RelationshipInsight",
    "StoreError",
    "TemporalPattern",
    "ThreadAnalysisResult",
    "ThreadCategory",
    "ThreadDiscoveryError",
    "TimeRange",
]
