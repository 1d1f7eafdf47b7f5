"""Aggregation of thread analyses into profile-shaped summaries."""

from personal_context.analysis.aggregator import InsightAggregator, group_by, plurality
from personal_context.analysis.heuristics import (
    estimate_formality,
    infer_management_level,
    infer_meeting_patterns,
    infer_response_timing,
    infer_working_hours,
)
from personal_context.analysis.models import (
    AggregatedInsights,
    ContactRelationshipSummary,
    ContactStyleSummary,
    PreferenceSummary,
    ProfessionalSummary,
)

__all__ = [
    "AggregatedInsights",
    "ContactRelationshipSummary",
    "ContactStyleSummary",
    "InsightAggregator",
    "PreferenceSummary",
    "ProfessionalSummary",
    "estimate_formality",
    "group_by",
    "infer_management_level",
    "infer_meeting_patterns",
    "infer_response_timing",
    "infer_working_hours",
    "plurality",
]
