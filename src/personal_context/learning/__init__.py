"""Learning run coordination, phase tracking, and profile construction."""

from personal_context.learning.coordinator import (
    CONNECTION_FAILED_MESSAGE,
    NO_PROFILE_MESSAGE,
    NO_THREADS_MESSAGE,
    LearningCoordinator,
)
from personal_context.learning.draft_context import render_draft_context
from personal_context.learning.machine import LearningPhaseMachine
from personal_context.learning.models import ContextUpdateInput, ContextUpdateResult
from personal_context.learning.profile_builder import build_profile
from personal_context.learning.transitions import TERMINAL_STATES, TRANSITIONS, LearningEvent

__all__ = [
    "CONNECTION_FAILED_MESSAGE",
    "NO_PROFILE_MESSAGE",
    "NO_THREADS_MESSAGE",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "ContextUpdateInput",
    "ContextUpdateResult",
    "LearningCoordinator",
    "LearningEvent",
    "LearningPhaseMachine",
    "build_profile",
    "render_draft_context",
]
