"""Transition map defining all valid (phase, event) -> phase mappings."""

from enum import StrEnum

from personal_context.domain.types import LearningPhase


class LearningEvent(StrEnum):
    """Events that advance a learning run through its phases."""

    THREADS_DISCOVERED = "threads_discovered"
    ANALYSIS_COMPLETE = "analysis_complete"
    PROFILE_BUILT = "profile_built"
    FAIL = "fail"


# Any pair not in this dict is an invalid transition.
TRANSITIONS: dict[tuple[LearningPhase, str], LearningPhase] = {
    # From DISCOVERY
    (LearningPhase.DISCOVERY, LearningEvent.THREADS_DISCOVERED): LearningPhase.ANALYSIS,
    (LearningPhase.DISCOVERY, LearningEvent.FAIL): LearningPhase.ERROR,
    # From ANALYSIS
    (LearningPhase.ANALYSIS, LearningEvent.ANALYSIS_COMPLETE): LearningPhase.LEARNING,
    (LearningPhase.ANALYSIS, LearningEvent.FAIL): LearningPhase.ERROR,
    # From LEARNING
    (LearningPhase.LEARNING, LearningEvent.PROFILE_BUILT): LearningPhase.COMPLETE,
    (LearningPhase.LEARNING, LearningEvent.FAIL): LearningPhase.ERROR,
}

# Phases that reject all events
TERMINAL_STATES: frozenset[LearningPhase] = frozenset(
    {LearningPhase.COMPLETE, LearningPhase.ERROR}
)
