"""LearningPhaseMachine class with trigger, history, and valid_events."""

from __future__ import annotations

from personal_context.domain.errors import InvalidPhaseTransitionError
from personal_context.domain.types import LearningPhase
from personal_context.learning.transitions import TERMINAL_STATES, TRANSITIONS


class LearningPhaseMachine:
    """Finite state machine governing the phases of one learning run.

    Phases only move forward; ``error`` is reachable from every non-terminal
    phase and, like ``complete``, accepts no further events.

    Usage::

        sm = LearningPhaseMachine()
        sm.trigger("threads_discovered")  # -> ANALYSIS
        sm.trigger("analysis_complete")   # -> LEARNING
        sm.trigger("profile_built")       # -> COMPLETE (terminal)
    """

    def __init__(self, initial_phase: LearningPhase = LearningPhase.DISCOVERY) -> None:
        self._phase: LearningPhase = initial_phase
        self._history: list[tuple[LearningPhase, str, LearningPhase]] = []

    @property
    def phase(self) -> LearningPhase:
        """Return the current phase."""
        return self._phase

    @property
    def is_terminal(self) -> bool:
        """Return True if the run is complete or failed."""
        return self._phase in TERMINAL_STATES

    @property
    def history(self) -> list[tuple[LearningPhase, str, LearningPhase]]:
        """Return a copy of the ``(from_phase, event, to_phase)`` history."""
        return list(self._history)

    def trigger(self, event: str) -> LearningPhase:
        """Apply *event* to the current phase and transition.

        Returns:
            The new phase after the transition.

        Raises:
            InvalidPhaseTransitionError: If the transition is not allowed from
                the current phase, or if the machine is in a terminal phase.
        """
        if self.is_terminal:
            raise InvalidPhaseTransitionError(self._phase, event)

        key = (self._phase, event)
        if key not in TRANSITIONS:
            raise InvalidPhaseTransitionError(self._phase, event)

        old_phase = self._phase
        new_phase = TRANSITIONS[key]
        self._history.append((old_phase, event, new_phase))
        self._phase = new_phase
        return new_phase

    def get_valid_events(self) -> list[str]:
        """Return a sorted list of events valid from the current phase."""
        if self.is_terminal:
            return []
        return sorted(event for phase, event in TRANSITIONS if phase == self._phase)
