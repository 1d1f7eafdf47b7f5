"""Domain-specific exception classes for the personal context engine."""

from personal_context.domain.types import LearningPhase


class PersonalContextError(Exception):
    """Base class for all domain errors in the personal context engine."""


class IdentityLookupError(PersonalContextError):
    """Raised when the mailbox identity for a credential cannot be resolved."""


class ThreadDiscoveryError(PersonalContextError):
    """Raised when interactive thread discovery fails."""


class StoreError(PersonalContextError):
    """Raised when the profile store cannot complete a read or write."""


class InvalidPhaseTransitionError(PersonalContextError):
    """Raised when a learning run attempts a transition the phase map forbids.

    Attributes:
        current_phase: The phase the run was in when the transition was attempted.
        event: The event that was rejected.
    """

    def __init__(self, current_phase: LearningPhase, event: str) -> None:
        self.current_phase = current_phase
        self.event = event
        super().__init__(f"Cannot apply event '{event}' in phase '{current_phase}'")
