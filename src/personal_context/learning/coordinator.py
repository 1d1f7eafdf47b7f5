"""Top-level sequencing of a personal context learning run.

``LearningCoordinator.learn_personal_context`` drives discovery, analysis,
aggregation, profile construction, and persistence, and always returns a
``LearningResult``: no exception escapes to the caller.  Progress-record and
persistence failures are swallowed and surface as ``warnings`` on the result.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

import structlog

from personal_context.analysis.aggregator import InsightAggregator
from personal_context.domain.models import (
    LearningInput,
    LearningProgress,
    LearningResult,
    OperationResult,
    ProfileStatistics,
)
from personal_context.domain.profile import (
    ContactCommunicationStyle,
    ContactRelationship,
    PersonalContextProfile,
)
from personal_context.domain.types import LearningPhase, LearningStatus
from personal_context.email.source import ThreadSource
from personal_context.email.threads import analysis_start_date
from personal_context.learning.draft_context import render_draft_context
from personal_context.learning.machine import LearningPhaseMachine
from personal_context.learning.models import ContextUpdateInput, ContextUpdateResult
from personal_context.learning.profile_builder import build_profile
from personal_context.learning.transitions import LearningEvent
from personal_context.llm.batch import BatchOrchestrator
from personal_context.observability.events import PipelineEvents
from personal_context.observability.metrics import LEARNING_RUNS
from personal_context.store.sqlite import ProfileStore

logger = structlog.get_logger()

NO_THREADS_MESSAGE = (
    "No email threads found for analysis. "
    "Try expanding the time range or checking email activity."
)
NO_PROFILE_MESSAGE = "No existing personal context found. Please run initial learning first."
CONNECTION_FAILED_MESSAGE = "Gmail connection test failed. Please check your access token."
NEW_CONTACT_STYLE_CONFIDENCE = 0.3


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _status_for(phase: LearningPhase) -> LearningStatus:
    if phase is LearningPhase.ERROR:
        return LearningStatus.FAILED
    if phase is LearningPhase.COMPLETE:
        return LearningStatus.COMPLETED
    return LearningStatus.RUNNING


class _Run:
    """Mutable bookkeeping for one learning run."""

    def __init__(self, user_id: str, started: datetime) -> None:
        self.user_id = user_id
        self.machine = LearningPhaseMachine()
        self.progress = LearningProgress(
            user_id=user_id,
            start_time=started,
            status=LearningStatus.RUNNING,
        )
        self.warnings: list[str] = []

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)


class LearningCoordinator:
    """Learn, query, update, and delete a user's personal context.

    Args:
        source: Mailbox access for identity lookup and thread discovery.
        orchestrator: Batched per-thread analysis.
        aggregator: Folds thread analyses into one summary.
        store: Profile persistence.
        events: Progress emitter.  Defaults to a log-only emitter tagged
            ``service``.
        clock: Returns the current aware datetime.
    """

    def __init__(
        self,
        source: ThreadSource,
        orchestrator: BatchOrchestrator,
        aggregator: InsightAggregator,
        store: ProfileStore,
        *,
        events: PipelineEvents | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source
        self._orchestrator = orchestrator
        self._aggregator = aggregator
        self._store = store
        self._events = events or PipelineEvents(source="service")
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    async def learn_personal_context(self, learning_input: LearningInput) -> LearningResult:
        """Run a full learning pass for one user.

        Never raises.  Returns ``success=False`` with an explanatory ``error``
        when identity lookup or discovery fails, when no interactive thread
        is found, or on any unexpected exception.
        """
        user_id = learning_input.user_id
        run = _Run(user_id, self._clock())
        structlog.contextvars.bind_contextvars(learning_user_id=user_id)
        self._events.emit(f"Starting personal context learning for user: {user_id}")

        try:
            self._store.save_learning_progress(user_id, run.progress)
        except Exception as exc:
            logger.warning("Failed to save initial progress, continuing", exc_info=True)
            run.warn(f"Progress tracking unavailable: {exc}")

        try:
            return await self._learn(learning_input, run)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.exception("Personal context learning failed", user_id=user_id)
            self._events.emit(f"Error: {message}")
            self._fail(run, message)
            LEARNING_RUNS.labels(outcome="failed").inc()
            return LearningResult(
                success=False,
                error=f"Learning failed: {message}",
                warnings=run.warnings,
            )
        finally:
            structlog.contextvars.unbind_contextvars("learning_user_id")

    async def _learn(self, learning_input: LearningInput, run: _Run) -> LearningResult:
        user_id = learning_input.user_id
        options = learning_input.options
        credential = learning_input.access_token.get_secret_value()

        # Phase 1: discovery
        self._events.emit("Phase 1: Discovering Gmail threads...")
        self._update_progress(run, progress=10)

        self._events.emit("Retrieving Gmail profile...")
        identity = await self._source.get_user_identity(credential)
        user_email = identity.email_address

        self._events.emit(f"Fetching interactive threads for {user_email}...")
        discovered = await self._source.fetch_interactive_threads(credential, user_email, options)
        threads = discovered.threads
        self._events.emit(
            f"Discovered {len(threads)} interactive threads for analysis",
            has_more_threads=discovered.has_more_threads,
        )

        run.machine.trigger(LearningEvent.THREADS_DISCOVERED)
        self._update_progress(run, progress=30, threads_discovered=len(threads))

        if not threads:
            self._events.emit(NO_THREADS_MESSAGE)
            self._fail(run, NO_THREADS_MESSAGE)
            LEARNING_RUNS.labels(outcome="no_threads").inc()
            return LearningResult(success=False, error=NO_THREADS_MESSAGE, warnings=run.warnings)

        # Phase 2: analysis
        self._events.emit(f"Phase 2: Analyzing {len(threads)} threads with AI...")
        analyses = await self._orchestrator.analyze_threads(threads, user_email)
        aggregated = self._aggregator.aggregate(analyses)

        emails_analyzed = sum(thread.message_count for thread in threads)
        contacts = len(aggregated.contact_relationships)
        self._events.emit(
            f"Successfully analyzed {len(threads)} threads containing {emails_analyzed} emails"
        )
        self._events.emit(f"Identified {contacts} contacts from your email history")

        run.machine.trigger(LearningEvent.ANALYSIS_COMPLETE)
        self._update_progress(
            run,
            progress=70,
            threads_analyzed=len(threads),
            emails_analyzed=emails_analyzed,
            contacts_classified=contacts,
        )

        # Phase 3: profile construction
        self._events.emit("Phase 3: Building personal context profile...")
        now = self._clock()
        profile = build_profile(
            user_id=user_id,
            aggregated=aggregated,
            version=self._next_version(user_id),
            now=now,
            analysis_start=analysis_start_date(options.time_range, now),
            threads_analyzed=len(threads),
            emails_analyzed=emails_analyzed,
        )

        # Phase 4: persistence
        self._events.emit("Phase 4: Saving data to database...")
        persisted = self._persist(profile, run)

        run.machine.trigger(LearningEvent.PROFILE_BUILT)
        self._update_progress(run, progress=100, estimated_completion=now)
        self._events.emit("Successfully completed personal context learning")
        LEARNING_RUNS.labels(outcome="success").inc()

        return LearningResult(
            success=True,
            profile=profile,
            persisted=persisted,
            warnings=run.warnings,
        )

    def _update_progress(self, run: _Run, **changes: Any) -> None:
        """Apply *changes* plus the machine's phase to the run's progress and store it.

        A store failure is recorded as a warning and otherwise ignored.
        """
        changes["current_phase"] = run.machine.phase
        changes["status"] = _status_for(run.machine.phase)
        for name, value in changes.items():
            setattr(run.progress, name, value)
        try:
            self._store.update_learning_progress(run.user_id, changes)
        except Exception as exc:
            logger.warning("Failed to update progress, continuing", exc_info=True)
            run.warn(f"Progress update failed: {exc}")

    def _fail(self, run: _Run, message: str) -> None:
        if not run.machine.is_terminal:
            run.machine.trigger(LearningEvent.FAIL)
        self._update_progress(run, last_error=message)

    def _next_version(self, user_id: str) -> int:
        try:
            previous = self._store.get_profile(user_id)
        except Exception:
            logger.warning("Previous profile lookup failed, starting at version 1", exc_info=True)
            return 1
        return previous.version + 1 if previous else 1

    def _persist(self, profile: PersonalContextProfile, run: _Run) -> bool:
        """Save the profile and its per-contact records.

        Returns:
            True only when every write succeeded.
        """
        user_id = profile.user_id
        try:
            self._store.save_profile(user_id, profile)
        except Exception as exc:
            logger.warning("Personal context analyzed but not persisted", exc_info=True)
            run.warn(f"Profile was not persisted: {exc}")
            return False

        persisted = True
        relationships = list(profile.relationships.contacts.values())
        if relationships:
            try:
                self._store.save_contact_relationships_batch(user_id, relationships)
            except Exception as exc:
                logger.warning("Failed to save contact relationships", exc_info=True)
                run.warn(f"Contact relationships were not persisted: {exc}")
                persisted = False

        styles = list(profile.communication_patterns.contact_specific_styles.values())
        if styles:
            try:
                self._store.save_communication_patterns_batch(user_id, styles)
            except Exception as exc:
                logger.warning("Failed to save communication patterns", exc_info=True)
                run.warn(f"Communication patterns were not persisted: {exc}")
                persisted = False

        if persisted:
            logger.info("Saved all personal context data", user_id=user_id)
        return persisted

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    def update_personal_context(self, update: ContextUpdateInput) -> ContextUpdateResult:
        """Fold one new interaction into the user's existing profile.

        Returns ``success=False`` when no profile exists yet or the store
        fails; otherwise the list of applied changes.
        """
        try:
            existing = self._store.get_profile(update.user_id)
            if existing is None:
                return ContextUpdateResult(success=False, error=NO_PROFILE_MESSAGE)

            now = self._clock()
            updates: list[str] = []
            patterns = existing.communication_patterns
            relationships = existing.relationships
            changed_style: ContactCommunicationStyle | None = None
            changed_relationship: ContactRelationship | None = None

            if update.thread_context is not None:
                contact = update.recipient_email
                style = patterns.contact_specific_styles.get(contact)
                if style is not None:
                    changed_style = style.model_copy(
                        update={"sample_count": style.sample_count + 1, "last_updated": now}
                    )
                    updates.append(f"Updated communication pattern for {contact}")
                else:
                    changed_style = ContactCommunicationStyle(
                        contact_email=contact,
                        style=patterns.global_style,
                        confidence=NEW_CONTACT_STYLE_CONFIDENCE,
                        last_updated=now,
                        sample_count=1,
                    )
                    updates.append(f"Created new communication pattern for {contact}")
                patterns = patterns.model_copy(
                    update={
                        "contact_specific_styles": {
                            **patterns.contact_specific_styles,
                            contact: changed_style,
                        }
                    }
                )

                relationship = relationships.contacts.get(contact)
                if relationship is not None:
                    changed_relationship = relationship.model_copy(
                        update={
                            "total_interactions": relationship.total_interactions + 1,
                            "last_interaction": now,
                        }
                    )
                    relationships = relationships.model_copy(
                        update={
                            "contacts": {**relationships.contacts, contact: changed_relationship}
                        }
                    )
                    updates.append(f"Updated relationship data for {contact}")

            profile = existing.model_copy(
                update={
                    "communication_patterns": patterns,
                    "relationships": relationships,
                    "version": existing.version + 1,
                    "last_updated": now,
                }
            )
            # Per-contact rows are written only once the profile itself is saved
            self._store.save_profile(update.user_id, profile)
            if changed_relationship is not None:
                self._store.save_contact_relationships_batch(
                    update.user_id, [changed_relationship]
                )
            if changed_style is not None:
                self._store.save_communication_patterns_batch(update.user_id, [changed_style])

            logger.info(
                "Updated personal context",
                user_id=update.user_id,
                version=profile.version,
                changes=len(updates),
            )
            return ContextUpdateResult(success=True, updates=updates)
        except Exception as exc:
            logger.exception("Personal context update failed", user_id=update.user_id)
            return ContextUpdateResult(success=False, error=f"Update failed: {exc}")

    # ------------------------------------------------------------------
    # Queries and maintenance
    # ------------------------------------------------------------------

    def get_profile(self, user_id: str) -> PersonalContextProfile | None:
        try:
            return self._store.get_profile(user_id)
        except Exception:
            logger.warning("Failed to get personal context", user_id=user_id, exc_info=True)
            return None

    def get_progress(self, user_id: str) -> LearningProgress | None:
        try:
            return self._store.get_learning_progress(user_id)
        except Exception:
            logger.warning("Failed to get learning progress", user_id=user_id, exc_info=True)
            return None

    def get_statistics(self, user_id: str) -> ProfileStatistics | None:
        try:
            return self._store.get_statistics(user_id)
        except Exception:
            logger.warning("Failed to get user statistics", user_id=user_id, exc_info=True)
            return None

    def delete_data(self, user_id: str) -> OperationResult:
        try:
            self._store.delete_all_data(user_id)
        except Exception as exc:
            logger.exception("Failed to delete personal context data", user_id=user_id)
            return OperationResult(success=False, error=f"Delete failed: {exc}")
        logger.info("Deleted personal context data", user_id=user_id)
        return OperationResult(success=True)

    async def test_connection(self, credential: str) -> OperationResult:
        """Check that *credential* can read the mailbox."""
        try:
            connected = await self._source.test_connection(credential)
        except Exception as exc:
            logger.exception("Gmail connection test failed")
            return OperationResult(success=False, error=f"Connection test failed: {exc}")
        if not connected:
            return OperationResult(success=False, error=CONNECTION_FAILED_MESSAGE)
        return OperationResult(success=True)

    def draft_context(self, user_id: str, today: date | None = None) -> tuple[str, bool]:
        """Render the drafting context for *user_id*.

        Returns:
            The context paragraph and whether a stored profile backed it.
        """
        profile = self.get_profile(user_id)
        text = render_draft_context(profile, today or self._clock().date())
        return text, profile is not None
