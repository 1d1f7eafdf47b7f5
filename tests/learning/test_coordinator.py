"""Tests for LearningCoordinator with mocked mailbox, analyzer, and store.

The happy path runs against a real in-memory SQLite store; failure paths use
a MagicMock store so individual writes can be made to fail.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr

from personal_context.analysis.aggregator import InsightAggregator
from personal_context.domain.errors import (
    IdentityLookupError,
    StoreError,
    ThreadDiscoveryError,
)
from personal_context.domain.insights import (
    CommunicationInsight,
    KnowledgeArea,
    RelationshipInsight,
    ThreadAnalysisResult,
)
from personal_context.domain.models import LearningInput, LearningProgress
from personal_context.domain.types import ContactCategory, LearningPhase, LearningStatus
from personal_context.email.models import EmailThread, MailboxIdentity, ThreadBatch
from personal_context.learning.coordinator import (
    CONNECTION_FAILED_MESSAGE,
    NO_PROFILE_MESSAGE,
    NO_THREADS_MESSAGE,
    LearningCoordinator,
)
from personal_context.learning.models import ContextUpdateInput
from personal_context.observability.events import PipelineEvents
from personal_context.store.schema import init_profile_db
from personal_context.store.sqlite import SQLiteProfileStore

ME = "me@example.com"
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def _analysis(thread_id: str) -> ThreadAnalysisResult:
    return ThreadAnalysisResult(
        thread_id=thread_id,
        communication_insights=[
            CommunicationInsight(
                type="tone", description="friendly", contact_email="alice@example.com",
                confidence=0.8,
            )
        ],
        relationship_insights=[
            RelationshipInsight(
                contact_email="alice@example.com",
                suggested_category="work_colleagues",
                confidence=0.8,
            )
        ],
        knowledge_areas=[KnowledgeArea(domain="Python", confidence=0.8)],
        confidence=0.8,
    )


@pytest.fixture
def learning_input() -> LearningInput:
    return LearningInput(user_id="u1", access_token=SecretStr("token"))


@pytest.fixture
def source(make_thread: Callable[..., EmailThread]) -> AsyncMock:
    mock = AsyncMock()
    mock.get_user_identity.return_value = MailboxIdentity(email_address=ME, thread_count=10)
    mock.fetch_interactive_threads.return_value = ThreadBatch(
        threads=[make_thread(thread_id="t1"), make_thread(thread_id="t2")],
        total_threads=2,
    )
    mock.test_connection.return_value = True
    return mock


@pytest.fixture
def orchestrator() -> MagicMock:
    mock = MagicMock()

    async def analyze(threads: list[EmailThread], user_email: str) -> list[ThreadAnalysisResult]:
        return [_analysis(t.thread_id) for t in threads]

    mock.analyze_threads = AsyncMock(side_effect=analyze)
    return mock


@pytest.fixture
def sqlite_store() -> SQLiteProfileStore:
    return SQLiteProfileStore(init_profile_db(":memory:"))


@pytest.fixture
def mock_store() -> MagicMock:
    store = MagicMock()
    store.get_profile.return_value = None
    return store


def _coordinator(
    source: AsyncMock, orchestrator: MagicMock, store: object, **kwargs: object
) -> LearningCoordinator:
    return LearningCoordinator(
        source,
        orchestrator,
        InsightAggregator(),
        store,  # type: ignore[arg-type]
        clock=lambda: NOW,
        **kwargs,  # type: ignore[arg-type]
    )


class TestLearnHappyPath:
    @pytest.mark.anyio()
    async def test_builds_and_persists_profile(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
    ) -> None:
        coordinator = _coordinator(source, orchestrator, sqlite_store)

        result = await coordinator.learn_personal_context(learning_input)

        assert result.success is True
        assert result.persisted is True
        assert result.warnings == []
        profile = result.profile
        assert profile is not None
        assert profile.version == 1
        assert profile.confidence == 0.8
        assert profile.learning_metadata.threads_analyzed == 2
        assert profile.learning_metadata.emails_analyzed == 4
        assert (
            profile.relationships.contacts["alice@example.com"].relationship_type
            is ContactCategory.WORK_COLLEAGUES
        )

        assert sqlite_store.get_profile("u1") == profile
        assert len(sqlite_store.get_contact_relationships("u1")) == 1
        assert len(sqlite_store.get_communication_patterns("u1")) == 1

        progress = sqlite_store.get_learning_progress("u1")
        assert progress is not None
        assert progress.current_phase is LearningPhase.COMPLETE
        assert progress.status is LearningStatus.COMPLETED
        assert progress.progress == 100
        assert progress.threads_discovered == 2
        assert progress.contacts_classified == 1
        assert progress.estimated_completion == NOW

    @pytest.mark.anyio()
    async def test_version_increments(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
    ) -> None:
        coordinator = _coordinator(source, orchestrator, sqlite_store)

        await coordinator.learn_personal_context(learning_input)
        second = await coordinator.learn_personal_context(learning_input)

        assert second.profile is not None
        assert second.profile.version == 2

    @pytest.mark.anyio()
    async def test_progress_messages_forwarded(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
    ) -> None:
        sink = MagicMock()
        coordinator = _coordinator(
            source, orchestrator, sqlite_store, events=PipelineEvents(on_log=sink)
        )

        await coordinator.learn_personal_context(learning_input)

        messages = [c.args[0] for c in sink.call_args_list]
        assert messages[0] == "Starting personal context learning for user: u1"
        assert "Phase 2: Analyzing 2 threads with AI..." in messages
        assert messages[-1] == "Successfully completed personal context learning"

    @pytest.mark.anyio()
    async def test_discovery_receives_options(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
    ) -> None:
        await _coordinator(source, orchestrator, sqlite_store).learn_personal_context(
            learning_input
        )

        source.get_user_identity.assert_awaited_once_with("token")
        source.fetch_interactive_threads.assert_awaited_once_with(
            "token", ME, learning_input.options
        )
        orchestrator.analyze_threads.assert_awaited_once()


class TestLearnFailures:
    @pytest.mark.anyio()
    async def test_no_threads(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        mock_store: MagicMock,
        learning_input: LearningInput,
    ) -> None:
        source.fetch_interactive_threads.return_value = ThreadBatch()

        result = await _coordinator(source, orchestrator, mock_store).learn_personal_context(
            learning_input
        )

        assert result.success is False
        assert result.error == NO_THREADS_MESSAGE
        orchestrator.analyze_threads.assert_not_called()
        mock_store.save_profile.assert_not_called()
        last_update = mock_store.update_learning_progress.call_args.args[1]
        assert last_update["current_phase"] is LearningPhase.ERROR
        assert last_update["status"] is LearningStatus.FAILED
        assert last_update["last_error"] == NO_THREADS_MESSAGE

    @pytest.mark.anyio()
    async def test_identity_failure(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        mock_store: MagicMock,
        learning_input: LearningInput,
    ) -> None:
        source.get_user_identity.side_effect = IdentityLookupError("Failed to access Gmail")

        result = await _coordinator(source, orchestrator, mock_store).learn_personal_context(
            learning_input
        )

        assert result.success is False
        assert result.error == "Learning failed: Failed to access Gmail"
        source.fetch_interactive_threads.assert_not_called()
        mock_store.save_profile.assert_not_called()
        last_update = mock_store.update_learning_progress.call_args.args[1]
        assert last_update["current_phase"] is LearningPhase.ERROR

    @pytest.mark.anyio()
    async def test_discovery_failure(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        mock_store: MagicMock,
        learning_input: LearningInput,
    ) -> None:
        source.fetch_interactive_threads.side_effect = ThreadDiscoveryError(
            "Failed to fetch Gmail threads: quota exceeded"
        )

        result = await _coordinator(source, orchestrator, mock_store).learn_personal_context(
            learning_input
        )

        assert result.success is False
        assert result.error == "Learning failed: Failed to fetch Gmail threads: quota exceeded"
        orchestrator.analyze_threads.assert_not_called()
        mock_store.save_profile.assert_not_called()
        last_update = mock_store.update_learning_progress.call_args.args[1]
        assert last_update["current_phase"] is LearningPhase.ERROR
        assert last_update["status"] is LearningStatus.FAILED
        assert last_update["last_error"] == "Failed to fetch Gmail threads: quota exceeded"

    @pytest.mark.anyio()
    @pytest.mark.parametrize("stage", ["analysis", "aggregation", "profile"])
    async def test_unexpected_exception_mid_run(
        self,
        stage: str,
        source: AsyncMock,
        orchestrator: MagicMock,
        mock_store: MagicMock,
        learning_input: LearningInput,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        aggregator = InsightAggregator()
        if stage == "analysis":
            orchestrator.analyze_threads.side_effect = RuntimeError("boom")
        elif stage == "aggregation":
            aggregator = MagicMock()
            aggregator.aggregate.side_effect = RuntimeError("boom")
        else:
            monkeypatch.setattr(
                "personal_context.learning.coordinator.build_profile",
                MagicMock(side_effect=RuntimeError("boom")),
            )
        coordinator = LearningCoordinator(
            source,
            orchestrator,
            aggregator,
            mock_store,
            clock=lambda: NOW,
        )

        result = await coordinator.learn_personal_context(learning_input)

        assert result.success is False
        assert result.error == "Learning failed: boom"
        mock_store.save_profile.assert_not_called()
        last_update = mock_store.update_learning_progress.call_args.args[1]
        assert last_update["current_phase"] is LearningPhase.ERROR
        assert last_update["status"] is LearningStatus.FAILED
        assert last_update["last_error"] == "boom"

    @pytest.mark.anyio()
    async def test_profile_save_failure_is_a_warning(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        mock_store: MagicMock,
        learning_input: LearningInput,
    ) -> None:
        mock_store.save_profile.side_effect = StoreError("disk full")

        result = await _coordinator(source, orchestrator, mock_store).learn_personal_context(
            learning_input
        )

        assert result.success is True
        assert result.profile is not None
        assert result.persisted is False
        assert result.warnings == ["Profile was not persisted: disk full"]
        mock_store.save_contact_relationships_batch.assert_not_called()

    @pytest.mark.anyio()
    async def test_batch_save_failure_is_a_warning(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        mock_store: MagicMock,
        learning_input: LearningInput,
    ) -> None:
        mock_store.save_contact_relationships_batch.side_effect = StoreError("locked")

        result = await _coordinator(source, orchestrator, mock_store).learn_personal_context(
            learning_input
        )

        assert result.success is True
        assert result.persisted is False
        assert result.warnings == ["Contact relationships were not persisted: locked"]
        mock_store.save_communication_patterns_batch.assert_called_once()

    @pytest.mark.anyio()
    async def test_progress_failures_do_not_abort(
        self,
        source: AsyncMock,
        orchestrator: MagicMock,
        mock_store: MagicMock,
        learning_input: LearningInput,
    ) -> None:
        mock_store.save_learning_progress.side_effect = StoreError("no progress table")
        mock_store.update_learning_progress.side_effect = StoreError("no progress table")

        result = await _coordinator(source, orchestrator, mock_store).learn_personal_context(
            learning_input
        )

        assert result.success is True
        assert result.persisted is True
        assert result.warnings == [
            "Progress tracking unavailable: no progress table",
            "Progress update failed: no progress table",
        ]


@pytest.fixture
def stored_coordinator(
    source: AsyncMock, orchestrator: MagicMock, sqlite_store: SQLiteProfileStore
) -> LearningCoordinator:
    return _coordinator(source, orchestrator, sqlite_store)


class TestUpdatePersonalContext:
    def test_requires_existing_profile(self, stored_coordinator: LearningCoordinator) -> None:
        result = stored_coordinator.update_personal_context(
            ContextUpdateInput(user_id="u1", recipient_email="alice@example.com")
        )
        assert result.success is False
        assert result.error == NO_PROFILE_MESSAGE

    @pytest.mark.anyio()
    async def test_known_contact(
        self,
        stored_coordinator: LearningCoordinator,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
        sample_thread: EmailThread,
    ) -> None:
        await stored_coordinator.learn_personal_context(learning_input)

        result = stored_coordinator.update_personal_context(
            ContextUpdateInput(
                user_id="u1",
                recipient_email="Alice@Example.com",
                email_content="Can we move the sync?",
                user_reply="Sure, Thursday works.",
                thread_context=sample_thread,
            )
        )

        assert result.success is True
        assert result.updates == [
            "Updated communication pattern for alice@example.com",
            "Updated relationship data for alice@example.com",
        ]
        profile = sqlite_store.get_profile("u1")
        assert profile is not None
        assert profile.version == 2
        style = profile.communication_patterns.contact_specific_styles["alice@example.com"]
        assert style.sample_count == 3
        [relationship] = sqlite_store.get_contact_relationships("u1")
        assert relationship.total_interactions == 3

    @pytest.mark.anyio()
    async def test_new_contact(
        self,
        stored_coordinator: LearningCoordinator,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
        sample_thread: EmailThread,
    ) -> None:
        await stored_coordinator.learn_personal_context(learning_input)

        result = stored_coordinator.update_personal_context(
            ContextUpdateInput(
                user_id="u1", recipient_email="new@example.com", thread_context=sample_thread
            )
        )

        assert result.updates == ["Created new communication pattern for new@example.com"]
        profile = sqlite_store.get_profile("u1")
        assert profile is not None
        style = profile.communication_patterns.contact_specific_styles["new@example.com"]
        assert style.confidence == 0.3
        assert style.style == profile.communication_patterns.global_style
        assert "new@example.com" not in profile.relationships.contacts

    @pytest.mark.anyio()
    async def test_without_thread_only_bumps_version(
        self,
        stored_coordinator: LearningCoordinator,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
    ) -> None:
        await stored_coordinator.learn_personal_context(learning_input)

        result = stored_coordinator.update_personal_context(
            ContextUpdateInput(user_id="u1", recipient_email="alice@example.com")
        )

        assert result.success is True
        assert result.updates == []
        profile = sqlite_store.get_profile("u1")
        assert profile is not None
        assert profile.version == 2

    def test_store_failure(
        self, source: AsyncMock, orchestrator: MagicMock, mock_store: MagicMock
    ) -> None:
        mock_store.get_profile.side_effect = StoreError("corrupt")
        result = _coordinator(source, orchestrator, mock_store).update_personal_context(
            ContextUpdateInput(user_id="u1", recipient_email="alice@example.com")
        )
        assert result.success is False
        assert result.error == "Update failed: corrupt"

    @pytest.mark.anyio()
    async def test_profile_save_failure_leaves_contact_rows_untouched(
        self,
        stored_coordinator: LearningCoordinator,
        sqlite_store: SQLiteProfileStore,
        learning_input: LearningInput,
        sample_thread: EmailThread,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await stored_coordinator.learn_personal_context(learning_input)
        monkeypatch.setattr(
            sqlite_store, "save_profile", MagicMock(side_effect=StoreError("disk full"))
        )

        result = stored_coordinator.update_personal_context(
            ContextUpdateInput(
                user_id="u1", recipient_email="alice@example.com", thread_context=sample_thread
            )
        )

        assert result.success is False
        assert result.error == "Update failed: disk full"
        [relationship] = sqlite_store.get_contact_relationships("u1")
        assert relationship.total_interactions == 2
        [style] = sqlite_store.get_communication_patterns("u1")
        assert style.sample_count == 2


class TestQueries:
    def test_store_errors_become_none(
        self, source: AsyncMock, orchestrator: MagicMock, mock_store: MagicMock
    ) -> None:
        mock_store.get_profile.side_effect = StoreError("x")
        mock_store.get_learning_progress.side_effect = StoreError("x")
        mock_store.get_statistics.side_effect = StoreError("x")
        coordinator = _coordinator(source, orchestrator, mock_store)

        assert coordinator.get_profile("u1") is None
        assert coordinator.get_progress("u1") is None
        assert coordinator.get_statistics("u1") is None

    def test_get_progress(
        self, stored_coordinator: LearningCoordinator, sqlite_store: SQLiteProfileStore
    ) -> None:
        sqlite_store.save_learning_progress("u1", LearningProgress(user_id="u1", progress=30))
        progress = stored_coordinator.get_progress("u1")
        assert progress is not None
        assert progress.progress == 30

    def test_delete(
        self, source: AsyncMock, orchestrator: MagicMock, mock_store: MagicMock
    ) -> None:
        coordinator = _coordinator(source, orchestrator, mock_store)
        assert coordinator.delete_data("u1").success is True
        mock_store.delete_all_data.assert_called_once_with("u1")

        mock_store.delete_all_data.side_effect = StoreError("locked")
        result = coordinator.delete_data("u1")
        assert result.success is False
        assert result.error == "Delete failed: locked"

    def test_draft_context_without_profile(
        self, stored_coordinator: LearningCoordinator
    ) -> None:
        text, has_profile = stored_coordinator.draft_context("u1", today=date(2026, 10, 5))
        assert has_profile is False
        assert text.endswith("Today is 10/5/2026.")

    @pytest.mark.anyio()
    async def test_draft_context_with_profile(
        self, stored_coordinator: LearningCoordinator, learning_input: LearningInput
    ) -> None:
        await stored_coordinator.learn_personal_context(learning_input)
        text, has_profile = stored_coordinator.draft_context("u1")
        assert has_profile is True
        assert "Knowledge areas: Python (intermediate)." in text
        assert text.endswith("Today is 10/19/2026.")


class TestConnection:
    @pytest.mark.anyio()
    async def test_connected(self, stored_coordinator: LearningCoordinator) -> None:
        result = await stored_coordinator.test_connection("token")
        assert result.success is True

    @pytest.mark.anyio()
    async def test_not_connected(
        self, stored_coordinator: LearningCoordinator, source: AsyncMock
    ) -> None:
        source.test_connection.return_value = False
        result = await stored_coordinator.test_connection("token")
        assert result.success is False
        assert result.error == CONNECTION_FAILED_MESSAGE

    @pytest.mark.anyio()
    async def test_source_raises(
        self, stored_coordinator: LearningCoordinator, source: AsyncMock
    ) -> None:
        source.test_connection.side_effect = RuntimeError("boom")
        result = await stored_coordinator.test_connection("token")
        assert result.success is False
        assert result.error == "Connection test failed: boom"
