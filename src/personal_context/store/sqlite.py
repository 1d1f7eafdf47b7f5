"""SQLite-backed profile store.

Accepts a sqlite3.Connection, uses parameterized queries exclusively, and
commits synchronously after writes.  Every driver or decoding failure is
raised as ``StoreError``.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from personal_context.domain.errors import StoreError
from personal_context.domain.models import LearningProgress, ProfileStatistics
from personal_context.domain.profile import (
    ContactCommunicationStyle,
    ContactRelationship,
    PersonalContextProfile,
)

logger = structlog.get_logger()


class ProfileStore(Protocol):
    """Logical read/write contract the learning coordinator depends on."""

    def save_profile(self, user_id: str, profile: PersonalContextProfile) -> None: ...

    def get_profile(self, user_id: str) -> PersonalContextProfile | None: ...

    def save_learning_progress(self, user_id: str, progress: LearningProgress) -> None: ...

    def get_learning_progress(self, user_id: str) -> LearningProgress | None: ...

    def update_learning_progress(self, user_id: str, updates: Mapping[str, Any]) -> bool: ...

    def save_contact_relationships_batch(
        self, user_id: str, relationships: Sequence[ContactRelationship]
    ) -> None: ...

    def save_communication_patterns_batch(
        self, user_id: str, patterns: Sequence[ContactCommunicationStyle]
    ) -> None: ...

    def get_contact_relationships(self, user_id: str) -> list[ContactRelationship]: ...

    def get_communication_patterns(self, user_id: str) -> list[ContactCommunicationStyle]: ...

    def delete_all_data(self, user_id: str) -> None: ...

    def get_statistics(self, user_id: str) -> ProfileStatistics: ...


def _now() -> str:
    return datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@contextmanager
def _store_errors(action: str, conn: sqlite3.Connection) -> Iterator[None]:
    try:
        yield
    except (sqlite3.Error, ValidationError) as exc:
        if conn.in_transaction:
            conn.rollback()
        logger.error("Profile store operation failed", action=action, error=str(exc))
        raise StoreError(f"Failed to {action}: {exc}") from exc


class SQLiteProfileStore:
    """Persist profiles, progress, and per-contact records in SQLite.

    Profiles and progress are one row per user.  Relationships and
    communication patterns are one row per (user, contact) and are replaced
    wholesale by the batch writers.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize with an open database connection.

        Args:
            conn: An open sqlite3.Connection whose database already has the
                  profile tables (see ``init_profile_db``).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def save_profile(self, user_id: str, profile: PersonalContextProfile) -> None:
        """Insert or replace the user's profile, keeping the original ``created_at``."""
        now = _now()
        with _store_errors("save personal context", self._conn):
            self._conn.execute(
                """
                INSERT OR REPLACE INTO personal_contexts (
                    user_id, version, profile_json, created_at, updated_at
                ) VALUES (
                    ?, ?, ?,
                    COALESCE(
                        (SELECT created_at FROM personal_contexts WHERE user_id = ?),
                        ?
                    ),
                    ?
                )
                """,
                (user_id, profile.version, profile.model_dump_json(), user_id, now, now),
            )
            self._conn.commit()
        logger.info("Saved personal context", user_id=user_id, version=profile.version)

    def get_profile(self, user_id: str) -> PersonalContextProfile | None:
        with _store_errors("retrieve personal context", self._conn):
            row = self._conn.execute(
                "SELECT profile_json FROM personal_contexts WHERE user_id = ?",
                (user_id,),
            ).fetchone()
            if row is None:
                logger.debug("No personal context found", user_id=user_id)
                return None
            return PersonalContextProfile.model_validate_json(row[0])

    # ------------------------------------------------------------------
    # Learning progress
    # ------------------------------------------------------------------

    def save_learning_progress(self, user_id: str, progress: LearningProgress) -> None:
        now = _now()
        with _store_errors("save learning progress", self._conn):
            self._conn.execute(
                """
                INSERT OR REPLACE INTO learning_progress (
                    user_id, status, progress_json, created_at, updated_at
                ) VALUES (
                    ?, ?, ?,
                    COALESCE(
                        (SELECT created_at FROM learning_progress WHERE user_id = ?),
                        ?
                    ),
                    ?
                )
                """,
                (user_id, progress.status.value, progress.model_dump_json(), user_id, now, now),
            )
            self._conn.commit()

    def get_learning_progress(self, user_id: str) -> LearningProgress | None:
        with _store_errors("retrieve learning progress", self._conn):
            row = self._conn.execute(
                "SELECT progress_json FROM learning_progress WHERE user_id = ?",
                (user_id,),
            ).fetchone()
            if row is None:
                return None
            return LearningProgress.model_validate_json(row[0])

    def update_learning_progress(self, user_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge *updates* into the stored progress record.

        Returns:
            False when the user has no progress record; nothing is written.
        """
        existing = self.get_learning_progress(user_id)
        if existing is None:
            logger.warning("No learning progress to update", user_id=user_id)
            return False
        with _store_errors("update learning progress", self._conn):
            merged = LearningProgress.model_validate({**existing.model_dump(), **updates})
        self.save_learning_progress(user_id, merged)
        return True

    # ------------------------------------------------------------------
    # Per-contact records
    # ------------------------------------------------------------------

    def save_contact_relationships_batch(
        self, user_id: str, relationships: Sequence[ContactRelationship]
    ) -> None:
        """Write every relationship in one transaction."""
        now = _now()
        rows = [
            (user_id, r.contact_email, r.model_dump_json(), user_id, r.contact_email, now, now)
            for r in relationships
        ]
        with _store_errors("batch save contact relationships", self._conn):
            self._conn.executemany(
                """
                INSERT OR REPLACE INTO contact_relationships (
                    user_id, contact_email, relationship_json, created_at, updated_at
                ) VALUES (
                    ?, ?, ?,
                    COALESCE(
                        (SELECT created_at FROM contact_relationships
                         WHERE user_id = ? AND contact_email = ?),
                        ?
                    ),
                    ?
                )
                """,
                rows,
            )
            self._conn.commit()
        logger.info("Batch saved contact relationships", user_id=user_id, count=len(rows))

    def save_communication_patterns_batch(
        self, user_id: str, patterns: Sequence[ContactCommunicationStyle]
    ) -> None:
        """Write every per-contact style in one transaction."""
        now = _now()
        rows = [
            (user_id, p.contact_email, p.model_dump_json(), user_id, p.contact_email, now, now)
            for p in patterns
        ]
        with _store_errors("batch save communication patterns", self._conn):
            self._conn.executemany(
                """
                INSERT OR REPLACE INTO communication_patterns (
                    user_id, contact_email, pattern_json, created_at, updated_at
                ) VALUES (
                    ?, ?, ?,
                    COALESCE(
                        (SELECT created_at FROM communication_patterns
                         WHERE user_id = ? AND contact_email = ?),
                        ?
                    ),
                    ?
                )
                """,
                rows,
            )
            self._conn.commit()
        logger.info("Batch saved communication patterns", user_id=user_id, count=len(rows))

    def get_contact_relationships(self, user_id: str) -> list[ContactRelationship]:
        with _store_errors("retrieve contact relationships", self._conn):
            rows = self._conn.execute(
                "SELECT relationship_json FROM contact_relationships "
                "WHERE user_id = ? ORDER BY contact_email",
                (user_id,),
            ).fetchall()
            return [ContactRelationship.model_validate_json(row[0]) for row in rows]

    def get_communication_patterns(self, user_id: str) -> list[ContactCommunicationStyle]:
        with _store_errors("retrieve communication patterns", self._conn):
            rows = self._conn.execute(
                "SELECT pattern_json FROM communication_patterns "
                "WHERE user_id = ? ORDER BY contact_email",
                (user_id,),
            ).fetchall()
            return [ContactCommunicationStyle.model_validate_json(row[0]) for row in rows]

    # ------------------------------------------------------------------
    # Cleanup and summaries
    # ------------------------------------------------------------------

    def delete_all_data(self, user_id: str) -> None:
        """Delete the profile, progress, and every per-contact row of *user_id*."""
        with _store_errors("delete personal context data", self._conn):
            for table in (
                "personal_contexts",
                "learning_progress",
                "contact_relationships",
                "communication_patterns",
            ):
                self._conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))  # noqa: S608
            self._conn.commit()
        logger.info("Deleted all personal context data", user_id=user_id)

    def get_statistics(self, user_id: str) -> ProfileStatistics:
        profile = self.get_profile(user_id)
        with _store_errors("get user statistics", self._conn):
            contact_count = self._conn.execute(
                "SELECT COUNT(*) FROM contact_relationships WHERE user_id = ?",
                (user_id,),
            ).fetchone()[0]
            pattern_count = self._conn.execute(
                "SELECT COUNT(*) FROM communication_patterns WHERE user_id = ?",
                (user_id,),
            ).fetchone()[0]
        return ProfileStatistics(
            has_personal_context=profile is not None,
            contact_count=contact_count,
            pattern_count=pattern_count,
            last_updated=profile.last_updated if profile else None,
            confidence=profile.confidence if profile else None,
        )

    def close(self) -> None:
        self._conn.close()
