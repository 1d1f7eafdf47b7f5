"""SQLite schema for personal context persistence."""

from __future__ import annotations

import sqlite3
from pathlib import Path


def init_profile_db(db_path: Path | str) -> sqlite3.Connection:
    """Create and initialize the profile database with WAL mode.

    Creates one row-per-user table for profiles and learning progress, and
    one row-per-contact table each for relationships and communication
    patterns.  Documents are stored as JSON produced by the pydantic models.

    The connection may be used from worker threads (``asyncio.to_thread``).

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        An open sqlite3.Connection with every table created.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    conn.execute("""
        CREATE TABLE IF NOT EXISTS personal_contexts (
            user_id TEXT PRIMARY KEY,
            version INTEGER NOT NULL DEFAULT 1,
            profile_json TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS learning_progress (
            user_id TEXT PRIMARY KEY,
            status TEXT NOT NULL,
            progress_json TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS contact_relationships (
            user_id TEXT NOT NULL,
            contact_email TEXT NOT NULL,
            relationship_json TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            PRIMARY KEY (user_id, contact_email)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS communication_patterns (
            user_id TEXT NOT NULL,
            contact_email TEXT NOT NULL,
            pattern_json TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            PRIMARY KEY (user_id, contact_email)
        )
    """)

    conn.commit()
    return conn


def close_profile_db(conn: sqlite3.Connection) -> None:
    """Close the profile database connection."""
    conn.close()
