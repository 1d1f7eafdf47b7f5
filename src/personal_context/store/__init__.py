"""Persistence for profiles, learning progress, and per-contact records."""

from personal_context.store.schema import close_profile_db, init_profile_db
from personal_context.store.sqlite import ProfileStore, SQLiteProfileStore

__all__ = [
    "ProfileStore",
    "SQLiteProfileStore",
    "close_profile_db",
    "init_profile_db",
]
