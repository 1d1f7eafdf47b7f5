"""Pydantic v2 models for the email domain.

Provides frozen (immutable) models for the interactive threads handed to the
insight extractor, plus the result shapes returned by a thread source.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from personal_context.domain.types import ThreadCategory


class ThreadMessage(BaseModel):
    """A single decoded message inside an email thread.

    ``headers`` maps lower-cased header names to their values.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str
    sender: str
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    subject: str = ""
    body: str = ""
    timestamp: datetime
    is_from_user: bool
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("headers")
    @classmethod
    def lowercase_header_names(cls, v: dict[str, str]) -> dict[str, str]:
        """Normalize header names to lower case."""
        return {name.lower(): value for name, value in v.items()}


class EmailThread(BaseModel):
    """A conversation the user took part in, with messages in chronological order."""

    model_config = ConfigDict(frozen=True)

    thread_id: str
    subject: str
    participants: list[str]
    message_count: int
    first_message_date: datetime
    last_message_date: datetime
    messages: list[ThreadMessage]
    thread_category: ThreadCategory = ThreadCategory.UNKNOWN

    @property
    def user_messages(self) -> list[ThreadMessage]:
        """Messages authored by the mailbox owner."""
        return [m for m in self.messages if m.is_from_user]

    @property
    def other_messages(self) -> list[ThreadMessage]:
        """Messages authored by anyone other than the mailbox owner."""
        return [m for m in self.messages if not m.is_from_user]

    @property
    def is_interactive(self) -> bool:
        """True when the user both received and sent at least one message."""
        return bool(self.user_messages) and bool(self.other_messages)


class MailboxIdentity(BaseModel):
    """Identity of the mailbox a credential belongs to."""

    model_config = ConfigDict(frozen=True)

    email_address: str
    thread_count: int = 0


class ThreadBatch(BaseModel):
    """Result of an interactive-thread discovery call."""

    threads: list[EmailThread] = Field(default_factory=list)
    total_threads: int = 0
    has_more_threads: bool = False
